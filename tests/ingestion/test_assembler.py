import json
import logging
import pathlib
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[2]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from cardo.ingestion.assembler import CardAssembler  # noqa: E402
from cardo.ingestion.errors import ParseError, ValidationError  # noqa: E402
from cardo.ingestion.records import RawRecord  # noqa: E402
from cardo.storage.repository import CatalogueRepository  # noqa: E402

EXIT_RESPONSE = json.dumps(
    [
        {
            "lexeme": "出口",
            "englishMeaning": "Exit",
            "phoneticReading": "でぐち",
            "phoneticRomanization": "deguchi",
            "breakdown": "出 = exit / 口 = mouth",
        },
        {
            "lexeme": "出",
            "englishMeaning": "exit",
            "phoneticReading": "で",
            "phoneticRomanization": "de",
        },
    ],
    ensure_ascii=False,
)


class FakeGateway:
    def __init__(self, records=None, error=None):
        self.records = records or []
        self.error = error
        self.calls = []

    def generate_atomic_meanings(self, lexemes):
        self.calls.append(list(lexemes))
        if self.error is not None:
            raise self.error
        return list(self.records)


@pytest.fixture
def repository(tmp_path):
    repo = CatalogueRepository.open(tmp_path / "cards.db")
    yield repo
    repo.close()


def _chunked(text):
    pieces = [text[i:i + 20] for i in range(0, len(text), 20)]
    return "".join('0:"{}"'.format(piece.replace('"', '\\"')) for piece in pieces)


def test_end_to_end_without_enrichment_data(repository):
    gateway = FakeGateway(records=[])
    assembler = CardAssembler(store=repository, gateway=gateway)
    query_id = repository.create_query("station", 2)

    result = assembler.ingest(query_id, EXIT_RESPONSE)

    assert [p.lexeme for p in result.phrases] == ["出口"]
    assert [(u.lexeme, u.english_meaning) for u in result.atomic_units] == [("出", "exit")]
    assert gateway.calls == [["口"]]


def test_enrichment_data_is_persisted(repository):
    gateway = FakeGateway(records=[RawRecord("口", "mouth", "くち", "kuchi")])
    assembler = CardAssembler(store=repository, gateway=gateway)
    query_id = repository.create_query("station", 2)

    result = assembler.ingest(query_id, EXIT_RESPONSE)

    assert [u.lexeme for u in result.atomic_units] == ["出", "口"]
    assert repository.get_existing_atomic_units(["出", "口", "入"]) == ["出", "口"]


def test_enrichment_failure_keeps_phrases(repository):
    gateway = FakeGateway(error=RuntimeError("boom"))
    assembler = CardAssembler(store=repository, gateway=gateway)
    query_id = repository.create_query("station", 1)
    records = [RawRecord("出口", "Exit", "でぐち", "deguchi", "出 = exit / 口 = mouth")]

    result = assembler.assemble(query_id, records)

    assert [p.lexeme for p in result.phrases] == ["出口"]
    assert result.atomic_units == []


def test_known_units_are_not_requested_again(repository):
    first = repository.create_query("station", 1)
    CardAssembler(store=repository, gateway=FakeGateway()).ingest(first, EXIT_RESPONSE)

    gateway = FakeGateway()
    second = repository.create_query("station", 1)
    records = [RawRecord("出口", "Exit", "でぐち", "deguchi", "出 = exit / 口 = mouth")]
    result = CardAssembler(store=repository, gateway=gateway).assemble(second, records)

    assert gateway.calls == [["口"]]
    assert [p.lexeme for p in result.phrases] == ["出口"]
    assert result.atomic_units == []


def test_chunked_response_is_decoded_before_parsing(repository):
    assembler = CardAssembler(store=repository, gateway=FakeGateway())

    records = assembler.parse_response(_chunked(EXIT_RESPONSE))

    assert [r.lexeme for r in records] == ["出口", "出"]


def test_parse_failures_raise_before_any_write(repository):
    assembler = CardAssembler(store=repository, gateway=FakeGateway())

    with pytest.raises(ParseError):
        assembler.parse_response("no cards today")
    with pytest.raises(ValidationError):
        assembler.parse_response('[{"lexeme": "出口"}]')

    assert repository.get_all_cards().phrases == []


def test_each_record_is_classified_once_per_run(repository, caplog):
    assembler = CardAssembler(store=repository, gateway=FakeGateway())
    query_id = repository.create_query("station", 2)
    records = [
        RawRecord("出口", "Exit", "でぐち", "deguchi", None),
        RawRecord("入口", "Entrance", "いりぐち", "iriguchi", "入 = enter / 口 = mouth"),
    ]

    with caplog.at_level(logging.WARNING, logger="cardo.ingestion.consolidation"):
        result = assembler.assemble(query_id, records)

    assert [p.lexeme for p in result.phrases] == ["入口"]
    discarded = [r for r in caplog.records if "without breakdown" in r.getMessage()]
    assert len(discarded) == 1
