import pathlib
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[2]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from cardo.ingestion.consolidation import (  # noqa: E402
    Consolidator,
    extract_kanji_from_breakdown,
)
from cardo.ingestion.records import AtomicUnitRecord, RawRecord  # noqa: E402


def _phrase(lexeme, breakdown, meaning="phrase"):
    return RawRecord(lexeme, meaning, "よみ", "yomi", breakdown)


def _kanji(lexeme, meaning="kanji", reading="よ"):
    return RawRecord(lexeme, meaning, reading, "yo")


def test_extracts_kanji_in_breakdown_order():
    assert extract_kanji_from_breakdown("出 = exit / 口 = mouth") == ["出", "口"]


def test_extracts_every_character_of_a_leading_run_once():
    breakdown = "現金 = cash; 金 = gold, のみ = only"
    assert extract_kanji_from_breakdown(breakdown) == ["現", "金"]


@pytest.mark.parametrize("breakdown", ["kata only", "KATA ONLY", "(Kata Only) no kanji"])
def test_kata_only_sentinel_yields_nothing(breakdown):
    assert extract_kanji_from_breakdown(breakdown) == []


def test_extension_b_ideograph_is_recognised():
    assert extract_kanji_from_breakdown("\U00020B9F = scold") == ["\U00020B9F"]


def test_missing_breakdown_yields_nothing():
    assert extract_kanji_from_breakdown(None) == []
    assert extract_kanji_from_breakdown("トイレ = toilet") == []


def test_classification_by_lexeme_length():
    records = [_phrase("出口", "出 = exit / 口 = mouth"), _kanji("出"), _kanji("")]

    result = Consolidator().consolidate(records, known_units=[])

    assert [p.lexeme for p in result.phrases] == ["出口"]
    assert [u.lexeme for u in result.atomic_units] == ["出"]
    assert result.new_units == ["出", "口"]
    assert result.pending == ["口"]


def test_known_units_are_excluded():
    records = [_phrase("出口", "出 = exit / 口 = mouth")]

    result = Consolidator().consolidate(records, known_units=["出"])

    assert result.new_units == ["口"]
    assert result.atomic_units == []
    assert result.pending == ["口"]

    merged = Consolidator.merge_enrichment(result, {})
    assert merged.atomic_units == []
    assert [p.lexeme for p in merged.phrases] == ["出口"]


def test_enrichment_fills_pending_without_overriding_inline_data():
    records = [_phrase("出口", "出 = exit / 口 = mouth"), _kanji("出", meaning="inline exit")]
    result = Consolidator().consolidate(records, known_units=[])

    enriched = {
        "出": AtomicUnitRecord("出", "enriched exit", "しゅつ", "shutsu"),
        "口": AtomicUnitRecord("口", "mouth", "くち", "kuchi"),
    }
    merged = Consolidator.merge_enrichment(result, enriched)

    assert [(u.lexeme, u.english_meaning) for u in merged.atomic_units] == [
        ("出", "inline exit"),
        ("口", "mouth"),
    ]
    assert merged.pending == []


def test_later_duplicate_atomic_record_wins():
    records = [_kanji("口", meaning="first"), _kanji("口", meaning="second")]

    result = Consolidator().consolidate(records, known_units=[])

    assert [u.english_meaning for u in result.atomic_units] == ["second"]


def test_phrase_without_breakdown_is_discarded():
    records = [RawRecord("出口", "Exit", "でぐち", "deguchi", None)]

    result = Consolidator().consolidate(records, known_units=[])

    assert result.phrases == []
    assert result.new_units == []


def test_collect_candidates_interleaves_in_first_seen_order():
    records = [
        _kanji("駅"),
        _phrase("出口", "出 = exit / 口 = mouth"),
        _kanji("出"),
        _phrase("入口", "入 = enter / 口 = mouth"),
    ]

    assert Consolidator().collect_candidates(records) == ["駅", "出", "口", "入"]


def test_as_dict_only_exposes_cards():
    result = Consolidator().consolidate([_kanji("出")], known_units=[])

    assert result.as_dict() == {
        "phrases": [],
        "atomic_units": [
            {
                "lexeme": "出",
                "english_meaning": "kanji",
                "phonetic_reading": "よ",
                "phonetic_romanization": "yo",
            }
        ],
    }


def test_partition_feeds_consolidation_without_reclassifying():
    consolidator = Consolidator()
    records = [_phrase("出口", "出 = exit / 口 = mouth"), _kanji("出")]

    partition = consolidator.partition(records)
    result = consolidator.consolidate_partition(partition, known_units=["口"])

    assert partition.candidates == ["出", "口"]
    assert list(partition.inline) == ["出"]
    assert [u.lexeme for u in result.atomic_units] == ["出"]
    assert result.pending == []
