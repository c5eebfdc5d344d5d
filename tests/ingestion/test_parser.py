import json
import logging
import pathlib
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[2]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from cardo.ingestion.errors import ParseError, ValidationError  # noqa: E402
from cardo.ingestion.parser import (  # noqa: E402
    ResponseParser,
    is_separator_row,
    parse_markdown_table,
    split_table_row,
)

EXIT_RECORDS = [
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
]


def test_json_array_inside_prose_is_parsed():
    text = "Here you go:\n" + json.dumps(EXIT_RECORDS, ensure_ascii=False) + "\nEnjoy!"

    records = ResponseParser().parse(text)

    assert [record.lexeme for record in records] == ["出口", "出"]
    assert records[0].breakdown == "出 = exit / 口 = mouth"
    assert records[1].breakdown is None
    assert records[1].phonetic_romanization == "de"


def test_single_character_lexeme_is_not_a_validation_error():
    text = json.dumps([EXIT_RECORDS[1]], ensure_ascii=False)

    outcome = ResponseParser().try_parse(text)

    assert outcome.ok
    assert outcome.source == "json"
    assert outcome.records[0].lexeme == "出"


def test_snake_case_and_legacy_keys_are_accepted():
    text = json.dumps(
        [
            {
                "kanji": "改札",
                "english_meaning": "ticket gate",
                "phoneticKana": "かいさつ",
                "phoneticRomaji": "kaisatsu",
                "kanjiBreakdown": "改 = renew / 札 = ticket",
            }
        ],
        ensure_ascii=False,
    )

    [record] = ResponseParser().parse(text)

    assert record.lexeme == "改札"
    assert record.english_meaning == "ticket gate"
    assert record.breakdown == "改 = renew / 札 = ticket"


def test_blank_required_field_raises_validation_error_with_raw_text():
    bad = dict(EXIT_RECORDS[0], englishMeaning="   ")
    text = json.dumps([bad], ensure_ascii=False)

    outcome = ResponseParser().try_parse(text)
    assert outcome.status == "validation_error"
    assert outcome.raw_text == text
    assert outcome.issues and outcome.issues[0].startswith("[0].")
    assert "at least 1 character" in outcome.issues[0]

    with pytest.raises(ValidationError) as excinfo:
        ResponseParser().parse(text)
    assert excinfo.value.raw_text == text


def test_non_object_element_is_a_validation_error():
    outcome = ResponseParser().try_parse('["出口"]')

    assert outcome.status == "validation_error"
    assert "expected an object" in outcome.issues[0]


def test_empty_json_array_is_a_parse_error():
    with pytest.raises(ParseError):
        ResponseParser().parse("[]")


def test_phrase_table_fallback_defaults_romanization():
    text = "\n".join(
        [
            "| English Meaning | Kanji | Kana | Breakdown |",
            "|---|---|---|---|",
            "| Exit | 出口 | でぐち | 出 = exit / 口 = mouth |",
        ]
    )

    outcome = ResponseParser().try_parse(text)

    assert outcome.ok
    assert outcome.source == "table"
    [record] = outcome.records
    assert record.lexeme == "出口"
    assert record.english_meaning == "Exit"
    assert record.phonetic_reading == "でぐち"
    assert record.phonetic_romanization == ""
    assert record.breakdown == "出 = exit / 口 = mouth"


def test_kanji_table_fallback_reads_romanization_column():
    text = "\n".join(
        [
            "| Meaning | Kanji | Kana | Romaji |",
            "| :--- | :---: | --- | --- |",
            "| exit | 出 | で | de |",
            "| mouth | 口 | くち | kuchi |",
        ]
    )

    records = ResponseParser().parse(text)

    assert [(r.lexeme, r.phonetic_romanization) for r in records] == [("出", "de"), ("口", "kuchi")]
    assert all(r.breakdown is None for r in records)


def test_table_with_only_separator_row_is_a_parse_error():
    text = "| English | Kanji | Kana | Breakdown |\n|---|---|---|---|\n"

    with pytest.raises(ParseError) as excinfo:
        ResponseParser().parse(text)
    assert excinfo.value.raw_text == text


def test_unrecognised_text_is_a_parse_error():
    with pytest.raises(ParseError):
        ResponseParser().parse("Sorry, I cannot help with that.")


def test_invalid_json_falls_back_to_table_and_reports_failure():
    text = "[not json]"

    outcome = ResponseParser().try_parse(text)

    assert outcome.status == "parse_error"
    assert "not valid JSON" in outcome.message


def test_table_helpers():
    assert split_table_row("| a | b |  |") == ["a", "b"]
    assert is_separator_row(["---", ":--:"])
    assert not is_separator_row(["---", "x"])
    assert parse_markdown_table("no pipes here") == []


def test_deeply_nested_brackets_are_a_parse_error():
    text = "[" * 50000 + "]" * 50000

    with pytest.raises(ParseError) as excinfo:
        ResponseParser().parse(text)
    assert "nested too deeply" in str(excinfo.value)


def test_romaji_table_without_breakdown_warns_about_phrases(caplog):
    text = "\n".join(
        [
            "| English Meaning | Kanji | Phonetic Kana | Phonetic Romaji |",
            "|---|---|---|---|",
            "| Exit | 出口 | でぐち | deguchi |",
            "| exit | 出 | で | de |",
        ]
    )

    with caplog.at_level(logging.WARNING, logger="cardo.ingestion.parser"):
        records = ResponseParser().parse(text)

    assert [r.breakdown for r in records] == [None, None]
    warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "1 multi-character rows but no breakdown column" in warnings[0]
