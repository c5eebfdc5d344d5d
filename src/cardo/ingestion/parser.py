"""Extract candidate records from decoded model output.

Two shapes are understood:

- a JSON array of record objects, possibly surrounded by prose;
- the older pipe-delimited markdown table the first prompts asked for.

Validation here is purely structural (required strings present and non-blank).
Whether a row is a phrase or a single kanji is decided later by the
consolidator, so a one-character ``lexeme`` is perfectly valid at this stage.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Literal, Optional, Sequence

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ParseError, ValidationError
from .records import RawRecord

logger = logging.getLogger(__name__)

_JSON_ARRAY_RE = re.compile(r"\[.*\]", re.DOTALL)
_SEPARATOR_CELL_RE = re.compile(r"^[\s:\-]+$")

HEADER_KEYWORDS: tuple[str, ...] = ("english", "kanji", "lexeme", "phrase", "word")
ROMANIZATION_KEYWORDS: tuple[str, ...] = ("romaji", "romanization")
MIN_TABLE_CELLS = 4

OutcomeStatus = Literal["ok", "parse_error", "validation_error"]


class RawRecordModel(BaseModel):
    """Field-level schema for one JSON record."""

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    lexeme: str = Field(
        min_length=1,
        validation_alias=AliasChoices("lexeme", "kanji"),
    )
    english_meaning: str = Field(
        min_length=1,
        validation_alias=AliasChoices("englishMeaning", "english_meaning"),
    )
    phonetic_reading: str = Field(
        min_length=1,
        validation_alias=AliasChoices("phoneticReading", "phonetic_reading", "phoneticKana"),
    )
    phonetic_romanization: str = Field(
        min_length=1,
        validation_alias=AliasChoices(
            "phoneticRomanization", "phonetic_romanization", "phoneticRomaji"
        ),
    )
    breakdown: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("breakdown", "kanjiBreakdown"),
    )

    @field_validator("breakdown", mode="after")
    @classmethod
    def blank_breakdown_is_missing(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    def to_record(self) -> RawRecord:
        return RawRecord(
            lexeme=self.lexeme,
            english_meaning=self.english_meaning,
            phonetic_reading=self.phonetic_reading,
            phonetic_romanization=self.phonetic_romanization,
            breakdown=self.breakdown,
        )


@dataclass(slots=True)
class ParseOutcome:
    """Tagged result of :meth:`ResponseParser.try_parse`.

    Exactly one of the three statuses applies. ``raw_text`` is always the
    decoded text that was inspected.
    """

    status: OutcomeStatus
    raw_text: str
    records: List[RawRecord] = field(default_factory=list)
    message: str = ""
    issues: List[str] = field(default_factory=list)
    source: Optional[Literal["json", "table"]] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def unwrap(self) -> List[RawRecord]:
        if self.status == "ok":
            return self.records
        if self.status == "validation_error":
            raise ValidationError(self.message, raw_text=self.raw_text, issues=self.issues)
        raise ParseError(self.message, raw_text=self.raw_text)


class ResponseParser:
    def parse(self, text: str) -> List[RawRecord]:
        """Return the records in ``text`` or raise ParseError/ValidationError."""
        return self.try_parse(text).unwrap()

    def try_parse(self, text: str) -> ParseOutcome:
        json_failure: Optional[str] = None
        match = _JSON_ARRAY_RE.search(text)
        if match:
            try:
                payload = json.loads(match.group(0))
            except json.JSONDecodeError as exc:
                json_failure = f"bracketed span is not valid JSON ({exc.msg})"
                logger.debug("JSON array candidate rejected: %s", exc)
            except RecursionError:
                json_failure = "bracketed span is nested too deeply to decode"
                logger.debug("JSON array candidate rejected: nesting too deep")
            else:
                return self._outcome_from_json(payload, text)

        records = parse_markdown_table(text)
        if records:
            logger.debug("Parsed legacy table", extra={"rows": len(records)})
            return ParseOutcome(status="ok", raw_text=text, records=records, source="table")

        message = "No valid data rows found in LLM response"
        if json_failure:
            message = f"{message}: {json_failure}"
        return ParseOutcome(status="parse_error", raw_text=text, message=message)

    def _outcome_from_json(self, payload: Any, text: str) -> ParseOutcome:
        if not isinstance(payload, list) or not payload:
            return ParseOutcome(
                status="parse_error",
                raw_text=text,
                message="No valid data rows found in LLM response: JSON array is empty",
            )

        records: List[RawRecord] = []
        issues: List[str] = []
        for index, item in enumerate(payload):
            if not isinstance(item, dict):
                issues.append(f"[{index}]: expected an object, got {type(item).__name__}")
                continue
            try:
                records.append(RawRecordModel.model_validate(item).to_record())
            except PydanticValidationError as exc:
                issues.extend(_format_issues(index, exc))

        if issues:
            logger.error(
                "Invalid record structure from LLM (%s); decoded response:\n%s",
                "; ".join(issues),
                text,
            )
            return ParseOutcome(
                status="validation_error",
                raw_text=text,
                message="Invalid record structure: " + "; ".join(issues),
                issues=issues,
            )

        logger.debug("Parsed JSON array", extra={"rows": len(records)})
        return ParseOutcome(status="ok", raw_text=text, records=records, source="json")


def _format_issues(index: int, exc: PydanticValidationError) -> List[str]:
    formatted: List[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        formatted.append(f"[{index}].{location}: {error.get('msg', 'invalid value')}")
    return formatted


def split_table_row(line: str) -> List[str]:
    return [cell.strip() for cell in line.split("|") if cell.strip()]


def is_separator_row(cells: Sequence[str]) -> bool:
    return bool(cells) and all(_SEPARATOR_CELL_RE.match(cell) for cell in cells)


def _is_header_row(cells: Sequence[str]) -> bool:
    lowered = [cell.lower() for cell in cells]
    return any(keyword in cell for cell in lowered for keyword in HEADER_KEYWORDS)


def _has_romanization_column(header: Sequence[str]) -> bool:
    lowered = [cell.lower() for cell in header]
    return any(keyword in cell for cell in lowered for keyword in ROMANIZATION_KEYWORDS)


def parse_markdown_table(text: str) -> List[RawRecord]:
    """Map a pipe-delimited table onto records by column position.

    Columns are meaning, lexeme, reading, then either romanization (and an
    optional breakdown) or breakdown alone, depending on the header.
    """
    header: Optional[List[str]] = None
    records: List[RawRecord] = []
    missing_breakdowns = 0
    for line in text.splitlines():
        if "|" not in line:
            continue
        cells = split_table_row(line)
        if not cells:
            continue
        if header is None:
            if _is_header_row(cells):
                header = cells
            continue
        if is_separator_row(cells) or len(cells) < MIN_TABLE_CELLS:
            continue

        if _has_romanization_column(header):
            romanization = cells[3]
            breakdown = cells[4] if len(cells) > 4 else None
            if breakdown is None and len(cells[1]) >= 2:
                missing_breakdowns += 1
        else:
            romanization = ""
            breakdown = cells[3]
        records.append(
            RawRecord(
                lexeme=cells[1],
                english_meaning=cells[0],
                phonetic_reading=cells[2],
                phonetic_romanization=romanization,
                breakdown=breakdown,
            )
        )
    if missing_breakdowns:
        logger.warning(
            "Table has %d multi-character rows but no breakdown column; "
            "they will be discarded as phrases",
            missing_breakdowns,
            extra={"header": header},
        )
    return records


__all__ = [
    "ParseOutcome",
    "RawRecordModel",
    "ResponseParser",
    "is_separator_row",
    "parse_markdown_table",
    "split_table_row",
]
