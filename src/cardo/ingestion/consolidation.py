"""Split parsed records into phrases and single kanji, then dedupe.

Process:

1. Partition by lexeme length (2+ characters is a phrase, 1 is a kanji).
2. Pull the kanji named in each phrase breakdown.
3. Union those with the single-kanji rows, first-seen order.
4. Drop everything the catalogue already knows.
5. Attach inline data to the survivors; the rest are left pending for
   enrichment.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .records import AtomicUnitRecord, ConsolidationResult, PhraseRecord, RawRecord

logger = logging.getLogger(__name__)

NO_KANJI_SENTINEL = "kata only"
BREAKDOWN_DELIMITERS_RE = re.compile(r"[/,;]")

# CJK Unified Ideographs, Extension A, then Extensions B through E.
IDEOGRAPH_RANGES: Tuple[Tuple[int, int], ...] = (
    (0x4E00, 0x9FAF),
    (0x3400, 0x4DBF),
    (0x20000, 0x2A6DF),
    (0x2A700, 0x2B73F),
    (0x2B740, 0x2B81F),
    (0x2B820, 0x2CEAF),
)
_LEADING_IDEOGRAPHS_RE = re.compile(
    "^[" + "".join(f"{chr(lo)}-{chr(hi)}" for lo, hi in IDEOGRAPH_RANGES) + "]+"
)


def extract_kanji_from_breakdown(breakdown: Optional[str]) -> List[str]:
    """Return the kanji a breakdown names, in order, without duplicates.

    Handles ``"出 = exit / 口 = mouth"`` and ``"現金 = cash / のみ = only"``.
    A breakdown mentioning "kata only" yields nothing.
    """
    if not breakdown or NO_KANJI_SENTINEL in breakdown.lower():
        return []

    found: Dict[str, None] = {}
    for part in BREAKDOWN_DELIMITERS_RE.split(breakdown):
        match = _LEADING_IDEOGRAPHS_RE.match(part.strip())
        if not match:
            continue
        for char in match.group(0):
            found.setdefault(char, None)
    return list(found)


@dataclass(slots=True)
class Partition:
    """Records split by lexeme length, with the candidate kanji they name."""

    phrases: List[PhraseRecord] = field(default_factory=list)
    inline: Dict[str, AtomicUnitRecord] = field(default_factory=dict)
    candidates: List[str] = field(default_factory=list)


class Consolidator:
    def partition(self, records: Iterable[RawRecord]) -> Partition:
        phrases: List[PhraseRecord] = []
        inline: Dict[str, AtomicUnitRecord] = {}
        candidates: Dict[str, None] = {}

        for record in records:
            lexeme = record.lexeme
            if not lexeme:
                logger.warning("Discarding record with empty lexeme")
                continue
            if len(lexeme) >= 2:
                if not record.breakdown:
                    logger.warning(
                        "Discarding phrase without breakdown", extra={"lexeme": lexeme}
                    )
                    continue
                phrases.append(PhraseRecord.from_raw(record))
                for char in extract_kanji_from_breakdown(record.breakdown):
                    candidates.setdefault(char, None)
            else:
                # later rows for the same kanji replace earlier ones
                inline[lexeme] = AtomicUnitRecord.from_raw(record)
                candidates.setdefault(lexeme, None)

        return Partition(phrases=phrases, inline=inline, candidates=list(candidates))

    def collect_candidates(self, records: Iterable[RawRecord]) -> List[str]:
        """Kanji that a consolidation of ``records`` would consider."""
        return self.partition(records).candidates

    def consolidate(
        self, records: Iterable[RawRecord], known_units: Iterable[str]
    ) -> ConsolidationResult:
        return self.consolidate_partition(self.partition(records), known_units)

    def consolidate_partition(
        self, partition: Partition, known_units: Iterable[str]
    ) -> ConsolidationResult:
        phrases, inline, candidates = partition.phrases, partition.inline, partition.candidates
        known = set(known_units)
        new_units = [lexeme for lexeme in candidates if lexeme not in known]

        atomic_units: List[AtomicUnitRecord] = []
        pending: List[str] = []
        for lexeme in new_units:
            unit = inline.get(lexeme)
            if unit is None:
                pending.append(lexeme)
            else:
                atomic_units.append(unit)

        logger.debug(
            "Consolidated records",
            extra={
                "phrases": len(phrases),
                "candidates": len(candidates),
                "new_units": len(new_units),
                "pending": len(pending),
            },
        )
        return ConsolidationResult(
            phrases=phrases,
            atomic_units=atomic_units,
            new_units=new_units,
            pending=pending,
        )

    @staticmethod
    def merge_enrichment(
        result: ConsolidationResult, enriched: Mapping[str, AtomicUnitRecord]
    ) -> ConsolidationResult:
        """Fill pending kanji from ``enriched``; drop those still without data.

        Inline data always wins: only lexemes still pending are looked up.
        """
        inline = {unit.lexeme: unit for unit in result.atomic_units}
        pending = set(result.pending)
        atomic_units: List[AtomicUnitRecord] = []
        for lexeme in result.new_units:
            if lexeme in inline:
                atomic_units.append(inline[lexeme])
            elif lexeme in pending and lexeme in enriched:
                atomic_units.append(enriched[lexeme])

        dropped = [lexeme for lexeme in result.pending if lexeme not in enriched]
        if dropped:
            logger.info(
                "Dropping %d kanji without data", len(dropped), extra={"kanji": dropped}
            )
        return ConsolidationResult(
            phrases=list(result.phrases),
            atomic_units=atomic_units,
            new_units=list(result.new_units),
            pending=[],
        )


__all__ = [
    "Consolidator",
    "Partition",
    "IDEOGRAPH_RANGES",
    "NO_KANJI_SENTINEL",
    "extract_kanji_from_breakdown",
]
