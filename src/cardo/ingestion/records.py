from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(slots=True)
class RawRecord:
    """One row lifted out of a model response, before classification.

    Attributes
    ----------
    lexeme:
        Surface form (kanji/kana). Never empty once parsed.
    english_meaning:
        English gloss.
    phonetic_reading:
        Reading in kana.
    phonetic_romanization:
        Reading in romaji. Legacy tables may leave this empty.
    breakdown:
        Free text explaining the kanji that compose a phrase. ``None`` for
        rows that describe a single kanji.
    """

    lexeme: str
    english_meaning: str
    phonetic_reading: str
    phonetic_romanization: str
    breakdown: Optional[str] = None


@dataclass(slots=True)
class PhraseRecord:
    lexeme: str
    english_meaning: str
    phonetic_reading: str
    phonetic_romanization: str
    breakdown: str

    @classmethod
    def from_raw(cls, raw: RawRecord) -> "PhraseRecord":
        return cls(
            lexeme=raw.lexeme,
            english_meaning=raw.english_meaning,
            phonetic_reading=raw.phonetic_reading,
            phonetic_romanization=raw.phonetic_romanization,
            breakdown=raw.breakdown or "",
        )

    def as_dict(self) -> Dict[str, str]:
        return {
            "lexeme": self.lexeme,
            "english_meaning": self.english_meaning,
            "phonetic_reading": self.phonetic_reading,
            "phonetic_romanization": self.phonetic_romanization,
            "breakdown": self.breakdown,
        }


@dataclass(slots=True)
class AtomicUnitRecord:
    lexeme: str
    english_meaning: str
    phonetic_reading: str
    phonetic_romanization: str

    @classmethod
    def from_raw(cls, raw: RawRecord) -> "AtomicUnitRecord":
        return cls(
            lexeme=raw.lexeme,
            english_meaning=raw.english_meaning,
            phonetic_reading=raw.phonetic_reading,
            phonetic_romanization=raw.phonetic_romanization,
        )

    def as_dict(self) -> Dict[str, str]:
        return {
            "lexeme": self.lexeme,
            "english_meaning": self.english_meaning,
            "phonetic_reading": self.phonetic_reading,
            "phonetic_romanization": self.phonetic_romanization,
        }


@dataclass(slots=True)
class ConsolidationResult:
    """Phrases plus the new atomic units that carry data.

    ``new_units`` is every candidate kanji absent from the catalogue, in
    first-seen order. ``pending`` is the subset that had no inline data when
    consolidation finished; those are resolved by enrichment or dropped and
    are never persisted as blank records.
    """

    phrases: List[PhraseRecord] = field(default_factory=list)
    atomic_units: List[AtomicUnitRecord] = field(default_factory=list)
    new_units: List[str] = field(default_factory=list)
    pending: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, object]:
        return {
            "phrases": [phrase.as_dict() for phrase in self.phrases],
            "atomic_units": [unit.as_dict() for unit in self.atomic_units],
        }


__all__ = [
    "AtomicUnitRecord",
    "ConsolidationResult",
    "PhraseRecord",
    "RawRecord",
]
