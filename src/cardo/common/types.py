"""Shared protocol definitions for cardo.

The pipeline talks to two collaborators, the LLM gateway and the catalogue
store. Both are described structurally here so the assembler can be handed a
real sqlite repository in production and a small fake in tests.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cardo.ingestion.records import (
        AtomicUnitRecord,
        ConsolidationResult,
        PhraseRecord,
        RawRecord,
    )


@runtime_checkable
class AtomicMeaningSource(Protocol):
    """Anything that can describe a batch of single kanji."""

    def generate_atomic_meanings(self, lexemes: Sequence[str]) -> list[RawRecord]:
        """Return one record per kanji it could describe."""
        ...


@runtime_checkable
class PhraseSource(Protocol):
    def generate_phrases(
        self, domain: str, count: int, exclude: Sequence[str] = ()
    ) -> str:
        """Return the raw response text for a phrase request."""
        ...


@runtime_checkable
class CardSource(PhraseSource, AtomicMeaningSource, Protocol):
    """One LLM collaborator that writes phrases and describes kanji."""


@runtime_checkable
class CatalogueStore(Protocol):
    """Durable catalogue of phrases and kanji, grouped by originating query."""

    def get_existing_atomic_units(self, candidates: Sequence[str]) -> list[str]:
        ...

    def persist_phrases(self, query_id: int, phrases: Sequence[PhraseRecord]) -> int:
        ...

    def persist_atomic_units(
        self, query_id: int, units: Sequence[AtomicUnitRecord]
    ) -> int:
        ...

    def get_consolidated_view(self, query_id: int) -> ConsolidationResult:
        ...


__all__ = [
    "AtomicMeaningSource",
    "CardSource",
    "CatalogueStore",
    "PhraseSource",
]
