"""Error taxonomy for the card ingestion pipeline.

Truncated chunk streams are not errors: the decoder returns what it managed to
reassemble and logs a warning. Everything that can abort a run derives from
:class:`CardoError` so the CLI can map it to a single user-facing message.
"""
from __future__ import annotations

from typing import Sequence


class CardoError(Exception):
    """Base class for every error raised by the cardo package."""


class ConfigurationError(CardoError):
    """Required settings (API key, paths) are missing or unusable."""


class GenerationError(CardoError):
    """The phrase-generation call to the LLM failed before returning text."""


class ParseError(CardoError):
    """No candidate records could be extracted from a response."""

    def __init__(self, message: str, *, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text


class ValidationError(CardoError):
    """A parsed record violated the structural field rules.

    ``raw_text`` always carries the full decoded response so operators can see
    exactly what the model produced.
    """

    def __init__(
        self,
        message: str,
        *,
        raw_text: str,
        issues: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.raw_text = raw_text
        self.issues = list(issues)


class EnrichmentError(CardoError):
    """Atomic-unit lookup failed; absorbed by the enrichment coordinator."""


class QueryNotFoundError(CardoError):
    """A query id does not exist in the catalogue."""

    def __init__(self, query_id: int) -> None:
        super().__init__(f"Query with ID {query_id} not found.")
        self.query_id = query_id


__all__ = [
    "CardoError",
    "ConfigurationError",
    "EnrichmentError",
    "GenerationError",
    "ParseError",
    "QueryNotFoundError",
    "ValidationError",
]
