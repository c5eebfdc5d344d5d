from __future__ import annotations

"""Look up kanji that consolidation found but could not describe.

Enrichment is best effort. A failing gateway costs the run its new-kanji
descriptions, never the phrases that were already classified.
"""

import logging
from typing import Dict, Sequence

from cardo.common.types import AtomicMeaningSource

from .records import AtomicUnitRecord

LOGGER = logging.getLogger(__name__)


class EnrichmentCoordinator:
    def __init__(self, gateway: AtomicMeaningSource) -> None:
        self.gateway = gateway

    def enrich(self, missing_lexemes: Sequence[str]) -> Dict[str, AtomicUnitRecord]:
        """Return descriptions keyed by lexeme for whatever the gateway supplied.

        Makes no call at all for an empty batch and exactly one call otherwise.
        Entries for lexemes that were not requested are ignored; when the
        gateway repeats a lexeme the later entry wins.
        """
        requested = list(dict.fromkeys(missing_lexemes))
        if not requested:
            return {}

        LOGGER.info("Querying LLM for meanings of %d kanji", len(requested))
        try:
            records = self.gateway.generate_atomic_meanings(requested)
        except Exception as exc:
            LOGGER.warning(
                "Failed to get kanji meanings from LLM; continuing without them",
                exc_info=exc,
            )
            return {}

        wanted = set(requested)
        enriched: Dict[str, AtomicUnitRecord] = {}
        for record in records:
            if record.lexeme in wanted:
                enriched[record.lexeme] = AtomicUnitRecord.from_raw(record)
            else:
                LOGGER.debug("Ignoring unrequested lexeme %r from enrichment", record.lexeme)

        missing = [lexeme for lexeme in requested if lexeme not in enriched]
        if missing:
            LOGGER.info("LLM returned no data for %d kanji", len(missing), extra={"kanji": missing})
        return enriched


__all__ = ["EnrichmentCoordinator"]
