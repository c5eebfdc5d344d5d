"""Run one response through decode → parse → consolidate → enrich → persist."""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from cardo.common.types import AtomicMeaningSource, CatalogueStore

from .consolidation import Consolidator
from .decoder import ResponseDecoder
from .enrichment import EnrichmentCoordinator
from .parser import ResponseParser
from .records import ConsolidationResult, RawRecord

logger = logging.getLogger(__name__)


class CardAssembler:
    """Turn model output into persisted cards for one query.

    The store and the gateway are injected so a run never depends on
    process-wide client state. Stages run strictly in order; a parse or
    validation failure raises before anything is written.
    """

    def __init__(
        self,
        *,
        store: CatalogueStore,
        gateway: AtomicMeaningSource,
        decoder: Optional[ResponseDecoder] = None,
        parser: Optional[ResponseParser] = None,
        consolidator: Optional[Consolidator] = None,
        enrichment: Optional[EnrichmentCoordinator] = None,
    ) -> None:
        self.store = store
        self.decoder = decoder or ResponseDecoder()
        self.parser = parser or ResponseParser()
        self.consolidator = consolidator or Consolidator()
        self.enrichment = enrichment or EnrichmentCoordinator(gateway)

    def parse_response(self, raw_text: str) -> List[RawRecord]:
        """Decode and parse ``raw_text``; raises ParseError or ValidationError."""
        return self.parser.parse(self.decoder.decode(raw_text))

    def ingest(self, query_id: int, raw_text: str) -> ConsolidationResult:
        return self.assemble(query_id, self.parse_response(raw_text))

    def assemble(
        self, query_id: int, raw_records: Sequence[RawRecord]
    ) -> ConsolidationResult:
        partition = self.consolidator.partition(raw_records)
        known = self.store.get_existing_atomic_units(partition.candidates)
        result = self.consolidator.consolidate_partition(partition, known)

        enriched = self.enrichment.enrich(result.pending)
        result = self.consolidator.merge_enrichment(result, enriched)

        if result.phrases:
            self.store.persist_phrases(query_id, result.phrases)
        if result.atomic_units:
            self.store.persist_atomic_units(query_id, result.atomic_units)
        logger.info(
            "Stored %d phrases and %d new kanji",
            len(result.phrases),
            len(result.atomic_units),
            extra={"query_id": query_id},
        )

        return self.store.get_consolidated_view(query_id)


__all__ = ["CardAssembler"]
