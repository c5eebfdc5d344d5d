from __future__ import annotations

import logging
import uuid
from pathlib import Path
from types import TracebackType
from typing import List, Optional, Tuple

from cardo.common.config import get_config_paths, load_llm_settings
from cardo.common.types import CardSource
from cardo.ingestion.assembler import CardAssembler
from cardo.ingestion.errors import CardoError
from cardo.ingestion.records import ConsolidationResult
from cardo.llm.gateway import LlmGateway
from cardo.llm.prompts import build_phrases_prompt
from cardo.storage.repository import CatalogueRepository, QuerySummary

logger = logging.getLogger(__name__)


class CardService:
    """Coordinate the LLM gateway, the assembler and the catalogue."""

    def __init__(
        self,
        *,
        repository: CatalogueRepository,
        gateway: CardSource,
        assembler: Optional[CardAssembler] = None,
    ) -> None:
        self.repository = repository
        self.gateway = gateway
        self.assembler = assembler or CardAssembler(store=repository, gateway=gateway)

    @classmethod
    def from_config(cls, *, db_path: Optional[str | Path] = None) -> "CardService":
        path = Path(db_path) if db_path else get_config_paths()["database"]
        repository = CatalogueRepository.open(path)
        gateway = LlmGateway(load_llm_settings())
        gateway.attach_logging(repository.connection, run_id=uuid.uuid4().hex)
        logger.debug("Opened catalogue", extra={"db": str(path)})
        return cls(repository=repository, gateway=gateway)

    def close(self) -> None:
        self.repository.close()

    def __enter__(self) -> "CardService":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def generate_cards(
        self, domain: str, count: int, *, exclude_known: bool = False
    ) -> Tuple[int, ConsolidationResult]:
        """Generate, consolidate and store ``count`` phrases for ``domain``.

        The query row is only created once the response parsed cleanly, so a
        parse or validation failure leaves the catalogue untouched.
        """
        domain = (domain or "").strip()
        if not domain:
            raise CardoError("Domain must be a non-empty string.")
        if count <= 0:
            raise CardoError("Count must be a positive integer.")

        exclude: List[str] = []
        if exclude_known:
            exclude = self.repository.known_phrase_lexemes()
            logger.info("Excluding %d known phrases", len(exclude))

        raw_text = self.gateway.generate_phrases(domain, count, exclude)
        records = self.assembler.parse_response(raw_text)

        query_id = self.repository.create_query(
            domain, count, prompt=build_phrases_prompt(domain, count, exclude)
        )
        result = self.assembler.assemble(query_id, records)
        return query_id, result

    def recall(self, query_id: int) -> ConsolidationResult:
        return self.repository.get_consolidated_view(query_id)

    def recall_all(self) -> ConsolidationResult:
        return self.repository.get_all_cards()

    def list_queries(self) -> List[QuerySummary]:
        return self.repository.list_queries()

    def get_query(self, query_id: int) -> QuerySummary:
        return self.repository.get_query(query_id)

    def delete_query(self, query_id: int, *, with_cards: bool = True) -> QuerySummary:
        return self.repository.delete_query(query_id, with_cards=with_cards)


__all__ = ["CardService"]
