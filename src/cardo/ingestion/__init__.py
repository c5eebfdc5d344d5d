"""Turn raw model responses into deduplicated phrase and kanji records."""

from .assembler import CardAssembler
from .consolidation import Consolidator, extract_kanji_from_breakdown
from .decoder import ResponseDecoder, decode_response
from .enrichment import EnrichmentCoordinator
from .errors import (
    CardoError,
    ConfigurationError,
    EnrichmentError,
    GenerationError,
    ParseError,
    QueryNotFoundError,
    ValidationError,
)
from .parser import ParseOutcome, ResponseParser
from .records import AtomicUnitRecord, ConsolidationResult, PhraseRecord, RawRecord

__all__ = [
    "AtomicUnitRecord",
    "CardAssembler",
    "CardoError",
    "ConfigurationError",
    "ConsolidationResult",
    "Consolidator",
    "EnrichmentCoordinator",
    "EnrichmentError",
    "GenerationError",
    "ParseError",
    "ParseOutcome",
    "PhraseRecord",
    "QueryNotFoundError",
    "RawRecord",
    "ResponseDecoder",
    "ResponseParser",
    "ValidationError",
    "decode_response",
    "extract_kanji_from_breakdown",
]
