"""Shared infrastructure for the cardo toolchain."""

from __future__ import annotations

from .config import LlmSettings, get_config_paths, load_environment, load_llm_settings
from .types import AtomicMeaningSource, CardSource, CatalogueStore, PhraseSource

__all__ = [
    "AtomicMeaningSource",
    "CardSource",
    "CatalogueStore",
    "LlmSettings",
    "PhraseSource",
    "get_config_paths",
    "load_environment",
    "load_llm_settings",
]
