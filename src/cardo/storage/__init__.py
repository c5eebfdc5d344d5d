"""SQLite-backed catalogue of phrases and kanji."""

from .repository import CatalogueRepository, QuerySummary
from .sql import connect_sqlite, ensure_catalogue_tables

__all__ = [
    "CatalogueRepository",
    "QuerySummary",
    "connect_sqlite",
    "ensure_catalogue_tables",
]
