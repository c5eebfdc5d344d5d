from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Iterator, List, Optional, Sequence

from cardo.ingestion.errors import QueryNotFoundError
from cardo.ingestion.records import AtomicUnitRecord, ConsolidationResult, PhraseRecord

from .sql import connect_sqlite, ensure_catalogue_tables

logger = logging.getLogger(__name__)

# Stay well under SQLITE_MAX_VARIABLE_NUMBER on older builds.
_IN_CLAUSE_BATCH = 500

_PHRASE_COLUMNS = (
    "lexeme, english_meaning, phonetic_reading, phonetic_romanization, breakdown"
)
_ATOMIC_COLUMNS = "lexeme, english_meaning, phonetic_reading, phonetic_romanization"


@dataclass
class QuerySummary:
    id: int
    domain: str
    count: int
    created_at: str
    phrase_count: int = 0
    atomic_unit_count: int = 0

    def as_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "domain": self.domain,
            "count": self.count,
            "created_at": self.created_at,
            "phrase_count": self.phrase_count,
            "atomic_unit_count": self.atomic_unit_count,
        }


def _batched(items: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def _phrase_from_row(row: sqlite3.Row) -> PhraseRecord:
    return PhraseRecord(
        lexeme=row["lexeme"],
        english_meaning=row["english_meaning"],
        phonetic_reading=row["phonetic_reading"],
        phonetic_romanization=row["phonetic_romanization"],
        breakdown=row["breakdown"],
    )


def _atomic_from_row(row: sqlite3.Row) -> AtomicUnitRecord:
    return AtomicUnitRecord(
        lexeme=row["lexeme"],
        english_meaning=row["english_meaning"],
        phonetic_reading=row["phonetic_reading"],
        phonetic_romanization=row["phonetic_romanization"],
    )


class CatalogueRepository:
    """Read/write access to the phrase and kanji catalogue.

    Writes are append-only: a row whose unique key already exists is skipped,
    never updated. Cross-run consistency rests on those unique indexes.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        ensure_catalogue_tables(conn)

    @classmethod
    def open(cls, path: str | Path) -> "CatalogueRepository":
        return cls(connect_sqlite(path))

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "CatalogueRepository":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -- queries -----------------------------------------------------------

    def create_query(self, domain: str, count: int, prompt: Optional[str] = None) -> int:
        with self._conn:
            cursor = self._conn.execute(
                "INSERT INTO queries (domain, count, prompt) VALUES (?, ?, ?);",
                (domain, count, prompt),
            )
        query_id = int(cursor.lastrowid)
        logger.debug("Created query", extra={"query_id": query_id, "domain": domain})
        return query_id

    def _summaries(self, where: str = "", params: tuple[object, ...] = ()) -> List[QuerySummary]:
        rows = self._conn.execute(
            f"""
            SELECT q.id, q.domain, q.count, q.created_at,
                   (SELECT COUNT(*) FROM phrases p WHERE p.query_id = q.id) AS phrase_count,
                   (SELECT COUNT(*) FROM atomic_units a WHERE a.query_id = q.id) AS atomic_unit_count
              FROM queries q
              {where}
             ORDER BY q.created_at DESC, q.id DESC;
            """,
            params,
        ).fetchall()
        return [
            QuerySummary(
                id=int(row["id"]),
                domain=row["domain"],
                count=int(row["count"]),
                created_at=row["created_at"],
                phrase_count=int(row["phrase_count"]),
                atomic_unit_count=int(row["atomic_unit_count"]),
            )
            for row in rows
        ]

    def get_query(self, query_id: int) -> QuerySummary:
        summaries = self._summaries("WHERE q.id = ?", (query_id,))
        if not summaries:
            raise QueryNotFoundError(query_id)
        return summaries[0]

    def list_queries(self) -> List[QuerySummary]:
        return self._summaries()

    def delete_query(self, query_id: int, *, with_cards: bool = True) -> QuerySummary:
        """Delete a query; its cards go with it unless ``with_cards`` is False.

        Orphaned cards keep their data and lose their query association.
        """
        summary = self.get_query(query_id)
        with self._conn:
            if not with_cards:
                self._conn.execute(
                    "UPDATE phrases SET query_id = NULL WHERE query_id = ?;", (query_id,)
                )
                self._conn.execute(
                    "UPDATE atomic_units SET query_id = NULL WHERE query_id = ?;", (query_id,)
                )
            self._conn.execute("DELETE FROM queries WHERE id = ?;", (query_id,))
        logger.info(
            "Deleted query %d (%s cards)",
            query_id,
            "with" if with_cards else "orphaning",
            extra={
                "phrases": summary.phrase_count,
                "atomic_units": summary.atomic_unit_count,
            },
        )
        return summary

    # -- cards -------------------------------------------------------------

    def get_existing_atomic_units(self, candidates: Sequence[str]) -> List[str]:
        """Return the subset of ``candidates`` already in the catalogue."""
        unique = list(dict.fromkeys(candidates))
        existing: set[str] = set()
        for batch in _batched(unique, _IN_CLAUSE_BATCH):
            placeholders = ", ".join("?" for _ in batch)
            rows = self._conn.execute(
                f"SELECT lexeme FROM atomic_units WHERE lexeme IN ({placeholders});",
                tuple(batch),
            ).fetchall()
            existing.update(row["lexeme"] for row in rows)
        return [lexeme for lexeme in unique if lexeme in existing]

    def persist_phrases(self, query_id: int, phrases: Sequence[PhraseRecord]) -> int:
        rows = [
            (p.lexeme, p.english_meaning, p.phonetic_reading, p.phonetic_romanization, p.breakdown, query_id)
            for p in phrases
        ]
        return self._insert(
            f"INSERT INTO phrases ({_PHRASE_COLUMNS}, query_id) VALUES (?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(lexeme, query_id) DO NOTHING;",
            rows,
            table="phrases",
        )

    def persist_atomic_units(
        self, query_id: int, units: Sequence[AtomicUnitRecord]
    ) -> int:
        rows = [
            (u.lexeme, u.english_meaning, u.phonetic_reading, u.phonetic_romanization, query_id)
            for u in units
        ]
        return self._insert(
            f"INSERT INTO atomic_units ({_ATOMIC_COLUMNS}, query_id) VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT(lexeme) DO NOTHING;",
            rows,
            table="atomic_units",
        )

    def _insert(self, sql: str, rows: list[tuple[object, ...]], *, table: str) -> int:
        if not rows:
            return 0
        before = self._conn.total_changes
        with self._conn:
            self._conn.executemany(sql, rows)
        inserted = self._conn.total_changes - before
        skipped = len(rows) - inserted
        if skipped:
            logger.info("Skipped %d duplicate rows in %s", skipped, table)
        return inserted

    def get_consolidated_view(self, query_id: int) -> ConsolidationResult:
        """Cards stored for ``query_id`` in insertion order."""
        self.get_query(query_id)
        phrases = self._conn.execute(
            f"SELECT {_PHRASE_COLUMNS} FROM phrases WHERE query_id = ? ORDER BY id ASC;",
            (query_id,),
        ).fetchall()
        units = self._conn.execute(
            f"SELECT {_ATOMIC_COLUMNS} FROM atomic_units WHERE query_id = ? ORDER BY id ASC;",
            (query_id,),
        ).fetchall()
        return ConsolidationResult(
            phrases=[_phrase_from_row(row) for row in phrases],
            atomic_units=[_atomic_from_row(row) for row in units],
        )

    def get_all_cards(self) -> ConsolidationResult:
        """Every card across queries, one per lexeme, earliest row kept."""
        phrases = self._conn.execute(
            f"""
            SELECT {_PHRASE_COLUMNS} FROM phrases
             WHERE id IN (SELECT MIN(id) FROM phrases GROUP BY lexeme)
             ORDER BY id ASC;
            """
        ).fetchall()
        units = self._conn.execute(
            f"SELECT {_ATOMIC_COLUMNS} FROM atomic_units ORDER BY id ASC;"
        ).fetchall()
        return ConsolidationResult(
            phrases=[_phrase_from_row(row) for row in phrases],
            atomic_units=[_atomic_from_row(row) for row in units],
        )

    def known_phrase_lexemes(self) -> List[str]:
        rows = self._conn.execute(
            "SELECT lexeme FROM phrases GROUP BY lexeme ORDER BY MIN(id) ASC;"
        ).fetchall()
        return [row["lexeme"] for row in rows]


__all__ = ["CatalogueRepository", "QuerySummary"]
