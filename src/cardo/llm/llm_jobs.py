"""Request journal for LLM calls, keyed by a hash of everything that shapes the reply.

Kanji lookups reuse a finished ``ok`` row for an identical prompt; phrase
requests are journalled but never served from it.
"""
from __future__ import annotations

import datetime
import hashlib
import json
import sqlite3


def _sha256(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def make_prompt_hash(*, system_prompt: str, user_prompt: str, role: str, model: str, temperature: float, base_url: str | None) -> str:
    # Normalize to keep hashes stable
    blob = json.dumps({
        "system": system_prompt,
        "user": user_prompt,
        "role": role,
        "model": model,
        "temperature": round(float(temperature), 3),
        "base_url": base_url or "",
    }, sort_keys=True, ensure_ascii=False)
    return _sha256(blob)


def llm_job_try_cache(conn: sqlite3.Connection, prompt_hash: str) -> str | None:
    row = conn.execute(
        """
        SELECT response_text, status
          FROM llm_job
         WHERE prompt_hash = ?
         LIMIT 1
        """,
        (prompt_hash,)
    ).fetchone()
    if not row:
        return None
    response_text = row[0] or ""
    status = (row[1] or "").lower()

    # Only reuse successful, non-empty responses
    if status in ("ok", "cached") and response_text.strip():
        return response_text
    return None


def llm_job_start(conn: sqlite3.Connection, *, run_id: str | None, prompt_hash: str, role: str,
                  model: str, base_url: str | None, temperature: float,
                  system_prompt: str, user_prompt: str, request_json: dict) -> int:
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO llm_job (run_id, prompt_hash, role, model, base_url, temperature,
                             system_prompt, user_prompt, request_json, status)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 'queued')
        ON CONFLICT(prompt_hash) DO UPDATE SET status = 'queued', error = NULL, finished_at = NULL
        """,
        (run_id, prompt_hash, role, model, base_url, float(temperature),
         system_prompt, user_prompt, json.dumps(request_json, ensure_ascii=False))
    )
    # Retrieve job_id (row may pre-exist)
    row = cur.execute("SELECT job_id FROM llm_job WHERE prompt_hash = ?", (prompt_hash,)).fetchone()
    conn.commit()
    return int(row[0])


def llm_job_finish(conn: sqlite3.Connection, job_id: int, *, response_text: str | None,
                   status: str = "ok", error: str | None = None) -> None:
    conn.execute(
        """
        UPDATE llm_job
           SET response_text = COALESCE(?, response_text),
               status = ?, error = ?, finished_at = ?
         WHERE job_id = ?
        """,
        (response_text, status, error,
         datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="seconds"), job_id)
    )
    conn.commit()
