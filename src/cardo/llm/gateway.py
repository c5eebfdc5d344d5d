from __future__ import annotations

import logging
import sqlite3
import sys
from contextlib import nullcontext
from typing import Any, ContextManager, List, Optional, Sequence

import httpx
import openai
from openai import OpenAI
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from yaspin import yaspin

from cardo.common.config import LlmSettings, load_llm_settings
from cardo.ingestion.decoder import ResponseDecoder
from cardo.ingestion.errors import (
    ConfigurationError,
    EnrichmentError,
    GenerationError,
    ParseError,
    ValidationError,
)
from cardo.ingestion.parser import ResponseParser
from cardo.ingestion.records import RawRecord

from .llm_jobs import llm_job_finish, llm_job_start, llm_job_try_cache, make_prompt_hash
from .prompts import SYSTEM_PROMPT, build_kanji_prompt, build_phrases_prompt

# Silence those INFO logs
logging.getLogger("openai").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
)
TRANSPORT_ERRORS = (openai.OpenAIError, httpx.HTTPError)


def _log_retry_state(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "LLM request failed (%d/%d attempts): %s",
        retry_state.attempt_number,
        MAX_ATTEMPTS,
        exc,
    )


class LlmGateway:
    """OpenAI-compatible chat client for phrase generation and kanji lookup.

    The underlying client is built on first use and reused for the lifetime
    of the gateway. When a sqlite connection is attached every request is
    journalled in ``llm_job``; kanji lookups with an identical prompt are
    served from that journal.
    """

    def __init__(
        self,
        settings: Optional[LlmSettings] = None,
        *,
        client: Any = None,
        show_spinner: Optional[bool] = None,
        decoder: Optional[ResponseDecoder] = None,
        parser: Optional[ResponseParser] = None,
    ) -> None:
        self.settings = settings or load_llm_settings()
        self._client = client
        self._show_spinner = sys.stdout.isatty() if show_spinner is None else show_spinner
        self._decoder = decoder or ResponseDecoder()
        self._parser = parser or ResponseParser()
        self._db: sqlite3.Connection | None = None
        self._run_id: str | None = None
        self._last_job_id: int | None = None

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.settings.api_key:
                raise ConfigurationError(
                    "No LLM API key configured; set LLM_API_KEY or OPENAI_API_KEY."
                )
            self._client = OpenAI(
                base_url=self.settings.base_url,
                api_key=self.settings.api_key,
                timeout=httpx.Timeout(self.settings.timeout, connect=5.0),
                max_retries=0,
            )
            logger.debug(
                "Created LLM client",
                extra={"model": self.settings.model, "base_url": self.settings.base_url},
            )
        return self._client

    def attach_logging(self, db: sqlite3.Connection | None, run_id: str | None = None) -> None:
        """Attach an optional request journal; ``None`` disables it."""

        self._db = db
        self._run_id = run_id

    def _spinner(self, text: str) -> ContextManager[Any]:
        if not self._show_spinner:
            return nullcontext()
        return yaspin(text=text, ellipsis="...")

    @retry(
        reraise=True,
        stop=stop_after_attempt(MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=2, max=20),
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        before_sleep=_log_retry_state,
    )
    def _request(self, prompt: str, *, max_tokens: int) -> str:
        completion = self.client.chat.completions.create(
            model=self.settings.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=self.settings.temperature,
            max_tokens=max_tokens,
            stream=False,
        )
        return (completion.choices[0].message.content or "").strip()

    def _complete(self, prompt: str, *, role: str, max_tokens: int, use_cache: bool = False) -> str:
        self._last_job_id = None
        job_id: int | None = None
        if self._db is not None:
            phash = make_prompt_hash(
                system_prompt=SYSTEM_PROMPT,
                user_prompt=prompt,
                role=role,
                model=self.settings.model,
                temperature=self.settings.temperature,
                base_url=self.settings.base_url,
            )
            if use_cache:
                cached = self._journal_call(llm_job_try_cache, phash)
                if cached:
                    logger.debug("LLM cache hit", extra={"role": role})
                    return cached
            job_id = self._journal_call(
                llm_job_start,
                run_id=self._run_id,
                prompt_hash=phash,
                role=role,
                model=self.settings.model,
                base_url=self.settings.base_url,
                temperature=self.settings.temperature,
                system_prompt=SYSTEM_PROMPT,
                user_prompt=prompt,
                request_json={"model": self.settings.model, "max_tokens": max_tokens},
            )
            self._last_job_id = job_id

        try:
            with self._spinner(f"Waiting for the LLM ({role})"):
                response_text = self._request(prompt, max_tokens=max_tokens)
        except Exception as exc:
            if job_id is not None:
                self._journal_call(
                    llm_job_finish, job_id, response_text=None, status="error", error=str(exc)
                )
            raise

        if job_id is not None:
            self._journal_call(llm_job_finish, job_id, response_text=response_text, status="ok")
        logger.debug("LLM response received", extra={"role": role, "chars": len(response_text)})
        return response_text

    def _journal_call(self, fn: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return fn(self._db, *args, **kwargs)
        except sqlite3.Error as exc:
            # don't let journal failures break the call
            logger.warning("LLM journal write failed: %s", exc)
            return None

    def generate_phrases(self, domain: str, count: int, exclude: Sequence[str] = ()) -> str:
        """Ask for ``count`` phrases in ``domain`` and return the raw response."""

        prompt = build_phrases_prompt(domain, count, exclude)
        logger.info("Querying LLM for %d phrases", count, extra={"domain": domain})
        logger.debug("Prompt details:\n%s", prompt)
        try:
            return self._complete(
                prompt, role="phrases", max_tokens=self.settings.phrase_max_tokens
            )
        except TRANSPORT_ERRORS as exc:
            raise GenerationError(f"LLM phrase generation failed: {exc}") from exc

    def generate_atomic_meanings(self, lexemes: Sequence[str]) -> List[RawRecord]:
        """Describe each kanji in ``lexemes`` with a single request."""

        if not lexemes:
            return []

        prompt = build_kanji_prompt(lexemes)
        logger.debug("Prompt details:\n%s", prompt)
        try:
            text = self._complete(
                prompt,
                role="kanji",
                max_tokens=self.settings.kanji_max_tokens,
                use_cache=True,
            )
        except (*TRANSPORT_ERRORS, ConfigurationError) as exc:
            raise EnrichmentError(f"LLM kanji generation failed: {exc}") from exc

        try:
            records = self._parser.parse(self._decoder.decode(text))
        except (ParseError, ValidationError) as exc:
            if self._last_job_id is not None:
                self._journal_call(
                    llm_job_finish, self._last_job_id, response_text=None,
                    status="rejected", error=str(exc),
                )
            raise EnrichmentError(f"LLM kanji generation failed: {exc}") from exc

        logger.info("Parsed %d kanji meanings from LLM response", len(records))
        return records


__all__ = ["LlmGateway"]
