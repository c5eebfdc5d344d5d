from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

DATABASE_FILENAME = "cardo.db"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TEMPERATURE = 0.3
DEFAULT_TIMEOUT_SECONDS = 120.0
PHRASE_GENERATION_MAX_TOKENS = 2000
KANJI_LOOKUP_MAX_TOKENS = 1500


def get_config_paths() -> dict[str, Path]:
    """Return canonical on-disk locations for the catalogue."""

    data_dir = Path(
        os.getenv("CARDO_DATA_DIR") or Path.home() / ".local" / "share" / "cardo"
    ).expanduser()
    database = Path(os.getenv("CARDO_DB_PATH") or data_dir / DATABASE_FILENAME).expanduser()
    return {
        "data_dir": data_dir,
        "database": database,
    }


def load_environment(env_file: Optional[str | Path] = None) -> Optional[str]:
    """Load a dotenv file into ``os.environ`` and return its path.

    An explicit ``env_file`` must exist. Without one the nearest ``.env``
    (searched upwards from the working directory) is used when present.
    Values already in the environment win over the file.
    """
    if env_file is not None:
        path = Path(env_file)
        if not path.is_file():
            raise FileNotFoundError(f"Environment file '{path}' does not exist")
        load_dotenv(path, override=False)
        return str(path)

    found = find_dotenv(".env", usecwd=True)
    if found:
        load_dotenv(found, override=False)
        logger.debug("Loaded environment file", extra={"path": found})
    return found or None


@dataclass(frozen=True)
class LlmSettings:
    api_key: Optional[str]
    model: str = DEFAULT_MODEL
    base_url: Optional[str] = None
    temperature: float = DEFAULT_TEMPERATURE
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    phrase_max_tokens: int = PHRASE_GENERATION_MAX_TOKENS
    kanji_max_tokens: int = KANJI_LOOKUP_MAX_TOKENS


def _normalize_base_url(raw: Optional[str]) -> Optional[str]:
    if not raw or not raw.strip():
        return None
    base_url = raw.strip().rstrip("/")
    if not base_url.endswith("/v1"):
        base_url = f"{base_url}/v1"
    return base_url


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return default


def load_llm_settings() -> LlmSettings:
    """Build :class:`LlmSettings` from the process environment."""

    return LlmSettings(
        api_key=os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY") or None,
        model=os.getenv("LLM_MODEL") or DEFAULT_MODEL,
        base_url=_normalize_base_url(os.getenv("LLM_API_BASE")),
        temperature=_env_float("LLM_TEMPERATURE", DEFAULT_TEMPERATURE),
        timeout=_env_float("LLM_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
    )


def resolve_log_level(verbose: bool = False) -> int:
    if verbose:
        return logging.DEBUG
    name = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


__all__ = [
    "DATABASE_FILENAME",
    "LlmSettings",
    "get_config_paths",
    "load_environment",
    "load_llm_settings",
    "resolve_log_level",
]
