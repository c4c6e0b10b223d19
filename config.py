# config.py
"""
Runtime settings read from the environment (and a local `.env`).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


def _get_str_env(name: str, default: str | None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_int_env(name: str, default: int) -> int:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_bool_env(name: str, default: bool) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """
    Everything the entry points need to build the chatbot's collaborators.
    """

    metas_url: str | None = None
    feed_timeout_seconds: float = 8.0
    feed_cache_ttl_seconds: float = 30.0

    redis_url: str | None = None
    redis_socket_timeout_seconds: float = 2.0

    memory_max_turns: int = 12
    memory_ttl_seconds: int = 60 * 60 * 24 * 30

    rate_limit_window_seconds: int = 60
    rate_limit_max_requests: int = 40

    ollama_url: str = "http://localhost:11434/api/generate"
    ollama_model: str = "mistral:7b-instruct"
    llm_timeout_seconds: float = 30.0
    llm_temperature: float = 0.2

    timezone: str = "America/Bahia"
    debug_endpoints: bool = False
    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_dotenv()

    return Settings(
        metas_url=_get_str_env("METAS_URL", None),
        feed_timeout_seconds=max(1.0, _get_float_env("FEED_TIMEOUT_SECONDS", 8.0)),
        feed_cache_ttl_seconds=max(0.0, _get_float_env("FEED_CACHE_TTL_SECONDS", 30.0)),
        redis_url=_get_str_env("REDIS_URL", None),
        redis_socket_timeout_seconds=max(0.1, _get_float_env("REDIS_SOCKET_TIMEOUT_SECONDS", 2.0)),
        memory_max_turns=max(1, _get_int_env("MEMORY_MAX_TURNS", 12)),
        memory_ttl_seconds=max(60, _get_int_env("MEMORY_TTL_SECONDS", 60 * 60 * 24 * 30)),
        rate_limit_window_seconds=max(1, _get_int_env("RATE_LIMIT_WINDOW_SECONDS", 60)),
        rate_limit_max_requests=max(1, _get_int_env("RATE_LIMIT_MAX_REQUESTS", 40)),
        ollama_url=_get_str_env("OLLAMA_URL", "http://localhost:11434/api/generate"),
        ollama_model=_get_str_env("OLLAMA_MODEL", "mistral:7b-instruct"),
        llm_timeout_seconds=max(1.0, _get_float_env("LLM_TIMEOUT_SECONDS", 30.0)),
        llm_temperature=_get_float_env("LLM_TEMPERATURE", 0.2),
        timezone=_get_str_env("TIMEZONE", "America/Bahia"),
        debug_endpoints=_get_bool_env("DEBUG_ENDPOINTS", False),
        log_level=_get_str_env("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
