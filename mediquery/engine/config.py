# MediQuery - Engine Configuration
# =================================
"""
Process-level configuration, read from environment variables.

A `.env` file in the working directory (or the path passed to
`EngineConfig.from_env`) is loaded first; real environment variables win.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .llm_providers import LLMConfig

logger = logging.getLogger(__name__)


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {name}='{value}', using {default}")
        return default


@dataclass
class EngineConfig:
    """Configuration for the store, schema cache and request limits."""
    # Live store (DuckDB file). None means no live store: fallback schema + mock rows.
    db_path: Optional[str] = None
    db_schema: str = "main"

    # Bounded time per store call
    query_timeout_seconds: int = 5

    # Maximum rows fetched per statement
    max_rows: int = 1000

    # Schema cache TTL in seconds (0 disables caching)
    schema_cache_ttl: int = 60

    # Longest question accepted
    max_question_length: int = 500

    # Language model settings
    llm: LLMConfig = field(default_factory=LLMConfig)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "EngineConfig":
        """Create config from environment variables (and an optional .env file)."""
        env_path = Path(env_file) if env_file else Path.cwd() / ".env"
        if env_path.exists():
            load_dotenv(env_path, override=False)
            logger.debug(f"Loaded environment from {env_path}")

        return cls(
            db_path=os.getenv("MEDIQUERY_DB_PATH") or None,
            db_schema=os.getenv("MEDIQUERY_DB_SCHEMA", "main"),
            query_timeout_seconds=_int_env("MEDIQUERY_QUERY_TIMEOUT_SECONDS", 5),
            max_rows=_int_env("MEDIQUERY_MAX_ROWS", 1000),
            schema_cache_ttl=_int_env("MEDIQUERY_SCHEMA_CACHE_TTL", 60),
            max_question_length=_int_env("MEDIQUERY_MAX_QUESTION_LENGTH", 500),
            llm=LLMConfig.from_env(),
        )

    @property
    def has_live_store(self) -> bool:
        return bool(self.db_path)
