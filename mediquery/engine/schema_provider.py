# MediQuery - Schema Provider
# ============================
"""
Schema Provider
===============
Resolves the current database structure.

Live introspection first (base tables of the working namespace, then
columns, types and comments per table, plus a few sample rows). If the
store is not configured, errors, or has no tables, the fixed fallback
schema is served instead. `get_schema()` never raises.

Results are cached for a short fixed interval; a TTL of 0 disables the
cache.
"""

import time
import logging
from dataclasses import dataclass
from threading import Lock
from typing import Optional

from .models import Schema, Table, Column
from .data_store import StatementRunner
from .fixtures import get_fallback_schema

logger = logging.getLogger(__name__)


SCHEMA_SOURCE_LIVE = "live"
SCHEMA_SOURCE_FALLBACK = "fallback"


@dataclass(frozen=True)
class SchemaResolution:
    """A resolved schema and where it came from."""
    schema: Schema
    source: str
    reason: Optional[str] = None

    @property
    def is_live(self) -> bool:
        return self.source == SCHEMA_SOURCE_LIVE


@dataclass
class _CacheEntry:
    resolution: SchemaResolution
    created_at: float
    ttl_seconds: int

    def is_expired(self) -> bool:
        return time.time() - self.created_at > self.ttl_seconds


class SchemaProvider:
    """
    Resolves the schema from the live store with a static fallback.

    Example:
        provider = SchemaProvider(runner, cache_ttl=60)
        schema = provider.get_schema()
    """

    def __init__(self,
                 runner: Optional[StatementRunner] = None,
                 cache_ttl: int = 60,
                 include_samples: bool = True,
                 sample_limit: int = 3):
        """
        Initialize schema provider.

        Args:
            runner: Statement runner for the live store (None = fallback only)
            cache_ttl: Seconds a resolved schema is reused (0 disables)
            include_samples: Fetch sample rows for prompt grounding
            sample_limit: Number of sample rows per table
        """
        self.runner = runner
        self.cache_ttl = cache_ttl
        self.include_samples = include_samples
        self.sample_limit = sample_limit
        self._cache: Optional[_CacheEntry] = None
        self._lock = Lock()

    def get_schema(self) -> Schema:
        """Current schema; never raises."""
        return self.resolve().schema

    def resolve(self) -> SchemaResolution:
        """Current schema together with its source and any degradation reason."""
        with self._lock:
            if self._cache is not None and not self._cache.is_expired():
                return self._cache.resolution

        resolution = self._resolve_uncached()

        if self.cache_ttl > 0:
            with self._lock:
                self._cache = _CacheEntry(resolution, time.time(), self.cache_ttl)
        return resolution

    def invalidate(self) -> None:
        """Drop the cached schema."""
        with self._lock:
            self._cache = None

    def _resolve_uncached(self) -> SchemaResolution:
        if self.runner is None:
            return self._fallback("Live database is not configured")

        try:
            self.runner.provision_helpers()
        except Exception as e:
            logger.warning(f"Helper provisioning failed: {e}")

        try:
            table_rows = self.runner.list_tables()
        except Exception as e:
            logger.error(f"Error fetching schema: {e}")
            return self._fallback(f"Schema introspection failed: {e}")

        if not table_rows:
            logger.info("No tables found in database, using fallback schema")
            return self._fallback("No tables found in the live database")

        try:
            tables = [self._introspect_table(row) for row in table_rows]
            schema = Schema(tables=tables)
        except Exception as e:
            logger.error(f"Error introspecting columns: {e}")
            return self._fallback(f"Schema introspection failed: {e}")

        logger.info(f"Processed schema for {len(schema.tables)} tables: {', '.join(schema.table_names)}")
        return SchemaResolution(schema=schema, source=SCHEMA_SOURCE_LIVE)

    def _introspect_table(self, row) -> Table:
        name = row['name']
        columns = [
            Column(
                name=col['name'],
                type=str(col.get('type') or 'unknown').lower(),
                description=col.get('description') or None
            )
            for col in self.runner.list_columns(name)
        ]

        sample_data = None
        if self.include_samples and self.sample_limit > 0:
            try:
                sample_data = self.runner.sample_rows(name, self.sample_limit) or None
            except Exception as e:
                logger.debug(f"No sample rows for {name}: {e}")

        return Table(
            name=name,
            columns=columns,
            description=row.get('description') or None,
            sample_data=sample_data
        )

    def _fallback(self, reason: str) -> SchemaResolution:
        logger.warning(f"Using fallback schema: {reason}")
        return SchemaResolution(
            schema=get_fallback_schema(),
            source=SCHEMA_SOURCE_FALLBACK,
            reason=reason
        )
