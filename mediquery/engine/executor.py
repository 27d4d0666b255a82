# MediQuery - Query Executor
# ===========================
"""
Query Executor
==============
Runs a validated SELECT against the live store and substitutes fixed mock
rows when the store cannot answer.

Data sources are tried in order:
1. LiveDataSource - the statement runner, with email-predicate relaxation
2. MockDataSource - fixture rows for the table named after FROM

Substitution happens on a missing relation, an unavailable store, or an
empty live result. An empty result from a table the live schema lists is a
real answer and is never replaced. Any other store error is raised as
DatabaseError and left to the caller.
"""

import re
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Union, List, Iterable

from .models import ResultSet, Attempt, DataSourceKind, GeneratedQuery
from .errors import (
    ExecutionError, DatabaseError, MissingRelationError, StoreUnavailableError
)
from .data_store import StatementRunner
from .fixtures import get_mock_rows
from .sql_validator import SQLValidator

logger = logging.getLogger(__name__)


# [alias.]email = 'literal'
EMAIL_PREDICATE = re.compile(
    r"((?:[A-Za-z_][A-Za-z0-9_]*\.)?email)\s*=\s*'((?:[^']|'')*)'",
    re.IGNORECASE
)
FROM_TABLE = re.compile(r'from\s+(\w+)')
COUNT_CALL = re.compile(r'\bcount\s*\(')


def infer_table(sql: str) -> Optional[str]:
    """First identifier after FROM in the lowercased statement."""
    match = FROM_TABLE.search((sql or "").lower())
    return match.group(1) if match else None


def is_count_statement(sql: str) -> bool:
    return COUNT_CALL.search((sql or "").lower()) is not None


def normalize_count_rows(rows: ResultSet) -> ResultSet:
    """
    Rename an unaliased aggregate column (e.g. `count_star()`) to `count`.

    Live and mock count answers then share one shape.
    """
    if len(rows) != 1 or len(rows[0]) != 1:
        return rows
    key, value = next(iter(rows[0].items()))
    lowered = str(key).lower()
    if lowered.startswith("count") and "(" in lowered:
        return [{'count': value}]
    return rows


def email_literal(sql: str) -> Optional[str]:
    """Unescaped literal of an `email = '...'` predicate, if any."""
    match = EMAIL_PREDICATE.search(sql or "")
    return match.group(2).replace("''", "'") if match else None


def relaxed_email_statements(sql: str) -> List[str]:
    """
    Progressively looser variants of an email lookup.

    Returns:
        [exact, case-insensitive, contains]; just [sql] when there is no
        email predicate
    """
    match = EMAIL_PREDICATE.search(sql)
    if not match:
        return [sql]

    column, literal = match.group(1), match.group(2)
    head, tail = sql[:match.start()], sql[match.end():]
    return [
        sql,
        f"{head}LOWER({column}) = LOWER('{literal}'){tail}",
        f"{head}{column} ILIKE '%{literal}%'{tail}",
    ]


@dataclass(frozen=True)
class ExecutionOutcome:
    """Rows plus where they came from."""
    rows: ResultSet
    data_source: DataSourceKind
    reason: Optional[str] = None

    @property
    def is_mock(self) -> bool:
        return self.data_source == DataSourceKind.MOCK


# =============================================================================
# DATA SOURCES
# =============================================================================

class DataSource(ABC):
    """Somewhere rows for a statement can come from."""

    kind: DataSourceKind

    @abstractmethod
    def fetch(self, sql: str) -> Attempt[ResultSet]:
        """Rows for the statement, or a failed Attempt. Never raises."""
        pass


class LiveDataSource(DataSource):
    """The live store, with email-predicate relaxation."""

    kind = DataSourceKind.LIVE

    def __init__(self, runner: Optional[StatementRunner]):
        self.runner = runner

    def fetch(self, sql: str) -> Attempt[ResultSet]:
        if self.runner is None:
            return Attempt.failure(StoreUnavailableError(sql=sql), self.kind.value)

        variants = relaxed_email_statements(sql)
        rows: ResultSet = []
        for step, statement in enumerate(variants):
            if step:
                logger.info(f"Email lookup returned no rows, retrying with looser match: {statement}")
            try:
                rows = self.runner.run(statement)
            except ExecutionError as e:
                return Attempt.failure(e, self.kind.value)
            except Exception as e:
                return Attempt.failure(DatabaseError(str(e), statement), self.kind.value)
            if rows:
                break
        if rows and is_count_statement(sql):
            rows = normalize_count_rows(rows)
        return Attempt.success(rows, self.kind.value)


class MockDataSource(DataSource):
    """Fixture rows for the table a statement reads from."""

    kind = DataSourceKind.MOCK

    def fetch(self, sql: str) -> Attempt[ResultSet]:
        table = infer_table(sql)
        rows = get_mock_rows(table) if table else None
        if rows is None:
            return Attempt.failure(
                ExecutionError(f"No mock data for table '{table}'", sql), self.kind.value
            )

        literal = email_literal(sql)
        if literal is not None:
            needle = literal.lower()
            rows = [r for r in rows if needle in str(r.get('email') or '').lower()]

        if is_count_statement(sql):
            rows = [{'count': len(rows)}]

        return Attempt.success(rows, self.kind.value)


# =============================================================================
# EXECUTOR
# =============================================================================

class QueryExecutor:
    """
    Executes SELECT statements with mock-data substitution.

    Example:
        executor = QueryExecutor(runner)
        rows = executor.execute("SELECT * FROM hospitals")
    """

    def __init__(self,
                 runner: Optional[StatementRunner] = None,
                 validator: Optional[SQLValidator] = None):
        """
        Initialize executor.

        Args:
            runner: Live statement runner (None = mock data only)
            validator: Read-only validator
        """
        self.validator = validator or SQLValidator()
        self.live = LiveDataSource(runner)
        self.mock = MockDataSource()

    def execute(self,
                query: Union[str, GeneratedQuery],
                live_tables: Optional[Iterable[str]] = None) -> ResultSet:
        """
        Rows for a statement.

        Args:
            query: Statement or generated query
            live_tables: Tables known to exist in the live store; an empty
                result from one of them is returned as is

        Raises:
            ValidationError: The statement is not a single SELECT
            DatabaseError: Store error that is not a missing relation
            ExecutionError: No live answer and no mock rows for the table
        """
        return self.execute_with_source(query, live_tables).rows

    def execute_with_source(self,
                            query: Union[str, GeneratedQuery],
                            live_tables: Optional[Iterable[str]] = None) -> ExecutionOutcome:
        """Same as execute(), also reporting whether rows are live or mock."""
        sql = query.sql if isinstance(query, GeneratedQuery) else query
        sql = self.validator.ensure_read_only(sql)

        attempt = self.live.fetch(sql)

        if attempt.ok and attempt.value:
            logger.info(f"Live query returned {len(attempt.value)} rows")
            return ExecutionOutcome(attempt.value, DataSourceKind.LIVE)

        if attempt.ok and live_tables is not None:
            table = infer_table(sql)
            if table in {t.lower() for t in live_tables}:
                logger.info(f"Live query on '{table}' returned no rows")
                return ExecutionOutcome([], DataSourceKind.LIVE)

        if attempt.ok:
            reason = "empty result"
        elif isinstance(attempt.error, MissingRelationError):
            reason = "missing relation"
        elif isinstance(attempt.error, StoreUnavailableError):
            reason = "store unavailable"
        else:
            error = attempt.error
            if not isinstance(error, DatabaseError):
                error = DatabaseError(str(error), sql)
            logger.error(f"Query execution failed: {error}")
            raise error

        substitute = self.mock.fetch(sql)
        if substitute.ok:
            logger.warning(
                f"Using mock data for table '{infer_table(sql)}' ({reason}); "
                f"{len(substitute.value)} rows"
            )
            return ExecutionOutcome(substitute.value, DataSourceKind.MOCK, reason)

        if attempt.ok:
            # Genuinely empty and nothing to substitute
            return ExecutionOutcome([], DataSourceKind.LIVE)

        logger.error(f"No live result and no mock data ({reason}): {attempt.error}")
        raise attempt.error
