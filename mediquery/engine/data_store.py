# MediQuery - Data Store
# =======================
"""
Data Store
==========
Ad-hoc statement runner over DuckDB.

The same runner serves introspection (tables, columns, comments, sample
rows) and the execution of generated SELECT statements. It holds one
connection per process, opened read-only for file databases, and
interrupts any statement that exceeds the configured timeout.
"""

import re
import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any

from .models import ResultSet
from .errors import ExecutionError, DatabaseError, MissingRelationError, StoreUnavailableError
from .sql_validator import quote_identifier

logger = logging.getLogger(__name__)


MISSING_RELATION_PATTERNS = [
    re.compile(r'(?:Table|View|relation)\s+with\s+name\s+"?([\w.]+)"?\s+does\s+not\s+exist', re.IGNORECASE),
    re.compile(r'relation\s+"?([\w.]+)"?\s+does\s+not\s+exist', re.IGNORECASE),
]


def is_missing_relation_message(message: str) -> bool:
    """True when a store error message reports an unknown table/relation."""
    lowered = (message or "").lower()
    return "does not exist" in lowered and ("relation" in lowered or "table" in lowered)


def missing_relation_name(message: str) -> Optional[str]:
    """Pull the relation name out of a missing-relation message, if present."""
    for pattern in MISSING_RELATION_PATTERNS:
        match = pattern.search(message or "")
        if match:
            return match.group(1)
    return None


class StatementRunner(ABC):
    """Schema source and ad-hoc statement runner."""

    @abstractmethod
    def run(self, sql: str) -> ResultSet:
        """
        Run one statement and return its rows.

        Raises:
            MissingRelationError: The statement references an unknown relation
            DatabaseError: Any other store failure
            StoreUnavailableError: The store cannot be reached
        """
        pass

    @abstractmethod
    def list_tables(self) -> List[Dict[str, Any]]:
        """Base tables of the working namespace: [{name, description?}]."""
        pass

    @abstractmethod
    def list_columns(self, table: str) -> List[Dict[str, Any]]:
        """Columns of one table in ordinal order: [{name, type, description?}]."""
        pass

    def sample_rows(self, table: str, limit: int = 3) -> ResultSet:
        """A few rows used to ground prompts."""
        return self.run(f"SELECT * FROM {quote_identifier(table)} LIMIT {int(limit)}")

    def provision_helpers(self) -> bool:
        """Create any server-side helpers introspection relies on."""
        return True

    def ping(self) -> bool:
        try:
            self.run("SELECT 1 AS ok")
            return True
        except Exception as e:
            logger.warning(f"Store ping failed: {e}")
            return False


class DuckDBStatementRunner(StatementRunner):
    """
    Statement runner backed by a DuckDB database.

    Example:
        runner = DuckDBStatementRunner("hospital.duckdb")
        rows = runner.run("SELECT * FROM doctors")
    """

    HELPER_MACROS = [
        """
        CREATE OR REPLACE TEMP MACRO mq_table_comment(schema_name_, table_name_) AS (
            SELECT comment FROM duckdb_tables()
            WHERE schema_name = schema_name_ AND table_name = table_name_
            LIMIT 1
        )
        """,
        """
        CREATE OR REPLACE TEMP MACRO mq_column_comment(schema_name_, table_name_, column_name_) AS (
            SELECT comment FROM duckdb_columns()
            WHERE schema_name = schema_name_ AND table_name = table_name_
              AND column_name = column_name_
            LIMIT 1
        )
        """,
    ]

    def __init__(self,
                 db_path: Optional[str] = None,
                 connection=None,
                 schema: str = "main",
                 timeout_seconds: int = 5,
                 max_rows: int = 1000):
        """
        Initialize runner.

        Args:
            db_path: Path to DuckDB database (":memory:" for in-memory)
            connection: Optional shared DuckDB connection (tests, embedding apps)
            schema: Working namespace for introspection
            timeout_seconds: Statement timeout
            max_rows: Maximum rows fetched per statement
        """
        if db_path is None and connection is None:
            raise ValueError("DuckDBStatementRunner needs a db_path or a connection")
        self.db_path = db_path
        self.schema = schema
        self.timeout_seconds = timeout_seconds
        self.max_rows = max_rows
        self._connection = connection
        self._lock = threading.RLock()
        self._helpers_ready = False
        self._external_access_locked = False

    def _connect(self):
        """
        Open the process-wide connection on first use.

        External access is turned off so statements cannot read local files
        or URLs through table functions such as read_text or read_csv.
        """
        if self._connection is None:
            import duckdb
            read_only = self.db_path != ":memory:"
            try:
                self._connection = duckdb.connect(
                    self.db_path,
                    read_only=read_only,
                    config={'enable_external_access': False}
                )
                logger.info(f"Connected to DuckDB at {self.db_path} (read_only={read_only})")
            except Exception as e:
                logger.error(f"Could not open DuckDB database {self.db_path}: {e}")
                raise StoreUnavailableError(f"Cannot open database: {e}")
            self._external_access_locked = True
        elif not self._external_access_locked:
            # Shared connections are locked down on first use
            try:
                self._connection.execute("SET enable_external_access = false")
            except Exception as e:
                raise StoreUnavailableError(f"Cannot restrict external access: {e}")
            self._external_access_locked = True
        return self._connection

    def _query(self, sql: str, params: Optional[List[Any]] = None) -> ResultSet:
        import duckdb

        with self._lock:
            conn = self._connect()
            timer = threading.Timer(self.timeout_seconds, conn.interrupt)
            timer.start()
            try:
                result = conn.execute(sql, params) if params else conn.execute(sql)
                if result.description is None:
                    return []
                columns = [desc[0] for desc in result.description]
                rows = result.fetchmany(self.max_rows)
                return [dict(zip(columns, row)) for row in rows]

            except duckdb.InterruptException:
                raise DatabaseError(f"Statement timed out after {self.timeout_seconds} seconds", sql)

            except duckdb.CatalogException as e:
                message = str(e)
                if is_missing_relation_message(message):
                    raise MissingRelationError(message, missing_relation_name(message), sql)
                raise DatabaseError(message, sql)

            except duckdb.Error as e:
                message = str(e)
                if is_missing_relation_message(message):
                    raise MissingRelationError(message, missing_relation_name(message), sql)
                raise DatabaseError(message, sql)

            finally:
                timer.cancel()

    def run(self, sql: str) -> ResultSet:
        return self._query(sql)

    def provision_helpers(self) -> bool:
        """
        Create the comment-lookup macros used by introspection.

        Idempotent. A failure is logged and introspection carries on
        without descriptions.
        """
        if self._helpers_ready:
            return True
        try:
            for statement in self.HELPER_MACROS:
                self._query(statement)
            self._helpers_ready = True
            logger.info("Introspection helper macros provisioned")
        except Exception as e:
            logger.warning(f"Could not provision introspection helpers: {e}")
        return self._helpers_ready

    TABLES_WITH_COMMENTS = """
        SELECT t.table_name AS name,
               mq_table_comment(t.table_schema, t.table_name) AS description
        FROM information_schema.tables t
        WHERE t.table_schema = ? AND t.table_type = 'BASE TABLE'
        ORDER BY t.table_name
    """
    TABLES_PLAIN = """
        SELECT table_name AS name, NULL AS description
        FROM information_schema.tables
        WHERE table_schema = ? AND table_type = 'BASE TABLE'
        ORDER BY table_name
    """
    COLUMNS_WITH_COMMENTS = """
        SELECT c.column_name AS name,
               c.data_type AS type,
               mq_column_comment(c.table_schema, c.table_name, c.column_name) AS description
        FROM information_schema.columns c
        WHERE c.table_schema = ? AND c.table_name = ?
        ORDER BY c.ordinal_position
    """
    COLUMNS_PLAIN = """
        SELECT column_name AS name, data_type AS type, NULL AS description
        FROM information_schema.columns
        WHERE table_schema = ? AND table_name = ?
        ORDER BY ordinal_position
    """

    def _introspect(self, with_comments: str, plain: str, params: List[Any]) -> List[Dict[str, Any]]:
        """Run the comment-aware query when helpers exist, the plain one otherwise."""
        if self._helpers_ready:
            try:
                return self._query(with_comments, params)
            except ExecutionError as e:
                logger.warning(f"Comment lookup failed, introspecting without descriptions: {e}")
        return self._query(plain, params)

    def list_tables(self) -> List[Dict[str, Any]]:
        return self._introspect(self.TABLES_WITH_COMMENTS, self.TABLES_PLAIN, [self.schema])

    def list_columns(self, table: str) -> List[Dict[str, Any]]:
        return self._introspect(self.COLUMNS_WITH_COMMENTS, self.COLUMNS_PLAIN, [self.schema, table])

    def close(self) -> None:
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
                self._helpers_ready = False
                self._external_access_locked = False


def create_statement_runner(db_path: Optional[str],
                            schema: str = "main",
                            timeout_seconds: int = 5,
                            max_rows: int = 1000) -> Optional[StatementRunner]:
    """Build the runner for a configured database, or None when there is none."""
    if not db_path:
        logger.warning("No live database configured; using fallback schema and mock data")
        return None
    return DuckDBStatementRunner(
        db_path=db_path,
        schema=schema,
        timeout_seconds=timeout_seconds,
        max_rows=max_rows
    )
