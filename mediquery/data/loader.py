# MediQuery - DuckDB Loader Module
# =================================
# Loads tabular data into the DuckDB database the engine queries
"""
DuckDB database loader with support for:
- Table creation from pandas DataFrames and CSV files
- Table and column comments, which the engine reads as descriptions
- Seeding the demo hospital database from the fallback fixtures
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional
from dataclasses import dataclass, field
from datetime import datetime

import pandas as pd
import duckdb

from ..engine.fixtures import MOCK_ROWS, get_fallback_schema
from ..engine.sql_validator import quote_identifier

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    """Result of a data load operation."""
    success: bool
    table_name: str
    rows_loaded: int
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0


def _comment_literal(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


class DatabaseLoader:
    """
    Loader for hospital data into DuckDB.

    Example:
        with DatabaseLoader('data/hospital.duckdb') as loader:
            loader.load_dataframe(df, 'doctors', description='Medical staff')
            print(loader.list_tables())
    """

    def __init__(self, db_path: str, connection=None):
        """
        Initialize loader.

        Args:
            db_path: Path to DuckDB database file (":memory:" allowed)
            connection: Existing writable connection to reuse
        """
        self.db_path = db_path
        self._owns_connection = connection is None

        if connection is None:
            if db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            connection = duckdb.connect(db_path)
            logger.info(f"Connected to DuckDB: {db_path}")
        self._conn = connection

    def close(self):
        """Close database connection."""
        if self._conn is not None and self._owns_connection:
            self._conn.close()
        self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def load_dataframe(self,
                       df: pd.DataFrame,
                       table_name: str,
                       if_exists: str = 'replace',
                       description: Optional[str] = None,
                       column_descriptions: Optional[Dict[str, str]] = None) -> LoadResult:
        """
        Load a pandas DataFrame into DuckDB.

        Args:
            df: DataFrame to load
            table_name: Name of the target table
            if_exists: 'replace', 'append', or 'fail'
            description: Table comment
            column_descriptions: Column comments by column name

        Returns:
            LoadResult with status and details
        """
        start_time = datetime.now()

        try:
            quoted = quote_identifier(table_name)
        except ValueError as e:
            return LoadResult(success=False, table_name=table_name, rows_loaded=0, error=str(e))

        try:
            existing = table_name in self.list_tables()

            if existing and if_exists == 'fail':
                return LoadResult(
                    success=False,
                    table_name=table_name,
                    rows_loaded=0,
                    error=f"Table '{table_name}' already exists"
                )

            self._conn.register('_mediquery_load', df)
            try:
                if if_exists == 'append' and existing:
                    self._conn.execute(f"INSERT INTO {quoted} SELECT * FROM _mediquery_load")
                else:
                    self._conn.execute(f"DROP TABLE IF EXISTS {quoted}")
                    self._conn.execute(f"CREATE TABLE {quoted} AS SELECT * FROM _mediquery_load")
            finally:
                self._conn.unregister('_mediquery_load')

            warnings = self.set_comments(table_name, description, column_descriptions or {})

            duration = (datetime.now() - start_time).total_seconds()
            logger.info(f"Loaded {len(df)} rows into {table_name} in {duration:.2f}s")

            return LoadResult(
                success=True,
                table_name=table_name,
                rows_loaded=len(df),
                warnings=warnings,
                duration_seconds=duration
            )

        except Exception as e:
            logger.error(f"Failed to load table {table_name}: {e}")
            return LoadResult(
                success=False,
                table_name=table_name,
                rows_loaded=0,
                error=str(e)
            )

    def load_csv(self, csv_path: str, table_name: Optional[str] = None, **kwargs) -> LoadResult:
        """Load a CSV file; the table name defaults to the file stem."""
        path = Path(csv_path)
        table_name = table_name or path.stem.lower()
        if not path.exists():
            return LoadResult(
                success=False,
                table_name=table_name,
                rows_loaded=0,
                error=f"File not found: {csv_path}"
            )
        return self.load_dataframe(pd.read_csv(path), table_name, **kwargs)

    def set_comments(self,
                     table_name: str,
                     description: Optional[str],
                     column_descriptions: Dict[str, str]) -> List[str]:
        """Attach table/column comments. Returns warnings for comments that failed."""
        warnings = []
        quoted = quote_identifier(table_name)

        if description:
            try:
                self._conn.execute(f"COMMENT ON TABLE {quoted} IS {_comment_literal(description)}")
            except duckdb.Error as e:
                warnings.append(f"Could not comment table {table_name}: {e}")

        for column, text in column_descriptions.items():
            try:
                self._conn.execute(
                    f"COMMENT ON COLUMN {quoted}.{quote_identifier(column)} IS {_comment_literal(text)}"
                )
            except (duckdb.Error, ValueError) as e:
                warnings.append(f"Could not comment column {table_name}.{column}: {e}")

        for warning in warnings:
            logger.warning(warning)
        return warnings

    def list_tables(self) -> List[str]:
        """Base tables in the main schema."""
        rows = self._conn.execute("""
            SELECT table_name FROM information_schema.tables
            WHERE table_schema = 'main' AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """).fetchall()
        return [r[0] for r in rows]


def seed_demo_database(db_path: str, connection=None) -> List[LoadResult]:
    """
    Create the demo hospital database from the fallback fixtures.

    The live tables then carry the same rows and descriptions the engine
    falls back to, so answers look the same with or without the store.
    """
    results = []
    with DatabaseLoader(db_path, connection=connection) as loader:
        for table in get_fallback_schema().tables:
            df = pd.DataFrame(list(MOCK_ROWS[table.name]), columns=table.column_names)
            results.append(loader.load_dataframe(
                df,
                table.name,
                description=table.description,
                column_descriptions={c.name: c.description for c in table.columns if c.description}
            ))
    loaded = sum(r.rows_loaded for r in results if r.success)
    logger.info(f"Seeded {db_path} with {loaded} rows across {len(results)} tables")
    return results
