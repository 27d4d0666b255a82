# Pytest configuration for MediQuery tests
"""
Shared fixtures: schemas, an in-memory DuckDB store, and pipelines wired
with the language model disabled or mocked.
"""

import os
import pytest
from pathlib import Path

import duckdb

# Load environment variables from .env file (live_api tests only)
from dotenv import load_dotenv
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)

from mediquery.engine.models import Schema, Table, Column
from mediquery.engine.fixtures import get_fallback_schema
from mediquery.engine.data_store import DuckDBStatementRunner
from mediquery.engine.schema_provider import SchemaProvider
from mediquery.engine.sql_generator import SQLGenerator
from mediquery.engine.executor import QueryExecutor
from mediquery.engine.explanation_generator import ResultSummarizer
from mediquery.engine.pipeline import QueryPipeline
from mediquery.data.loader import seed_demo_database


@pytest.fixture
def hospital_schema():
    """The three-table hospital schema (same as the fallback)."""
    return get_fallback_schema()


@pytest.fixture
def hospitals_only_schema():
    """Single table, used for the listing scenario."""
    return Schema(tables=[
        Table(
            name="hospitals",
            columns=[
                Column("id", "integer"),
                Column("name", "text"),
                Column("city", "text"),
                Column("beds", "integer"),
            ],
        )
    ])


@pytest.fixture
def empty_schema():
    return Schema(tables=[])


@pytest.fixture
def duckdb_connection():
    """In-memory DuckDB with the demo hospital tables."""
    conn = duckdb.connect(":memory:")
    seed_demo_database(":memory:", connection=conn)
    yield conn
    conn.close()


@pytest.fixture
def empty_duckdb_connection():
    conn = duckdb.connect(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def live_runner(duckdb_connection):
    """Statement runner over the seeded in-memory database."""
    return DuckDBStatementRunner(connection=duckdb_connection, timeout_seconds=5)


@pytest.fixture
def empty_runner(empty_duckdb_connection):
    """Statement runner over a database with no tables."""
    return DuckDBStatementRunner(connection=empty_duckdb_connection, timeout_seconds=5)


def make_pipeline(runner=None, provider=None, model_status="ok", cache_ttl=0):
    """Pipeline wired from explicit collaborators."""
    return QueryPipeline(
        schema_provider=SchemaProvider(runner, cache_ttl=cache_ttl),
        generator=SQLGenerator(provider),
        executor=QueryExecutor(runner),
        summarizer=ResultSummarizer(provider),
        model_status=model_status,
    )


@pytest.fixture
def offline_pipeline():
    """No model, no store: fallback schema, rule-based SQL, mock rows."""
    return make_pipeline(model_status="Language model unavailable: ANTHROPIC_API_KEY not set")


@pytest.fixture
def live_store_pipeline(live_runner):
    """No model, seeded DuckDB store."""
    return make_pipeline(runner=live_runner)


@pytest.fixture
def has_api_key():
    return bool(os.getenv("ANTHROPIC_API_KEY"))


@pytest.fixture
def pipeline_factory():
    """Build pipelines from explicit collaborators inside a test."""
    return make_pipeline
