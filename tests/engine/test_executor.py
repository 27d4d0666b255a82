# Tests for Query Executor
"""
Test Suite for Query Execution
==============================
Tests live execution against an in-memory DuckDB store, email-lookup
relaxation, and mock-row substitution when the store cannot answer.
"""

import pytest
from unittest.mock import MagicMock

from mediquery.engine.executor import (
    QueryExecutor, MockDataSource, LiveDataSource,
    infer_table, email_literal, relaxed_email_statements, is_count_statement,
    normalize_count_rows
)
from mediquery.engine.models import DataSourceKind, GeneratedQuery, Provenance
from mediquery.engine.errors import (
    ValidationError, DatabaseError, MissingRelationError, StoreUnavailableError
)
from mediquery.engine.fixtures import get_mock_rows
from mediquery.engine.data_store import DuckDBStatementRunner


class TestHelpers:
    """Test statement inspection helpers."""

    def test_infer_table(self):
        assert infer_table("SELECT * FROM Hospitals LIMIT 10") == "hospitals"
        assert infer_table("SELECT d.* FROM doctors d WHERE EXISTS (SELECT 1 FROM patients p)") == "doctors"
        assert infer_table("SELECT 1") is None

    def test_is_count_statement(self):
        assert is_count_statement("SELECT COUNT(*) FROM doctors")
        assert not is_count_statement("SELECT * FROM doctors")

    def test_normalize_count_rows(self):
        assert normalize_count_rows([{"count_star()": 3}]) == [{"count": 3}]
        assert normalize_count_rows([{"count(id)": 2}]) == [{"count": 2}]
        assert normalize_count_rows([{"total": 6}]) == [{"total": 6}]
        assert normalize_count_rows([{"id": 1}, {"id": 2}]) == [{"id": 1}, {"id": 2}]

    def test_email_literal(self):
        assert email_literal("SELECT * FROM doctors WHERE email = 'smith@hospital.com'") == "smith@hospital.com"
        assert email_literal("SELECT * FROM doctors WHERE email = 'o''neil@x.org'") == "o'neil@x.org"
        assert email_literal("SELECT * FROM doctors") is None

    def test_relaxed_statements(self):
        variants = relaxed_email_statements("SELECT * FROM doctors d WHERE d.email = 'SMITH' LIMIT 5")
        assert variants == [
            "SELECT * FROM doctors d WHERE d.email = 'SMITH' LIMIT 5",
            "SELECT * FROM doctors d WHERE LOWER(d.email) = LOWER('SMITH') LIMIT 5",
            "SELECT * FROM doctors d WHERE d.email ILIKE '%SMITH%' LIMIT 5",
        ]

    def test_no_email_predicate_single_variant(self):
        assert relaxed_email_statements("SELECT * FROM doctors") == ["SELECT * FROM doctors"]


class TestLiveExecution:
    """Test execution against the seeded DuckDB store."""

    def test_live_rows(self, live_runner):
        outcome = QueryExecutor(live_runner).execute_with_source("SELECT * FROM hospitals ORDER BY id")
        assert outcome.data_source == DataSourceKind.LIVE
        assert outcome.rows == get_mock_rows("hospitals")

    def test_accepts_generated_query(self, live_runner):
        query = GeneratedQuery(sql="SELECT name FROM doctors WHERE id = 2", provenance=Provenance.RULE_BASED)
        assert QueryExecutor(live_runner).execute(query) == [{"name": "Dr. Johnson"}]

    def test_count(self, live_runner):
        rows = QueryExecutor(live_runner).execute("SELECT COUNT(*) AS total FROM patients")
        assert rows == [{"total": 6}]

    def test_unaliased_count_matches_mock_shape(self, live_runner):
        live = QueryExecutor(live_runner).execute("SELECT COUNT(*) FROM doctors")
        mock = QueryExecutor(None).execute("SELECT COUNT(*) FROM doctors")
        assert live == mock == [{"count": 3}]

    def test_email_case_insensitive_retry(self, live_runner):
        outcome = QueryExecutor(live_runner).execute_with_source(
            "SELECT name FROM doctors WHERE email = 'SMITH@HOSPITAL.COM'"
        )
        assert outcome.data_source == DataSourceKind.LIVE
        assert outcome.rows == [{"name": "Dr. Smith"}]

    def test_email_partial_retry(self, live_runner):
        outcome = QueryExecutor(live_runner).execute_with_source(
            "SELECT name FROM doctors WHERE email = 'johnson'"
        )
        assert outcome.data_source == DataSourceKind.LIVE
        assert outcome.rows == [{"name": "Dr. Johnson"}]

    def test_bad_column_raises_database_error(self, live_runner):
        with pytest.raises(DatabaseError):
            QueryExecutor(live_runner).execute("SELECT no_such_column FROM doctors")

    def test_write_rejected_before_store(self):
        runner = MagicMock()
        with pytest.raises(ValidationError):
            QueryExecutor(runner).execute("DELETE FROM doctors")
        runner.run.assert_not_called()

    def test_timeout_interrupts_statement(self, duckdb_connection):
        runner = DuckDBStatementRunner(connection=duckdb_connection, timeout_seconds=1)
        with pytest.raises(DatabaseError) as exc_info:
            QueryExecutor(runner).execute(
                "SELECT SUM(a.range * b.range) FROM range(1000000) a, range(1000000) b"
            )
        assert "timed out" in str(exc_info.value)


class TestEmailRetryOrder:
    """Test the retry sequence with a scripted runner."""

    def setup_method(self):
        self.runner = MagicMock()
        self.sql = "SELECT * FROM doctors WHERE email = 'Smith@Hospital.com'"

    def test_retries_stop_at_first_rows(self):
        self.runner.run.side_effect = [[], [{"id": 1}]]
        rows = QueryExecutor(self.runner).execute(self.sql)
        assert rows == [{"id": 1}]
        assert self.runner.run.call_count == 2
        assert "LOWER(email) = LOWER('Smith@Hospital.com')" in self.runner.run.call_args_list[1][0][0]

    def test_third_variant_is_contains(self):
        self.runner.run.side_effect = [[], [], [{"id": 1}]]
        QueryExecutor(self.runner).execute(self.sql)
        assert "email ILIKE '%Smith@Hospital.com%'" in self.runner.run.call_args_list[2][0][0]

    def test_error_during_retry_propagates(self):
        self.runner.run.side_effect = [[], DatabaseError("connection reset")]
        with pytest.raises(DatabaseError):
            QueryExecutor(self.runner).execute(self.sql)
        assert self.runner.run.call_count == 2


class TestMockSubstitution:
    """Test fallback to fixture rows."""

    def test_missing_relation_uses_mock(self, empty_runner):
        outcome = QueryExecutor(empty_runner).execute_with_source("SELECT * FROM hospitals")
        assert outcome.data_source == DataSourceKind.MOCK
        assert outcome.reason == "missing relation"
        assert outcome.rows == get_mock_rows("hospitals")

    def test_missing_relation_from_scripted_runner(self):
        runner = MagicMock()
        runner.run.side_effect = MissingRelationError('Table "hospitals" does not exist', "hospitals")
        rows = QueryExecutor(runner).execute("SELECT * FROM hospitals")
        assert len(rows) == 3

    def test_no_store_uses_mock(self):
        outcome = QueryExecutor(None).execute_with_source("SELECT * FROM doctors")
        assert outcome.data_source == DataSourceKind.MOCK
        assert outcome.reason == "store unavailable"
        assert [r["name"] for r in outcome.rows] == ["Dr. Smith", "Dr. Johnson", "Dr. Williams"]

    def test_empty_live_result_uses_mock(self, live_runner):
        outcome = QueryExecutor(live_runner).execute_with_source("SELECT * FROM patients WHERE age > 200")
        assert outcome.data_source == DataSourceKind.MOCK
        assert outcome.reason == "empty result"
        assert len(outcome.rows) == 6

    def test_empty_result_from_live_table_is_kept(self, live_runner):
        outcome = QueryExecutor(live_runner).execute_with_source(
            "SELECT * FROM patients WHERE id = 99",
            live_tables=["doctors", "hospitals", "Patients"]
        )
        assert outcome.data_source == DataSourceKind.LIVE
        assert outcome.rows == []
        assert outcome.reason is None

    def test_empty_result_from_table_outside_live_schema_uses_mock(self, live_runner):
        outcome = QueryExecutor(live_runner).execute_with_source(
            "SELECT * FROM patients WHERE id = 99", live_tables=["doctors"]
        )
        assert outcome.data_source == DataSourceKind.MOCK
        assert outcome.reason == "empty result"

    def test_missing_relation_still_uses_mock_with_live_tables(self, empty_runner):
        outcome = QueryExecutor(empty_runner).execute_with_source(
            "SELECT * FROM hospitals", live_tables=[]
        )
        assert outcome.data_source == DataSourceKind.MOCK
        assert outcome.reason == "missing relation"

    def test_empty_live_result_without_mock_table(self, duckdb_connection, live_runner):
        duckdb_connection.execute("CREATE TABLE wards (id INTEGER)")
        outcome = QueryExecutor(live_runner).execute_with_source("SELECT * FROM wards")
        assert outcome.data_source == DataSourceKind.LIVE
        assert outcome.rows == []

    def test_missing_relation_without_mock_table_raises(self, empty_runner):
        with pytest.raises(MissingRelationError):
            QueryExecutor(empty_runner).execute("SELECT * FROM wards")

    def test_no_store_without_mock_table_raises(self):
        with pytest.raises(StoreUnavailableError):
            QueryExecutor(None).execute("SELECT * FROM wards")

    def test_mock_count(self):
        assert QueryExecutor(None).execute("SELECT COUNT(*) FROM doctors") == [{"count": 3}]

    def test_mock_email_filter(self):
        rows = QueryExecutor(None).execute("SELECT * FROM doctors WHERE email = 'WILLIAMS'")
        assert [r["name"] for r in rows] == ["Dr. Williams"]

    def test_mock_email_filter_no_match(self):
        assert QueryExecutor(None).execute("SELECT * FROM doctors WHERE email = 'nobody@x.org'") == []

    def test_mock_rows_are_copies(self):
        rows = QueryExecutor(None).execute("SELECT * FROM hospitals")
        rows[0]["name"] = "Changed"
        assert get_mock_rows("hospitals")[0]["name"] == "General Hospital"


class TestDataSources:
    """Test data sources directly."""

    def test_live_source_without_runner(self):
        attempt = LiveDataSource(None).fetch("SELECT 1")
        assert attempt.ok is False
        assert isinstance(attempt.error, StoreUnavailableError)

    def test_live_source_wraps_unexpected_errors(self):
        runner = MagicMock()
        runner.run.side_effect = RuntimeError("driver crashed")
        attempt = LiveDataSource(runner).fetch("SELECT * FROM doctors")
        assert isinstance(attempt.error, DatabaseError)

    def test_unexpected_runner_error_raised_as_database_error(self):
        runner = MagicMock()
        runner.run.side_effect = RuntimeError("driver crashed")
        with pytest.raises(DatabaseError):
            QueryExecutor(runner).execute("SELECT * FROM doctors")

    def test_mock_source_unknown_table(self):
        assert MockDataSource().fetch("SELECT * FROM wards").ok is False
