# Tests for Schema Provider
"""
Test Suite for Schema Resolution
================================
Tests live introspection, the fallback schema and its reasons, and the
resolution cache.
"""

from unittest.mock import MagicMock

from mediquery.engine.schema_provider import SchemaProvider
from mediquery.engine.errors import DatabaseError


def scripted_runner():
    """Runner stub exposing a single 'wards' table."""
    runner = MagicMock()
    runner.list_tables.return_value = [{"name": "wards", "description": "Hospital wards"}]
    runner.list_columns.return_value = [
        {"name": "id", "type": "INTEGER", "description": None},
        {"name": "label", "type": "VARCHAR", "description": "Ward label"},
    ]
    runner.sample_rows.return_value = [{"id": 1, "label": "A"}]
    return runner


class TestLiveSchema:
    """Test introspection of a live store."""

    def test_seeded_store(self, live_runner):
        resolution = SchemaProvider(live_runner, cache_ttl=0).resolve()
        assert resolution.is_live
        assert resolution.reason is None
        assert resolution.schema.table_names == ["doctors", "hospitals", "patients"]

    def test_columns_in_ordinal_order(self, live_runner):
        schema = SchemaProvider(live_runner, cache_ttl=0).get_schema()
        doctors = schema.get_table("doctors")
        assert doctors.column_names == ["id", "name", "phone_number", "email", "hospital_id"]
        assert doctors.columns[0].type == "bigint"

    def test_sample_rows(self, live_runner):
        schema = SchemaProvider(live_runner, cache_ttl=0, sample_limit=2).get_schema()
        assert len(schema.get_table("patients").sample_data) == 2

    def test_samples_disabled(self, live_runner):
        schema = SchemaProvider(live_runner, cache_ttl=0, include_samples=False).get_schema()
        assert schema.get_table("patients").sample_data is None

    def test_descriptions_and_lowercased_types(self):
        schema = SchemaProvider(scripted_runner(), cache_ttl=0).get_schema()
        wards = schema.get_table("wards")
        assert wards.description == "Hospital wards"
        assert wards.columns[0].description is None
        assert wards.columns[1].description == "Ward label"
        assert wards.columns[1].type == "varchar"

    def test_sample_failure_is_not_fatal(self):
        runner = scripted_runner()
        runner.sample_rows.side_effect = DatabaseError("permission denied")
        resolution = SchemaProvider(runner, cache_ttl=0).resolve()
        assert resolution.is_live
        assert resolution.schema.get_table("wards").sample_data is None


class TestFallbackSchema:
    """Test the fallback schema and its reasons."""

    def test_no_runner(self):
        resolution = SchemaProvider(None).resolve()
        assert resolution.source == "fallback"
        assert resolution.reason == "Live database is not configured"
        assert resolution.schema.table_names == ["hospitals", "doctors", "patients"]

    def test_no_tables(self, empty_runner):
        resolution = SchemaProvider(empty_runner, cache_ttl=0).resolve()
        assert not resolution.is_live
        assert resolution.reason == "No tables found in the live database"

    def test_introspection_error(self):
        runner = scripted_runner()
        runner.list_tables.side_effect = DatabaseError("connection refused")
        resolution = SchemaProvider(runner, cache_ttl=0).resolve()
        assert not resolution.is_live
        assert "Schema introspection failed" in resolution.reason

    def test_column_error(self):
        runner = scripted_runner()
        runner.list_columns.side_effect = RuntimeError("boom")
        resolution = SchemaProvider(runner, cache_ttl=0).resolve()
        assert not resolution.is_live

    def test_helper_provisioning_error_is_not_fatal(self):
        runner = scripted_runner()
        runner.provision_helpers.side_effect = RuntimeError("read-only")
        assert SchemaProvider(runner, cache_ttl=0).resolve().is_live

    def test_fallback_has_descriptions_and_samples(self):
        schema = SchemaProvider(None).get_schema()
        hospitals = schema.get_table("hospitals")
        assert hospitals.description == "Healthcare facilities"
        assert hospitals.columns[0].description == "Primary key"
        assert len(hospitals.sample_data) == 3


class TestSchemaCache:
    """Test the TTL cache."""

    def test_cached_within_ttl(self):
        runner = scripted_runner()
        provider = SchemaProvider(runner, cache_ttl=60)
        provider.get_schema()
        provider.get_schema()
        assert runner.list_tables.call_count == 1

    def test_cache_disabled(self):
        runner = scripted_runner()
        provider = SchemaProvider(runner, cache_ttl=0)
        provider.get_schema()
        provider.get_schema()
        assert runner.list_tables.call_count == 2

    def test_invalidate(self):
        runner = scripted_runner()
        provider = SchemaProvider(runner, cache_ttl=60)
        provider.get_schema()
        provider.invalidate()
        provider.get_schema()
        assert runner.list_tables.call_count == 2
