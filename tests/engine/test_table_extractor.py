# Tests for Table-Reference Extractor
"""Tests for FROM/JOIN table extraction and schema annotation."""

import pytest

from mediquery.engine.table_extractor import (
    extract_tables, extract_table_aliases, annotate_schema
)
from mediquery.engine.rule_generator import rule_based_sql


class TestExtractTables:
    """Test table name extraction."""

    def test_single_table(self):
        assert extract_tables("SELECT * FROM hospitals") == ["hospitals"]

    def test_exists_subquery(self):
        sql = ("SELECT d.* FROM doctors d WHERE EXISTS "
               "(SELECT 1 FROM patients p WHERE p.doctor_id = d.id)")
        assert extract_tables(sql) == ["doctors", "patients"]

    def test_join_with_aliases(self):
        sql = ("SELECT d.name, h.name FROM doctors AS d "
               "JOIN hospitals h ON d.hospital_id = h.id")
        assert extract_tables(sql) == ["doctors", "hospitals"]

    def test_join_without_aliases(self):
        sql = "SELECT * FROM doctors JOIN hospitals ON doctors.hospital_id = hospitals.id"
        assert extract_tables(sql) == ["doctors", "hospitals"]

    def test_duplicates_removed_in_first_seen_order(self):
        sql = ("SELECT * FROM patients WHERE doctor_id IN (SELECT id FROM doctors) "
               "UNION SELECT * FROM patients")
        assert extract_tables(sql) == ["patients", "doctors"]

    def test_lowercased(self):
        assert extract_tables("SELECT * FROM Doctors") == ["doctors"]

    def test_schema_qualified_name(self):
        assert extract_tables("SELECT * FROM main.doctors") == ["doctors"]

    def test_no_tables(self):
        assert extract_tables("SELECT 1") == []
        assert extract_tables("") == []
        assert extract_tables(None) == []

    def test_rule_based_statements_round_trip(self, hospital_schema):
        for table in hospital_schema.table_names:
            for question in (f"how many {table}", f"list all {table}"):
                sql = rule_based_sql(question, hospital_schema)
                assert extract_tables(sql) == [table]


class TestExtractAliases:
    """Test alias mapping."""

    def test_aliases_map_to_tables(self):
        sql = ("SELECT d.name, h.name FROM doctors AS d "
               "JOIN hospitals h ON d.hospital_id = h.id")
        assert extract_table_aliases(sql) == {
            "doctors": "doctors",
            "d": "doctors",
            "hospitals": "hospitals",
            "h": "hospitals",
        }

    def test_keywords_are_not_aliases(self):
        aliases = extract_table_aliases("SELECT * FROM doctors WHERE id = 1")
        assert aliases == {"doctors": "doctors"}


class TestAnnotateSchema:
    """Test queried-table flags."""

    def test_flags_queried_tables(self, hospital_schema):
        sql = ("SELECT d.* FROM doctors d WHERE EXISTS "
               "(SELECT 1 FROM patients p WHERE p.doctor_id = d.id)")
        flags = {t.name: t.queried for t in annotate_schema(hospital_schema, sql)}
        assert flags == {"hospitals": False, "doctors": True, "patients": True}

    def test_keeps_columns_and_order(self, hospital_schema):
        annotated = annotate_schema(hospital_schema, "SELECT * FROM hospitals")
        assert [t.name for t in annotated] == ["hospitals", "doctors", "patients"]
        assert [c.name for c in annotated[0].columns] == ["id", "name", "city", "beds"]

    def test_no_sql_flags_nothing(self, hospital_schema):
        assert not any(t.queried for t in annotate_schema(hospital_schema, None))

    def test_to_dict(self, hospital_schema):
        data = annotate_schema(hospital_schema, "SELECT * FROM hospitals")[0].to_dict()
        assert data["name"] == "hospitals"
        assert data["queried"] is True
