# Tests for SQL Validator
"""
Test Suite for SQL Validator
============================
Tests SQL validation including:
- Single-SELECT enforcement
- Dangerous operation blocking
- Literal handling
- Identifier quoting
"""

import pytest

from mediquery.engine.sql_validator import (
    SQLValidator, ValidatorConfig, quote_identifier, validate_identifier
)
from mediquery.engine.errors import ValidationError, READ_ONLY_MESSAGE


class TestBasicValidation:
    """Test basic SQL validation."""

    def setup_method(self):
        self.validator = SQLValidator()

    def test_valid_select_query(self):
        result = self.validator.validate("SELECT * FROM doctors WHERE hospital_id = 1")
        assert result.is_valid is True
        assert result.validated_sql == "SELECT * FROM doctors WHERE hospital_id = 1"

    def test_lowercase_select_is_valid(self):
        assert self.validator.validate("select name from patients").is_valid is True

    def test_empty_query(self):
        result = self.validator.validate("")
        assert result.is_valid is False
        assert "Empty SQL query" in result.errors[0]

    def test_whitespace_only_query(self):
        result = self.validator.validate("   ")
        assert result.is_valid is False

    def test_non_select_query_blocked(self):
        result = self.validator.validate("SHOW TABLES")
        assert result.is_valid is False
        assert "Only SELECT queries are allowed" in result.errors[0]

    def test_cte_is_not_a_select(self):
        result = self.validator.validate("WITH x AS (SELECT 1) SELECT * FROM x")
        assert result.is_valid is False

    def test_trailing_semicolon_is_stripped(self):
        result = self.validator.validate("SELECT * FROM doctors;")
        assert result.is_valid is True
        assert result.validated_sql == "SELECT * FROM doctors"


class TestDangerousOperations:
    """Test blocking of write and DDL statements."""

    def setup_method(self):
        self.validator = SQLValidator()

    @pytest.mark.parametrize("sql", [
        "DELETE FROM doctors WHERE 1=1",
        "UPDATE patients SET age = 0",
        "INSERT INTO hospitals VALUES (9, 'x', 'y', 1)",
        "DROP TABLE patients",
        "ALTER TABLE doctors ADD COLUMN x INTEGER",
    ])
    def test_write_statements_blocked(self, sql):
        result = self.validator.validate(sql)
        assert result.is_valid is False
        assert result.validated_sql == ""

    def test_delete_reported(self):
        result = self.validator.validate("DELETE FROM doctors")
        assert any("DELETE" in e for e in result.errors)

    def test_stacked_statement_blocked(self):
        result = self.validator.validate("SELECT * FROM doctors; DROP TABLE doctors")
        assert result.is_valid is False
        assert 'DROP' in result.dangerous_patterns_found
        assert 'MULTIPLE_STATEMENTS' in result.dangerous_patterns_found

    def test_comments_blocked(self):
        result = self.validator.validate("SELECT * FROM doctors -- everything")
        assert result.is_valid is False
        assert 'COMMENT' in result.dangerous_patterns_found

    def test_comments_allowed_when_configured(self):
        validator = SQLValidator(ValidatorConfig(block_comments=False))
        assert validator.validate("SELECT * FROM doctors /* all */").is_valid is True

    def test_keywords_inside_literals_are_allowed(self):
        sql = "SELECT * FROM hospitals WHERE name = 'Drop-in Clinic; update pending'"
        assert self.validator.validate(sql).is_valid is True

    def test_column_names_containing_keywords(self):
        sql = "SELECT created_at, updated_at FROM patients"
        assert self.validator.validate(sql).is_valid is True


class TestEnsureReadOnly:
    """Test the raising entry point used by the generator and executor."""

    def setup_method(self):
        self.validator = SQLValidator()

    def test_returns_cleaned_sql(self):
        assert self.validator.ensure_read_only("  SELECT 1;  ") == "SELECT 1"

    def test_raises_with_read_only_message(self):
        with pytest.raises(ValidationError) as exc_info:
            self.validator.ensure_read_only("DELETE FROM patients")
        assert str(exc_info.value) == READ_ONLY_MESSAGE
        assert "Only SELECT queries are allowed" in exc_info.value.reason

    def test_quick_validate(self):
        assert self.validator.quick_validate("SELECT 1") is True
        assert self.validator.quick_validate("TRUNCATE doctors") is False


class TestIdentifiers:
    """Test identifier checks used for introspection statements."""

    def test_valid_identifiers(self):
        assert validate_identifier("doctors") is True
        assert validate_identifier("hospital_id") is True

    def test_invalid_identifiers(self):
        assert validate_identifier("doctors; DROP TABLE x") is False
        assert validate_identifier("") is False

    def test_quote_identifier(self):
        assert quote_identifier("doctors") == '"doctors"'

    def test_quote_identifier_rejects_unsafe_names(self):
        with pytest.raises(ValueError):
            quote_identifier("a\"b")
