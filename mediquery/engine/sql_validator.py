# MediQuery - SQL Validator
# ==========================
"""
SQL Validator
=============
Read-only enforcement for every statement that reaches the store.

A statement is accepted only if, after trimming, it starts with SELECT,
contains no write/DDL verbs outside string literals, and is a single
statement. This is a security boundary: it runs regardless of which
strategy produced the SQL.
"""

import re
import logging
from typing import List
from dataclasses import dataclass, field

from .errors import ValidationError, READ_ONLY_MESSAGE

logger = logging.getLogger(__name__)


VALID_IDENTIFIER_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')
MAX_IDENTIFIER_LENGTH = 64


def validate_identifier(name: str) -> bool:
    """Check that a table/column name is a plain SQL identifier."""
    if not name or len(name) > MAX_IDENTIFIER_LENGTH:
        return False
    return bool(VALID_IDENTIFIER_PATTERN.match(name))


def quote_identifier(name: str) -> str:
    """Double-quote a validated identifier."""
    if not validate_identifier(name):
        raise ValueError(f"Invalid identifier: {name!r}")
    return f'"{name}"'


@dataclass
class ValidatorConfig:
    """Configuration for SQL validator."""
    # Reject statements chained with ';'
    block_multiple_statements: bool = True

    # Reject comments, which can hide a second statement
    block_comments: bool = True


@dataclass
class ValidationResult:
    """Result of SQL validation."""
    is_valid: bool
    validated_sql: str
    errors: List[str] = field(default_factory=list)
    dangerous_patterns_found: List[str] = field(default_factory=list)


class SQLValidator:
    """
    Validates that SQL is a single read-only SELECT.

    Example:
        validator = SQLValidator()
        sql = validator.ensure_read_only("SELECT * FROM doctors")
    """

    # Write and DDL verbs never allowed in a statement
    DANGEROUS_PATTERNS = {
        'insert': re.compile(r'\bINSERT\b', re.IGNORECASE),
        'update': re.compile(r'\bUPDATE\b', re.IGNORECASE),
        'delete': re.compile(r'\bDELETE\b', re.IGNORECASE),
        'drop': re.compile(r'\bDROP\b', re.IGNORECASE),
        'truncate': re.compile(r'\bTRUNCATE\b', re.IGNORECASE),
        'alter': re.compile(r'\bALTER\b', re.IGNORECASE),
        'create': re.compile(r'\bCREATE\b', re.IGNORECASE),
        'merge': re.compile(r'\bMERGE\b', re.IGNORECASE),
        'grant': re.compile(r'\bGRANT\b', re.IGNORECASE),
        'revoke': re.compile(r'\bREVOKE\b', re.IGNORECASE),
        'copy': re.compile(r'\bCOPY\b', re.IGNORECASE),
        'attach': re.compile(r'\b(?:ATTACH|DETACH)\b', re.IGNORECASE),
        'exec': re.compile(r'\b(?:EXEC|EXECUTE|CALL)\b', re.IGNORECASE),
        'pragma': re.compile(r'\bPRAGMA\b', re.IGNORECASE),
        'install': re.compile(r'\b(?:INSTALL|LOAD)\b', re.IGNORECASE),
    }

    STRING_LITERAL = re.compile(r"'(?:[^']|'')*'")
    COMMENT = re.compile(r'--|/\*')

    def __init__(self, config: ValidatorConfig = None):
        self.config = config or ValidatorConfig()

    def validate(self, sql: str) -> ValidationResult:
        """
        Validate SQL query.

        Args:
            sql: SQL query to validate

        Returns:
            ValidationResult with status and details
        """
        if not sql or not sql.strip():
            return ValidationResult(
                is_valid=False,
                validated_sql="",
                errors=["Empty SQL query"]
            )

        sql = sql.strip()
        errors = []

        if not self._is_select_query(sql):
            errors.append("Only SELECT queries are allowed")

        # Literals can legitimately contain words like 'drop-in clinic'
        code = self.STRING_LITERAL.sub("''", sql)

        dangerous = self._check_dangerous_operations(code)
        if dangerous:
            errors.append(f"Dangerous operations blocked: {', '.join(dangerous)}")

        if self.config.block_multiple_statements and ';' in code.rstrip().rstrip(';'):
            dangerous.append('MULTIPLE_STATEMENTS')
            errors.append("Multiple statements are not allowed")

        if self.config.block_comments and self.COMMENT.search(code):
            dangerous.append('COMMENT')
            errors.append("SQL comments are not allowed")

        validated_sql = sql.rstrip().rstrip(';').rstrip()

        return ValidationResult(
            is_valid=not errors,
            validated_sql=validated_sql if not errors else "",
            errors=errors,
            dangerous_patterns_found=dangerous
        )

    def ensure_read_only(self, sql: str) -> str:
        """
        Return the cleaned statement, or raise if it is not read-only.

        Raises:
            ValidationError: If the statement is not a single SELECT
        """
        result = self.validate(sql)
        if not result.is_valid:
            logger.warning(f"Rejected statement: {'; '.join(result.errors)}")
            raise ValidationError(READ_ONLY_MESSAGE, reason="; ".join(result.errors))
        return result.validated_sql

    def _is_select_query(self, sql: str) -> bool:
        return sql.strip().lower().startswith('select')

    def _check_dangerous_operations(self, sql: str) -> List[str]:
        found = []
        for name, pattern in self.DANGEROUS_PATTERNS.items():
            if pattern.search(sql):
                found.append(name.upper())
        return found

    def quick_validate(self, sql: str) -> bool:
        """Quick validation - just check if query is safe."""
        return self.validate(sql).is_valid
