# MediQuery - Rule-Based SQL Generator
# =====================================
"""
Rule-Based SQL Generator
========================
Deterministic keyword matching that turns a question into a SELECT using
only the resolved schema. No I/O.

Two entry points:
- match_direct_pattern(): a few high-confidence intents answered with a
  hand-written statement before any model is consulted
- rule_based_sql(): the fallback used when the model is unavailable or
  returns something that is not a SELECT

Tables are scanned in schema order and the first satisfying rule wins.
"""

import re
import logging
from typing import List, Optional

from .models import Schema, Table

logger = logging.getLogger(__name__)


AGGREGATE_CUE = re.compile(r'\bhow many\b|\bcount\b')
LISTING_CUE = re.compile(r'\b(?:all|list|show|get)\b')
ID_PATTERN = re.compile(r'\bid\s+(\d+)\b|\bid:\s*(\d+)\b|#(\d+)\b')
NAME_PATTERN = re.compile(r'\b(?:name|named)\s+([\'"])(.+?)\1', re.IGNORECASE)
NEGATION = re.compile(r'\b(?:no|not|without|zero|never)\b')

# Words that may surround an entity name in a plain listing request
LISTING_FILLER = {
    'list', 'show', 'get', 'find', 'display', 'all', 'me', 'the', 'of',
    'every', 'please', 'records', 'entries', 'rows', 'our', 'us', 'can', 'you',
}
LISTING_VERBS = {'list', 'show', 'get', 'find', 'all'}

RELATIONSHIP_PATTERN = re.compile(
    r'\bdoctors?\b.*\b(?:with|have|has|having)\b.*\bpatients?\b'
)

SENTINEL_SQL = "SELECT 1"


def normalize_question(question: str) -> str:
    """Lowercase and trim."""
    return (question or "").strip().lower()


def singular(name: str) -> str:
    """Naive singular: strip one trailing 's'."""
    return name[:-1] if name.endswith('s') and len(name) > 1 else name


def mentions_table(normalized: str, table: Table) -> bool:
    """Whether the question names a table, in plural or singular form."""
    name = table.name.lower()
    forms = {re.escape(name), re.escape(singular(name))}
    pattern = r'\b(?:' + '|'.join(sorted(forms, key=len, reverse=True)) + r')\b'
    return re.search(pattern, normalized) is not None


def mentioned_columns(normalized: str, table: Table) -> List[str]:
    """Column names of a table that appear verbatim in the question, in schema order."""
    return [
        column.name for column in table.columns
        if re.search(r'\b' + re.escape(column.name.lower()) + r'\b', normalized)
    ]


def _tokens(normalized: str) -> List[str]:
    return re.findall(r'[a-z0-9_]+', normalized)


def _sql_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


# =============================================================================
# DIRECT-PATTERN SHORTCUTS
# =============================================================================

def relationship_sql(schema: Schema) -> Optional[str]:
    """Canonical doctors-with-patients statement, if both tables exist."""
    doctors = schema.get_table("doctors")
    patients = schema.get_table("patients")
    if doctors is None or patients is None:
        return None
    return (
        f"SELECT d.* FROM {doctors.name} d WHERE EXISTS "
        f"(SELECT 1 FROM {patients.name} p WHERE p.doctor_id = d.id)"
    )


def match_direct_pattern(question: str, schema: Schema) -> Optional[str]:
    """
    Hand-specified SQL for common, unambiguous questions.

    Returns:
        SQL string, or None when no shortcut applies
    """
    normalized = normalize_question(question).rstrip('?.! ')
    if not normalized or schema.is_empty:
        return None

    # "doctors with at least one patient", "which doctors have patients"
    if (RELATIONSHIP_PATTERN.search(normalized)
            and not AGGREGATE_CUE.search(normalized)
            and not NEGATION.search(normalized)):
        sql = relationship_sql(schema)
        if sql:
            return sql

    # "list all hospitals", "show me the doctors", "all patients"
    tokens = _tokens(normalized)
    if not LISTING_VERBS.intersection(tokens):
        return None
    remaining = [t for t in tokens if t not in LISTING_FILLER]
    if len(remaining) != 1:
        return None
    entity = remaining[0]
    for table in schema.tables:
        name = table.name.lower()
        if entity in (name, singular(name)):
            return f"SELECT * FROM {table.name}"

    return None


# =============================================================================
# RULE-BASED FALLBACK
# =============================================================================

def rule_based_sql(question: str, schema: Schema) -> str:
    """
    Deterministic SQL for a question. First matching rule wins.

    1. count cue + table          -> SELECT COUNT(*) FROM t
    2. listing cue + table        -> SELECT <mentioned columns> | * FROM t
    3. find/get/show <table>      -> WHERE id = n | WHERE name LIKE '...' | LIMIT 10
    4. token overlaps table name  -> SELECT * FROM t LIMIT 10
    5. otherwise                  -> first table LIMIT 10, or SELECT 1
    """
    normalized = normalize_question(question)

    if schema.is_empty:
        return SENTINEL_SQL

    # Rule 1: aggregates
    if AGGREGATE_CUE.search(normalized):
        for table in schema.tables:
            if mentions_table(normalized, table):
                return f"SELECT COUNT(*) FROM {table.name}"

    # Rule 2: listings, optionally projecting mentioned columns
    if LISTING_CUE.search(normalized):
        for table in schema.tables:
            if mentions_table(normalized, table):
                columns = mentioned_columns(normalized, table)
                if columns:
                    return f"SELECT {', '.join(columns)} FROM {table.name}"
                return f"SELECT * FROM {table.name}"

    # Rule 3: a specific record
    for table in schema.tables:
        name = table.name.lower()
        forms = '|'.join(sorted({re.escape(name), re.escape(singular(name))}, key=len, reverse=True))
        if not re.search(r'\b(?:find|get|show)\s+(?:' + forms + r')\b', normalized):
            continue

        id_match = ID_PATTERN.search(normalized)
        if id_match:
            record_id = next(g for g in id_match.groups() if g)
            return f"SELECT * FROM {table.name} WHERE id = {record_id}"

        name_match = NAME_PATTERN.search((question or "").strip())
        if name_match:
            return f"SELECT * FROM {table.name} WHERE name LIKE {_sql_literal(name_match.group(2))}"

        return f"SELECT * FROM {table.name} LIMIT 10"

    # Rule 4: any token overlapping a table name, in either direction
    for word in _tokens(normalized):
        if len(word) < 3:
            continue
        for table in schema.tables:
            name = table.name.lower()
            if word in name or name in word:
                return f"SELECT * FROM {table.name} LIMIT 10"

    # Rule 5: last resort
    return f"SELECT * FROM {schema.tables[0].name} LIMIT 10"
