# MediQuery - Table Reference Extractor
# ======================================
"""
Lexical extraction of the tables a statement references.

Not a SQL parser: identifiers following FROM and JOIN are collected
(including those inside EXISTS/IN subqueries), together with any alias
that follows them. Used to flag which schema tables a response queried.
"""

import re
from typing import Dict, List

from .models import Schema, AnnotatedTable


# Words that can directly follow a table name and are not aliases
NOT_AN_ALIAS = {
    'where', 'join', 'inner', 'left', 'right', 'full', 'outer', 'cross',
    'on', 'using', 'group', 'order', 'limit', 'offset', 'having', 'union',
    'except', 'intersect', 'natural', 'window', 'qualify',
}

# FROM/JOIN <table> [AS] [alias]; a following keyword is left unconsumed
TABLE_REFERENCE = re.compile(
    r'\b(?:from|join)\s+([a-z_][a-z0-9_.]*)'
    r'(?:\s+(?:as\s+)?(?!(?:' + '|'.join(sorted(NOT_AN_ALIAS)) + r')\b)([a-z_][a-z0-9_]*))?'
)


def _bare_name(identifier: str) -> str:
    # main.doctors -> doctors
    return identifier.split('.')[-1]


def extract_table_aliases(sql: str) -> Dict[str, str]:
    """
    Map every table name and alias in the statement to its table.

    Returns:
        {identifier: table}; each table also maps to itself
    """
    mapping: Dict[str, str] = {}
    for match in TABLE_REFERENCE.finditer((sql or "").lower()):
        table = _bare_name(match.group(1))
        mapping.setdefault(table, table)
        alias = match.group(2)
        if alias:
            mapping[alias] = table
    return mapping


def extract_tables(sql: str) -> List[str]:
    """
    Tables referenced by a statement, lowercased, in order of appearance.

    Example:
        extract_tables("SELECT d.* FROM doctors d WHERE EXISTS "
                       "(SELECT 1 FROM patients p WHERE p.doctor_id = d.id)")
        # ['doctors', 'patients']
    """
    tables: List[str] = []
    for table in extract_table_aliases(sql).values():
        if table not in tables:
            tables.append(table)
    return tables


def annotate_schema(schema: Schema, sql: str) -> List[AnnotatedTable]:
    """Schema tables in order, each flagged with whether the statement queries it."""
    referenced = set(extract_tables(sql)) if sql else set()
    return [
        AnnotatedTable(
            name=table.name,
            columns=list(table.columns),
            queried=table.name.lower() in referenced
        )
        for table in schema.tables
    ]
