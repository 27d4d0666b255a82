# MediQuery - Engine Models
# ==========================
"""
Common dataclasses and models for the query pipeline.

Everything here is request-scoped and read-only once built: the schema is
fetched fresh per request (or served from a short-lived cache), and the
QueryResponse is assembled once by the orchestrator and never mutated.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Generic, TypeVar
from enum import Enum
from datetime import datetime


# Rows as returned by the store: column name -> scalar or None
ResultSet = List[Dict[str, Any]]

SOURCE_STATUS_OK = "ok"

T = TypeVar("T")


class Provenance(str, Enum):
    """Which strategy produced a generated statement."""
    MODEL = "model"
    RULE_BASED = "rule-based"
    DIRECT_PATTERN = "direct-pattern"


class PipelineState(str, Enum):
    """Orchestrator states, in the order a healthy request walks them."""
    IDLE = "idle"
    SCHEMA_RESOLVED = "schema_resolved"
    SQL_GENERATED = "sql_generated"
    EXECUTED = "executed"
    SUMMARIZED = "summarized"
    DONE = "done"
    ERRORED = "errored"


class DataSourceKind(str, Enum):
    """Where the rows in a response came from."""
    LIVE = "live"
    MOCK = "mock"


@dataclass(frozen=True)
class Column:
    """A column of a table."""
    name: str
    type: str
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {'name': self.name, 'type': self.type}
        if self.description:
            result['description'] = self.description
        return result


@dataclass
class Table:
    """A table: ordered columns, optional description and grounding rows."""
    name: str
    columns: List[Column] = field(default_factory=list)
    description: Optional[str] = None
    sample_data: Optional[ResultSet] = None

    def __post_init__(self):
        seen = set()
        for column in self.columns:
            if column.name in seen:
                raise ValueError(f"Duplicate column '{column.name}' in table '{self.name}'")
            seen.add(column.name)

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def has_column(self, name: str) -> bool:
        return any(c.name.lower() == name.lower() for c in self.columns)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'name': self.name,
            'columns': [c.to_dict() for c in self.columns],
        }
        if self.description:
            result['description'] = self.description
        if self.sample_data:
            result['sample_data'] = self.sample_data
        return result


@dataclass
class Schema:
    """Ordered tables. Insertion order is presentation order."""
    tables: List[Table] = field(default_factory=list)

    def __post_init__(self):
        seen = set()
        for table in self.tables:
            if table.name in seen:
                raise ValueError(f"Duplicate table '{table.name}' in schema")
            seen.add(table.name)

    @property
    def table_names(self) -> List[str]:
        return [t.name for t in self.tables]

    @property
    def is_empty(self) -> bool:
        return not self.tables

    def get_table(self, name: str) -> Optional[Table]:
        """Look up a table by name (exact match first, then case-insensitive)."""
        for table in self.tables:
            if table.name == name:
                return table
        for table in self.tables:
            if table.name.lower() == name.lower():
                return table
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {'tables': [t.to_dict() for t in self.tables]}


@dataclass(frozen=True)
class GeneratedQuery:
    """A single SELECT statement and the strategy that produced it."""
    sql: str
    provenance: Provenance
    model_used: Optional[str] = None
    generation_time_ms: float = 0.0

    @property
    def is_select(self) -> bool:
        return self.sql.strip().lower().startswith('select')


@dataclass(frozen=True)
class AnnotatedTable:
    """A schema table flagged with whether the final SQL references it."""
    name: str
    columns: List[Column]
    queried: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'columns': [c.to_dict() for c in self.columns],
            'queried': self.queried
        }


@dataclass(frozen=True)
class Attempt(Generic[T]):
    """
    Outcome of one strategy attempt.

    Strategies return an Attempt instead of raising, so the orchestrator
    can walk an ordered list of them until one succeeds.
    """
    ok: bool
    value: Optional[T] = None
    error: Optional[Exception] = None
    source: str = ""

    @classmethod
    def success(cls, value: T, source: str = "") -> 'Attempt[T]':
        return cls(ok=True, value=value, source=source)

    @classmethod
    def failure(cls, error: Exception, source: str = "") -> 'Attempt[T]':
        return cls(ok=False, error=error, source=source)


@dataclass(frozen=True)
class QueryResponse:
    """The pipeline's output contract. Built once per request."""
    answer: str
    sql: Optional[str] = None
    data: Optional[ResultSet] = None
    schema_annotated: List[AnnotatedTable] = field(default_factory=list)
    source_status: str = SOURCE_STATUS_OK

    # Additional metadata
    provenance: Optional[Provenance] = None
    data_source: Optional[DataSourceKind] = None
    state: PipelineState = PipelineState.DONE
    error: Optional[str] = None
    total_time_ms: float = 0.0
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def success(self) -> bool:
        return self.state == PipelineState.DONE and self.error is None

    def format_response(self, include_sql: bool = True) -> str:
        """Format complete response for a terminal or chat window."""
        lines = [
            "## Answer",
            "",
            self.answer,
            "",
        ]

        if self.source_status != SOURCE_STATUS_OK:
            lines.append(f"**Degraded:** {self.source_status}")
            lines.append("")

        if include_sql and self.sql:
            label = f" ({self.provenance.value})" if self.provenance else ""
            lines.append(f"**SQL{label}:**")
            lines.append("")
            lines.append("```sql")
            lines.append(self.sql)
            lines.append("```")
            lines.append("")

        if self.data:
            columns = list(self.data[0].keys())
            lines.append("| " + " | ".join(columns) + " |")
            lines.append("|" + "---|" * len(columns))
            for row in self.data[:20]:
                lines.append("| " + " | ".join(str(row.get(c, "")) for c in columns) + " |")
            if len(self.data) > 20:
                lines.append(f"_... {len(self.data) - 20} more rows_")

        return "\n".join(lines).rstrip()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            'answer': self.answer,
            'sql': self.sql,
            'provenance': self.provenance.value if self.provenance else None,
            'data': self.data,
            'schemaAnnotated': [t.to_dict() for t in self.schema_annotated],
            'sourceStatus': self.source_status,
            'dataSource': self.data_source.value if self.data_source else None,
            'state': self.state.value,
            'error': self.error,
            'total_time_ms': self.total_time_ms,
            'timestamp': self.timestamp
        }
