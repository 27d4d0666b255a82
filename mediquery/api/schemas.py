# MediQuery API Models
# =====================
"""Pydantic models for API requests and responses."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any


# ============================================
# Requests
# ============================================

class QueryRequest(BaseModel):
    """Natural-language question."""
    query: Optional[str] = Field(default=None, description="Question to answer")


# ============================================
# Responses
# ============================================

class ColumnInfo(BaseModel):
    name: str
    type: str
    description: Optional[str] = None


class AnnotatedTableInfo(BaseModel):
    """Schema table flagged with whether the SQL queried it."""
    name: str
    columns: List[ColumnInfo]
    queried: bool


class QueryResult(BaseModel):
    """Pipeline answer for one question."""
    answer: str
    sql: Optional[str] = None
    provenance: Optional[str] = None
    data: Optional[List[Dict[str, Any]]] = None
    schemaAnnotated: List[AnnotatedTableInfo] = []
    sourceStatus: str = "ok"
    dataSource: Optional[str] = None
    state: str
    error: Optional[str] = None
    total_time_ms: float = 0.0
    timestamp: str


class SchemaResult(BaseModel):
    """Current schema and where it came from."""
    success: bool = True
    schema_: Dict[str, Any] = Field(alias="schema")
    tableCount: int
    tables: List[str]
    source: str
    reason: Optional[str] = None

    model_config = {"populate_by_name": True}


class ModelStatus(BaseModel):
    is_valid: bool
    message: str
    provider: Optional[str] = None
    model: Optional[str] = None


class StoreStatus(BaseModel):
    configured: bool
    reachable: bool
    message: str


class StatusResult(BaseModel):
    """Availability of the model and the live store."""
    model: ModelStatus
    store: StoreStatus
