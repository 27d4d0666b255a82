# MediQuery Engine Package
"""
Query Engine
============
Natural-language questions over the hospital database.

Pipeline:
1. Validation - blank or oversized questions are rejected
2. Schema Resolution - live DuckDB introspection, fallback schema otherwise
3. SQL Generation - direct pattern, language model, rule-based fallback
4. Execution - read-only SELECT, mock rows when the store cannot answer
5. Summarization - model explanation, deterministic baseline otherwise
6. Annotation - schema tables flagged with whether the SQL queried them
"""

# Models
from .models import (
    Column,
    Table,
    Schema,
    ResultSet,
    GeneratedQuery,
    Provenance,
    PipelineState,
    DataSourceKind,
    AnnotatedTable,
    Attempt,
    QueryResponse
)

# Errors
from .errors import (
    MediQueryError,
    ValidationError,
    GenerationError,
    ModelUnavailableError,
    ExecutionError,
    DatabaseError,
    StoreUnavailableError,
    MissingRelationError,
    SummarizationError
)

# Configuration
from .config import EngineConfig
from .llm_providers import (
    LLMConfig,
    LLMProvider,
    BaseLLMProvider,
    ClaudeProvider,
    MockProvider,
    create_llm_provider,
    check_model_status
)

# Pipeline Components
from .data_store import StatementRunner, DuckDBStatementRunner, create_statement_runner
from .schema_provider import SchemaProvider, SchemaResolution
from .context_builder import ContextBuilder, LLMContext
from .rule_generator import rule_based_sql, match_direct_pattern
from .sql_generator import SQLGenerator, generate_sql
from .sql_validator import SQLValidator, ValidatorConfig
from .executor import QueryExecutor, ExecutionOutcome
from .table_extractor import extract_tables, annotate_schema
from .explanation_generator import ResultSummarizer, baseline_summary

# Main Pipeline
from .pipeline import (
    QueryPipeline,
    EngineDependencies,
    build_dependencies,
    create_pipeline,
    translate_and_run
)

__all__ = [
    # Models
    'Column',
    'Table',
    'Schema',
    'ResultSet',
    'GeneratedQuery',
    'Provenance',
    'PipelineState',
    'DataSourceKind',
    'AnnotatedTable',
    'Attempt',
    'QueryResponse',

    # Errors
    'MediQueryError',
    'ValidationError',
    'GenerationError',
    'ModelUnavailableError',
    'ExecutionError',
    'DatabaseError',
    'StoreUnavailableError',
    'MissingRelationError',
    'SummarizationError',

    # Configuration
    'EngineConfig',
    'LLMConfig',
    'LLMProvider',
    'BaseLLMProvider',
    'ClaudeProvider',
    'MockProvider',
    'create_llm_provider',
    'check_model_status',

    # Components
    'StatementRunner',
    'DuckDBStatementRunner',
    'create_statement_runner',
    'SchemaProvider',
    'SchemaResolution',
    'ContextBuilder',
    'LLMContext',
    'rule_based_sql',
    'match_direct_pattern',
    'SQLGenerator',
    'generate_sql',
    'SQLValidator',
    'ValidatorConfig',
    'QueryExecutor',
    'ExecutionOutcome',
    'extract_tables',
    'annotate_schema',
    'ResultSummarizer',
    'baseline_summary',

    # Pipeline
    'QueryPipeline',
    'EngineDependencies',
    'build_dependencies',
    'create_pipeline',
    'translate_and_run'
]
