# MediQuery - Query Pipeline
# ===========================
"""
Query Pipeline
==============
Main orchestrator: question in, QueryResponse out.

Pipeline Steps:
1. Validation - blank or oversized questions stop here
2. Schema Resolution - live introspection or the fallback schema
3. SQL Generation - direct pattern, model, then rule-based
4. Execution - live rows, or mock rows when the store cannot answer
5. Summarization - model explanation, or the deterministic baseline
6. Annotation - flag the schema tables the final SQL queried

States walk Idle -> SchemaResolved -> SqlGenerated -> Executed ->
Summarized -> Done. Errored is terminal and still yields a response.
`process()` never raises.
"""

import time
import logging
from dataclasses import dataclass, field
from typing import Optional, List

from .models import (
    QueryResponse, PipelineState, GeneratedQuery, DataSourceKind, SOURCE_STATUS_OK
)
from .errors import (
    ValidationError, DatabaseError, ExecutionError,
    BLANK_QUESTION_MESSAGE, READ_ONLY_MESSAGE
)
from .config import EngineConfig
from .llm_providers import BaseLLMProvider, try_create_llm_provider
from .data_store import StatementRunner, create_statement_runner
from .schema_provider import SchemaProvider
from .sql_generator import SQLGenerator
from .executor import QueryExecutor, ExecutionOutcome
from .explanation_generator import ResultSummarizer
from .table_extractor import annotate_schema

logger = logging.getLogger(__name__)


DATABASE_ERROR_MESSAGE = (
    "There was an error running your query. "
    "The database might be unavailable or the query was invalid."
)
UNEXPECTED_ERROR_MESSAGE = (
    "Sorry, something went wrong while processing your request. Please try again."
)
NON_TEXT_QUESTION_MESSAGE = "Please provide your question as text."


# =============================================================================
# DEPENDENCIES
# =============================================================================

@dataclass
class EngineDependencies:
    """Process-wide collaborators, each optional, with a status reason."""
    config: EngineConfig = field(default_factory=EngineConfig)
    model: Optional[BaseLLMProvider] = None
    runner: Optional[StatementRunner] = None
    model_status: str = SOURCE_STATUS_OK
    store_status: str = SOURCE_STATUS_OK


def build_dependencies(config: Optional[EngineConfig] = None) -> EngineDependencies:
    """
    Create the model provider and statement runner once per process.

    Missing credentials are not errors: the matching field is None and
    its status explains why.
    """
    config = config or EngineConfig.from_env()

    model, model_status = try_create_llm_provider(config.llm)

    runner = create_statement_runner(
        config.db_path,
        schema=config.db_schema,
        timeout_seconds=config.query_timeout_seconds,
        max_rows=config.max_rows
    )
    store_status = SOURCE_STATUS_OK if runner else "Live database is not configured"

    logger.info(
        f"Engine dependencies ready (model: {model_status}, store: {store_status})"
    )
    return EngineDependencies(
        config=config,
        model=model,
        runner=runner,
        model_status=model_status,
        store_status=store_status
    )


# =============================================================================
# PIPELINE
# =============================================================================

class QueryPipeline:
    """
    Translates a question into SQL, runs it and explains the result.

    Example:
        pipeline = create_pipeline()
        response = pipeline.process("how many doctors are there")
        print(response.format_response())
    """

    def __init__(self,
                 schema_provider: SchemaProvider,
                 generator: SQLGenerator,
                 executor: QueryExecutor,
                 summarizer: ResultSummarizer,
                 model_status: str = SOURCE_STATUS_OK,
                 max_question_length: int = 500):
        """
        Initialize pipeline.

        Args:
            schema_provider: Schema source (live with fallback)
            generator: SQL strategy chain
            executor: Statement execution with mock substitution
            summarizer: Answer strategy chain
            model_status: "ok", or why the language model is unusable
            max_question_length: Longest question accepted
        """
        self.schema_provider = schema_provider
        self.generator = generator
        self.executor = executor
        self.summarizer = summarizer
        self.model_status = model_status
        self.max_question_length = max_question_length

    @classmethod
    def from_dependencies(cls, deps: EngineDependencies) -> "QueryPipeline":
        """Wire every component from one set of dependencies."""
        return cls(
            schema_provider=SchemaProvider(deps.runner, cache_ttl=deps.config.schema_cache_ttl),
            generator=SQLGenerator(deps.model),
            executor=QueryExecutor(deps.runner),
            summarizer=ResultSummarizer(deps.model),
            model_status=deps.model_status,
            max_question_length=deps.config.max_question_length
        )

    def process(self, question: Optional[str]) -> QueryResponse:
        """
        Answer a natural-language question.

        Args:
            question: User's question

        Returns:
            QueryResponse; never raises
        """
        start_time = time.time()
        state = PipelineState.IDLE

        # STEP 1: Validation (no external calls for bad input)
        try:
            question = self.validate_question(question)
        except ValidationError as e:
            logger.warning(f"Rejected question: {e.reason}")
            return QueryResponse(
                answer=str(e),
                source_status=self.model_status,
                state=PipelineState.ERRORED,
                error=e.reason,
                total_time_ms=self._elapsed(start_time)
            )

        degradations: List[str] = []
        if self.model_status != SOURCE_STATUS_OK:
            degradations.append(self.model_status)

        schema = None
        query: Optional[GeneratedQuery] = None

        try:
            # STEP 2: Schema
            logger.info("Step 2: Resolving schema")
            resolution = self.schema_provider.resolve()
            schema = resolution.schema
            if not resolution.is_live:
                degradations.append(f"Using fallback schema: {resolution.reason}")
            state = PipelineState.SCHEMA_RESOLVED

            # STEP 3: SQL
            logger.info("Step 3: Generating SQL")
            query = self.generator.generate(question, schema)
            state = PipelineState.SQL_GENERATED

            # STEP 4: Execution
            logger.info(f"Step 4: Executing SQL ({query.provenance.value})")
            live_tables = schema.table_names if resolution.is_live else None
            try:
                outcome = self._execute(query, live_tables)
            except ValidationError as e:
                logger.error(f"Generated statement rejected: {e.reason}")
                return QueryResponse(
                    answer=READ_ONLY_MESSAGE,
                    schema_annotated=annotate_schema(schema, None),
                    source_status=self._status(degradations),
                    provenance=query.provenance,
                    state=PipelineState.ERRORED,
                    error=e.reason,
                    total_time_ms=self._elapsed(start_time)
                )
            except ExecutionError as e:
                logger.error(f"Execution failed with no fallback data: {e}")
                return self._unexecuted_response(
                    DATABASE_ERROR_MESSAGE, query, schema, degradations, e, start_time
                )
            except Exception as e:
                logger.exception(f"Unexpected failure while executing SQL: {e}")
                return self._unexecuted_response(
                    UNEXPECTED_ERROR_MESSAGE, query, schema, degradations, e, start_time
                )
            if outcome.is_mock:
                degradations.append(f"Showing sample data ({outcome.reason})")
            state = PipelineState.EXECUTED

            # STEP 5: Summary
            logger.info(f"Step 5: Summarizing {len(outcome.rows)} rows")
            answer = self.summarizer.summarize(
                outcome.rows, question, query.sql, schema, sample=outcome.is_mock
            )
            state = PipelineState.SUMMARIZED

            # STEP 6: Annotation
            annotated = annotate_schema(schema, query.sql)
            state = PipelineState.DONE

            total_time = self._elapsed(start_time)
            logger.info(f"Query answered in {total_time:.0f}ms ({outcome.data_source.value} data)")
            return QueryResponse(
                answer=answer,
                sql=query.sql,
                data=outcome.rows,
                schema_annotated=annotated,
                source_status=self._status(degradations),
                provenance=query.provenance,
                data_source=outcome.data_source,
                state=state,
                total_time_ms=total_time
            )

        except Exception as e:
            logger.exception(f"Pipeline failed in state {state.value}: {e}")
            return QueryResponse(
                answer=UNEXPECTED_ERROR_MESSAGE,
                sql=query.sql if query else None,
                schema_annotated=annotate_schema(schema, query.sql if query else None) if schema else [],
                source_status=self._status(degradations + [f"Failed in state {state.value}"]),
                provenance=query.provenance if query else None,
                state=PipelineState.ERRORED,
                error=str(e),
                total_time_ms=self._elapsed(start_time)
            )

    # Name used by the HTTP layer and the CLI
    translate_and_run = process

    def validate_question(self, question: Optional[str]) -> str:
        """Trimmed question, or ValidationError for blank, non-text or oversized input."""
        if question is not None and not isinstance(question, str):
            raise ValidationError(
                NON_TEXT_QUESTION_MESSAGE,
                reason=f"question is {type(question).__name__}, not text"
            )
        if question is None or not question.strip():
            raise ValidationError(BLANK_QUESTION_MESSAGE, reason="blank question")
        question = question.strip()
        if len(question) > self.max_question_length:
            raise ValidationError(
                f"Please keep your question under {self.max_question_length} characters.",
                reason=f"question longer than {self.max_question_length} characters"
            )
        return question

    def _execute(self,
                 query: GeneratedQuery,
                 live_tables: Optional[List[str]] = None) -> ExecutionOutcome:
        """Live/mock execution, then the mock source as a last resort on store errors."""
        try:
            return self.executor.execute_with_source(query, live_tables)
        except DatabaseError as e:
            attempt = self.executor.mock.fetch(query.sql)
            if not attempt.ok:
                raise
            logger.warning(f"Store error, using mock data instead: {e.underlying}")
            return ExecutionOutcome(attempt.value, DataSourceKind.MOCK, "store error")

    def _unexecuted_response(self,
                             answer: str,
                             query: GeneratedQuery,
                             schema,
                             degradations: List[str],
                             error: Exception,
                             start_time: float) -> QueryResponse:
        """Done, but with no data: the statement could not be run anywhere."""
        return QueryResponse(
            answer=answer,
            sql=query.sql,
            data=None,
            schema_annotated=annotate_schema(schema, query.sql),
            source_status=self._status(degradations + ["Query could not be executed"]),
            provenance=query.provenance,
            state=PipelineState.DONE,
            error=f"Failed to execute query: {error}",
            total_time_ms=self._elapsed(start_time)
        )

    @staticmethod
    def _status(degradations: List[str]) -> str:
        return "; ".join(degradations) if degradations else SOURCE_STATUS_OK

    @staticmethod
    def _elapsed(start_time: float) -> float:
        return (time.time() - start_time) * 1000


# =============================================================================
# FACTORIES
# =============================================================================

def create_pipeline(config: Optional[EngineConfig] = None,
                    deps: Optional[EngineDependencies] = None) -> QueryPipeline:
    """
    Factory function to create a configured pipeline.

    Args:
        config: Engine configuration (uses env if not provided)
        deps: Pre-built dependencies (built from config if not provided)
    """
    return QueryPipeline.from_dependencies(deps or build_dependencies(config))


def translate_and_run(question: str, pipeline: Optional[QueryPipeline] = None) -> QueryResponse:
    """Answer one question with the given pipeline, or a freshly configured one."""
    return (pipeline or create_pipeline()).process(question)
