# MediQuery - Result Summarizer
# ==============================
"""
Result Summarizer
=================
Turns result rows into a short plain-language answer.

A deterministic baseline is always computed first. The language model is
then asked for a friendlier explanation; if it is unavailable or fails,
the baseline is the answer. `summarize()` never raises.

Responses are written for hospital staff, not database engineers: the
answer avoids SQL terminology.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, List

from .models import Schema, ResultSet, Attempt
from .errors import SummarizationError
from .llm_providers import BaseLLMProvider
from .context_builder import ContextBuilder
from .table_extractor import extract_tables
from .rule_generator import singular

logger = logging.getLogger(__name__)


NO_RESULTS_MESSAGE = "No results found for your query."
SAMPLE_DATA_NOTE = "The live database could not answer this question, so sample data is shown."


def is_existence_query(sql: Optional[str]) -> bool:
    """An EXISTS check across at least two tables."""
    lowered = (sql or "").lower()
    return "exists" in lowered and len(extract_tables(lowered)) >= 2


def display_name(row: dict) -> str:
    """The `name` column, else the first text value, else the first value."""
    if row.get('name') is not None:
        return str(row['name'])
    for value in row.values():
        if isinstance(value, str):
            return value
    values = list(row.values())
    return str(values[0]) if values else ""


def with_sample_note(answer: str) -> str:
    return f"{SAMPLE_DATA_NOTE} {answer}"


def baseline_summary(rows: ResultSet,
                     question: str,
                     sql: Optional[str],
                     sample: bool = False) -> str:
    """
    Deterministic answer built only from the rows and the statement.

    Args:
        rows: Result rows
        question: User's question
        sql: Statement that produced the rows
        sample: Rows are fixture data, not a live answer
    """
    answer = _describe_rows(rows, question, sql, sample)
    return with_sample_note(answer) if sample else answer


def _describe_rows(rows: ResultSet, question: str, sql: Optional[str], sample: bool) -> str:
    if not rows:
        if is_existence_query(sql):
            entity, related = extract_tables(sql.lower())[:2]
            return f"No {entity} with matching {related} were found."
        return NO_RESULTS_MESSAGE

    count = len(rows)

    if is_existence_query(sql):
        entity, related = extract_tables(sql.lower())[:2]
        label = entity if count != 1 else singular(entity)
        names = ", ".join(display_name(r) for r in rows)
        return f"Found {count} {label} with at least one matching {singular(related)}: {names}."

    # Single value, e.g. a count
    if count == 1 and len(rows[0]) == 1:
        return f"The answer is {next(iter(rows[0].values()))}."

    noun = "result" if count == 1 else "results"
    verb = "Showing" if sample else "Found"
    columns = ", ".join(rows[0].keys())
    return (
        f"{verb} {count} {noun} for your query \"{question}\". "
        f"Each record contains the following information: {columns}."
    )


# =============================================================================
# STRATEGIES
# =============================================================================

class SummaryStrategy(ABC):
    """One way of explaining a result set."""

    name: str

    @abstractmethod
    def summarize(self,
                  rows: ResultSet,
                  question: str,
                  sql: Optional[str],
                  schema: Schema,
                  sample: bool = False) -> Attempt[str]:
        """An answer, or a failed Attempt. Never raises."""
        pass


class ModelSummaryStrategy(SummaryStrategy):
    """Plain-language explanation from the language model."""

    name = "model"

    def __init__(self,
                 provider: Optional[BaseLLMProvider],
                 builder: Optional[ContextBuilder] = None):
        self.provider = provider
        self.builder = builder or ContextBuilder()

    def summarize(self, rows, question, sql, schema, sample=False) -> Attempt[str]:
        if self.provider is None:
            return Attempt.failure(SummarizationError("Language model unavailable"), self.name)

        context = self.builder.build_summary_context(question, sql, rows, schema)
        try:
            answer = self.provider.complete(
                context.user_prompt,
                system_prompt=context.system_prompt,
                model=self.provider.config.claude_summary_model,
                temperature=self.provider.config.summary_temperature
            )
        except Exception as e:
            logger.warning(f"Model summary failed, using deterministic summary: {e}")
            return Attempt.failure(SummarizationError(str(e)), self.name)

        if not answer:
            logger.warning("Model returned an empty summary, using deterministic summary")
            return Attempt.failure(SummarizationError("empty reply"), self.name)
        return Attempt.success(with_sample_note(answer) if sample else answer, self.name)


class TemplateSummaryStrategy(SummaryStrategy):
    """The deterministic baseline."""

    name = "template"

    def summarize(self, rows, question, sql, schema, sample=False) -> Attempt[str]:
        return Attempt.success(baseline_summary(rows, question, sql, sample), self.name)


# =============================================================================
# SUMMARIZER
# =============================================================================

class ResultSummarizer:
    """
    Summarizes rows for the user.

    Example:
        summarizer = ResultSummarizer(provider)
        answer = summarizer.summarize(rows, "list all doctors", sql, schema)
    """

    def __init__(self,
                 provider: Optional[BaseLLMProvider] = None,
                 strategies: Optional[List[SummaryStrategy]] = None):
        self.strategies = strategies or [
            ModelSummaryStrategy(provider),
            TemplateSummaryStrategy(),
        ]

    def summarize(self,
                  rows: Optional[ResultSet],
                  question: str,
                  sql: Optional[str],
                  schema: Schema,
                  sample: bool = False) -> str:
        """
        Answer text for the rows. Never raises.

        With `sample` set the answer opens with a note that the rows are
        sample data, so a substituted table never reads as a live match.
        """
        rows = rows or []

        # Empty results are described without consulting the model
        if not rows:
            return baseline_summary(rows, question, sql, sample)

        for strategy in self.strategies:
            try:
                attempt = strategy.summarize(rows, question, sql, schema, sample=sample)
            except Exception as e:
                logger.warning(f"Summary strategy '{strategy.name}' raised: {e}")
                continue
            if attempt.ok:
                return attempt.value

        return baseline_summary(rows, question, sql, sample)
