# MediQuery - SQL Generator
# ==========================
"""
SQL Generator
=============
Turns a question into a single SELECT by walking an ordered list of
strategies until one succeeds:

1. DirectPatternStrategy - hand-written SQL for unambiguous intents
2. ModelStrategy         - the language model (skipped when unavailable)
3. RuleBasedStrategy     - deterministic keyword rules, always succeeds

Whatever the strategy, the result is checked by the read-only validator;
a non-SELECT never leaves this module.
"""

import re
import time
import logging
from abc import ABC, abstractmethod
from typing import Optional, List

from .models import Schema, GeneratedQuery, Provenance, Attempt
from .errors import GenerationError, ModelUnavailableError, ValidationError
from .llm_providers import BaseLLMProvider
from .context_builder import ContextBuilder
from .sql_validator import SQLValidator
from .rule_generator import match_direct_pattern, rule_based_sql, SENTINEL_SQL

logger = logging.getLogger(__name__)


def parse_model_sql(response: str) -> str:
    """Pull the statement out of a model reply (bare text or a fenced block)."""
    text = (response or "").strip()

    fenced = re.search(r'```(?:sql)?\s*(.*?)\s*```', text, re.DOTALL | re.IGNORECASE)
    if fenced:
        text = fenced.group(1).strip()

    return text.rstrip().rstrip(';').strip()


# =============================================================================
# STRATEGIES
# =============================================================================

class SqlStrategy(ABC):
    """One way of producing SQL for a question."""

    provenance: Provenance

    @abstractmethod
    def generate(self, question: str, schema: Schema) -> Attempt[GeneratedQuery]:
        """Produce SQL, or a failed Attempt. Never raises."""
        pass


class DirectPatternStrategy(SqlStrategy):
    """Fixed statements for a handful of high-confidence phrasings."""

    provenance = Provenance.DIRECT_PATTERN

    def generate(self, question: str, schema: Schema) -> Attempt[GeneratedQuery]:
        sql = match_direct_pattern(question, schema)
        if sql is None:
            return Attempt.failure(GenerationError("direct-pattern", "no pattern matched"),
                                   self.provenance.value)
        logger.info(f"Direct pattern matched: {sql}")
        return Attempt.success(GeneratedQuery(sql=sql, provenance=self.provenance),
                               self.provenance.value)


class ModelStrategy(SqlStrategy):
    """Asks the language model for a statement."""

    provenance = Provenance.MODEL

    def __init__(self,
                 provider: Optional[BaseLLMProvider],
                 builder: Optional[ContextBuilder] = None):
        self.provider = provider
        self.builder = builder or ContextBuilder()

    def generate(self, question: str, schema: Schema) -> Attempt[GeneratedQuery]:
        if self.provider is None:
            return Attempt.failure(ModelUnavailableError(), self.provenance.value)

        start_time = time.time()
        context = self.builder.build_sql_context(question, schema)

        try:
            reply = self.provider.complete(
                context.user_prompt,
                system_prompt=context.system_prompt,
                temperature=self.provider.config.temperature
            )
        except Exception as e:
            logger.warning(f"Model SQL generation failed: {e}")
            return Attempt.failure(
                GenerationError(self.provider.get_provider_name(), str(e)),
                self.provenance.value
            )

        sql = parse_model_sql(reply)
        if not sql.lower().startswith('select'):
            logger.warning(f"Model returned a non-SELECT reply: {reply[:120]!r}")
            return Attempt.failure(
                GenerationError(self.provider.get_provider_name(), "reply is not a SELECT statement"),
                self.provenance.value
            )

        return Attempt.success(
            GeneratedQuery(
                sql=sql,
                provenance=self.provenance,
                model_used=self.provider.get_model_name(),
                generation_time_ms=(time.time() - start_time) * 1000
            ),
            self.provenance.value
        )


class RuleBasedStrategy(SqlStrategy):
    """Deterministic keyword rules over the schema."""

    provenance = Provenance.RULE_BASED

    def generate(self, question: str, schema: Schema) -> Attempt[GeneratedQuery]:
        try:
            sql = rule_based_sql(question, schema)
        except Exception as e:
            logger.error(f"Rule-based generation failed: {e}")
            return Attempt.failure(GenerationError("rule-based", str(e)), self.provenance.value)
        return Attempt.success(GeneratedQuery(sql=sql, provenance=self.provenance),
                               self.provenance.value)


# =============================================================================
# GENERATOR
# =============================================================================

class SQLGenerator:
    """
    Strategy-chain SQL generator.

    Example:
        generator = SQLGenerator(provider)
        query = generator.generate("how many patients", schema)
        print(query.sql, query.provenance)
    """

    def __init__(self,
                 provider: Optional[BaseLLMProvider] = None,
                 strategies: Optional[List[SqlStrategy]] = None,
                 validator: Optional[SQLValidator] = None,
                 builder: Optional[ContextBuilder] = None):
        """
        Initialize generator.

        Args:
            provider: Language model (None = model strategy always skipped)
            strategies: Override the default strategy chain
            validator: Read-only validator applied to every candidate
            builder: Prompt builder for the model strategy
        """
        self.provider = provider
        self.validator = validator or SQLValidator()
        self.strategies = strategies or [
            DirectPatternStrategy(),
            ModelStrategy(provider, builder),
            RuleBasedStrategy(),
        ]

    def generate(self, question: str, schema: Schema) -> GeneratedQuery:
        """
        Generate one read-only SELECT for the question. Never raises.

        With an empty schema the sentinel `SELECT 1` is returned and the
        model is not consulted.
        """
        if schema.is_empty:
            logger.warning("Schema has no tables; returning sentinel statement")
            return GeneratedQuery(sql=SENTINEL_SQL, provenance=Provenance.RULE_BASED)

        for strategy in self.strategies:
            attempt = strategy.generate(question, schema)
            if not attempt.ok:
                if strategy.provenance == Provenance.MODEL:
                    logger.warning(f"Falling back from model SQL: {attempt.error}")
                continue

            query = attempt.value
            try:
                cleaned = self.validator.ensure_read_only(query.sql)
            except ValidationError as e:
                logger.warning(f"Discarding {attempt.source} SQL that failed validation: {e.reason}")
                continue

            logger.info(f"SQL generated via {query.provenance.value}: {cleaned}")
            return GeneratedQuery(
                sql=cleaned,
                provenance=query.provenance,
                model_used=query.model_used,
                generation_time_ms=query.generation_time_ms
            )

        # Every strategy failed or produced something unsafe
        logger.error("No strategy produced a valid SELECT; returning sentinel statement")
        return GeneratedQuery(sql=SENTINEL_SQL, provenance=Provenance.RULE_BASED)


def generate_sql(question: str,
                 schema: Schema,
                 provider: Optional[BaseLLMProvider] = None) -> GeneratedQuery:
    """Convenience wrapper: default strategy chain with an optional model."""
    return SQLGenerator(provider).generate(question, schema)
