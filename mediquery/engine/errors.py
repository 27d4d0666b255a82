# MediQuery - Error Classes
# ==========================
"""
Error taxonomy for the query pipeline.

Only ValidationError is ever fatal to a request. Everything else is
recovered by the stage that raised it (rule-based SQL, mock rows,
deterministic summary) or turned into a degraded response.
"""

from typing import Optional


BLANK_QUESTION_MESSAGE = "Please provide a question to search the database."
READ_ONLY_MESSAGE = "Only SELECT queries are allowed for security reasons."


class MediQueryError(Exception):
    """Base exception for pipeline errors."""
    pass


# =============================================================================
# VALIDATION
# =============================================================================

class ValidationError(MediQueryError):
    """Raised for a missing question or a statement that is not read-only."""

    def __init__(self, message: str, reason: Optional[str] = None):
        self.reason = reason or message
        super().__init__(message)


# =============================================================================
# GENERATION
# =============================================================================

class GenerationError(MediQueryError):
    """Raised when the language model cannot produce a usable SELECT."""

    def __init__(self, provider: str, reason: Optional[str] = None):
        self.provider = provider
        self.reason = reason
        super().__init__(
            f"The AI model ({provider}) could not generate a valid SQL query. "
            f"Reason: {reason or 'Unknown'}."
        )


class ModelUnavailableError(GenerationError):
    """Raised when no model provider is configured."""

    def __init__(self, reason: str = "No model credential configured"):
        super().__init__("none", reason)


# =============================================================================
# EXECUTION
# =============================================================================

class ExecutionError(MediQueryError):
    """Base class for live store faults."""

    def __init__(self, message: str, sql: Optional[str] = None):
        self.sql = sql
        super().__init__(message)


class DatabaseError(ExecutionError):
    """A store error that is surfaced to the caller."""

    def __init__(self, underlying: str, sql: Optional[str] = None):
        self.underlying = underlying
        super().__init__(f"Database error: {underlying}", sql)


class StoreUnavailableError(ExecutionError):
    """No live store is configured, or it cannot be reached."""

    def __init__(self, reason: str = "Live database is not configured", sql: Optional[str] = None):
        self.reason = reason
        super().__init__(reason, sql)


class MissingRelationError(ExecutionError):
    """The store reported that a referenced relation does not exist."""

    def __init__(self, message: str, relation: Optional[str] = None, sql: Optional[str] = None):
        self.relation = relation
        super().__init__(message, sql)


# =============================================================================
# SUMMARIZATION
# =============================================================================

class SummarizationError(MediQueryError):
    """Raised when the model cannot explain a result set."""
    pass
