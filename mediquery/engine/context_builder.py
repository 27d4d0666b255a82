# MediQuery - Context Builder
# ============================
"""
Context Builder
===============
Builds the prompts sent to the language model:
- SQL generation: rendered schema, sample rows and the verbatim question
- Summarization: question, statement, compact schema and the result rows

The renderer lists tables in schema order so the same schema always
produces the same prompt.
"""

import json
import logging
from dataclasses import dataclass
from typing import List, Optional

from .models import Schema, Table, ResultSet

logger = logging.getLogger(__name__)


# Rows included in a summary prompt; the rest are only counted
MAX_SUMMARY_ROWS = 50


@dataclass
class LLMContext:
    """Prompt pair plus a rough size estimate."""
    system_prompt: str
    user_prompt: str
    schema_context: str = ""
    token_count_estimate: int = 0


SQL_SYSTEM_PROMPT = """You are a SQL query generator for a hospital database (DuckDB dialect).
Return exactly one read-only SELECT statement and nothing else: no explanation, no markdown.

RULES:
- ONLY use tables and columns listed in the schema - do NOT invent names
- Never write INSERT, UPDATE, DELETE, DROP, ALTER, CREATE or any other modifying statement
- When the question asks for a whole entity ("all doctors", "list hospitals"), use SELECT *
- When the question names specific columns, select exactly those columns
- For questions spanning tables, use EXISTS or JOIN with short table aliases
- Foreign keys follow the <table>_id convention (patients.doctor_id -> doctors.id)"""


SUMMARY_SYSTEM_PROMPT = """You explain database results to hospital staff in plain language.
Answer the question directly in at most 3-4 sentences.
Do not mention SQL, tables, joins or other database terms.
If the results are empty, say that nothing matched."""


def render_table(table: Table, include_samples: bool = True) -> str:
    """One schema block: name, columns, description, sample rows."""
    lines = [f"Table: {table.name}"]

    column_parts = []
    for column in table.columns:
        part = f"{column.name} ({column.type})"
        if column.description:
            part += f" - {column.description}"
        column_parts.append(part)
    lines.append(f"Columns: {', '.join(column_parts)}")

    if table.description:
        lines.append(f"Description: {table.description}")

    if include_samples and table.sample_data:
        lines.append("Sample rows:")
        for row in table.sample_data:
            lines.append(f"  {json.dumps(row, default=str)}")

    return "\n".join(lines)


def render_schema(schema: Schema, include_samples: bool = True) -> str:
    """Full schema text, tables in schema order."""
    return "\n\n".join(render_table(t, include_samples) for t in schema.tables)


def render_compact_schema(schema: Schema) -> str:
    """One line per table: name(col, col, ...)."""
    return "\n".join(
        f"{t.name}({', '.join(t.column_names)})" for t in schema.tables
    )


class ContextBuilder:
    """
    Builds prompts for SQL generation and result summarization.

    Example:
        builder = ContextBuilder()
        context = builder.build_sql_context("list all doctors", schema)
        sql = provider.complete(context.user_prompt, context.system_prompt)
    """

    def __init__(self, include_samples: bool = True, max_summary_rows: int = MAX_SUMMARY_ROWS):
        """
        Initialize context builder.

        Args:
            include_samples: Include sample rows in the SQL prompt
            max_summary_rows: Rows serialized into the summary prompt
        """
        self.include_samples = include_samples
        self.max_summary_rows = max_summary_rows

    def build_sql_context(self, question: str, schema: Schema) -> LLMContext:
        """Prompt asking the model for a single SELECT answering the question."""
        schema_context = render_schema(schema, self.include_samples)

        user_prompt = "\n".join([
            "You are a SQL query generator. Use the schema below.",
            "",
            "SCHEMA:",
            schema_context,
            "",
            f"QUESTION: {question}",
            "",
            "SQL:",
        ])

        return LLMContext(
            system_prompt=SQL_SYSTEM_PROMPT,
            user_prompt=user_prompt,
            schema_context=schema_context,
            token_count_estimate=len(SQL_SYSTEM_PROMPT + user_prompt) // 4
        )

    def build_summary_context(self,
                              question: str,
                              sql: Optional[str],
                              rows: ResultSet,
                              schema: Schema) -> LLMContext:
        """Prompt asking the model to explain rows in plain language."""
        schema_context = render_compact_schema(schema)
        shown = rows[:self.max_summary_rows]

        lines: List[str] = [
            f"QUESTION: {question}",
            "",
            f"QUERY USED: {sql or 'none'}",
            "",
            "SCHEMA:",
            schema_context,
            "",
            f"RESULTS ({len(rows)} rows):",
            json.dumps(shown, default=str, indent=2),
        ]
        if len(rows) > len(shown):
            lines.append(f"... {len(rows) - len(shown)} more rows not shown")
        lines.extend(["", "Write a short, friendly answer to the question."])

        user_prompt = "\n".join(lines)
        return LLMContext(
            system_prompt=SUMMARY_SYSTEM_PROMPT,
            user_prompt=user_prompt,
            schema_context=schema_context,
            token_count_estimate=len(SUMMARY_SYSTEM_PROMPT + user_prompt) // 4
        )
