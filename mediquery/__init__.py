# MediQuery
"""
MediQuery - natural-language questions over a hospital database.

Subpackages:
- engine: question -> SQL -> rows -> answer pipeline
- data: DuckDB loader for the demo database
- api: FastAPI service
"""

__version__ = "1.0.0"
