# MediQuery Data Module
# ======================
"""
Loading data into the DuckDB database the engine queries.

- DatabaseLoader: DataFrame/CSV tables with table and column comments
- seed_demo_database: the demo hospital database
"""

from .loader import DatabaseLoader, LoadResult, seed_demo_database

__all__ = [
    'DatabaseLoader',
    'LoadResult',
    'seed_demo_database',
]
