"""
Library circulation database.

Key Components:
- models: Pydantic models for entities and report rows
- database: SQLAlchemy schema, borrow guard trigger, view and repositories
- config: Configuration management with Pydantic v2
- seed: sample and demo data
- init_database: the ``library-db-init`` command
"""

__version__ = "0.1.0"

# Make database module available at package level
from . import database

__all__ = [
    "__version__",
    "database",
]
