"""
Database layer for AgentFlow-AI.

Structure:
- entities/: SQLModel table models for runs, steps, usage and events
- utils.py: Engine, session factory and table creation helpers
"""

from .base import Base
from .utils import (
    create_all,
    create_engine,
    create_sessionmaker,
    normalize_db_url,
)

__all__ = [
    "Base",
    "create_all",
    "create_engine",
    "create_sessionmaker",
    "normalize_db_url",
]
