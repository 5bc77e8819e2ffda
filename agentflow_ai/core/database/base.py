"""
Base database models and utilities.

This module provides the foundational database components used across
all entities in the persistence layer using SQLModel.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ConfigDict
from sqlmodel import SQLModel


class Base(SQLModel):
    """Base class for all SQLModel entities."""

    model_config = ConfigDict(arbitrary_types_allowed=True)


def dump_json(value: Any) -> str:
    """Serialize a JSON-ready value for a text column."""
    return json.dumps(value, ensure_ascii=False, default=str)


def load_json(raw: str | None) -> Any:
    """Parse a text column written by :func:`dump_json`; unreadable values become ``None``."""
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return None
