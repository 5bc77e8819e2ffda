"""Unit tests for database URL normalization and JSON column helpers."""

import pytest

from agentflow_ai.core.database import normalize_db_url
from agentflow_ai.core.database.base import dump_json, load_json


@pytest.mark.parametrize(
    "url,expected",
    [
        ("postgres://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
        ("postgresql://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
        ("postgresql+psycopg2://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
        ("postgresql+asyncpg://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
        ("sqlite+aiosqlite:///./x.db", "sqlite+aiosqlite:///./x.db"),
    ],
)
def test_normalize_db_url(url, expected):
    assert normalize_db_url(url) == expected


def test_json_helpers():
    assert load_json(dump_json({"é": [1, None]})) == {"é": [1, None]}
    assert load_json(None) is None
    assert load_json("") is None
    assert load_json("{not json") is None
