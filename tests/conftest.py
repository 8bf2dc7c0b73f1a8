"""Pytest configuration and fixtures."""
import os
import tempfile
from pathlib import Path

import pytest

from lightdao.config_runtime import load_runtime_config
from lightdao.connection import connect
from lightdao.database import Database
from lightdao.schema import Registry
from sample_entities import TABLES, Teacher


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's LIGHTDAO_* settings out of the tests."""
    for name in list(os.environ):
        if name.startswith("LIGHTDAO_") and not name.startswith("LIGHTDAO_LOG"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def db_path():
    """Path of a fresh temporary database file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
def temp_db(db_path):
    """Raw lightdao connection on a temporary database."""
    conn = connect(db_path, load_runtime_config())
    yield conn
    conn.close()


@pytest.fixture
def registry():
    return Registry()


@pytest.fixture
def db(db_path, registry):
    """Database facade with every sample table created."""
    database = Database.open(db_path, registry=registry)
    database.create_tables(TABLES)
    yield database
    database.close()


@pytest.fixture
def teachers(db):
    """Two saved teachers: Ada (math) and Grace (cs)."""
    return [
        db.save(Teacher(name="Ada", subject="math")),
        db.save(Teacher(name="Grace", subject="cs")),
    ]
