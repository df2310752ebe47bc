"""
Shared pytest fixtures for store tests.
"""

import tempfile
from datetime import datetime

import pytest

from kstor.engine.store import KStor
from kstor.interfaces.persistence import Persistence


class MemoryPersistence(Persistence):
    """In-memory Persistence that records every save."""

    def __init__(self, data: bytes | None = None) -> None:
        self.data = data
        self.saves: list[bytes] = []
        self.ensure_dir_calls = 0
        self.closed = False

    @property
    def path(self) -> str:
        return "<memory>"

    def load(self) -> bytes:
        if self.data is None:
            raise FileNotFoundError(2, "No such file or directory", self.path)
        return self.data

    def save(self, data: bytes) -> None:
        self.data = data
        self.saves.append(data)

    def ensure_dir(self) -> None:
        self.ensure_dir_calls += 1

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def memory():
    """Provide an empty in-memory persistence backend."""
    return MemoryPersistence()


@pytest.fixture
def app_defaults():
    """Defaults with a nested app tree."""
    return {
        "name": "kstor-tests",
        "description": "File-backed store",
        "apps": {
            "subapp1": {"name": "Sub App 1"},
            "subapp2": {"name": "Sub App 2"},
        },
    }


@pytest.fixture
def blog_defaults():
    """Blog collection used by query tests."""
    return {
        "blogs": {
            "nba": {
                "name": "NBA Blog",
                "teams": 30,
                "established": datetime(1920, 8, 20),
                "active": True,
            },
            "nfl": {
                "name": "NFL Blog",
                "teams": 32,
                "established": datetime(1946, 6, 6),
                "days": ["sunday", "monday", "thursday", "saturday"],
            },
            "mlb": {
                "name": "MLB Blog",
                "teams": 31,
                "established": datetime(1869, 1, 1),
                "active": False,
            },
        }
    }


def rebuild_established(key, value):
    """Transform restoring `established` datetimes after a reload."""
    if isinstance(value, dict):
        for row in value.values():
            if isinstance(row, dict) and isinstance(row.get("established"), str):
                row["established"] = datetime.fromisoformat(row["established"])
    return value


@pytest.fixture
def store(temp_dir, app_defaults):
    """Provide a file-backed store in a temp dir, seeded with app_defaults."""
    with KStor({"name": "config.json", "dir": temp_dir}, app_defaults) as s:
        yield s


@pytest.fixture
def blog_store(temp_dir, blog_defaults):
    """Provide a store holding the blog collection, with dates restored on load."""
    options = {"name": ".queryrc", "dir": temp_dir, "transform": rebuild_established}
    with KStor(options, blog_defaults) as s:
        yield s
