"""
Pytest configuration and fixtures for FutureEmo Labeler tests.
"""
import os
import sys
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient

# Add app directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment before importing app
os.environ["ADMIN_KEY"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

TEST_ADMIN_KEY = "test-admin-key"


@pytest.fixture
def app_module(monkeypatch) -> Generator:
    """App module pointed at a fresh temporary database."""
    import app as app_module

    with tempfile.TemporaryDirectory() as tmp:
        monkeypatch.setattr(app_module, "DB_PATH", Path(tmp) / "labels.db")
        monkeypatch.setattr(app_module, "ADMIN_KEY", "")
        app_module.init_db()
        yield app_module


@pytest.fixture
def client(app_module) -> Generator[TestClient, None, None]:
    """Test client with a clean database."""
    with TestClient(app_module.app) as c:
        yield c


@pytest.fixture
def admin_client(app_module, monkeypatch) -> Generator[tuple[TestClient, str], None, None]:
    """Test client with ADMIN_KEY configured; yields (client, key)."""
    monkeypatch.setattr(app_module, "ADMIN_KEY", TEST_ADMIN_KEY)
    with TestClient(app_module.app) as c:
        yield c, TEST_ADMIN_KEY


@pytest.fixture
def make_comment(app_module) -> Callable[..., str]:
    """Insert a comment directly and return its ID."""
    counter = {"n": 0}

    def _make(text: str = None, created_at: str = None) -> str:
        counter["n"] += 1
        comment_id = f"c{counter['n']:04d}"
        with app_module.get_db() as conn:
            conn.execute("""
                INSERT INTO comments (id, text, label_count, final_label, status, created_at)
                VALUES (?, ?, 0, NULL, 'open', ?)
            """, (
                comment_id,
                text or f"Comment number {counter['n']} about the future of work.",
                created_at or f"2026-01-01T00:00:{counter['n'] % 60:02d}.000000+00:00",
            ))
        return comment_id

    return _make


@pytest.fixture
def sample_comment(make_comment) -> str:
    """A single open comment."""
    return make_comment("I'm optimistic that the next generation will find solutions.")


@pytest.fixture
def submit(client: TestClient) -> Callable:
    """Submit a label through the API and return the response."""

    def _submit(item_id: str, name: str, label: str):
        return client.post("/api/submit-label", json={
            "name": name,
            "item_id": item_id,
            "label": label,
        })

    return _submit
