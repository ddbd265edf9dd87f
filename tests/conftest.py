"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It points the service at a throwaway data directory before any module
imports the settings.
"""

import os
import tempfile
from pathlib import Path
from typing import Iterator

import pytest

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_DATA_DIR", tempfile.mkdtemp(prefix="contest-form-tests-"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

from fastapi.testclient import TestClient  # noqa: E402

from app.core.app_factory import create_app  # noqa: E402
from app.core.config import settings  # noqa: E402


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated data directory for the duration of one test."""
    path = tmp_path / "data"
    monkeypatch.setattr(settings.app, "data_dir", path)
    return path


@pytest.fixture
def client(data_dir: Path) -> Iterator[TestClient]:
    """Test client over a fresh app writing into ``data_dir``."""
    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def valid_payload() -> dict[str, str]:
    return {
        "name": "Jo Ann",
        "company": "Acme & Co",
        "email": "X@Foo.com",
        "phone": "555-1234",
    }
