"""Integration tests for request body limits with a real HTTP server.

These tests start an actual Uvicorn server so that oversized bodies go
through a real socket, including chunked uploads without Content-Length,
which TestClient does not exercise.
"""

import multiprocessing
import time
from typing import Generator, Iterator

import httpx
import pytest
import uvicorn

from app.core.config import settings


def run_server():
    """Run FastAPI server in a separate process."""
    uvicorn.run(
        "app.main:app",
        host="127.0.0.1",
        port=8001,
        log_level="error",
        access_log=False,
    )


@pytest.fixture(scope="module")
def server() -> Generator[str, None, None]:
    """Start server in background process for integration tests."""
    process = multiprocessing.Process(target=run_server, daemon=True)
    process.start()

    base_url = "http://127.0.0.1:8001"
    max_retries = 30
    for _ in range(max_retries):
        try:
            response = httpx.get(f"{base_url}/health", timeout=1.0)
            if response.status_code == 200:
                break
        except (httpx.ConnectError, httpx.ReadTimeout):
            time.sleep(0.1)
    else:
        process.terminate()
        pytest.fail("Server failed to start")

    yield base_url

    process.terminate()
    process.join(timeout=5)


def _chunks(total: int, size: int = 1024) -> Iterator[bytes]:
    sent = 0
    while sent < total:
        step = min(size, total - sent)
        yield b" " * step
        sent += step


class TestBodySizeIntegration:
    def test_declared_oversized_body_rejected(self, server: str) -> None:
        """Reject bodies whose Content-Length exceeds the limit with HTTP 413."""
        body = b" " * (settings.app.max_body_bytes + 1)

        response = httpx.post(
            f"{server}/v1/submissions",
            content=body,
            headers={"Content-Type": "application/json"},
            timeout=10.0,
        )

        assert response.status_code == 413
        assert response.json() == {"error": "Request body too large"}

    def test_chunked_oversized_body_rejected(self, server: str) -> None:
        """Bodies without Content-Length are measured while streaming."""
        response = httpx.post(
            f"{server}/v1/submissions",
            content=_chunks(settings.app.max_body_bytes + 4096),
            headers={"Content-Type": "application/json"},
            timeout=10.0,
        )

        assert response.status_code == 413
        assert response.json() == {"error": "Request body too large"}

    def test_small_submission_success(self, server: str) -> None:
        response = httpx.post(
            f"{server}/v1/submissions",
            json={
                "name": "Integration Tester",
                "company": "Acme",
                "email": f"integration-{time.time_ns()}@example.com",
                "phone": "555-0100",
            },
            timeout=10.0,
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
