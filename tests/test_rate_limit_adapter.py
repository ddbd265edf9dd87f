"""Unit tests for the file-backed sliding window rate limiter."""

import json
import threading
from pathlib import Path
from unittest.mock import Mock

import pytest

from app.adapters.rate_limit.json_file import JsonFileSlidingWindowRateLimiter
from app.core.errors import StorageAppError


def _limiter(tmp_path: Path, *, limit: int, window_seconds: int = 3600, now: float = 1_000_000.0):
    clock = Mock(return_value=now)
    limiter = JsonFileSlidingWindowRateLimiter(
        path=tmp_path / "rate_limits.json",
        limit=limit,
        window_seconds=window_seconds,
        clock=clock,
    )
    return limiter, clock


def _read(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


def test_allows_up_to_limit_in_window(tmp_path: Path) -> None:
    limiter, _ = _limiter(tmp_path, limit=3)

    assert limiter.check("A") is True
    assert limiter.check("A") is True
    result = limiter.consume("A")
    assert result.allowed is True
    assert result.remaining == 0


def test_blocks_when_over_limit(tmp_path: Path) -> None:
    limiter, _ = _limiter(tmp_path, limit=2)

    assert limiter.check("A") is True
    assert limiter.check("A") is True

    blocked = limiter.consume("A")
    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert blocked.retry_after_seconds == 3600


def test_window_slides_after_window_seconds(tmp_path: Path) -> None:
    limiter, clock = _limiter(tmp_path, limit=2, window_seconds=3600, now=1_000_000.0)

    assert limiter.check("A") is True
    assert limiter.check("A") is True
    assert limiter.check("A") is False

    clock.return_value = 1_000_000.0 + 3601
    assert limiter.check("A") is True


def test_request_exactly_window_seconds_old_no_longer_counts(tmp_path: Path) -> None:
    limiter, clock = _limiter(tmp_path, limit=1, window_seconds=60, now=500.0)

    assert limiter.check("A") is True
    clock.return_value = 559.0
    assert limiter.check("A") is False
    clock.return_value = 560.0
    assert limiter.check("A") is True


def test_sliding_not_fixed_window(tmp_path: Path) -> None:
    limiter, clock = _limiter(tmp_path, limit=2, window_seconds=100, now=1000.0)

    assert limiter.check("A") is True
    clock.return_value = 1050.0
    assert limiter.check("A") is True
    clock.return_value = 1101.0
    # The first request left the window, the second did not
    assert limiter.check("A") is True
    assert limiter.check("A") is False

    blocked = limiter.consume("A")
    assert blocked.retry_after_seconds == 49


def test_isolated_by_key(tmp_path: Path) -> None:
    limiter, _ = _limiter(tmp_path, limit=1)

    assert limiter.check("A") is True
    assert limiter.check("A") is False

    assert limiter.check("B") is True


def test_zero_limit_denies_everyone(tmp_path: Path) -> None:
    limiter, _ = _limiter(tmp_path, limit=0)

    assert limiter.check("new-client") is False
    assert not limiter.path.exists()


def test_denial_does_not_write(tmp_path: Path) -> None:
    limiter, _ = _limiter(tmp_path, limit=1, now=1000.0)
    limiter.check("A")
    before = limiter.path.read_text(encoding="utf-8")

    assert limiter.check("A") is False

    assert limiter.path.read_text(encoding="utf-8") == before


def test_admission_records_integer_timestamp(tmp_path: Path) -> None:
    limiter, _ = _limiter(tmp_path, limit=5, now=1234.9)

    limiter.check("A")

    assert _read(limiter.path) == {"A": [1234]}


def test_admission_prunes_other_clients(tmp_path: Path) -> None:
    limiter, clock = _limiter(tmp_path, limit=5, window_seconds=100, now=1000.0)
    limiter.check("old")
    limiter.check("both")
    clock.return_value = 1090.0
    limiter.check("both")

    clock.return_value = 1150.0
    limiter.check("new")

    assert _read(limiter.path) == {"both": [1090], "new": [1150]}


def test_state_survives_new_limiter_instance(tmp_path: Path) -> None:
    first, _ = _limiter(tmp_path, limit=1)
    assert first.check("A") is True

    second, _ = _limiter(tmp_path, limit=1)
    assert second.check("A") is False


def test_corrupt_log_starts_fresh(tmp_path: Path) -> None:
    path = tmp_path / "rate_limits.json"
    path.write_text("[[[", encoding="utf-8")
    limiter, _ = _limiter(tmp_path, limit=1, now=42.0)

    assert limiter.check("A") is True
    assert _read(path) == {"A": [42]}


def test_malformed_entries_are_ignored(tmp_path: Path) -> None:
    path = tmp_path / "rate_limits.json"
    path.write_text(json.dumps({"A": "nope", "B": [41, "x", True, None]}), encoding="utf-8")
    limiter, _ = _limiter(tmp_path, limit=2, now=42.0)

    assert limiter.check("A") is True
    assert limiter.check("B") is True
    assert _read(path) == {"A": [42], "B": [41, 42]}


def test_object_encoded_timestamps_are_counted(tmp_path: Path) -> None:
    path = tmp_path / "rate_limits.json"
    path.write_text(json.dumps({"A": {"1": 40, "3": 41}}), encoding="utf-8")
    limiter, _ = _limiter(tmp_path, limit=3, now=42.0)

    assert limiter.check("A") is True
    assert _read(path) == {"A": [40, 41, 42]}
    assert limiter.check("A") is False


def test_concurrent_checks_at_boundary_admit_exactly_one(tmp_path: Path) -> None:
    limiter, _ = _limiter(tmp_path, limit=1)
    workers = 16
    barrier = threading.Barrier(workers)
    results: list[bool] = []
    results_lock = threading.Lock()

    def _check() -> None:
        barrier.wait()
        allowed = limiter.check("A")
        with results_lock:
            results.append(allowed)

    threads = [threading.Thread(target=_check) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 1
    assert results.count(False) == workers - 1


def test_concurrent_limiters_on_same_file_share_budget(tmp_path: Path) -> None:
    limiters = [_limiter(tmp_path, limit=3)[0] for _ in range(4)]
    results: list[bool] = []
    results_lock = threading.Lock()

    def _check(limiter: JsonFileSlidingWindowRateLimiter) -> None:
        for _ in range(3):
            allowed = limiter.check("A")
            with results_lock:
                results.append(allowed)

    threads = [threading.Thread(target=_check, args=(lim,)) for lim in limiters]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 3


def test_storage_failure_propagates(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    limiter = JsonFileSlidingWindowRateLimiter(
        path=blocker / "rate_limits.json", limit=1, window_seconds=60
    )

    with pytest.raises(StorageAppError):
        limiter.check("A")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": -1, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
    ],
)
def test_invalid_constructor_args(tmp_path: Path, kwargs: dict) -> None:
    with pytest.raises(ValueError):
        JsonFileSlidingWindowRateLimiter(path=tmp_path / "r.json", **kwargs)


def test_invalid_consume_args(tmp_path: Path) -> None:
    limiter, _ = _limiter(tmp_path, limit=1)

    with pytest.raises(ValueError):
        limiter.consume("")
