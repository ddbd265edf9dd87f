"""Sliding-window rate limiter persisted in a JSON file.

The file maps client identifiers to the epoch seconds of their admitted
requests: ``{"203.0.113.7": [1700000000, 1700000042]}``.
Files whose per-client value is an object keyed by position
(``{"1": 1700000042}``, as written by older deployments) are read as the
list of its values and rewritten as a list on the next admission.

Notes:
- Admission is decided under the record store's lock for the file, so two
  concurrent requests can never both take the last slot.
- Denials do not write the file. Stale entries of every client are pruned on
  the next admitted request instead.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.storage.json_file import JsonRecordStore


class JsonFileSlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests over a sliding time window per key.

    A request is admitted when fewer than ``limit`` earlier requests of the
    same key happened within the last ``window_seconds``.
    """

    def __init__(
        self,
        *,
        path: str | Path,
        limit: int,
        window_seconds: int,
        store: JsonRecordStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            path: JSON file holding the request log.
            limit: Maximum admitted requests per window; 0 denies everyone.
            window_seconds: Size of the sliding window in seconds.
            store: Record store used for persistence (a new one by default).
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 0:
            raise ValueError("limit must be >= 0")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._path = Path(path)
        self._limit = limit
        self._window_seconds = window_seconds
        self._store = store or JsonRecordStore()
        self._clock = clock

    @property
    def path(self) -> Path:
        return self._path

    def _in_window(self, timestamps: Any, now: int) -> list[int]:
        """Keep only well-formed timestamps that are still inside the window."""
        if isinstance(timestamps, dict):
            timestamps = list(timestamps.values())
        if not isinstance(timestamps, list):
            return []
        return [
            ts
            for ts in timestamps
            if isinstance(ts, int)
            and not isinstance(ts, bool)
            and now - ts < self._window_seconds
        ]

    def _prune(self, rates: dict[str, Any], now: int) -> dict[str, list[int]]:
        """Drop expired timestamps of every client, and clients left empty."""
        pruned: dict[str, list[int]] = {}
        for client, timestamps in rates.items():
            recent = self._in_window(timestamps, now)
            if recent:
                pruned[client] = recent
        return pruned

    def _build_allowed_result(self, *, recent: list[int]) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            limit=self._limit,
            remaining=max(0, self._limit - len(recent)),
            reset_at=min(recent) + self._window_seconds,
            retry_after_seconds=None,
        )

    def _build_blocked_result(self, *, now: int, recent: list[int]) -> RateLimitResult:
        reset_at = (min(recent) if recent else now) + self._window_seconds
        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            remaining=0,
            reset_at=reset_at,
            retry_after_seconds=max(1, reset_at - now),
        )

    def consume(self, key: str) -> RateLimitResult:
        """Admit or deny one request for ``key``.

        Loads the request log, counts the key's requests inside the window
        and, when admitted, appends the current timestamp, prunes every
        client and persists the whole log.

        Args:
            key: Client identifier (e.g. source address).

        Returns:
            RateLimitResult with the decision and window metadata.

        Raises:
            ValueError: If key is empty.
            StorageAppError: If the request log cannot be read or written.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        with self._store.locked(self._path):
            now = int(self._clock())
            rates = self._store.load(self._path, dict)
            recent = self._in_window(rates.get(key), now)

            if len(recent) >= self._limit:
                return self._build_blocked_result(now=now, recent=recent)

            recent.append(now)
            rates[key] = recent
            self._store.save(self._path, self._prune(rates, now))

        return self._build_allowed_result(recent=recent)
