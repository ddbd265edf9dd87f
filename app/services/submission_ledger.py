"""Append-only ledger of accepted submissions with duplicate detection.

The ledger is a JSON array stored through the record store. Every insert
reloads the whole array, scans it for the email (case-insensitive), appends
the new submission and writes the array back, all while holding the file's
lock. The linear scan is fine for a single contest form; it is the first
thing to replace if the ledger ever grows large.
"""

from __future__ import annotations

import logging
import secrets
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from app.adapters.storage.json_file import JsonRecordStore
from app.core.errors import DuplicateSubmissionAppError
from app.core.logging import hash_for_logs
from app.schemas.submission import Submission, SubmissionForm

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_MESSAGE = "This email has already been entered in the contest."
SUBMITTED_AT_FORMAT = "%Y-%m-%d %H:%M:%S"


def _email_key(email: Any) -> str:
    return str(email or "").lower()


class SubmissionLedger:
    """Persisted, append-only sequence of submissions unique by email."""

    def __init__(
        self,
        *,
        path: str | Path,
        store: JsonRecordStore | None = None,
        id_prefix: str = "contest_",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._path = Path(path)
        self._store = store or JsonRecordStore()
        self._id_prefix = id_prefix
        self._clock = clock

    @property
    def path(self) -> Path:
        return self._path

    def _new_id(self, now: float) -> str:
        """Build an id from the microsecond timestamp plus a random suffix."""
        return f"{self._id_prefix}{int(now * 1_000_000):x}{secrets.token_hex(4)}"

    def entries(self) -> list[Submission]:
        """Return a snapshot of the stored submissions in insertion order.

        Entries that do not match the submission schema (e.g. edited by hand)
        are skipped and logged.
        """
        with self._store.locked(self._path):
            raw = self._store.load(self._path, list)

        submissions: list[Submission] = []
        for index, item in enumerate(raw):
            try:
                submissions.append(Submission.model_validate(item))
            except ValidationError:
                logger.warning(
                    "ledger.malformed_entry",
                    extra={"index": index, "file_name": self._path.name},
                )
        return submissions

    def try_insert(self, form: SubmissionForm) -> Submission:
        """Insert a submission unless its email is already in the ledger.

        Args:
            form: Validated and sanitized form fields.

        Returns:
            The stored submission with its identifier and timestamp.

        Raises:
            DuplicateSubmissionAppError: If an entry with the same email
                (ignoring case) exists. Nothing is written.
            StorageAppError: If the ledger cannot be read or written.
        """
        email_key = _email_key(form.email)

        with self._store.locked(self._path):
            ledger = self._store.load(self._path, list)

            existing_ids: set[str] = set()
            for entry in ledger:
                if not isinstance(entry, dict):
                    continue
                if _email_key(entry.get("email")) == email_key:
                    logger.info(
                        "submission.duplicate",
                        extra={"email_hash": hash_for_logs(email_key)},
                    )
                    raise DuplicateSubmissionAppError(
                        code="duplicate_email",
                        message=DUPLICATE_EMAIL_MESSAGE,
                    )
                existing_ids.add(str(entry.get("id")))

            now = self._clock()
            submission_id = self._new_id(now)
            while submission_id in existing_ids:
                submission_id = self._new_id(now)

            submission = Submission(
                id=submission_id,
                submitted_at=datetime.fromtimestamp(now, tz=timezone.utc).strftime(
                    SUBMITTED_AT_FORMAT
                ),
                **form.model_dump(),
            )
            ledger.append(submission.model_dump())
            self._store.save(self._path, ledger, pretty=True)

        logger.info(
            "submission.accepted",
            extra={
                "submission_id": submission.id,
                "email_hash": hash_for_logs(email_key),
                "ledger_size": len(ledger),
            },
        )
        return submission
