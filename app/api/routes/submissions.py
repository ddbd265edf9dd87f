from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Response

from app.core.config import settings
from app.core.rate_limit import enforce_rate_limit
from app.core.request_body import read_json_body
from app.schemas.submission import ErrorResponse, SubmissionResponse
from app.services.form_validation import validate_submission
from app.services.submission_ledger import SubmissionLedger

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Submissions"])

SUCCESS_MESSAGE = "Thank you for entering! Your submission has been recorded."

_ledger: SubmissionLedger | None = None
_ledger_config: tuple[str, str] | None = None


def get_submission_ledger() -> SubmissionLedger:
    """Return the process-wide ledger, rebuilt when its settings change."""

    global _ledger, _ledger_config

    config = (str(settings.app.submissions_path), settings.app.submission_id_prefix)
    if _ledger is None or _ledger_config != config:
        _ledger = SubmissionLedger(
            path=settings.app.submissions_path,
            id_prefix=settings.app.submission_id_prefix,
        )
        _ledger_config = config
    return _ledger


@router.post(
    "/submissions",
    response_model=SubmissionResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid body, invalid field or duplicate email"},
        413: {"model": ErrorResponse, "description": "Request body too large"},
        429: {"model": ErrorResponse, "description": "Too many submissions from this client"},
        500: {"model": ErrorResponse, "description": "Submission could not be stored"},
    },
    dependencies=[Depends(enforce_rate_limit)],
)
def create_submission(
    payload: dict[str, Any] = Depends(read_json_body),
    ledger: SubmissionLedger = Depends(get_submission_ledger),
) -> SubmissionResponse:
    """Accept a contest form submission.

    The client's rate limit is consumed first, then the body is decoded and
    validated, and finally the submission is appended to the ledger unless
    its email was already entered.

    Args:
        payload: Decoded JSON object with name, company, email and phone.
        ledger: Submission ledger (injected).

    Returns:
        SubmissionResponse with the new submission id.
    """
    form = validate_submission(payload)
    submission = ledger.try_insert(form)
    return SubmissionResponse(message=SUCCESS_MESSAGE, submission_id=submission.id)


@router.options("/submissions", include_in_schema=False)
def submissions_preflight() -> Response:
    """Answer CORS pre-flight requests with an empty 200."""
    return Response(status_code=200)
