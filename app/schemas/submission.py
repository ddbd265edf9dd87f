"""Pydantic schemas for form submissions."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SubmissionForm(BaseModel):
    """Validated and sanitized form fields, ready to be stored."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Participant name (HTML-escaped).")
    company: str = Field(..., description="Company name (HTML-escaped).")
    email: str = Field(
        ...,
        description="Email as entered, trimmed. Uniqueness is case-insensitive.",
    )
    phone: str = Field(..., description="Phone number (HTML-escaped).")


class Submission(BaseModel):
    """An accepted submission as persisted in the ledger."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Opaque unique submission identifier.")
    name: str
    company: str
    email: str
    phone: str
    submitted_at: str = Field(
        ...,
        description="Acceptance time, UTC, formatted as 'YYYY-MM-DD HH:MM:SS'.",
    )


class SubmissionResponse(BaseModel):
    """Body returned when a submission is accepted."""

    success: bool = Field(True, description="Always true for accepted submissions.")
    message: str = Field(..., description="Confirmation message for the participant.")
    submission_id: str = Field(..., description="Identifier of the stored submission.")


class ErrorResponse(BaseModel):
    """Body returned for every failed request."""

    error: str = Field(..., description="Human-readable error message.")
