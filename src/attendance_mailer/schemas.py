"""Request and response bodies for the HTTP API.

Field names follow the JSON wire format (camelCase).  Request models
reject unknown fields; ``null`` and blank strings are treated as if the
field had not been sent at all, so they surface as "missing".
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    StringConstraints,
    field_validator,
    model_validator,
)

from attendance_mailer.exceptions import PayloadValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MISSING_FIELDS = "Missing fields"
INVALID_EMAIL = "Invalid parentEmail"
INVALID_FIELDS = "Invalid fields"

# pydantic error types that mean "the caller did not send what we need"
_MISSING_ERROR_TYPES = {
    "missing",
    "json_invalid",
    "model_type",
    "model_attributes_type",
    "dict_type",
}

Text = Annotated[str, StringConstraints(strip_whitespace=True)]


def is_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value or ""))


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class ParentPayload(BaseModel):
    """Fields shared by every request addressed to a parent."""

    model_config = ConfigDict(extra="forbid")

    studentName: Text
    parentEmail: Text

    @model_validator(mode="before")
    @classmethod
    def drop_blank_values(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if not _is_blank(value)}
        return data

    @field_validator("parentEmail")
    @classmethod
    def validate_parent_email(cls, v: str) -> str:
        if not is_email(v):
            raise ValueError(INVALID_EMAIL)
        return v


class AttendanceNotification(ParentPayload):
    studentId: Text
    # ISO-8601 string or epoch milliseconds; bad values fall back to "now"
    timestamp: str | int | float | None = None


class ReportRequest(ParentPayload):
    reportData: list[str] | str


class HealthResponse(BaseModel):
    ok: bool = True
    dryRun: bool
    time: str


class SendResponse(BaseModel):
    ok: bool = True
    emailSent: bool = True


class ErrorResponse(BaseModel):
    ok: bool = False
    message: str
    errors: list[dict] | None = None


def _field_name(loc: Sequence[Any]) -> str:
    parts = list(loc)
    if parts and parts[0] == "body":
        parts = parts[1:]
    return str(parts[0]) if parts else ""


def translate_validation_errors(errors: Sequence[dict]) -> PayloadValidationError:
    """Collapse pydantic/FastAPI validation errors into one client error.

    Missing fields win over a bad email address, which wins over any other
    schema problem (unknown or mistyped fields).
    """
    if any(err.get("type") in _MISSING_ERROR_TYPES for err in errors):
        return PayloadValidationError(MISSING_FIELDS)

    if any(_field_name(err.get("loc", ())) == "parentEmail" for err in errors):
        return PayloadValidationError(INVALID_EMAIL)

    details = [
        {"field": _field_name(err.get("loc", ())), "problem": err.get("msg", "")}
        for err in errors
    ]
    return PayloadValidationError(INVALID_FIELDS, details)
