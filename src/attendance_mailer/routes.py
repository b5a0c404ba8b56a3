"""HTTP endpoints for attendance notices and monthly reports.

Each request runs independently: validate -> format -> (render PDF) ->
send -> clean up -> respond.  Blocking work (PDF writing, SMTP) runs in
the worker thread pool and is awaited.  Any failure past validation is
logged here and answered with a generic 500; details never reach the
caller.
"""

from __future__ import annotations

import datetime
import logging
import pathlib
import re
import time
import uuid

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from attendance_mailer.config import Settings
from attendance_mailer.models import OutgoingMessage
from attendance_mailer.reporting.composer import (
    build_attendance_email,
    build_report_email,
    parse_timestamp,
)
from attendance_mailer.reporting.pdf import (
    REPORT_TITLE,
    render_report_async,
    split_report_data,
)
from attendance_mailer.reporting.sender import Mailer
from attendance_mailer.schemas import (
    AttendanceNotification,
    ErrorResponse,
    HealthResponse,
    ReportRequest,
    SendResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Mail"])

INTERNAL_ERROR = "Internal error"

_UNSAFE_CHARS = re.compile(r"[^\w\-]+", re.ASCII)

# keeps "<name>_monthly_<ms>_<token>.pdf" well under the 255-byte filename limit
MAX_SAFE_NAME = 64

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


def utc_now_iso() -> str:
    """Current UTC time as ``2024-01-15T10:00:00.000Z``."""
    now = datetime.datetime.now(datetime.timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def error_response(status_code: int, message: str, errors: list[dict] | None = None) -> JSONResponse:
    body = ErrorResponse(message=message, errors=errors or None)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def report_path(reports_dir: str, student_name: str) -> pathlib.Path:
    """Return a fresh, filesystem-safe PDF path for *student_name*.

    The name is reduced to ``[A-Za-z0-9_-]``, cut to
    ``MAX_SAFE_NAME`` characters, and suffixed with the current
    epoch milliseconds plus a short random token.
    """
    safe = _UNSAFE_CHARS.sub("_", student_name)[:MAX_SAFE_NAME] or "student"
    directory = pathlib.Path(reports_dir)
    directory.mkdir(parents=True, exist_ok=True)
    token = uuid.uuid4().hex[:6]
    return directory / f"{safe}_monthly_{int(time.time() * 1000)}_{token}.pdf"


def remove_quietly(path: pathlib.Path) -> None:
    """Delete a temporary report; failures are logged, never raised."""
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not delete temporary report %s: %s", path, exc)


@router.get("/health", response_model=HealthResponse)
async def health(mailer: Mailer = Depends(get_mailer)):
    """Report the delivery mode and server time."""
    return HealthResponse(dryRun=mailer.dry_run, time=utc_now_iso())


@router.post("/send-email", response_model=SendResponse, responses=_ERROR_RESPONSES)
async def send_attendance_email(
    payload: AttendanceNotification,
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer),
):
    """Email a parent that their child has been marked present."""
    try:
        content = build_attendance_email(
            payload.studentId,
            payload.studentName,
            parse_timestamp(payload.timestamp),
            school_name=settings.school_name,
        )
        message = OutgoingMessage.from_content(payload.parentEmail, content)
        await run_in_threadpool(mailer.send, message)
    except Exception:
        logger.exception("/api/send-email failed for student %s", payload.studentId)
        return error_response(500, INTERNAL_ERROR)

    return SendResponse()


@router.post("/send-pdf-email", response_model=SendResponse, responses=_ERROR_RESPONSES)
async def send_report_email(
    payload: ReportRequest,
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer),
):
    """Render the monthly report PDF and email it as an attachment."""
    pdf_path = None
    try:
        pdf_path = report_path(settings.reports_dir, payload.studentName)
        await render_report_async(
            REPORT_TITLE,
            payload.studentName,
            split_report_data(payload.reportData),
            pdf_path,
            school_name=settings.school_name,
        )
        content = build_report_email(payload.studentName, school_name=settings.school_name)
        message = OutgoingMessage.from_content(payload.parentEmail, content, attachment=pdf_path)
        await run_in_threadpool(mailer.send, message)
    except Exception:
        logger.exception("/api/send-pdf-email failed for %s", payload.studentName)
        return error_response(500, INTERNAL_ERROR)
    finally:
        if pdf_path is not None:
            remove_quietly(pdf_path)

    return SendResponse()
