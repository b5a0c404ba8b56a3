"""Compose parent-facing emails.

Builds the subject, plain-text body and HTML body for the two kinds of
message the service sends.  HTML bodies are rendered from the Jinja2
templates in ``templates/``; every function here is free of side effects.
"""

from __future__ import annotations

import datetime
import logging
import pathlib

from jinja2 import Environment, FileSystemLoader

from attendance_mailer.models import EmailContent

logger = logging.getLogger(__name__)

# Locate the templates directory relative to this file.
_TEMPLATE_DIR = pathlib.Path(__file__).parent / "templates"

# India Standard Time has no daylight saving, so a fixed offset is exact.
IST = datetime.timezone(datetime.timedelta(hours=5, minutes=30), "IST")

ATTENDANCE_SUBJECT = "Attendance: Present ✔️"
REPORT_SUBJECT = "Monthly Attendance Report"
DEFAULT_SCHOOL_NAME = "Saamarthya Academy"


def _env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(_TEMPLATE_DIR)),
        autoescape=True,
    )


def format_ist(when: datetime.datetime | None = None) -> str:
    """Format *when* as a long-form India Standard Time string.

    Example: ``Monday, 15 January 2024 at 3:30 pm``.  Naive datetimes are
    taken to be UTC; ``None`` means now.
    """
    if when is None:
        when = datetime.datetime.now(datetime.timezone.utc)
    elif when.tzinfo is None:
        when = when.replace(tzinfo=datetime.timezone.utc)

    local = when.astimezone(IST)
    hour = local.hour % 12 or 12
    meridiem = "am" if local.hour < 12 else "pm"
    return (
        f"{local.strftime('%A')}, {local.day} {local.strftime('%B %Y')} "
        f"at {hour}:{local.minute:02d} {meridiem}"
    )


def parse_timestamp(
    value: object,
    now: datetime.datetime | None = None,
) -> datetime.datetime:
    """Turn a client-supplied timestamp into an aware datetime.

    Accepts ISO-8601 strings (a trailing ``Z`` is allowed) and numbers of
    milliseconds since the epoch.  Anything absent or unparseable yields
    *now*, so a bad timestamp never fails the request.
    """
    fallback = now or datetime.datetime.now(datetime.timezone.utc)

    if isinstance(value, bool) or value is None:
        return fallback

    if isinstance(value, (int, float)):
        try:
            return datetime.datetime.fromtimestamp(
                value / 1000, tz=datetime.timezone.utc
            )
        except (OverflowError, OSError, ValueError):
            logger.debug("Ignoring out-of-range timestamp %r", value)
            return fallback

    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.datetime.fromisoformat(text)
        except ValueError:
            logger.debug("Ignoring unparseable timestamp %r", value)
            return fallback
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=datetime.timezone.utc)
        return parsed

    return fallback


def build_attendance_email(
    student_id: str,
    student_name: str,
    when: datetime.datetime | None = None,
    school_name: str = DEFAULT_SCHOOL_NAME,
) -> EmailContent:
    """Build the "marked present" notification for one student.

    Args:
        student_id: The school's identifier for the student.
        student_name: Display name used in the greeting.
        when: Moment attendance was recorded; defaults to now.
        school_name: Name used in the body and sign-off.

    Returns:
        An ``EmailContent`` with a fixed subject and matching text/HTML
        bodies.
    """
    when_str = format_ist(when)

    text_body = (
        "Dear Parent,\n"
        "\n"
        f"Your child {student_name} (ID: {student_id}) is marked PRESENT "
        f"at {school_name}.\n"
        "\n"
        f"Date & Time: {when_str}\n"
        "\n"
        "Best regards,\n"
        f"{school_name}"
    )

    html_body = _env().get_template("attendance.html").render(
        student_id=student_id,
        student_name=student_name,
        when=when_str,
        school_name=school_name,
    )

    return EmailContent(
        subject=ATTENDANCE_SUBJECT,
        text_body=text_body,
        html_body=html_body,
    )


def build_report_email(
    student_name: str,
    school_name: str = DEFAULT_SCHOOL_NAME,
) -> EmailContent:
    """Build the cover email that carries a monthly report PDF."""
    text_body = (
        "Attached is your child's monthly attendance report.\n"
        "\n"
        "Best regards,\n"
        f"{school_name}"
    )
    html_body = _env().get_template("monthly_report.html").render(
        student_name=student_name,
        school_name=school_name,
    )
    return EmailContent(
        subject=REPORT_SUBJECT,
        text_body=text_body,
        html_body=html_body,
    )
