"""Reporting sub-package: compose, render and deliver parent emails.

Exports the main public pieces:

- ``build_attendance_email`` / ``build_report_email`` -- email content.
- ``render_report`` -- write the monthly report PDF.
- ``Mailer`` -- deliver a message via SMTP (or log it in dry-run mode).

Usage::

    from attendance_mailer.reporting import Mailer, build_attendance_email

    content = build_attendance_email("S1", "Asha")
    mailer.send(OutgoingMessage.from_content("p@example.com", content))
"""

from attendance_mailer.reporting.composer import (
    build_attendance_email,
    build_report_email,
)
from attendance_mailer.reporting.pdf import render_report
from attendance_mailer.reporting.sender import Mailer

__all__ = ["build_attendance_email", "build_report_email", "render_report", "Mailer"]
