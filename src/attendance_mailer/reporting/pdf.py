"""Render the monthly attendance report as a PDF.

Uses ReportLab's Platypus layer: the report is a list of flowables
(paragraphs and spacers) and ``SimpleDocTemplate`` takes care of
pagination.  The document is written straight into an open file handle
which is flushed and fsynced before ``render_report`` returns, so a
returned call means the file is complete on disk.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
import os
import pathlib
from collections.abc import Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from attendance_mailer.exceptions import RenderError
from attendance_mailer.reporting.composer import DEFAULT_SCHOOL_NAME, format_ist

logger = logging.getLogger(__name__)

REPORT_TITLE = "Monthly Attendance Report"
NO_RECORDS_LINE = "No records provided."

_MARGIN = 40  # points
_MUTED = colors.HexColor("#718096")


def split_report_data(data: str | Sequence[str]) -> list[str]:
    """Normalise ``reportData`` into a list of lines.

    A string is split on line breaks; any other sequence is taken as-is
    with each item converted to ``str``.
    """
    if isinstance(data, str):
        return data.splitlines()
    return [str(item) for item in data]


def report_lines(lines: Sequence[str]) -> list[str]:
    """Number each line (``1. ...``), or return the no-records placeholder."""
    if not lines:
        return [NO_RECORDS_LINE]
    return [f"{index}. {line}" for index, line in enumerate(lines, start=1)]


def _build_styles() -> dict:
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle(
            "ReportTitle",
            parent=base["Title"],
            fontSize=20,
            leading=24,
            alignment=TA_CENTER,
        ),
        "body": ParagraphStyle(
            "ReportBody",
            parent=base["Normal"],
            fontSize=12,
            leading=16,
        ),
        "heading": ParagraphStyle(
            "ReportHeading",
            parent=base["Normal"],
            fontSize=14,
            leading=18,
            spaceAfter=6,
        ),
    }


def _add_page_number(canvas, doc) -> None:
    """Draw the page number at the bottom of each page."""
    canvas.saveState()
    canvas.setFont("Helvetica", 8)
    canvas.setFillColor(_MUTED)
    canvas.drawCentredString(
        A4[0] / 2, 0.4 * inch,
        f"Page {canvas.getPageNumber()}",
    )
    canvas.restoreState()


def _build_story(
    title: str,
    student_name: str,
    lines: Sequence[str],
    generated_at: datetime.datetime | None,
    school_name: str,
) -> list:
    styles = _build_styles()
    story = [
        Paragraph(escape(title), styles["title"]),
        Spacer(1, 12),
        Paragraph(f"Student: {escape(student_name)}", styles["body"]),
        Paragraph(f"Generated On: {escape(format_ist(generated_at))}", styles["body"]),
        Spacer(1, 12),
        Paragraph("<u>Attendance Records:</u>", styles["heading"]),
    ]
    for line in report_lines(lines):
        story.append(Paragraph(escape(line), styles["body"]))

    story.append(Spacer(1, 12))
    story.append(
        Paragraph(f"Best regards,<br/>{escape(school_name)}", styles["body"])
    )
    return story


def render_report(
    title: str,
    student_name: str,
    lines: Sequence[str],
    output_path: str | os.PathLike,
    generated_at: datetime.datetime | None = None,
    school_name: str = DEFAULT_SCHOOL_NAME,
) -> pathlib.Path:
    """Write the report PDF to *output_path*.

    Args:
        title: Heading printed at the top of the first page.
        student_name: Student the report belongs to.
        lines: Attendance records, one per entry; numbered in the output.
        output_path: Destination file.  Its directory must exist.
        generated_at: Timestamp printed on the report; defaults to now.
        school_name: Name used in the sign-off.

    Returns:
        The output path.

    Raises:
        RenderError: The document could not be laid out or written.  Any
            partially written file has been removed.
    """
    path = pathlib.Path(output_path)
    story = _build_story(title, student_name, lines, generated_at, school_name)

    try:
        with open(path, "wb") as fh:
            doc = SimpleDocTemplate(
                fh,
                pagesize=A4,
                leftMargin=_MARGIN,
                rightMargin=_MARGIN,
                topMargin=_MARGIN,
                bottomMargin=_MARGIN,
                title=title,
                author=school_name,
            )
            doc.build(
                story,
                onFirstPage=_add_page_number,
                onLaterPages=_add_page_number,
            )
            if not fh.closed:
                fh.flush()
                os.fsync(fh.fileno())
    except Exception as exc:
        try:
            path.unlink(missing_ok=True)
        except OSError as cleanup_exc:
            logger.warning("Could not remove partial report %s: %s", path, cleanup_exc)
        raise RenderError(f"Failed to write report {path.name}: {exc}") from exc

    logger.info("Rendered report for %s (%d lines) to %s", student_name, len(lines), path)
    return path


async def render_report_async(
    title: str,
    student_name: str,
    lines: Sequence[str],
    output_path: str | os.PathLike,
    generated_at: datetime.datetime | None = None,
    school_name: str = DEFAULT_SCHOOL_NAME,
) -> pathlib.Path:
    """Awaitable ``render_report``; completes once the file is on disk."""
    return await asyncio.to_thread(
        render_report,
        title,
        student_name,
        lines,
        output_path,
        generated_at,
        school_name,
    )
