"""Click CLI for attendance-mailer.

Commands:
    serve          -- Run the HTTP API with uvicorn.
    preview        -- Print the attendance email for a student.
    render-report  -- Write a monthly report PDF to a local file.
    check          -- Query /api/health of a running instance.
"""

from __future__ import annotations

import logging

import click
from dotenv import load_dotenv

logger = logging.getLogger("attendance_mailer.cli")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@click.group()
def main() -> None:
    """attendance-mailer: attendance notices and monthly reports for parents."""
    load_dotenv()


@main.command()
@click.option("--host", default=None, help="Interface to bind (default: HOST or 0.0.0.0).")
@click.option("--port", default=None, type=int, help="Port to listen on (default: PORT or 3000).")
@click.option("--reload", is_flag=True, help="Restart on code changes (development).")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the HTTP API."""
    import uvicorn

    from attendance_mailer.config import Settings

    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    host = host or settings.host
    port = port or settings.port
    click.echo(click.style(f"Server running on port {port}", fg="green"))
    click.echo(f"   DRY_RUN={'true' if settings.dry_run else 'false'}")

    uvicorn.run(
        "attendance_mailer.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@main.command()
@click.argument("student_id")
@click.argument("student_name")
@click.option("--timestamp", default=None, help="ISO-8601 time of attendance (default: now).")
@click.option("--html", "show_html", is_flag=True, help="Print the HTML body instead of text.")
def preview(student_id: str, student_name: str, timestamp: str | None, show_html: bool) -> None:
    """Print the attendance email for STUDENT_ID / STUDENT_NAME."""
    from attendance_mailer.config import Settings
    from attendance_mailer.reporting.composer import (
        build_attendance_email,
        parse_timestamp,
    )

    settings = Settings.from_env()
    content = build_attendance_email(
        student_id,
        student_name,
        parse_timestamp(timestamp),
        school_name=settings.school_name,
    )
    click.echo(f"Subject: {content.subject}")
    click.echo("")
    click.echo(content.html_body if show_html else content.text_body)


@main.command("render-report")
@click.argument("student_name")
@click.argument("output", type=click.Path(dir_okay=False, writable=True))
@click.option(
    "--line",
    "lines",
    multiple=True,
    help="Attendance record, e.g. 'Mon: Present'. Repeat for more lines.",
)
def render_report_cmd(student_name: str, output: str, lines: tuple[str, ...]) -> None:
    """Write the monthly report PDF for STUDENT_NAME to OUTPUT."""
    from attendance_mailer.config import Settings
    from attendance_mailer.exceptions import RenderError
    from attendance_mailer.reporting.pdf import REPORT_TITLE, render_report

    settings = Settings.from_env()
    try:
        path = render_report(
            REPORT_TITLE,
            student_name,
            list(lines),
            output,
            school_name=settings.school_name,
        )
    except RenderError as exc:
        click.echo(click.style(f"Failed to render report: {exc}", fg="red"))
        raise SystemExit(1)

    click.echo(click.style(f"Report written to {path}", fg="green"))


@main.command()
@click.option(
    "--url",
    default="http://localhost:3000",
    show_default=True,
    envvar="MAILER_URL",
    help="Base URL of a running instance.",
)
@click.option("--timeout", default=5.0, show_default=True, type=float)
def check(url: str, timeout: float) -> None:
    """Query the health endpoint of a running instance."""
    import requests

    endpoint = url.rstrip("/") + "/api/health"
    try:
        response = requests.get(endpoint, timeout=timeout)
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        logger.error("Health check failed: %s", exc)
        click.echo(click.style(f"Unreachable: {endpoint} ({exc})", fg="red"))
        raise SystemExit(1)

    mode = "dry-run" if payload.get("dryRun") else "live"
    click.echo(click.style(f"OK: {mode} mode, server time {payload.get('time')}", fg="green"))
