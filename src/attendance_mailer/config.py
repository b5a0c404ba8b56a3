"""Runtime configuration for the mailer service.

Settings are read from environment variables (optionally seeded from a
``.env`` file by the CLI):

- ``PORT`` / ``HOST`` -- where ``serve`` listens (default ``0.0.0.0:3000``)
- ``SMTP_USER`` / ``SMTP_PASS`` -- relay credentials, also the From address
- ``SMTP_HOST`` / ``SMTP_PORT`` -- relay (default ``smtp.gmail.com:465``)
- ``CORS_ORIGIN`` -- comma separated origin allow-list (default ``*``)
- ``DRY_RUN`` -- ``true`` disables real SMTP delivery
- ``REPORTS_DIR`` -- where temporary report PDFs are written
- ``SCHOOL_NAME`` -- sender display name and sign-off
- ``LOG_LEVEL`` -- root log level used by ``serve``

Missing credentials never fall back to built-in values: the service is
forced into dry-run mode instead.
"""

from __future__ import annotations

import dataclasses
import logging
import os

from attendance_mailer import DEFAULT_REPORTS_DIR

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in _TRUE_VALUES


def _parse_origins(raw: str) -> list[str]:
    """Split a comma separated ``CORS_ORIGIN`` value into a list."""
    origins = [part.strip() for part in raw.split(",") if part.strip()]
    if not origins or "*" in origins:
        return ["*"]
    return origins


@dataclasses.dataclass(frozen=True)
class Settings:
    """Immutable service configuration."""

    port: int = 3000
    host: str = "0.0.0.0"
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    cors_origins: tuple[str, ...] = ("*",)
    dry_run: bool = False
    reports_dir: str = DEFAULT_REPORTS_DIR
    school_name: str = "Saamarthya Academy"
    log_level: str = "INFO"

    @property
    def has_credentials(self) -> bool:
        return bool(self.smtp_user and self.smtp_password)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the current environment.

        When ``DRY_RUN`` is off but ``SMTP_USER``/``SMTP_PASS`` are not both
        set, the returned settings have ``dry_run=True`` and a warning is
        logged.
        """
        smtp_user = os.environ.get("SMTP_USER", "").strip()
        smtp_password = os.environ.get("SMTP_PASS", "")
        dry_run = _env_flag("DRY_RUN")

        if not dry_run and not (smtp_user and smtp_password):
            logger.warning(
                "SMTP credentials not configured. Set SMTP_USER and "
                "SMTP_PASS (or DRY_RUN=true); running in dry-run mode."
            )
            dry_run = True

        return cls(
            port=int(os.environ.get("PORT", "3000")),
            host=os.environ.get("HOST", "0.0.0.0"),
            smtp_user=smtp_user,
            smtp_password=smtp_password,
            smtp_host=os.environ.get("SMTP_HOST", "smtp.gmail.com"),
            smtp_port=int(os.environ.get("SMTP_PORT", "465")),
            cors_origins=tuple(_parse_origins(os.environ.get("CORS_ORIGIN", "*"))),
            dry_run=dry_run,
            reports_dir=os.environ.get("REPORTS_DIR", DEFAULT_REPORTS_DIR),
            school_name=os.environ.get("SCHOOL_NAME", "Saamarthya Academy"),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )
