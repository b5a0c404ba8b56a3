"""Shared pytest fixtures for the attendance-mailer test suite.

Provides:
    FakeSMTP       -- in-memory stand-in for ``smtplib.SMTP_SSL``
    reports_dir    -- empty temporary reports directory
    dry_settings   -- settings in dry-run mode
    live_settings  -- settings with credentials (talks to FakeSMTP only)
    client         -- TestClient for a dry-run app
"""

import smtplib

import pytest
from fastapi.testclient import TestClient

from attendance_mailer.app import create_app
from attendance_mailer.config import Settings
from attendance_mailer.reporting.sender import Mailer


# ---------------------------------------------------------------------------
# FakeSMTP
# ---------------------------------------------------------------------------

class FakeSMTP:
    """Records every connection and message instead of talking to a relay.

    Class attributes configure failure modes for the next connections:
    ``fail_login`` raises an authentication error, ``fail_send`` makes
    ``send_message`` raise, ``refuse_connect`` fails the constructor.
    """

    instances: list["FakeSMTP"] = []
    fail_login = False
    fail_send = False
    refuse_connect = False

    def __init__(self, host, port, timeout=None):
        if FakeSMTP.refuse_connect:
            raise ConnectionRefusedError("connection refused")
        self.host = host
        self.port = port
        self.timeout = timeout
        self.logged_in_as = None
        self.sent = []
        self.alive = True
        self.closed = False
        self.quit_called = False
        FakeSMTP.instances.append(self)

    @classmethod
    def reset(cls):
        cls.instances = []
        cls.fail_login = False
        cls.fail_send = False
        cls.refuse_connect = False

    def login(self, user, password):
        if FakeSMTP.fail_login:
            raise smtplib.SMTPAuthenticationError(535, b"bad credentials")
        self.logged_in_as = user

    def noop(self):
        if not self.alive:
            raise smtplib.SMTPServerDisconnected("gone")
        return 250, b"OK"

    def send_message(self, msg):
        if FakeSMTP.fail_send:
            raise smtplib.SMTPRecipientsRefused({msg["To"]: (550, b"no such user")})
        self.sent.append(msg)
        return {}

    def quit(self):
        self.quit_called = True
        self.closed = True

    def close(self):
        self.closed = True


@pytest.fixture()
def fake_smtp():
    FakeSMTP.reset()
    yield FakeSMTP
    FakeSMTP.reset()


# ---------------------------------------------------------------------------
# settings
# ---------------------------------------------------------------------------

@pytest.fixture()
def reports_dir(tmp_path):
    path = tmp_path / "reports"
    path.mkdir()
    return path


@pytest.fixture()
def dry_settings(reports_dir):
    return Settings(dry_run=True, reports_dir=str(reports_dir))


@pytest.fixture()
def live_settings(reports_dir):
    return Settings(
        smtp_user="office@school.example",
        smtp_password="app-password",
        smtp_host="smtp.test",
        smtp_port=465,
        dry_run=False,
        reports_dir=str(reports_dir),
    )


# ---------------------------------------------------------------------------
# apps
# ---------------------------------------------------------------------------

@pytest.fixture()
def client(dry_settings):
    """TestClient for a dry-run app; the lifespan runs inside the block."""
    app = create_app(settings=dry_settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def live_client(live_settings, fake_smtp):
    """TestClient whose mailer delivers into FakeSMTP."""
    mailer = Mailer(live_settings, smtp_factory=fake_smtp)
    app = create_app(settings=live_settings, mailer=mailer)
    with TestClient(app) as test_client:
        yield test_client
