"""Tests for environment-driven settings."""

import logging

import pytest

from attendance_mailer.config import Settings

_ENV_VARS = [
    "PORT", "HOST", "SMTP_USER", "SMTP_PASS", "SMTP_HOST", "SMTP_PORT",
    "CORS_ORIGIN", "DRY_RUN", "REPORTS_DIR", "SCHOOL_NAME", "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:

    def test_defaults_without_env(self):
        settings = Settings.from_env()

        assert settings.port == 3000
        assert settings.smtp_host == "smtp.gmail.com"
        assert settings.smtp_port == 465
        assert settings.cors_origins == ("*",)
        assert settings.school_name == "Saamarthya Academy"
        assert settings.log_level == "INFO"


class TestDryRunFlag:

    @pytest.mark.parametrize("value", ["true", "TRUE", "1", "yes", "on"])
    def test_truthy_values(self, monkeypatch, value):
        monkeypatch.setenv("DRY_RUN", value)
        assert Settings.from_env().dry_run is True

    def test_false_with_credentials_is_live(self, monkeypatch):
        monkeypatch.setenv("DRY_RUN", "false")
        monkeypatch.setenv("SMTP_USER", "office@school.example")
        monkeypatch.setenv("SMTP_PASS", "secret")

        settings = Settings.from_env()

        assert settings.dry_run is False
        assert settings.has_credentials is True


class TestFailClosed:
    """Missing credentials must never lead to a live mailer."""

    def test_no_credentials_forces_dry_run(self):
        settings = Settings.from_env()
        assert settings.dry_run is True
        assert settings.smtp_user == ""
        assert settings.smtp_password == ""

    def test_partial_credentials_force_dry_run(self, monkeypatch):
        monkeypatch.setenv("SMTP_USER", "office@school.example")
        assert Settings.from_env().dry_run is True

    def test_warning_logged(self, caplog):
        with caplog.at_level(logging.WARNING):
            Settings.from_env()
        assert any("SMTP" in msg for msg in caplog.messages)


class TestOverrides:

    def test_cors_list(self, monkeypatch):
        monkeypatch.setenv("CORS_ORIGIN", "https://a.example, https://b.example")
        assert Settings.from_env().cors_origins == ("https://a.example", "https://b.example")

    def test_cors_wildcard_wins(self, monkeypatch):
        monkeypatch.setenv("CORS_ORIGIN", "https://a.example,*")
        assert Settings.from_env().cors_origins == ("*",)

    def test_port_and_reports_dir(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("REPORTS_DIR", str(tmp_path))
        settings = Settings.from_env()
        assert settings.port == 8080
        assert settings.reports_dir == str(tmp_path)
