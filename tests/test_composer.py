"""Tests for the email composer (subjects, bodies, timestamps)."""

import datetime

import pytest

from attendance_mailer.reporting.composer import (
    ATTENDANCE_SUBJECT,
    REPORT_SUBJECT,
    build_attendance_email,
    build_report_email,
    format_ist,
    parse_timestamp,
)

UTC = datetime.timezone.utc


# ======================================================================
# format_ist
# ======================================================================


class TestFormatIst:

    def test_converts_utc_to_ist(self):
        when = datetime.datetime(2024, 1, 15, 10, 0, tzinfo=UTC)
        assert format_ist(when) == "Monday, 15 January 2024 at 3:30 pm"

    def test_morning_time(self):
        when = datetime.datetime(2024, 3, 1, 2, 5, tzinfo=UTC)
        assert format_ist(when) == "Friday, 1 March 2024 at 7:35 am"

    def test_midnight_is_twelve_am(self):
        when = datetime.datetime(2024, 3, 1, 18, 30, tzinfo=UTC)
        assert format_ist(when) == "Saturday, 2 March 2024 at 12:00 am"

    def test_naive_datetime_treated_as_utc(self):
        naive = datetime.datetime(2024, 1, 15, 10, 0)
        aware = naive.replace(tzinfo=UTC)
        assert format_ist(naive) == format_ist(aware)

    def test_default_is_now(self):
        result = format_ist()
        assert " at " in result


# ======================================================================
# parse_timestamp
# ======================================================================


class TestParseTimestamp:

    NOW = datetime.datetime(2024, 6, 1, 12, 0, tzinfo=UTC)

    def test_iso_with_z(self):
        result = parse_timestamp("2024-01-15T10:00:00Z", now=self.NOW)
        assert result == datetime.datetime(2024, 1, 15, 10, 0, tzinfo=UTC)

    def test_iso_with_offset(self):
        result = parse_timestamp("2024-01-15T15:30:00+05:30", now=self.NOW)
        assert result.astimezone(UTC) == datetime.datetime(2024, 1, 15, 10, 0, tzinfo=UTC)

    def test_naive_iso_is_utc(self):
        result = parse_timestamp("2024-01-15T10:00:00", now=self.NOW)
        assert result.tzinfo is not None
        assert result.hour == 10

    def test_epoch_milliseconds(self):
        result = parse_timestamp(1705312800000, now=self.NOW)
        assert result == datetime.datetime(2024, 1, 15, 10, 0, tzinfo=UTC)

    @pytest.mark.parametrize("value", [None, "", "yesterday", "2024-13-45", True])
    def test_bad_values_fall_back_to_now(self, value):
        assert parse_timestamp(value, now=self.NOW) == self.NOW


# ======================================================================
# build_attendance_email
# ======================================================================


class TestBuildAttendanceEmail:

    WHEN = datetime.datetime(2024, 1, 15, 10, 0, tzinfo=UTC)

    def test_subject(self):
        content = build_attendance_email("S1", "Asha", self.WHEN)
        assert content.subject == ATTENDANCE_SUBJECT

    def test_text_body(self):
        content = build_attendance_email("S1", "Asha", self.WHEN)
        assert content.text_body.startswith("Dear Parent,")
        assert "Your child Asha (ID: S1) is marked PRESENT at Saamarthya Academy." in content.text_body
        assert "Date & Time: Monday, 15 January 2024 at 3:30 pm" in content.text_body

    def test_html_body(self):
        content = build_attendance_email("S1", "Asha", self.WHEN)
        assert "<strong>Asha</strong>" in content.html_body
        assert "<strong>S1</strong>" in content.html_body
        assert "PRESENT" in content.html_body
        assert "Monday, 15 January 2024 at 3:30 pm" in content.html_body

    def test_html_escapes_student_name(self):
        content = build_attendance_email("S1", "<script>x</script>", self.WHEN)
        assert "<script>" not in content.html_body
        assert "&lt;script&gt;" in content.html_body

    def test_custom_school_name(self):
        content = build_attendance_email("S1", "Asha", self.WHEN, school_name="Green Valley School")
        assert "Green Valley School" in content.text_body
        assert "Green Valley School" in content.html_body

    def test_deterministic(self):
        first = build_attendance_email("S1", "Asha", self.WHEN)
        second = build_attendance_email("S1", "Asha", self.WHEN)
        assert first == second


# ======================================================================
# build_report_email
# ======================================================================


class TestBuildReportEmail:

    def test_subject(self):
        assert build_report_email("Asha").subject == REPORT_SUBJECT

    def test_bodies_mention_attachment(self):
        content = build_report_email("Asha")
        assert "monthly attendance report" in content.text_body
        assert "Asha" in content.html_body
        assert "Saamarthya Academy" in content.html_body
