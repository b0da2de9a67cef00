"""Tests for configuration validation."""
import pytest

from conftest import make_settings
from expiry_reminder.config import parse_reminder_days


def test_complete_settings_validate():
    make_settings().validate()


def test_missing_store_credentials():
    settings = make_settings(SUPABASE_URL=None, SUPABASE_SERVICE_ROLE="")
    with pytest.raises(ValueError) as exc:
        settings.validate()
    assert "SUPABASE_URL is required" in str(exc.value)
    assert "SUPABASE_SERVICE_ROLE is required" in str(exc.value)


def test_mail_settings_optional_for_dry_run():
    settings = make_settings(EMAIL_HOST=None, EMAIL_PASS=None)
    with pytest.raises(ValueError, match="EMAIL_HOST is required"):
        settings.validate()
    settings.validate(require_mail=False)


def test_unknown_choices_rejected():
    with pytest.raises(ValueError, match="REMINDER_POLICY"):
        make_settings(REMINDER_POLICY="weekly").validate()
    with pytest.raises(ValueError, match="GUARD_MODE"):
        make_settings(GUARD_MODE="never").validate()
    with pytest.raises(ValueError, match="RUN_STATE_BACKEND"):
        make_settings(RUN_STATE_BACKEND="redis").validate()


def test_fixed_policy_needs_numeric_days():
    with pytest.raises(ValueError, match="not a list of integers"):
        make_settings(REMINDER_POLICY="fixed", REMINDER_DAYS="1,week").validate()
    with pytest.raises(ValueError, match="at least one day"):
        make_settings(REMINDER_POLICY="fixed", REMINDER_DAYS=" , ").validate()


def test_parse_reminder_days():
    assert parse_reminder_days("1,6,7,30,90,180") == [1, 6, 7, 30, 90, 180]
    assert parse_reminder_days(" 3 , 14 ,") == [3, 14]


def test_sender_defaults_to_user():
    assert make_settings().sender_address == "reminders@example.com"
    assert make_settings(EMAIL_FROM="noreply@example.com").sender_address == "noreply@example.com"
