"""
Unit tests for environment-driven configuration readers.
"""

from datetime import datetime, timezone

from gymcore.core import config


class TestTimezone:
    def test_invalid_timezone_falls_back_to_utc(self, monkeypatch):
        monkeypatch.setenv("TZ", "Mars/Olympus_Mons")
        assert str(config.get_app_timezone()) == "UTC"

    def test_valid_timezone(self, monkeypatch):
        monkeypatch.setenv("TZ", "America/Bogota")
        assert str(config.get_app_timezone()) == "America/Bogota"

    def test_localize_keeps_aware_values(self):
        aware = datetime(2025, 3, 10, 10, tzinfo=timezone.utc)
        assert config.localize(aware) == aware

    def test_utcnow_is_aware(self):
        assert config.utcnow().tzinfo is not None


class TestContractSettings:
    def test_warning_days_default(self, monkeypatch):
        monkeypatch.delenv("CONTRACT_EXPIRY_WARNING_DAYS", raising=False)
        assert config.get_contract_expiry_warning_days() == 7

    def test_warning_days_from_env(self, monkeypatch):
        monkeypatch.setenv("CONTRACT_EXPIRY_WARNING_DAYS", "14")
        assert config.get_contract_expiry_warning_days() == 14

    def test_invalid_warning_days_uses_default(self, monkeypatch):
        monkeypatch.setenv("CONTRACT_EXPIRY_WARNING_DAYS", "-2")
        assert config.get_contract_expiry_warning_days() == 7

    def test_booking_contract_requirement_flag(self, monkeypatch):
        monkeypatch.setenv("BOOKING_REQUIRES_ACTIVE_CONTRACT", "no")
        assert config.get_booking_requires_active_contract() is False
        monkeypatch.setenv("BOOKING_REQUIRES_ACTIVE_CONTRACT", "Yes")
        assert config.get_booking_requires_active_contract() is True

    def test_system_actor_blank_falls_back(self, monkeypatch):
        monkeypatch.setenv("SYSTEM_ACTOR_ID", "   ")
        assert config.get_system_actor_id() == "system"


class TestExpiryJobSettings:
    def test_job_disabled_by_default(self, monkeypatch):
        monkeypatch.delenv("CONTRACT_EXPIRY_JOB_ENABLED", raising=False)
        assert config.get_expiry_job_enabled() is False

    def test_invalid_hour_uses_default(self, monkeypatch):
        monkeypatch.setenv("CONTRACT_EXPIRY_JOB_HOUR", "25")
        assert config.get_expiry_job_hour() == 2

    def test_hour_from_env(self, monkeypatch):
        monkeypatch.setenv("CONTRACT_EXPIRY_JOB_HOUR", "5")
        assert config.get_expiry_job_hour() == 5


class TestSlowQuerySettings:
    def test_threshold_fallback(self, monkeypatch):
        monkeypatch.setenv("ALERT_QUERY_MS_THRESHOLD", "fast")
        assert config.get_slow_query_threshold_ms() == 100

    def test_alerts_can_be_disabled(self, monkeypatch):
        monkeypatch.setenv("ALERT_SLOW_QUERY_ENABLED", "false")
        assert config.get_slow_query_alerts_enabled() is False
