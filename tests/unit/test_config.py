"""Unit tests for configuration and settings."""
from hotel_common.config import Settings, get_settings, reset_settings_cache


class TestSettings:
    def test_get_settings_returns_same_instance(self):
        assert get_settings() is get_settings()

    def test_reset_settings_cache(self):
        settings1 = get_settings()
        reset_settings_cache()
        settings2 = get_settings()
        assert settings1 is not settings2

    def test_test_environment_is_applied(self):
        settings = get_settings()
        assert settings.database_url.startswith("sqlite")
        assert settings.rate_limiting_enabled is False

    def test_booking_defaults(self):
        settings = Settings()
        assert settings.booking_lock_timeout_seconds > 0
        assert 1 <= settings.default_page_size <= settings.max_page_size

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("BOOKING_LOCK_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("MAX_PAGE_SIZE", "25")
        settings = Settings()
        assert settings.booking_lock_timeout_seconds == 2.5
        assert settings.max_page_size == 25

    def test_service_ports(self):
        settings = Settings()
        ports = {
            settings.users_service_port,
            settings.hotels_service_port,
            settings.rooms_service_port,
            settings.bookings_service_port,
        }
        assert len(ports) == 4
