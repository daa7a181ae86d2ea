"""Tests for application settings."""

from coupon_manager.core.config import Settings


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.API_PREFIX == "/api"
        assert s.DEFAULT_CURRENCY == "NIS"
        assert s.EXPIRING_SOON_DAYS == 7
        assert s.RECENT_COUPONS_LIMIT == 5

    def test_cors_origins_split(self):
        s = Settings(_env_file=None, CORS_ORIGINS="http://a.test, http://b.test ,")
        assert s.cors_origins == ["http://a.test", "http://b.test"]

    def test_telegram_enabled(self):
        assert Settings(_env_file=None, TELEGRAM_BOT_TOKEN="").telegram_enabled is False
        assert Settings(_env_file=None, TELEGRAM_BOT_TOKEN="123:abc").telegram_enabled is True

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("EXPIRING_SOON_DAYS", "14")
        monkeypatch.setenv("DEBUG", "true")
        s = Settings(_env_file=None)
        assert s.EXPIRING_SOON_DAYS == 14
        assert s.DEBUG is True
