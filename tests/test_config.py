import pytest
from pydantic import ValidationError

from cdn_gateway.config import Settings


class TestSettings:
    def test_defaults(self, make_settings):
        settings = make_settings()
        assert settings.port == 3000
        assert settings.max_upload_size == 10 * 1024 * 1024
        assert settings.session.cookie_name == "session_id"
        assert settings.rate_limit.requests == 100
        assert settings.thumbnail.size == 128

    def test_base_url_trailing_slash_stripped(self, make_settings):
        assert make_settings().base_url == "https://cdn.example.com"

    @pytest.mark.parametrize("value, expected", [("debug", "DEBUG"), ("warn", "WARNING")])
    def test_log_level_normalized(self, make_settings, value, expected):
        assert make_settings(log_level=value).log_level == expected

    def test_invalid_log_level(self, make_settings):
        with pytest.raises(ValidationError):
            make_settings(log_level="chatty")

    def test_production_requires_password_hash(self, make_settings):
        with pytest.raises(ValidationError):
            make_settings(environment="production", admin={"username": "admin"})

    def test_thumbnail_quality_bounds(self, make_settings):
        with pytest.raises(ValidationError):
            make_settings(thumbnail={"quality": 0})

    def test_nested_env_override(self, monkeypatch):
        monkeypatch.setenv("RATE_LIMIT__REQUESTS", "7")
        settings = Settings(logs_dir="unused")
        assert settings.rate_limit.requests == 7
