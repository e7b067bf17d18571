import pytest

from admin_backend.settings import DEVELOPMENT_SECRET, BackendSettings


class TestBackendSettings:

    def test_defaults(self):
        settings = BackendSettings(environ={})

        assert settings.TOKEN_EXPIRE_SECONDS == 86400
        assert settings.TOKEN_REFRESH_EXPIRE_SECONDS == 604800
        assert settings.CACHE_PERMS_PREFIX == "cache:perms"
        assert settings.CAPTCHA_ENABLED is True
        assert "/api/v1/auth/login" in settings.TOKEN_EXCLUDE_PATHS
        assert settings.CORS_ALLOWED_ORIGINS == ["*"]

    def test_values_are_read_from_environ(self):
        settings = BackendSettings(environ={
            "TOKEN_EXPIRE_SECONDS": "60",
            "CAPTCHA_ENABLED": "false",
            "CORS_ALLOWED_ORIGINS": "http://a.example, http://b.example",
            "LOG_LEVEL": "debug",
        })

        assert settings.TOKEN_EXPIRE_SECONDS == 60
        assert settings.CAPTCHA_ENABLED is False
        assert settings.CORS_ALLOWED_ORIGINS == ["http://a.example", "http://b.example"]
        assert settings.LOG_LEVEL == "DEBUG"

    def test_development_falls_back_to_fixed_secret(self):
        assert BackendSettings(environ={}).token_secret == DEVELOPMENT_SECRET

    def test_production_requires_secret(self):
        settings = BackendSettings(environ={"DEBUG_MODE": "production"})
        with pytest.raises(RuntimeError):
            settings.token_secret

    def test_explicit_secret_wins(self):
        settings = BackendSettings(environ={"DEBUG_MODE": "production", "TOKEN_SECRET_KEY": "s3cret"})
        assert settings.token_secret == "s3cret"
