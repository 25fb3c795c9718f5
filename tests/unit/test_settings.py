import pytest

from formguard.errors import CsrfConfigError
from formguard.protection import CsrfProtection
from formguard.settings import Settings

SECRET = "supersecretkey123456789012345678901234567890"


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setenv("CSRF_SECRET", SECRET)
    for name in ("CSRF_TOKEN_FIELD", "CSRF_TIME_FIELD", "CSRF_TTL_MS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults_from_environment(env):
    settings = Settings(_env_file=None)
    config = settings.to_config()
    assert config.key == SECRET.encode()
    assert config.field_names.token == "_csrf_token"
    assert config.field_names.time == "_csrf_time"
    assert config.ttl == 3_600_000
    assert settings.log_level == "INFO"


def test_overrides_from_environment(env):
    env.setenv("CSRF_TOKEN_FIELD", "tok")
    env.setenv("CSRF_TIME_FIELD", "ts")
    env.setenv("CSRF_TTL_MS", "5000")
    env.setenv("LOG_LEVEL", " debug ")
    settings = Settings(_env_file=None)
    csrf = CsrfProtection.from_settings(settings)
    assert (csrf.token_field, csrf.time_field) == ("tok", "ts")
    assert csrf.config.ttl == 5000
    assert settings.log_level == "DEBUG"


def test_secret_not_shown_in_settings_repr(env):
    assert SECRET not in repr(Settings(_env_file=None))


def test_short_secret_from_environment_fails_on_build(env):
    env.setenv("CSRF_SECRET", "short")
    with pytest.raises(CsrfConfigError, match="at least 32 characters"):
        Settings(_env_file=None).to_config()


def test_bad_field_name_from_environment(env):
    env.setenv("CSRF_TOKEN_FIELD", "bad name")
    with pytest.raises(CsrfConfigError, match="Invalid token field name"):
        CsrfProtection.from_settings(Settings(_env_file=None))
