import pytest

from fittrack.settings import load_app_config


def test_defaults_without_environment():
    config = load_app_config({})

    assert config.db_port == 5432
    assert config.session_cookie_secure is False
    assert config.discord_webhook_url is None
    assert config.openai_api_key is None
    assert config.owner_username == "Owner"
    assert config.entitlement_cache_ttl_seconds == 300
    assert config.cors_allow_origins == ("http://localhost:5173",)


def test_environment_overrides():
    config = load_app_config(
        {
            "DB_PORT": "6543",
            "DB_CONNECT_TIMEOUT": "2.2",
            "SESSION_COOKIE_SECURE": "yes",
            "DISCORD_WEBHOOK_URL": "https://hooks.example.test/1",
            "ENTITLEMENT_CACHE_TTL_SECONDS": "10",
            "CORS_ALLOW_ORIGINS": "https://a.example, https://b.example ,",
        }
    )

    assert config.db_port == 6543
    assert config.db_connect_timeout == 3
    assert config.session_cookie_secure is True
    assert config.discord_webhook_url == "https://hooks.example.test/1"
    assert config.entitlement_cache_ttl_seconds == 60
    assert config.cors_allow_origins == ("https://a.example", "https://b.example")
    assert config.db_kwargs()["port"] == 6543


def test_invalid_integer_is_reported():
    with pytest.raises(ValueError):
        load_app_config({"DB_PORT": "not-a-port"})


def test_negative_connect_timeout_is_rejected():
    with pytest.raises(ValueError):
        load_app_config({"DB_CONNECT_TIMEOUT": "-1"})
