from jitcard.config import MARQETA_SANDBOX_URL, JitCardSettings


def test_defaults():
    settings = JitCardSettings(_env_file=None)

    assert settings.marqeta_base_url == MARQETA_SANDBOX_URL
    assert settings.balance_limit_cents == 10000
    assert settings.velocity_window == "DAY"
    assert settings.card_pins == {"5112345123451234": "123456"}
    assert settings.use_json_logs is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("JITCARD_ENVIRONMENT", "sandbox")
    monkeypatch.setenv("JITCARD_MARQETA_BASE_URL", "https://example.test/v3/")
    monkeypatch.setenv("JITCARD_CARD_PINS", '{"4111111111111111": "999999"}')
    monkeypatch.setenv("JITCARD_BALANCE_LIMIT_CENTS", "2500")

    settings = JitCardSettings(_env_file=None)

    assert settings.marqeta_base_url == "https://example.test/v3"
    assert settings.card_pins == {"4111111111111111": "999999"}
    assert settings.balance_limit_cents == 2500
    assert settings.use_json_logs is True


def test_origins_from_list():
    settings = JitCardSettings(_env_file=None, allowed_origins="http://a.test, http://b.test")

    assert settings.allowed_origins == ["http://a.test", "http://b.test"]


def test_explicit_log_format_wins():
    settings = JitCardSettings(_env_file=None, environment="prod", log_json=False)

    assert settings.use_json_logs is False
