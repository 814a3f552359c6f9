import pytest

from domainiq.domain.models.queue import QueueSettings, RESET_DAILY_MIDNIGHT_UTC
from domainiq.infrastructure.config import settings


def write_yaml(tmp_path, text):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(text, encoding="utf-8")
    return config_file


def test_yaml_is_flattened_to_dotted_keys(tmp_path, monkeypatch):
    config_file = write_yaml(tmp_path, "queue:\n  per_window_limit: 10\nai:\n  provider: groq\n")
    monkeypatch.chdir(tmp_path)
    settings.load_configuration(config_file=config_file, force=True)

    assert settings.get_config("queue.per_window_limit") == 10
    assert settings.get_default_provider() == "groq"


def test_environment_overrides_yaml(tmp_path, monkeypatch):
    config_file = write_yaml(tmp_path, "queue:\n  max_retries: 5\n")
    monkeypatch.chdir(tmp_path)
    settings.load_configuration(config_file=config_file, force=True)
    monkeypatch.setenv("DOMAINIQ_QUEUE_MAX_RETRIES", "1")

    assert settings.get_config("queue.max_retries") == 1


def test_test_overrides_win_over_environment(monkeypatch):
    monkeypatch.setenv("DOMAINIQ_AI_PROVIDER", "openai")
    settings.set_config_for_testing({"ai.provider": "none"})
    assert settings.get_default_provider() == "none"


def test_dotenv_file_is_loaded_without_overriding_env(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("GROQ_API_KEY=from-dotenv\nOPENAI_API_KEY=from-dotenv\n", encoding="utf-8")
    monkeypatch.setenv("OPENAI_API_KEY", "from-env")
    # monkeypatch restores these after load_dotenv sets them
    monkeypatch.setenv("GROQ_API_KEY", "placeholder")
    monkeypatch.delenv("GROQ_API_KEY")

    settings.load_configuration(config_file=tmp_path / "missing.yaml", env_file=env_file, force=True)

    assert settings.get_groq_api_key() == "from-dotenv"
    assert settings.get_openai_api_key() == "from-env"


@pytest.mark.parametrize("raw, expected", [
    ("true", True), ("False", False), ("42", 42), ("1.5", 1.5), ("gemini", "gemini"),
])
def test_env_values_are_coerced(raw, expected):
    assert settings.coerce_env_value(raw) == expected


def test_api_keys_from_yaml_section():
    settings.set_config_for_testing({"gemini.api_key": "yaml-key"})
    assert settings.get_gemini_api_key() == "yaml-key"
    assert settings.get_api_key("gemini") == "yaml-key"
    assert settings.get_api_key("none") is None


def test_unknown_provider_falls_back_to_gemini():
    settings.set_config_for_testing({"ai.provider": "mystery"})
    assert settings.get_default_provider() == "gemini"


def test_queue_settings_use_defaults_when_unset():
    assert settings.get_queue_settings() == QueueSettings()


def test_queue_settings_overrides():
    settings.set_config_for_testing({
        "queue.per_window_limit": 2,
        "queue.min_interval_ms": 500,
        "queue.reset_schedule": RESET_DAILY_MIDNIGHT_UTC,
    })
    queue_settings = settings.get_queue_settings()
    assert queue_settings.per_window_limit == 2
    assert queue_settings.min_interval_ms == 500
    assert queue_settings.reset_schedule == RESET_DAILY_MIDNIGHT_UTC
    assert queue_settings.max_retries == QueueSettings().max_retries


def test_invalid_queue_settings_raise():
    settings.set_config_for_testing({"queue.per_window_limit": 0})
    with pytest.raises(ValueError):
        settings.get_queue_settings()


def test_non_numeric_queue_setting_from_environment_raises_value_error(monkeypatch):
    monkeypatch.setenv("DOMAINIQ_QUEUE_PER_WINDOW_LIMIT", "lots")
    with pytest.raises(ValueError, match="per_window_limit"):
        settings.get_queue_settings()


@pytest.mark.parametrize("value", ["lots", True, None, [1]])
def test_queue_settings_reject_non_numbers(value):
    with pytest.raises(ValueError, match="max_retries"):
        QueueSettings(max_retries=value)


def test_model_and_logging_helpers():
    settings.set_config_for_testing({
        "ai.groq.model": "llama-3.1-8b-instant",
        "logging.level": "debug",
        "logging.file": "/tmp/domainiq.log",
    })
    assert settings.get_default_model("groq") == "llama-3.1-8b-instant"
    assert settings.get_default_model("gemini") is None
    assert settings.get_log_level() == "DEBUG"
    assert settings.get_log_file() == "/tmp/domainiq.log"
