import json
import logging

import pytest

from savevideo.config import DEFAULT_USER_AGENT, AppConfig, ConfigError, load_config
from savevideo.logging_utils import JsonFormatter


def test_defaults(app_config, tmp_path):
    assert app_config.temp_dir == tmp_path / "data" / "temp"
    assert app_config.output_dir == tmp_path / "data" / "files"
    assert app_config.user_agent == DEFAULT_USER_AGENT
    assert app_config.has_reddit_credentials is False


def test_environment_aliases(monkeypatch, tmp_path):
    monkeypatch.setenv("REDDIT_CLIENT_ID", "cid")
    monkeypatch.setenv("REDDIT_CLIENT_SECRET", "shh")
    monkeypatch.setenv("REDDIT_USERNAME", "  ")
    monkeypatch.setenv("SAVEVIDEO_BASE_DIR", str(tmp_path / "media"))
    monkeypatch.setenv("SAVEVIDEO_LOG_LEVEL", "debug")

    config = AppConfig(_env_file=None)

    assert config.has_reddit_credentials
    assert config.reddit_client_secret.get_secret_value() == "shh"
    assert "shh" not in repr(config)
    assert config.reddit_username is None
    assert config.base_dir == tmp_path / "media"
    assert config.log_level == "DEBUG"


def test_load_config_creates_directories(monkeypatch, tmp_path):
    env_file = tmp_path / "test.env"
    env_file.write_text(f"SAVEVIDEO_BASE_DIR={tmp_path / 'store'}\nSAVEVIDEO_LOG_PATH={tmp_path / 'logs' / 'app.log'}\n")

    config = load_config(env_file)

    assert config.base_dir == tmp_path / "store"
    assert config.temp_dir.is_dir()
    assert config.output_dir.is_dir()
    assert (tmp_path / "logs").is_dir()


def test_invalid_values_raise_config_error(monkeypatch, tmp_path):
    monkeypatch.setenv("SAVEVIDEO_BASE_DIR", str(tmp_path))
    monkeypatch.setenv("SAVEVIDEO_LOG_PATH", str(tmp_path / "app.log"))
    monkeypatch.setenv("SAVEVIDEO_DOWNLOAD_RETRIES", "0")

    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.env")


def test_unknown_log_level_rejected():
    with pytest.raises(ValueError):
        AppConfig(log_level="chatty", _env_file=None)


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord("savevideo", logging.INFO, __file__, 1, "AppConfig loaded", None, None)
    record.event = "config.loaded"
    record.oauth = True

    payload = json.loads(JsonFormatter().format(record))

    assert payload["event"] == "config.loaded"
    assert payload["oauth"] is True
    assert payload["level"] == "INFO"


def test_json_formatter_flattens_pipeline_events():
    message = '{"event":"pipeline.merging","session_id":"abc"}'
    record = logging.LogRecord("savevideo", logging.INFO, __file__, 1, message, None, None)

    payload = json.loads(JsonFormatter().format(record))

    assert payload["event"] == "pipeline.merging"
    assert payload["session_id"] == "abc"
