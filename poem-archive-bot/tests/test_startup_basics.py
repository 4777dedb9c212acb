#!/usr/bin/env python3
import importlib
import json

import pytest


def _set_minimal_env(monkeypatch, tmp_path):
    logs = tmp_path / "logs"
    locks = tmp_path / "locks"
    for p in (logs, locks):
        p.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("LOG_DIR", str(logs))
    monkeypatch.setenv("LOCK_DIR", str(locks))
    monkeypatch.setenv("DRIVE_ROOT_FOLDER_ID", "root-folder")
    monkeypatch.setenv("GOOGLE_ACCESS_TOKEN", "drive-token")
    monkeypatch.setenv("TELEGRAM_TOKEN_PRIMARY", "primary-token")
    monkeypatch.setenv("TELEGRAM_TOKEN_SECONDARY", "secondary-token")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


@pytest.fixture
def strategy_module(monkeypatch, tmp_path):
    _set_minimal_env(monkeypatch, tmp_path)

    # Import settings after env is configured
    from config import settings as settings_module

    importlib.reload(settings_module)

    from config import bot_strategy

    importlib.reload(bot_strategy)
    yield bot_strategy
    bot_strategy.load_bot_config.cache_clear()


def test_primary_config_resolves(strategy_module, tmp_path):
    config = strategy_module.get_bot_strategy("primary").build()

    assert config.bot_type is strategy_module.BotType.PRIMARY
    assert config.telegram_token == "primary-token"
    assert config.drive_access_token == "drive-token"
    assert config.root_folder_id == "root-folder"
    assert config.openai_api_key is None
    assert config.lock_path == str(tmp_path / "locks" / ".poem-bot-primary.pid")


def test_secondary_config_uses_its_own_token_and_lock(strategy_module):
    config = strategy_module.get_bot_strategy("secondary").build()

    assert config.telegram_token == "secondary-token"
    assert config.lock_path.endswith(".poem-bot-secondary.pid")


def test_config_is_immutable(strategy_module):
    config = strategy_module.get_bot_strategy("primary").build()
    with pytest.raises(Exception):
        config.telegram_token = "other"


def test_unknown_bot_type_is_configuration_error(strategy_module):
    with pytest.raises(strategy_module.ConfigurationError):
        strategy_module.get_bot_strategy("tertiary")


def test_missing_telegram_token_is_configuration_error(strategy_module, monkeypatch):
    monkeypatch.delenv("TELEGRAM_TOKEN_PRIMARY")
    with pytest.raises(strategy_module.ConfigurationError, match="TELEGRAM_TOKEN_PRIMARY"):
        strategy_module.get_bot_strategy("primary").build()


def test_missing_root_folder_is_configuration_error(strategy_module, monkeypatch):
    monkeypatch.delenv("DRIVE_ROOT_FOLDER_ID")
    with pytest.raises(strategy_module.ConfigurationError):
        strategy_module.get_bot_strategy("primary").build()


def test_drive_token_read_from_token_file(strategy_module, monkeypatch, tmp_path):
    token_file = tmp_path / "oauth-token.json"
    token_file.write_text(json.dumps({"access_token": "from-file", "refresh_token": "r"}))
    monkeypatch.delenv("GOOGLE_ACCESS_TOKEN")
    monkeypatch.setenv("GOOGLE_TOKEN_FILE", str(token_file))

    assert strategy_module.get_bot_strategy("primary").build().drive_access_token == "from-file"


def test_missing_token_file_is_configuration_error(strategy_module, monkeypatch, tmp_path):
    monkeypatch.delenv("GOOGLE_ACCESS_TOKEN")
    monkeypatch.setenv("GOOGLE_TOKEN_FILE", str(tmp_path / "absent.json"))

    with pytest.raises(strategy_module.ConfigurationError, match="not found"):
        strategy_module.get_bot_strategy("primary").build()


def test_import_bot_worker_startup(monkeypatch, tmp_path):
    _set_minimal_env(monkeypatch, tmp_path)

    # Import-time configuration must not need credentials
    from workers import bot_worker

    assert hasattr(bot_worker, "main")
