from pathlib import Path

import pytest

from clipkeep.main import build_config, parse_args
from clipkeep.utils.config import AppConfig

ENV_KEYS = [
    "CLIPKEEP_DATA_DIR",
    "CLIPKEEP_POLL_INTERVAL",
    "CLIPKEEP_SAVE_DEBOUNCE",
    "CLIPKEEP_HISTORY_LIMIT",
    "CLIPKEEP_LOG_LEVEL",
    "CLIPKEEP_DEV",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    # keep a developer's .env out of the tests
    monkeypatch.chdir(tmp_path)


def test_defaults(tmp_path):
    config = AppConfig.from_env(env_path=tmp_path / "missing.env")

    assert config.data_dir == Path.home() / ".clipkeep"
    assert config.poll_interval == 1.0
    assert config.save_debounce == 1.0
    assert config.history_limit == 50
    assert config.store_file.name == "clipboard-history.json"
    assert config.log_dir.name == "logs"


def test_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("CLIPKEEP_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("CLIPKEEP_POLL_INTERVAL", "0.5")
    monkeypatch.setenv("CLIPKEEP_HISTORY_LIMIT", "none")
    monkeypatch.setenv("CLIPKEEP_LOG_LEVEL", "debug")
    monkeypatch.setenv("CLIPKEEP_DEV", "yes")

    config = AppConfig.from_env(env_path=tmp_path / "missing.env")

    assert config.data_dir == tmp_path
    assert config.poll_interval == 0.5
    assert config.history_limit is None
    assert config.log_level == "DEBUG"
    assert config.log_dir == tmp_path / "logs-dev"


def test_env_file(monkeypatch, tmp_path):
    env_file = tmp_path / "clipkeep.env"
    env_file.write_text("CLIPKEEP_HISTORY_LIMIT=7\nCLIPKEEP_SAVE_DEBOUNCE=2.5\n", encoding="utf-8")

    config = AppConfig.from_env(env_path=env_file)

    assert config.history_limit == 7
    assert config.save_debounce == 2.5


def test_negative_limit(monkeypatch, tmp_path):
    monkeypatch.setenv("CLIPKEEP_HISTORY_LIMIT", "-1")

    with pytest.raises(ValueError):
        AppConfig.from_env(env_path=tmp_path / "missing.env")


def test_cli_overrides(tmp_path):
    args = parse_args(["--data-dir", str(tmp_path), "-i", "0.2", "--history-limit", "0", "-v"])

    config = build_config(args)

    assert config.data_dir == tmp_path
    assert config.poll_interval == 0.2
    assert config.history_limit is None
    assert config.log_level == "DEBUG"


def test_configure_logging_writes_daily_file(tmp_path):
    import logging

    from clipkeep.utils.logging_config import configure_logging

    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    try:
        configure_logging(tmp_path / "logs", "INFO")
        logging.getLogger("clipkeep.test").info("hello log")
        for handler in root.handlers:
            handler.flush()

        files = list((tmp_path / "logs").glob("app-*.log"))
        assert len(files) == 1
        assert "hello log" in files[0].read_text(encoding="utf-8")
    finally:
        for handler in root.handlers[len(before):]:
            handler.close()
        root.handlers[:] = before
        root.setLevel(level)
