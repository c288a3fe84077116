import logging

import pytest

from abn.core.config import DEFAULT_SETTINGS_TEMPLATE, Settings, SettingsError, load_settings
from abn.core.logging_setup import setup_logging
from abn import server


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("ABN_DATABASE_URL", raising=False)
    monkeypatch.delenv("ABN_LOG_LEVEL", raising=False)


def test_first_run_writes_template(tmp_path):
    """Fichier absent => créé depuis le template puis chargé"""
    path = tmp_path / ".abn_settings" / "Settings.toml"
    settings = load_settings(path)
    assert path.read_text(encoding="utf-8") == DEFAULT_SETTINGS_TEMPLATE
    assert settings.DATABASE_URL == "sqlite:///./abn.db"
    assert settings.PORT == 8080
    assert settings.SERVER_URL == "http://127.0.0.1:8080"
    assert settings.REQUEST_TIMEOUT == 5.0
    assert settings.TICK_RATE_MS == 500


def test_env_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "Settings.toml"
    path.write_text('[application]\ndatabase_url = "sqlite:///./file.db"\nlog_level = "info"\n')
    monkeypatch.setenv("ABN_DATABASE_URL", "sqlite:///./env.db")
    monkeypatch.setenv("ABN_LOG_LEVEL", "debug")

    settings = load_settings(path)
    assert settings.DATABASE_URL == "sqlite:///./env.db"
    assert settings.LOG_LEVEL == "DEBUG"


def test_unparseable_file(tmp_path):
    path = tmp_path / "Settings.toml"
    path.write_text("[application\ndatabase_url = ")
    with pytest.raises(SettingsError):
        load_settings(path)


def test_missing_database_url(tmp_path):
    path = tmp_path / "Settings.toml"
    path.write_text('[application]\nhost = "0.0.0.0"\n')
    with pytest.raises(SettingsError, match="database_url"):
        load_settings(path)


def test_bad_port(tmp_path):
    path = tmp_path / "Settings.toml"
    path.write_text('[application]\ndatabase_url = "sqlite://"\nport = "eighty"\n')
    with pytest.raises(SettingsError):
        load_settings(path)


def test_client_section_defaults_from_application():
    settings = Settings({"application": {"database_url": "sqlite://", "host": "10.0.0.2", "port": 9000}})
    assert settings.SERVER_URL == "http://10.0.0.2:9000"


def test_setup_logging_single_handler():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging("warning")
        setup_logging("debug")
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)


# ========== ENTRYPOINT ==========
def test_server_exits_1_on_bad_settings(monkeypatch):
    def broken():
        raise SettingsError("can't parse Settings.toml")

    monkeypatch.setattr(server, "load_settings", broken)
    assert server.main() == 1


def test_server_runs_uvicorn(monkeypatch):
    calls = []
    monkeypatch.setattr(server, "load_settings", lambda: Settings({"application": {"database_url": "sqlite://"}}))
    monkeypatch.setattr(server, "setup_logging", lambda level: None)
    monkeypatch.setattr(server.database, "configure_database", lambda url: calls.append(("db", url)))
    monkeypatch.setattr(server.database, "init_db", lambda: calls.append(("init",)))
    monkeypatch.setattr(server.uvicorn, "run", lambda app, **kwargs: calls.append(("run", app, kwargs["port"])))

    assert server.main() == 0
    assert calls == [("db", "sqlite://"), ("init",), ("run", "abn.main:app", 8080)]
