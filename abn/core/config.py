"""Settings loaded from ./.abn_settings/Settings.toml (+ env overrides)"""

import logging
import tomllib
from os import getenv
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

SETTINGS_DIR = Path(".abn_settings")
SETTINGS_FILE = SETTINGS_DIR / "Settings.toml"

DEFAULT_SETTINGS_TEMPLATE = """\
[application]
database_url = "sqlite:///./abn.db"
host = "127.0.0.1"
port = 8080
log_level = "INFO"

[client]
server_url = "http://127.0.0.1:8080"
request_timeout = 5.0
tick_rate_ms = 500
"""


class SettingsError(Exception):
    """Settings file exists but can't be used"""


class Settings:
    def __init__(self, data: Optional[dict] = None):
        data = data or {}
        application = data.get("application", {})
        client = data.get("client", {})

        # les variables d'env passent avant le fichier
        self.DATABASE_URL = getenv("ABN_DATABASE_URL", application.get("database_url", "sqlite:///./abn.db"))
        self.HOST = application.get("host", "127.0.0.1")
        self.PORT = int(application.get("port", 8080))
        self.LOG_LEVEL = getenv("ABN_LOG_LEVEL", application.get("log_level", "INFO")).upper()

        self.SERVER_URL = client.get("server_url", f"http://{self.HOST}:{self.PORT}")
        self.REQUEST_TIMEOUT = float(client.get("request_timeout", 5.0))
        self.TICK_RATE_MS = int(client.get("tick_rate_ms", 500))


def ensure_settings_file(path: Path = SETTINGS_FILE) -> Path:
    """Create the settings file from the default template on first run."""
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(DEFAULT_SETTINGS_TEMPLATE, encoding="utf-8")
        logger.info(f"created default settings file at {path}")
    return path


def load_settings(path: Path = SETTINGS_FILE) -> Settings:
    ensure_settings_file(path)
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise SettingsError(f"can't parse {path}: {e}") from e

    if "application" not in data or "database_url" not in data["application"]:
        raise SettingsError(f"{path} is missing [application] database_url")

    try:
        return Settings(data)
    except (TypeError, ValueError) as e:
        raise SettingsError(f"invalid value in {path}: {e}") from e


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Settings used by the process, loaded once."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
