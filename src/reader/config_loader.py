import os
from dataclasses import dataclass, fields
from typing import Any

import yaml


DEFAULT_USER_AGENT = "Readly RSS Reader/1.0"


@dataclass
class ReaderSettings:
    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: float = 15.0
    retries: int = 0
    refresh_interval_seconds: float = 900.0
    stale_after_seconds: float = 300.0
    refresh_delay_seconds: float = 0.5
    batch_size: int = 100
    db_path: str = ""
    summarize_endpoint: str = ""
    summary_max_chars: int = 5000


def _repo_root() -> str:
    return os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, os.pardir))


def _config_dir() -> str:
    return os.getenv("READER_CONFIG_DIR") or os.path.join(_repo_root(), "config", "reader")


def load_yaml(name: str) -> dict[str, Any]:
    path = os.path.join(_config_dir(), name)
    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        return {}
    return data


def load_settings() -> ReaderSettings:
    data = load_yaml("settings.yaml")
    settings = ReaderSettings()

    # Unknown keys are ignored; known keys are coerced to the default's type.
    for f in fields(ReaderSettings):
        if f.name not in data or data[f.name] is None:
            continue
        current = getattr(settings, f.name)
        setattr(settings, f.name, type(current)(data[f.name]))

    settings.user_agent = os.getenv("READER_USER_AGENT", settings.user_agent)
    settings.db_path = os.getenv("READER_DB_PATH", settings.db_path) or os.path.join(_repo_root(), "data", "reader.db")
    settings.summarize_endpoint = os.getenv("READER_SUMMARIZE_ENDPOINT", settings.summarize_endpoint)
    return settings
