from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .acl import Capability

CONFIG_ENV = "EGGPANEL_CONFIG"


class ConfigError(RuntimeError):
    """The configuration file or environment is invalid."""


class ApiKeyConfig(BaseModel):
    token: str = Field(min_length=1)
    permissions: dict[Capability, int] = Field(default_factory=dict)


class Settings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"
    seed_path: Optional[Path] = None
    api_keys: list[ApiKeyConfig] = Field(default_factory=list)
    panel_url: str = "http://127.0.0.1:8000"
    token: Optional[str] = None

    def key_for(self, token: str) -> Optional[ApiKeyConfig]:
        for key in self.api_keys:
            if key.token == token:
                return key
        return None


def _read_yaml(path: Path) -> dict:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    yaml = YAML(typ="safe")
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.load(handle)
    except (OSError, YAMLError) as exc:
        raise ConfigError(f"Unable to read config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("Config file must be a mapping at the top level")
    return data


def load_settings(path: Optional[Path] = None) -> Settings:
    if path is None and os.environ.get(CONFIG_ENV):
        path = Path(os.environ[CONFIG_ENV])
    data = _read_yaml(path) if path is not None else {}

    overrides = {
        "panel_url": os.environ.get("EGGPANEL_URL"),
        "token": os.environ.get("EGGPANEL_TOKEN"),
        "log_level": os.environ.get("EGGPANEL_LOG_LEVEL"),
    }
    data.update({key: value for key, value in overrides.items() if value})

    try:
        settings = Settings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    if settings.seed_path is not None and path is not None and not settings.seed_path.is_absolute():
        settings.seed_path = path.parent / settings.seed_path
    return settings
