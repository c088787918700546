"""
Configuration management with schema validation.

Settings come from an optional YAML file (``config/settings.yaml`` by
default, or ``LIFEBOARD_SETTINGS``). String values of the form
``${VAR}`` / ``${VAR:default}`` are substituted from the environment, and a
few well-known variables override the file.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigError
from .logger import get_logger

logger = get_logger(__name__)

DEFAULT_SETTINGS_FILE = Path("config") / "settings.yaml"


class AppSettings(BaseModel):
    name: str = "Lifeboard"
    version: str = "1.0.0"
    environment: str = "development"


class StorageSettings(BaseModel):
    data_dir: str = "data"


class AuthSettings(BaseModel):
    min_password_length: int = 6
    session_expiry_days: int = 7
    bcrypt_rounds: int = 12
    cookie_name: str = "session_token"
    # When true, resource routes also demand a session token matching ownerId
    require_session: bool = False


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "json"
    file_path: Optional[str] = "logs/lifeboard.log"
    max_bytes: int = 10485760
    backup_count: int = 5


class SuggestionSettings(BaseModel):
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    timeout: float = 30.0
    count: int = 3


class ClientSettings(BaseModel):
    api_base_url: str = "http://localhost:8000"
    login_path: str = "/login"
    redirect_param: str = "redirect"
    session_storage_key: str = "currentUser"
    key_separator: str = "_"
    home_path: str = "/dashboard"


class WebSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    suggestions: SuggestionSettings = Field(default_factory=SuggestionSettings)
    client: ClientSettings = Field(default_factory=ClientSettings)
    web: WebSettings = Field(default_factory=WebSettings)


# (environment variable, section, field)
_ENV_OVERRIDES = (
    ("LIFEBOARD_DATA_DIR", "storage", "data_dir"),
    ("LIFEBOARD_REQUIRE_SESSION", "auth", "require_session"),
    ("LOG_LEVEL", "logging", "level"),
    ("OPENAI_API_KEY", "suggestions", "api_key"),
    ("WEB_HOST", "web", "host"),
    ("WEB_PORT", "web", "port"),
)


class ConfigLoader:
    """Load and validate the settings file"""

    def __init__(self, settings_path: Optional[str] = None):
        load_dotenv()
        path = settings_path or os.getenv("LIFEBOARD_SETTINGS")
        self.settings_path = Path(path) if path else DEFAULT_SETTINGS_FILE

    def _substitute_env_vars(self, value: Any) -> Any:
        """Recursively substitute environment variables"""
        if isinstance(value, str):
            if value.startswith("${") and value.endswith("}"):
                var_expr = value[2:-1]
                if ":" in var_expr:
                    var_name, default = var_expr.split(":", 1)
                    return os.getenv(var_name.strip(), default.strip())
                env_value = os.getenv(var_expr)
                if env_value is None:
                    raise ConfigError(f"Environment variable {var_expr} not found")
                return env_value
        elif isinstance(value, dict):
            return {k: self._substitute_env_vars(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [self._substitute_env_vars(item) for item in value]
        return value

    def _read_file(self) -> Dict[str, Any]:
        if not self.settings_path.exists():
            logger.debug("Settings file not found, using defaults", path=str(self.settings_path))
            return {}
        try:
            with open(self.settings_path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (yaml.YAMLError, OSError) as e:
            raise ConfigError(f"Failed to read settings from {self.settings_path}: {e}")
        if not isinstance(raw, dict):
            raise ConfigError(f"Settings file {self.settings_path} must contain a mapping")
        return raw

    def load_settings(self) -> Settings:
        """Load settings: file, then environment overrides"""
        data = self._substitute_env_vars(self._read_file())
        for env_name, section, field in _ENV_OVERRIDES:
            env_value = os.getenv(env_name)
            if env_value:
                data.setdefault(section, {})[field] = env_value
        try:
            return Settings(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid settings in {self.settings_path}: {e}")


def load_settings(settings_path: Optional[str] = None) -> Settings:
    """Convenience wrapper around ConfigLoader"""
    return ConfigLoader(settings_path).load_settings()
