"""Configuration management for sshchat.

Loads settings from a YAML configuration file with environment variable
overrides. Supports .env files.
"""

from __future__ import annotations

import logging
import os
import socket
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/sshchat.yaml")


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=2222, ge=0, le=65535, description="0 picks a free port")
    host_key_dir: str = Field(default="keys", description="Directory holding the SSH host keys")
    auth_timeout: float = Field(default=30.0, gt=0, description="Seconds to wait for a shell request")
    max_workers: int = Field(default=64, gt=0, description="Size of each thread pool (handshakes, channel writes)")


class SessionConfig(BaseModel):
    max_input_length: int = Field(default=128, gt=0)
    render_debounce: float = Field(default=0.05, gt=0)
    close_grace: float = Field(default=0.01, ge=0)
    timestamp_format: str = Field(default="%Y-%m-%d %H:%M:%S")
    read_size: int = Field(default=1024, gt=0)


class StatusConfig(BaseModel):
    enabled: bool = Field(default=False)
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8080, ge=1, le=65535)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)
    loki_url: str | None = Field(default=None, description="Loki base URL; logs are also shipped there when set")
    identify: str = Field(default_factory=socket.gethostname, description="Value of the identify label on shipped logs")


class Settings(BaseSettings):
    """Root configuration for the sshchat server.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "SSHCHAT_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    server: ServerConfig = Field(default_factory=ServerConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    status: StatusConfig = Field(default_factory=StatusConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Init kwargs carry the YAML file, which ranks below the environment.
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: SSHCHAT_* env vars > .env file > unprefixed deployment vars
    (PORT, HOST_KEY_DIR, LOKI_HOST, IDENTIFY) > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    # Load .env file manually for non-prefixed vars
    _load_dotenv()

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _load_dotenv() -> None:
    """Load .env file into os.environ if it exists."""
    env_path = Path(".env")
    if not env_path.exists():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()
                if not os.environ.get(key):
                    os.environ[key] = value


# Unprefixed variables set per deployment: name -> (section, key)
_DEPLOYMENT_VARS = {
    "PORT": ("server", "port"),
    "HOST_KEY_DIR": ("server", "host_key_dir"),
    "LOKI_HOST": ("logging", "loki_url"),
    "IDENTIFY": ("logging", "identify"),
}


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply environment variable overrides for non-prefixed vars.

    These take precedence over the YAML file, as container platforms set
    them per deployment. Empty values are ignored.
    """
    for var, (section, key) in _DEPLOYMENT_VARS.items():
        value = os.environ.get(var, "")
        if not value:
            continue
        values = yaml_data.get(section) or {}
        values[key] = value
        yaml_data[section] = values
