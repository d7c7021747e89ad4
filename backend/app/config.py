"""Upload relay application configuration.

Loads settings from two YAML files:
  * relay.settings.yaml  — non-secret configuration
  * relay.secrets.yaml   — provider credentials (never committed)

Environment variables override both files, so a container can be configured
without any YAML at all:

  PORT, HOST, LOG_LEVEL, UPLOAD_FOLDER,
  IMAGEKIT_PUBLIC_KEY, IMAGEKIT_PRIVATE_KEY, IMAGEKIT_URL_ENDPOINT,
  RELAY_SETTINGS_PATH, RELAY_SECRETS_PATH (file locations)
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("relay.settings.yaml")
SECRETS_FILE  = Path("relay.secrets.yaml")

DEFAULT_STATIC_DIR = Path(__file__).resolve().parent.parent / "frontend"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Secrets models
# ---------------------------------------------------------------------------


class ImageKitSecrets(BaseModel):
    public_key:   Optional[str] = None
    private_key:  Optional[str] = None
    url_endpoint: Optional[str] = None


class Secrets(BaseModel):
    imagekit: ImageKitSecrets = Field(default_factory=ImageKitSecrets)


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerConfig(BaseModel):
    host:            str       = "0.0.0.0"
    port:            int       = 3000
    log_level:       str       = "info"
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])


class UploadConfig(BaseModel):
    """Where uploads go and where the landing page lives."""
    folder:     str = "/uploads"
    static_dir: str = str(DEFAULT_STATIC_DIR)

    @field_validator("folder")
    @classmethod
    def _folder_is_absolute(cls, value: str) -> str:
        if not value.startswith("/"):
            value = "/" + value
        return value


class ImageKitConfig(BaseModel):
    upload_url:      str   = "https://upload.imagekit.io/api/v1/files/upload"
    timeout_seconds: float = 120.0


class AppConfig(BaseModel):
    server:   ServerConfig   = Field(default_factory=ServerConfig)
    upload:   UploadConfig   = Field(default_factory=UploadConfig)
    imagekit: ImageKitConfig = Field(default_factory=ImageKitConfig)
    secrets:  Secrets        = Field(default_factory=Secrets)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_OVERRIDES = {
    "HOST":                  ("server", "host"),
    "PORT":                  ("server", "port"),
    "LOG_LEVEL":             ("server", "log_level"),
    "UPLOAD_FOLDER":         ("upload", "folder"),
    "IMAGEKIT_PUBLIC_KEY":   ("secrets", "imagekit", "public_key"),
    "IMAGEKIT_PRIVATE_KEY":  ("secrets", "imagekit", "private_key"),
    "IMAGEKIT_URL_ENDPOINT": ("secrets", "imagekit", "url_endpoint"),
}


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    """Write non-empty environment variables into the raw config dict."""
    for env_name, keys in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if not value:
            continue
        node = data
        for key in keys[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[keys[-1]] = value
        logger.debug("Config override from env: %s", env_name)
    return data


def _resolve_static_dir(data: Dict[str, Any], settings_path: Path) -> None:
    upload = data.get("upload") or {}
    static_dir = upload.get("static_dir")
    if static_dir and not Path(static_dir).is_absolute():
        upload["static_dir"] = str(settings_path.resolve().parent / static_dir)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(
    settings_path: Optional[Path] = None,
    secrets_path: Optional[Path] = None,
) -> AppConfig:
    """Load and merge settings + secrets + env overrides into an *AppConfig*."""
    settings_path = Path(settings_path or os.environ.get("RELAY_SETTINGS_PATH") or SETTINGS_FILE)
    secrets_path  = Path(secrets_path or os.environ.get("RELAY_SECRETS_PATH") or SECRETS_FILE)

    settings_data = _load_yaml(settings_path)
    secrets_data  = _load_yaml(secrets_path)

    # Merge: secrets live under the "secrets" key in AppConfig
    settings_data["secrets"] = secrets_data
    _resolve_static_dir(settings_data, settings_path)
    _apply_env_overrides(settings_data)

    config = AppConfig(**settings_data)
    logger.info(
        "Settings loaded (server=%s:%s, upload.folder=%s, imagekit=%s)",
        config.server.host,
        config.server.port,
        config.upload.folder,
        "configured" if config.secrets.imagekit.private_key else "missing",
    )
    return config


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the cached AppConfig, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Drop the cached AppConfig (for testing)."""
    global _config
    _config = None
