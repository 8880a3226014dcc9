"""Per-user JSON config loading."""

from __future__ import annotations

import json
import logging as py_logging
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator

logger = py_logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.config/dar/config.json").expanduser()
BUILTIN_IMAGE = "ghcr.io/cyrusimap/cyrus-docker:nightly"
IMAGE_ENV = "DAR_IMAGE"


class DarConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    default_image: str = ""

    @field_validator("default_image")
    @classmethod
    def _strip_image(cls, value: str) -> str:
        return value.strip()

    def resolve_image(self, override: str | None = None) -> str:
        if override:
            return override
        return self.default_image or BUILTIN_IMAGE


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _sanitize(raw: dict[str, object]) -> DarConfig:
    default_image = raw.get("default_image", "")
    if not isinstance(default_image, str):
        logger.warning("Ignoring non-string default_image in config: %r", default_image)
        default_image = ""

    env_image = os.getenv(IMAGE_ENV, "").strip()
    if env_image:
        default_image = env_image

    return DarConfig(default_image=default_image)


def load_config(path: str | Path | None = None) -> DarConfig:
    resolved = get_config_path(path)
    if not resolved.exists():
        return _sanitize({})
    try:
        raw = json.loads(resolved.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", resolved, exc)
        return _sanitize({})
    if not isinstance(raw, dict):
        logger.warning("Ignoring config file %s: top level is not an object", resolved)
        return _sanitize({})
    return _sanitize(raw)
