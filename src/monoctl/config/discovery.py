"""Config file discovery and loading.

Walk-up finder locates monoctl.toml, similar to how git finds .git/.
Supports the MONOCTL_CONFIG env var override.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from monoctl.config.models import ProjectConfig
from monoctl.domain.errors import ValidationError

CONFIG_FILENAME = "monoctl.toml"
CONFIG_ENV_VAR = "MONOCTL_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for monoctl.toml.

    Returns the path to the config file, or None if not found.
    Checks MONOCTL_CONFIG env var first.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        if p.is_file():
            return p.resolve()
        return None

    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def load_config(path: Path | None) -> ProjectConfig:
    """Load and validate config from a TOML file.

    Returns an empty ProjectConfig when *path* is None. Malformed TOML is a
    validation failure, not a crash.
    """
    if path is None:
        return ProjectConfig()

    raw = path.read_text(encoding="utf-8")
    try:
        data: dict[str, Any] = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        raise ValidationError("ECONFIG", f"Invalid TOML in {path}: {exc}") from exc
    return ProjectConfig.model_validate(data)
