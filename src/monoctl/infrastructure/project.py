"""Project: the monorepo root, its manifest and its monoctl.toml.

The root is the directory holding the discovered ``monoctl.toml``; without
a config file it is the starting directory itself. Missing files are not
errors here: the validation stage decides what is required.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from monoctl.config.discovery import find_config, load_config
from monoctl.config.models import INDEPENDENT_VERSION
from monoctl.domain.errors import ValidationError
from monoctl.domain.package import MANIFEST_FILENAME, Package

logger = logging.getLogger(__name__)


class Project:
    """Handle on the monorepo being operated on.

    Attributes:
        root_path: Resolved project root.
        config_path: Location of ``monoctl.toml`` or None.
        config: Parsed configuration (empty when no file was found).
        manifest: Parsed root ``package.json`` or None.
    """

    def __init__(self, cwd: Path | str | None = None) -> None:
        start = Path(cwd).resolve() if cwd else Path.cwd().resolve()
        self.config_path = find_config(start)
        self.root_path = self.config_path.parent if self.config_path else start
        self.config = load_config(self.config_path)
        self.manifest = _read_manifest(self.root_path / MANIFEST_FILENAME)

    def __repr__(self) -> str:
        return f"Project(root_path={self.root_path!s})"

    @property
    def config_not_found(self) -> bool:
        return self.config_path is None

    @property
    def version(self) -> str | None:
        return self.config.version

    def is_independent(self) -> bool:
        return self.version == INDEPENDENT_VERSION

    def package_globs(self, *, use_workspaces: bool | None = None) -> list[str]:
        """Globs locating package directories.

        With workspaces the root manifest's ``workspaces`` field is used,
        either as a list or as ``{"packages": [...]}``.
        """
        if use_workspaces is None:
            use_workspaces = bool(self.config.use_workspaces)
        if use_workspaces:
            workspaces: Any = (self.manifest or {}).get("workspaces") or []
            if isinstance(workspaces, dict):
                workspaces = workspaces.get("packages") or []
            if not workspaces:
                raise ValidationError(
                    "EWORKSPACES",
                    f"Workspaces need to be defined in the root {MANIFEST_FILENAME}.",
                )
            return list(workspaces)
        return self.config.package_globs

    def get_packages(self, *, use_workspaces: bool | None = None) -> list[Package]:
        """Load every package matched by :meth:`package_globs`.

        ``node_modules`` trees are never searched; ``!pattern`` entries
        exclude directories matched by earlier patterns.
        """
        globs = self.package_globs(use_workspaces=use_workspaces)
        excluded: set[Path] = set()
        for pattern in globs:
            if pattern.startswith("!"):
                excluded.update(p.resolve() for p in self.root_path.glob(pattern[1:]))

        packages: list[Package] = []
        seen: set[Path] = set()
        for pattern in globs:
            if pattern.startswith("!"):
                continue
            for manifest_path in sorted(self.root_path.glob(f"{pattern.rstrip('/')}/{MANIFEST_FILENAME}")):
                location = manifest_path.parent.resolve()
                if "node_modules" in location.parts or location in seen or location in excluded:
                    continue
                seen.add(location)
                try:
                    packages.append(Package.from_manifest(manifest_path, self.root_path))
                except json.JSONDecodeError as exc:
                    raise ValidationError("EJSONPARSE", f"Invalid JSON in {manifest_path}: {exc}") from exc
        logger.debug("Found %d packages in %s", len(packages), self.root_path)
        return packages


def _read_manifest(path: Path) -> dict[str, Any] | None:
    if not path.is_file():
        return None
    try:
        data: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValidationError("EJSONPARSE", f"Invalid JSON in {path}: {exc}") from exc
    return data
