"""Package: one workspace package described by its ``package.json``."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

MANIFEST_FILENAME = "package.json"

# Manifest sections that declare dependencies, in the order they are merged.
DEPENDENCY_FIELDS = (
    "dependencies",
    "devDependencies",
    "optionalDependencies",
    "peerDependencies",
)


@dataclass(frozen=True)
class Package:
    """A package inside the project.

    Attributes:
        name: The ``name`` field of the manifest (directory name if absent).
        location: Absolute package directory.
        manifest: Parsed ``package.json`` contents.
        root_path: Project root the package belongs to.
    """

    name: str
    location: Path
    manifest: dict[str, Any] = field(default_factory=dict, compare=False)
    root_path: Path | None = None

    @classmethod
    def from_manifest(cls, manifest_path: Path, root_path: Path | None = None) -> Package:
        """Load a package from the path of its ``package.json``."""
        raw = manifest_path.read_text(encoding="utf-8")
        data: dict[str, Any] = json.loads(raw)
        location = manifest_path.parent.resolve()
        return cls(
            name=data.get("name") or location.name,
            location=location,
            manifest=data,
            root_path=root_path,
        )

    @property
    def version(self) -> str | None:
        return self.manifest.get("version")

    @property
    def private(self) -> bool:
        return bool(self.manifest.get("private", False))

    @property
    def scripts(self) -> dict[str, str]:
        return dict(self.manifest.get("scripts") or {})

    def dependencies(self, *, include_dev: bool = True) -> dict[str, str]:
        """Merged ``name -> version spec`` mapping of declared dependencies."""
        merged: dict[str, str] = {}
        for section in DEPENDENCY_FIELDS:
            if section == "devDependencies" and not include_dev:
                continue
            for dep_name, spec in (self.manifest.get(section) or {}).items():
                merged.setdefault(dep_name, spec)
        return merged

    def relative_location(self) -> str:
        """Location relative to the project root (absolute if unknown)."""
        if self.root_path is None:
            return str(self.location)
        try:
            return self.location.relative_to(self.root_path).as_posix()
        except ValueError:
            return str(self.location)
