"""Project manifest (package.json) loading."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from artifacts.models.artifacts.dependencies import Scope

if TYPE_CHECKING:
    from pathlib import Path

MANIFEST_FILENAME = "package.json"


class ManifestError(Exception):
    """Raised when the project manifest cannot be read at all."""


def _string_map(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): v for k, v in value.items() if isinstance(v, str)}


class Manifest(BaseModel):
    """The subset of a package manifest the aggregation core depends on."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str | None = None
    version: str | None = None
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(
        default_factory=dict, alias="devDependencies"
    )
    peer_dependencies: dict[str, str] = Field(
        default_factory=dict, alias="peerDependencies"
    )
    optional_dependencies: dict[str, str] = Field(
        default_factory=dict, alias="optionalDependencies"
    )
    engines: dict[str, str] = Field(default_factory=dict)
    scripts: dict[str, str] = Field(default_factory=dict)

    @field_validator(
        "dependencies",
        "dev_dependencies",
        "peer_dependencies",
        "optional_dependencies",
        "engines",
        "scripts",
        mode="before",
    )
    @classmethod
    def coerce_string_maps(cls, v: Any) -> dict[str, str]:
        """Drop non-string values instead of rejecting the whole manifest."""
        return _string_map(v)

    @field_validator("name", "version", mode="before")
    @classmethod
    def coerce_optional_string(cls, v: Any) -> str | None:
        if isinstance(v, str) and v.strip():
            return v.strip()
        return None

    @property
    def direct_names(self) -> frozenset[str]:
        return frozenset(self.dependencies) | frozenset(self.dev_dependencies)

    @property
    def declared_names(self) -> frozenset[str]:
        return (
            self.direct_names
            | frozenset(self.peer_dependencies)
            | frozenset(self.optional_dependencies)
        )

    def is_direct(self, name: str) -> bool:
        return name in self.dependencies or name in self.dev_dependencies

    def scope_of(self, name: str) -> Scope | None:
        """Return the declared scope of any declared name, runtime first."""
        if name in self.dependencies:
            return "runtime"
        if name in self.dev_dependencies:
            return "dev"
        if name in self.optional_dependencies:
            return "optional"
        if name in self.peer_dependencies:
            return "peer"
        return None


def merge_manifests(manifests: list[Manifest]) -> Manifest:
    """Union the declared dependency sets of several manifests.

    Later manifests overwrite ranges declared by earlier ones.
    """
    merged = Manifest()
    for manifest in manifests:
        merged.dependencies.update(manifest.dependencies)
        merged.dev_dependencies.update(manifest.dev_dependencies)
        merged.peer_dependencies.update(manifest.peer_dependencies)
        merged.optional_dependencies.update(manifest.optional_dependencies)
    return merged


def parse_manifest(data: Any) -> Manifest:
    if not isinstance(data, dict):
        msg = "manifest must be a JSON object"
        raise ManifestError(msg)
    try:
        return Manifest.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid manifest: {e}"
        raise ManifestError(msg) from e


def load_manifest(root: Path) -> Manifest:
    """Load ``package.json`` from ``root``.

    Raises:
        ManifestError: If the manifest is missing, unreadable or not a JSON object.
    """
    manifest_path = root / MANIFEST_FILENAME
    try:
        data = orjson.loads(manifest_path.read_bytes())
    except OSError as e:
        msg = f"Cannot read {manifest_path}: {e}"
        raise ManifestError(msg) from e
    except orjson.JSONDecodeError as e:
        msg = f"Invalid JSON in {manifest_path}: {e}"
        raise ManifestError(msg) from e

    return parse_manifest(data)


__all__ = [
    "MANIFEST_FILENAME",
    "Manifest",
    "ManifestError",
    "load_manifest",
    "merge_manifests",
    "parse_manifest",
]
