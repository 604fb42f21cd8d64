"""Package insight gathering from installed package directories.

Insights are looked up per package name, not per version: the first
installed manifest found for a name answers for every version sharing it.
All reads are best-effort and never abort an aggregation run.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import orjson

from artifacts.models.artifacts.dependencies import (
    DependencySurface,
    Links,
    ModuleFormat,
    ModuleSystem,
    SizeFootprint,
)
from contract.artifacts import REGISTRY_URL
from scan.manifest import MANIFEST_FILENAME
from utils import normalize_repo_url

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

INSTALL_SCRIPT_KEYS = ("preinstall", "install", "postinstall")
NATIVE_BUILD_TOOLS = ("node-gyp", "node-pre-gyp", "nodegyp")


@dataclass(frozen=True)
class PackageMeta:
    data: dict[str, Any]
    directory: Path


@dataclass(frozen=True)
class PackageStats:
    size: int = 0
    files: int = 0
    has_dts: bool = False
    has_native_binary: bool = False
    has_binding_gyp: bool = False


@dataclass(frozen=True)
class PackageInsights:
    """Everything learned from one installed package directory."""

    license: str | None
    dependency_surface: DependencySurface
    module_system: ModuleSystem
    bundled_types: bool
    native: bool
    install_scripts: bool
    size: SizeFootprint
    deprecated: bool
    node_engine: str | None
    links: Links


def registry_links(name: str) -> Links:
    return Links(registry=REGISTRY_URL.format(name=name))


def locate_package_manifest(name: str, search_paths: Sequence[Path]) -> Path | None:
    """Find ``node_modules/<name>/package.json`` walking up from each search path."""
    for start in search_paths:
        current = start.resolve()
        while True:
            candidate = current / "node_modules" / name / MANIFEST_FILENAME
            if candidate.is_file():
                return candidate
            if current.parent == current:
                break
            current = current.parent
    return None


def load_package_meta(name: str, search_paths: Sequence[Path]) -> PackageMeta | None:
    manifest_path = locate_package_manifest(name, search_paths)
    if manifest_path is None:
        logger.debug("No installed manifest for %s", name)
        return None
    try:
        data = orjson.loads(manifest_path.read_bytes())
    except (OSError, orjson.JSONDecodeError) as e:
        logger.debug("Cannot read %s: %s", manifest_path, e)
        return None
    if not isinstance(data, dict):
        return None
    return PackageMeta(data=data, directory=manifest_path.parent)


def calculate_package_stats(directory: Path) -> PackageStats:
    """Walk an installed package directory, skipping symlinks."""
    size = 0
    files = 0
    has_dts = False
    has_native_binary = False
    has_binding_gyp = False

    for current, dir_names, file_names in os.walk(directory):
        current_path = Path(current)
        dir_names[:] = [d for d in dir_names if not (current_path / d).is_symlink()]
        for file_name in file_names:
            path = current_path / file_name
            if path.is_symlink():
                continue
            try:
                size += path.stat().st_size
            except OSError:
                continue
            files += 1
            if file_name.endswith(".d.ts"):
                has_dts = True
            if file_name.endswith(".node"):
                has_native_binary = True
            if file_name == "binding.gyp":
                has_binding_gyp = True

    return PackageStats(
        size=size,
        files=files,
        has_dts=has_dts,
        has_native_binary=has_native_binary,
        has_binding_gyp=has_binding_gyp,
    )


def extract_license(data: dict[str, Any]) -> str | None:
    """Read the declared license, including the legacy object and list forms."""
    raw = data.get("license")
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    if isinstance(raw, dict) and isinstance(raw.get("type"), str):
        return raw["type"]

    licenses = data.get("licenses")
    if isinstance(licenses, list):
        names = [
            item if isinstance(item, str) else item.get("type")
            for item in licenses
            if isinstance(item, (str, dict))
        ]
        joined = " OR ".join(name for name in names if isinstance(name, str) and name)
        return joined or None
    return None


def determine_module_system(data: dict[str, Any]) -> ModuleSystem:
    type_field = data.get("type")
    exports = data.get("exports")

    format_: ModuleFormat
    if type_field == "module":
        format_ = "esm"
    elif type_field == "commonjs":
        format_ = "commonjs"
    elif data.get("module") or exports is not None:
        format_ = "dual"
    else:
        format_ = "commonjs"

    return ModuleSystem(format=format_, conditional_exports=isinstance(exports, dict))


def _count(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    return len(value) if isinstance(value, dict) else 0


def _scripts(data: dict[str, Any]) -> dict[str, str]:
    scripts = data.get("scripts")
    if not isinstance(scripts, dict):
        return {}
    return {k: v for k, v in scripts.items() if isinstance(v, str)}


def has_install_scripts(scripts: dict[str, str]) -> bool:
    return any(scripts.get(key, "").strip() for key in INSTALL_SCRIPT_KEYS)


def scripts_invoke_native_build(scripts: dict[str, str]) -> bool:
    return any(tool in command for command in scripts.values() for tool in NATIVE_BUILD_TOOLS)


def _url_field(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    if isinstance(value, dict) and isinstance(value.get("url"), str) and value["url"]:
        return value["url"]
    return None


def build_links(name: str, data: dict[str, Any]) -> Links:
    repository = _url_field(data.get("repository"))
    homepage = data.get("homepage")
    return Links(
        registry=REGISTRY_URL.format(name=name),
        repository=normalize_repo_url(repository) if repository else None,
        bugs=_url_field(data.get("bugs")),
        homepage=homepage if isinstance(homepage, str) and homepage else None,
    )


def gather_package_insights(name: str, search_paths: Sequence[Path]) -> PackageInsights | None:
    """Inspect the installed copy of ``name``.

    Returns:
        Insights, or None when no readable manifest was found.
    """
    meta = load_package_meta(name, search_paths)
    if meta is None:
        return None

    data = meta.data
    stats = calculate_package_stats(meta.directory)
    scripts = _scripts(data)
    engines = data.get("engines")
    node_engine = engines.get("node") if isinstance(engines, dict) else None
    peer_count = _count(data, "peerDependencies")

    return PackageInsights(
        license=extract_license(data),
        dependency_surface=DependencySurface(
            dependencies=_count(data, "dependencies"),
            dev_dependencies=_count(data, "devDependencies"),
            peer_dependencies=peer_count,
            optional_dependencies=_count(data, "optionalDependencies"),
            has_peer_dependencies=peer_count > 0,
        ),
        module_system=determine_module_system(data),
        bundled_types=bool(data.get("types") or data.get("typings") or stats.has_dts),
        native=stats.has_native_binary
        or stats.has_binding_gyp
        or scripts_invoke_native_build(scripts),
        install_scripts=has_install_scripts(scripts),
        size=SizeFootprint(installed_size=stats.size, file_count=stats.files),
        deprecated=bool(data.get("deprecated")),
        node_engine=node_engine if isinstance(node_engine, str) else None,
        links=build_links(name, data),
    )


class InsightCache:
    """Name-keyed insight cache for one aggregation run.

    Misses are cached too, so a package that cannot be read is only looked
    up once. Safe to share between worker threads.
    """

    def __init__(self, search_paths: Sequence[Path]) -> None:
        self._search_paths = list(search_paths)
        self._entries: dict[str, PackageInsights | None] = {}
        self._lock = threading.Lock()

    def get(self, name: str) -> PackageInsights | None:
        with self._lock:
            if name in self._entries:
                return self._entries[name]

        insights = gather_package_insights(name, self._search_paths)

        with self._lock:
            return self._entries.setdefault(name, insights)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = [
    "InsightCache",
    "PackageInsights",
    "PackageMeta",
    "PackageStats",
    "build_links",
    "calculate_package_stats",
    "determine_module_system",
    "extract_license",
    "gather_package_insights",
    "load_package_meta",
    "locate_package_manifest",
    "registry_links",
]
