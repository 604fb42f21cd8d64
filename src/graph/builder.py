"""Installed-package graph construction.

Turns a raw installed tree (``{name, version, dev?, dependencies}``) into a
flat map of ``PackageNode`` objects keyed by ``name@version``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from contract.artifacts import UNKNOWN_VERSION
from utils import make_key

if TYPE_CHECKING:
    from scan.manifest import Manifest


@dataclass
class PackageNode:
    """One distinct installed ``name@version``."""

    name: str
    version: str
    key: str
    depth: int
    parents: set[str] = field(default_factory=set)
    children: set[str] = field(default_factory=set)
    dev: bool | None = None


class _TraversalState:
    """Mutable state for one tree traversal."""

    def __init__(self) -> None:
        self.nodes: dict[str, PackageNode] = {}
        self.on_path: set[str] = set()


def _node_identity(raw: Any, provided_name: str | None) -> tuple[str, str] | None:
    if not isinstance(raw, dict):
        return None
    raw_name = raw.get("name")
    name = raw_name if isinstance(raw_name, str) and raw_name else provided_name
    if not name:
        return None
    raw_version = raw.get("version")
    version = raw_version if isinstance(raw_version, str) and raw_version else UNKNOWN_VERSION
    return name, version


def _visit(
    state: _TraversalState,
    raw: dict[str, Any],
    name: str,
    version: str,
    depth: int,
    parent_key: str | None,
) -> None:
    key = make_key(name, version)
    dev = raw.get("dev") if isinstance(raw.get("dev"), bool) else None

    node = state.nodes.get(key)
    if node is None:
        node = PackageNode(name=name, version=version, key=key, depth=depth, dev=dev)
        state.nodes[key] = node
    else:
        node.depth = min(node.depth, depth)
        if node.dev is None and dev is not None:
            node.dev = dev

    if parent_key is not None:
        node.parents.add(parent_key)
        state.nodes[parent_key].children.add(key)

    # A key already on the current path is a phantom self-reference; keep
    # the edge but do not descend again.
    if key in state.on_path:
        return

    dependencies = raw.get("dependencies")
    if not isinstance(dependencies, dict):
        return

    state.on_path.add(key)
    for dep_name, child in dependencies.items():
        identity = _node_identity(child, dep_name)
        if identity is None:
            continue
        _visit(state, child, identity[0], identity[1], depth + 1, key)
    state.on_path.discard(key)


def _nodes_from_manifest(manifest: Manifest) -> dict[str, PackageNode]:
    nodes: dict[str, PackageNode] = {}
    for dev, declared in (
        (False, manifest.dependencies),
        (True, manifest.dev_dependencies),
    ):
        for name, version in declared.items():
            key = make_key(name, version)
            if key not in nodes:
                nodes[key] = PackageNode(
                    name=name, version=version, key=key, depth=1, dev=dev
                )
    return nodes


def has_installed_tree(tree: Any) -> bool:
    """Whether ``tree`` is an installed tree rather than a missing payload."""
    return isinstance(tree, dict) and isinstance(tree.get("dependencies"), dict)


def build_node_map(tree: Any, manifest: Manifest) -> dict[str, PackageNode]:
    """Build the deduplicated installed-package graph.

    Args:
        tree: Raw installed tree payload, or None when unavailable
        manifest: Project manifest used as a flat fallback

    Returns:
        Dictionary of identity key -> PackageNode. Every ``name@version``
        appears once with the minimum depth over all paths from a root, and
        parent/child sets are mutually consistent.
    """
    if not has_installed_tree(tree):
        return _nodes_from_manifest(manifest)

    state = _TraversalState()
    for dep_name, child in tree["dependencies"].items():
        identity = _node_identity(child, dep_name)
        if identity is None:
            continue
        _visit(state, child, identity[0], identity[1], 1, None)

    return state.nodes


__all__ = ["PackageNode", "build_node_map", "has_installed_tree"]
