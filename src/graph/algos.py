"""Graph algorithms over the installed-package graph."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping

    from artifacts.models.artifacts.dependencies import RuntimeClass
    from graph.builder import PackageNode


def build_adjacency(nodes: Mapping[str, PackageNode]) -> dict[str, set[str]]:
    """Build a parent -> children adjacency map restricted to known keys."""
    return {
        key: {child for child in node.children if child in nodes}
        for key, node in nodes.items()
    }


def find_root_causes(
    node: PackageNode,
    nodes: Mapping[str, PackageNode],
    direct_names: Collection[str],
) -> list[str]:
    """Find the directly-declared packages that pull ``node`` into the tree.

    A direct node is its own only root cause. Otherwise parents are walked
    breadth-first; the walk stops at direct parents and continues through
    transitive ones. A visited set keeps diamonds and cycles finite.

    Returns:
        Sorted, deduplicated list of direct package names.
    """
    if node.name in direct_names:
        return [node.name]

    root_causes: set[str] = set()
    visited: set[str] = set()
    queue: deque[str] = deque(sorted(node.parents))

    while queue:
        parent_key = queue.popleft()
        if parent_key in visited:
            continue
        visited.add(parent_key)

        parent = nodes.get(parent_key)
        if parent is None:
            continue

        if parent.name in direct_names:
            root_causes.add(parent.name)
            continue

        for grandparent in sorted(parent.parents):
            if grandparent not in visited:
                queue.append(grandparent)

    return sorted(root_causes)


@dataclass(frozen=True)
class RuntimeClassification:
    classification: RuntimeClass
    reason: str


_UNKNOWN_NODE = RuntimeClassification("build-time", "Unknown node in dependency graph")
_CYCLE = RuntimeClassification("build-time", "Dependency cycle; defaulting to build-time")


class RuntimeClassifier:
    """Memoized, cycle-safe runtime classification for one aggregation run.

    Declared runtime and optional names classify as ``runtime`` and declared
    dev names as ``dev-only``. Everything else inherits from its parents: any
    runtime parent wins, then any build-time parent, otherwise dev-only.

    Undeclared packages that require each other in a cycle are classified
    together: the whole cycle is runtime when any parent outside it is
    runtime, otherwise build-time. Results never depend on query order.
    """

    def __init__(
        self,
        nodes: Mapping[str, PackageNode],
        runtime_names: Collection[str],
        dev_names: Collection[str],
        memo: dict[str, RuntimeClassification] | None = None,
        optional_names: Collection[str] = (),
    ) -> None:
        self._nodes = nodes
        self._runtime_names = frozenset(runtime_names)
        self._dev_names = frozenset(dev_names)
        self._optional_names = frozenset(optional_names)
        self._memo: dict[str, RuntimeClassification] = {} if memo is None else memo
        self._components: dict[str, frozenset[str]] | None = None

    def _declared(self, node: PackageNode) -> RuntimeClassification | None:
        if node.name in self._runtime_names:
            return RuntimeClassification("runtime", "Declared in dependencies")
        if node.name in self._dev_names:
            return RuntimeClassification("dev-only", "Declared in devDependencies")
        if node.name in self._optional_names:
            return RuntimeClassification("runtime", "Declared in optionalDependencies")
        return None

    def _cycle_components(self) -> dict[str, frozenset[str]]:
        """Map every undeclared node on a parent cycle to its whole cycle."""
        if self._components is None:
            upward: dict[str, set[str]] = {}
            for key, node in self._nodes.items():
                if self._declared(node) is not None:
                    continue
                upward[key] = {p for p in node.parents if p in self._nodes}
            self._components = {}
            for cycle in find_cycles(upward):
                members = frozenset(cycle)
                for key in cycle:
                    self._components[key] = members
        return self._components

    def _parent_classes(self, keys: Collection[str]) -> set[RuntimeClass]:
        return {
            self.classify(parent_key).classification
            for key in sorted(keys)
            for parent_key in sorted(self._nodes[key].parents)
            if parent_key in self._nodes and parent_key not in keys
        }

    def classify(self, key: str) -> RuntimeClassification:
        cached = self._memo.get(key)
        if cached is not None:
            return cached

        node = self._nodes.get(key)
        if node is None:
            self._memo[key] = _UNKNOWN_NODE
            return _UNKNOWN_NODE

        declared = self._declared(node)
        if declared is not None:
            self._memo[key] = declared
            return declared

        cycle = self._cycle_components().get(key)
        if cycle is not None:
            if "runtime" in self._parent_classes(cycle):
                result = RuntimeClassification(
                    "runtime", "Transitive of runtime dependency"
                )
            else:
                result = _CYCLE
            for member in cycle:
                self._memo[member] = result
            return result

        parent_classes = self._parent_classes(frozenset({key}))
        if "runtime" in parent_classes:
            result = RuntimeClassification("runtime", "Transitive of runtime dependency")
        elif "build-time" in parent_classes:
            result = RuntimeClassification(
                "build-time", "Transitive of build-time dependency"
            )
        else:
            result = RuntimeClassification("dev-only", "Transitive of dev-only dependency")

        self._memo[key] = result
        return result


class _TarjanState:
    """Mutable state container for Tarjan's SCC algorithm."""

    def __init__(self) -> None:
        self.index = 0
        self.indices: dict[str, int] = {}
        self.low_link: dict[str, int] = {}
        self.on_stack: set[str] = set()
        self.stack: list[str] = []
        self.sccs: list[list[str]] = []


def _extract_scc(state: _TarjanState, root: str) -> list[str]:
    """Extract a strongly connected component from the stack."""
    scc: list[str] = []
    while state.stack:
        w = state.stack.pop()
        state.on_stack.remove(w)
        scc.append(w)
        if w == root:
            break
    if root not in scc:
        msg = (
            f"Tarjan algorithm invariant violated: root node {root!r} "
            "not found in stack during SCC extraction."
        )
        raise RuntimeError(msg)
    return scc


def _strongconnect(node: str, graph: dict[str, set[str]], state: _TarjanState) -> None:
    """Process a node in Tarjan's algorithm."""
    state.indices[node] = state.index
    state.low_link[node] = state.index
    state.index += 1
    state.stack.append(node)
    state.on_stack.add(node)

    for neighbor in sorted(graph.get(node, set())):
        if neighbor not in state.indices:
            _strongconnect(neighbor, graph, state)
            state.low_link[node] = min(state.low_link[node], state.low_link[neighbor])
        elif neighbor in state.on_stack:
            state.low_link[node] = min(state.low_link[node], state.indices[neighbor])

    if state.low_link[node] == state.indices[node]:
        scc = _extract_scc(state, node)
        if len(scc) > 1 or node in graph.get(node, set()):
            state.sccs.append(scc)


def find_cycles(graph: dict[str, set[str]]) -> list[list[str]]:
    """Find cycles in a directed graph using Tarjan's algorithm.

    Args:
        graph: Dictionary representing the graph

    Returns:
        Sorted list of cycles, each a sorted list of node keys
    """
    state = _TarjanState()

    for node in sorted(graph):
        if node not in state.indices:
            _strongconnect(node, graph, state)

    return sorted(sorted(scc) for scc in state.sccs)


__all__ = [
    "RuntimeClassification",
    "RuntimeClassifier",
    "build_adjacency",
    "find_cycles",
    "find_root_causes",
]
