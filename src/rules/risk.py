"""Risk tiers and classification heuristics for dependency records.

Introduction, runtime impact and upgrade blockers are static heuristics;
records carry them with ``heuristic=True``.
"""

from __future__ import annotations

from fnmatch import fnmatch
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from rules.engines import engine_has_upper_bound

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Mapping

    from artifacts.models.artifacts.dependencies import (
        Introduction,
        RiskLevel,
        RuntimeClass,
        RuntimeImpact,
        UpgradeBlocker,
    )
    from artifacts.models.artifacts.vulnerabilities import SeverityCounts
    from rules.config import IntroductionTag, RadarConfig


def license_risk(
    license_id: str | None,
    *,
    green: Collection[str],
    amber: Collection[str],
) -> RiskLevel:
    """Tier an SPDX license identifier.

    Comparison is case-insensitive. A missing license is red.

    Examples:
        >>> license_risk("mit", green=["MIT"], amber=["MPL-2.0"])
        'green'
        >>> license_risk(None, green=["MIT"], amber=[])
        'red'
    """
    if not license_id:
        return "red"
    normalized = license_id.strip().upper()
    if normalized in {item.upper() for item in green}:
        return "green"
    if normalized in {item.upper() for item in amber}:
        return "amber"
    return "red"


def vuln_risk(counts: SeverityCounts) -> RiskLevel:
    if counts.high > 0 or counts.critical > 0:
        return "red"
    if counts.low > 0 or counts.moderate > 0:
        return "amber"
    return "green"


def build_risk(*, native: bool, install_scripts: bool) -> RiskLevel:
    if native and install_scripts:
        return "red"
    if native or install_scripts:
        return "amber"
    return "green"


# Built-in introduction rules. A key ending in "/" or "-" is a prefix.
DEFAULT_INTRODUCTION_RULES: dict[str, IntroductionTag] = {
    "jest": "testing",
    "jest-": "testing",
    "@jest/": "testing",
    "mocha": "testing",
    "chai": "testing",
    "vitest": "testing",
    "@vitest/": "testing",
    "jasmine": "testing",
    "ava": "testing",
    "sinon": "testing",
    "nyc": "testing",
    "c8": "testing",
    "playwright": "testing",
    "@playwright/": "testing",
    "cypress": "testing",
    "supertest": "testing",
    "@testing-library/": "testing",
    "eslint": "tooling",
    "eslint-": "tooling",
    "@eslint/": "tooling",
    "@typescript-eslint/": "tooling",
    "prettier": "tooling",
    "prettier-": "tooling",
    "typescript": "tooling",
    "ts-node": "tooling",
    "tsx": "tooling",
    "@types/": "tooling",
    "webpack": "tooling",
    "webpack-": "tooling",
    "rollup": "tooling",
    "@rollup/": "tooling",
    "vite": "tooling",
    "@vitejs/": "tooling",
    "esbuild": "tooling",
    "@babel/": "tooling",
    "babel-": "tooling",
    "husky": "tooling",
    "lint-staged": "tooling",
    "nodemon": "tooling",
    "rimraf": "tooling",
    "react": "framework",
    "react-dom": "framework",
    "next": "framework",
    "vue": "framework",
    "nuxt": "framework",
    "@angular/": "framework",
    "svelte": "framework",
    "@sveltejs/": "framework",
    "express": "framework",
    "koa": "framework",
    "fastify": "framework",
    "@nestjs/": "framework",
}


def _is_prefix_rule(rule: str) -> bool:
    return rule.endswith(("/", "-"))


class IntroductionRules:
    """Package-name -> introduction tag lookup.

    Exact names win over prefixes; among prefixes the longest wins.
    """

    def __init__(self, extra: Mapping[str, IntroductionTag] | None = None) -> None:
        rules = dict(DEFAULT_INTRODUCTION_RULES)
        if extra:
            rules.update(extra)
        self._exact = {name: tag for name, tag in rules.items() if not _is_prefix_rule(name)}
        self._prefixes = sorted(
            ((name, tag) for name, tag in rules.items() if _is_prefix_rule(name)),
            key=lambda item: len(item[0]),
            reverse=True,
        )

    @classmethod
    def from_config(cls, config: RadarConfig) -> IntroductionRules:
        return cls(config.introduction_rules)

    def tag_for(self, name: str) -> IntroductionTag | None:
        tag = self._exact.get(name)
        if tag is not None:
            return tag
        for prefix, prefix_tag in self._prefixes:
            if name.startswith(prefix):
                return prefix_tag
        return None


def classify_introduction(
    name: str,
    *,
    direct: bool,
    root_causes: Iterable[str],
    rules: IntroductionRules,
) -> Introduction:
    """How the package most plausibly entered the tree.

    Direct packages take their own tag (or ``direct``). Transitive packages
    take the tag shared by all of their root causes (or ``transitive``).
    """
    if direct:
        return rules.tag_for(name) or "direct"

    causes = list(root_causes)
    if not causes:
        return "unknown"

    tags = {rules.tag_for(cause) for cause in causes}
    if len(tags) == 1:
        (tag,) = tags
        if tag is not None:
            return tag
    return "transitive"


_TEST_SEGMENTS = frozenset({"test", "tests", "__tests__", "__mocks__", "spec", "e2e"})
_TOOLING_SEGMENTS = frozenset({"scripts", "tools", "config", "configs"})
_TOOLING_FILE_PATTERNS = ("*.config.*", "*rc.js", "*rc.cjs", "gulpfile.*", "gruntfile.*")


def classify_importer(path: str) -> RuntimeImpact:
    """Classify an importing file as testing, tooling or runtime source."""
    posix = PurePosixPath(path)
    file_name = posix.name.lower()
    directories = {part.lower() for part in posix.parts[:-1]}

    if directories & _TEST_SEGMENTS or ".test." in file_name or ".spec." in file_name:
        return "testing"
    if directories & _TOOLING_SEGMENTS or any(
        fnmatch(file_name, pattern) for pattern in _TOOLING_FILE_PATTERNS
    ):
        return "tooling"
    return "runtime"


def classify_runtime_impact(
    importers: Iterable[str],
    *,
    runtime_class: RuntimeClass,
    introduction: Introduction,
) -> RuntimeImpact:
    """Where the package's code plausibly executes.

    Importing files decide when there are any: a single kind maps directly
    and several kinds are ``mixed``. Without importers the runtime class and
    introduction tag decide.
    """
    kinds = {classify_importer(path) for path in importers}
    if len(kinds) > 1:
        return "mixed"
    if kinds == {"testing"}:
        return "testing"
    if kinds == {"tooling"}:
        return "tooling"
    if kinds == {"runtime"}:
        return "runtime" if runtime_class == "runtime" else "build"

    if runtime_class == "runtime":
        return "runtime"
    if introduction == "testing":
        return "testing"
    if introduction == "tooling":
        return "tooling"
    return "build"


def upgrade_blockers(
    *,
    node_engine: str | None,
    has_peer_dependencies: bool,
    native: bool,
    deprecated: bool,
) -> list[UpgradeBlocker]:
    blockers: list[UpgradeBlocker] = []
    if node_engine and engine_has_upper_bound(node_engine):
        blockers.append("nodeEngine")
    if has_peer_dependencies:
        blockers.append("peerDependency")
    if native:
        blockers.append("nativeBindings")
    if deprecated:
        blockers.append("deprecated")
    return blockers


def blocks_node_major(blockers: Collection[UpgradeBlocker]) -> bool:
    return "nodeEngine" in blockers or "nativeBindings" in blockers


__all__ = [
    "DEFAULT_INTRODUCTION_RULES",
    "IntroductionRules",
    "blocks_node_major",
    "build_risk",
    "classify_importer",
    "classify_introduction",
    "classify_runtime_impact",
    "license_risk",
    "upgrade_blockers",
    "vuln_risk",
]
