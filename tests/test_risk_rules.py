from __future__ import annotations

from artifacts.models.artifacts.vulnerabilities import SeverityCounts
from rules.risk import (
    IntroductionRules,
    blocks_node_major,
    build_risk,
    classify_importer,
    classify_introduction,
    classify_runtime_impact,
    license_risk,
    upgrade_blockers,
    vuln_risk,
)

GREEN = ["MIT", "ISC", "Apache-2.0"]
AMBER = ["LGPL-3.0", "MPL-2.0"]


def test_license_tiers_are_case_insensitive() -> None:
    assert license_risk("mit", green=GREEN, amber=AMBER) == "green"
    assert license_risk("APACHE-2.0", green=GREEN, amber=AMBER) == "green"
    assert license_risk("mpl-2.0", green=GREEN, amber=AMBER) == "amber"
    assert license_risk("GPL-3.0", green=GREEN, amber=AMBER) == "red"
    assert license_risk(None, green=GREEN, amber=AMBER) == "red"
    assert license_risk("  ", green=GREEN, amber=AMBER) == "red"


def test_vuln_risk_tiers() -> None:
    assert vuln_risk(SeverityCounts(critical=1)) == "red"
    assert vuln_risk(SeverityCounts(high=2, low=1)) == "red"
    assert vuln_risk(SeverityCounts(moderate=1)) == "amber"
    assert vuln_risk(SeverityCounts(low=3)) == "amber"
    assert vuln_risk(SeverityCounts()) == "green"


def test_build_risk_tiers() -> None:
    assert build_risk(native=True, install_scripts=True) == "red"
    assert build_risk(native=True, install_scripts=False) == "amber"
    assert build_risk(native=False, install_scripts=True) == "amber"
    assert build_risk(native=False, install_scripts=False) == "green"


def test_introduction_rules_exact_and_prefix() -> None:
    rules = IntroductionRules()

    assert rules.tag_for("jest") == "testing"
    assert rules.tag_for("jest-circus") == "testing"
    assert rules.tag_for("@types/node") == "tooling"
    assert rules.tag_for("eslint-plugin-import") == "tooling"
    assert rules.tag_for("react-dom") == "framework"
    assert rules.tag_for("lodash") is None


def test_introduction_rules_extra_entries_override() -> None:
    rules = IntroductionRules({"react": "testing", "@acme/": "tooling"})

    assert rules.tag_for("react") == "testing"
    assert rules.tag_for("@acme/build-kit") == "tooling"


def test_classify_introduction() -> None:
    rules = IntroductionRules()

    assert classify_introduction("jest", direct=True, root_causes=[], rules=rules) == "testing"
    assert classify_introduction("lodash", direct=True, root_causes=[], rules=rules) == "direct"
    assert (
        classify_introduction("expect", direct=False, root_causes=["jest", "vitest"], rules=rules)
        == "testing"
    )
    assert (
        classify_introduction("x", direct=False, root_causes=["jest", "react"], rules=rules)
        == "transitive"
    )
    assert (
        classify_introduction("x", direct=False, root_causes=["lodash"], rules=rules)
        == "transitive"
    )
    assert classify_introduction("x", direct=False, root_causes=[], rules=rules) == "unknown"


def test_classify_importer() -> None:
    assert classify_importer("src/__tests__/app.ts") == "testing"
    assert classify_importer("src/app.spec.ts") == "testing"
    assert classify_importer("src/app.test.tsx") == "testing"
    assert classify_importer("scripts/build.js") == "tooling"
    assert classify_importer("vite.config.ts") == "tooling"
    assert classify_importer("src/index.ts") == "runtime"


def test_runtime_impact_from_importers() -> None:
    assert (
        classify_runtime_impact(
            ["src/index.ts"], runtime_class="runtime", introduction="direct"
        )
        == "runtime"
    )
    assert (
        classify_runtime_impact(
            ["src/index.ts"], runtime_class="dev-only", introduction="direct"
        )
        == "build"
    )
    assert (
        classify_runtime_impact(
            ["src/a.test.ts", "src/index.ts"],
            runtime_class="runtime",
            introduction="direct",
        )
        == "mixed"
    )
    assert (
        classify_runtime_impact(
            ["scripts/release.js"], runtime_class="dev-only", introduction="direct"
        )
        == "tooling"
    )


def test_runtime_impact_without_importers() -> None:
    assert (
        classify_runtime_impact([], runtime_class="runtime", introduction="transitive")
        == "runtime"
    )
    assert (
        classify_runtime_impact([], runtime_class="dev-only", introduction="testing")
        == "testing"
    )
    assert (
        classify_runtime_impact([], runtime_class="build-time", introduction="tooling")
        == "tooling"
    )
    assert (
        classify_runtime_impact([], runtime_class="dev-only", introduction="transitive")
        == "build"
    )


def test_upgrade_blockers() -> None:
    blockers = upgrade_blockers(
        node_engine=">=14 <19",
        has_peer_dependencies=True,
        native=True,
        deprecated=True,
    )

    assert blockers == ["nodeEngine", "peerDependency", "nativeBindings", "deprecated"]
    assert blocks_node_major(blockers)


def test_open_engine_range_is_not_a_blocker() -> None:
    blockers = upgrade_blockers(
        node_engine=">=14",
        has_peer_dependencies=True,
        native=False,
        deprecated=False,
    )

    assert blockers == ["peerDependency"]
    assert not blocks_node_major(blockers)
