from __future__ import annotations

import logging
from pathlib import Path

import orjson
import pytest

from aggregate.aggregator import AggregateInput, aggregate, definitely_typed_name
from aggregate.context import AggregationContext, CollaboratorResult
from artifacts.models.artifacts.imports import ImportGraph
from insights.packages import InsightCache
from rules.config import RadarConfig
from scan.manifest import parse_manifest

GENERATED_AT = "2026-01-01T00:00:00+00:00"

MANIFEST = {
    "name": "app",
    "dependencies": {"express": "^4.19.0"},
    "devDependencies": {"jest": "^29.0.0", "@types/jest": "^29.0.0"},
}

TREE = {
    "name": "app",
    "dependencies": {
        "express": {
            "version": "4.19.2",
            "dependencies": {"debug": {"version": "2.6.9"}},
        },
        "jest": {
            "version": "29.7.0",
            "dev": True,
            "dependencies": {"expect": {"version": "29.7.0"}},
        },
        "@types/jest": {"version": "29.5.12", "dev": True},
    },
}

AUDIT = {
    "advisories": {
        "1": {"module_name": "debug", "severity": "high", "title": "ReDoS"},
    }
}

OUTDATED = {"express": {"current": "4.19.2", "wanted": "4.19.2", "latest": "5.0.0"}}


def _install(root: Path, name: str, manifest: dict[str, object]) -> None:
    package_dir = root / "node_modules" / name
    package_dir.mkdir(parents=True)
    (package_dir / "package.json").write_bytes(orjson.dumps(manifest))


def _graph() -> ImportGraph:
    return ImportGraph(
        files={"src/index.ts": [], "src/legacy.ts": []},
        packages={"src/index.ts": ["express", "lodash"], "src/legacy.ts": []},
        unresolved_imports=[{"importer": "src/index.ts", "specifier": "./gone"}],
    )


def _input(root: Path, **overrides: object) -> AggregateInput:
    values: dict[str, object] = {
        "project_path": root,
        "manifest": parse_manifest(MANIFEST),
        "config": RadarConfig(),
        "tree": CollaboratorResult.success(TREE),
        "audit": CollaboratorResult.success(AUDIT),
        "import_graph": CollaboratorResult.success(_graph()),
        "outdated": CollaboratorResult.success(OUTDATED),
        "search_paths": [root],
    }
    values.update(overrides)
    return AggregateInput(**values)  # type: ignore[arg-type]


def test_records_are_keyed_and_sorted_by_identity(tmp_path: Path) -> None:
    report = aggregate(_input(tmp_path), generated_at=GENERATED_AT)

    assert list(report.dependencies) == [
        "@types/jest@29.5.12",
        "debug@2.6.9",
        "expect@29.7.0",
        "express@4.19.2",
        "jest@29.7.0",
    ]
    assert report.summary.dependency_count == 5
    assert report.summary.direct_count == 3
    assert report.summary.transitive_count == 2
    assert report.generated_at == GENERATED_AT
    assert report.tool_errors == {}


def test_transitive_record_joins_all_sources(tmp_path: Path) -> None:
    report = aggregate(_input(tmp_path), generated_at=GENERATED_AT)

    debug = report.dependencies["debug@2.6.9"]
    assert debug.depth == 2
    assert debug.graph_status == "known"
    assert debug.parents == ["express@4.19.2"]
    assert debug.classification.direct is False
    assert debug.classification.scope == "runtime"
    assert debug.classification.runtime_class == "runtime"
    assert debug.classification.introduction == "framework"
    assert debug.origins.root_causes == ["express"]
    assert debug.graph.depended_on_by == ["express"]
    assert debug.vulnerabilities.status == "known"
    assert debug.vulnerabilities.high == 1
    assert debug.vulnerabilities.highest == "high"
    assert debug.vuln_risk == "red"
    assert debug.outdated.status == "unknown"
    assert debug.usage.status == "unknown"


def test_direct_records_use_declared_scope(tmp_path: Path) -> None:
    report = aggregate(_input(tmp_path), generated_at=GENERATED_AT)

    express = report.dependencies["express@4.19.2"]
    assert express.classification.scope == "runtime"
    assert express.origins.root_causes == ["express"]
    assert express.graph.depends_on == ["debug"]
    assert express.usage.status == "imported"
    assert express.usage.top_files == ["src/index.ts"]
    assert express.usage.unresolved_in_importers is True
    assert express.outdated.status == "major"
    assert express.outdated.latest_version == "5.0.0"
    assert express.vuln_risk == "green"
    assert express.vulnerabilities.status == "known"

    jest = report.dependencies["jest@29.7.0"]
    assert jest.classification.scope == "dev"
    assert jest.classification.runtime_class == "dev-only"
    assert jest.classification.introduction == "testing"
    assert jest.usage.status == "not-imported"
    assert jest.outdated.status == "current"

    expect = report.dependencies["expect@29.7.0"]
    assert expect.classification.scope == "dev"
    assert expect.classification.introduction == "testing"


def test_insights_fill_record_fields(tmp_path: Path) -> None:
    _install(
        tmp_path,
        "express",
        {
            "name": "express",
            "version": "4.19.2",
            "license": "MIT",
            "engines": {"node": ">= 0.10.0"},
            "repository": "expressjs/express",
        },
    )
    _install(
        tmp_path,
        "debug",
        {"name": "debug", "engines": {"node": ">=18"}, "types": "index.d.ts"},
    )

    report = aggregate(_input(tmp_path), generated_at=GENERATED_AT)

    express = report.dependencies["express@4.19.2"]
    assert express.insights_status == "known"
    assert express.license == "MIT"
    assert express.license_risk == "green"
    assert express.ts_types == "none"
    assert express.links.repository == "https://github.com/expressjs/express"

    debug = report.dependencies["debug@2.6.9"]
    assert debug.license is None
    assert debug.license_risk == "red"
    assert debug.ts_types == "bundled"

    assert report.environment.min_required_node_major == 18
    assert report.environment.source == "dependency-engines"


def test_missing_insights_degrade_to_unknown(tmp_path: Path) -> None:
    report = aggregate(_input(tmp_path), generated_at=GENERATED_AT)

    express = report.dependencies["express@4.19.2"]
    assert express.insights_status == "unknown"
    assert express.license_risk == "unknown"
    assert express.ts_types == "unknown"
    assert express.build.risk == "unknown"
    assert express.links.registry == "https://www.npmjs.com/package/express"

    jest = report.dependencies["jest@29.7.0"]
    assert jest.ts_types == "definitelyTyped"
    assert report.environment.min_required_node_major is None
    assert report.environment.source == "unknown"


def test_import_analysis_reports_undeclared_packages(tmp_path: Path) -> None:
    report = aggregate(_input(tmp_path), generated_at=GENERATED_AT)

    analysis = report.import_analysis
    assert analysis.available is True
    assert analysis.static_only is True
    assert analysis.package_hotness == {"express": 1, "lodash": 1}
    assert analysis.undeclared_imports == ["lodash"]
    assert [u.specifier for u in analysis.unresolved_imports] == ["./gone"]


def test_failed_collaborators_are_reported_not_raised(tmp_path: Path) -> None:
    agg_input = _input(
        tmp_path,
        audit=CollaboratorResult.failure("npm audit exited with code 1"),
        outdated=CollaboratorResult.failure("Failed to parse npm outdated output"),
    )

    report = aggregate(agg_input, generated_at=GENERATED_AT)

    assert report.tool_errors == {
        "npm-audit": "npm audit exited with code 1",
        "npm-outdated": "Failed to parse npm outdated output",
    }
    debug = report.dependencies["debug@2.6.9"]
    assert debug.vulnerabilities.status == "unknown"
    assert debug.vuln_risk == "unknown"
    assert report.dependencies["express@4.19.2"].outdated.status == "unknown"


def test_partial_result_keeps_data_and_records_error(tmp_path: Path) -> None:
    agg_input = _input(
        tmp_path,
        audit=CollaboratorResult.partial(AUDIT, "npm audit failed for pkg-b"),
    )

    report = aggregate(agg_input, generated_at=GENERATED_AT)

    assert report.tool_errors == {"npm-audit": "npm audit failed for pkg-b"}
    assert report.dependencies["debug@2.6.9"].vulnerabilities.high == 1


def test_missing_collaborators_are_unknown_without_errors(tmp_path: Path) -> None:
    agg_input = _input(tmp_path, audit=None, import_graph=None, outdated=None)

    report = aggregate(agg_input, generated_at=GENERATED_AT)

    assert report.tool_errors == {}
    express = report.dependencies["express@4.19.2"]
    assert express.usage.status == "unknown"
    assert express.usage.reason == "Import graph unavailable"
    assert express.vulnerabilities.status == "unknown"
    assert report.import_analysis.available is False


def test_tree_failure_falls_back_to_manifest(tmp_path: Path) -> None:
    agg_input = _input(tmp_path, tree=CollaboratorResult.failure("npm ls failed"))

    report = aggregate(agg_input, generated_at=GENERATED_AT)

    assert report.tool_errors == {"npm-ls": "npm ls failed"}
    assert sorted(report.dependencies) == [
        "@types/jest@^29.0.0",
        "express@^4.19.0",
        "jest@^29.0.0",
    ]
    assert all(record.depth == 1 for record in report.dependencies.values())
    assert all(
        record.graph_status == "unknown" for record in report.dependencies.values()
    )


def test_cycles_are_reported(tmp_path: Path) -> None:
    tree = {
        "dependencies": {
            "express": {
                "version": "4.19.2",
                "dependencies": {
                    "a": {
                        "version": "1.0.0",
                        "dependencies": {
                            "b": {
                                "version": "1.0.0",
                                "dependencies": {"a": {"version": "1.0.0"}},
                            }
                        },
                    }
                },
            }
        }
    }

    report = aggregate(
        _input(tmp_path, tree=CollaboratorResult.success(tree)),
        generated_at=GENERATED_AT,
    )

    assert report.cycles == [["a@1.0.0", "b@1.0.0"]]
    assert report.summary.cycle_count == 1
    assert report.dependencies["b@1.0.0"].origins.root_causes == ["express"]


def test_workspace_members_are_hidden(tmp_path: Path) -> None:
    tree = {
        "name": "workspace-root",
        "dependencies": {
            "pkg-a": {
                "name": "pkg-a",
                "version": "1.0.0",
                "dependencies": {"lodash": {"version": "4.17.21"}},
            }
        },
    }
    agg_input = _input(
        tmp_path,
        manifest=parse_manifest({"dependencies": {"lodash": "^4.17.0"}}),
        tree=CollaboratorResult.success(tree),
        audit=None,
        import_graph=None,
        outdated=None,
        workspace_enabled=True,
        workspace_members=frozenset({"pkg-a"}),
        workspace_usage={"lodash": ["pkg-a"]},
    )

    report = aggregate(agg_input, generated_at=GENERATED_AT)

    assert report.workspace_enabled is True
    assert list(report.dependencies) == ["lodash@4.17.21"]
    lodash = report.dependencies["lodash@4.17.21"]
    assert lodash.depth == 1
    assert lodash.parents == []
    assert lodash.origins.workspace_packages == ["pkg-a"]


def test_caller_owned_context_is_used(tmp_path: Path) -> None:
    context = AggregationContext(insight_cache=InsightCache([tmp_path]))

    aggregate(_input(tmp_path), context, generated_at=GENERATED_AT)

    assert "express@4.19.2" in context.runtime_memo
    assert len(context.insight_cache) == 5


def test_definitely_typed_name() -> None:
    assert definitely_typed_name("lodash") == "@types/lodash"
    assert definitely_typed_name("@babel/core") == "@types/babel__core"


def test_optional_and_peer_names_keep_declared_scope(tmp_path: Path) -> None:
    manifest = parse_manifest(
        {
            "dependencies": {"express": "^4.19.0"},
            "optionalDependencies": {"fsevents": "^2.3.0"},
            "peerDependencies": {"react": "^18.0.0"},
        }
    )
    tree = {
        "dependencies": {
            "express": {
                "version": "4.19.2",
                "dependencies": {"react": {"version": "18.3.1"}},
            },
            "fsevents": {
                "version": "2.3.3",
                "dependencies": {"bindings": {"version": "1.5.0"}},
            },
        }
    }
    agg_input = _input(
        tmp_path,
        manifest=manifest,
        tree=CollaboratorResult.success(tree),
        audit=None,
        import_graph=None,
        outdated=None,
    )

    report = aggregate(agg_input, generated_at=GENERATED_AT)

    fsevents = report.dependencies["fsevents@2.3.3"].classification
    assert fsevents.scope == "optional"
    assert fsevents.runtime_class == "runtime"
    assert fsevents.runtime_reason == "Declared in optionalDependencies"

    bindings = report.dependencies["bindings@1.5.0"].classification
    assert bindings.scope == "runtime"
    assert bindings.runtime_class == "runtime"

    react = report.dependencies["react@18.3.1"].classification
    assert react.scope == "peer"
    assert react.runtime_class == "runtime"


def test_input_tool_errors_are_reported(tmp_path: Path) -> None:
    agg_input = _input(
        tmp_path,
        tool_errors={"workspace-manifest": "Invalid JSON in packages/b/package.json"},
    )

    report = aggregate(agg_input, generated_at=GENERATED_AT)

    assert report.tool_errors == {
        "workspace-manifest": "Invalid JSON in packages/b/package.json"
    }


def test_failed_collaborator_warning_names_fields_and_payload(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    agg_input = _input(tmp_path, audit=CollaboratorResult.failure("npm audit failed"))

    with caplog.at_level(logging.WARNING, logger="aggregate.aggregator"):
        aggregate(agg_input, generated_at=GENERATED_AT)

    assert "degraded fields: vulnerabilities, vuln_risk" in caplog.text
    assert "expected payload: Audit payload" in caplog.text
