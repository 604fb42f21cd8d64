from __future__ import annotations

from pathlib import Path

import pytest

from scan.manifest import ManifestError, load_manifest, merge_manifests, parse_manifest


def test_load_manifest_reads_dependency_sections(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text(
        """
{
  "name": "app",
  "version": "1.0.0",
  "dependencies": {"express": "^4.18.0", "bad": 3},
  "devDependencies": {"jest": "^29.0.0"},
  "peerDependencies": {"react": ">=17"},
  "engines": {"node": ">=18"}
}
""",
        encoding="utf-8",
    )

    manifest = load_manifest(tmp_path)

    assert manifest.name == "app"
    assert manifest.dependencies == {"express": "^4.18.0"}
    assert manifest.dev_dependencies == {"jest": "^29.0.0"}
    assert manifest.direct_names == frozenset({"express", "jest"})
    assert "react" in manifest.declared_names
    assert manifest.engines == {"node": ">=18"}


def test_missing_manifest_raises(tmp_path: Path) -> None:
    with pytest.raises(ManifestError):
        load_manifest(tmp_path)


def test_invalid_json_raises(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(ManifestError):
        load_manifest(tmp_path)


def test_non_object_manifest_raises() -> None:
    with pytest.raises(ManifestError):
        parse_manifest(["a"])


def test_scope_prefers_runtime_declaration() -> None:
    manifest = parse_manifest(
        {
            "dependencies": {"a": "1"},
            "devDependencies": {"a": "1", "b": "1"},
            "optionalDependencies": {"c": "1"},
            "peerDependencies": {"d": "1"},
        }
    )

    assert manifest.scope_of("a") == "runtime"
    assert manifest.scope_of("b") == "dev"
    assert manifest.scope_of("c") == "optional"
    assert manifest.scope_of("d") == "peer"
    assert manifest.scope_of("e") is None
    assert manifest.is_direct("b")
    assert not manifest.is_direct("c")


def test_merge_manifests_unions_declarations() -> None:
    first = parse_manifest({"dependencies": {"a": "1"}, "devDependencies": {"x": "1"}})
    second = parse_manifest({"dependencies": {"b": "2", "a": "3"}})

    merged = merge_manifests([first, second])

    assert merged.dependencies == {"a": "3", "b": "2"}
    assert merged.dev_dependencies == {"x": "1"}
    assert merged.name is None
