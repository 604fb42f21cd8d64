from __future__ import annotations

from pathlib import Path

import orjson

from artifacts.generators.imports import IMPORT_GRAPH_JSON, ImportGraphGenerator
from parse.js_imports import extract_specifiers
from parse.resolution import (
    classify_specifier,
    is_builtin_module,
    resolve_file_target,
    to_package_name,
)
from rules.config import RadarConfig

EXTENSIONS = [".ts", ".tsx", ".js"]


def _write(path: Path, content: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _generate(root: Path, out_dir: Path | None = None):
    config = RadarConfig()
    return ImportGraphGenerator().generate(
        root=root,
        out_dir=out_dir,
        extensions=config.source_extensions,
        ignored_dirs=config.ignored_dirs,
        exclude_patterns=config.exclude,
    )


def test_extract_specifiers_covers_import_forms() -> None:
    content = """
import React from 'react';
import { a, b } from "./util";
import './side-effect.css';
export * from './reexport';
export { x } from "lib/x";
const fs = require('fs');
const lazy = await import('./lazy');
const again = require("react");
"""

    assert extract_specifiers(content) == [
        "react",
        "./util",
        "./side-effect.css",
        "./reexport",
        "lib/x",
        "fs",
        "./lazy",
    ]


def test_extract_specifiers_ignores_computed_requires() -> None:
    assert extract_specifiers("const m = require(name);") == []


def test_builtin_detection() -> None:
    assert is_builtin_module("fs")
    assert is_builtin_module("fs/promises")
    assert is_builtin_module("node:fs/promises")
    assert is_builtin_module("node:test")
    assert not is_builtin_module("test")
    assert not is_builtin_module("lodash")


def test_package_name_reduction() -> None:
    assert to_package_name("lodash/fp") == "lodash"
    assert to_package_name("@scope/pkg/sub/path") == "@scope/pkg"
    assert to_package_name("@scope/pkg") == "@scope/pkg"


def test_resolution_candidate_order(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "util.ts")
    _write(tmp_path / "src" / "util.js")
    _write(tmp_path / "src" / "lib" / "index.js")
    _write(tmp_path / "src" / "exact.css")
    importer_dir = tmp_path / "src"

    assert (
        resolve_file_target("./util", importer_dir, tmp_path, EXTENSIONS)
        == "src/util.ts"
    )
    assert (
        resolve_file_target("./lib", importer_dir, tmp_path, EXTENSIONS)
        == "src/lib/index.js"
    )
    assert (
        resolve_file_target("./exact.css", importer_dir, tmp_path, EXTENSIONS)
        == "src/exact.css"
    )
    assert resolve_file_target("./missing", importer_dir, tmp_path, EXTENSIONS) is None


def test_absolute_specifier_is_anchored_at_project_root(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "config.ts")

    resolved = classify_specifier(
        "/src/config", tmp_path / "src" / "deep", tmp_path, EXTENSIONS
    )

    assert resolved.kind == "file"
    assert resolved.target == "src/config.ts"


def test_parent_relative_specifier(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "shared.ts")

    resolved = classify_specifier(
        "../shared", tmp_path / "src" / "feature", tmp_path, EXTENSIONS
    )

    assert resolved.target == "src/shared.ts"


def test_each_specifier_lands_in_one_category(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "util.ts")
    importer_dir = tmp_path / "src"

    def kind(spec: str) -> str:
        return classify_specifier(spec, importer_dir, tmp_path, EXTENSIONS).kind

    assert kind("./util") == "file"
    assert kind("./nope") == "unresolved"
    assert kind("path") == "builtin"
    assert kind("node:path") == "builtin"
    assert kind("react-dom/client") == "package"


def test_generator_builds_file_level_graph(tmp_path: Path) -> None:
    _write(tmp_path / "package.json", "{}")
    _write(
        tmp_path / "src" / "index.ts",
        "import { helper } from './util';\n"
        "import './missing';\n"
        "import React from 'react';\n"
        "import { useState } from 'react';\n"
        "import client from 'react-dom/client';\n"
        "import fs from 'node:fs/promises';\n"
        "import { x } from '@scope/pkg/sub';\n",
    )
    _write(tmp_path / "src" / "util.ts", "export const helper = 1;\n")

    graph = _generate(tmp_path)

    assert sorted(graph.files) == ["src/index.ts", "src/util.ts"]
    assert graph.files["src/index.ts"] == ["src/util.ts"]
    assert graph.packages["src/index.ts"] == ["@scope/pkg", "react", "react-dom"]
    assert graph.package_counts["src/index.ts"] == {
        "@scope/pkg": 1,
        "react": 1,
        "react-dom": 1,
    }
    assert graph.builtins["src/index.ts"] == ["node:fs/promises"]
    assert [(u.importer, u.specifier) for u in graph.unresolved_imports] == [
        ("src/index.ts", "./missing")
    ]
    assert graph.files["src/util.ts"] == []


def test_generator_skips_hidden_and_ignored_directories(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "index.ts", "import 'a';\n")
    _write(tmp_path / "src" / "node_modules" / "dep" / "index.js", "import 'b';\n")
    _write(tmp_path / "src" / ".cache" / "gen.ts", "import 'c';\n")
    _write(tmp_path / "src" / ".hidden.ts", "import 'd';\n")

    graph = _generate(tmp_path)

    assert list(graph.files) == ["src/index.ts"]


def test_generator_scans_root_without_src(tmp_path: Path) -> None:
    _write(tmp_path / "main.js", "require('express');\n")
    _write(tmp_path / "lib" / "a.js", "require('../main');\n")

    graph = _generate(tmp_path)

    assert sorted(graph.files) == ["lib/a.js", "main.js"]
    assert graph.files["lib/a.js"] == ["main.js"]
    assert graph.packages["main.js"] == ["express"]


def test_generator_prefers_src_directory(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "index.ts")
    _write(tmp_path / "scripts" / "build.js", "require('esbuild');\n")

    graph = _generate(tmp_path)

    assert list(graph.files) == ["src/index.ts"]


def test_generator_writes_json_when_out_dir_given(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "index.ts", "import 'lodash';\n")
    out_dir = tmp_path / ".dependency-radar"

    _generate(tmp_path, out_dir=out_dir)

    data = orjson.loads((out_dir / IMPORT_GRAPH_JSON).read_bytes())
    assert data["packages"] == {"src/index.ts": ["lodash"]}


def test_package_importers_groups_by_package(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "a.ts", "import 'lodash';\n")
    _write(tmp_path / "src" / "b.ts", "import 'lodash/fp';\nimport 'zod';\n")

    graph = _generate(tmp_path)

    assert graph.package_importers() == {
        "lodash": ["src/a.ts", "src/b.ts"],
        "zod": ["src/b.ts"],
    }
