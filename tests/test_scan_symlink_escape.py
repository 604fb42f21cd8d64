from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from scan.files import find_source_files

if TYPE_CHECKING:
    from pathlib import Path

EXTENSIONS = (".ts", ".js")
IGNORED = ("node_modules",)


def _rel(root: Path, paths: object) -> list[str]:
    return [path.relative_to(root).as_posix() for path in paths]  # type: ignore[attr-defined]


@pytest.mark.skipif(
    os.name == "nt",
    reason="Symlink semantics vary on Windows test runners.",
)
def test_find_source_files_skips_symlinked_dirs(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()
    (repo_root / "src").mkdir()
    (repo_root / "src" / "index.ts").write_text("export {};\n", encoding="utf-8")

    external_root = tmp_path / "external"
    external_root.mkdir()
    (external_root / "leak.ts").write_text("export {};\n", encoding="utf-8")

    symlink_dir = repo_root / "linked"
    symlink_dir.symlink_to(external_root, target_is_directory=True)

    results = _rel(
        repo_root,
        find_source_files(repo_root, extensions=EXTENSIONS, ignored_dirs=IGNORED),
    )

    assert "src/index.ts" in results
    assert "linked/leak.ts" not in results


@pytest.mark.skipif(
    os.name == "nt",
    reason="Symlink semantics vary on Windows test runners.",
)
def test_find_source_files_skips_symlinked_files(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()
    (repo_root / "real.ts").write_text("export {};\n", encoding="utf-8")

    outside = tmp_path / "outside.ts"
    outside.write_text("export {};\n", encoding="utf-8")
    (repo_root / "alias.ts").symlink_to(outside)

    results = _rel(
        repo_root,
        find_source_files(repo_root, extensions=EXTENSIONS, ignored_dirs=IGNORED),
    )

    assert results == ["real.ts"]


def test_find_source_files_honours_root_gitignore(tmp_path: Path) -> None:
    (tmp_path / ".gitignore").write_text("generated/\n*.gen.ts\n", encoding="utf-8")
    (tmp_path / "src" / "generated").mkdir(parents=True)
    (tmp_path / "src" / "generated" / "api.ts").write_text("", encoding="utf-8")
    (tmp_path / "src" / "types.gen.ts").write_text("", encoding="utf-8")
    (tmp_path / "src" / "main.ts").write_text("", encoding="utf-8")

    results = _rel(
        tmp_path,
        find_source_files(
            tmp_path / "src",
            extensions=EXTENSIONS,
            ignored_dirs=IGNORED,
            gitignore_root=tmp_path,
        ),
    )

    assert results == ["src/main.ts"]


def test_find_source_files_applies_exclude_patterns(tmp_path: Path) -> None:
    (tmp_path / "a.ts").write_text("", encoding="utf-8")
    (tmp_path / "a.test.ts").write_text("", encoding="utf-8")
    (tmp_path / "notes.md").write_text("", encoding="utf-8")

    results = _rel(
        tmp_path,
        find_source_files(
            tmp_path,
            extensions=EXTENSIONS,
            ignored_dirs=IGNORED,
            exclude_patterns=["*.test.ts"],
        ),
    )

    assert results == ["a.ts"]


def test_find_source_files_on_missing_directory_is_empty(tmp_path: Path) -> None:
    results = list(
        find_source_files(
            tmp_path / "absent", extensions=EXTENSIONS, ignored_dirs=IGNORED
        )
    )

    assert results == []
