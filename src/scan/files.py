"""Source file scanning utilities."""

from __future__ import annotations

import os
from fnmatch import fnmatch
from pathlib import Path
from typing import TYPE_CHECKING, cast

from gitignore_parser import parse_gitignore  # type: ignore[import-untyped]

if TYPE_CHECKING:
    from collections.abc import Callable, Collection, Iterator


def _should_include_file(
    path: Path,
    directory: Path,
    extensions: Collection[str],
    gitignore_matches: Callable[[str], bool] | None,
    exclude_patterns: list[str] | None,
) -> bool:
    """Check if a file should be included based on all filtering rules."""
    if path.name.startswith("."):
        return False

    if path.suffix not in extensions:
        return False

    if not path.is_file() or path.is_symlink():
        return False

    try:
        rel_path_str = path.relative_to(directory).as_posix()
    except ValueError:
        return False

    if gitignore_matches is not None:
        try:
            if gitignore_matches(str(path)):
                return False
        except ValueError:
            pass

    has_excluded_match = exclude_patterns and any(
        fnmatch(rel_path_str, pat) for pat in exclude_patterns
    )
    return not has_excluded_match


def _build_gitignore_matcher(root: Path) -> Callable[[str], bool] | None:
    gitignore_path = root / ".gitignore"
    if gitignore_path.is_file():
        return cast("Callable[[str], bool]", parse_gitignore(gitignore_path))
    return None


def find_source_files(
    directory: Path,
    *,
    extensions: Collection[str],
    ignored_dirs: Collection[str],
    exclude_patterns: list[str] | None = None,
    gitignore_root: Path | None = None,
) -> Iterator[Path]:
    """Find source files under a directory.

    Hidden entries, symlinks and directories named in ``ignored_dirs`` are
    skipped without descending into them.

    Args:
        directory: Directory to search
        extensions: Accepted file suffixes, including the leading dot
        ignored_dirs: Directory names never entered
        exclude_patterns: Optional fnmatch patterns over the path relative
            to ``directory``; matching files are excluded
        gitignore_root: When given, the ``.gitignore`` at this root is honoured

    Yields:
        Paths sorted lexicographically by relative path.
    """
    if not directory.is_dir():
        return

    gitignore_matches = (
        _build_gitignore_matcher(gitignore_root) if gitignore_root is not None else None
    )
    ignored = set(ignored_dirs)

    matched_files: list[Path] = []
    for current, dir_names, file_names in os.walk(directory):
        current_path = Path(current)
        dir_names[:] = sorted(
            name
            for name in dir_names
            if name not in ignored
            and not name.startswith(".")
            and not (current_path / name).is_symlink()
        )
        for file_name in file_names:
            path = current_path / file_name
            if _should_include_file(
                path,
                directory,
                extensions,
                gitignore_matches,
                exclude_patterns,
            ):
                matched_files.append(path)

    matched_files.sort(key=lambda p: p.relative_to(directory).as_posix())

    yield from matched_files


__all__ = ["find_source_files"]
