from __future__ import annotations

import pytest

from utils import make_key, name_from_key, normalize_repo_url, prefix_path


def test_key_round_trip_keeps_scope() -> None:
    key = make_key("@babel/core", "7.24.0")

    assert key == "@babel/core@7.24.0"
    assert name_from_key(key) == "@babel/core"


def test_name_from_key_without_version() -> None:
    assert name_from_key("@scope/pkg") == "@scope/pkg"
    assert name_from_key("plain") == "plain"


def test_prefix_path() -> None:
    assert prefix_path("packages/a", "src/index.ts") == "packages/a/src/index.ts"
    assert prefix_path("packages/a/", "src/index.ts") == "packages/a/src/index.ts"
    assert prefix_path("", "src/index.ts") == "src/index.ts"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("git+https://github.com/a/b.git", "https://github.com/a/b"),
        ("git://github.com/a/b.git", "https://github.com/a/b"),
        ("git@github.com:a/b.git", "https://github.com/a/b"),
        ("github:a/b", "https://github.com/a/b"),
        ("a/b", "https://github.com/a/b"),
        ("bitbucket:a/b", "https://bitbucket.org/a/b"),
        ("https://example.test/repo", "https://example.test/repo"),
    ],
)
def test_normalize_repo_url(raw: str, expected: str) -> None:
    assert normalize_repo_url(raw) == expected
