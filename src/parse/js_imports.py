"""Pattern-based import extraction for JavaScript and TypeScript sources.

Static only: computed specifiers, runtime plugin loading and tooling configs
are not seen.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_IMPORT_PATTERNS = (
    # import x from 'a'; import { y } from 'a'; import 'a'
    re.compile(r"""\bimport\s+(?:[^'"]+from\s+)?['"]([^'"]+)['"]"""),
    # export { x } from 'a'; export * from 'a'
    re.compile(r"""\bexport\s+(?:[^'"]+from\s+)?['"]([^'"]+)['"]"""),
    re.compile(r"""\brequire\(\s*['"]([^'"]+)['"]\s*\)"""),
    re.compile(r"""\bimport\(\s*['"]([^'"]+)['"]\s*\)"""),
)


def extract_specifiers(content: str) -> list[str]:
    """Extract import-like specifiers from source text.

    Args:
        content: Source file text

    Returns:
        Specifiers in first-seen order, deduplicated.
    """
    seen: dict[str, None] = {}
    for pattern in _IMPORT_PATTERNS:
        for match in pattern.finditer(content):
            specifier = match.group(1)
            if specifier:
                seen.setdefault(specifier, None)
    return list(seen)


def extract_file_specifiers(file_path: Path) -> list[str]:
    """Read ``file_path`` and extract its specifiers.

    Undecodable bytes are replaced rather than failing the whole scan.
    """
    content = file_path.read_text(encoding="utf-8", errors="replace")
    specifiers = extract_specifiers(content)
    logger.debug("%s: %d specifier(s)", file_path, len(specifiers))
    return specifiers


__all__ = ["extract_file_specifiers", "extract_specifiers"]
