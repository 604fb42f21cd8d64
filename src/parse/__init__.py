"""Import extraction and static resolution."""

from parse.js_imports import extract_file_specifiers, extract_specifiers
from parse.resolution import (
    ResolvedSpecifier,
    classify_specifier,
    is_builtin_module,
    resolve_file,
    resolve_file_target,
    to_package_name,
)

__all__ = [
    "ResolvedSpecifier",
    "classify_specifier",
    "extract_file_specifiers",
    "extract_specifiers",
    "is_builtin_module",
    "resolve_file",
    "resolve_file_target",
    "to_package_name",
]
