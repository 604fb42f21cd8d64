"""Audit and outdated payload normalization."""

from audit.outdated import compare_versions, normalize_outdated
from audit.vulnerabilities import (
    index_vulnerabilities,
    merge_vulnerability_indexes,
    normalize_severity,
    parse_audit_payload,
)

__all__ = [
    "compare_versions",
    "index_vulnerabilities",
    "merge_vulnerability_indexes",
    "normalize_outdated",
    "normalize_severity",
    "parse_audit_payload",
]
