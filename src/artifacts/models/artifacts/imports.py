"""Static import graph models.

This module contains models for the file-level import graph produced by the
import resolver.
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class UnresolvedImport(BaseModel):
    """A relative or absolute specifier that matched no file."""

    importer: str
    specifier: str


class ImportGraph(BaseModel):
    """File -> import target graph for one project or merged workspace.

    Every specifier occurrence lands in exactly one of ``files``,
    ``packages``, ``builtins`` or ``unresolved_imports``.
    """

    model_config = ConfigDict(extra="ignore")

    files: dict[str, list[str]] = Field(default_factory=dict)
    packages: dict[str, list[str]] = Field(default_factory=dict)
    package_counts: dict[str, dict[str, int]] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("package_counts", "packageCounts"),
    )
    builtins: dict[str, list[str]] = Field(default_factory=dict)
    unresolved_imports: list[UnresolvedImport] = Field(
        default_factory=list,
        validation_alias=AliasChoices("unresolved_imports", "unresolvedImports"),
    )

    def package_importers(self) -> dict[str, list[str]]:
        """Return package name -> sorted list of importing files."""
        importers: dict[str, set[str]] = {}
        for file_path, package_names in self.packages.items():
            for package_name in set(package_names):
                importers.setdefault(package_name, set()).add(file_path)
        return {name: sorted(files) for name, files in sorted(importers.items())}

    def files_with_unresolved(self) -> set[str]:
        return {entry.importer for entry in self.unresolved_imports}


__all__ = ["ImportGraph", "UnresolvedImport"]
