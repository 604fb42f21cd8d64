from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal, get_args

import tomllib
from pydantic import BaseModel, ConfigDict, Field, field_validator

from contract.artifacts import REPORT_JSON

if TYPE_CHECKING:
    from pathlib import Path

CONFIG_FILENAME = "dependency-radar.toml"

IntroductionTag = Literal["tooling", "framework", "testing"]

VALID_INTRODUCTION_TAGS = frozenset(get_args(IntroductionTag))

DEFAULT_SOURCE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")

DEFAULT_IGNORED_DIRS = ("node_modules", "dist", "build", "coverage", ".dependency-radar")

DEFAULT_LICENSE_GREEN = ("MIT", "BSD-2-CLAUSE", "BSD-3-CLAUSE", "APACHE-2.0", "ISC")

DEFAULT_LICENSE_AMBER = ("LGPL", "LGPL-2.1", "LGPL-3.0", "MPL", "MPL-2.0")


class RadarConfig(BaseModel):
    """Configuration for dependency-radar aggregation."""

    model_config = ConfigDict(extra="forbid")

    output_file: str = Field(
        default=REPORT_JSON,
        description="Filename of the aggregated JSON report",
    )
    source_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SOURCE_EXTENSIONS),
        description="Source extensions, in resolution candidate order",
    )
    ignored_dirs: list[str] = Field(
        default_factory=lambda: list(DEFAULT_IGNORED_DIRS),
        description="Directory names never scanned for source files",
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="Glob patterns for source files to exclude",
    )
    respect_gitignore: bool = Field(
        default=True,
        description="Skip source files ignored by the project's root .gitignore",
    )
    max_root_causes: int = Field(
        default=10,
        ge=1,
        description="Maximum root-cause names kept on a record",
    )
    max_top_files: int = Field(
        default=5,
        ge=0,
        description="Maximum importing files sampled on a record",
    )
    introduction_rules: dict[str, IntroductionTag] = Field(
        default_factory=dict,
        description="Additional introduction rules: package name or prefix -> tag",
    )
    license_green: list[str] = Field(
        default_factory=lambda: list(DEFAULT_LICENSE_GREEN),
        description="Permissive SPDX identifiers (case-insensitive)",
    )
    license_amber: list[str] = Field(
        default_factory=lambda: list(DEFAULT_LICENSE_AMBER),
        description="Weak-copyleft SPDX identifiers (case-insensitive)",
    )
    workers: int = Field(
        default=4,
        ge=1,
        description="Thread pool size for per-sub-package work",
    )

    @field_validator("source_extensions", mode="after")
    @classmethod
    def validate_source_extensions(cls, v: list[str]) -> list[str]:
        if not v:
            msg = "source_extensions must not be empty"
            raise ValueError(msg)
        for ext in v:
            if not ext.startswith(".") or len(ext) < 2:
                msg = f"Invalid source extension '{ext}': must start with '.'"
                raise ValueError(msg)
        return v

    @field_validator("introduction_rules", mode="before")
    @classmethod
    def validate_introduction_rules(cls, v: Any) -> Any:
        """Validate that rule values are valid IntroductionTag literals.

        Note: this runs in `mode="before"` so we can report a clear error
        message using the raw TOML values.
        """

        if v is None:
            return {}

        if not isinstance(v, dict):
            msg = "introduction_rules must be a mapping of package -> tag"
            raise TypeError(msg)

        for package, tag in v.items():
            if not isinstance(package, str) or not isinstance(tag, str):
                msg = "introduction_rules must be a mapping of str -> str"
                raise TypeError(msg)
            if tag not in VALID_INTRODUCTION_TAGS:
                msg = (
                    f"Invalid introduction tag '{tag}' for package '{package}'. "
                    f"Valid tags: {', '.join(sorted(VALID_INTRODUCTION_TAGS))}"
                )
                raise ValueError(msg)

        return v


class ConfigError(Exception):
    """Raised when config file exists but cannot be parsed."""


def load_config(root: Path) -> RadarConfig:
    """Load configuration from dependency-radar.toml if it exists."""
    from pathlib import Path as PathCls

    config_path = PathCls(root) / CONFIG_FILENAME

    if not config_path.is_file():
        return RadarConfig()

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return RadarConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid config in {config_path}: {e}"
        raise ConfigError(msg) from e
