"""Rule definitions for dependency-radar-core."""

from rules.config import (
    ConfigError,
    RadarConfig,
    load_config,
)
from rules.engines import derive_min_required_major, engine_has_upper_bound
from rules.risk import (
    IntroductionRules,
    build_risk,
    classify_introduction,
    classify_runtime_impact,
    license_risk,
    vuln_risk,
)

__all__ = [
    "ConfigError",
    "IntroductionRules",
    "RadarConfig",
    "build_risk",
    "classify_introduction",
    "classify_runtime_impact",
    "derive_min_required_major",
    "engine_has_upper_bound",
    "license_risk",
    "load_config",
    "vuln_risk",
]
