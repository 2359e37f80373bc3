"""Core types for nativepath.

- Job model: Job, AnalysisConfig, Detector, AnalysisLimits, ModelDebugConfig
- Warm start and lookup data: Quantiles, ListDocument
- Node layout: Environment, Settings
"""

from nativepath.core.job import (
    Job,
    AnalysisConfig,
    AnalysisLimits,
    Detector,
    DataDescription,
    ModelDebugConfig,
    ListDocument,
    Quantiles,
    IgnoreDowntime,
    ExcludeFrequent,
    DebugDestination,
)
from nativepath.core.environment import Environment, Settings, get_home_dir

__all__ = [
    # Job model
    "Job",
    "AnalysisConfig",
    "AnalysisLimits",
    "Detector",
    "DataDescription",
    "ModelDebugConfig",
    "ListDocument",
    "Quantiles",
    "IgnoreDowntime",
    "ExcludeFrequent",
    "DebugDestination",
    # Environment
    "Environment",
    "Settings",
    "get_home_dir",
]
