"""Job configuration types for autodetect workers.

These dataclasses describe one anomaly-detection job as the launcher
sees it. They are read-only inputs to the launch builder: nothing in
``nativepath.process`` mutates them.

Example:
    >>> from nativepath.core import Job
    >>>
    >>> job = Job.from_dict({
    ...     "id": "farequote",
    ...     "analysis_config": {
    ...         "bucket_span": 3600,
    ...         "detectors": [{"function": "mean", "field_name": "responsetime",
    ...                        "by_field_name": "airline"}],
    ...     },
    ...     "analysis_limits": {"model_memory_limit": 4096},
    ... })
    >>> job.analysis_config.detectors[0].by_field_name
    'airline'
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

# Lowercase alphanumerics, hyphens and underscores; starts and ends alphanumeric
_JOB_ID_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9_\-]*[a-z0-9])?$")


class IgnoreDowntime(Enum):
    """Whether the worker should skip the gap since the last processed data."""
    NEVER = "never"
    ONCE = "once"
    ALWAYS = "always"

    @classmethod
    def from_string(cls, s: str) -> "IgnoreDowntime":
        return _enum_from_string(cls, s)


class ExcludeFrequent(Enum):
    """Which frequent entities a detector leaves out of its results."""
    ALL = "all"
    NONE = "none"
    BY = "by"
    OVER = "over"

    @property
    def token(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, s: str) -> "ExcludeFrequent":
        return _enum_from_string(cls, s)


class DebugDestination(Enum):
    """Where model debug output is written."""
    FILE = "file"
    DATA_STORE = "data_store"

    @classmethod
    def from_string(cls, s: str) -> "DebugDestination":
        return _enum_from_string(cls, s)


def _enum_from_string(enum_cls, s: str):
    """Parse an enum member by value, case-insensitively.

    Raises:
        ValueError: If ``s`` does not name a member.
    """
    mapping = {member.value: member for member in enum_cls}
    s_lower = s.lower()
    if s_lower not in mapping:
        raise ValueError(
            f"Unknown {enum_cls.__name__} value: {s}. "
            f"Valid values: {', '.join(mapping.keys())}"
        )
    return mapping[s_lower]


def validate_job_id(job_id: str) -> str:
    """Check that a job id is safe to embed in file names and flags.

    Raises:
        ValueError: If the id is empty or has characters other than
            lowercase alphanumerics, ``-`` and ``_``.
    """
    if not job_id:
        raise ValueError("Job id must not be empty")
    if not isinstance(job_id, str) or not _JOB_ID_PATTERN.match(job_id):
        raise ValueError(
            f"Invalid job id '{job_id}': use lowercase alphanumerics, '-' and '_', "
            f"starting and ending with an alphanumeric"
        )
    return job_id


def _require_mapping(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be a mapping, got {type(data).__name__}")
    return data


@dataclass
class Detector:
    """A single detector clause of an analysis config.

    Attributes:
        function: Analysis function (e.g. "count", "mean", "rare").
        field_name: Field the function is applied to.
        by_field_name: Field splitting the analysis into series.
        over_field_name: Field defining the population.
        partition_field_name: Field partitioning the whole analysis.
        use_null: Treat missing by/over/partition values as a value.
        exclude_frequent: Frequent entities to exclude, if any.
        detector_rules: JSON-compatible rule objects passed to the worker.
    """

    function: Optional[str] = None
    field_name: Optional[str] = None
    by_field_name: Optional[str] = None
    over_field_name: Optional[str] = None
    partition_field_name: Optional[str] = None
    use_null: bool = False
    exclude_frequent: Optional[ExcludeFrequent] = None
    detector_rules: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Detector":
        exclude = data.get("exclude_frequent")
        return cls(
            function=data.get("function"),
            field_name=data.get("field_name"),
            by_field_name=data.get("by_field_name"),
            over_field_name=data.get("over_field_name"),
            partition_field_name=data.get("partition_field_name"),
            use_null=bool(data.get("use_null", False)),
            exclude_frequent=ExcludeFrequent.from_string(exclude) if exclude else None,
            detector_rules=list(data.get("detector_rules", [])),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for key in ("function", "field_name", "by_field_name",
                    "over_field_name", "partition_field_name"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.use_null:
            data["use_null"] = True
        if self.exclude_frequent is not None:
            data["exclude_frequent"] = self.exclude_frequent.value
        if self.detector_rules:
            data["detector_rules"] = list(self.detector_rules)
        return data


@dataclass
class AnalysisConfig:
    """Analysis settings of a job.

    Attributes:
        detectors: Detector clauses, written to the field config in order.
        bucket_span: Bucket span in seconds.
        latency: Accepted out-of-order latency in seconds.
        period: Fixed periodicity hint in seconds.
        summary_count_field_name: Field holding pre-summarised counts.
        categorization_field_name: Field used for categorization.
        categorization_filters: Regexes applied before categorization.
        influencers: Influencer field names.
        multiple_bucket_spans: Extra bucket spans analysed in parallel.
        overlapping_buckets: Enable overlapping buckets.
        result_finalization_window: Finalization window in buckets.
        multivariate_by_fields: Model by-fields jointly.
        use_per_partition_normalization: Normalize per partition.
    """

    DEFAULT_RESULT_FINALIZATION_WINDOW = 2

    detectors: List[Detector] = field(default_factory=list)
    bucket_span: Optional[int] = None
    latency: Optional[int] = None
    period: Optional[int] = None
    summary_count_field_name: Optional[str] = None
    categorization_field_name: Optional[str] = None
    categorization_filters: List[str] = field(default_factory=list)
    influencers: List[str] = field(default_factory=list)
    multiple_bucket_spans: List[int] = field(default_factory=list)
    overlapping_buckets: bool = False
    result_finalization_window: Optional[int] = None
    multivariate_by_fields: bool = False
    use_per_partition_normalization: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisConfig":
        return cls(
            detectors=[Detector.from_dict(d) for d in data.get("detectors", [])],
            bucket_span=data.get("bucket_span"),
            latency=data.get("latency"),
            period=data.get("period"),
            summary_count_field_name=data.get("summary_count_field_name"),
            categorization_field_name=data.get("categorization_field_name"),
            categorization_filters=list(data.get("categorization_filters", [])),
            influencers=list(data.get("influencers", [])),
            multiple_bucket_spans=list(data.get("multiple_bucket_spans", [])),
            overlapping_buckets=bool(data.get("overlapping_buckets", False)),
            result_finalization_window=data.get("result_finalization_window"),
            multivariate_by_fields=bool(data.get("multivariate_by_fields", False)),
            use_per_partition_normalization=bool(
                data.get("use_per_partition_normalization", False)
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"detectors": [d.to_dict() for d in self.detectors]}
        for key in ("bucket_span", "latency", "period", "summary_count_field_name",
                    "categorization_field_name", "result_finalization_window"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        for key in ("categorization_filters", "influencers", "multiple_bucket_spans"):
            value = getattr(self, key)
            if value:
                data[key] = list(value)
        for key in ("overlapping_buckets", "multivariate_by_fields",
                    "use_per_partition_normalization"):
            if getattr(self, key):
                data[key] = True
        return data


@dataclass
class AnalysisLimits:
    """Resource limits for the worker.

    Attributes:
        model_memory_limit: Model memory limit in MB (None or 0 = default).
        categorization_examples_limit: Max examples stored per category.
    """

    model_memory_limit: Optional[int] = None
    categorization_examples_limit: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisLimits":
        return cls(
            model_memory_limit=data.get("model_memory_limit"),
            categorization_examples_limit=data.get("categorization_examples_limit"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            key: value
            for key, value in (
                ("model_memory_limit", self.model_memory_limit),
                ("categorization_examples_limit", self.categorization_examples_limit),
            )
            if value is not None
        }


@dataclass
class ModelDebugConfig:
    """Model debug output settings.

    Attributes:
        write_to: Output destination, or None for the worker default.
        bounds_percentile: Percentile of the model bounds to report.
        terms: Comma separated terms to restrict output to.
    """

    write_to: Optional[DebugDestination] = None
    bounds_percentile: float = 95.0
    terms: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModelDebugConfig":
        write_to = data.get("write_to")
        return cls(
            write_to=DebugDestination.from_string(write_to) if write_to else None,
            bounds_percentile=float(data.get("bounds_percentile", 95.0)),
            terms=data.get("terms"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"bounds_percentile": self.bounds_percentile}
        if self.write_to is not None:
            data["write_to"] = self.write_to.value
        if self.terms is not None:
            data["terms"] = self.terms
        return data


@dataclass
class DataDescription:
    """How input records are timestamped."""

    time_field: str = "time"
    time_format: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DataDescription":
        return cls(
            time_field=data.get("time_field", "time"),
            time_format=data.get("time_format"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"time_field": self.time_field}
        if self.time_format is not None:
            data["time_format"] = self.time_format
        return data


@dataclass(frozen=True)
class ListDocument:
    """A named lookup list referenced by detector rules.

    Frozen so that lists can be collected in a set.
    """

    id: str
    items: FrozenSet[str] = frozenset()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ListDocument":
        data = _require_mapping(data, "List document")
        return cls(id=data["id"], items=frozenset(data.get("items", [])))


@dataclass(frozen=True)
class Quantiles:
    """Normalizer state persisted by a previous run of the same job.

    Attributes:
        job_id: Job the state belongs to.
        quantile_state: Serialized state. Empty means nothing to restore.
        timestamp: Epoch milliseconds of the state, if known.
    """

    job_id: str
    quantile_state: str = ""
    timestamp: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Quantiles":
        data = _require_mapping(data, "Quantiles")
        return cls(
            job_id=data["job_id"],
            quantile_state=data.get("quantile_state", ""),
            timestamp=data.get("timestamp"),
        )


@dataclass
class Job:
    """One anomaly-detection job.

    Attributes:
        id: Job identifier, used in command flags and file names.
        analysis_config: Detector and bucketing settings (field config).
        analysis_limits: Memory and example limits (limit config).
        model_debug_config: Model debug settings (model debug config).
        data_description: Time field and format of input records.
        ignore_downtime: Job-level ignore-downtime policy.
        background_persist_interval: Model state persist interval in seconds.
    """

    id: str
    analysis_config: Optional[AnalysisConfig] = None
    analysis_limits: Optional[AnalysisLimits] = None
    model_debug_config: Optional[ModelDebugConfig] = None
    data_description: Optional[DataDescription] = None
    ignore_downtime: Optional[IgnoreDowntime] = None
    background_persist_interval: Optional[int] = None

    def __post_init__(self) -> None:
        validate_job_id(self.id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Job":
        """Create a Job from a dictionary (e.g., loaded from YAML).

        Absent sections stay None so the launcher skips their config file.
        """
        data = _require_mapping(data, "Job config")
        analysis_config = data.get("analysis_config")
        analysis_limits = data.get("analysis_limits")
        model_debug_config = data.get("model_debug_config")
        data_description = data.get("data_description")
        ignore_downtime = data.get("ignore_downtime")

        return cls(
            id=data["id"],
            analysis_config=(
                AnalysisConfig.from_dict(analysis_config)
                if analysis_config is not None else None
            ),
            analysis_limits=(
                AnalysisLimits.from_dict(analysis_limits)
                if analysis_limits is not None else None
            ),
            model_debug_config=(
                ModelDebugConfig.from_dict(model_debug_config)
                if model_debug_config is not None else None
            ),
            data_description=(
                DataDescription.from_dict(data_description)
                if data_description is not None else None
            ),
            ignore_downtime=(
                IgnoreDowntime.from_string(ignore_downtime)
                if ignore_downtime else None
            ),
            background_persist_interval=data.get("background_persist_interval"),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "Job":
        """Load a Job from a YAML (or JSON) file.

        Raises:
            ImportError: If PyYAML is not installed.
            FileNotFoundError: If the file doesn't exist.
        """
        return cls.from_dict(load_yaml(yaml_path))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id}
        if self.analysis_config is not None:
            data["analysis_config"] = self.analysis_config.to_dict()
        if self.analysis_limits is not None:
            data["analysis_limits"] = self.analysis_limits.to_dict()
        if self.model_debug_config is not None:
            data["model_debug_config"] = self.model_debug_config.to_dict()
        if self.data_description is not None:
            data["data_description"] = self.data_description.to_dict()
        if self.ignore_downtime is not None:
            data["ignore_downtime"] = self.ignore_downtime.value
        if self.background_persist_interval is not None:
            data["background_persist_interval"] = self.background_persist_interval
        return data


def load_yaml(yaml_path: str) -> Any:
    """Read a YAML document. JSON files parse too, being valid YAML."""
    try:
        import yaml
    except ImportError:
        raise ImportError(
            "PyYAML is required for YAML config support. "
            "Install it with: pip install pyyaml"
        )

    with open(yaml_path, encoding="utf-8") as f:
        return yaml.safe_load(f)
