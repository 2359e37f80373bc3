"""Autodetect command line assembly and warm-start state files.

``build_autodetect_command`` produces the base argument list for one job:
the binary path followed by the flags derived from the job, the node
settings and the launch overrides. Config-file flags are added later by
the launch builder.

Periodic work in the worker (model persistence, quantile refresh) is
staggered per job so that many jobs started together do not all persist
at the same moment. The stagger is a pure function of the job id, so a
restarted job keeps its slot.
"""

import logging
import threading
import zlib
from pathlib import Path
from typing import List, Optional

import numpy as np

from nativepath.core.environment import Environment, Settings
from nativepath.core.job import AnalysisConfig, IgnoreDowntime, Job, validate_job_id
from nativepath.process.tempfiles import create_temp_file

logger = logging.getLogger(__name__)

JOB_ID_ARG = "--jobid="
CONTROLLER_PID_ARG = "--controllerPid="
BUCKET_SPAN_ARG = "--bucketspan="
LATENCY_ARG = "--latency="
PERIOD_ARG = "--period="
SUMMARY_COUNT_FIELD_ARG = "--summarycountfield="
MULTIPLE_BUCKET_SPANS_ARG = "--multipleBucketspans="
RESULT_FINALIZATION_WINDOW_ARG = "--resultFinalizationWindow="
MULTIVARIATE_BY_FIELDS_ARG = "--multivariateByFields"
PER_PARTITION_NORMALIZATION_ARG = "--perPartitionNormalization"
LENGTH_ENCODED_INPUT_ARG = "--lengthEncodedInput"
MAX_ANOMALY_RECORDS_ARG = "--maxAnomalyRecords="
TIME_FIELD_ARG = "--timefield="
TIME_FORMAT_ARG = "--timeformat="
PERSIST_INTERVAL_ARG = "--persistInterval="
MAX_QUANTILE_INTERVAL_ARG = "--maxQuantileInterval="
IGNORE_DOWNTIME_ARG = "--ignoreDowntime"
MODEL_CONFIG_ARG = "--modelconfig="
QUANTILES_STATE_PATH_ARG = "--quantilesState="
DELETE_STATE_FILES_ARG = "--deleteStateFiles"

DEFAULT_TIME_FIELD = "time"
QUANTILES_FILE_EXTENSION = ".json"

SECONDS_IN_HOUR = 3600
DEFAULT_BASE_PERSIST_INTERVAL = 10800  # 3 hours
BASE_MAX_QUANTILE_INTERVAL = 21600  # 6 hours


def calculate_staggering_interval(job_id: str) -> int:
    """Return a per-job offset in ``[0, 3600)`` seconds.

    Seeded from a CRC32 of the job id rather than ``hash()``, which is
    randomized per interpreter.
    """
    rng = np.random.default_rng(zlib.crc32(job_id.encode("utf-8")))
    return int(rng.integers(0, SECONDS_IN_HOUR))


def build_autodetect_command(
    env: Environment,
    settings: Settings,
    job: Job,
    job_logger: Optional[logging.Logger],
    ignore_downtime: bool,
    controller_pid: int,
) -> List[str]:
    """Build the base autodetect command for a job.

    Args:
        env: Node environment (binary location, model config).
        settings: Node settings.
        job: The job to launch.
        job_logger: Per-job logger; the module logger is used when None.
        ignore_downtime: Launch override; ORed with the job's own policy.
        controller_pid: Pid of the native controller that will fork the
            worker, passed through so the worker can report to it.

    Returns:
        The command as a new list, binary path first.
    """
    log = job_logger or logger
    command = [env.autodetect_path, JOB_ID_ARG + job.id, f"{CONTROLLER_PID_ARG}{controller_pid}"]

    if job.analysis_config is not None:
        _add_analysis_args(job.analysis_config, command)

    # Input is always length encoded
    command.append(LENGTH_ENCODED_INPUT_ARG)
    command.append(f"{MAX_ANOMALY_RECORDS_ARG}{settings.max_anomaly_records}")

    description = job.data_description
    time_field = description.time_field if description is not None else DEFAULT_TIME_FIELD
    command.append(TIME_FIELD_ARG + (time_field or DEFAULT_TIME_FIELD))
    if description is not None and description.time_format:
        command.append(TIME_FORMAT_ARG + description.time_format)

    stagger = calculate_staggering_interval(job.id)
    log.debug(f"Periodic operations staggered by {stagger} seconds for job '{job.id}'")

    if settings.dont_persist_model_state:
        log.info("Will not persist model state - dont_persist_model_state setting was set")
    else:
        # Persist model state every few hours even if the job isn't closed
        if job.background_persist_interval is not None:
            persist_interval = job.background_persist_interval
        else:
            persist_interval = DEFAULT_BASE_PERSIST_INTERVAL + stagger
        command.append(f"{PERSIST_INTERVAL_ARG}{persist_interval}")

    command.append(f"{MAX_QUANTILE_INTERVAL_ARG}{BASE_MAX_QUANTILE_INTERVAL + stagger}")

    if ignore_downtime or job.ignore_downtime in (IgnoreDowntime.ONCE, IgnoreDowntime.ALWAYS):
        command.append(IGNORE_DOWNTIME_ARG)

    if env.has_model_config():
        command.append(MODEL_CONFIG_ARG + str(env.model_config_file))

    return command


def _add_analysis_args(config: AnalysisConfig, command: List[str]) -> None:
    if config.bucket_span is not None:
        command.append(f"{BUCKET_SPAN_ARG}{config.bucket_span}")
    if config.latency is not None:
        command.append(f"{LATENCY_ARG}{config.latency}")
    if config.period is not None:
        command.append(f"{PERIOD_ARG}{config.period}")
    if config.summary_count_field_name:
        command.append(SUMMARY_COUNT_FIELD_ARG + config.summary_count_field_name)
    if config.multiple_bucket_spans:
        spans = ",".join(str(span) for span in config.multiple_bucket_spans)
        command.append(MULTIPLE_BUCKET_SPANS_ARG + spans)
    if config.overlapping_buckets:
        window = config.result_finalization_window
        if window is None:
            window = AnalysisConfig.DEFAULT_RESULT_FINALIZATION_WINDOW
        command.append(f"{RESULT_FINALIZATION_WINDOW_ARG}{window}")
    if config.multivariate_by_fields:
        command.append(MULTIVARIATE_BY_FIELDS_ARG)
    if config.use_per_partition_normalization:
        command.append(PER_PARTITION_NORMALIZATION_ARG)


def write_normaliser_init_state(job_id: str, state: str, env: Environment) -> Path:
    """Write restored quantile state to a job-keyed file for the worker.

    The file name starts with ``<job_id>_quantiles_<thread id>_`` so
    concurrent launches of the same job from different threads never
    collide. The file is not a generic temp artifact: the worker deletes
    it after reading when given ``--deleteStateFiles``.

    Args:
        job_id: Job the state belongs to.
        state: Serialized quantile state; must be non-empty.
        env: Node environment; the file goes under ``env.tmp_dir``.

    Returns:
        Path of the written state file.

    Raises:
        ValueError: If state is empty or job_id is not a valid job id.
        OSError: If the file cannot be created or written. A partly
            written file is removed first.
    """
    if not state:
        raise ValueError(f"Empty quantile state for job '{job_id}'")
    validate_job_id(job_id)

    state_file = create_temp_file(
        env.tmp_dir,
        prefix=f"{job_id}_quantiles_{threading.get_ident()}_",
        suffix=QUANTILES_FILE_EXTENSION,
    )
    try:
        with open(state_file, "w", encoding="utf-8") as f:
            f.write(state)
    except OSError:
        state_file.unlink(missing_ok=True)
        raise
    return state_file
