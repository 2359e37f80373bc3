"""Launch builder for autodetect workers.

Assembles the full autodetect command for one job, writing each optional
config section to its own temp file, and asks the native controller to
start the worker.

Build order is fixed:

1. base command (``build_autodetect_command``)
2. ``--limitconfig=`` if the job has analysis limits
3. ``--modeldebugconfig=`` if the job has a model debug config
4. ``--quantilesState=`` + ``--deleteStateFiles`` if restored state is non-empty
5. ``--fieldconfig=`` if the job has an analysis config
6. pipe endpoint arguments
7. controller start request

Every temp config file is appended to the caller's ``files_to_delete``
list before anything is written to it, so a failure in a later step
still leaves it registered. The builder never deletes files; the worker
needs them after ``build()`` returns. The start request is the last
step, so nothing can fail once the controller has confirmed a start.

Example:
    >>> files_to_delete = []
    >>> builder = AutodetectBuilder(job, files_to_delete, job_logger, env,
    ...                             settings, controller, pipes)
    >>> builder.ignore_downtime(True).quantiles(restored).build()
    >>> ...  # once the worker exits
    >>> delete_files(files_to_delete)
"""

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional

from nativepath.core.environment import Environment, Settings
from nativepath.core.job import Job, ListDocument, Quantiles
from nativepath.ipc.pipes import ProcessPipes
from nativepath.process.controller import NativeController
from nativepath.process.ctrl import (
    DELETE_STATE_FILES_ARG,
    QUANTILES_STATE_PATH_ARG,
    build_autodetect_command,
    write_normaliser_init_state,
)
from nativepath.process.tempfiles import CONF_EXTENSION, create_temp_file
from nativepath.process.writers import (
    AnalysisLimitsWriter,
    FieldConfigWriter,
    ModelDebugConfigWriter,
    write_config,
)

LIMIT_CONFIG_ARG = "--limitconfig="
MODEL_DEBUG_CONFIG_ARG = "--modeldebugconfig="
FIELD_CONFIG_ARG = "--fieldconfig="


@dataclass(frozen=True)
class LaunchOptions:
    """Per-launch overrides on top of the job configuration.

    Attributes:
        ignore_downtime: Force ``--ignoreDowntime`` regardless of the job.
        referenced_lists: Lookup lists written into the field config.
        quantiles: Normalizer state to warm-start from, if any.
    """

    ignore_downtime: bool = False
    referenced_lists: FrozenSet[ListDocument] = frozenset()
    quantiles: Optional[Quantiles] = None

    @property
    def has_quantile_state(self) -> bool:
        return self.quantiles is not None and bool(self.quantiles.quantile_state)


def assemble_command(
    job: Job,
    options: LaunchOptions,
    files_to_delete: List[Path],
    env: Environment,
    settings: Settings,
    controller_pid: int,
    pipes: ProcessPipes,
    job_logger: Optional[logging.Logger] = None,
) -> List[str]:
    """Assemble the complete autodetect command (build steps 1-6).

    Args:
        job: The job to launch.
        options: Launch overrides.
        files_to_delete: Caller-owned list; every temp config file created
            here is appended exactly once.
        env: Node environment; temp files go under ``env.tmp_dir``.
        settings: Node settings.
        controller_pid: Pid of the native controller.
        pipes: Pipe endpoints appended at the end.
        job_logger: Per-job logger.

    Returns:
        The command, binary path first.

    Raises:
        OSError: If a config file cannot be created or written. Files
            created before the failure remain in ``files_to_delete``.
    """
    log = job_logger or logging.getLogger(__name__)

    command = build_autodetect_command(
        env, settings, job, log, options.ignore_downtime, controller_pid
    )

    if job.analysis_limits is not None:
        limit_config = create_temp_file(env.tmp_dir, "limitconfig", CONF_EXTENSION, files_to_delete)
        write_config(limit_config, AnalysisLimitsWriter, job.analysis_limits)
        command.append(LIMIT_CONFIG_ARG + str(limit_config))

    if job.model_debug_config is not None:
        debug_config = create_temp_file(
            env.tmp_dir, "modeldebugconfig", CONF_EXTENSION, files_to_delete
        )
        write_config(debug_config, ModelDebugConfigWriter, job.model_debug_config)
        command.append(MODEL_DEBUG_CONFIG_ARG + str(debug_config))

    if options.has_quantile_state:
        log.info(f"Restoring quantiles for job '{job.id}'")
        state_file = write_normaliser_init_state(job.id, options.quantiles.quantile_state, env)
        command.append(QUANTILES_STATE_PATH_ARG + str(state_file))
        command.append(DELETE_STATE_FILES_ARG)

    if job.analysis_config is not None:
        field_config = create_temp_file(env.tmp_dir, "fieldconfig", CONF_EXTENSION, files_to_delete)
        write_config(
            field_config,
            FieldConfigWriter,
            job.analysis_config,
            set(options.referenced_lists),
            job_logger=log,
        )
        command.append(FIELD_CONFIG_ARG + str(field_config))

    pipes.add_args(command)
    return command


class AutodetectBuilder:
    """Fluent launcher for one job's autodetect worker.

    Args:
        job: The job configuration.
        files_to_delete: Caller-owned list the builder appends the temp
            config files to; delete them when the worker completes.
        job_logger: The job's logger.
        env: Node environment.
        settings: Node settings.
        controller: Native controller that starts the worker.
        process_pipes: Pipe endpoints of the worker.

    Raises:
        ValueError: If job, files_to_delete or job_logger is None.
    """

    def __init__(
        self,
        job: Job,
        files_to_delete: List[Path],
        job_logger: logging.Logger,
        env: Environment,
        settings: Settings,
        controller: NativeController,
        process_pipes: ProcessPipes,
    ):
        if job is None:
            raise ValueError("job is required")
        if files_to_delete is None:
            raise ValueError("files_to_delete is required")
        if job_logger is None:
            raise ValueError("job_logger is required")

        self._job = job
        self._files_to_delete = files_to_delete
        self._logger = job_logger
        self._env = env
        self._settings = settings
        self._controller = controller
        self._process_pipes = process_pipes
        self._options = LaunchOptions()

    @property
    def options(self) -> LaunchOptions:
        return self._options

    def ignore_downtime(self, ignore_downtime: bool) -> "AutodetectBuilder":
        """Set ``--ignoreDowntime`` regardless of the job's own setting."""
        self._options = dataclasses.replace(self._options, ignore_downtime=ignore_downtime)
        return self

    def referenced_lists(self, lists: Iterable[ListDocument]) -> "AutodetectBuilder":
        """Set the lookup lists written into the field config."""
        if lists is None:
            raise ValueError("lists must not be None; pass an empty set instead")
        self._options = dataclasses.replace(self._options, referenced_lists=frozenset(lists))
        return self

    def quantiles(self, quantiles: Optional[Quantiles]) -> "AutodetectBuilder":
        """Set the quantiles to restore the normalizer state from, if any."""
        self._options = dataclasses.replace(self._options, quantiles=quantiles)
        return self

    def build_command(self) -> List[str]:
        """Assemble the command without starting the worker."""
        return assemble_command(
            self._job,
            self._options,
            self._files_to_delete,
            self._env,
            self._settings,
            self._controller.pid,
            self._process_pipes,
            job_logger=self._logger,
        )

    def build(self) -> None:
        """Assemble the command and ask the controller to start the worker.

        Raises:
            OSError: If a config file cannot be written.
            ControllerTimeoutError: If the controller does not confirm in time.
            ControllerIOError: If the control channel fails.
        """
        command = self.build_command()
        self._controller.start_process(command)
