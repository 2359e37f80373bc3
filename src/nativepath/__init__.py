"""nativepath - launch autodetect workers through a native controller.

Quick Start:
    >>> from nativepath import AutodetectBuilder, Environment, Job, NativeController
    >>> from nativepath import ProcessPipes, Settings, delete_files
    >>>
    >>> env = Environment.from_env()
    >>> settings = Settings()
    >>> job = Job.from_yaml("farequote.yaml")
    >>> files_to_delete = []
    >>> with NativeController(settings.controller_address) as controller:
    ...     pipes = ProcessPipes.for_job(env, "autodetect", job.id)
    ...     AutodetectBuilder(job, files_to_delete, logger, env, settings,
    ...                       controller, pipes).ignore_downtime(True).build()
    >>> ...  # when the worker exits
    >>> delete_files(files_to_delete)
"""

from nativepath.core import (
    Job,
    AnalysisConfig,
    AnalysisLimits,
    Detector,
    ModelDebugConfig,
    ListDocument,
    Quantiles,
    Environment,
    Settings,
)
from nativepath.ipc import ProcessPipes
from nativepath.process import (
    AutodetectBuilder,
    LaunchOptions,
    assemble_command,
    NativeController,
    ControllerError,
    ControllerTimeoutError,
    ControllerIOError,
    delete_files,
)

__version__ = "0.1.0"

__all__ = [
    # Job model
    "Job",
    "AnalysisConfig",
    "AnalysisLimits",
    "Detector",
    "ModelDebugConfig",
    "ListDocument",
    "Quantiles",
    # Environment
    "Environment",
    "Settings",
    # Launch
    "AutodetectBuilder",
    "LaunchOptions",
    "assemble_command",
    "ProcessPipes",
    "delete_files",
    # Controller
    "NativeController",
    "ControllerError",
    "ControllerTimeoutError",
    "ControllerIOError",
]
