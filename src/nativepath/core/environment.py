"""Node environment and settings for launching workers.

``Environment`` resolves the directories the launcher works with
(temp files, named pipes, worker binaries, optional model config), and
``Settings`` holds node-level knobs that shape the worker command line.

Directory resolution follows the environment variables below, falling
back to ``~/.nativepath``:

    NATIVEPATH_HOME        Home directory (default ``~/.nativepath``).
    NATIVEPATH_TMPDIR      Temp root for config files (default ``{home}/tmp``).
    NATIVEPATH_BIN_DIR     Directory holding the worker binaries
                           (default: relative ``./`` paths are used).
    NATIVEPATH_CONFIG_DIR  Directory holding ``nativepathmodel.conf``
                           (default ``{home}/config``).

Example:
    >>> from nativepath.core import Environment, Settings
    >>> env = Environment.from_env()
    >>> settings = Settings.from_dict({"max_anomaly_records": 1000})
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from nativepath.core.job import load_yaml

AUTODETECT = "autodetect"
MODEL_CONFIG_FILE_NAME = "nativepathmodel.conf"


def get_home_dir() -> Path:
    """Return the nativepath home directory, creating it if needed.

    Resolution order:
        1. ``NATIVEPATH_HOME`` environment variable.
        2. ``~/.nativepath`` (default).
    """
    home = os.environ.get("NATIVEPATH_HOME")
    if home:
        home_dir = Path(home)
    else:
        home_dir = Path.home() / ".nativepath"
    home_dir.mkdir(parents=True, exist_ok=True)
    return home_dir


@dataclass(frozen=True)
class Environment:
    """Filesystem layout of the node that launches workers.

    Attributes:
        home_dir: Base directory.
        tmp_dir: Root for temporary config files and quantile state.
        config_dir: Directory searched for the optional model config.
        bin_dir: Directory of worker binaries, or None for ``./<name>``.
        pipe_dir: Directory for named pipes (defaults to tmp_dir).
    """

    home_dir: Path
    tmp_dir: Path
    config_dir: Path
    bin_dir: Optional[Path] = None
    pipe_dir: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "Environment":
        """Build an Environment from ``NATIVEPATH_*`` variables.

        The temp directory is created here; the other directories are
        only read from.
        """
        home_dir = get_home_dir()

        tmp_env = os.environ.get("NATIVEPATH_TMPDIR")
        tmp_dir = Path(tmp_env) if tmp_env else home_dir / "tmp"
        tmp_dir.mkdir(parents=True, exist_ok=True)

        config_env = os.environ.get("NATIVEPATH_CONFIG_DIR")
        config_dir = Path(config_env) if config_env else home_dir / "config"

        bin_env = os.environ.get("NATIVEPATH_BIN_DIR")
        bin_dir = Path(bin_env) if bin_env else None

        return cls(
            home_dir=home_dir,
            tmp_dir=tmp_dir,
            config_dir=config_dir,
            bin_dir=bin_dir,
        )

    @classmethod
    def for_directory(cls, root: Path) -> "Environment":
        """Layout rooted at a single directory (used by tests and tools)."""
        root = Path(root)
        tmp_dir = root / "tmp"
        tmp_dir.mkdir(parents=True, exist_ok=True)
        return cls(home_dir=root, tmp_dir=tmp_dir, config_dir=root / "config")

    @property
    def named_pipe_dir(self) -> Path:
        return self.pipe_dir if self.pipe_dir is not None else self.tmp_dir

    @property
    def autodetect_path(self) -> str:
        """Path of the autodetect binary as passed to the supervisor."""
        if self.bin_dir is None:
            return f"./{AUTODETECT}"
        return str(self.bin_dir / AUTODETECT)

    @property
    def model_config_file(self) -> Path:
        return self.config_dir / MODEL_CONFIG_FILE_NAME

    def has_model_config(self) -> bool:
        return self.model_config_file.is_file()


@dataclass(frozen=True)
class Settings:
    """Node-level launcher settings.

    Attributes:
        max_anomaly_records: Max anomaly records the worker writes per bucket.
        dont_persist_model_state: Disable periodic model state persistence.
        controller_address: ZMQ address of the native controller.
        controller_timeout_sec: Bound on each controller request.
        named_pipe_connect_timeout_sec: Time the worker waits for pipes.
    """

    max_anomaly_records: int = 500
    dont_persist_model_state: bool = False
    controller_address: str = "ipc:///tmp/nativepath-controller.sock"
    controller_timeout_sec: float = 10.0
    named_pipe_connect_timeout_sec: int = 10

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Settings":
        """Create Settings from a dictionary, ignoring unknown keys."""
        data = data or {}
        if not isinstance(data, dict):
            raise ValueError(f"Settings must be a mapping, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "Settings":
        return cls.from_dict(load_yaml(yaml_path))

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
