"""Temporary config file creation and caller-side cleanup.

Config files handed to a worker must outlive the call that creates them:
the worker reads them after launch. So this module only creates and
registers them; removal is the caller's job once the worker is done,
via :func:`delete_files`.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)

CONF_EXTENSION = ".conf"


def create_temp_file(
    root: Path,
    prefix: str,
    suffix: str = CONF_EXTENSION,
    files_to_delete: Optional[List[Path]] = None,
) -> Path:
    """Create a new, empty, uniquely named file under ``root``.

    The file is created exclusively, so an existing path is never reused.
    When ``files_to_delete`` is given the path is appended to it right
    after creation, before anything is written to it.

    Args:
        root: Directory to create the file in. Must exist.
        prefix: Short purpose hint, e.g. "limitconfig".
        suffix: File suffix.
        files_to_delete: Caller-owned list that records the new path.

    Returns:
        Path of the created file.

    Raises:
        OSError: If the root is missing or not writable.
    """
    fd, name = tempfile.mkstemp(prefix=prefix, suffix=suffix, dir=str(root))
    os.close(fd)
    path = Path(name)
    if files_to_delete is not None:
        files_to_delete.append(path)
    return path


def delete_files(paths: Iterable[Path]) -> int:
    """Remove launch artifacts that still exist.

    Paths that are already gone are skipped. Paths that cannot be
    removed are logged and left in place.

    Returns:
        Number of files removed.
    """
    removed = 0
    for path in paths:
        try:
            Path(path).unlink()
            removed += 1
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.warning(f"Could not delete {path}: {e}")
    return removed
