"""IPC utility functions."""

import os
import tempfile
from pathlib import Path
from typing import Optional


def generate_ipc_address(
    prefix: str = "nativepath",
    directory: Optional[Path] = None,
) -> tuple[str, str]:
    """Generate a unique IPC address for ZMQ communication.

    Args:
        prefix: Prefix for the socket file name.
        directory: Directory for the socket file (default: system temp).

    Returns:
        Tuple of (zmq_address, file_path) where zmq_address is like
        "ipc:///tmp/nativepath-12345-xxxx.sock" and file_path is the
        underlying socket file path.
    """
    ipc_file = tempfile.mktemp(
        prefix=f"{prefix}-{os.getpid()}-",
        suffix=".sock",
        dir=str(directory) if directory is not None else None,
    )
    ipc_address = f"ipc://{ipc_file}"
    return ipc_address, ipc_file
