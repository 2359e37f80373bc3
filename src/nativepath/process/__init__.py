"""Worker launch: command assembly, config files, controller proxy.

Components:
- Builder: AutodetectBuilder, LaunchOptions, assemble_command
- Command assembly: build_autodetect_command, write_normaliser_init_state
- Controller: NativeController and its error types
- Temp files: create_temp_file, delete_files
"""

from nativepath.process.builder import (
    AutodetectBuilder,
    LaunchOptions,
    assemble_command,
)
from nativepath.process.ctrl import (
    build_autodetect_command,
    write_normaliser_init_state,
)
from nativepath.process.controller import (
    NativeController,
    ControllerError,
    ControllerTimeoutError,
    ControllerIOError,
)
from nativepath.process.tempfiles import create_temp_file, delete_files

__all__ = [
    # Builder
    "AutodetectBuilder",
    "LaunchOptions",
    "assemble_command",
    # Command assembly
    "build_autodetect_command",
    "write_normaliser_init_state",
    # Controller
    "NativeController",
    "ControllerError",
    "ControllerTimeoutError",
    "ControllerIOError",
    # Temp files
    "create_temp_file",
    "delete_files",
]
