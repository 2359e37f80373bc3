"""Base class for worker config file writers.

Each config section the worker reads via ``--<section>config=<path>`` has
one writer. A writer takes its config object and an open text sink and
writes the whole section in one ``write()`` call.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, TextIO, Type

EQUALS = " = "
NEW_LINE = "\n"


class ConfigWriter(ABC):
    """Writes one config section to a text sink."""

    def __init__(self, writer: TextIO):
        self._writer = writer

    @abstractmethod
    def write(self) -> None:
        """Write the section. Raises OSError if the sink rejects it."""
        ...


def write_config(path: Path, writer_cls: Type[ConfigWriter], *args: Any, **kwargs: Any) -> None:
    """Open ``path`` as UTF-8 text and run ``writer_cls(*args, sink, **kwargs)``.

    The file is closed before this returns, so the worker never sees a
    partially flushed config.
    """
    with open(path, "w", encoding="utf-8") as sink:
        writer_cls(*args, sink, **kwargs).write()
