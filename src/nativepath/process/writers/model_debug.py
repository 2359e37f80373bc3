"""Model debug config writer."""

from typing import TextIO

from nativepath.core.job import ModelDebugConfig
from nativepath.process.writers.base import ConfigWriter, EQUALS, NEW_LINE

WRITE_TO_KEY = "writeto"
BOUNDS_PERCENTILE_KEY = "boundspercentile"
TERMS_KEY = "terms"


class ModelDebugConfigWriter(ConfigWriter):
    """Writes ``writeto``, ``boundspercentile`` and ``terms`` lines."""

    def __init__(self, config: ModelDebugConfig, writer: TextIO):
        super().__init__(writer)
        self._config = config

    def write(self) -> None:
        lines = []
        if self._config.write_to is not None:
            lines.append(f"{WRITE_TO_KEY}{EQUALS}{self._config.write_to.value}")
        lines.append(f"{BOUNDS_PERCENTILE_KEY}{EQUALS}{self._config.bounds_percentile}")
        # terms is always present; an empty value means all terms
        lines.append(f"{TERMS_KEY}{EQUALS}{self._config.terms or ''}")
        self._writer.write(NEW_LINE.join(lines) + NEW_LINE)
