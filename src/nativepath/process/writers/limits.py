"""Analysis limits config writer."""

from typing import TextIO

from nativepath.core.job import AnalysisLimits
from nativepath.process.writers.base import ConfigWriter, EQUALS, NEW_LINE

MEMORY_STANZA = "[memory]"
RESULTS_STANZA = "[results]"
MODEL_MEMORY_LIMIT_KEY = "modelmemorylimit"
MAX_EXAMPLES_LIMIT_KEY = "maxexamples"


class AnalysisLimitsWriter(ConfigWriter):
    """Writes ``[memory]`` and ``[results]`` stanzas.

    A model memory limit of 0 means "use the worker default" and is
    omitted, like an unset one.
    """

    def __init__(self, limits: AnalysisLimits, writer: TextIO):
        super().__init__(writer)
        self._limits = limits

    def write(self) -> None:
        contents = [MEMORY_STANZA, NEW_LINE]
        if self._limits.model_memory_limit:
            contents += [MODEL_MEMORY_LIMIT_KEY, EQUALS,
                         str(self._limits.model_memory_limit), NEW_LINE]
        contents += [RESULTS_STANZA, NEW_LINE]
        if self._limits.categorization_examples_limit is not None:
            contents += [MAX_EXAMPLES_LIMIT_KEY, EQUALS,
                         str(self._limits.categorization_examples_limit), NEW_LINE]
        self._writer.write("".join(contents))
