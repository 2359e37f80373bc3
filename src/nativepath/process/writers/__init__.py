"""Config file writers for the autodetect worker.

One writer per config section; all implement ``ConfigWriter.write()``.
"""

from nativepath.process.writers.base import ConfigWriter, write_config
from nativepath.process.writers.limits import AnalysisLimitsWriter
from nativepath.process.writers.model_debug import ModelDebugConfigWriter
from nativepath.process.writers.field_config import (
    FieldConfigWriter,
    detector_description,
    quote_field,
)

__all__ = [
    "ConfigWriter",
    "write_config",
    "AnalysisLimitsWriter",
    "ModelDebugConfigWriter",
    "FieldConfigWriter",
    "detector_description",
    "quote_field",
]
