"""Field config writer.

Produces the detector, filter, categorization filter and influencer
settings of the worker's field config::

    detector.0.clause = mean(responsetime) by airline
    detector.0.rules = [{"target_field_name":"airline",...}]
    filter.safe_domains = ["a.com","b.com"]
    categorizationfilter.0 = "\\d+"
    influencer.0 = airline
"""

import json
import logging
import re
from typing import Iterable, List, Optional, Set, TextIO

from nativepath.core.job import AnalysisConfig, Detector, ListDocument
from nativepath.process.writers.base import ConfigWriter, EQUALS, NEW_LINE

DETECTOR_PREFIX = "detector."
DETECTOR_CLAUSE_SUFFIX = ".clause"
DETECTOR_RULES_SUFFIX = ".rules"
INFLUENCER_PREFIX = "influencer"
CATEGORIZATION_FILTER_PREFIX = "categorizationfilter"
LIST_PREFIX = "filter."

BY_TOKEN = " by "
OVER_TOKEN = " over "
PARTITION_FIELD_TOKEN = " partitionfield="
USE_NULL_OPTION = " usenull=true"
EXCLUDE_FREQUENT_OPTION = " excludefrequent="

_PLAIN_FIELD = re.compile(r"^[A-Za-z0-9_]+$")

logger = logging.getLogger(__name__)


def quote_field(value: str) -> str:
    """Double-quote a field name unless it is plain ``[A-Za-z0-9_]+``.

    Backslashes and double quotes inside quoted values are escaped.
    """
    if _PLAIN_FIELD.match(value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def detector_description(detector: Detector) -> str:
    """Render a detector as the worker's clause syntax.

    e.g. ``mean(responsetime) by airline over user partitionfield=region``
    """
    parts: List[str] = []
    if detector.function:
        parts.append(detector.function)
        if detector.field_name:
            parts.append(f"({quote_field(detector.field_name)})")
    elif detector.field_name:
        parts.append(quote_field(detector.field_name))

    if detector.by_field_name:
        parts.append(BY_TOKEN + quote_field(detector.by_field_name))
    if detector.over_field_name:
        parts.append(OVER_TOKEN + quote_field(detector.over_field_name))
    if detector.partition_field_name:
        parts.append(PARTITION_FIELD_TOKEN + quote_field(detector.partition_field_name))
    if detector.use_null:
        parts.append(USE_NULL_OPTION)
    if detector.exclude_frequent is not None:
        parts.append(EXCLUDE_FREQUENT_OPTION + detector.exclude_frequent.token)
    return "".join(parts)


class FieldConfigWriter(ConfigWriter):
    """Writes the field config for an analysis config and its lookup lists.

    Args:
        config: The job's analysis config.
        lists: Lookup lists referenced by detector rules.
        writer: Text sink.
        job_logger: Logger the written contents are traced to.
    """

    def __init__(
        self,
        config: AnalysisConfig,
        lists: Set[ListDocument],
        writer: TextIO,
        job_logger: Optional[logging.Logger] = None,
    ):
        super().__init__(writer)
        self._config = config
        self._lists = lists
        self._logger = job_logger or logger

    def write(self) -> None:
        contents: List[str] = []
        self._write_detectors(contents)
        self._write_filters(contents)
        _write_enumerated(
            CATEGORIZATION_FILTER_PREFIX,
            self._config.categorization_filters,
            contents,
            quote=True,
        )
        # Influencers are whole settings, not clause tokens, so no quoting
        _write_enumerated(INFLUENCER_PREFIX, self._config.influencers, contents, quote=False)

        text = "".join(contents)
        self._logger.debug(f"FieldConfig:\n{text}")
        self._writer.write(text)

    def _write_detectors(self, contents: List[str]) -> None:
        for detector_id, detector in enumerate(self._config.detectors):
            contents.append(
                f"{DETECTOR_PREFIX}{detector_id}{DETECTOR_CLAUSE_SUFFIX}{EQUALS}"
                f"{detector_description(detector)}{NEW_LINE}"
            )
            if detector.detector_rules:
                rules = ",".join(
                    json.dumps(rule, separators=(",", ":"), sort_keys=True)
                    for rule in detector.detector_rules
                )
                contents.append(
                    f"{DETECTOR_PREFIX}{detector_id}{DETECTOR_RULES_SUFFIX}{EQUALS}"
                    f"[{rules}]{NEW_LINE}"
                )

    def _write_filters(self, contents: List[str]) -> None:
        for doc in sorted(self._lists, key=lambda d: d.id):
            items = json.dumps(sorted(doc.items), separators=(",", ":"))
            contents.append(f"{LIST_PREFIX}{doc.id}{EQUALS}{items}{NEW_LINE}")


def _write_enumerated(
    setting: str,
    values: Iterable[str],
    contents: List[str],
    quote: bool,
) -> None:
    for index, value in enumerate(values):
        rendered = quote_field(value) if quote else value
        contents.append(f"{setting}.{index}{EQUALS}{rendered}{NEW_LINE}")
