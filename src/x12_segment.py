import logging
import math
from datetime import date, datetime
from typing import Any, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from envelope_settings import DEFAULT_SETTINGS, EnvelopeSettings

logger = logging.getLogger(__name__)

DateLike = Union[str, date, datetime, None]


def format_element(value: Any) -> str:
    """Renders one element value. Missing values keep their position as ''."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Y" if value else "N"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class X12Segment(BaseModel):
    """A single positional record: a tag plus its ordered element values."""
    model_config = ConfigDict(frozen=True)

    tag: str
    elements: Tuple[str, ...] = ()

    @classmethod
    def build(cls, tag: str, *values: Any) -> "X12Segment":
        return cls(tag=tag, elements=tuple(format_element(v) for v in values))

    def get_element(self, position: int) -> str:
        """Retrieves an element by its X12 position (1-based). Short segments yield ''."""
        if 1 <= position <= len(self.elements):
            return self.elements[position - 1]
        return ""

    def render(self, settings: EnvelopeSettings = DEFAULT_SETTINGS) -> str:
        sep = settings.element_separator
        return f"{self.tag}{sep}{sep.join(self.elements)}{settings.segment_terminator}"


# --- Scanning helpers ---

def tokenize(x12: str, settings: EnvelopeSettings = DEFAULT_SETTINGS) -> List[List[str]]:
    """
    Splits raw X12 text into positional element lists, tag first.
    Accepts one-line and newline-formatted input alike.
    """
    if not x12:
        return []
    content = x12
    for line_break in ('\r', '\n'):
        # a newline terminator must survive until the split
        if line_break != settings.segment_terminator:
            content = content.replace(line_break, '')
    segments = []
    for fragment in content.split(settings.segment_terminator):
        clean = fragment.strip()
        if not clean:
            continue
        segments.append(clean.split(settings.element_separator))
    logger.debug(f"Tokenized {len(segments)} segments")
    return segments


def element(elements: List[str], index: int) -> str:
    if 0 <= index < len(elements):
        return elements[index]
    return ""


def qualified_value(elements: List[str], qualifier: str, fallback_index: int) -> str:
    """
    Returns the value following the first `qualifier` token in the segment. When
    the qualifier is absent, the value at `fallback_index` is used instead.
    """
    for i in range(1, len(elements)):
        if elements[i] == qualifier:
            return element(elements, i + 1)
    return element(elements, fallback_index)


def to_float(value: str, default: Optional[float] = None) -> Optional[float]:
    if value is None or not value.strip():
        return default
    try:
        number = float(value)
    except ValueError:
        return default
    if not math.isfinite(number):
        return default
    return number


def to_int(value: str, default: Optional[int] = None) -> Optional[int]:
    number = to_float(value)
    if number is None:
        return default
    return int(number)


# --- Date conventions ---
# Dates are cut out of ISO-8601 text; non-ISO input is passed through as-is.

def _iso_text(value: DateLike) -> str:
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def interchange_date(value: DateLike) -> str:
    """YYMMDD, for ISA09."""
    return _iso_text(value)[2:10].replace('-', '')


def x12_date(value: DateLike) -> str:
    """CCYYMMDD."""
    return _iso_text(value)[:10].replace('-', '')


def x12_time(value: DateLike) -> str:
    """HHMM, empty when the value carries no time part."""
    return _iso_text(value)[11:16].replace(':', '')


def iso_date(value: str) -> str:
    """CCYYMMDD back to YYYY-MM-DD. Anything else is returned unchanged."""
    if value and len(value) == 8 and value.isdigit():
        return f"{value[:4]}-{value[4:6]}-{value[6:8]}"
    return value or ""
