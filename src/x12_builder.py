import logging
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Set, Tuple

from control_numbers import ControlNumbers
from envelope_settings import DEFAULT_SETTINGS, EnvelopeSettings
from x12_segment import X12Segment, interchange_date, x12_date, x12_time

logger = logging.getLogger(__name__)

ISA_ID_WIDTH = 15


class X12Builder:
    """
    Accumulates segments for one interchange and keeps the envelope bookkeeping.

    Trailer values (SE01/SE02, GE01/GE02, IEA01/IEA02) are always derived from
    the builder's own counters and from the control numbers handed in at
    construction, never from the caller. One builder serves exactly one call.
    """

    def __init__(
        self,
        control_numbers: Optional[ControlNumbers] = None,
        settings: EnvelopeSettings = DEFAULT_SETTINGS,
        timestamp: Optional[datetime] = None,
    ):
        self.control_numbers = control_numbers or ControlNumbers()
        self.settings = settings
        self.timestamp = timestamp or datetime.now(timezone.utc)
        self._segments: List[X12Segment] = []

        self._transaction_segment_count = 0
        self._transaction_control_number: Optional[str] = None
        self._group_transaction_count = 0
        self._group_control_number: Optional[str] = None
        self._group_transaction_numbers: Set[str] = set()
        self._interchange_group_count = 0

    # ---------------------------------------------------------------------
    # Envelope headers
    # ---------------------------------------------------------------------
    def add_isa(self, sender: str, receiver: str) -> "X12Builder":
        s = self.settings
        self._append(X12Segment.build(
            'ISA',
            '00', ' ' * 10,
            '00', ' ' * 10,
            s.id_qualifier, _fixed_width(sender),
            s.id_qualifier, _fixed_width(receiver),
            interchange_date(self.timestamp), x12_time(self.timestamp),
            s.standards_id, s.interchange_version,
            self.control_numbers.interchange_control_number,
            s.ack_requested, s.test_indicator, s.component_separator,
        ))
        return self

    def add_gs(self, functional_id: str, sender: str, receiver: str) -> "X12Builder":
        s = self.settings
        self._group_control_number = str(self.control_numbers.group + self._interchange_group_count)
        self._group_transaction_count = 0
        self._group_transaction_numbers = set()
        self._append(X12Segment.build(
            'GS', functional_id,
            sender, receiver,
            x12_date(self.timestamp), x12_time(self.timestamp),
            self._group_control_number, s.responsible_agency, s.group_version,
        ))
        return self

    def reserve_transaction_numbers(self, numbers: Iterable[str]) -> "X12Builder":
        """Marks explicit ST02 values of the current group so automatic numbering skips them."""
        self._group_transaction_numbers.update(n for n in numbers if n)
        return self

    def add_st(self, transaction_code: str, control_number: Optional[str] = None) -> "X12Builder":
        if not control_number:
            offset = self._group_transaction_count
            control_number = self.control_numbers.transaction_control_number(offset)
            # ST02 is unique within its group
            while control_number in self._group_transaction_numbers:
                offset += 1
                control_number = self.control_numbers.transaction_control_number(offset)
        self._group_transaction_numbers.add(control_number)
        self._transaction_control_number = control_number
        self._transaction_segment_count = 0
        return self.add_segment('ST', transaction_code, self._transaction_control_number)

    # ---------------------------------------------------------------------
    # Body
    # ---------------------------------------------------------------------
    def add_segment(self, tag: str, *elements: Any) -> "X12Builder":
        self._append(X12Segment.build(tag, *elements))
        self._transaction_segment_count += 1
        return self

    # ---------------------------------------------------------------------
    # Envelope trailers
    # ---------------------------------------------------------------------
    def add_se(self) -> "X12Builder":
        # SE counts itself
        self._transaction_segment_count += 1
        self._append(X12Segment.build('SE', self._transaction_segment_count, self._transaction_control_number))
        logger.debug(f"Closed transaction {self._transaction_control_number} with {self._transaction_segment_count} segments")
        self._group_transaction_count += 1
        return self

    def add_ge(self) -> "X12Builder":
        self._append(X12Segment.build('GE', self._group_transaction_count, self._group_control_number))
        self._interchange_group_count += 1
        return self

    def add_iea(self) -> "X12Builder":
        self._append(X12Segment.build(
            'IEA', self._interchange_group_count, self.control_numbers.interchange_control_number
        ))
        return self

    # ---------------------------------------------------------------------
    # Core
    # ---------------------------------------------------------------------
    def _append(self, segment: X12Segment):
        self._segments.append(segment)

    @property
    def segments(self) -> Tuple[X12Segment, ...]:
        return tuple(self._segments)

    @property
    def segment_count(self) -> int:
        """Segments emitted since the last ST, including the ST itself."""
        return self._transaction_segment_count

    def to_string(self) -> str:
        return self.settings.line_break.join(seg.render(self.settings) for seg in self._segments)

    def __str__(self):
        return self.to_string()


def _fixed_width(value: str) -> str:
    return (value or "").ljust(ISA_ID_WIDTH)[:ISA_ID_WIDTH]
