import itertools
import threading
from typing import Protocol

from pydantic import BaseModel, Field


class ControlNumbers(BaseModel):
    """Control numbers for one interchange: ISA13, GS06 and the first ST02."""
    interchange: int = Field(1, ge=1, le=999999999)
    group: int = Field(1, ge=1, le=999999999)
    transaction: int = Field(1, ge=1, le=9999)

    @property
    def interchange_control_number(self) -> str:
        return str(self.interchange).zfill(9)

    @property
    def group_control_number(self) -> str:
        return str(self.group)

    def transaction_control_number(self, offset: int = 0) -> str:
        return str(self.transaction + offset).zfill(4)


class ControlNumberSource(Protocol):
    def next_control_numbers(self) -> ControlNumbers:
        ...


class FixedControlNumbers:
    """Hands out the same control numbers on every call."""

    def __init__(self, control_numbers: ControlNumbers = None):
        self.control_numbers = control_numbers or ControlNumbers()

    def next_control_numbers(self) -> ControlNumbers:
        return self.control_numbers


class ControlNumberSequence:
    """
    Monotonic, thread-safe source of interchange control numbers. Each call
    yields a fresh ISA13/GS06 pair; the ST02 sequence restarts per group.
    Wraps back to 1 after 999999999.
    """

    MAX_CONTROL_NUMBER = 999999999

    def __init__(self, start: int = 1):
        if not 1 <= start <= self.MAX_CONTROL_NUMBER:
            raise ValueError(f"Control number start must be between 1 and {self.MAX_CONTROL_NUMBER}: {start}")
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next_control_numbers(self) -> ControlNumbers:
        with self._lock:
            value = next(self._counter)
        value = (value - 1) % self.MAX_CONTROL_NUMBER + 1
        return ControlNumbers(interchange=value, group=value, transaction=1)
