"""Beacon chain slots: 12 second periods counted from genesis."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import ClassVar

GENESIS_TIMESTAMP = datetime.fromtimestamp(1606824023, tz=timezone.utc)

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1
_SLOT_TEXT = re.compile(r"[+-]?[0-9]+")


def _trunc_div(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b >= 0) else -quotient


def _trunc_rem(a: int, b: int) -> int:
    return a - b * _trunc_div(a, b)


@dataclass(frozen=True, order=True)
class Slot:
    """A beacon chain slot number."""

    number: int

    SECONDS_PER_SLOT: ClassVar[int] = 12
    GENESIS: ClassVar["Slot"]

    def __post_init__(self) -> None:
        if not _I32_MIN <= self.number <= _I32_MAX:
            raise OverflowError(f"slot {self.number} does not fit in 32 bits")

    def date_time(self) -> datetime:
        """Return the UTC start time of this slot."""
        return GENESIS_TIMESTAMP + timedelta(seconds=self.number * self.SECONDS_PER_SLOT)

    @classmethod
    def from_date_time(cls, date_time: datetime) -> Slot | None:
        """Return the slot starting exactly at date_time, or None if none does."""
        seconds = int(date_time.timestamp() // 1) - int(GENESIS_TIMESTAMP.timestamp())
        if seconds % cls.SECONDS_PER_SLOT != 0:
            return None
        return cls(_trunc_div(seconds, cls.SECONDS_PER_SLOT))

    @classmethod
    def from_date_time_rounded_down(cls, date_time: datetime) -> Slot:
        """Return the most recent slot at or before date_time."""
        diff = date_time - GENESIS_TIMESTAMP
        seconds = diff.days * 86400 + diff.seconds
        if diff.days < 0 and diff.microseconds:
            seconds += 1
        return cls(_trunc_div(seconds, cls.SECONDS_PER_SLOT))

    def is_first_of_day(self) -> bool:
        """True when this slot is the first to start on its UTC day."""
        if self.number == 0:
            return True
        return Slot(self.number - 1).date_time().day != self.date_time().day

    def is_first_of_minute(self) -> bool:
        """True when this slot is the first to start in its UTC minute."""
        if self.number == 0:
            return True
        return Slot(self.number - 1).date_time().minute != self.date_time().minute

    @classmethod
    def parse(cls, text: str) -> Slot:
        """Parse a decimal slot number, raising ValueError on bad input."""
        if not _SLOT_TEXT.fullmatch(text):
            raise ValueError(f"invalid slot: {text!r}")
        number = int(text)
        if not _I32_MIN <= number <= _I32_MAX:
            raise ValueError(f"slot out of range: {text!r}")
        return cls(number)

    def __str__(self) -> str:
        return str(self.number)

    def __int__(self) -> int:
        return self.number

    def __index__(self) -> int:
        return self.number

    def __add__(self, other: int) -> Slot:
        return Slot(self.number + other)

    def __sub__(self, other: int) -> Slot:
        return Slot(self.number - other)

    def __mul__(self, other: int) -> Slot:
        return Slot(self.number * other)

    def __mod__(self, other: int) -> Slot:
        return Slot(_trunc_rem(self.number, other))


Slot.GENESIS = Slot(0)

FIRST_POST_MERGE_SLOT = Slot(4700013)
FIRST_POST_LONDON_SLOT = Slot(1778566)


def slot_from_string(text: str) -> Slot:
    """Decode a slot sent as a JSON string."""
    return Slot.parse(text)