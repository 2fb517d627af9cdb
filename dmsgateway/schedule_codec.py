"""
Bit packing for NTCIP 1201 time-base schedules and DMS action codes.

A time-base entry stores its recurrence as three bitmasks:

- month (16 bits): bit n set for month n, 1..12; bits 0 and 13..15 reserved
- date (32 bits): bit n set for day-of-month n, 1..31; bit 0 reserved
- day (8 bits): bit 1 Sunday ... bit 7 Saturday; bit 0 reserved

The gateway only writes masks with a single month and date bit, and only
accepts such masks when reading back.
"""

import calendar
import struct
from datetime import datetime
from typing import NamedTuple, Optional

MONTH_BITS = range(1, 13)
DATE_BITS = range(1, 32)
WEEKDAY_BITS = range(1, 8)

ACTION_CODE = struct.Struct(">BHH")


def month_bit(month: int) -> int:
    if month not in MONTH_BITS:
        raise ValueError(f"month must be 1..12, got {month}")
    return 1 << month


def date_bit(day: int) -> int:
    if day not in DATE_BITS:
        raise ValueError(f"day must be 1..31, got {day}")
    return 1 << day


def weekday_bit(when: datetime) -> int:
    """Day-of-week mask bit for `when`: Sunday is bit 1, Saturday bit 7."""
    sunday_based = (when.weekday() + 1) % 7
    return 1 << (sunday_based + 1)


def single_bit_index(mask: int, allowed: range) -> Optional[int]:
    """Index of the only set bit in `mask` if it lies in `allowed`, else None.

    None for zero, negative, multi-bit masks and bits outside `allowed`.

    >>> single_bit_index(1 << 4, MONTH_BITS)
    4
    >>> single_bit_index((1 << 4) | 1, MONTH_BITS) is None
    True
    """
    if mask <= 0 or mask & (mask - 1):
        return None
    index = mask.bit_length() - 1
    return index if index in allowed else None


class Recurrence(NamedTuple):
    month: int
    day: int


def encode_recurrence(when: datetime) -> tuple[int, int, int]:
    """(month mask, date mask, day-of-week mask) for a single trigger date."""
    return month_bit(when.month), date_bit(when.day), weekday_bit(when)


def decode_recurrence(month_mask: int, date_mask: int, year: Optional[int] = None) -> Optional[Recurrence]:
    """Month and day from masks, or None unless each mask has exactly one legal bit.

    When `year` is given the pair must also be a real calendar date
    (so February 30 is rejected).
    """
    month = single_bit_index(month_mask, MONTH_BITS)
    day = single_bit_index(date_mask, DATE_BITS)
    if month is None or day is None:
        return None
    if year is not None and day > calendar.monthrange(year, month)[1]:
        return None
    return Recurrence(month, day)


def encode_action_code(memory_type: int, number: int) -> bytes:
    """dmsActionMsgCode: memory type, big-endian message number, two zero bytes."""
    return ACTION_CODE.pack(memory_type & 0xFF, number & 0xFFFF, 0)


def decode_action_code(code: bytes) -> tuple[int, int]:
    """(memory type, message number); (0, 0) for a code too short to hold both."""
    if len(code) < 3:
        return 0, 0
    memory_type, number = struct.unpack_from(">BH", code)
    return memory_type, number


EMPTY_ACTION_CODE = encode_action_code(0, 0)


def is_valid_time(hour: int, minute: int) -> bool:
    return 0 <= hour <= 23 and 0 <= minute <= 59
