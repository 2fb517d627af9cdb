"""
Schedule engine.

A scheduled message spans three linked NTCIP tables:

    timeBaseScheduleEntry[tbs]  month/date/day masks + day plan number
    dayPlanEntry[plan.event]    hour, minute, pointer to a dmsActionEntry
    dmsActionEntry[action]      5-byte code naming the message to show

The gateway lays new entries out as (i, i, 1, i), so the i-th time-base row
uses day plan i, event 1 and action i.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence

from dmsgateway import oids
from dmsgateway.errors import ErrorKind, GatewayError
from dmsgateway.messages import MessageLifecycle, build_activation_frame
from dmsgateway.paging import slice_page
from dmsgateway.query import DeviceQuery, to_bytes, to_int, to_text
from dmsgateway.schedule_codec import (
    EMPTY_ACTION_CODE,
    decode_action_code,
    decode_recurrence,
    encode_action_code,
    encode_recurrence,
    is_valid_time,
)
from dmsgateway.types import MemoryType, PagedResult, ScheduleEntry, ScheduleId

logger = logging.getLogger(__name__)

FIRST_EVENT = 1
SCHEDULE_ACTIVATION_NUMBER = 1


@dataclass(frozen=True)
class ScheduleHeader:
    """Scheduling capacity and status scalars read before a listing."""

    max_entries: int
    max_day_plans: int
    max_day_plan_events: int
    action_table_entries: int
    schedule_status: int
    day_plan_status: int


def free_position(entry: int) -> ScheduleId:
    """Position the gateway uses for time-base row `entry`."""
    return ScheduleId(entry, entry, FIRST_EVENT, entry)


class ScheduleEngine:
    """Reads and writes scheduled messages.

    Args:
        query: Device query helper
        messages: Used to validate and resolve linked message slots
        now: Clock supplying the year for decoded dates (default: datetime.now)
    """

    def __init__(
        self,
        query: DeviceQuery,
        messages: MessageLifecycle,
        now: Callable[[], datetime] = datetime.now,
    ):
        self._query = query
        self._messages = messages
        self._now = now

    # ─────────────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────────────

    def read_header(self, address: str) -> ScheduleHeader:
        values = self._query.get(
            address,
            [
                oids.MAX_TIME_BASE_SCHEDULE_ENTRIES,
                oids.MAX_DAY_PLANS,
                oids.MAX_DAY_PLAN_EVENTS,
                oids.NUM_ACTION_TABLE_ENTRIES,
                oids.TIME_BASE_SCHEDULE_TABLE_STATUS,
                oids.DAY_PLAN_STATUS,
            ],
        )
        header = ScheduleHeader(*(to_int(v) for v in values))
        logger.debug("%s: %s", address, header)
        return header

    def find_free_position(self, address: str) -> ScheduleId:
        """First time-base row with an empty month mask, scanning 1..max.

        Raises:
            GatewayError: LIMIT_EXCEEDED_SCHEDULE_ITEMS if every row is in use
        """
        max_entries = self._query.get_int(address, oids.MAX_TIME_BASE_SCHEDULE_ENTRIES)
        for entry in range(1, max_entries + 1):
            month = self._query.get_int(address, oids.time_base_oid(oids.TIME_BASE_MONTH, entry))
            if month == 0:
                position = free_position(entry)
                logger.info(f"Free schedule position on {address}: {position}")
                return position
        raise GatewayError(
            ErrorKind.LIMIT_EXCEEDED_SCHEDULE_ITEMS,
            f"{address}: all {max_entries} time-base entries in use",
        )

    def _row_oids(self, schedule_id: ScheduleId) -> list[str]:
        tbs, plan, event, action = schedule_id.time_base, schedule_id.day_plan, schedule_id.event, schedule_id.action
        return [
            oids.time_base_oid(oids.TIME_BASE_MONTH, tbs),
            oids.time_base_oid(oids.TIME_BASE_DATE, tbs),
            oids.time_base_oid(oids.TIME_BASE_DAY, tbs),
            oids.time_base_oid(oids.TIME_BASE_DAY_PLAN, tbs),
            oids.day_plan_oid(oids.DAY_PLAN_HOUR, plan, event),
            oids.day_plan_oid(oids.DAY_PLAN_MINUTE, plan, event),
            oids.day_plan_oid(oids.DAY_PLAN_ACTION, plan, event),
            oids.action_oid(oids.ACTION_MESSAGE_CODE, action),
        ]

    def _decode_row(
        self,
        address: str,
        schedule_id: ScheduleId,
        values: Sequence,
        max_day_plans: Optional[int] = None,
    ) -> Optional[ScheduleEntry]:
        """Build an entry from a row read, or None if the row does not validate.

        With max_day_plans the day plan may be any legal plan (listing);
        without it the plan and action must match `schedule_id` (single read).
        """
        month_mask, date_mask, day_mask, day_plan = (to_int(v) for v in values[:4])
        hour, minute = to_int(values[4]), to_int(values[5])
        logger.debug(
            "%s: time base %d: month=0x%x date=0x%x day=0x%x plan=%d",
            address,
            schedule_id.time_base,
            month_mask,
            date_mask,
            day_mask,
            day_plan,
        )
        year = self._now().year
        recurrence = decode_recurrence(month_mask, date_mask, year)
        if recurrence is None:
            return None
        if max_day_plans is None:
            if day_plan != schedule_id.day_plan or day_plan < 1:
                return None
        elif not 1 <= day_plan <= max_day_plans:
            return None
        try:
            action = oids.last_index(to_text(values[6]))
        except ValueError:
            return None
        if not is_valid_time(hour, minute) or action <= 0:
            return None
        if max_day_plans is None and action != schedule_id.action:
            return None

        code = to_bytes(values[7])
        memory_type, number = decode_action_code(code)
        logger.debug(f"Action {action} code {code.hex()}: memory type {memory_type}, message {number}")
        return ScheduleEntry(
            id=ScheduleId(schedule_id.time_base, day_plan, schedule_id.event, action),
            date=datetime(year, recurrence.month, recurrence.day, hour, minute),
            message_number=number,
            memory_type=MemoryType(memory_type),
        )

    def _attach_message(self, address: str, entry: ScheduleEntry, index: int = 0) -> ScheduleEntry:
        message = None
        if entry.message_number > 0:
            try:
                message = self._messages.read_message(address, entry.message_number)
            except GatewayError as e:
                logger.warning(f"Schedule {entry.id} on {address}: message {entry.message_number} unreadable: {e}")
        return ScheduleEntry(
            id=entry.id,
            date=entry.date,
            message_number=entry.message_number,
            memory_type=entry.memory_type,
            index=index,
            message=message,
        )

    def read_entry(self, address: str, schedule_id: ScheduleId) -> ScheduleEntry:
        """Read one scheduled message by its dotted position.

        Raises:
            GatewayError: WRONG_SCHEDULE_ID if the row fails validation
        """
        values = self._query.get(address, self._row_oids(schedule_id))
        entry = self._decode_row(address, schedule_id, values)
        if entry is None:
            raise GatewayError(ErrorKind.WRONG_SCHEDULE_ID, f"{address}: schedule {schedule_id} is not valid")
        return self._attach_message(address, entry)

    def list_entries(self, address: str, page: int, size: int) -> PagedResult[ScheduleEntry]:
        """Page over every valid, in-use scheduled message.

        The device has no count of scheduled messages, so all time-base rows
        are read and the valid ones are numbered 1.. before paging.
        """
        header = self.read_header(address)
        entries: list[ScheduleEntry] = []
        for row in range(1, header.max_entries + 1):
            month = self._query.get_int(address, oids.time_base_oid(oids.TIME_BASE_MONTH, row))
            if month == 0:
                continue
            position = free_position(row)
            values = self._query.get(address, self._row_oids(position))
            entry = self._decode_row(address, position, values, max_day_plans=header.max_day_plans)
            if entry is None:
                logger.debug("%s: time base %d skipped (invalid)", address, row)
                continue
            raw_type, number = decode_action_code(to_bytes(values[7]))
            if raw_type == 0 or number == 0:
                logger.debug("%s: time base %d skipped (unused action)", address, row)
                continue
            entries.append(self._attach_message(address, entry, index=len(entries) + 1))
        logger.debug("%s: %d scheduled messages", address, len(entries))
        return slice_page(entries, page, size)

    # ─────────────────────────────────────────────────────────────────────────
    # Writes
    # ─────────────────────────────────────────────────────────────────────────

    def write_entry(
        self,
        address: str,
        schedule_id: ScheduleId,
        timestamp: int,
        message_number: int,
        activate: bool = True,
    ) -> ScheduleId:
        """Schedule `message_number` at `timestamp` (epoch seconds, local time on the sign).

        Raises:
            GatewayError: WRONG_DATE_TIME for an unrepresentable timestamp,
                WRONG_MESSAGE_ID for an out-of-range message slot
        """
        when = self._to_datetime(timestamp)
        self._messages.check_message_id(address, message_number)

        changeable = int(MemoryType.CHANGEABLE)
        memory_type, number = (
            to_int(v)
            for v in self._query.get(
                address,
                [
                    oids.message_oid(oids.MESSAGE_MEMORY_TYPE, changeable, message_number),
                    oids.message_oid(oids.MESSAGE_NUMBER, changeable, message_number),
                ],
            )
        )
        code = encode_action_code(memory_type, number)
        month_mask, date_mask, day_mask = encode_recurrence(when)
        logger.debug(
            f"Schedule {schedule_id} on {address}: {when:%Y-%m-%d %H:%M} code={code.hex()} "
            f"month=0x{month_mask:x} date=0x{date_mask:x} day=0x{day_mask:x}"
        )
        self._write_row(
            address,
            schedule_id,
            code=code,
            hour=when.hour,
            minute=when.minute,
            pointer=schedule_id.action,
            day_mask=day_mask,
            date_mask=date_mask,
            month_mask=month_mask,
            day_plan=schedule_id.day_plan,
        )
        logger.info(f"Schedule {schedule_id} written on {address} for message {message_number}")

        if activate:
            self._activate(address)
        return schedule_id

    def delete_entry(self, address: str, schedule_id: ScheduleId) -> None:
        """Zero every field of the entry; other rows keep their positions."""
        self._write_row(
            address,
            schedule_id,
            code=EMPTY_ACTION_CODE,
            hour=0,
            minute=0,
            pointer=0,
            day_mask=0,
            date_mask=0,
            month_mask=0,
            day_plan=0,
        )
        logger.info(f"Schedule {schedule_id} deleted on {address}")

    def _write_row(
        self,
        address: str,
        schedule_id: ScheduleId,
        *,
        code: bytes,
        hour: int,
        minute: int,
        pointer: int,
        day_mask: int,
        date_mask: int,
        month_mask: int,
        day_plan: int,
    ) -> None:
        tbs, plan, event = schedule_id.time_base, schedule_id.day_plan, schedule_id.event
        self._query.set(
            address,
            [
                (oids.action_oid(oids.ACTION_MESSAGE_CODE, schedule_id.action), code),
                (oids.day_plan_oid(oids.DAY_PLAN_HOUR, plan, event), hour),
                (oids.day_plan_oid(oids.DAY_PLAN_MINUTE, plan, event), minute),
                (oids.day_plan_oid(oids.DAY_PLAN_ACTION, plan, event), oids.action_pointer(pointer)),
                (oids.time_base_oid(oids.TIME_BASE_DAY, tbs), day_mask),
                (oids.time_base_oid(oids.TIME_BASE_DATE, tbs), date_mask),
                (oids.time_base_oid(oids.TIME_BASE_MONTH, tbs), month_mask),
                (oids.time_base_oid(oids.TIME_BASE_DAY_PLAN, tbs), day_plan),
            ],
        )

    def _activate(self, address: str) -> None:
        frame = build_activation_frame(MemoryType.SCHEDULE, SCHEDULE_ACTIVATION_NUMBER, 0, address)
        self._query.set(address, [(oids.ACTIVATE_MESSAGE, frame)])
        short_error, activate_state = self._query.get(address, [oids.SHORT_ERROR_STATUS, oids.ACTIVATE_MESSAGE_STATE])
        logger.debug(
            "%s: schedule activated, shortErrorStatus=%s activateMessageState=%s",
            address,
            short_error,
            activate_state,
        )

    @staticmethod
    def _to_datetime(timestamp: int) -> datetime:
        try:
            return datetime.fromtimestamp(timestamp)
        except (OverflowError, OSError, ValueError, TypeError) as e:
            raise GatewayError(ErrorKind.WRONG_DATE_TIME, f"Invalid timestamp {timestamp!r}") from e
