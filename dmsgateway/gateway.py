"""
DMSGateway - one method per gateway operation, each returning Result(kind, value).

Engines raise GatewayError; this facade is the only place those exceptions
are turned into results. Unexpected exceptions become ErrorKind.EXCEPTION and
are logged with a traceback.
"""

import ipaddress
import logging
from dataclasses import astuple
from typing import Callable, Optional, TypeVar, Union

from dmsgateway.errors import ErrorKind, GatewayError
from dmsgateway.fonts import FontReader
from dmsgateway.graphics import GraphicEngine
from dmsgateway.messages import MessageLifecycle
from dmsgateway.multi import MultiDocument
from dmsgateway.paging import ALL
from dmsgateway.query import DeviceQuery, require_int
from dmsgateway.schedules import ScheduleEngine
from dmsgateway.status import StatusReader
from dmsgateway.transport import Transport
from dmsgateway.types import GraphicUpload, MemoryType, Result, ScheduleId

logger = logging.getLogger(__name__)

T = TypeVar("T")

ScheduleRef = Union[str, ScheduleId]


def validate_address(address: str) -> str:
    """Return the address if it is a dotted IPv4 address, else raise INVALID_MODEL."""
    try:
        return str(ipaddress.IPv4Address(address))
    except (ipaddress.AddressValueError, ValueError, TypeError) as e:
        raise GatewayError(ErrorKind.INVALID_MODEL, f"Invalid IPv4 address {address!r}") from e


def parse_schedule_id(ref: ScheduleRef) -> ScheduleId:
    """Accept a ScheduleId or its dotted form; every part must be an integer >= 1."""
    try:
        schedule_id = ref if isinstance(ref, ScheduleId) else ScheduleId.parse(ref)
    except (ValueError, AttributeError) as e:
        raise GatewayError(ErrorKind.INVALID_MODEL, f"Invalid schedule id {ref!r}") from e
    for part in astuple(schedule_id):
        if isinstance(part, bool) or not isinstance(part, int) or part < 1:
            raise GatewayError(ErrorKind.INVALID_MODEL, f"Invalid schedule id {ref!r}")
    return schedule_id


class DMSGateway:
    """
    Stateless gateway to NTCIP 1203 dynamic message signs.

    Each call addresses one sign by IPv4 address and performs a strictly
    sequential chain of round trips through the transport.

    Usage:
        with DMSGateway(SNMPTransport()) as gw:
            result = gw.get_message("10.0.0.5", 3)
            if result.ok:
                print(result.value.text)
    """

    def __init__(self, transport: Transport):
        self._transport = transport
        query = DeviceQuery(transport)
        self._messages = MessageLifecycle(query)
        self._schedules = ScheduleEngine(query, self._messages)
        self._graphics = GraphicEngine(query)
        self._fonts = FontReader(query)
        self._status = StatusReader(query, self._messages)

    @property
    def transport(self) -> Transport:
        return self._transport

    def _run(self, operation: str, address: str, call: Callable[[], T]) -> Result:
        try:
            validate_address(address)
            value = call()
        except GatewayError as e:
            logger.error(f"{operation} on {address} failed: {e}")
            return Result(e.kind)
        except Exception:
            logger.exception(f"{operation} on {address} failed unexpectedly")
            return Result(ErrorKind.EXCEPTION)
        return Result(ErrorKind.OK, value)

    # ─────────────────────────────────────────────────────────────────────────
    # Messages
    # ─────────────────────────────────────────────────────────────────────────

    def get_message(self, address: str, number: int, memory_type: MemoryType = MemoryType.CHANGEABLE) -> Result:
        """Read a message with its decoded document and active flag."""

        def call():
            self._messages.check_message_id(address, require_int(number, "number"))
            current = self._messages.read_current(address)
            return self._messages.read_message(
                address,
                number,
                MemoryType(memory_type),
                with_document=True,
                check_id=False,
                active_owner=current.owner,
            )

        return self._run("GetMessage", address, call)

    def get_messages(self, address: str, page: int = 0, size: int = ALL) -> Result:
        def call():
            return self._messages.list_messages(address, require_int(page, "page"), require_int(size, "size"))

        return self._run("GetMessages", address, call)

    def write_message(
        self,
        address: str,
        number: int,
        document: Optional[MultiDocument] = None,
        multi_string: Optional[str] = None,
        owner: str = "",
        activate: bool = False,
    ) -> Result:
        """Store (and optionally show) a message. Value is the ValidationOutcome."""

        def call():
            require_int(number, "number")
            return self._messages.write_message(
                address, number, document=document, multi_string=multi_string, owner=owner, activate=activate
            )

        return self._run("WriteMessage", address, call)

    def delete_message(self, address: str, number: int) -> Result:
        def call():
            self._messages.delete_message(address, require_int(number, "number"))

        return self._run("DeleteMessage", address, call)

    def activate_message(self, address: str, number: int, activate: bool = True) -> Result:
        def call():
            self._messages.activate_message(address, require_int(number, "number"), activate)

        return self._run("ActivateMessage", address, call)

    # ─────────────────────────────────────────────────────────────────────────
    # Fonts and graphics
    # ─────────────────────────────────────────────────────────────────────────

    def get_font(self, address: str, index: int) -> Result:
        return self._run("GetFont", address, lambda: self._fonts.read_font(address, require_int(index, "index")))

    def get_fonts(self, address: str, page: int = 0, size: int = ALL) -> Result:
        return self._run(
            "GetFonts",
            address,
            lambda: self._fonts.list_fonts(address, require_int(page, "page"), require_int(size, "size")),
        )

    def get_graphic(self, address: str, number: int) -> Result:
        return self._run(
            "GetGraphic", address, lambda: self._graphics.read_graphic(address, require_int(number, "number"))
        )

    def get_graphics(self, address: str, page: int = 0, size: int = ALL) -> Result:
        return self._run(
            "GetGraphics",
            address,
            lambda: self._graphics.list_graphics(address, require_int(page, "page"), require_int(size, "size")),
        )

    def set_graphic(self, address: str, graphic: GraphicUpload) -> Result:
        def call():
            if not isinstance(graphic, GraphicUpload):
                raise GatewayError(ErrorKind.INVALID_MODEL, "graphic must be a GraphicUpload")
            for name in ("number", "height", "width", "type", "transparent_enabled", "transparent_color"):
                require_int(getattr(graphic, name), name)
            if not graphic.bitmap:
                raise GatewayError(ErrorKind.INVALID_MODEL, "graphic has no bitmap")
            self._graphics.upload(address, graphic)

        return self._run("SetGraphic", address, call)

    # ─────────────────────────────────────────────────────────────────────────
    # Schedules
    # ─────────────────────────────────────────────────────────────────────────

    def get_schedule(self, address: str, schedule_id: ScheduleRef) -> Result:
        return self._run(
            "GetSchedule", address, lambda: self._schedules.read_entry(address, parse_schedule_id(schedule_id))
        )

    def get_schedules(self, address: str, page: int = 0, size: int = ALL) -> Result:
        return self._run(
            "GetSchedules",
            address,
            lambda: self._schedules.list_entries(address, require_int(page, "page"), require_int(size, "size")),
        )

    def set_schedule(self, address: str, timestamp: int, message_number: int) -> Result:
        """Schedule a message in the next free position and activate scheduling.

        Value is the ScheduleId that was written.
        """

        def call():
            require_int(timestamp, "timestamp")
            require_int(message_number, "message_number")
            position = self._schedules.find_free_position(address)
            return self._schedules.write_entry(address, position, timestamp, message_number, activate=True)

        return self._run("SetSchedule", address, call)

    def update_schedule(self, address: str, schedule_id: ScheduleRef, timestamp: int, message_number: int) -> Result:
        def call():
            position = parse_schedule_id(schedule_id)
            require_int(timestamp, "timestamp")
            require_int(message_number, "message_number")
            return self._schedules.write_entry(address, position, timestamp, message_number, activate=True)

        return self._run("UpdateSchedule", address, call)

    def delete_schedule(self, address: str, schedule_id: ScheduleRef) -> Result:
        def call():
            self._schedules.delete_entry(address, parse_schedule_id(schedule_id))

        return self._run("DeleteSchedule", address, call)

    # ─────────────────────────────────────────────────────────────────────────
    # Panel
    # ─────────────────────────────────────────────────────────────────────────

    def get_status(self, address: str) -> Result:
        return self._run("GetStatus", address, lambda: self._status.read_status(address))

    def restart_panel(self, address: str) -> Result:
        return self._run("RestartPanel", address, lambda: self._status.restart(address))

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> "DMSGateway":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def __repr__(self) -> str:
        return f"DMSGateway({self._transport!r})"
