"""
Core data types - device enums, Message, Font, Graphic, ScheduleEntry, PagedResult.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Generic, NamedTuple, Optional, TypeVar

from dmsgateway.errors import ErrorKind
from dmsgateway.multi import MultiDocument

T = TypeVar("T")


class _WireEnum(IntEnum):
    """IntEnum with an UNKNOWN (0) member for values the device invents.

    Subclasses override _labels() to map each member to its NTCIP name.
    """

    @classmethod
    def _missing_(cls, value):
        return cls(0)

    @property
    def label(self) -> str:
        return self._labels()[self]

    @classmethod
    def _labels(cls) -> dict:
        raise NotImplementedError


class MemoryType(_WireEnum):
    """dmsMessageMemoryType - where a message lives on the sign."""

    UNKNOWN = 0
    OTHER = 1
    PERMANENT = 2
    CHANGEABLE = 3
    VOLATILE = 4
    CURRENT_BUFFER = 5
    SCHEDULE = 6
    BLANK = 7

    @classmethod
    def _labels(cls) -> dict:
        return _MEMORY_TYPE_LABELS


_MEMORY_TYPE_LABELS = {
    MemoryType.UNKNOWN: "unknown",
    MemoryType.OTHER: "other",
    MemoryType.PERMANENT: "permanent",
    MemoryType.CHANGEABLE: "changeable",
    MemoryType.VOLATILE: "volatile",
    MemoryType.CURRENT_BUFFER: "currentBuffer",
    MemoryType.SCHEDULE: "schedule",
    MemoryType.BLANK: "blank",
}


class MessageStatus(_WireEnum):
    """dmsMessageStatus - message row state machine.

    notUsed -> modifying -> validating -> valid, with error reachable from
    validating. The *_REQ values are written by the gateway to request a
    transition; the sign answers with the resulting state.
    """

    UNKNOWN = 0
    NOT_USED = 1
    MODIFYING = 2
    VALIDATING = 3
    VALID = 4
    ERROR = 5
    MODIFY_REQ = 6
    VALIDATE_REQ = 7
    NOT_USED_REQ = 8

    @classmethod
    def _labels(cls) -> dict:
        return _MESSAGE_STATUS_LABELS


_MESSAGE_STATUS_LABELS = {
    MessageStatus.UNKNOWN: "unknown",
    MessageStatus.NOT_USED: "notUsed",
    MessageStatus.MODIFYING: "modifying",
    MessageStatus.VALIDATING: "validating",
    MessageStatus.VALID: "valid",
    MessageStatus.ERROR: "error",
    MessageStatus.MODIFY_REQ: "modifyReq",
    MessageStatus.VALIDATE_REQ: "validateReq",
    MessageStatus.NOT_USED_REQ: "notUsedReq",
}


class GraphicStatus(_WireEnum):
    """dmsGraphicStatus - graphic row state machine."""

    UNKNOWN = 0
    NOT_USED = 1
    MODIFYING = 2
    CALCULATING_ID = 3
    READY_FOR_USE = 4
    IN_USE = 5
    PERMANENT = 6
    MODIFY_REQ = 7
    READY_FOR_USE_REQ = 8
    NOT_USED_REQ = 9

    @classmethod
    def _labels(cls) -> dict:
        return _GRAPHIC_STATUS_LABELS


_GRAPHIC_STATUS_LABELS = {
    GraphicStatus.UNKNOWN: "unknown",
    GraphicStatus.NOT_USED: "notUsed",
    GraphicStatus.MODIFYING: "modifying",
    GraphicStatus.CALCULATING_ID: "calculatingID",
    GraphicStatus.READY_FOR_USE: "readyForUse",
    GraphicStatus.IN_USE: "inUse",
    GraphicStatus.PERMANENT: "permanent",
    GraphicStatus.MODIFY_REQ: "modifyReq",
    GraphicStatus.READY_FOR_USE_REQ: "readyForUseReq",
    GraphicStatus.NOT_USED_REQ: "notUsedReq",
}


class IlluminationControl(_WireEnum):
    """dmsIllumControl - how sign brightness is driven."""

    UNKNOWN = 0
    OTHER = 1
    PHOTOCELL = 2
    TIMER = 3
    MANUAL = 4
    MANUAL_DIRECT = 5
    MANUAL_INDEXED = 6

    @classmethod
    def _labels(cls) -> dict:
        return _ILLUMINATION_LABELS


_ILLUMINATION_LABELS = {
    IlluminationControl.UNKNOWN: "unknown",
    IlluminationControl.OTHER: "other",
    IlluminationControl.PHOTOCELL: "photocell",
    IlluminationControl.TIMER: "timer",
    IlluminationControl.MANUAL: "manual",
    IlluminationControl.MANUAL_DIRECT: "manualDirect",
    IlluminationControl.MANUAL_INDEXED: "manualIndexed",
}


class Result(NamedTuple):
    """(kind, value) pair returned by every DMSGateway operation."""

    kind: ErrorKind
    value: Any = None

    @property
    def ok(self) -> bool:
        """True if the operation succeeded."""
        return self.kind == ErrorKind.OK


@dataclass(frozen=True)
class Message:
    """A row of the sign's message table.

    `crc` is computed by the sign over the MULTI string, beacon and pixel
    service values; the gateway only reads it back.
    """

    number: int
    memory_type: MemoryType
    multi_string: str
    owner: str
    crc: int = 0
    beacon: int = 0
    pixel_service: int = 0
    run_time_priority: int = 0
    status: MessageStatus = MessageStatus.UNKNOWN
    text: str = ""
    document: Optional[MultiDocument] = None
    is_active: bool = False


@dataclass(frozen=True)
class Font:
    """A row of the sign's font table."""

    index: int
    number: int
    name: str
    height: int
    version_id: str
    status: int


@dataclass(frozen=True)
class Graphic:
    """A row of the sign's graphic table (bitmap not included)."""

    number: int
    name: str
    height: int
    width: int
    type: int
    graphic_id: int
    transparent_enabled: int
    transparent_color: bytes
    status: GraphicStatus


@dataclass(frozen=True)
class GraphicUpload:
    """Caller input for storing a graphic.

    Attributes:
        number: Graphic row to overwrite
        bitmap: Base64-encoded BMP file (the 1078-byte header is skipped)
        transparent_color: Single palette index used as transparent color
    """

    number: int
    name: str
    height: int
    width: int
    type: int
    transparent_enabled: int
    transparent_color: int
    bitmap: str


@dataclass(frozen=True)
class ScheduleId:
    """Position of a scheduled message across the three linked tables.

    Rendered as "timeBaseSchedule.dayPlan.dayPlanEvent.action".
    """

    time_base: int
    day_plan: int
    event: int
    action: int

    @classmethod
    def parse(cls, text: str) -> "ScheduleId":
        """Parse a dotted id. Raises ValueError unless it has four integer parts >= 1."""
        parts = text.strip().split(".")
        if len(parts) != 4:
            raise ValueError(f"Schedule id must have 4 dotted parts, got {text!r}")
        values = [int(p) for p in parts]
        if min(values) < 1:
            raise ValueError(f"Schedule id parts must be >= 1, got {text!r}")
        return cls(*values)

    def __str__(self) -> str:
        return f"{self.time_base}.{self.day_plan}.{self.event}.{self.action}"


@dataclass(frozen=True)
class ScheduleEntry:
    """A scheduled message decoded from the sign.

    `date` is naive local time; the year is the current calendar year
    since the sign only stores month/day recurrence bits.
    """

    id: ScheduleId
    date: datetime
    message_number: int
    memory_type: MemoryType = MemoryType.UNKNOWN
    index: int = 0
    message: Optional[Message] = None

    @property
    def timestamp(self) -> int:
        """Trigger time as Unix epoch seconds."""
        return int(self.date.timestamp())


@dataclass(frozen=True)
class PanelStatus:
    """Snapshot of the sign's global configuration and current message."""

    current_date: datetime
    sign_height: int
    sign_width: int
    number_fonts: int
    max_pages: int
    max_multi_length: int
    permanent_messages: int
    changeable_messages: int
    max_changeable_messages: int
    max_graphics: int
    number_graphics: int
    illumination_control: IlluminationControl
    brightness_level: int
    manual_level: int
    current_message: Optional[Message] = None


@dataclass(frozen=True)
class PagedResult(Generic[T]):
    """One page of a device table.

    `total_count` is what the device reports (or the number of valid
    entries for schedules), never the length of `items`.
    """

    page: int
    page_size: int
    total_count: int
    items: list = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)
