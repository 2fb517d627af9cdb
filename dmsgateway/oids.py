"""
NTCIP 1203/1201 object identifiers used by the gateway.

Every identifier lives under the NTCIP enterprise branch ``1.3.6.1.4.1.1206.4.2``.
Scalars are module constants; table columns are built by the helper
functions below. Numeric suffixes are a compatibility contract with the
sign firmware and must not change.
"""

from typing import Union

ROOT = "1.3.6.1.4.1.1206.4.2"
DMS = ROOT + ".3"
GLOBAL = ROOT + ".6"


class ObjectIdentifierValue(str):
    """A SET value that must be encoded as an OBJECT IDENTIFIER, not a string."""

    def __repr__(self) -> str:
        return f"ObjectIdentifierValue({str(self)!r})"


# ─────────────────────────────────────────────────────────────────────────────
# Scalars
# ─────────────────────────────────────────────────────────────────────────────

# sign configuration
SIGN_HEIGHT = DMS + ".2.3.0"
SIGN_WIDTH = DMS + ".2.4.0"

# fonts
NUM_FONTS = DMS + ".3.1.0"
MAX_FONT_CHARACTERS = DMS + ".3.3.0"
DEFAULT_FONT = DMS + ".4.5.0"

# multi configuration
MAX_PAGES = DMS + ".4.15.0"
MAX_MULTI_STRING_LENGTH = DMS + ".4.16.0"

# message table
NUM_PERMANENT_MESSAGES = DMS + ".5.1.0"
NUM_CHANGEABLE_MESSAGES = DMS + ".5.2.0"
MAX_CHANGEABLE_MESSAGES = DMS + ".5.3.0"
VALIDATE_MESSAGE_ERROR = DMS + ".5.9.0"

# sign control
SOFTWARE_RESET = DMS + ".6.2.0"
ACTIVATE_MESSAGE = DMS + ".6.3.0"
MULTI_SYNTAX_ERROR = DMS + ".6.18.0"
MULTI_SYNTAX_ERROR_POSITION = DMS + ".6.19.0"
ACTIVATE_MESSAGE_STATE = DMS + ".6.25.0"

# illumination
ILLUMINATION_CONTROL = DMS + ".7.1.0"
ILLUMINATION_BRIGHTNESS_LEVEL = DMS + ".7.5.0"
ILLUMINATION_MANUAL_LEVEL = DMS + ".7.6.0"

# action table
NUM_ACTION_TABLE_ENTRIES = DMS + ".8.1.0"

# sign status
SHORT_ERROR_STATUS = DMS + ".9.7.1.0"

# graphics
MAX_GRAPHICS = DMS + ".10.1.0"
NUM_GRAPHICS = DMS + ".10.2.0"

# NTCIP 1201 global time and scheduling
GLOBAL_TIME = GLOBAL + ".3.1.0"
MAX_TIME_BASE_SCHEDULE_ENTRIES = GLOBAL + ".3.3.1.0"
MAX_DAY_PLANS = GLOBAL + ".3.3.3.0"
MAX_DAY_PLAN_EVENTS = GLOBAL + ".3.3.4.0"
DAY_PLAN_STATUS = GLOBAL + ".3.3.6.0"
TIME_BASE_SCHEDULE_TABLE_STATUS = GLOBAL + ".3.3.7.0"

# ─────────────────────────────────────────────────────────────────────────────
# Table columns
# ─────────────────────────────────────────────────────────────────────────────

# dmsMessageEntry (DMS.5.8.1.<col>.<memoryType>.<number>)
MESSAGE_MEMORY_TYPE = 1
MESSAGE_NUMBER = 2
MESSAGE_MULTI_STRING = 3
MESSAGE_OWNER = 4
MESSAGE_CRC = 5
MESSAGE_BEACON = 6
MESSAGE_PIXEL_SERVICE = 7
MESSAGE_RUN_TIME_PRIORITY = 8
MESSAGE_STATUS = 9

# fontEntry (DMS.3.2.1.<col>.<index>)
FONT_INDEX = 1
FONT_NUMBER = 2
FONT_NAME = 3
FONT_HEIGHT = 4
FONT_VERSION_ID = 7
FONT_STATUS = 8

# dmsGraphicEntry (DMS.10.6.1.<col>.<number>)
GRAPHIC_NUMBER = 2
GRAPHIC_NAME = 3
GRAPHIC_HEIGHT = 4
GRAPHIC_WIDTH = 5
GRAPHIC_TYPE = 6
GRAPHIC_ID = 7
GRAPHIC_TRANSPARENT_ENABLED = 8
GRAPHIC_TRANSPARENT_COLOR = 9
GRAPHIC_STATUS = 10

# timeBaseScheduleEntry (GLOBAL.3.3.2.1.<col>.<entry>)
TIME_BASE_MONTH = 2
TIME_BASE_DAY = 3
TIME_BASE_DATE = 4
TIME_BASE_DAY_PLAN = 5

# dayPlanEntry (GLOBAL.3.3.5.1.<col>.<dayPlan>.<event>)
DAY_PLAN_HOUR = 3
DAY_PLAN_MINUTE = 4
DAY_PLAN_ACTION = 5

# dmsActionEntry (DMS.8.2.1.<col>.<action>)
ACTION_INDEX = 1
ACTION_MESSAGE_CODE = 2

BITMAP_BLOCKS = 6


def _check(name: str, value: int, minimum: int = 1) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value < minimum:
        raise ValueError(f"{name} must be an integer >= {minimum}, got {value!r}")


def message_oid(column: int, memory_type: int, number: int) -> str:
    """Column of a dmsMessageEntry row."""
    _check("column", column)
    _check("memory_type", memory_type)
    _check("number", number)
    return f"{DMS}.5.8.1.{int(column)}.{int(memory_type)}.{int(number)}"


def font_oid(column: int, index: int) -> str:
    _check("column", column)
    _check("index", index)
    return f"{DMS}.3.2.1.{column}.{index}"


def graphic_oid(column: int, number: int) -> str:
    _check("column", column)
    _check("number", number)
    return f"{DMS}.10.6.1.{column}.{number}"


def graphic_bitmap_oid(number: int, block: int) -> str:
    """dmsGraphicBlockBitmap for one of the six 1020-byte blocks of a graphic."""
    _check("number", number)
    _check("block", block)
    if block > BITMAP_BLOCKS:
        raise ValueError(f"block must be <= {BITMAP_BLOCKS}, got {block}")
    return f"{DMS}.10.7.1.3.{number}.{block}"


def time_base_oid(column: int, entry: int) -> str:
    _check("column", column)
    _check("entry", entry)
    return f"{GLOBAL}.3.3.2.1.{column}.{entry}"


def day_plan_oid(column: int, day_plan: int, event: int) -> str:
    _check("column", column)
    _check("day_plan", day_plan)
    _check("event", event)
    return f"{GLOBAL}.3.3.5.1.{column}.{day_plan}.{event}"


def action_oid(column: int, action: int) -> str:
    _check("column", column)
    _check("action", action)
    return f"{DMS}.8.2.1.{column}.{action}"


def action_pointer(action: int) -> ObjectIdentifierValue:
    """Value stored in dayPlanActionNumberOID: the dmsActionIndex of `action`.

    Index 0 is allowed and marks the event as pointing at nothing.
    """
    _check("action", action, minimum=0)
    return ObjectIdentifierValue(f"{DMS}.8.2.1.{ACTION_INDEX}.{action}")


def last_index(oid: Union[str, bytes]) -> int:
    """Trailing sub-identifier of a dotted OID (0 for an empty pointer).

    >>> last_index("1.3.6.1.4.1.1206.4.2.3.8.2.1.1.7")
    7
    """
    if isinstance(oid, bytes):
        oid = oid.decode("ascii")
    oid = oid.strip().rstrip(".")
    if not oid:
        return 0
    tail = oid.rsplit(".", 1)[-1]
    try:
        return int(tail)
    except ValueError:
        raise ValueError(f"Malformed object identifier: {oid!r}")
