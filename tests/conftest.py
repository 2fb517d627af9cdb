"""
Shared pytest fixtures for dmsgateway unit tests.

The `sign` fixture is a FakeTransport loaded with a small, consistent sign:
eight changeable messages (slot 2 is on display), two fonts, four graphics
and a four-row schedule with one valid entry at position 2.2.1.2.
"""

import pytest

from dmsgateway import oids
from dmsgateway.gateway import DMSGateway
from dmsgateway.messages import MessageLifecycle
from dmsgateway.query import DeviceQuery
from dmsgateway.schedule_codec import encode_action_code
from dmsgateway.testing import FakeTransport
from dmsgateway.types import GraphicStatus, MemoryType

ADDRESS = "10.0.0.5"
MAX_MESSAGES = 8
SCHEDULE_ROWS = 4


def message_crc(number: int) -> int:
    return 0x1000 + number


def load_sign(fake: FakeTransport) -> FakeTransport:
    for n in range(1, MAX_MESSAGES + 1):
        fake.set_message(n, f"[jl3]MSG{n}", owner=f"user{n}", crc=message_crc(n))
    fake.set_message(2, "[jl3]MSG2", owner="ops", crc=message_crc(2))
    fake.set_message(1, "[jl3]MSG2", owner="ops", crc=message_crc(2), memory_type=MemoryType.CURRENT_BUFFER)

    fake.set_values(
        {
            oids.GLOBAL_TIME: 1_700_000_000,
            oids.SIGN_HEIGHT: 48,
            oids.SIGN_WIDTH: 144,
            oids.NUM_FONTS: 2,
            oids.MAX_FONT_CHARACTERS: 255,
            oids.DEFAULT_FONT: 1,
            oids.MAX_PAGES: 6,
            oids.MAX_MULTI_STRING_LENGTH: 1024,
            oids.NUM_PERMANENT_MESSAGES: 0,
            oids.NUM_CHANGEABLE_MESSAGES: MAX_MESSAGES,
            oids.MAX_CHANGEABLE_MESSAGES: MAX_MESSAGES,
            oids.MAX_GRAPHICS: 4,
            oids.NUM_GRAPHICS: 1,
            oids.ILLUMINATION_CONTROL: 2,
            oids.ILLUMINATION_BRIGHTNESS_LEVEL: 120,
            oids.ILLUMINATION_MANUAL_LEVEL: 0,
            oids.VALIDATE_MESSAGE_ERROR: 2,
            oids.MULTI_SYNTAX_ERROR: 2,
            oids.MULTI_SYNTAX_ERROR_POSITION: 0,
            oids.SHORT_ERROR_STATUS: 0,
            oids.ACTIVATE_MESSAGE_STATE: 1,
        }
    )

    for i in (1, 2):
        fake.set_values(
            {
                oids.font_oid(oids.FONT_INDEX, i): i,
                oids.font_oid(oids.FONT_NUMBER, i): i,
                oids.font_oid(oids.FONT_NAME, i): f"font{i}".encode(),
                oids.font_oid(oids.FONT_HEIGHT, i): 7 * i,
                oids.font_oid(oids.FONT_VERSION_ID, i): b"\x12\x34",
                oids.font_oid(oids.FONT_STATUS, i): 4,
            }
        )

    for n in range(1, 5):
        fake.set_values(
            {
                oids.graphic_oid(oids.GRAPHIC_NUMBER, n): n,
                oids.graphic_oid(oids.GRAPHIC_NAME, n): f"logo{n}".encode(),
                oids.graphic_oid(oids.GRAPHIC_HEIGHT, n): 32,
                oids.graphic_oid(oids.GRAPHIC_WIDTH, n): 64,
                oids.graphic_oid(oids.GRAPHIC_TYPE, n): 2,
                oids.graphic_oid(oids.GRAPHIC_ID, n): 0xBEEF,
                oids.graphic_oid(oids.GRAPHIC_TRANSPARENT_ENABLED, n): 0,
                oids.graphic_oid(oids.GRAPHIC_TRANSPARENT_COLOR, n): b"\x00",
                oids.graphic_oid(oids.GRAPHIC_STATUS, n): int(GraphicStatus.READY_FOR_USE),
            }
        )

    fake.set_values(
        {
            oids.MAX_TIME_BASE_SCHEDULE_ENTRIES: SCHEDULE_ROWS,
            oids.MAX_DAY_PLANS: SCHEDULE_ROWS,
            oids.MAX_DAY_PLAN_EVENTS: 1,
            oids.NUM_ACTION_TABLE_ENTRIES: SCHEDULE_ROWS,
            oids.TIME_BASE_SCHEDULE_TABLE_STATUS: 0,
            oids.DAY_PLAN_STATUS: 0,
        }
    )
    for row in range(1, SCHEDULE_ROWS + 1):
        fake.set_value(oids.time_base_oid(oids.TIME_BASE_MONTH, row), 0)
    set_schedule_row(fake, 2, month=3, day=15, hour=8, minute=30, message=4)
    return fake


def set_schedule_row(
    fake: FakeTransport,
    row: int,
    *,
    month: int,
    day: int,
    hour: int,
    minute: int,
    message: int,
    month_mask=None,
    date_mask=None,
    day_plan=None,
    memory_type: int = int(MemoryType.CHANGEABLE),
) -> None:
    """Store a schedule entry at the gateway's layout (row, row, 1, row)."""
    fake.set_values(
        {
            oids.time_base_oid(oids.TIME_BASE_MONTH, row): month_mask if month_mask is not None else 1 << month,
            oids.time_base_oid(oids.TIME_BASE_DATE, row): date_mask if date_mask is not None else 1 << day,
            oids.time_base_oid(oids.TIME_BASE_DAY, row): 1 << 2,
            oids.time_base_oid(oids.TIME_BASE_DAY_PLAN, row): day_plan if day_plan is not None else row,
            oids.day_plan_oid(oids.DAY_PLAN_HOUR, row, 1): hour,
            oids.day_plan_oid(oids.DAY_PLAN_MINUTE, row, 1): minute,
            oids.day_plan_oid(oids.DAY_PLAN_ACTION, row, 1): oids.action_pointer(row),
            oids.action_oid(oids.ACTION_MESSAGE_CODE, row): encode_action_code(memory_type, message),
        }
    )


@pytest.fixture
def sign():
    """FakeTransport preloaded with the test sign."""
    return load_sign(FakeTransport())


@pytest.fixture
def query(sign):
    return DeviceQuery(sign)


@pytest.fixture
def messages(query):
    return MessageLifecycle(query)


@pytest.fixture
def gw(sign):
    return DMSGateway(sign)
