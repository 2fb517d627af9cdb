"""
Panel status snapshot and software reset.
"""

import logging
from datetime import datetime, timezone

from dmsgateway import oids
from dmsgateway.messages import MessageLifecycle
from dmsgateway.query import DeviceQuery, to_int
from dmsgateway.types import IlluminationControl, PanelStatus

logger = logging.getLogger(__name__)

# Order matters: PanelStatus is built positionally from this list
STATUS_OIDS = (
    oids.GLOBAL_TIME,
    oids.SIGN_HEIGHT,
    oids.SIGN_WIDTH,
    oids.NUM_FONTS,
    oids.MAX_PAGES,
    oids.MAX_MULTI_STRING_LENGTH,
    oids.NUM_PERMANENT_MESSAGES,
    oids.NUM_CHANGEABLE_MESSAGES,
    oids.MAX_CHANGEABLE_MESSAGES,
    oids.MAX_GRAPHICS,
    oids.NUM_GRAPHICS,
    oids.ILLUMINATION_CONTROL,
    oids.ILLUMINATION_BRIGHTNESS_LEVEL,
    oids.ILLUMINATION_MANUAL_LEVEL,
)


def timestamp_from_seconds(seconds: int) -> datetime:
    """Convert device time (seconds since Unix epoch, UTC) to an aware datetime."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


class StatusReader:
    def __init__(self, query: DeviceQuery, messages: MessageLifecycle):
        self._query = query
        self._messages = messages

    def read_status(self, address: str) -> PanelStatus:
        """Current-buffer message plus the sign's global configuration."""
        current = self._messages.read_current(address)
        values = [to_int(v) for v in self._query.get(address, STATUS_OIDS)]
        status = PanelStatus(
            current_date=timestamp_from_seconds(values[0]),
            sign_height=values[1],
            sign_width=values[2],
            number_fonts=values[3],
            max_pages=values[4],
            max_multi_length=values[5],
            permanent_messages=values[6],
            changeable_messages=values[7],
            max_changeable_messages=values[8],
            max_graphics=values[9],
            number_graphics=values[10],
            illumination_control=IlluminationControl(values[11]),
            brightness_level=values[12],
            manual_level=values[13],
            current_message=current,
        )
        logger.debug("%s: %s", address, status)
        return status

    def restart(self, address: str) -> None:
        """Request a software reset of the sign controller."""
        self._query.set(address, [(oids.SOFTWARE_RESET, 1)])
        logger.info(f"Software reset requested on {address}")
