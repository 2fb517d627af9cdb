"""
Font table reads.
"""

import logging

from dmsgateway import oids
from dmsgateway.errors import ErrorKind
from dmsgateway.paging import fetch_page
from dmsgateway.query import DeviceQuery, to_bytes, to_int, to_text
from dmsgateway.types import Font, PagedResult

logger = logging.getLogger(__name__)

_COLUMNS = (
    oids.FONT_INDEX,
    oids.FONT_NUMBER,
    oids.FONT_NAME,
    oids.FONT_HEIGHT,
    oids.FONT_VERSION_ID,
    oids.FONT_STATUS,
)


class FontReader:
    def __init__(self, query: DeviceQuery):
        self._query = query

    def check_font_id(self, address: str, index: int) -> int:
        return self._query.check_index(address, oids.NUM_FONTS, index, ErrorKind.WRONG_FONT_ID)

    def _read(self, address: str, index: int) -> Font:
        values = self._query.get(address, [oids.font_oid(c, index) for c in _COLUMNS])
        return Font(
            index=to_int(values[0]),
            number=to_int(values[1]),
            name=to_text(values[2]),
            height=to_int(values[3]),
            version_id=to_bytes(values[4]).hex(),
            status=to_int(values[5]),
        )

    def read_font(self, address: str, index: int) -> Font:
        """Read one row of the font table. Raises WRONG_FONT_ID beyond numFonts."""
        self.check_font_id(address, index)
        return self._read(address, index)

    def list_fonts(self, address: str, page: int, size: int) -> PagedResult[Font]:
        total, max_characters, default_font = (
            to_int(v)
            for v in self._query.get(address, [oids.NUM_FONTS, oids.MAX_FONT_CHARACTERS, oids.DEFAULT_FONT])
        )
        logger.debug(
            "%s: %d fonts, %d characters per font, default font %d", address, total, max_characters, default_font
        )
        return fetch_page(page, size, total, lambda i: self._read(address, i + 1))
