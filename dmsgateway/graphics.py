"""
Graphic table reads and the four-phase graphic upload.

Upload sequence for graphic N, each phase one request:

1. SET dmsGraphicStatus = modifyReq
2. SET number, name, height, width, type, transparent enabled/color
3. SET each of the six 1020-byte dmsGraphicBlockBitmap blocks
4. SET dmsGraphicStatus = readyForUseReq

The first failing phase aborts the upload; the sign treats an unfinished
upload as not yet ready, so nothing is rolled back.
"""

import base64
import binascii
import logging

import numpy as np

from dmsgateway import oids
from dmsgateway.errors import ErrorKind, GatewayError
from dmsgateway.paging import fetch_page
from dmsgateway.query import DeviceQuery, to_bytes, to_int, to_text
from dmsgateway.types import Graphic, GraphicStatus, GraphicUpload, PagedResult

logger = logging.getLogger(__name__)

BMP_HEADER_SIZE = 1078
BLOCK_SIZE = 1020
BLOCK_COUNT = oids.BITMAP_BLOCKS

_COLUMNS = (
    oids.GRAPHIC_NUMBER,
    oids.GRAPHIC_NAME,
    oids.GRAPHIC_HEIGHT,
    oids.GRAPHIC_WIDTH,
    oids.GRAPHIC_TYPE,
    oids.GRAPHIC_ID,
    oids.GRAPHIC_TRANSPARENT_ENABLED,
    oids.GRAPHIC_TRANSPARENT_COLOR,
    oids.GRAPHIC_STATUS,
)


def split_bitmap(data: bytes, header_size: int = BMP_HEADER_SIZE) -> list[bytes]:
    """Drop the BMP header and cut the pixels into six zero-padded 1020-byte blocks.

    Pixel data beyond six blocks is dropped.
    """
    pixels = np.frombuffer(data, dtype=np.uint8)[header_size:]
    blocks = np.zeros(BLOCK_COUNT * BLOCK_SIZE, dtype=np.uint8)
    count = min(len(pixels), blocks.size)
    if len(pixels) > blocks.size:
        logger.warning(f"Bitmap has {len(pixels)} pixel bytes, only {blocks.size} are sent")
    blocks[:count] = pixels[:count]
    return [row.tobytes() for row in blocks.reshape(BLOCK_COUNT, BLOCK_SIZE)]


def decode_bitmap(encoded: str) -> bytes:
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise GatewayError(ErrorKind.WRONG_DATA, f"Bitmap is not valid base64: {e}") from e


class GraphicEngine:
    def __init__(self, query: DeviceQuery):
        self._query = query

    def check_graphic_id(self, address: str, number: int) -> int:
        return self._query.check_index(address, oids.MAX_GRAPHICS, number, ErrorKind.WRONG_GRAPHIC_ID)

    def _read(self, address: str, number: int) -> Graphic:
        values = self._query.get(address, [oids.graphic_oid(c, number) for c in _COLUMNS])
        graphic = Graphic(
            number=to_int(values[0]),
            name=to_text(values[1]),
            height=to_int(values[2]),
            width=to_int(values[3]),
            type=to_int(values[4]),
            graphic_id=to_int(values[5]),
            transparent_enabled=to_int(values[6]),
            transparent_color=to_bytes(values[7]),
            status=GraphicStatus(to_int(values[8])),
        )
        logger.debug("%s: graphic %d: %s", address, number, graphic)
        return graphic

    def read_graphic(self, address: str, number: int) -> Graphic:
        self.check_graphic_id(address, number)
        return self._read(address, number)

    def list_graphics(self, address: str, page: int, size: int) -> PagedResult[Graphic]:
        total = self._query.get_int(address, oids.MAX_GRAPHICS)
        return fetch_page(page, size, total, lambda i: self._read(address, i + 1))

    def upload(self, address: str, graphic: GraphicUpload) -> None:
        """Store a graphic on the sign.

        Raises:
            GatewayError: WRONG_GRAPHIC_ID for an out-of-range number,
                WRONG_DATA for a bitmap that is not base64 or a bad color
            TransportError: From the first phase that fails
        """
        self.check_graphic_id(address, graphic.number)
        if not 0 <= graphic.transparent_color <= 0xFF:
            raise GatewayError(ErrorKind.WRONG_DATA, f"transparent_color must fit in one byte, got {graphic.transparent_color}")
        blocks = split_bitmap(decode_bitmap(graphic.bitmap))
        number = graphic.number

        phases = (
            ("modifyReq", lambda: self._set_status(address, number, GraphicStatus.MODIFY_REQ)),
            ("metadata", lambda: self._write_metadata(address, graphic)),
            ("bitmap", lambda: self._write_blocks(address, number, blocks)),
            ("readyForUseReq", lambda: self._set_status(address, number, GraphicStatus.READY_FOR_USE_REQ)),
        )
        for step, (name, phase) in enumerate(phases, start=1):
            try:
                phase()
            except GatewayError:
                logger.error(f"Graphic {number} upload to {address} failed in phase {step} ({name})")
                raise
            logger.debug("%s: graphic %d phase %d (%s) done", address, number, step, name)
        logger.info(f"Graphic {number} uploaded to {address}")

    def _set_status(self, address: str, number: int, status: GraphicStatus) -> None:
        self._query.set(address, [(oids.graphic_oid(oids.GRAPHIC_STATUS, number), int(status))])

    def _write_metadata(self, address: str, graphic: GraphicUpload) -> None:
        n = graphic.number
        self._query.set(
            address,
            [
                (oids.graphic_oid(oids.GRAPHIC_NUMBER, n), n),
                (oids.graphic_oid(oids.GRAPHIC_NAME, n), graphic.name),
                (oids.graphic_oid(oids.GRAPHIC_HEIGHT, n), graphic.height),
                (oids.graphic_oid(oids.GRAPHIC_WIDTH, n), graphic.width),
                (oids.graphic_oid(oids.GRAPHIC_TYPE, n), graphic.type),
                (oids.graphic_oid(oids.GRAPHIC_TRANSPARENT_ENABLED, n), graphic.transparent_enabled),
                (oids.graphic_oid(oids.GRAPHIC_TRANSPARENT_COLOR, n), bytes([graphic.transparent_color])),
            ],
        )

    def _write_blocks(self, address: str, number: int, blocks: list[bytes]) -> None:
        for block, chunk in enumerate(blocks, start=1):
            self._query.set(address, [(oids.graphic_bitmap_oid(number, block), chunk)])
