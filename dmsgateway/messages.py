"""
Message lifecycle engine.

A changeable message slot is written in three steps, each a single request:

1. SET status = modifyReq
2. SET MULTI string, owner and status = validateReq
3. GET the row back plus the sign's validation result

A message is shown by writing a 12-byte activation frame to
dmsActivateMessage. Slots are never removed, only overwritten with
BLANK_MULTI.
"""

import ipaddress
import logging
import struct
from dataclasses import dataclass
from typing import Optional

from dmsgateway import oids
from dmsgateway.errors import ErrorKind, GatewayError, MessageValidationError
from dmsgateway.multi import BLANK_MULTI, MultiDocument, decode, encode, to_plain_text
from dmsgateway.paging import fetch_page
from dmsgateway.query import DeviceQuery, to_int, to_text
from dmsgateway.types import MemoryType, Message, MessageStatus, PagedResult

logger = logging.getLogger(__name__)

VALIDATE_OK = 2
VALIDATE_SYNTAX_MULTI = 5
FRAME_MARKER = b"\xff\xff\xff"

CURRENT_BUFFER_SLOT = 1

_VALIDATE_ERRORS = {
    1: ErrorKind.MESSAGE_ERROR_OTHER,
    3: ErrorKind.MESSAGE_ERROR_BEACONS,
    4: ErrorKind.MESSAGE_ERROR_PIXEL_SERVICE,
}

_SYNTAX_ERRORS = {
    1: ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_OTHER,
    3: ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_UNSUPPORTED_TAG,
    4: ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_UNSUPPORTED_TAG_VALUE,
    5: ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_TEXT_TOO_BIG,
    6: ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_FONT_NOT_DEFINED,
    7: ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_CHARACTER_NOT_DEFINED,
    8: ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_FIELD_DEVICE_NOT_EXIST,
    9: ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_FIELD_DEVICE_ERROR,
    10: ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_FLASH_REGION_ERROR,
    11: ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_TAG_CONFLICT,
    12: ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_TOO_MANY_PAGES,
    13: ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_FONT_VERSION_ID,
    14: ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_GRAPHIC_ID,
    15: ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_GRAPHIC_NOT_DEFINED,
}


def classify_validation(validate_error: int, syntax_error: int) -> ErrorKind:
    """Map (dmsValidateMessageError, dmsMultiSyntaxError) to an ErrorKind.

    Returns OK for validate_error 2 and EXCEPTION for combinations the
    tables do not cover.
    """
    if validate_error == VALIDATE_OK:
        return ErrorKind.OK
    if validate_error == VALIDATE_SYNTAX_MULTI:
        return _SYNTAX_ERRORS.get(syntax_error, ErrorKind.EXCEPTION)
    return _VALIDATE_ERRORS.get(validate_error, ErrorKind.EXCEPTION)


def build_activation_frame(memory_type: int, number: int, crc: int, address: str) -> bytes:
    """dmsActivateMessage value: FF FF FF, memory type, number, CRC, IPv4 octets.

    Number and CRC are big-endian 16-bit.

    >>> build_activation_frame(3, 5, 0x1234, "10.0.0.1").hex()
    'ffffff03000512340a000001'
    """
    try:
        packed_ip = ipaddress.IPv4Address(address).packed
    except ipaddress.AddressValueError as e:
        raise GatewayError(ErrorKind.INVALID_MODEL, f"Invalid IPv4 address {address!r}") from e
    return struct.pack(">3sBHH4s", FRAME_MARKER, memory_type & 0xFF, number & 0xFFFF, crc & 0xFFFF, packed_ip)


@dataclass(frozen=True)
class ValidationOutcome:
    """Row and validation state read back after a validateReq."""

    memory_type: MemoryType
    number: int
    crc: int
    multi_string: str
    owner: str
    status: MessageStatus
    validate_error: int
    syntax_error: int
    position: int

    @property
    def kind(self) -> ErrorKind:
        return classify_validation(self.validate_error, self.syntax_error)


class MessageLifecycle:
    """Reads, writes, blanks and activates changeable message slots."""

    def __init__(self, query: DeviceQuery):
        self._query = query

    def check_message_id(self, address: str, number: int) -> int:
        """Raise WRONG_MESSAGE_ID unless 1 <= number <= dmsMaxChangeableMsg."""
        return self._query.check_index(address, oids.MAX_CHANGEABLE_MESSAGES, number, ErrorKind.WRONG_MESSAGE_ID)

    # ─────────────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────────────

    def read_message(
        self,
        address: str,
        number: int,
        memory_type: MemoryType = MemoryType.CHANGEABLE,
        with_document: bool = False,
        check_id: bool = True,
        active_owner: Optional[str] = None,
    ) -> Message:
        """Read one message row.

        Args:
            with_document: Also decode the MULTI string into a MultiDocument
            check_id: Verify the slot number against the device capacity first
            active_owner: Owner of the current-buffer message; the result is
                flagged active when its owner matches
        """
        if check_id:
            self.check_message_id(address, number)
        columns = (
            oids.MESSAGE_MULTI_STRING,
            oids.MESSAGE_OWNER,
            oids.MESSAGE_CRC,
            oids.MESSAGE_BEACON,
            oids.MESSAGE_PIXEL_SERVICE,
            oids.MESSAGE_RUN_TIME_PRIORITY,
            oids.MESSAGE_STATUS,
            oids.MESSAGE_MEMORY_TYPE,
        )
        values = self._query.get(address, [oids.message_oid(c, int(memory_type), number) for c in columns])
        multi_string = to_text(values[0])
        owner = to_text(values[1])
        logger.debug(f"Message {int(memory_type)}.{number} on {address}: {multi_string!r}")
        return Message(
            number=number,
            memory_type=MemoryType(to_int(values[7])),
            multi_string=multi_string,
            owner=owner,
            crc=to_int(values[2]),
            beacon=to_int(values[3]),
            pixel_service=to_int(values[4]),
            run_time_priority=to_int(values[5]),
            status=MessageStatus(to_int(values[6])),
            text=to_plain_text(multi_string),
            document=decode(multi_string) if with_document else None,
            is_active=bool(owner) and owner == active_owner,
        )

    def read_current(self, address: str) -> Message:
        """Message currently displayed (current buffer, slot 1)."""
        return self.read_message(address, CURRENT_BUFFER_SLOT, MemoryType.CURRENT_BUFFER, check_id=False)

    def list_messages(self, address: str, page: int, size: int) -> PagedResult[Message]:
        """Page over the changeable message table, flagging the active message."""
        current = self.read_current(address)
        total = self._query.get_int(address, oids.MAX_CHANGEABLE_MESSAGES)
        logger.debug("%s: %d changeable messages", address, total)
        return fetch_page(
            page,
            size,
            total,
            lambda i: self.read_message(address, i + 1, check_id=False, active_owner=current.owner),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Writes
    # ─────────────────────────────────────────────────────────────────────────

    def write_message(
        self,
        address: str,
        number: int,
        document: Optional[MultiDocument] = None,
        multi_string: Optional[str] = None,
        owner: str = "",
        activate: bool = False,
        blank: bool = False,
    ) -> ValidationOutcome:
        """Store a MULTI string in a changeable slot and optionally show it.

        The structured document wins over the raw string when both are given.

        Raises:
            GatewayError: WRONG_MESSAGE_ID for an out-of-range slot, INVALID_MODEL
                for empty text that is not an explicit blank
            MessageValidationError: If the sign rejects the MULTI string
            TransportError: If any step fails on the wire
        """
        self.check_message_id(address, number)
        text = encode(document) if document else (multi_string or "")
        if not text and not blank:
            raise GatewayError(ErrorKind.INVALID_MODEL, "Message has no MULTI text")

        self._request_modify(address, number)
        self._request_validate(address, number, text, owner)
        outcome = self._read_validation(address, number)

        kind = outcome.kind
        if kind != ErrorKind.OK:
            logger.error(
                "%s: message %d rejected: validate=%d syntax=%d position=%d",
                address,
                number,
                outcome.validate_error,
                outcome.syntax_error,
                outcome.position,
            )
            raise MessageValidationError(kind, outcome.validate_error, outcome.syntax_error, outcome.position)
        logger.info(f"Message {number} saved on {address} (crc=0x{outcome.crc:04x})")

        if activate:
            self.send_activation(address, outcome.memory_type, outcome.number, outcome.crc)
        return outcome

    def delete_message(self, address: str, number: int) -> ValidationOutcome:
        """Blank a slot; the owner becomes the slot number."""
        return self.write_message(address, number, multi_string=BLANK_MULTI, owner=str(number), blank=True)

    def activate_message(self, address: str, number: int, activate: bool = True) -> None:
        """Show a stored message, or blank the sign when activate is False."""
        message = self.read_message(address, number)
        if not activate:
            self.send_activation(address, MemoryType.BLANK, 1, 0)
            return
        self.send_activation(address, message.memory_type, message.number, message.crc)

    def send_activation(self, address: str, memory_type: int, number: int, crc: int) -> bytes:
        frame = build_activation_frame(memory_type, number, crc, address)
        logger.debug(f"Activation frame for {address}: {frame.hex()}")
        self._query.set(address, [(oids.ACTIVATE_MESSAGE, frame)])
        logger.info(f"Message {int(memory_type)}.{number} activated on {address}")
        return frame

    # ─────────────────────────────────────────────────────────────────────────
    # Steps
    # ─────────────────────────────────────────────────────────────────────────

    def _request_modify(self, address: str, number: int) -> None:
        status = oids.message_oid(oids.MESSAGE_STATUS, MemoryType.CHANGEABLE, number)
        self._query.set(address, [(status, int(MessageStatus.MODIFY_REQ))])
        logger.debug("%s: message %d step 1 (modifyReq) done", address, number)

    def _request_validate(self, address: str, number: int, text: str, owner: str) -> None:
        changeable = int(MemoryType.CHANGEABLE)
        self._query.set(
            address,
            [
                (oids.message_oid(oids.MESSAGE_MULTI_STRING, changeable, number), text),
                (oids.message_oid(oids.MESSAGE_OWNER, changeable, number), owner),
                (oids.message_oid(oids.MESSAGE_STATUS, changeable, number), int(MessageStatus.VALIDATE_REQ)),
            ],
        )
        logger.debug("%s: message %d step 2 (validateReq) done", address, number)

    def _read_validation(self, address: str, number: int) -> ValidationOutcome:
        changeable = int(MemoryType.CHANGEABLE)
        columns = (
            oids.MESSAGE_MEMORY_TYPE,
            oids.MESSAGE_NUMBER,
            oids.MESSAGE_CRC,
            oids.MESSAGE_MULTI_STRING,
            oids.MESSAGE_OWNER,
            oids.MESSAGE_STATUS,
        )
        values = self._query.get(
            address,
            [oids.message_oid(c, changeable, number) for c in columns]
            + [oids.VALIDATE_MESSAGE_ERROR, oids.MULTI_SYNTAX_ERROR, oids.MULTI_SYNTAX_ERROR_POSITION],
        )
        outcome = ValidationOutcome(
            memory_type=MemoryType(to_int(values[0])),
            number=to_int(values[1]),
            crc=to_int(values[2]),
            multi_string=to_text(values[3]),
            owner=to_text(values[4]),
            status=MessageStatus(to_int(values[5])),
            validate_error=to_int(values[6]),
            syntax_error=to_int(values[7]),
            position=to_int(values[8]),
        )
        logger.debug("%s: message %d step 3: %s", address, number, outcome)
        return outcome
