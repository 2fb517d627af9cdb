"""
Error kinds and exceptions for the DMS gateway.

Engines raise these exceptions; the DMSGateway facade converts them into
(ErrorKind, result) pairs for callers. ErrorKind values are stable numeric
response codes so an outer API layer can report them unchanged.
"""

from enum import IntEnum
from typing import Optional


class ErrorKind(IntEnum):
    """Outcome of a gateway operation (0 = success)."""

    OK = 0
    WRONG_DATA = 2
    INVALID_MODEL = 3
    NETWORK_EXCEPTION = 6
    NO_RESPONSE_FROM_AGENT = 7
    ERROR_IN_AGENT_REPLY = 8
    WRONG_MESSAGE_ID = 9
    WRONG_FONT_ID = 10
    WRONG_GRAPHIC_ID = 11
    MESSAGE_ERROR_OTHER = 14
    MESSAGE_ERROR_BEACONS = 15
    MESSAGE_ERROR_PIXEL_SERVICE = 16
    MESSAGE_ERROR_SYNTAX_MULTI_OTHER = 17
    MESSAGE_ERROR_SYNTAX_MULTI_UNSUPPORTED_TAG = 18
    MESSAGE_ERROR_SYNTAX_MULTI_UNSUPPORTED_TAG_VALUE = 19
    MESSAGE_ERROR_SYNTAX_MULTI_TEXT_TOO_BIG = 20
    MESSAGE_ERROR_SYNTAX_MULTI_FONT_NOT_DEFINED = 21
    MESSAGE_ERROR_SYNTAX_MULTI_CHARACTER_NOT_DEFINED = 22
    MESSAGE_ERROR_SYNTAX_MULTI_FIELD_DEVICE_NOT_EXIST = 23
    MESSAGE_ERROR_SYNTAX_MULTI_FIELD_DEVICE_ERROR = 24
    MESSAGE_ERROR_SYNTAX_MULTI_FLASH_REGION_ERROR = 25
    MESSAGE_ERROR_SYNTAX_MULTI_TAG_CONFLICT = 26
    MESSAGE_ERROR_SYNTAX_MULTI_TOO_MANY_PAGES = 27
    MESSAGE_ERROR_SYNTAX_MULTI_FONT_VERSION_ID = 28
    MESSAGE_ERROR_SYNTAX_MULTI_GRAPHIC_ID = 29
    MESSAGE_ERROR_SYNTAX_MULTI_GRAPHIC_NOT_DEFINED = 30
    WRONG_DATE_TIME = 31
    WRONG_SCHEDULE_ID = 32
    LIMIT_EXCEEDED_SCHEDULE_ITEMS = 33
    EXCEPTION = 106

    @property
    def is_transport(self) -> bool:
        """True for failures raised by the SNMP transport itself."""
        return self in _TRANSPORT_KINDS

    @property
    def is_message_error(self) -> bool:
        """True for device-reported MULTI validation failures."""
        return ErrorKind.MESSAGE_ERROR_OTHER <= self <= ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_GRAPHIC_NOT_DEFINED


_TRANSPORT_KINDS = frozenset(
    {
        ErrorKind.NETWORK_EXCEPTION,
        ErrorKind.NO_RESPONSE_FROM_AGENT,
        ErrorKind.ERROR_IN_AGENT_REPLY,
    }
)


class GatewayError(Exception):
    """Raised when a gateway operation fails.

    Attributes:
        kind: ErrorKind reported to the caller
        message: Human-readable description
    """

    def __init__(self, kind: ErrorKind, message: Optional[str] = None):
        self.kind = kind
        self.message = message
        super().__init__(f"{kind.name}: {message}" if message else kind.name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.name}, message={self.message!r})"


class TransportError(GatewayError):
    """Raised by a transport when a round trip to the device fails.

    Only the three transport kinds are valid here: NETWORK_EXCEPTION
    (unreachable host, socket failure), NO_RESPONSE_FROM_AGENT (timeout)
    and ERROR_IN_AGENT_REPLY (non-zero SNMP error-status).

    Attributes:
        address: Device address the request was sent to
        error_status: SNMP error-status from the reply, if any
        error_index: SNMP error-index from the reply, if any
    """

    def __init__(
        self,
        kind: ErrorKind,
        address: str,
        message: Optional[str] = None,
        error_status: Optional[int] = None,
        error_index: Optional[int] = None,
    ):
        if not kind.is_transport:
            raise ValueError(f"{kind.name} is not a transport error kind")
        self.address = address
        self.error_status = error_status
        self.error_index = error_index
        super().__init__(kind, f"{address}: {message}" if message else address)


class MessageValidationError(GatewayError):
    """Raised when the sign rejects a MULTI string during validation.

    Attributes:
        validate_error: dmsValidateMessageError code read back from the sign
        syntax_error: dmsMultiSyntaxError code (only meaningful when validate_error == 5)
        position: dmsMultiSyntaxErrorPosition, character offset of the error
    """

    def __init__(self, kind: ErrorKind, validate_error: int, syntax_error: int, position: int):
        self.validate_error = validate_error
        self.syntax_error = syntax_error
        self.position = position
        super().__init__(
            kind,
            f"validate_error={validate_error}, syntax_error={syntax_error}, position={position}",
        )
