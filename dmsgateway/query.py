"""
Device query helper - one round trip per call, replies unwrapped to Python values.
"""

import logging
from typing import Any, Optional, Sequence

from dmsgateway.errors import ErrorKind, GatewayError, TransportError
from dmsgateway.transport import Transport

logger = logging.getLogger(__name__)


def to_int(value: Any) -> int:
    """Coerce an agent value to int (OCTET STRING values are read big-endian)."""
    if value is None:
        return 0
    if isinstance(value, (bytes, bytearray)):
        return int.from_bytes(value, "big") if value else 0
    if isinstance(value, str):
        return int(value.strip() or 0)
    return int(value)


def to_text(value: Any) -> str:
    """Coerce an agent value to str. Bytes are latin-1 decoded, NULs stripped."""
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("latin-1").rstrip("\x00")
    return str(value)


def to_bytes(value: Any) -> bytes:
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, int):
        return value.to_bytes(max(1, (value.bit_length() + 7) // 8), "big")
    return str(value).encode("latin-1")


class DeviceQuery:
    """Issues requests through a Transport and normalizes failures.

    Transport failures propagate as TransportError. A reply with fewer
    bindings than requested is ERROR_IN_AGENT_REPLY. Any other exception
    from the transport becomes GatewayError(EXCEPTION), chained to the cause.
    """

    def __init__(self, transport: Transport):
        self._transport = transport

    @property
    def transport(self) -> Transport:
        return self._transport

    def _request(self, address: str, bindings: Sequence[tuple[str, Any]]) -> list:
        try:
            reply = self._transport.request(address, bindings)
        except GatewayError:
            raise
        except ValueError:
            raise
        except Exception as e:
            raise GatewayError(ErrorKind.EXCEPTION, f"{address}: {e}") from e
        if len(reply) < len(bindings):
            raise TransportError(
                ErrorKind.ERROR_IN_AGENT_REPLY,
                address,
                f"expected {len(bindings)} bindings, got {len(reply)}",
            )
        return [value for _, value in reply]

    def get(self, address: str, oids: Sequence[str]) -> list:
        """GET `oids` in one request. Returns the values in request order."""
        return self._request(address, [(oid, None) for oid in oids])

    def get_one(self, address: str, oid: str) -> Any:
        return self.get(address, [oid])[0]

    def get_int(self, address: str, oid: str) -> int:
        return to_int(self.get_one(address, oid))

    def set(self, address: str, bindings: Sequence[tuple[str, Any]]) -> list:
        """SET `bindings` in one request. Returns the values echoed by the agent."""
        for oid, value in bindings:
            if value is None:
                raise ValueError(f"SET value for {oid} must not be None")
        echoed = self._request(address, bindings)
        logger.debug("SET %s echoed %s", address, echoed)
        return echoed

    def check_index(
        self,
        address: str,
        capacity_oid: str,
        index: int,
        kind: ErrorKind,
        minimum: int = 1,
    ) -> int:
        """Verify minimum <= index <= device capacity; raise GatewayError(kind) otherwise.

        Returns:
            The device-reported capacity
        """
        capacity = self.get_int(address, capacity_oid)
        if not minimum <= index <= capacity:
            raise GatewayError(kind, f"index {index} outside {minimum}..{capacity}")
        return capacity


def require_int(value: Optional[int], name: str) -> int:
    """Caller-input guard: anything but a plain int is INVALID_MODEL."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise GatewayError(ErrorKind.INVALID_MODEL, f"{name} must be an integer, got {value!r}")
    return value
