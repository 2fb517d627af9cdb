"""
Testing utilities - FakeTransport, an in-memory sign for unit tests without network.
"""

import threading
from typing import Any, NamedTuple, Optional, Sequence

from dmsgateway import oids
from dmsgateway.errors import ErrorKind, TransportError
from dmsgateway.transport import Binding, Transport, request_kind
from dmsgateway.types import MemoryType, MessageStatus


class Request(NamedTuple):
    """One recorded round trip."""

    kind: str
    address: str
    bindings: tuple


class FakeTransport(Transport):
    """
    In-memory SNMP agent for testing without a sign.

    The agent is a dict of oid -> value. GETs read it, SETs write it and echo
    the written values. A GET of an oid that was never set fails the whole
    request with ERROR_IN_AGENT_REPLY, like an SNMPv1 noSuchName.

    Example:
        fake = FakeTransport()
        fake.set_value(oids.MAX_CHANGEABLE_MESSAGES, 50)
        gw = DMSGateway(fake)
        gw.restart_panel("10.0.0.5")
        assert fake.was_set(oids.SOFTWARE_RESET)
    """

    def __init__(self, values: Optional[dict] = None):
        self._values: dict[str, Any] = dict(values or {})
        self._failures: dict[tuple[Optional[str], str], ErrorKind] = {}
        self._requests: list[Request] = []
        self._lock = threading.Lock()
        self._closed = False

    # ─────────────────────────────────────────────────────────────────────
    # Configuration Methods (call these in test setup)
    # ─────────────────────────────────────────────────────────────────────

    def set_value(self, oid: str, value: Any) -> None:
        """Set the value the agent returns for `oid`."""
        with self._lock:
            self._values[oid] = value

    def set_values(self, values: dict) -> None:
        with self._lock:
            self._values.update(values)

    def set_message(
        self,
        number: int,
        multi_string: str = "",
        owner: str = "",
        crc: int = 0,
        memory_type: MemoryType = MemoryType.CHANGEABLE,
        status: MessageStatus = MessageStatus.VALID,
        beacon: int = 0,
        pixel_service: int = 0,
        run_time_priority: int = 3,
    ) -> None:
        """Populate every column of one message table row."""
        mt = int(memory_type)
        self.set_values(
            {
                oids.message_oid(oids.MESSAGE_MEMORY_TYPE, mt, number): mt,
                oids.message_oid(oids.MESSAGE_NUMBER, mt, number): number,
                oids.message_oid(oids.MESSAGE_MULTI_STRING, mt, number): multi_string.encode("latin-1"),
                oids.message_oid(oids.MESSAGE_OWNER, mt, number): owner.encode("latin-1"),
                oids.message_oid(oids.MESSAGE_CRC, mt, number): crc,
                oids.message_oid(oids.MESSAGE_BEACON, mt, number): beacon,
                oids.message_oid(oids.MESSAGE_PIXEL_SERVICE, mt, number): pixel_service,
                oids.message_oid(oids.MESSAGE_RUN_TIME_PRIORITY, mt, number): run_time_priority,
                oids.message_oid(oids.MESSAGE_STATUS, mt, number): int(status),
            }
        )

    def fail(self, kind: ErrorKind, oid: Optional[str] = None, request: str = "any") -> None:
        """Make requests fail with a TransportError.

        Args:
            kind: One of the transport error kinds
            oid: Fail only requests that include this oid (None = every request)
            request: "get", "set" or "any"
        """
        if not kind.is_transport:
            raise ValueError(f"{kind.name} is not a transport error kind")
        if request not in ("get", "set", "any"):
            raise ValueError(f"request must be 'get', 'set' or 'any', got {request!r}")
        with self._lock:
            self._failures[(oid, request)] = kind

    # ─────────────────────────────────────────────────────────────────────
    # Inspection Methods (call these in test assertions)
    # ─────────────────────────────────────────────────────────────────────

    @property
    def requests(self) -> list[Request]:
        """Every round trip, in order."""
        return self._requests.copy()

    @property
    def gets(self) -> list[str]:
        """Oids read, in order, flattened across requests."""
        return [oid for r in self._requests if r.kind == "get" for oid, _ in r.bindings]

    @property
    def sets(self) -> list[tuple[str, Any]]:
        """(oid, value) pairs written, in order, flattened across requests."""
        return [b for r in self._requests if r.kind == "set" for b in r.bindings]

    def was_set(self, oid: str) -> bool:
        return any(o == oid for o, _ in self.sets)

    def get_written_value(self, oid: str) -> Any:
        """Last value written to `oid`, or None."""
        for o, v in reversed(self.sets):
            if o == oid:
                return v
        return None

    def value(self, oid: str) -> Any:
        """Current agent value for `oid` (None if unset)."""
        return self._values.get(oid)

    def reset(self) -> None:
        """Clear values, failures and recorded requests."""
        with self._lock:
            self._values.clear()
            self._failures.clear()
            self._requests.clear()

    # ─────────────────────────────────────────────────────────────────────
    # Transport Interface
    # ─────────────────────────────────────────────────────────────────────

    def _failure_for(self, kind: str, bindings: Sequence[Binding]) -> Optional[ErrorKind]:
        for oid in [None] + [o for o, _ in bindings]:
            for scope in (kind, "any"):
                failure = self._failures.get((oid, scope))
                if failure is not None:
                    return failure
        return None

    def request(self, address: str, bindings: Sequence[Binding]) -> list[tuple[str, Any]]:
        if self._closed:
            raise RuntimeError("Transport is closed")
        kind = request_kind(bindings)
        with self._lock:
            self._requests.append(Request(kind, address, tuple(bindings)))
            failure = self._failure_for(kind, bindings)
            if failure is not None:
                raise TransportError(failure, address, "injected failure")
            if kind == "set":
                for oid, value in bindings:
                    self._values[oid] = value
                return [(oid, value) for oid, value in bindings]
            for index, (oid, _) in enumerate(bindings, start=1):
                if oid not in self._values:
                    raise TransportError(
                        ErrorKind.ERROR_IN_AGENT_REPLY,
                        address,
                        f"noSuchName at {oid}",
                        error_status=2,
                        error_index=index,
                    )
            return [(oid, self._values[oid]) for oid, _ in bindings]

    def close(self) -> None:
        self._closed = True


# ─────────────────────────────────────────────────────────────────────────────
# Optional pytest integration
# ─────────────────────────────────────────────────────────────────────────────

try:
    import pytest

    @pytest.fixture
    def fake_transport():
        """Pytest fixture providing a FakeTransport instance."""
        return FakeTransport()

except ImportError:
    # pytest not installed, fixtures not available
    pass
