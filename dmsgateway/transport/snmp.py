"""
SNMPv1 transport over pysnmp.

Each request() runs one GET or SET with a fresh SnmpEngine on a private
asyncio loop owned by a daemon reactor thread, so transports can be shared
between threads and called from synchronous code or from inside a running
event loop.
"""

import asyncio
import logging
import threading
from typing import Any, Optional, Sequence

from pyasn1.type import univ
from pysnmp.hlapi.v3arch.asyncio import (
    CommunityData,
    ContextData,
    ObjectIdentity,
    ObjectType,
    SnmpEngine,
    UdpTransportTarget,
    get_cmd,
    set_cmd,
)
from pysnmp.proto import errind, rfc1902

from dmsgateway.errors import ErrorKind, TransportError
from dmsgateway.oids import ObjectIdentifierValue
from dmsgateway.transport import Binding, Transport, request_kind

logger = logging.getLogger(__name__)

DEFAULT_PORT = 161
DEFAULT_COMMUNITY = "public"
DEFAULT_TIMEOUT = 9.52
DEFAULT_RETRIES = 1


def to_snmp(value: Any):
    """Convert a Python value to the rfc1902 type the sign expects."""
    if isinstance(value, ObjectIdentifierValue):
        return rfc1902.ObjectIdentifier(str(value))
    if isinstance(value, bool):
        return rfc1902.Integer32(int(value))
    if isinstance(value, int):
        return rfc1902.Integer32(value)
    if isinstance(value, (bytes, bytearray)):
        return rfc1902.OctetString(bytes(value))
    if isinstance(value, str):
        return rfc1902.OctetString(value.encode("latin-1"))
    raise TypeError(f"Cannot encode {type(value).__name__} as an SNMP value")


def from_snmp(value) -> Any:
    """Convert a pysnmp/pyasn1 value to int, bytes or a dotted OID string."""
    if isinstance(value, univ.ObjectIdentifier):
        return str(value)
    if isinstance(value, univ.OctetString):
        return value.asOctets()
    if isinstance(value, univ.Integer):
        return int(value)
    if isinstance(value, univ.Null):
        return None
    # Counter32, Gauge32, TimeTicks
    try:
        return int(value)
    except (TypeError, ValueError):
        return value.prettyPrint()


class SNMPTransport(Transport):
    """
    SNMPv1 transport (community-based, one UDP exchange per request).

    Args:
        port: Agent UDP port (default: 161)
        community: Community string (default: "public")
        timeout: Seconds to wait for each reply (default: 9.52)
        retries: Resends after a timeout (default: 1)

    Example:
        with SNMPTransport(community="administrator") as t:
            t.request("10.0.0.5", [(oids.SIGN_WIDTH, None)])
    """

    def __init__(
        self,
        port: int = DEFAULT_PORT,
        community: str = DEFAULT_COMMUNITY,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = DEFAULT_RETRIES,
    ):
        if not 0 < port < 65536:
            raise ValueError(f"port must be 1..65535, got {port}")
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        if retries < 0:
            raise ValueError(f"retries must be non-negative, got {retries}")
        self._port = port
        self._community = community
        self._timeout = timeout
        self._retries = retries
        self._closed = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._reactor_thread: Optional[threading.Thread] = None
        self._reactor_lock = threading.Lock()

    @property
    def port(self) -> int:
        return self._port

    @property
    def community(self) -> str:
        return self._community

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def retries(self) -> int:
        return self._retries

    def request(self, address: str, bindings: Sequence[Binding]) -> list[tuple[str, Any]]:
        if self._closed:
            raise RuntimeError("Transport is closed")
        kind = request_kind(bindings)
        logger.debug("SNMP %s %s: %s", kind.upper(), address, [oid for oid, _ in bindings])
        loop = self._start_reactor()
        future = asyncio.run_coroutine_threadsafe(self._request(address, kind, bindings), loop)
        try:
            return future.result()
        except TransportError:
            raise
        except OSError as e:
            raise TransportError(ErrorKind.NETWORK_EXCEPTION, address, str(e)) from e

    # ─────────────────────────────────────────────────────────────────────────
    # Reactor
    # ─────────────────────────────────────────────────────────────────────────

    def _start_reactor(self) -> asyncio.AbstractEventLoop:
        """Start the reactor thread on first use and return its loop."""
        with self._reactor_lock:
            if self._loop is not None:
                return self._loop
            ready = threading.Event()
            loop_holder: list[asyncio.AbstractEventLoop] = []

            def _run():
                loop = asyncio.new_event_loop()
                asyncio.set_event_loop(loop)
                loop_holder.append(loop)
                ready.set()
                loop.run_forever()
                pending = asyncio.all_tasks(loop)
                for t in pending:
                    t.cancel()
                if pending:
                    loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
                loop.close()

            self._reactor_thread = threading.Thread(target=_run, name="SNMP-Reactor", daemon=True)
            self._reactor_thread.start()
            ready.wait(timeout=5.0)
            if not loop_holder:
                raise RuntimeError("Failed to start SNMP reactor")
            self._loop = loop_holder[0]
            return self._loop

    async def _request(self, address: str, kind: str, bindings: Sequence[Binding]) -> list[tuple[str, Any]]:
        engine = SnmpEngine()
        try:
            target = await UdpTransportTarget.create(
                (address, self._port), timeout=self._timeout, retries=self._retries
            )
            if kind == "get":
                objects = [ObjectType(ObjectIdentity(oid)) for oid, _ in bindings]
                command = get_cmd
            else:
                objects = [ObjectType(ObjectIdentity(oid), to_snmp(value)) for oid, value in bindings]
                command = set_cmd
            error_indication, error_status, error_index, var_binds = await command(
                engine,
                CommunityData(self._community, mpModel=0),
                target,
                ContextData(),
                *objects,
                lookupMib=False,
            )
        finally:
            engine.close_dispatcher()

        if error_indication:
            raise _indication_error(address, error_indication)
        if error_status:
            index = int(error_index)
            failed = bindings[index - 1][0] if 0 < index <= len(bindings) else None
            raise TransportError(
                ErrorKind.ERROR_IN_AGENT_REPLY,
                address,
                f"{error_status.prettyPrint()} at {failed or index}",
                error_status=int(error_status),
                error_index=index,
            )
        return [(str(oid), from_snmp(value)) for oid, value in var_binds]

    def close(self) -> None:
        """Stop the reactor thread. Further requests raise RuntimeError."""
        self._closed = True
        with self._reactor_lock:
            if self._loop is not None:
                self._loop.call_soon_threadsafe(self._loop.stop)
            if self._reactor_thread is not None and self._reactor_thread.is_alive():
                self._reactor_thread.join(timeout=2.0)
            self._loop = None
            self._reactor_thread = None

    def __repr__(self) -> str:
        return (
            f"SNMPTransport(port={self._port}, community={self._community!r}, "
            f"timeout={self._timeout}, retries={self._retries})"
        )


def _indication_error(address: str, indication) -> TransportError:
    if isinstance(indication, errind.RequestTimedOut):
        return TransportError(ErrorKind.NO_RESPONSE_FROM_AGENT, address, str(indication))
    return TransportError(ErrorKind.NETWORK_EXCEPTION, address, str(indication))


__all__ = ["SNMPTransport", "to_snmp", "from_snmp"]
