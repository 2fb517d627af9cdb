"""
Transport abstract base class.

A transport performs exactly one SNMP request/response round trip per
request() call. Retries and timeouts belong to the transport; the gateway
never retries.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

Binding = tuple[str, Optional[Any]]


def request_kind(bindings: Sequence[Binding]) -> str:
    """Return "get" if every value is None, "set" if none is.

    Raises:
        ValueError: If bindings is empty or mixes reads and writes
    """
    if not bindings:
        raise ValueError("bindings must not be empty")
    reads = sum(1 for _, value in bindings if value is None)
    if reads == len(bindings):
        return "get"
    if reads == 0:
        return "set"
    raise ValueError("Cannot mix GET (value=None) and SET bindings in one request")


class Transport(ABC):
    """
    Abstract base class for device transports.

    Lifecycle:
        - Use as context manager: `with SNMPTransport() as t: ...`
        - Or call close() when done
    """

    @abstractmethod
    def request(self, address: str, bindings: Sequence[Binding]) -> list[tuple[str, Any]]:
        """
        Perform one GET or SET round trip.

        Args:
            address: Device IPv4 address
            bindings: (oid, value) pairs; all values None for a GET,
                all values set for a SET

        Returns:
            (oid, value) pairs echoed by the agent, in request order. Values
            are int, bytes or str (object identifiers).

        Raises:
            ValueError: If bindings mix GET and SET
            TransportError: If the round trip fails
        """

    def close(self) -> None:
        """Release transport resources. Safe to call multiple times."""

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False


__all__ = ["Transport", "Binding", "request_kind"]
