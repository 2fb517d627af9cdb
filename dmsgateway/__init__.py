"""
dmsgateway - NTCIP 1203 dynamic message sign gateway over SNMPv1.

Quick start:
    import dmsgateway
    gw = dmsgateway.gateway()
    result = gw.get_status("10.0.0.5")
    if result.ok:
        print(result.value.current_message.text)

Every DMSGateway operation returns Result(kind, value); kind is ErrorKind.OK
on success.
"""

import logging
import os
import threading
from typing import Optional, TYPE_CHECKING

from dmsgateway.errors import ErrorKind, GatewayError, MessageValidationError, TransportError
from dmsgateway.multi import Line, MultiDocument, Page
from dmsgateway.transport import Transport
from dmsgateway.types import (
    Font,
    Graphic,
    GraphicStatus,
    GraphicUpload,
    IlluminationControl,
    MemoryType,
    Message,
    MessageStatus,
    PagedResult,
    PanelStatus,
    Result,
    ScheduleEntry,
    ScheduleId,
)
from dmsgateway.gateway import DMSGateway

if TYPE_CHECKING:
    from dmsgateway.transport.snmp import SNMPTransport

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Environment Variables (read at import)
# ─────────────────────────────────────────────────────────────────────────────


def _get_env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    """Get environment variable as int."""
    val = os.environ.get(name)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {val!r}")


def _get_env_float(name: str, default: Optional[float] = None) -> Optional[float]:
    """Get environment variable as float."""
    val = os.environ.get(name)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number, got {val!r}")


_env_port = _get_env_int("DMSGW_SNMP_PORT")
_env_community = os.environ.get("DMSGW_SNMP_COMMUNITY")
_env_timeout = _get_env_float("DMSGW_SNMP_TIMEOUT")
_env_retries = _get_env_int("DMSGW_SNMP_RETRIES")


# ─────────────────────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────────────────────

_config_lock = threading.Lock()

# User-configured settings (set via configure())
_config_port: Optional[int] = None
_config_community: Optional[str] = None
_config_timeout: Optional[float] = None
_config_retries: Optional[int] = None


def configure(
    port: Optional[int] = None,
    community: Optional[str] = None,
    timeout: Optional[float] = None,
    retries: Optional[int] = None,
) -> None:
    """Override SNMP settings for transports created afterwards.

    Args:
        port: Agent UDP port (default: from DMSGW_SNMP_PORT or 161)
        community: SNMP community (default: from DMSGW_SNMP_COMMUNITY or "public")
        timeout: Reply timeout in seconds (default: from DMSGW_SNMP_TIMEOUT or 9.52)
        retries: Resends after a timeout (default: from DMSGW_SNMP_RETRIES or 1)
    """
    global _config_port, _config_community, _config_timeout, _config_retries

    with _config_lock:
        if port is not None:
            _config_port = port
        if community is not None:
            _config_community = community
        if timeout is not None:
            _config_timeout = timeout
        if retries is not None:
            _config_retries = retries


def _reset_config() -> None:
    """Drop configure() overrides (used by tests)."""
    global _config_port, _config_community, _config_timeout, _config_retries

    with _config_lock:
        _config_port = _config_community = _config_timeout = _config_retries = None


def _resolve(explicit, configured, env, default):
    for value in (explicit, configured, env):
        if value is not None:
            return value
    return default


# ─────────────────────────────────────────────────────────────────────────────
# Factories
# ─────────────────────────────────────────────────────────────────────────────


def snmp(
    port: Optional[int] = None,
    community: Optional[str] = None,
    timeout: Optional[float] = None,
    retries: Optional[int] = None,
) -> "SNMPTransport":
    """Create an SNMPv1 transport.

    Each argument falls back to configure(), then the environment, then
    the built-in default.

    Example:
        with dmsgateway.snmp(community="administrator") as t:
            gw = DMSGateway(t)
    """
    from dmsgateway.transport.snmp import (
        DEFAULT_COMMUNITY,
        DEFAULT_PORT,
        DEFAULT_RETRIES,
        DEFAULT_TIMEOUT,
        SNMPTransport,
    )

    with _config_lock:
        effective_port = _resolve(port, _config_port, _env_port, DEFAULT_PORT)
        effective_community = _resolve(community, _config_community, _env_community, DEFAULT_COMMUNITY)
        effective_timeout = _resolve(timeout, _config_timeout, _env_timeout, DEFAULT_TIMEOUT)
        effective_retries = _resolve(retries, _config_retries, _env_retries, DEFAULT_RETRIES)

    return SNMPTransport(
        port=effective_port,
        community=effective_community,
        timeout=effective_timeout,
        retries=effective_retries,
    )


def gateway(transport: Optional[Transport] = None) -> DMSGateway:
    """Create a DMSGateway, building an SNMP transport from settings when none is given."""
    return DMSGateway(transport if transport is not None else snmp())


__all__ = [
    "__version__",
    # Gateway
    "DMSGateway",
    "Transport",
    "Result",
    # Errors
    "ErrorKind",
    "GatewayError",
    "TransportError",
    "MessageValidationError",
    # Types
    "MemoryType",
    "MessageStatus",
    "GraphicStatus",
    "IlluminationControl",
    "Message",
    "Font",
    "Graphic",
    "GraphicUpload",
    "ScheduleId",
    "ScheduleEntry",
    "PanelStatus",
    "PagedResult",
    # MULTI
    "MultiDocument",
    "Page",
    "Line",
    # Configuration
    "configure",
    # Factories
    "snmp",
    "gateway",
]

# Testing utilities (import explicitly when needed):
# from dmsgateway.testing import FakeTransport
