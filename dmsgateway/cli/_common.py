"""Shared CLI infrastructure for dms-status/dms-message."""

import argparse
import dataclasses
import json
import logging
import sys
from datetime import datetime
from enum import IntEnum
from typing import Any, Callable

import dmsgateway
from dmsgateway.gateway import DMSGateway
from dmsgateway.types import Result

# Exit codes
EXIT_OK = 0
EXIT_DEVICE_ERROR = 1
EXIT_USAGE_ERROR = 2


def base_parser(description: str) -> argparse.ArgumentParser:
    """Create ArgumentParser with common flags shared by all CLI tools."""
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("address", help="sign IPv4 address")
    parser.add_argument("-P", "--port", type=int, default=None, help="SNMP port (default: 161)")
    parser.add_argument("-c", "--community", default=None, help="SNMP community (default: public)")
    parser.add_argument("--timeout", type=float, default=None, help="reply timeout in seconds (default: 9.52)")
    parser.add_argument("--retries", type=int, default=None, help="resends after a timeout (default: 1)")
    parser.add_argument(
        "--format", dest="output_format", choices=("text", "json"), default="text", help="output format"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="verbose output (debug logging)")
    return parser


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def make_gateway(args) -> DMSGateway:
    """Create gateway via dmsgateway factory functions based on parsed args."""
    transport = dmsgateway.snmp(
        port=args.port,
        community=args.community,
        timeout=args.timeout,
        retries=args.retries,
    )
    return dmsgateway.gateway(transport)


def json_safe(value: Any) -> Any:
    """Convert result values (dataclasses, enums, datetimes, bytes) to JSON-native types."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: json_safe(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, IntEnum):
        return value.name.lower()
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [json_safe(v) for v in value]
    if isinstance(value, dict):
        return {str(k): json_safe(v) for k, v in value.items()}
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def format_result(result: Result, *, fmt: str, render: Callable[[Any], str]) -> str:
    """Format a gateway Result for output.

    fmt="json": {"ok", "kind", "value"} dict.
    fmt="text": render(value) on success, "[ERROR] KIND" otherwise.
    """
    if fmt == "json":
        return json.dumps({"ok": result.ok, "kind": result.kind.name, "value": json_safe(result.value)})
    if not result.ok:
        return f"[ERROR] {result.kind.name} ({int(result.kind)})"
    return render(result.value)


def exit_code(result: Result) -> int:
    return EXIT_OK if result.ok else EXIT_DEVICE_ERROR
