"""
Tests for the pysnmp-backed transport.

No network: the pysnmp command coroutines are patched, so these tests cover
value conversion and the mapping of pysnmp outcomes to TransportError.
"""

import asyncio
import threading
from unittest import mock

import pytest
from pysnmp.proto import errind, rfc1902

from dmsgateway import oids
from dmsgateway.errors import ErrorKind, TransportError
from dmsgateway.transport.snmp import SNMPTransport, from_snmp, to_snmp

ADDRESS = "10.0.0.5"


class TestToSnmp:
    def test_int(self):
        value = to_snmp(5)
        assert isinstance(value, rfc1902.Integer32)
        assert int(value) == 5

    def test_bool(self):
        assert int(to_snmp(True)) == 1

    def test_bytes(self):
        value = to_snmp(b"\xff\x00")
        assert isinstance(value, rfc1902.OctetString)
        assert value.asOctets() == b"\xff\x00"

    def test_str_latin1(self):
        assert to_snmp("Ä[jl3]").asOctets() == "Ä[jl3]".encode("latin-1")

    def test_object_identifier(self):
        value = to_snmp(oids.action_pointer(3))
        assert isinstance(value, rfc1902.ObjectIdentifier)
        assert str(value) == "1.3.6.1.4.1.1206.4.2.3.8.2.1.1.3"

    def test_plain_str_is_not_oid(self):
        assert isinstance(to_snmp("1.3.6.1"), rfc1902.OctetString)

    def test_unsupported(self):
        with pytest.raises(TypeError):
            to_snmp(1.5)


class TestFromSnmp:
    def test_integer(self):
        assert from_snmp(rfc1902.Integer32(-3)) == -3

    def test_gauge(self):
        assert from_snmp(rfc1902.Gauge32(7)) == 7

    def test_octets(self):
        assert from_snmp(rfc1902.OctetString(b"\x01\x02")) == b"\x01\x02"

    def test_object_identifier(self):
        assert from_snmp(rfc1902.ObjectIdentifier("1.3.6.1.4.1.1206.4.2.3.8.2.1.1.3")) == (
            "1.3.6.1.4.1.1206.4.2.3.8.2.1.1.3"
        )


class TestConstructor:
    @pytest.mark.parametrize(
        "kwargs",
        [dict(port=0), dict(port=70000), dict(timeout=0), dict(retries=-1)],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            SNMPTransport(**kwargs)

    def test_repr(self):
        assert repr(SNMPTransport(community="private")) == (
            "SNMPTransport(port=161, community='private', timeout=9.52, retries=1)"
        )

    def test_closed(self):
        transport = SNMPTransport()
        transport.close()
        with pytest.raises(RuntimeError):
            transport.request(ADDRESS, [(oids.SIGN_WIDTH, None)])

    def test_mixed_bindings(self):
        with pytest.raises(ValueError):
            SNMPTransport().request(ADDRESS, [(oids.SIGN_WIDTH, None), (oids.SOFTWARE_RESET, 1)])


@pytest.fixture
def patched():
    """Patch pysnmp's engine, target and commands; yields (engine, get_cmd, set_cmd)."""
    with (
        mock.patch("dmsgateway.transport.snmp.SnmpEngine") as engine,
        mock.patch("dmsgateway.transport.snmp.UdpTransportTarget") as target,
        mock.patch("dmsgateway.transport.snmp.get_cmd", new_callable=mock.AsyncMock) as get_cmd,
        mock.patch("dmsgateway.transport.snmp.set_cmd", new_callable=mock.AsyncMock) as set_cmd,
    ):
        target.create = mock.AsyncMock(return_value=mock.sentinel.target)
        yield engine, get_cmd, set_cmd


@pytest.fixture
def transport():
    t = SNMPTransport()
    yield t
    t.close()


class TestRequest:
    """request() outcome mapping."""

    def test_get(self, patched, transport):
        engine, get_cmd, _ = patched
        get_cmd.return_value = (
            None,
            0,
            0,
            [(rfc1902.ObjectName(oids.SIGN_WIDTH), rfc1902.Integer32(144))],
        )

        reply = transport.request(ADDRESS, [(oids.SIGN_WIDTH, None)])

        assert reply == [(oids.SIGN_WIDTH, 144)]
        engine.return_value.close_dispatcher.assert_called_once()

    def test_set_uses_set_cmd(self, patched, transport):
        _, get_cmd, set_cmd = patched
        set_cmd.return_value = (None, 0, 0, [(rfc1902.ObjectName(oids.SOFTWARE_RESET), rfc1902.Integer32(1))])

        assert transport.request(ADDRESS, [(oids.SOFTWARE_RESET, 1)]) == [(oids.SOFTWARE_RESET, 1)]
        set_cmd.assert_awaited_once()
        get_cmd.assert_not_awaited()

    def test_timeout(self, patched, transport):
        _, get_cmd, _ = patched
        get_cmd.return_value = (errind.RequestTimedOut(), 0, 0, [])

        with pytest.raises(TransportError) as exc_info:
            transport.request(ADDRESS, [(oids.SIGN_WIDTH, None)])
        assert exc_info.value.kind == ErrorKind.NO_RESPONSE_FROM_AGENT

    def test_other_indication(self, patched, transport):
        _, get_cmd, _ = patched
        get_cmd.return_value = ("unknown engine id", 0, 0, [])

        with pytest.raises(TransportError) as exc_info:
            transport.request(ADDRESS, [(oids.SIGN_WIDTH, None)])
        assert exc_info.value.kind == ErrorKind.NETWORK_EXCEPTION

    def test_error_status(self, patched, transport):
        _, get_cmd, _ = patched
        get_cmd.return_value = (None, rfc1902.Integer32(2), rfc1902.Integer32(2), [])

        with pytest.raises(TransportError) as exc_info:
            transport.request(ADDRESS, [(oids.SIGN_WIDTH, None), (oids.SIGN_HEIGHT, None)])
        error = exc_info.value
        assert error.kind == ErrorKind.ERROR_IN_AGENT_REPLY
        assert (error.error_status, error.error_index) == (2, 2)
        assert oids.SIGN_HEIGHT in str(error)

    def test_socket_error(self, patched, transport):
        _, get_cmd, _ = patched
        get_cmd.side_effect = OSError("Network is unreachable")

        with pytest.raises(TransportError) as exc_info:
            transport.request(ADDRESS, [(oids.SIGN_WIDTH, None)])
        assert exc_info.value.kind == ErrorKind.NETWORK_EXCEPTION
        assert isinstance(exc_info.value.__cause__, OSError)


class TestReactor:
    """Requests run on the transport's own loop thread."""

    def test_request_inside_running_loop(self, patched, transport):
        _, get_cmd, _ = patched
        get_cmd.return_value = (None, 0, 0, [(rfc1902.ObjectName(oids.SIGN_WIDTH), rfc1902.Integer32(144))])

        async def handler():
            return transport.request(ADDRESS, [(oids.SIGN_WIDTH, None)])

        assert asyncio.run(handler()) == [(oids.SIGN_WIDTH, 144)]

    def test_timeout_inside_running_loop(self, patched, transport):
        _, get_cmd, _ = patched
        get_cmd.return_value = (errind.RequestTimedOut(), 0, 0, [])

        async def handler():
            transport.request(ADDRESS, [(oids.SIGN_WIDTH, None)])

        with pytest.raises(TransportError) as exc_info:
            asyncio.run(handler())
        assert exc_info.value.kind == ErrorKind.NO_RESPONSE_FROM_AGENT

    def test_one_reactor_thread_reused(self, patched, transport):
        _, get_cmd, _ = patched
        callers = []

        async def record(*args, **kwargs):
            callers.append(threading.current_thread().name)
            return None, 0, 0, []

        get_cmd.side_effect = record
        transport.request(ADDRESS, [(oids.SIGN_WIDTH, None)])
        transport.request(ADDRESS, [(oids.SIGN_HEIGHT, None)])

        assert callers == ["SNMP-Reactor", "SNMP-Reactor"]

    def test_close_stops_reactor(self, patched):
        _, get_cmd, _ = patched
        get_cmd.return_value = (None, 0, 0, [])
        transport = SNMPTransport()
        transport.request(ADDRESS, [(oids.SIGN_WIDTH, None)])
        thread = transport._reactor_thread
        assert thread.is_alive()

        transport.close()

        assert not thread.is_alive()
        with pytest.raises(RuntimeError):
            transport.request(ADDRESS, [(oids.SIGN_WIDTH, None)])

    def test_close_without_requests(self):
        transport = SNMPTransport()
        transport.close()
        assert transport._reactor_thread is None
