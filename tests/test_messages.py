"""
Tests for the message lifecycle engine.

Tests cover:
- Validation code classification and the activation frame layout
- Reading messages, the current buffer and paged listings
- The three-step write, rejection by the sign, blanking and activation
"""

import pytest

from dmsgateway import oids
from dmsgateway.errors import ErrorKind, GatewayError, MessageValidationError, TransportError
from dmsgateway.messages import build_activation_frame, classify_validation
from dmsgateway.multi import BLANK_MULTI, Line, MultiDocument, Page
from dmsgateway.types import MemoryType, MessageStatus

from tests.conftest import ADDRESS, MAX_MESSAGES, message_crc


def _status_oid(number):
    return oids.message_oid(oids.MESSAGE_STATUS, MemoryType.CHANGEABLE, number)


def _multi_oid(number):
    return oids.message_oid(oids.MESSAGE_MULTI_STRING, MemoryType.CHANGEABLE, number)


def _activation_sets(fake):
    return [value for oid, value in fake.sets if oid == oids.ACTIVATE_MESSAGE]


# ─────────────────────────────────────────────────────────────────────────────
# Pure helpers
# ─────────────────────────────────────────────────────────────────────────────


class TestClassifyValidation:
    """classify_validation() maps sign codes to ErrorKind."""

    @pytest.mark.parametrize("syntax", [0, 1, 6, 99])
    def test_no_error_ignores_syntax(self, syntax):
        assert classify_validation(2, syntax) == ErrorKind.OK

    @pytest.mark.parametrize(
        "validate, kind",
        [
            (1, ErrorKind.MESSAGE_ERROR_OTHER),
            (3, ErrorKind.MESSAGE_ERROR_BEACONS),
            (4, ErrorKind.MESSAGE_ERROR_PIXEL_SERVICE),
        ],
    )
    def test_validate_errors(self, validate, kind):
        assert classify_validation(validate, 0) == kind

    @pytest.mark.parametrize(
        "syntax, kind",
        [
            (1, ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_OTHER),
            (3, ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_UNSUPPORTED_TAG),
            (6, ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_FONT_NOT_DEFINED),
            (12, ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_TOO_MANY_PAGES),
            (15, ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_GRAPHIC_NOT_DEFINED),
        ],
    )
    def test_syntax_errors(self, syntax, kind):
        assert classify_validation(5, syntax) == kind

    @pytest.mark.parametrize("validate, syntax", [(5, 2), (5, 16), (0, 0), (9, 0)])
    def test_unmapped_codes(self, validate, syntax):
        assert classify_validation(validate, syntax) == ErrorKind.EXCEPTION

    def test_every_syntax_kind_is_message_error(self):
        for syntax in [1] + list(range(3, 16)):
            assert classify_validation(5, syntax).is_message_error


class TestActivationFrame:
    """build_activation_frame() layout."""

    def test_layout(self):
        frame = build_activation_frame(3, 5, 0xABCD, "192.168.1.20")
        assert frame == bytes([0xFF, 0xFF, 0xFF, 3, 0x00, 0x05, 0xAB, 0xCD, 192, 168, 1, 20])

    def test_large_number(self):
        assert build_activation_frame(3, 300, 0, "10.0.0.1")[4:6] == b"\x01\x2c"

    @pytest.mark.parametrize("address", ["sign.local", "10.0.0", "::1"])
    def test_invalid_address(self, address):
        with pytest.raises(GatewayError) as exc_info:
            build_activation_frame(3, 1, 0, address)
        assert exc_info.value.kind == ErrorKind.INVALID_MODEL


# ─────────────────────────────────────────────────────────────────────────────
# Reads
# ─────────────────────────────────────────────────────────────────────────────


class TestReadMessage:
    """read_message(), read_current() and list_messages()."""

    def test_read(self, messages):
        message = messages.read_message(ADDRESS, 3)
        assert message.number == 3
        assert message.memory_type == MemoryType.CHANGEABLE
        assert message.multi_string == "[jl3]MSG3"
        assert message.text == "MSG3"
        assert message.owner == "user3"
        assert message.crc == message_crc(3)
        assert message.status == MessageStatus.VALID
        assert message.document is None
        assert not message.is_active

    def test_with_document(self, messages):
        message = messages.read_message(ADDRESS, 3, with_document=True)
        assert message.document.pages[0].lines[0].text == "MSG3"

    def test_active_owner(self, messages):
        assert messages.read_message(ADDRESS, 2, active_owner="ops").is_active
        assert not messages.read_message(ADDRESS, 3, active_owner="ops").is_active

    def test_empty_owner_never_active(self, messages, sign):
        sign.set_message(4, "[jl3]X", owner="")
        assert not messages.read_message(ADDRESS, 4, active_owner="").is_active

    @pytest.mark.parametrize("number", [0, MAX_MESSAGES + 1])
    def test_out_of_range(self, messages, sign, number):
        """Slot is checked before any message column is read."""
        with pytest.raises(GatewayError) as exc_info:
            messages.read_message(ADDRESS, number)
        assert exc_info.value.kind == ErrorKind.WRONG_MESSAGE_ID
        assert sign.gets == [oids.MAX_CHANGEABLE_MESSAGES]

    def test_current_buffer(self, messages, sign):
        current = messages.read_current(ADDRESS)
        assert current.memory_type == MemoryType.CURRENT_BUFFER
        assert current.owner == "ops"
        assert oids.MAX_CHANGEABLE_MESSAGES not in sign.gets

    def test_unknown_status_maps_to_unknown(self, messages, sign):
        sign.set_value(_status_oid(3), 42)
        assert messages.read_message(ADDRESS, 3).status == MessageStatus.UNKNOWN

    def test_list_all(self, messages):
        page = messages.list_messages(ADDRESS, 0, -1)
        assert page.total_count == MAX_MESSAGES
        assert [m.number for m in page] == list(range(1, MAX_MESSAGES + 1))
        assert [m.number for m in page if m.is_active] == [2]

    def test_list_page(self, messages, sign):
        page = messages.list_messages(ADDRESS, 1, 3)
        assert [m.number for m in page] == [4, 5, 6]
        assert page.page == 1
        assert page.page_size == 3

    def test_list_reads_current_buffer_first(self, messages, sign):
        messages.list_messages(ADDRESS, 0, 1)
        first = sign.requests[0]
        assert first.bindings[0][0] == oids.message_oid(oids.MESSAGE_MULTI_STRING, MemoryType.CURRENT_BUFFER, 1)


# ─────────────────────────────────────────────────────────────────────────────
# Writes
# ─────────────────────────────────────────────────────────────────────────────


class TestWriteMessage:
    """write_message(): modifyReq, validateReq, read-back, optional activation."""

    def test_valid_message_activated(self, messages, sign):
        """A valid message in slot 5 produces exactly one activation frame."""
        outcome = messages.write_message(ADDRESS, 5, multi_string="[jl3]HELLO", owner="ops", activate=True)

        assert outcome.kind == ErrorKind.OK
        assert outcome.crc == message_crc(5)
        frames = _activation_sets(sign)
        assert frames == [bytes([0xFF, 0xFF, 0xFF, 3, 0, 5, 0x10, 0x05, 10, 0, 0, 5])]

    def test_step_order(self, messages, sign):
        messages.write_message(ADDRESS, 5, multi_string="[jl3]HELLO", owner="ops")

        set_requests = [r.bindings for r in sign.requests if r.kind == "set"]
        assert set_requests[0] == ((_status_oid(5), int(MessageStatus.MODIFY_REQ)),)
        assert set_requests[1] == (
            (_multi_oid(5), "[jl3]HELLO"),
            (oids.message_oid(oids.MESSAGE_OWNER, MemoryType.CHANGEABLE, 5), "ops"),
            (_status_oid(5), int(MessageStatus.VALIDATE_REQ)),
        )
        assert len(set_requests) == 2
        last = sign.requests[-1]
        assert last.kind == "get"
        assert [oid for oid, _ in last.bindings][-3:] == [
            oids.VALIDATE_MESSAGE_ERROR,
            oids.MULTI_SYNTAX_ERROR,
            oids.MULTI_SYNTAX_ERROR_POSITION,
        ]

    def test_document_rendered(self, messages, sign):
        doc = MultiDocument(pages=[Page(font=1, lines=[Line(0, 3, "HI")])])
        outcome = messages.write_message(ADDRESS, 5, document=doc)
        assert outcome.multi_string == "[pt0o][pb0,0,0][jp0][fo1][tr0,0,0,0][cf0,0,0][nl0][jl3][sc0]HI[/sc]"

    def test_not_activated_by_default(self, messages, sign):
        messages.write_message(ADDRESS, 5, multi_string="[jl3]HELLO")
        assert _activation_sets(sign) == []

    def test_rejected_by_sign(self, messages, sign):
        """validate=5 / syntax=6 raises FONT_NOT_DEFINED and nothing is activated."""
        sign.set_values({oids.VALIDATE_MESSAGE_ERROR: 5, oids.MULTI_SYNTAX_ERROR: 6, oids.MULTI_SYNTAX_ERROR_POSITION: 4})

        with pytest.raises(MessageValidationError) as exc_info:
            messages.write_message(ADDRESS, 5, multi_string="[fo9]HELLO", activate=True)

        error = exc_info.value
        assert error.kind == ErrorKind.MESSAGE_ERROR_SYNTAX_MULTI_FONT_NOT_DEFINED
        assert (error.validate_error, error.syntax_error, error.position) == (5, 6, 4)
        assert not sign.was_set(oids.ACTIVATE_MESSAGE)

    @pytest.mark.parametrize("number", [0, MAX_MESSAGES + 1])
    def test_wrong_id_before_any_write(self, messages, sign, number):
        with pytest.raises(GatewayError) as exc_info:
            messages.write_message(ADDRESS, number, multi_string="[jl3]HELLO")
        assert exc_info.value.kind == ErrorKind.WRONG_MESSAGE_ID
        assert sign.sets == []
        assert sign.gets == [oids.MAX_CHANGEABLE_MESSAGES]

    def test_empty_text_rejected(self, messages, sign):
        with pytest.raises(GatewayError) as exc_info:
            messages.write_message(ADDRESS, 5, multi_string="")
        assert exc_info.value.kind == ErrorKind.INVALID_MODEL
        assert sign.sets == []

    def test_empty_document_rejected(self, messages):
        with pytest.raises(GatewayError) as exc_info:
            messages.write_message(ADDRESS, 5, document=MultiDocument())
        assert exc_info.value.kind == ErrorKind.INVALID_MODEL

    def test_transport_failure_stops_sequence(self, messages, sign):
        """A failed validateReq aborts before the read-back."""
        sign.fail(ErrorKind.NO_RESPONSE_FROM_AGENT, oid=_multi_oid(5), request="set")

        with pytest.raises(TransportError) as exc_info:
            messages.write_message(ADDRESS, 5, multi_string="[jl3]HELLO")

        assert exc_info.value.kind == ErrorKind.NO_RESPONSE_FROM_AGENT
        assert oids.VALIDATE_MESSAGE_ERROR not in sign.gets


class TestDeleteMessage:
    def test_writes_blank_with_slot_owner(self, messages, sign):
        messages.delete_message(ADDRESS, 6)
        assert sign.get_written_value(_multi_oid(6)) == BLANK_MULTI
        assert sign.get_written_value(oids.message_oid(oids.MESSAGE_OWNER, MemoryType.CHANGEABLE, 6)) == "6"
        assert not sign.was_set(oids.ACTIVATE_MESSAGE)

    def test_wrong_id(self, messages):
        with pytest.raises(GatewayError) as exc_info:
            messages.delete_message(ADDRESS, MAX_MESSAGES + 1)
        assert exc_info.value.kind == ErrorKind.WRONG_MESSAGE_ID


class TestActivateMessage:
    def test_activate_uses_stored_crc(self, messages, sign):
        messages.activate_message(ADDRESS, 7)
        assert _activation_sets(sign) == [build_activation_frame(3, 7, message_crc(7), ADDRESS)]

    def test_deactivate_sends_blank(self, messages, sign):
        messages.activate_message(ADDRESS, 7, activate=False)
        assert _activation_sets(sign) == [bytes([0xFF, 0xFF, 0xFF, 7, 0, 1, 0, 0, 10, 0, 0, 5])]

    def test_wrong_id(self, messages, sign):
        with pytest.raises(GatewayError) as exc_info:
            messages.activate_message(ADDRESS, 0)
        assert exc_info.value.kind == ErrorKind.WRONG_MESSAGE_ID
        assert sign.sets == []
