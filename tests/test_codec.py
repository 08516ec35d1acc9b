import json
import struct

import pytest

from turn_relay.codec import (
    DECISION,
    FIELD_HEADER,
    HEADER,
    TAG_PAYLOAD,
    TAG_PLAYER_NAME,
    TAG_STATE_ID,
    MalformedMessage,
    MessageCodec,
)
from turn_relay.models.dc_models import DEFAULT_DECISION, DecisionModel, DecisionType
from tests.conftest import turn_bytes, valid_payload


def field(tag, value):
    return FIELD_HEADER.pack(tag, len(value)) + value


def frame(*fields, magic=b"MT", version=1):
    return HEADER.pack(magic, version) + b"".join(fields)


NAME = field(TAG_PLAYER_NAME, b"Alice")
STATE = field(TAG_STATE_ID, struct.pack("!q", 7))
PAYLOAD = field(TAG_PAYLOAD, json.dumps(valid_payload()).encode())


class TestDecodeTurn:
    def test_decode_valid_turn(self, codec):
        turn = codec.decode_turn(turn_bytes("Alice", state_id=42))

        assert turn.player_name == "Alice"
        assert turn.game_state.state_id == 42
        assert turn.game_state.payload == valid_payload("Alice")

    def test_field_order_does_not_matter(self, codec):
        turn = codec.decode_turn(frame(PAYLOAD, STATE, NAME))

        assert turn.player_name == "Alice"
        assert turn.game_state.state_id == 7

    def test_negative_state_id(self, codec):
        turn = codec.decode_turn(turn_bytes(state_id=-5))
        assert turn.game_state.state_id == -5

    @pytest.mark.parametrize(
        "data",
        [
            b"",
            b"M",
            frame(NAME, STATE, PAYLOAD, magic=b"XX"),
            frame(NAME, STATE, PAYLOAD, version=2),
        ],
        ids=["empty", "short-header", "bad-magic", "bad-version"],
    )
    def test_bad_header(self, codec, data):
        with pytest.raises(MalformedMessage):
            codec.decode_turn(data)

    def test_unknown_tag(self, codec):
        with pytest.raises(MalformedMessage, match="bad tag"):
            codec.decode_turn(frame(NAME, STATE, PAYLOAD, field(9, b"x")))

    def test_duplicate_tag(self, codec):
        with pytest.raises(MalformedMessage, match="duplicate"):
            codec.decode_turn(frame(NAME, NAME, STATE, PAYLOAD))

    def test_missing_tag(self, codec):
        with pytest.raises(MalformedMessage, match="missing"):
            codec.decode_turn(frame(NAME, PAYLOAD))

    def test_truncated_value(self, codec):
        data = turn_bytes()
        with pytest.raises(MalformedMessage, match="truncated"):
            codec.decode_turn(data[:-3])

    def test_trailing_bytes(self, codec):
        with pytest.raises(MalformedMessage, match="truncated"):
            codec.decode_turn(turn_bytes() + b"\x01")

    def test_state_id_wrong_size(self, codec):
        with pytest.raises(MalformedMessage, match="state id"):
            codec.decode_turn(frame(NAME, field(TAG_STATE_ID, b"\x00\x01"), PAYLOAD))

    def test_invalid_utf8_name(self, codec):
        with pytest.raises(MalformedMessage, match="UTF-8"):
            codec.decode_turn(frame(field(TAG_PLAYER_NAME, b"\xff\xfe"), STATE, PAYLOAD))

    def test_empty_player_name(self, codec):
        with pytest.raises(MalformedMessage, match="invalid turn fields"):
            codec.decode_turn(frame(field(TAG_PLAYER_NAME, b""), STATE, PAYLOAD))

    def test_payload_not_json(self, codec):
        with pytest.raises(MalformedMessage, match="JSON"):
            codec.decode_turn(frame(NAME, STATE, field(TAG_PAYLOAD, b"{not json")))

    def test_payload_not_object(self, codec):
        with pytest.raises(MalformedMessage, match="JSON object"):
            codec.decode_turn(frame(NAME, STATE, field(TAG_PAYLOAD, b"[1, 2]")))

    def test_malformed_message_is_value_error(self):
        assert issubclass(MalformedMessage, ValueError)


class TestDecision:
    def test_encode_decision_layout(self, codec):
        data = codec.encode_decision(
            DecisionModel(decision_type=DecisionType.MOVE, index=3)
        )

        assert len(data) == DECISION.size == 8
        assert data == b"MD" + bytes([1, DecisionType.MOVE.value]) + struct.pack("!i", 3)

    def test_default_decision_is_never_empty(self, codec):
        data = codec.encode_decision(DEFAULT_DECISION)

        assert len(data) == DECISION.size
        decision = codec.decode_decision(data)
        assert decision.decision_type == DecisionType.NONE
        assert decision.index == -1

    def test_decode_decision_rejects_wrong_length(self, codec):
        with pytest.raises(MalformedMessage):
            codec.decode_decision(b"MD\x01")

    def test_decode_decision_rejects_unknown_type(self, codec):
        with pytest.raises(MalformedMessage, match="unknown decision type"):
            codec.decode_decision(DECISION.pack(b"MD", 1, 200, 0))

    def test_decode_decision_rejects_turn_magic(self, codec):
        with pytest.raises(MalformedMessage, match="magic"):
            codec.decode_decision(DECISION.pack(b"MT", 1, 0, 0))


def deeply_nested_turn(depth=100000):
    payload = b'{"a":' + b"[" * depth + b"]" * depth + b"}"
    return frame(NAME, STATE, field(TAG_PAYLOAD, payload))


def test_deeply_nested_payload_is_malformed(codec):
    with pytest.raises(MalformedMessage, match="JSON"):
        codec.decode_turn(deeply_nested_turn())
