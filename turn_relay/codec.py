import json
import struct
from typing import Dict

from pydantic import ValidationError

from turn_relay.models.dc_models import (
    DecisionModel,
    DecisionType,
    GameStateModel,
    TurnModel,
)

TURN_MAGIC = b"MT"
DECISION_MAGIC = b"MD"
WIRE_VERSION = 1

HEADER = struct.Struct("!2sB")
FIELD_HEADER = struct.Struct("!BI")
STATE_ID = struct.Struct("!q")
DECISION = struct.Struct("!2sBBi")

TAG_PLAYER_NAME = 1
TAG_STATE_ID = 2
TAG_PAYLOAD = 3
TURN_TAGS = (TAG_PLAYER_NAME, TAG_STATE_ID, TAG_PAYLOAD)


class MalformedMessage(ValueError):
    """Raised when a buffer does not follow the binary message layout."""


class MessageCodec:
    """This class converts turn and decision messages to and from their binary form."""

    def decode_turn(self, data: bytes) -> TurnModel:
        """Parse a turn frame sent by the game engine

        Args:
            data (bytes): Raw request body

        Raises:
            MalformedMessage: The buffer is truncated, carries a bad tag or invalid field values

        Returns:
            TurnModel: The player name and game state document of this turn
        """
        self._check_header(data, TURN_MAGIC, "turn")
        fields = self._read_fields(data, HEADER.size)

        try:
            player_name = fields[TAG_PLAYER_NAME].decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedMessage(f"player name is not valid UTF-8: {e}") from e

        if len(fields[TAG_STATE_ID]) != STATE_ID.size:
            raise MalformedMessage(
                f"state id must be {STATE_ID.size} bytes, got {len(fields[TAG_STATE_ID])}"
            )
        (state_id,) = STATE_ID.unpack(fields[TAG_STATE_ID])

        try:
            payload = json.loads(fields[TAG_PAYLOAD].decode("utf-8"))
        except (ValueError, RecursionError) as e:
            raise MalformedMessage(f"game state payload is not valid JSON: {e!r}") from e
        if not isinstance(payload, dict):
            raise MalformedMessage("game state payload must be a JSON object")

        try:
            return TurnModel(
                player_name=player_name,
                game_state=GameStateModel(state_id=state_id, payload=payload),
            )
        except ValidationError as e:
            raise MalformedMessage(f"invalid turn fields: {e}") from e

    def encode_turn(self, turn: TurnModel) -> bytes:
        """Serialize a turn the way the game engine sends it

        Args:
            turn (TurnModel): Turn to send

        Returns:
            bytes: Turn frame
        """
        values = {
            TAG_PLAYER_NAME: turn.player_name.encode("utf-8"),
            TAG_STATE_ID: STATE_ID.pack(turn.game_state.state_id),
            TAG_PAYLOAD: json.dumps(turn.game_state.payload).encode("utf-8"),
        }
        frame = bytearray(HEADER.pack(TURN_MAGIC, WIRE_VERSION))
        for tag in TURN_TAGS:
            frame.extend(FIELD_HEADER.pack(tag, len(values[tag])))
            frame.extend(values[tag])
        return bytes(frame)

    def encode_decision(self, decision: DecisionModel) -> bytes:
        """Serialize a decision. The frame has a fixed size, so its length is known before sending

        Args:
            decision (DecisionModel): Decision chosen for the turn

        Returns:
            bytes: Decision frame
        """
        return DECISION.pack(
            DECISION_MAGIC, WIRE_VERSION, decision.decision_type.value, decision.index
        )

    def decode_decision(self, data: bytes) -> DecisionModel:
        """Parse a decision frame returned by the server

        Args:
            data (bytes): Raw response body

        Raises:
            MalformedMessage: The buffer is not a decision frame

        Returns:
            DecisionModel: The decoded decision
        """
        if len(data) != DECISION.size:
            raise MalformedMessage(
                f"decision frame must be {DECISION.size} bytes, got {len(data)}"
            )
        self._check_header(data, DECISION_MAGIC, "decision")
        _, _, kind, index = DECISION.unpack(data)
        try:
            return DecisionModel(decision_type=DecisionType(kind), index=index)
        except ValueError as e:
            raise MalformedMessage(f"unknown decision type: {kind}") from e

    def _check_header(self, data: bytes, magic: bytes, kind: str) -> None:
        if len(data) < HEADER.size:
            raise MalformedMessage(
                f"{kind} frame truncated: {len(data)} bytes, header needs {HEADER.size}"
            )
        found_magic, version = HEADER.unpack_from(data, 0)
        if found_magic != magic:
            raise MalformedMessage(f"bad {kind} magic: {found_magic!r}")
        if version != WIRE_VERSION:
            raise MalformedMessage(f"unsupported {kind} version: {version}")

    def _read_fields(self, data: bytes, offset: int) -> Dict[int, bytes]:
        fields: Dict[int, bytes] = {}
        while offset < len(data):
            if len(data) - offset < FIELD_HEADER.size:
                raise MalformedMessage(f"field header truncated at offset {offset}")
            tag, length = FIELD_HEADER.unpack_from(data, offset)
            offset += FIELD_HEADER.size
            if tag not in TURN_TAGS:
                raise MalformedMessage(f"bad tag {tag} at offset {offset - FIELD_HEADER.size}")
            if tag in fields:
                raise MalformedMessage(f"duplicate tag {tag}")
            if len(data) - offset < length:
                raise MalformedMessage(
                    f"field {tag} truncated: needs {length} bytes, {len(data) - offset} left"
                )
            fields[tag] = data[offset : offset + length]
            offset += length

        missing = [tag for tag in TURN_TAGS if tag not in fields]
        if missing:
            raise MalformedMessage(f"missing tags: {missing}")
        return fields
