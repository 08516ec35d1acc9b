import threading
import time

import pytest

from turn_relay.codec import MessageCodec
from turn_relay.context import ServerContext
from turn_relay.models.dc_models import DecisionModel, DecisionType, GameStateModel, TurnModel


class FakeMemory:
    def __init__(self, values=None, load_error=None, save_error=None):
        self.values = dict(values or {})
        self.load_error = load_error
        self.save_error = save_error
        self.load_calls = 0
        self.save_calls = 0

    async def load(self):
        self.load_calls += 1
        if self.load_error is not None:
            raise self.load_error

    def get_value(self, name, default=None):
        return self.values.get(name, default)

    def set_value(self, name, value):
        self.values[name] = value

    async def save_and_close(self):
        self.save_calls += 1
        if self.save_error is not None:
            raise self.save_error


class FakeStrategy:
    def __init__(self, decision=None, error=None, delay=0.0, block=False):
        self.decision = decision
        self.error = error
        self.delay = delay
        self.block = block
        self.calls = []
        self.entered = threading.Event()
        self.release = threading.Event()

    def make_decision(self, player_name, game_state):
        self.calls.append((player_name, game_state.state_id))
        self.entered.set()
        if self.delay:
            time.sleep(self.delay)
        if self.block:
            self.release.wait(timeout=60)
        if self.error is not None:
            raise self.error
        return self.decision


class FakeRedis:
    def __init__(self, stored=None):
        self.stored = dict(stored or {})
        self.hset_calls = []
        self.deleted = []
        self.closed = False

    async def hgetall(self, key):
        return dict(self.stored.get(key, {}))

    async def hset(self, key, mapping):
        self.hset_calls.append((key, dict(mapping)))
        self.stored.setdefault(key, {}).update(mapping)

    async def delete(self, key):
        self.deleted.append(key)
        self.stored.pop(key, None)

    async def aclose(self):
        self.closed = True


def valid_payload(player_name="Alice"):
    return {
        "players": {
            player_name: {
                "position": {"x": 0, "y": 0, "board_id": "pvp"},
                "health": 10,
                "target": {"x": 3, "y": 4, "board_id": "pvp"},
                "moves": [
                    {"x": -1, "y": 0, "board_id": "pvp"},
                    {"x": 0, "y": 1, "board_id": "pvp"},
                    {"x": 1, "y": 0, "board_id": "pvp"},
                    {"x": 1, "y": 1, "board_id": "pvp"},
                ],
            }
        }
    }


def turn_bytes(player_name="Alice", payload=None, state_id=42):
    turn = TurnModel(
        player_name=player_name,
        game_state=GameStateModel(
            state_id=state_id,
            payload=valid_payload(player_name) if payload is None else payload,
        ),
    )
    return MessageCodec().encode_turn(turn)


MOVE_3 = DecisionModel(decision_type=DecisionType.MOVE, index=3)


@pytest.fixture
def codec():
    return MessageCodec()


@pytest.fixture
def memory():
    return FakeMemory()


@pytest.fixture
def strategy():
    return FakeStrategy(decision=MOVE_3)


@pytest.fixture
def context(strategy, memory):
    return ServerContext(strategy, memory, grace_seconds=1)
