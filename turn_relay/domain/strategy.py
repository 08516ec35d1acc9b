from abc import ABC, abstractmethod

import numpy as np

from turn_relay.domain.game_state import GameState, Position
from turn_relay.memory import MemoryObject
from turn_relay.models.dc_models import DEFAULT_DECISION, DecisionModel, DecisionType

TURNS_PLAYED = "turns_played"


class Strategy(ABC):
    @abstractmethod
    def make_decision(self, player_name: str, game_state: GameState) -> DecisionModel:
        """Choose the action for this turn. May raise; the caller contains the failure."""


class PlayerStrategy(Strategy):
    """Starter strategy: step toward the player's target."""

    def __init__(self, memory: MemoryObject):
        self.memory = memory

    def make_decision(self, player_name: str, game_state: GameState) -> DecisionModel:
        player = game_state.get_player(player_name)

        turns_key = f"{player_name}:{TURNS_PLAYED}"
        turns_played = int(self.memory.get_value(turns_key, "0")) + 1
        self.memory.set_value(turns_key, str(turns_played))

        if player.target is None or not player.moves:
            return DEFAULT_DECISION

        index = self.closest_move(player.moves, player.target)
        if index is None:
            return DEFAULT_DECISION
        return DecisionModel(decision_type=DecisionType.MOVE, index=index)

    @staticmethod
    def closest_move(moves: list[Position], target: Position) -> int | None:
        """Index of the move that lands closest to the target, or None if no move is on its board

        Args:
            moves (list[Position]): Positions reachable this turn
            target (Position): Where the player wants to go

        Returns:
            int | None: Index into moves
        """
        distances = np.array(
            [
                np.hypot(move.x - target.x, move.y - target.y)
                if move.board_id == target.board_id
                else np.inf
                for move in moves
            ]
        )
        if np.isinf(distances).all():
            return None
        return int(np.argmin(distances))
