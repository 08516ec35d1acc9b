"""Game state built from the document embedded in a turn.

The wire layer only guarantees a JSON object keyed by a state id; the shape
checked here is what the starter strategy needs:

    {
        "players": {
            "<name>": {
                "position": {"x": 0, "y": 0, "board_id": "pvp"},
                "health": 10,
                "target": {"x": 3, "y": 4, "board_id": "pvp"},
                "moves": [{"x": 1, "y": 0, "board_id": "pvp"}, ...]
            }
        }
    }
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, ValidationError

from turn_relay.models.dc_models import GameStateModel


class GameStateError(ValueError):
    """Raised when the embedded game state document cannot be used."""


class Position(BaseModel):
    x: int
    y: int
    board_id: str

    class Config:
        frozen = True


class PlayerState(BaseModel):
    position: Position
    health: int = 0
    target: Optional[Position] = None
    moves: List[Position] = []

    class Config:
        frozen = True


class GameState:
    def __init__(self, state_id: int, players: Dict[str, PlayerState]):
        self.state_id = state_id
        self.players = players

    @classmethod
    def from_model(cls, game_state: GameStateModel) -> "GameState":
        """Build the game state from the wire document

        Args:
            game_state (GameStateModel): State id and payload received with the turn

        Raises:
            GameStateError: The payload does not describe any players in the expected shape

        Returns:
            GameState: Game state for the strategy
        """
        raw_players = game_state.payload.get("players")
        if not isinstance(raw_players, dict):
            raise GameStateError(f"state {game_state.state_id}: 'players' must be an object")
        try:
            players = {
                name: PlayerState.model_validate(player)
                for name, player in raw_players.items()
            }
        except ValidationError as e:
            raise GameStateError(f"state {game_state.state_id}: invalid player data: {e}") from e
        return cls(game_state.state_id, players)

    def get_player(self, player_name: str) -> PlayerState:
        if player_name not in self.players:
            raise GameStateError(f"state {self.state_id}: no player named {player_name!r}")
        return self.players[player_name]
