from pydantic import BaseModel, Field
from enum import Enum
from typing import Any, Dict


class DecisionType(int, Enum):
    NONE = 0
    MOVE = 1
    ATTACK = 2
    EQUIP = 3
    DROP = 4
    PICKUP = 5
    PORTAL = 6


class DecisionModel(BaseModel):
    decision_type: DecisionType
    index: int = Field(ge=-(2**31), le=2**31 - 1)  # -1 means "no action"

    class Config:
        frozen = True


class GameStateModel(BaseModel):
    state_id: int = Field(ge=-(2**63), le=2**63 - 1)
    payload: Dict[str, Any]

    class Config:
        frozen = True


class TurnModel(BaseModel):
    player_name: str = Field(min_length=1)
    game_state: GameStateModel

    class Config:
        frozen = True


DEFAULT_DECISION = DecisionModel(decision_type=DecisionType.NONE, index=-1)
