"""Failure boundary around the strategy.

A bad turn degrades play for that turn only: every exception raised while
building the game state or choosing the action is captured and reported in the
result instead of reaching the HTTP layer.
"""
import asyncio
import logging
import traceback
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Optional

from turn_relay.domain.game_state import GameState
from turn_relay.domain.strategy import Strategy
from turn_relay.models.dc_models import DEFAULT_DECISION, DecisionModel, GameStateModel


@dataclass(frozen=True)
class InvocationResult:
    decision: Optional[DecisionModel] = None
    fault: Optional[Exception] = None
    fault_detail: str = ""

    @property
    def ok(self) -> bool:
        return self.fault is None

    def decision_or_default(self) -> DecisionModel:
        if self.ok:
            return self.decision
        return DEFAULT_DECISION


class DecisionInvoker:
    def __init__(self, strategy: Strategy, executor: Optional[Executor] = None):
        self.strategy = strategy
        self.executor = executor

    def invoke(
        self, player_name: str, game_state: GameStateModel, request_id: str = "-"
    ) -> InvocationResult:
        """Ask the strategy for a decision without letting any error escape

        Args:
            player_name (str): Player whose turn it is
            game_state (GameStateModel): Game state document received with the turn
            request_id (str): Correlation id used in log lines

        Returns:
            InvocationResult: The decision, or the captured fault
        """
        try:
            decision = self.strategy.make_decision(
                player_name, GameState.from_model(game_state)
            )
            if not isinstance(decision, DecisionModel):
                raise TypeError(
                    f"strategy returned {type(decision).__name__}, expected DecisionModel"
                )
        except Exception as e:
            detail = traceback.format_exc()
            logging.warning(
                f"[{request_id}] strategy_fault while making decision for {player_name}: {e!r}\n{detail}"
            )
            return InvocationResult(fault=e, fault_detail=detail)
        return InvocationResult(decision=decision)

    async def invoke_async(
        self, player_name: str, game_state: GameStateModel, request_id: str = "-"
    ) -> InvocationResult:
        """Run invoke in a worker thread so a slow strategy does not block other requests"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self.executor, self.invoke, player_name, game_state, request_id
        )
