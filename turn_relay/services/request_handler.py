import logging
from typing import Any, Callable, Optional

from fastapi import Response
from starlette.background import BackgroundTask
from uuid6 import uuid7

from turn_relay.codec import MalformedMessage, MessageCodec
from turn_relay.models.dc_models import DEFAULT_DECISION, DecisionModel, TurnModel
from turn_relay.services.decision_invoker import DecisionInvoker

OCTET_STREAM = "application/octet-stream"

OnReceive = Callable[[TurnModel], Any]
OnSend = Callable[[DecisionModel], Any]


class TurnRequestHandler:
    """Turns one request body into exactly one decision response."""

    def __init__(
        self,
        invoker: DecisionInvoker,
        codec: Optional[MessageCodec] = None,
        on_receive: Optional[OnReceive] = None,
        on_send: Optional[OnSend] = None,
    ):
        self.invoker = invoker
        self.codec = codec or MessageCodec()
        self.on_receive = on_receive
        self.on_send = on_send

    async def handle(self, body: bytes) -> Response:
        """Decode the turn, ask the strategy and frame the decision

        Args:
            body (bytes): Full request body

        Returns:
            Response: 200 with the encoded decision. Malformed turns and strategy
                      failures are answered with the NONE decision.
        """
        request_id = str(uuid7())
        try:
            turn = self.codec.decode_turn(body)
        except MalformedMessage as e:
            logging.error(f"[{request_id}] malformed_message ({len(body)} bytes): {e}")
            decision = DEFAULT_DECISION
        except Exception as e:
            logging.error(
                f"[{request_id}] malformed_message ({len(body)} bytes, unexpected decode error): {e!r}",
                exc_info=True,
            )
            decision = DEFAULT_DECISION
        else:
            logging.info(
                f"[{request_id}] Received turn for player: {turn.player_name}, state: {turn.game_state.state_id}"
            )
            self._notify(self.on_receive, turn, "on_receive", request_id)

            result = await self.invoker.invoke_async(
                turn.player_name, turn.game_state, request_id
            )
            decision = result.decision_or_default()

        payload = self.codec.encode_decision(decision)
        return Response(
            content=payload,
            status_code=200,
            media_type=OCTET_STREAM,
            headers={"Content-Length": str(len(payload))},
            background=BackgroundTask(self._after_send, decision, request_id),
        )

    def _after_send(self, decision: DecisionModel, request_id: str) -> None:
        logging.info(
            f"[{request_id}] Sent decision: {decision.decision_type.name} {decision.index}"
        )
        self._notify(self.on_send, decision, "on_send", request_id)

    @staticmethod
    def _notify(observer: Optional[Callable], message: Any, name: str, request_id: str) -> None:
        if observer is None:
            return
        try:
            observer(message)
        except Exception as e:
            logging.warning(f"[{request_id}] {name} observer failed: {e!r}")
