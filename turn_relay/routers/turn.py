from fastapi import APIRouter, Depends, Request, Response

from turn_relay.context import ServerContext
from turn_relay.routers.dependencies import get_request_handler, require_listening
from turn_relay.services.request_handler import TurnRequestHandler

turn_router = APIRouter()


class TurnAPI:
    @staticmethod
    @turn_router.post("/server")
    async def receive_turn(
        request: Request,
        context: ServerContext = Depends(require_listening),
        handler: TurnRequestHandler = Depends(get_request_handler),
    ) -> Response:
        """Receive a binary turn and answer with a binary decision

        Args:
            request (Request): Body is a turn frame
            context (ServerContext): Only used to refuse turns while draining

        Returns:
            Response: application/octet-stream decision frame
        """
        body = await request.body()
        return await handler.handle(body)
