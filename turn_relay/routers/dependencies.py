from fastapi import Depends, HTTPException, Request, status

from turn_relay.context import ServerContext
from turn_relay.services.request_handler import TurnRequestHandler


def get_server_context(request: Request) -> ServerContext:
    return request.app.state.server_context


def get_request_handler(request: Request) -> TurnRequestHandler:
    return request.app.state.request_handler


def require_listening(
    context: ServerContext = Depends(get_server_context),
) -> ServerContext:
    """Refuse new turns once the server has started draining

    Raises:
        HTTPException: The server is not in the LISTENING state
    """
    if not context.is_listening:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Server is {context.state.value}.",
            headers={"Connection": "close"},
        )
    return context
