import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from turn_relay.context import ServerContext
from turn_relay.routers import control, turn
from turn_relay.services.decision_invoker import DecisionInvoker
from turn_relay.services.request_handler import OnReceive, OnSend, TurnRequestHandler


def create_app(
    context: ServerContext,
    on_receive: Optional[OnReceive] = None,
    on_send: Optional[OnSend] = None,
) -> FastAPI:
    """Build the application serving /server, /health and /shutdown for one agent

    Args:
        context (ServerContext): Strategy, memory and lifecycle state of this process
        on_receive (OnReceive, optional): Called with each decoded turn
        on_send (OnSend, optional): Called with each decision after it is sent

    Returns:
        FastAPI: The application
    """

    @asynccontextmanager
    async def lifespan(app):
        """Load agent memory before serving and flush it when the server stops."""
        await context.startup()
        logging.info("Server ready")
        try:
            yield
        finally:
            await context.finish()

    app = FastAPI(lifespan=lifespan)
    app.state.server_context = context
    app.state.request_handler = TurnRequestHandler(
        DecisionInvoker(context.strategy, context.executor),
        on_receive=on_receive,
        on_send=on_send,
    )
    app.include_router(turn.turn_router)
    app.include_router(control.control_router)
    return app
