import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from starlette.background import BackgroundTask

from turn_relay.context import ServerContext
from turn_relay.routers.dependencies import get_server_context

ANY_METHOD = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
OK_BODY = "200"

control_router = APIRouter()


class HealthAPI:
    @staticmethod
    @control_router.api_route("/health", methods=ANY_METHOD, response_class=PlainTextResponse)
    async def health() -> PlainTextResponse:
        return PlainTextResponse(OK_BODY)


class ShutdownAPI:
    @staticmethod
    @control_router.api_route("/shutdown", methods=ANY_METHOD, response_class=PlainTextResponse)
    async def shutdown(
        context: ServerContext = Depends(get_server_context),
    ) -> PlainTextResponse:
        """Answer first, then flush memory and stop accepting connections.

        A second call while draining only gets the answer.
        """
        if not context.begin_shutdown():
            logging.info("Shutdown already in progress")
            return PlainTextResponse(OK_BODY)

        logging.info("Shutdown requested")
        return PlainTextResponse(OK_BODY, background=BackgroundTask(context.teardown))
