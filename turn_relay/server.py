import argparse
import logging
import socket
import sys
import threading
import time
from typing import Optional

import uvicorn

from turn_relay.context import ServerContext
from turn_relay.domain.strategy import PlayerStrategy
from turn_relay.load_settings import bind_host, log_level, startup_timeout_seconds
from turn_relay.main import create_app
from turn_relay.memory import MemoryObject
from turn_relay.services.request_handler import OnReceive, OnSend

STARTUP_POLL_SECONDS = 0.05


class TurnServer:
    def __init__(self, context: Optional[ServerContext] = None, host: str = bind_host):
        if context is None:
            memory = MemoryObject()
            context = ServerContext(PlayerStrategy(memory), memory)
        self.context = context
        self.host = host
        self.port: Optional[int] = None
        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None

    def start_server(
        self,
        port: int,
        on_receive: Optional[OnReceive] = None,
        on_send: Optional[OnSend] = None,
    ) -> int:
        """Start serving on the given port in a background thread

        Args:
            port (int): Port to listen on
            on_receive (OnReceive, optional): Called when a turn is received
            on_send (OnSend, optional): Called when a decision is sent

        Returns:
            int: 0 once the server is listening, non-zero if it failed to start
        """
        try:
            sock = self._bind(port)
            self.port = sock.getsockname()[1]
        except Exception as e:
            logging.warning(f"Server failed to start on {port}: {e}")
            return 1

        try:
            app = create_app(self.context, on_receive, on_send)
            config = uvicorn.Config(
                app,
                lifespan="on",
                timeout_graceful_shutdown=self.context.grace_seconds,
            )
            self._server = uvicorn.Server(config)
            self.context.attach_listener(self._request_exit)
            self._thread = threading.Thread(
                target=self._server.run,
                kwargs={"sockets": [sock]},
                name=f"turn-relay-{port}",
                daemon=True,
            )
            self._thread.start()
        except Exception as e:
            sock.close()
            logging.warning(f"Server failed to start on {port}: {e}")
            return 1

        deadline = time.monotonic() + startup_timeout_seconds
        while (
            self._thread.is_alive()
            and not self._server.started
            and time.monotonic() < deadline
        ):
            time.sleep(STARTUP_POLL_SECONDS)

        if not self._server.started:
            self._server.should_exit = True
            logging.warning(f"Server failed to start on {port}: startup did not complete")
            return 1

        logging.info(f"Server started on port {self.port}")
        return 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def stop(self) -> None:
        """Stop accepting connections and drain; memory is flushed when the app shuts down"""
        if not self.context.begin_shutdown():
            return
        self._request_exit()

    def wait(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _bind(self, port: int) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, port))
        except Exception:
            sock.close()
            raise
        return sock

    def _request_exit(self) -> None:
        if self._server is not None:
            self._server.should_exit = True


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Turn relay server")
    parser.add_argument("port", type=int, help="Port to listen on")
    return parser


def main(argv: Optional[list] = None) -> int:
    args = get_parser().parse_args(argv)
    logging.basicConfig(level=log_level)

    server = TurnServer()
    status = server.start_server(args.port)
    if status != 0:
        return status
    try:
        server.wait()
    except KeyboardInterrupt:
        logging.info("Interrupted, shutting down")
        server.stop()
        server.wait()
    return 0


if __name__ == "__main__":
    sys.exit(main())
