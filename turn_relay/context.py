import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Callable, Optional

from turn_relay.domain.strategy import Strategy
from turn_relay.load_settings import shutdown_grace_seconds
from turn_relay.memory import MemoryObject


class LifecycleState(str, Enum):
    STARTING = "starting"
    LISTENING = "listening"
    DRAINING = "draining"
    STOPPED = "stopped"


class ServerContext:
    """Process-wide state shared by every route: strategy, memory and lifecycle flag."""

    def __init__(
        self,
        strategy: Strategy,
        memory: MemoryObject,
        grace_seconds: int = shutdown_grace_seconds,
    ):
        self.strategy = strategy
        self.memory = memory
        self.grace_seconds = grace_seconds
        self.state = LifecycleState.STARTING
        self._lock = threading.Lock()
        self._persistence_released = False
        self._stop_listener: Optional[Callable[[], None]] = None
        self.executor = ThreadPoolExecutor(thread_name_prefix="strategy")

    @property
    def is_listening(self) -> bool:
        return self.state == LifecycleState.LISTENING

    def attach_listener(self, stop_listener: Callable[[], None]) -> None:
        """Register how to make the listener stop accepting connections"""
        self._stop_listener = stop_listener

    async def startup(self) -> None:
        """Load persisted memory and start accepting traffic"""
        await self.memory.load()
        with self._lock:
            if self.state == LifecycleState.STARTING:
                self.state = LifecycleState.LISTENING

    def begin_shutdown(self) -> bool:
        """Move to DRAINING

        Returns:
            bool: True for the first caller only. Later callers must not tear down again.
        """
        with self._lock:
            if self.state in (LifecycleState.DRAINING, LifecycleState.STOPPED):
                return False
            self.state = LifecycleState.DRAINING
            return True

    async def release_persistence(self) -> None:
        """Flush and close the memory backend, at most once per process"""
        with self._lock:
            if self._persistence_released:
                return
            self._persistence_released = True
        try:
            await self.memory.save_and_close()
        except Exception as e:
            logging.error(f"Failed to save and close memory: {e!r}")

    def stop_listener(self) -> None:
        if self._stop_listener is None:
            logging.warning("No listener attached, nothing to stop")
            return
        self._stop_listener()

    async def teardown(self) -> None:
        """Flush persistence, then let the listener drain for up to grace_seconds"""
        await self.release_persistence()
        logging.info(
            f"Stopping listener, waiting up to {self.grace_seconds}s for in-flight requests"
        )
        self.stop_listener()

    async def finish(self) -> None:
        await self.release_persistence()
        # strategy calls still running past the grace period are abandoned
        self.executor.shutdown(wait=False, cancel_futures=True)
        with self._lock:
            self.state = LifecycleState.STOPPED
        logging.info("Stop Server")
