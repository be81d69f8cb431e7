"""Interval token rotation owned by an admin display session.

A TokenRotator is an explicit asyncio task: it exists only between start()
and stop(), and the display session that created it is responsible for
stopping it. RotationRegistry enforces one loop per (training, display
session) and stops whatever is left on application shutdown.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, ContextManager, Dict, Optional, Set, Tuple

from sqlalchemy.orm import Session

from geoattend.core.config import settings
from geoattend.core.constants import TokenRotationPolicy
from geoattend.core.errors import StoreError, TrainingNotFoundError
from geoattend.core.logging_config import get_logger
from geoattend.db.session import get_db_context
from geoattend.services import store
from geoattend.services.tokens import build_payload, issue

logger = get_logger(__name__)

SessionFactory = Callable[[], ContextManager[Session]]


class TokenRotator:
    """Regenerates a training's token every `interval` seconds while running."""

    def __init__(
        self,
        training_id: int,
        display_session_id: str,
        interval: Optional[float] = None,
        session_factory: SessionFactory = get_db_context,
    ):
        self.training_id = training_id
        self.display_session_id = display_session_id
        self.interval = interval or settings.TOKEN_ROTATION_INTERVAL_SECONDS
        self._session_factory = session_factory
        self._task: Optional[asyncio.Task] = None
        self._subscribers: "Set[asyncio.Queue[Dict[str, Any]]]" = set()
        self.latest: Optional[Dict[str, Any]] = None
        self.rotations = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            raise RuntimeError(f"Rotation already running for training {self.training_id}")
        self._task = asyncio.create_task(
            self._run(), name=f"rotate-training-{self.training_id}-{self.display_session_id}"
        )
        logger.info("rotation_started", training_id=self.training_id,
                    display_session=self.display_session_id, interval=self.interval)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish. Safe to call twice."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("rotation_stopped", training_id=self.training_id,
                    display_session=self.display_session_id, rotations=self.rotations)

    async def __aenter__(self) -> "TokenRotator":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def _rotate_once(self) -> Dict[str, Any]:
        with self._session_factory() as db:
            issued = issue(db, self.training_id, TokenRotationPolicy.INTERVAL, interval_seconds=self.interval)
            training = store.get_training_by_id(db, self.training_id)
            return build_payload(training, issued)

    def _publish(self, payload: Dict[str, Any]) -> None:
        self.latest = payload
        # Consumers only care about the newest code
        for queue in self._subscribers:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(payload)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while True:
            try:
                payload = await asyncio.to_thread(self._rotate_once)
            except TrainingNotFoundError:
                logger.warning("rotation_training_missing", training_id=self.training_id)
                return
            except StoreError as e:
                # Keep the previous code on screen; the next tick tries again
                logger.error("rotation_store_error", training_id=self.training_id, error=str(e))
            else:
                self.rotations += 1
                self._publish(payload)
            # Ticks are a fixed interval apart however long the issue took
            deadline += self.interval
            await asyncio.sleep(max(0.0, deadline - loop.time()))

    async def payloads(self) -> AsyncIterator[Dict[str, Any]]:
        """Yield the current payload, then each new one until the rotator stops.

        Every caller gets its own feed, so several streams can share one rotator.
        """
        queue: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue(maxsize=1)
        if self.latest is not None:
            queue.put_nowait(self.latest)
        self._subscribers.add(queue)
        try:
            while self._task is not None:
                getter = asyncio.ensure_future(queue.get())
                done, _ = await asyncio.wait({getter, self._task}, return_when=asyncio.FIRST_COMPLETED)
                if getter in done:
                    yield getter.result()
                else:
                    getter.cancel()
                    return
        finally:
            self._subscribers.discard(queue)


class RotationRegistry:
    """Tracks the active rotators, at most one per (training, display session).

    A rotator is shared by every holder of its key (a display that reconnects
    opens its new stream before the old one is torn down) and stops when the
    last holder releases it.
    """

    def __init__(self, session_factory: SessionFactory = get_db_context):
        self._session_factory = session_factory
        self._rotators: Dict[Tuple[int, str], TokenRotator] = {}
        self._holders: Dict[Tuple[int, str], int] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._rotators)

    def get(self, training_id: int, display_session_id: str) -> Optional[TokenRotator]:
        return self._rotators.get((training_id, display_session_id))

    def holders(self, training_id: int, display_session_id: str) -> int:
        return self._holders.get((training_id, display_session_id), 0)

    async def acquire(self, training_id: int, display_session_id: str,
                      interval: Optional[float] = None) -> TokenRotator:
        """Return the running rotator for this display session, starting one if needed.

        Each acquire must be paired with a release.
        """
        key = (training_id, display_session_id)
        async with self._lock:
            rotator = self._rotators.get(key)
            if rotator is None or not rotator.running:
                rotator = TokenRotator(training_id, display_session_id, interval,
                                       session_factory=self._session_factory)
                rotator.start()
                self._rotators[key] = rotator
            self._holders[key] = self._holders.get(key, 0) + 1
            return rotator

    async def release(self, training_id: int, display_session_id: str) -> None:
        key = (training_id, display_session_id)
        async with self._lock:
            remaining = self._holders.get(key, 0) - 1
            if remaining > 0:
                self._holders[key] = remaining
                return
            self._holders.pop(key, None)
            rotator = self._rotators.pop(key, None)
        if rotator is not None:
            await rotator.stop()

    async def stop_all(self) -> None:
        async with self._lock:
            rotators = list(self._rotators.values())
            self._rotators.clear()
            self._holders.clear()
        for rotator in rotators:
            await rotator.stop()

    @asynccontextmanager
    async def session(self, training_id: int, display_session_id: str,
                      interval: Optional[float] = None) -> AsyncIterator[TokenRotator]:
        """Hold a rotator for the lifetime of the block; the last holder out stops it."""
        rotator = await self.acquire(training_id, display_session_id, interval)
        try:
            yield rotator
        finally:
            await self.release(training_id, display_session_id)


rotation_registry = RotationRegistry()
