"""Client-side scan flow.

    IDLE -> AWAITING_LOCATION -> SCANNING -> VALIDATING -> ADMITTED | REJECTED

The location fix is acquired before the camera opens so the scan is sent
with a fresh fix. A trainee may cancel at any point before VALIDATING; the
location watch is released and the session returns to IDLE.
"""
import asyncio
from typing import Any, Awaitable, Callable, Optional

from geoattend.core.errors import CheckinRejected, LocationError
from geoattend.core.logging_config import get_logger
from geoattend.location import Coordinate, GeoLocator
from geoattend.services.checkin import ScanState

logger = get_logger(__name__)

Submitter = Callable[[str, Optional[Coordinate]], Awaitable[Any]]


class ScanCancelled(Exception):
    """The trainee cancelled before the scan was submitted."""


class ScanSession:
    def __init__(
        self,
        submit: Submitter,
        locator: Optional[GeoLocator] = None,
        target_accuracy_m: Optional[float] = None,
        max_wait_ms: Optional[int] = None,
    ):
        self._submit = submit
        self._locator = locator
        self._target_accuracy_m = target_accuracy_m
        self._max_wait_ms = max_wait_ms
        self._acquisition: Optional[asyncio.Task] = None

        self.state = ScanState.IDLE
        self.fix: Optional[Coordinate] = None
        self.result: Any = None
        self.error: Optional[Exception] = None

    async def prepare(self) -> Optional[Coordinate]:
        """Acquire a location fix (when a locator is configured) and open scanning."""
        if self.state not in (ScanState.IDLE, ScanState.REJECTED):
            raise RuntimeError(f"Cannot prepare a scan from state {self.state.value}")

        self.fix = None
        self.result = None
        self.error = None

        if self._locator is None:
            self.state = ScanState.SCANNING
            return None

        self.state = ScanState.AWAITING_LOCATION
        self._acquisition = asyncio.ensure_future(
            self._locator.acquire(self._target_accuracy_m, self._max_wait_ms)
        )
        try:
            self.fix = await self._acquisition
        except asyncio.CancelledError:
            if self.state == ScanState.IDLE:
                raise ScanCancelled("Location request cancelled")
            raise
        except LocationError as e:
            self.error = e
            self.state = ScanState.REJECTED
            logger.info("scan_location_failed", code=e.code.value)
            raise
        finally:
            self._acquisition = None

        self.state = ScanState.SCANNING
        return self.fix

    async def submit(self, raw_payload: str) -> Any:
        """Send the scanned QR text, with the fix, for validation."""
        if self.state != ScanState.SCANNING:
            raise RuntimeError(f"Cannot submit a scan from state {self.state.value}")

        self.state = ScanState.VALIDATING
        try:
            self.result = await self._submit(raw_payload, self.fix)
        except CheckinRejected as e:
            self.error = e
            self.state = ScanState.REJECTED
            raise
        self.state = ScanState.ADMITTED
        return self.result

    def cancel(self) -> bool:
        """Abandon the attempt. Returns False once validation has started."""
        if self.state not in (ScanState.AWAITING_LOCATION, ScanState.SCANNING):
            return False

        self.state = ScanState.IDLE
        self.fix = None
        if self._acquisition is not None and not self._acquisition.done():
            # Cancelling the acquire task closes the provider watch
            self._acquisition.cancel()
        return True
