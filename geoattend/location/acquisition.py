"""Best-effort GPS fix acquisition.

GPS fixes on phones arrive noisy and slowly, and indoors often never reach
the accuracy we ask for. Acquisition therefore keeps sampling until one of:

- a sample is at least as accurate as the target (resolve with it);
- enough samples have arrived and the best is within a looser ceiling
  (resolve with the best);
- the deadline passes (resolve with the best, or fail if there is none).

The decision logic lives in AcquisitionMachine, which is synchronous and has
no I/O; GeoLocator drives it from a provider watch.
"""
import asyncio
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from geoattend.core.config import settings
from geoattend.core.errors import (
    InsecureContext,
    LocationError,
    LocationTimeout,
    LocationUnavailable,
    LocationUnsupported,
)
from geoattend.core.logging_config import get_logger
from geoattend.core.utils import now_utc, to_utc
from geoattend.location.provider import Coordinate, LocationProvider, PositionError, WatchOptions

logger = get_logger(__name__)


class AcquisitionState(str, Enum):
    IDLE = "idle"
    SAMPLING = "sampling"
    RESOLVED = "resolved"
    FAILED = "failed"


class AcquisitionMachine:
    def __init__(
        self,
        target_accuracy_m: float,
        acceptable_accuracy_m: float = 500.0,
        min_samples: int = 2,
        maximum_age_ms: int = 5000,
    ):
        self.target_accuracy_m = target_accuracy_m
        self.acceptable_accuracy_m = max(acceptable_accuracy_m, target_accuracy_m)
        self.min_samples = max(min_samples, 2)
        self.maximum_age = timedelta(milliseconds=maximum_age_ms)

        self.state = AcquisitionState.IDLE
        self.samples = 0
        self.best: Optional[Coordinate] = None
        self.result: Optional[Coordinate] = None
        self.error: Optional[LocationError] = None

    @property
    def finished(self) -> bool:
        return self.state in (AcquisitionState.RESOLVED, AcquisitionState.FAILED)

    def start(self) -> None:
        if self.state != AcquisitionState.IDLE:
            raise RuntimeError(f"Cannot start acquisition from state {self.state.value}")
        self.state = AcquisitionState.SAMPLING

    # Transition predicates

    def is_stale(self, sample: Coordinate, now: datetime) -> bool:
        return to_utc(now) - to_utc(sample.timestamp) > self.maximum_age

    def meets_target(self, sample: Coordinate) -> bool:
        return sample.accuracy_meters <= self.target_accuracy_m

    def good_enough(self) -> bool:
        return (
            self.best is not None
            and self.samples >= self.min_samples
            and self.best.accuracy_meters <= self.acceptable_accuracy_m
        )

    # Events

    def on_sample(self, sample: Coordinate, now: datetime) -> AcquisitionState:
        if self.state != AcquisitionState.SAMPLING:
            return self.state
        if self.is_stale(sample, now):
            return self.state

        self.samples += 1
        if self.best is None or sample.accuracy_meters < self.best.accuracy_meters:
            self.best = sample

        if self.meets_target(sample):
            self._resolve(sample)
        elif self.good_enough():
            self._resolve(self.best)
        return self.state

    def on_error(self, error: LocationError) -> AcquisitionState:
        if self.state != AcquisitionState.SAMPLING:
            return self.state
        if self.best is not None:
            self._resolve(self.best)
        else:
            self._fail(error)
        return self.state

    def on_timeout(self) -> AcquisitionState:
        if self.state != AcquisitionState.SAMPLING:
            return self.state
        if self.best is not None:
            self._resolve(self.best)
        else:
            self._fail(LocationTimeout())
        return self.state

    def _resolve(self, sample: Coordinate) -> None:
        self.result = sample
        self.state = AcquisitionState.RESOLVED

    def _fail(self, error: LocationError) -> None:
        self.error = error
        self.state = AcquisitionState.FAILED


class GeoLocator:
    """Acquire one coordinate fix from a LocationProvider."""

    def __init__(
        self,
        provider: LocationProvider,
        acceptable_accuracy_m: Optional[float] = None,
        min_samples: Optional[int] = None,
        maximum_age_ms: Optional[int] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.provider = provider
        self.acceptable_accuracy_m = acceptable_accuracy_m or settings.LOCATION_ACCEPTABLE_ACCURACY_M
        self.min_samples = min_samples or settings.LOCATION_MIN_SAMPLES
        self.maximum_age_ms = maximum_age_ms if maximum_age_ms is not None else settings.LOCATION_MAXIMUM_AGE_MS
        self._clock = clock

    async def acquire(
        self,
        target_accuracy_m: Optional[float] = None,
        max_wait_ms: Optional[int] = None,
    ) -> Coordinate:
        """
        Return the best fix obtainable within max_wait_ms.

        Raises:
            LocationUnsupported: the platform has no location service
            InsecureContext: location APIs are blocked on an unencrypted page
            LocationPermissionDenied / LocationUnavailable: platform error before any sample
            LocationTimeout: deadline reached without a single usable sample
        """
        target = target_accuracy_m or settings.LOCATION_TARGET_ACCURACY_M
        max_wait_ms = max_wait_ms or settings.LOCATION_MAX_WAIT_MS

        if not self.provider.supported:
            raise LocationUnsupported()
        if not self.provider.secure_context:
            raise InsecureContext()

        machine = AcquisitionMachine(target, self.acceptable_accuracy_m, self.min_samples, self.maximum_age_ms)
        machine.start()

        loop = asyncio.get_running_loop()
        deadline = loop.time() + max_wait_ms / 1000
        samples = self.provider.watch(
            WatchOptions(high_accuracy=True, timeout_ms=max_wait_ms, maximum_age_ms=self.maximum_age_ms)
        )
        try:
            while not machine.finished:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    machine.on_timeout()
                    break
                try:
                    sample = await asyncio.wait_for(samples.__anext__(), remaining)
                except asyncio.TimeoutError:
                    machine.on_timeout()
                except StopAsyncIteration:
                    # Watch ended on its own without a decisive sample
                    machine.on_error(LocationUnavailable())
                except PositionError as e:
                    logger.warning("location_platform_error", code=e.code, message=str(e))
                    machine.on_error(e.to_location_error())
                else:
                    machine.on_sample(sample, self._clock())
        finally:
            aclose = getattr(samples, "aclose", None)
            if aclose is not None:
                await aclose()

        if machine.state == AcquisitionState.RESOLVED:
            logger.info("location_resolved", accuracy_m=round(machine.result.accuracy_meters, 1),
                        samples=machine.samples)
            return machine.result

        logger.warning("location_failed", code=machine.error.code.value, samples=machine.samples)
        raise machine.error
