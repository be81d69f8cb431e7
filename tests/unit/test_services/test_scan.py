"""Unit tests for the client scan flow."""
import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from geoattend.core.constants import GeofenceEnforcement, TokenRotationPolicy
from geoattend.core.errors import CheckinRejected, LocationPermissionDenied, RejectionCode
from geoattend.db.models import Attendance
from geoattend.location import Coordinate, GeoLocator, LocationProvider, PositionError
from geoattend.services.checkin import ScanState, validate_checkin
from geoattend.services.scan import ScanCancelled, ScanSession
from geoattend.services.tokens import issue


class ScriptedProvider(LocationProvider):
    def __init__(self, *script):
        self.script = script
        self.active = 0

    def watch(self, options):
        return self._watch()

    async def _watch(self):
        self.active += 1
        try:
            for item in self.script:
                if isinstance(item, Exception):
                    raise item
                yield item
            await asyncio.Event().wait()
        finally:
            self.active -= 1


@pytest.fixture
def venue_provider(training):
    return ScriptedProvider(Coordinate(training.latitude, training.longitude, 12.0))


@pytest.mark.unit
class TestScanSession:

    @pytest.mark.asyncio
    async def test_admitted(self, db_session, enrolled, venue_provider):
        trainee, training = enrolled
        token = issue(db_session, training.id, TokenRotationPolicy.DAILY).token
        qr = json.dumps({"training_id": training.id, "token": token,
                         "date": training.qr_generated_date.isoformat()})

        async def submit(raw, fix):
            return validate_checkin(db_session, trainee.id, raw, fix, enforcement=GeofenceEnforcement.STRICT)

        scan = ScanSession(submit, GeoLocator(venue_provider))
        fix = await scan.prepare()
        assert scan.state == ScanState.SCANNING
        assert fix.accuracy_meters == 12.0

        result = await scan.submit(qr)
        assert scan.state == ScanState.ADMITTED
        assert result.is_within_geofence is True
        assert venue_provider.active == 0

    @pytest.mark.asyncio
    async def test_permission_denied_never_submits(self, db_session):
        submit = AsyncMock()
        provider = ScriptedProvider(PositionError(PositionError.PERMISSION_DENIED))
        scan = ScanSession(submit, GeoLocator(provider))

        with pytest.raises(LocationPermissionDenied):
            await scan.prepare()

        assert scan.state == ScanState.REJECTED
        assert scan.error.code == RejectionCode.LOCATION_PERMISSION_DENIED
        submit.assert_not_called()
        assert db_session.query(Attendance).count() == 0

    @pytest.mark.asyncio
    async def test_rejection_recorded(self, venue_provider):
        rejection = CheckinRejected(RejectionCode.TOKEN_STALE, "Scan the latest code")
        scan = ScanSession(AsyncMock(side_effect=rejection), GeoLocator(venue_provider))
        await scan.prepare()

        with pytest.raises(CheckinRejected):
            await scan.submit("{}")
        assert scan.state == ScanState.REJECTED
        assert scan.error is rejection

        # A rejected scan can be retried
        await scan.prepare()
        assert scan.state == ScanState.SCANNING
        assert scan.error is None

    @pytest.mark.asyncio
    async def test_cancel_while_locating(self):
        provider = ScriptedProvider()
        scan = ScanSession(AsyncMock(), GeoLocator(provider), max_wait_ms=10_000)
        preparing = asyncio.ensure_future(scan.prepare())
        await asyncio.sleep(0.05)
        assert scan.state == ScanState.AWAITING_LOCATION

        assert scan.cancel() is True
        with pytest.raises(ScanCancelled):
            await preparing
        assert scan.state == ScanState.IDLE
        assert provider.active == 0

    @pytest.mark.asyncio
    async def test_cancel_while_scanning(self, venue_provider):
        submit = AsyncMock()
        scan = ScanSession(submit, GeoLocator(venue_provider))
        await scan.prepare()

        assert scan.cancel() is True
        assert scan.state == ScanState.IDLE
        assert scan.fix is None
        with pytest.raises(RuntimeError):
            await scan.submit("{}")
        submit.assert_not_called()

    @pytest.mark.asyncio
    async def test_cannot_cancel_once_validating(self):
        release = asyncio.Event()

        async def slow_submit(raw, fix):
            await release.wait()
            return "ok"

        scan = ScanSession(slow_submit)
        await scan.prepare()
        submitting = asyncio.ensure_future(scan.submit("{}"))
        await asyncio.sleep(0)
        assert scan.state == ScanState.VALIDATING
        assert scan.cancel() is False

        release.set()
        assert await submitting == "ok"
        assert scan.state == ScanState.ADMITTED

    @pytest.mark.asyncio
    async def test_without_locator(self):
        submit = AsyncMock(return_value="ok")
        scan = ScanSession(submit)
        assert await scan.prepare() is None
        await scan.submit("{}")
        submit.assert_awaited_once_with("{}", None)

    @pytest.mark.asyncio
    async def test_submit_before_prepare(self):
        scan = ScanSession(AsyncMock())
        with pytest.raises(RuntimeError):
            await scan.submit("{}")
