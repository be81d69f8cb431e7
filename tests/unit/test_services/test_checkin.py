"""Unit tests for check-in validation."""
import json
from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from geoattend.core.constants import GeofenceEnforcement, TokenRotationPolicy
from geoattend.core.errors import CheckinRejected, RejectionCode, StoreError
from geoattend.db.models import Attendance
from geoattend.location import Coordinate
from geoattend.services import store
from geoattend.services.checkin import validate_checkin
from geoattend.services.tokens import issue

STRICT = GeofenceEnforcement.STRICT


def _qr(training_id, token, day=None, expires_at=None) -> str:
    data = {"training_id": training_id, "token": token}
    if day is not None:
        data["date"] = day.isoformat()
    if expires_at is not None:
        data["expires_at"] = int(expires_at.timestamp())
    return json.dumps(data)


def _at(lat, lon, accuracy=15.0) -> Coordinate:
    return Coordinate(lat, lon, accuracy)


def _reject(db, trainee_id, raw, fix=None, enforcement=STRICT, now=None) -> CheckinRejected:
    with pytest.raises(CheckinRejected) as exc_info:
        validate_checkin(db, trainee_id, raw, fix, enforcement=enforcement, now=now)
    return exc_info.value


@pytest.fixture
def daily_token(db_session, training, now):
    return issue(db_session, training.id, TokenRotationPolicy.DAILY, now=now).token


@pytest.mark.unit
class TestAdmission:
    """Scans that pass every check are recorded."""

    def test_admitted_at_venue(self, db_session, enrolled, daily_token, now, today):
        trainee, training = enrolled
        fix = _at(training.latitude, training.longitude)

        result = validate_checkin(db_session, trainee.id, _qr(training.id, daily_token, today),
                                  fix, enforcement=STRICT, now=now)

        assert result.distance_meters == 0
        assert result.is_within_geofence is True
        row = db_session.query(Attendance).one()
        assert row.id == result.attendance.id
        assert row.date == today
        assert row.status == "present"
        assert row.qr_token == daily_token
        assert row.accuracy_meters == 15.0

    def test_boundary_rounds_to_whole_meter(self, db_session, make_training, trainee,
                                            enroll_trainee, now, today):
        """A fix 100.08m out on a 100m radius counts as 100m and is admitted."""
        training = make_training(latitude=0.0, longitude=0.0, geofence_radius=100)
        enroll_trainee(trainee, training)
        token = issue(db_session, training.id, TokenRotationPolicy.DAILY, now=now).token

        result = validate_checkin(db_session, trainee.id, _qr(training.id, token, today),
                                  _at(0.0, 0.0009), enforcement=STRICT, now=now)

        assert result.distance_meters == 100
        assert result.is_within_geofence is True

    def test_accepts_decoded_dict(self, db_session, enrolled, daily_token, now, today):
        trainee, training = enrolled
        raw = {"training_id": training.id, "token": daily_token, "date": today.isoformat()}
        result = validate_checkin(db_session, trainee.id, raw, _at(training.latitude, training.longitude),
                                  enforcement=STRICT, now=now)
        assert result.training.id == training.id

    def test_time_scoped_payload(self, db_session, enrolled, now):
        trainee, training = enrolled
        issued = issue(db_session, training.id, TokenRotationPolicy.INTERVAL, now=now)

        result = validate_checkin(
            db_session, trainee.id, _qr(training.id, issued.token, expires_at=issued.expires_at),
            _at(training.latitude, training.longitude), enforcement=STRICT, now=now + timedelta(seconds=10),
        )
        assert result.attendance.qr_token == issued.token


@pytest.mark.unit
class TestRejections:
    """Each failed check produces its own code and writes nothing."""

    def test_invalid_format(self, db_session, trainee, now):
        assert _reject(db_session, trainee.id, "not json", now=now).code == RejectionCode.INVALID_FORMAT

    @pytest.mark.parametrize("raw", [
        '{"training_id": 1, "token": "x", "expires_at": 1e20}',
        '{"training_id": 1, "token": "x", "expires_at": 1e400}',
        '{"training_id": 1, "token": "x", "expires_at": NaN}',
        '{"training_id": 1000000000000000000000000000000, "token": "x", "date": "2025-11-03"}',
    ])
    def test_out_of_range_numbers_are_invalid_format(self, db_session, trainee, now, raw):
        assert _reject(db_session, trainee.id, raw, now=now).code == RejectionCode.INVALID_FORMAT
        assert db_session.query(Attendance).count() == 0

    def test_wrong_day(self, db_session, enrolled, daily_token, now, today):
        trainee, training = enrolled
        yesterday = today - timedelta(days=1)

        rejection = _reject(db_session, trainee.id, _qr(training.id, daily_token, yesterday), now=now)

        assert rejection.code == RejectionCode.WRONG_DAY
        assert rejection.details == {"qr_date": "2025-11-02", "today": "2025-11-03"}

    def test_expired_time_scoped(self, db_session, enrolled, now):
        trainee, training = enrolled
        issued = issue(db_session, training.id, TokenRotationPolicy.INTERVAL, now=now)

        rejection = _reject(db_session, trainee.id, _qr(training.id, issued.token, expires_at=issued.expires_at),
                            now=issued.expires_at + timedelta(seconds=1))
        assert rejection.code == RejectionCode.TOKEN_EXPIRED

    def test_server_expiry_overrides_payload_shape(self, db_session, enrolled, now, today):
        """An interval token presented in a date-scoped payload still expires."""
        trainee, training = enrolled
        issued = issue(db_session, training.id, TokenRotationPolicy.INTERVAL, now=now)

        rejection = _reject(db_session, trainee.id, _qr(training.id, issued.token, today),
                            now=issued.expires_at + timedelta(seconds=1))
        assert rejection.code == RejectionCode.TOKEN_EXPIRED

    def test_training_not_found(self, db_session, trainee, now, today):
        rejection = _reject(db_session, trainee.id, _qr(999, "whatever", today), now=now)
        assert rejection.code == RejectionCode.TRAINING_NOT_FOUND

    def test_stale_token_after_rotation(self, db_session, enrolled, now, today):
        trainee, training = enrolled
        old = issue(db_session, training.id, now=now).token
        issue(db_session, training.id, now=now)

        rejection = _reject(db_session, trainee.id, _qr(training.id, old, today), now=now)
        assert rejection.code == RejectionCode.TOKEN_STALE

    def test_no_token_issued_yet(self, db_session, enrolled, now, today):
        trainee, training = enrolled
        rejection = _reject(db_session, trainee.id, _qr(training.id, "guess", today), now=now)
        assert rejection.code == RejectionCode.TOKEN_STALE

    @pytest.mark.parametrize("presented", ["prefix", "ключ"])
    def test_near_miss_tokens_are_stale(self, db_session, enrolled, daily_token, now, today, presented):
        trainee, training = enrolled
        token = daily_token[:4] if presented == "prefix" else presented
        rejection = _reject(db_session, trainee.id, _qr(training.id, token, today), now=now)
        assert rejection.code == RejectionCode.TOKEN_STALE

    def test_token_compared_in_constant_time(self, db_session, enrolled, daily_token, now, today):
        trainee, training = enrolled
        with patch("geoattend.services.checkin.secrets.compare_digest", return_value=False) as compare:
            rejection = _reject(db_session, trainee.id, _qr(training.id, daily_token, today), now=now)

        assert rejection.code == RejectionCode.TOKEN_STALE
        compare.assert_called_once_with(daily_token.encode(), daily_token.encode())

    def test_not_enrolled(self, db_session, training, trainee, daily_token, now, today):
        rejection = _reject(db_session, trainee.id, _qr(training.id, daily_token, today),
                            _at(training.latitude, training.longitude), now=now)

        assert rejection.code == RejectionCode.NOT_ENROLLED
        assert rejection.recoverable is False
        assert db_session.query(Attendance).count() == 0

    def test_inactive_enrollment(self, db_session, training, trainee, enroll_trainee, daily_token, now, today):
        enroll_trainee(trainee, training, is_active=False)
        rejection = _reject(db_session, trainee.id, _qr(training.id, daily_token, today), now=now)
        assert rejection.code == RejectionCode.NOT_ENROLLED

    def test_already_marked(self, db_session, enrolled, daily_token, now, today):
        trainee, training = enrolled
        raw = _qr(training.id, daily_token, today)
        fix = _at(training.latitude, training.longitude)
        validate_checkin(db_session, trainee.id, raw, fix, enforcement=STRICT, now=now)

        rejection = _reject(db_session, trainee.id, raw, fix, now=now + timedelta(minutes=5))

        assert rejection.code == RejectionCode.ALREADY_MARKED
        assert rejection.details["check_in_time"] == "2025-11-03T09:30:00+05:30"
        assert db_session.query(Attendance).count() == 1

    def test_out_of_range(self, db_session, make_training, trainee, enroll_trainee, now, today):
        training = make_training(latitude=0.0, longitude=0.0, geofence_radius=100)
        enroll_trainee(trainee, training)
        token = issue(db_session, training.id, now=now).token

        rejection = _reject(db_session, trainee.id, _qr(training.id, token, today), _at(0.0, 0.002), now=now)

        assert rejection.code == RejectionCode.OUT_OF_RANGE
        assert rejection.details == {"distance_meters": 222, "geofence_radius": 100}
        assert db_session.query(Attendance).count() == 0

    def test_strict_requires_location(self, db_session, enrolled, daily_token, now, today):
        trainee, training = enrolled
        rejection = _reject(db_session, trainee.id, _qr(training.id, daily_token, today), None, now=now)
        assert rejection.code == RejectionCode.LOCATION_UNAVAILABLE

    def test_payload_coordinates_are_ignored(self, db_session, enrolled, daily_token, now, today):
        """Coordinates in the QR payload never move the geofence."""
        trainee, training = enrolled
        far_lat, far_lon = training.latitude + 1, training.longitude
        raw = json.dumps({"training_id": training.id, "token": daily_token, "date": today.isoformat(),
                          "latitude": far_lat, "longitude": far_lon})

        rejection = _reject(db_session, trainee.id, raw, _at(far_lat, far_lon), now=now)
        assert rejection.code == RejectionCode.OUT_OF_RANGE

    def test_first_failure_wins(self, db_session, training, trainee, now, today):
        """A stale token is reported before the missing enrollment."""
        issue(db_session, training.id, now=now)
        rejection = _reject(db_session, trainee.id, _qr(training.id, "old-token", today), now=now)
        assert rejection.code == RejectionCode.TOKEN_STALE


@pytest.mark.unit
class TestEnforcementModes:

    def test_advisory_admits_out_of_range(self, db_session, enrolled, daily_token, now, today):
        trainee, training = enrolled
        fix = _at(training.latitude + 0.01, training.longitude)

        result = validate_checkin(db_session, trainee.id, _qr(training.id, daily_token, today), fix,
                                  enforcement=GeofenceEnforcement.ADVISORY, now=now)

        assert result.is_within_geofence is False
        assert result.distance_meters > training.geofence_radius
        assert result.attendance.distance_meters == result.distance_meters

    def test_advisory_without_fix(self, db_session, enrolled, daily_token, now, today):
        trainee, training = enrolled
        result = validate_checkin(db_session, trainee.id, _qr(training.id, daily_token, today), None,
                                  enforcement=GeofenceEnforcement.ADVISORY, now=now)
        assert result.distance_meters is None
        assert result.attendance.latitude is None

    def test_disabled_ignores_location(self, db_session, enrolled, daily_token, now, today):
        trainee, training = enrolled
        fix = _at(training.latitude + 1, training.longitude)

        result = validate_checkin(db_session, trainee.id, _qr(training.id, daily_token, today), fix,
                                  enforcement=GeofenceEnforcement.DISABLED, now=now)

        assert result.is_within_geofence is None
        assert result.attendance.distance_meters is None
        assert result.attendance.latitude is None


@pytest.mark.unit
class TestStoreFailures:

    def test_concurrent_duplicate_is_reported(self, db_session, enrolled, daily_token, now, today):
        """Losing the insert race surfaces as duplicate_entry, not a crash."""
        trainee, training = enrolled
        raw = _qr(training.id, daily_token, today)
        fix = _at(training.latitude, training.longitude)
        validate_checkin(db_session, trainee.id, raw, fix, enforcement=STRICT, now=now)

        # Simulate the second scan passing the pre-check before the first commits
        with patch.object(store, "get_attendance", return_value=None):
            rejection = _reject(db_session, trainee.id, raw, fix, now=now)

        assert rejection.code == RejectionCode.DUPLICATE_ENTRY
        assert db_session.query(Attendance).count() == 1

    def test_lookup_failure_is_store_error(self, db_session, enrolled, daily_token, now, today):
        trainee, training = enrolled
        error = OperationalError("SELECT", {}, Exception("connection lost"))

        with patch.object(store, "get_active_enrollment", side_effect=StoreError("Error checking training enrollment")):
            with pytest.raises(StoreError):
                validate_checkin(db_session, trainee.id, _qr(training.id, daily_token, today),
                                 _at(training.latitude, training.longitude), enforcement=STRICT, now=now)

        with patch.object(db_session, "query", side_effect=error):
            with pytest.raises(StoreError):
                store.get_training_by_id(db_session, training.id)
