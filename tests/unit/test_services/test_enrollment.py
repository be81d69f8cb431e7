"""Unit tests for trainee, training and enrollment administration."""
from datetime import date

import pytest

from geoattend.core.errors import EnrollmentExistsError, TraineeNotFoundError, TrainingNotFoundError
from geoattend.db.models import Attendance, Enrollment
from geoattend.services.enrollment import active_trainings_for_trainee, deactivate, enroll
from geoattend.services.store import get_active_enrollment
from geoattend.services.trainee import create_trainee, list_trainees
from geoattend.services.training import create_training, get_training, list_trainings


@pytest.mark.unit
class TestEnroll:

    def test_enroll(self, db_session, trainee, training):
        enrollment = enroll(db_session, trainee.id, training.id)
        assert enrollment.is_active is True
        assert get_active_enrollment(db_session, trainee.id, training.id) is not None

    def test_enroll_twice(self, db_session, trainee, training):
        enroll(db_session, trainee.id, training.id)
        with pytest.raises(EnrollmentExistsError):
            enroll(db_session, trainee.id, training.id)

    def test_unknown_ids(self, db_session, trainee, training):
        with pytest.raises(TraineeNotFoundError):
            enroll(db_session, 999, training.id)
        with pytest.raises(TrainingNotFoundError):
            enroll(db_session, trainee.id, 999)

    def test_deactivate_then_reactivate(self, db_session, trainee, training):
        original = enroll(db_session, trainee.id, training.id)

        assert deactivate(db_session, trainee.id, training.id) is True
        assert get_active_enrollment(db_session, trainee.id, training.id) is None

        again = enroll(db_session, trainee.id, training.id)
        assert again.id == original.id
        assert db_session.query(Enrollment).count() == 1

    def test_deactivate_missing(self, db_session, trainee, training):
        assert deactivate(db_session, trainee.id, training.id) is False


@pytest.mark.unit
class TestTrainees:

    def test_create_and_lookup(self, db_session):
        trainee = create_trainee(db_session, user_id="auth0|abc", name="Asha Roy", posting_location="Howrah")
        found = list_trainees(db_session, user_id="auth0|abc")
        assert [t["id"] for t in found] == [trainee.id]
        assert found[0]["posting_location"] == "Howrah"

    def test_lookup_unknown_account(self, db_session, trainee):
        assert list_trainees(db_session, user_id="auth0|nobody") == []

    def test_list_shows_active_enrollments_only(self, db_session, make_trainee, make_training, enroll_trainee):
        first, second = make_training(), make_training(name="First Aid")
        bina = make_trainee(name="Bina")
        asha = make_trainee(name="Asha")
        enroll_trainee(bina, second)
        enroll_trainee(bina, first)
        enroll_trainee(asha, first, is_active=False)

        listed = list_trainees(db_session)
        assert [t["name"] for t in listed] == ["Asha", "Bina"]
        assert listed[0]["training_ids"] == []
        assert listed[1]["training_ids"] == [first.id, second.id]

    def test_duplicate_account(self, db_session):
        create_trainee(db_session, user_id="auth0|abc", name="Asha Roy")
        with pytest.raises(ValueError, match="already exists"):
            create_trainee(db_session, user_id="auth0|abc", name="Someone Else")


@pytest.mark.unit
class TestTrainings:

    def test_default_radius(self, db_session):
        training = create_training(db_session, "Fire Safety", "Hall B", 22.57, 88.36,
                                   date(2025, 11, 3), date(2025, 11, 7))
        assert training.geofence_radius == 100

    def test_bad_date_range(self, db_session):
        with pytest.raises(ValueError, match="End date"):
            create_training(db_session, "Fire Safety", "Hall B", 22.57, 88.36,
                            date(2025, 11, 7), date(2025, 11, 3))

    def test_non_positive_radius(self, db_session):
        with pytest.raises(ValueError, match="radius"):
            create_training(db_session, "Fire Safety", "Hall B", 22.57, 88.36,
                            date(2025, 11, 3), date(2025, 11, 7), geofence_radius=0)

    def test_get_training_falls_back_to_default_timezone(self, db_session, training):
        detail = get_training(db_session, training.id)
        assert detail["timezone"] == "Asia/Kolkata"
        assert detail["qr_generated_at"] is None

    def test_get_missing_training(self, db_session):
        assert get_training(db_session, 999) is None

    def test_list_trainings_newest_first_with_counts(self, db_session, make_training, make_trainee, enroll_trainee):
        older = make_training(name="Fire Safety")
        newer = make_training(name="First Aid")
        enroll_trainee(make_trainee(), older)
        enroll_trainee(make_trainee(), older)
        enroll_trainee(make_trainee(), older, is_active=False)

        listed = list_trainings(db_session)
        assert [t["id"] for t in listed] == [newer.id, older.id]
        assert [t["enrolled_count"] for t in listed] == [0, 2]
        assert listed[1]["timezone"] == "Asia/Kolkata"

    def test_list_trainings_empty(self, db_session):
        assert list_trainings(db_session) == []


@pytest.mark.unit
class TestEnrolledTrainings:

    def test_in_session_and_checked_in(self, db_session, enrolled, now, today):
        trainee, training = enrolled
        [entry] = active_trainings_for_trainee(db_session, trainee.id, now=now)
        assert entry["training_id"] == training.id
        assert entry["in_session"] is True
        assert entry["checked_in_today"] is False

        db_session.add(Attendance(trainee_id=trainee.id, training_id=training.id, date=today, qr_token="t"))
        db_session.commit()
        [entry] = active_trainings_for_trainee(db_session, trainee.id, now=now)
        assert entry["checked_in_today"] is True

    def test_yesterday_does_not_count_as_today(self, db_session, enrolled, now, today):
        trainee, training = enrolled
        db_session.add(Attendance(trainee_id=trainee.id, training_id=training.id,
                                  date=date(2025, 11, 2), qr_token="t"))
        db_session.commit()
        [entry] = active_trainings_for_trainee(db_session, trainee.id, now=now)
        assert entry["checked_in_today"] is False

    def test_outside_date_range(self, db_session, trainee, make_training, enroll_trainee, now):
        upcoming = make_training(start_date=date(2025, 12, 1), end_date=date(2025, 12, 5))
        enroll_trainee(trainee, upcoming)
        [entry] = active_trainings_for_trainee(db_session, trainee.id, now=now)
        assert entry["in_session"] is False

    def test_session_day_follows_venue_timezone(self, db_session, trainee, make_training, enroll_trainee, now):
        # 04:00 UTC is still 2 Nov in Los Angeles
        la = make_training(start_date=date(2025, 11, 3), end_date=date(2025, 11, 3),
                           timezone="America/Los_Angeles")
        enroll_trainee(trainee, la)
        [entry] = active_trainings_for_trainee(db_session, trainee.id, now=now)
        assert entry["timezone"] == "America/Los_Angeles"
        assert entry["in_session"] is False

    def test_inactive_enrollment_hidden(self, db_session, trainee, training, enroll_trainee, now):
        enroll_trainee(trainee, training, is_active=False)
        assert active_trainings_for_trainee(db_session, trainee.id, now=now) == []
