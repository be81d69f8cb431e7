"""Test rate limiting functionality."""
import pytest

from geoattend.core.rate_limit import RATE_LIMITS


def _per_minute(limit: str) -> int:
    return int(limit.split("/")[0])


@pytest.mark.integration
@pytest.mark.rate_limit
class TestRateLimiting:
    """Rate limits apply per client address."""

    def test_checkin_rate_limit(self, client, trainee_headers):
        """Check-in allows a whole venue batch per minute, then returns 429."""
        allowed = _per_minute(RATE_LIMITS["check_in"])

        for i in range(allowed):
            response = client.post("/api/v1/checkins", headers=trainee_headers, json={"qr_data": "not json"})
            assert response.status_code == 400, f"Request {i + 1} should reach the validator"

        response = client.post("/api/v1/checkins", headers=trainee_headers, json={"qr_data": "not json"})
        assert response.status_code == 429

    def test_limits_are_per_client(self, client, trainee_headers):
        allowed = _per_minute(RATE_LIMITS["history"])

        for _ in range(allowed):
            client.get("/api/v1/checkins/me", headers={**trainee_headers, "X-Forwarded-For": "10.0.0.1"})

        blocked = client.get("/api/v1/checkins/me", headers={**trainee_headers, "X-Forwarded-For": "10.0.0.1"})
        other = client.get("/api/v1/checkins/me", headers={**trainee_headers, "X-Forwarded-For": "10.0.0.2"})

        assert blocked.status_code == 429
        assert other.status_code == 200

    def test_enrollment_revocation_rate_limit(self, admin_client, trainee, training):
        allowed = _per_minute(RATE_LIMITS["admin_write"])
        url = f"/api/v1/enrollments/{trainee.id}/{training.id}"

        for _ in range(allowed):
            assert admin_client.delete(url).status_code == 404

        assert admin_client.delete(url).status_code == 429
