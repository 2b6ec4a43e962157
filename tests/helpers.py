"""Shared test helpers."""

TEST_TOKEN = "test-token"
TEST_SESSION_SECRET = "test-session-secret"


def report_payload(**overrides) -> dict:
    """A valid create-report body; keyword arguments replace top-level keys."""
    payload = {
        "source": "youtube",
        "video_id": "dQw4w9WgXcQ",
        "format": "summary",
        "language": "en",
        "delivery": {"method": "none"},
    }
    payload.update(overrides)
    return payload
