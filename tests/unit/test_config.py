"""
Unit tests for settings.
"""

import pytest
from pydantic import ValidationError

from washq.config import Settings


class TestNotificationTimezone:
    def test_defaults_to_utc(self):
        assert Settings().notification_timezone == "UTC"

    def test_accepts_iana_zone(self):
        settings = Settings(notification_timezone="Asia/Kolkata")

        assert settings.notification_timezone == "Asia/Kolkata"

    def test_rejects_unknown_zone(self):
        with pytest.raises(ValidationError):
            Settings(notification_timezone="Mars/Olympus_Mons")
