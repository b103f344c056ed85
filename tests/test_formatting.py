"""Unit tests for user-facing formatting helpers."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime
from decimal import Decimal
from app.services.restrictions import Restriction
from app.utils.formatting import format_currency, format_duration, format_restriction_message


class TestFormatting:
    def test_currency(self):
        assert format_currency(Decimal("2.87")) == "$2.87"
        assert format_currency("1234.5") == "$1,234.50"
        assert format_currency(Decimal("-1.33")) == "-$1.33"

    def test_duration(self):
        assert format_duration(0.5) == "30 min"
        assert format_duration(2) == "2 hr"
        assert format_duration(1.75) == "1h 45m"

    def test_restriction_message_uses_known_wording(self):
        r = Restriction(type="RUSH_HOUR", description="Morning rush", active_until=datetime(2026, 6, 1, 9, 0))
        assert format_restriction_message(r) == "🚗 No parking during rush hour until 9:00 AM"

    def test_restriction_message_falls_back_to_description(self):
        r = Restriction(type="SNOW_EMERGENCY", description="Snow route")
        assert format_restriction_message(r) == "Snow route"
