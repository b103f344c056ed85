# app/utils/formatting.py
"""User-facing formatting for amounts, durations and restriction notices."""

from decimal import Decimal

RESTRICTION_MESSAGES = {
    "RUSH_HOUR": "🚗 No parking during rush hour",
    "STREET_CLEANING": "🧹 Street cleaning in progress",
    "PERMIT_ONLY": "🅿️ Permit holders only",
    "NO_PARKING": "🚫 No parking allowed",
    "LOADING_ZONE": "🚛 Loading zone active",
}


def format_currency(amount) -> str:
    value = Decimal(str(amount)).quantize(Decimal("0.01"))
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_duration(hours) -> str:
    """0.5 → '30 min', 2 → '2 hr', 1.75 → '1h 45m'."""
    hours = float(hours)
    if hours < 1:
        return f"{round(hours * 60)} min"
    whole = int(hours)
    minutes = round((hours - whole) * 60)
    if minutes == 60:
        whole, minutes = whole + 1, 0
    if minutes == 0:
        return f"{whole} hr"
    return f"{whole}h {minutes}m"


def format_restriction_message(restriction) -> str:
    """One-line notice for a blocking restriction, e.g. '🚗 No parking during rush hour until 9:00 AM'."""
    message = RESTRICTION_MESSAGES.get(restriction.type) or restriction.description
    if restriction.active_until:
        clock = restriction.active_until.strftime("%I:%M %p").lstrip("0")
        return f"{message} until {clock}"
    return message
