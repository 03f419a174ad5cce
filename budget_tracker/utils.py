# budget_tracker/utils.py
import secrets
import time
from datetime import date, datetime


def generate_id():
    """
    Return a new opaque id: epoch milliseconds plus a random hex suffix.
    """
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}"


def today_iso():
    return date.today().isoformat()


def parse_date(value):
    """
    Parse an ISO date (or datetime) string into a date, or None when the
    value is empty or not a recognisable date.
    """
    if not value:
        return None
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def month_key(value):
    """
    Return the YYYY-MM bucket for a date string, or None if it does not parse.
    """
    d = parse_date(value)
    return f"{d.year}-{d.month:02d}" if d else None
