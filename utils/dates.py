from calendar import monthrange
from datetime import date, datetime


def parse_calendar_date(raw_date) -> date:
    """Read a ``YYYY-MM-DD`` value as that exact calendar day.

    ``date`` values pass through; ``datetime`` values keep only their date
    part, so no timezone conversion can move the day.
    """
    if isinstance(raw_date, datetime):
        return raw_date.date()
    if isinstance(raw_date, date):
        return raw_date
    return datetime.strptime(str(raw_date).strip()[:10], "%Y-%m-%d").date()


def sunday_weekday(day: date) -> int:
    """Weekday with 0 = Sunday .. 6 = Saturday."""
    return (day.weekday() + 1) % 7


def add_months(day: date, months: int, day_of_month=None) -> date:
    """Shift ``day`` by whole months, then pin the day of month.

    A day past the end of the target month is clamped to its last day
    (31 in February becomes the 28th or 29th).
    """
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    target = day_of_month if day_of_month is not None else day.day
    last_day = monthrange(year, month)[1]
    return date(year, month, min(target, last_day))
