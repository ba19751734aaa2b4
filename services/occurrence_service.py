### Occurrence service expands a recurring pattern into the calendar dates it lands on inside a window.
from datetime import date, timedelta

from utils.dates import add_months, sunday_weekday

MONTH_STEPS = {
    "monthly": 1,
    "quarterly": 3,
    "yearly": 12,
}


def first_slot(pattern):
    """
    The first date ``pattern`` is due: ``start_date``, moved forward to the
    pinned weekday for weekly and biweekly patterns.
    """
    if pattern.frequency in ("weekly", "biweekly") and pattern.day_of_week is not None:
        days_until = (pattern.day_of_week - sunday_weekday(pattern.start_date)) % 7
        return pattern.start_date + timedelta(days=days_until)
    return pattern.start_date


def _biweekly_occurrences(pattern, window_start, bound):
    occurrences = []

    if pattern.day_of_week is not None:
        anchor = first_slot(pattern)
    else:
        anchor = max(window_start, pattern.start_date)

    # skip forward in whole periods; the phase stays pinned to the anchor
    if anchor < window_start:
        periods = -(-(window_start - anchor).days // 14)
        anchor += timedelta(days=periods * 14)

    current = anchor
    while current <= bound:
        occurrences.append(current)
        current += timedelta(days=14)

    return occurrences


def _stepped_occurrences(pattern, window_start, bound):
    occurrences = []
    start = max(window_start, pattern.start_date)
    frequency = pattern.frequency

    if frequency in MONTH_STEPS:
        step = 1
        while True:
            next_date = add_months(start, MONTH_STEPS[frequency] * step, pattern.day_of_month)
            if next_date > bound:
                break
            occurrences.append(next_date)
            step += 1
        return occurrences

    current = start
    while True:
        if frequency == "daily":
            next_date = current + timedelta(days=1)
        elif frequency == "weekly":
            if pattern.day_of_week is not None:
                days_until = (pattern.day_of_week - sunday_weekday(current)) % 7
                next_date = current + timedelta(days=days_until or 7)
            else:
                next_date = current + timedelta(days=7)
        else:
            return occurrences

        if next_date > bound:
            break
        occurrences.append(next_date)
        current = next_date

    return occurrences


def calculate_occurrences(pattern, window_start: date, window_end: date, today=None):
    """
    Dates at which ``pattern`` recurs inside ``[window_start, window_end]``.

    The upper bound is ``pattern.end_date`` when that comes first. The
    cursor starts at ``max(window_start, pattern.start_date)`` and only the
    dates reached by stepping from it are emitted; biweekly patterns instead
    keep the 14-day phase of their first ``day_of_week`` on or after
    ``start_date``. Month-based steps clamp to the last day of short months.

    Only dates strictly after ``today`` are returned, so a same-day
    occurrence is never surfaced.
    """
    if today is None:
        today = date.today()

    bound = window_end
    if pattern.end_date is not None and pattern.end_date < bound:
        bound = pattern.end_date

    if pattern.frequency == "biweekly":
        occurrences = _biweekly_occurrences(pattern, window_start, bound)
    else:
        occurrences = _stepped_occurrences(pattern, window_start, bound)

    return [d for d in occurrences if d > today]
