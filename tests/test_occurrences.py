from datetime import date

import pytest

from models.records import DayOfMonth, DayOfWeek, RecurringPattern
from services.occurrence_service import calculate_occurrences, first_slot
from utils.dates import add_months, sunday_weekday


def _pattern(frequency, start_date, phase=None, end_date=None):
    return RecurringPattern(
        id="p1",
        user_id="user-1",
        account_id="acc",
        name="Rent",
        amount=1200.0,
        frequency=frequency,
        start_date=start_date,
        transaction_type="expense",
        phase=phase,
        end_date=end_date,
    )


@pytest.mark.parametrize("pattern", [
    _pattern("daily", date(2024, 1, 1)),
    _pattern("weekly", date(2023, 11, 7), DayOfWeek(3)),
    _pattern("biweekly", date(2023, 12, 29), DayOfWeek(5)),
    _pattern("monthly", date(2023, 5, 31), DayOfMonth(31)),
    _pattern("quarterly", date(2024, 2, 29), DayOfMonth(29)),
    _pattern("yearly", date(2020, 2, 29), DayOfMonth(29)),
    _pattern("monthly", date(2024, 1, 1), DayOfMonth(5), end_date=date(2024, 6, 1)),
])
def test_occurrences_stay_inside_window_and_after_today(pattern):
    window_start, window_end = date(2024, 3, 15), date(2025, 3, 15)
    today = date(2024, 3, 20)

    occurrences = calculate_occurrences(pattern, window_start, window_end, today=today)

    upper = min(window_end, pattern.end_date or window_end)
    assert occurrences == sorted(occurrences)
    assert all(window_start <= d <= upper for d in occurrences)
    assert all(d > today for d in occurrences)


def test_biweekly_keeps_phase_of_first_matching_weekday():
    # 2024-01-03 is a Wednesday; the pattern pays on Mondays
    pattern = _pattern("biweekly", date(2024, 1, 3), DayOfWeek(1))

    occurrences = calculate_occurrences(
        pattern, date(2024, 3, 16), date(2024, 5, 1), today=date(2024, 3, 15)
    )

    assert occurrences == [date(2024, 3, 18), date(2024, 4, 1), date(2024, 4, 15), date(2024, 4, 29)]
    assert {sunday_weekday(d) for d in occurrences} == {1}
    assert all((d - date(2024, 1, 8)).days % 14 == 0 for d in occurrences)


def test_weekly_steps_to_the_next_matching_weekday():
    # 2024-03-15 is a Friday (5); the cursor day itself is not emitted
    pattern = _pattern("weekly", date(2024, 1, 5), DayOfWeek(5))

    occurrences = calculate_occurrences(
        pattern, date(2024, 3, 15), date(2024, 4, 5), today=date(2024, 3, 14)
    )

    assert occurrences == [date(2024, 3, 22), date(2024, 3, 29), date(2024, 4, 5)]


def test_daily_occurrences():
    pattern = _pattern("daily", date(2024, 1, 1))

    occurrences = calculate_occurrences(
        pattern, date(2024, 3, 15), date(2024, 3, 18), today=date(2024, 3, 15)
    )

    assert occurrences == [date(2024, 3, 16), date(2024, 3, 17), date(2024, 3, 18)]


def test_monthly_clamps_to_month_end_in_leap_year():
    pattern = _pattern("monthly", date(2024, 1, 31), DayOfMonth(31))

    occurrences = calculate_occurrences(
        pattern, date(2024, 1, 31), date(2024, 4, 30), today=date(2024, 1, 30)
    )

    assert occurrences == [date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)]


def test_monthly_clamps_to_month_end_in_common_year():
    pattern = _pattern("monthly", date(2023, 1, 31), DayOfMonth(31))

    occurrences = calculate_occurrences(
        pattern, date(2023, 1, 31), date(2023, 3, 31), today=date(2023, 1, 30)
    )

    assert occurrences == [date(2023, 2, 28), date(2023, 3, 31)]


def test_quarterly_occurrences():
    pattern = _pattern("quarterly", date(2024, 1, 10), DayOfMonth(10))

    occurrences = calculate_occurrences(
        pattern, date(2024, 1, 10), date(2024, 12, 31), today=date(2024, 1, 9)
    )

    assert occurrences == [date(2024, 4, 10), date(2024, 7, 10), date(2024, 10, 10)]


def test_end_date_bounds_occurrences():
    pattern = _pattern("monthly", date(2024, 1, 15), DayOfMonth(15), end_date=date(2024, 4, 20))

    occurrences = calculate_occurrences(
        pattern, date(2024, 1, 15), date(2024, 12, 31), today=date(2024, 1, 14)
    )

    assert occurrences == [date(2024, 2, 15), date(2024, 3, 15), date(2024, 4, 15)]


def test_same_day_occurrence_is_not_surfaced():
    pattern = _pattern("weekly", date(2024, 1, 5), DayOfWeek(5))

    occurrences = calculate_occurrences(
        pattern, date(2024, 3, 15), date(2024, 4, 5), today=date(2024, 3, 22)
    )

    assert occurrences == [date(2024, 3, 29), date(2024, 4, 5)]


def test_window_before_pattern_start_is_empty():
    pattern = _pattern("monthly", date(2025, 1, 1), DayOfMonth(1))

    assert calculate_occurrences(
        pattern, date(2024, 3, 15), date(2024, 12, 31), today=date(2024, 3, 14)
    ) == []


@pytest.mark.parametrize("day, months, day_of_month, expected", [
    (date(2024, 1, 31), 1, None, date(2024, 2, 29)),
    (date(2024, 11, 30), 3, 31, date(2025, 2, 28)),
    (date(2024, 2, 29), 12, None, date(2025, 2, 28)),
    (date(2024, 3, 15), -3, None, date(2023, 12, 15)),
])
def test_add_months(day, months, day_of_month, expected):
    assert add_months(day, months, day_of_month) == expected


@pytest.mark.parametrize("pattern, expected", [
    (_pattern("weekly", date(2024, 3, 20), DayOfWeek(5)), date(2024, 3, 22)),
    (_pattern("biweekly", date(2024, 3, 20), DayOfWeek(1)), date(2024, 3, 25)),
    (_pattern("weekly", date(2024, 3, 22), DayOfWeek(5)), date(2024, 3, 22)),
    (_pattern("monthly", date(2024, 3, 20), DayOfMonth(25)), date(2024, 3, 20)),
])
def test_first_slot(pattern, expected):
    assert first_slot(pattern) == expected
