from datetime import date

import pytest

from conftest import USER_ID
from models.records import DayOfMonth, DayOfWeek
from repositories.patterns_repository import get_pattern
from services.errors import NotFoundError, ValidationError
from services.pattern_service import (
    MANUAL_PATTERN_CONFIDENCE,
    create_pattern_from_transaction,
    delete_pattern,
    list_patterns,
    update_pattern,
)


@pytest.fixture()
def rent_txn(add_transaction):
    # 2024-02-01 was a Thursday
    return add_transaction(-1200.0, date(2024, 2, 1), name="Landlord LLC")


def test_monthly_pattern_from_transaction(conn, rent_txn):
    pattern = create_pattern_from_transaction(conn, USER_ID, rent_txn, "monthly")

    assert pattern.name == "Landlord LLC"
    assert pattern.merchant_name == "landlord llc"
    assert pattern.amount == 1200.0
    assert pattern.transaction_type == "expense"
    assert pattern.phase == DayOfMonth(1)
    assert pattern.start_date == date(2024, 2, 1)
    assert pattern.confidence == MANUAL_PATTERN_CONFIDENCE
    assert get_pattern(conn, USER_ID, pattern.id) == pattern


def test_weekly_pattern_from_transaction_derives_weekday(conn, rent_txn):
    pattern = create_pattern_from_transaction(conn, USER_ID, rent_txn, "weekly")
    assert pattern.phase == DayOfWeek(4)


def test_pattern_from_transaction_overrides(conn, rent_txn):
    pattern = create_pattern_from_transaction(
        conn, USER_ID, rent_txn, "monthly", amount=1250.0, name="Rent", day_of_month=3,
    )
    assert (pattern.name, pattern.amount, pattern.day_of_month) == ("Rent", 1250.0, 3)


def test_pattern_from_transaction_rejects_bad_input(conn, rent_txn):
    with pytest.raises(ValidationError):
        create_pattern_from_transaction(conn, USER_ID, rent_txn, None)
    with pytest.raises(ValidationError):
        create_pattern_from_transaction(conn, USER_ID, rent_txn, "hourly")
    with pytest.raises(NotFoundError):
        create_pattern_from_transaction(conn, USER_ID, "missing", "monthly")
    assert list_patterns(conn, USER_ID) == []


def test_update_end_date_and_clear_it(conn, rent_txn):
    pattern = create_pattern_from_transaction(conn, USER_ID, rent_txn, "monthly")

    ended = update_pattern(conn, USER_ID, pattern.id, end_date=date(2024, 12, 31))
    assert get_pattern(conn, USER_ID, pattern.id).end_date == date(2024, 12, 31)
    assert ended.end_date == date(2024, 12, 31)

    update_pattern(conn, USER_ID, pattern.id, end_date=None)
    assert get_pattern(conn, USER_ID, pattern.id).end_date is None


def test_update_amount_keeps_magnitude(conn, rent_txn):
    pattern = create_pattern_from_transaction(conn, USER_ID, rent_txn, "monthly")

    updated = update_pattern(conn, USER_ID, pattern.id, amount=-1300.0)

    assert updated.amount == 1300.0
    assert updated.transaction_type == "expense"


def test_frequency_change_rederives_phase(conn, rent_txn):
    pattern = create_pattern_from_transaction(conn, USER_ID, rent_txn, "monthly")

    weekly = update_pattern(conn, USER_ID, pattern.id, frequency="biweekly")
    assert weekly.phase == DayOfWeek(4)

    quarterly = update_pattern(conn, USER_ID, pattern.id, frequency="quarterly")
    assert quarterly.phase == DayOfMonth(1)

    daily = update_pattern(conn, USER_ID, pattern.id, frequency="daily")
    assert daily.phase is None
    assert get_pattern(conn, USER_ID, pattern.id).phase is None


def test_same_class_frequency_change_keeps_phase(conn, rent_txn):
    pattern = create_pattern_from_transaction(conn, USER_ID, rent_txn, "monthly", day_of_month=3)

    yearly = update_pattern(conn, USER_ID, pattern.id, frequency="yearly")

    assert yearly.phase == DayOfMonth(3)


@pytest.mark.parametrize("changes", [
    {"end_date": date(2024, 1, 1)},
    {"amount": 0},
    {"frequency": "hourly"},
])
def test_update_validation(conn, rent_txn, changes):
    pattern = create_pattern_from_transaction(conn, USER_ID, rent_txn, "monthly")

    with pytest.raises(ValidationError):
        update_pattern(conn, USER_ID, pattern.id, **changes)
    assert get_pattern(conn, USER_ID, pattern.id) == pattern


def test_update_and_delete_unknown_pattern(conn):
    with pytest.raises(NotFoundError):
        update_pattern(conn, USER_ID, "missing", amount=1.0)
    with pytest.raises(NotFoundError):
        delete_pattern(conn, USER_ID, "missing")


def test_delete_pattern(conn, rent_txn):
    pattern = create_pattern_from_transaction(conn, USER_ID, rent_txn, "monthly")

    delete_pattern(conn, USER_ID, pattern.id)

    assert get_pattern(conn, USER_ID, pattern.id) is None


def test_list_patterns_filters_by_account(conn, account, rent_txn):
    pattern = create_pattern_from_transaction(conn, USER_ID, rent_txn, "monthly")

    assert [p.id for p in list_patterns(conn, USER_ID, account_id=account.id)] == [pattern.id]
    assert list_patterns(conn, USER_ID, account_id="other") == []
    assert list_patterns(conn, "someone-else") == []
