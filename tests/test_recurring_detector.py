import random
from datetime import date

import pytest

from conftest import USER_ID, every
from models.records import DayOfMonth, DayOfWeek, Transaction
from repositories.patterns_repository import list_patterns
from services.errors import NotFoundError
from services.recurring_detector import (
    CONFIDENCE_FLOOR,
    analyze_frequency,
    detect_patterns,
    determine_transaction_type,
    group_transactions,
    redetect_patterns,
)


def _txn(txn_id, amount, day, name="Netflix"):
    return Transaction(id=txn_id, user_id=USER_ID, account_id="acc", amount=amount, date=day, name=name)


# ---- Pure helpers ----

def test_grouping_is_independent_of_input_order():
    txns = [
        _txn("a", -15.99, date(2023, 1, 15)),
        _txn("b", -16.49, date(2023, 2, 15), name="NETFLIX"),
        _txn("c", -9.99, date(2023, 1, 3), name="Spotify"),
        _txn("d", -9.99, date(2023, 2, 3), name="spotify"),
        _txn("e", -45.00, date(2023, 2, 20), name="Netflix"),
    ]
    expected = [
        (g.name, sorted(t.id for t in g.transactions)) for g in group_transactions(txns)
    ]

    shuffled = list(txns)
    random.Random(7).shuffle(shuffled)
    again = [(g.name, sorted(t.id for t in g.transactions)) for g in group_transactions(shuffled)]

    assert again == expected
    assert len(expected) == 3


def test_grouping_separates_dissimilar_amounts_of_same_merchant():
    txns = [
        _txn("a", -15.99, date(2023, 1, 15)),
        _txn("b", -45.00, date(2023, 1, 16)),
        _txn("c", -15.99, date(2023, 2, 15)),
    ]
    groups = group_transactions(txns)

    assert [len(g.transactions) for g in groups] == [2, 1]
    assert groups[0].average_amount == pytest.approx(15.99)


def test_analyze_frequency_needs_three_transactions():
    txns = [_txn("a", -10, date(2023, 1, 1)), _txn("b", -10, date(2023, 2, 1))]
    assert analyze_frequency(txns) is None


def test_analyze_frequency_rejects_gaps_outside_buckets():
    days = every(date(2023, 1, 1), 45, 4)
    txns = [_txn(str(i), -10, d) for i, d in enumerate(days)]
    assert analyze_frequency(txns) is None


def test_analyze_frequency_weekly_phase_uses_sunday_zero():
    # 2023-01-02 was a Monday
    days = every(date(2023, 1, 2), 7, 7)
    analysis = analyze_frequency([_txn(str(i), -20, d) for i, d in enumerate(days)])

    assert analysis.frequency == "weekly"
    assert analysis.phase == DayOfWeek(1)
    assert analysis.confidence == pytest.approx(1.0)


def test_confidence_drops_with_irregular_intervals():
    regular = every(date(2023, 1, 1), 14, 5)
    irregular = [date(2023, 1, 1), date(2023, 1, 13), date(2023, 1, 29),
                 date(2023, 2, 10), date(2023, 2, 26)]

    steady = analyze_frequency([_txn(str(i), -50, d) for i, d in enumerate(regular)])
    jittery = analyze_frequency([_txn(str(i), -50, d) for i, d in enumerate(irregular)])

    assert steady.frequency == jittery.frequency == "biweekly"
    assert jittery.confidence < steady.confidence


def test_confidence_never_decreases_with_more_regular_occurrences():
    previous = 0.0
    for count in range(3, 10):
        days = every(date(2023, 1, 1), 7, count)
        analysis = analyze_frequency([_txn(str(i), -5, d) for i, d in enumerate(days)])
        assert analysis.confidence >= previous
        previous = analysis.confidence


def test_transaction_type_tie_is_expense():
    txns = [_txn("a", 100, date(2023, 1, 1)), _txn("b", -100, date(2023, 2, 1))]
    assert determine_transaction_type(txns) == "expense"
    txns.append(_txn("c", 100, date(2023, 3, 1)))
    assert determine_transaction_type(txns) == "income"


# ---- Persistence ----

def test_detects_netflix_subscription(conn, account, netflix_history):
    patterns = detect_patterns(conn, USER_ID, account.id)

    assert len(patterns) == 1
    pattern = patterns[0]
    assert pattern.name == "Netflix"
    assert pattern.frequency == "monthly"
    assert pattern.phase == DayOfMonth(15)
    assert pattern.transaction_type == "expense"
    assert pattern.amount == pytest.approx(15.99)
    assert pattern.start_date == date(2023, 1, 15)
    assert pattern.confidence >= CONFIDENCE_FLOOR

    stored = list_patterns(conn, USER_ID, account_id=account.id)
    assert [p.id for p in stored] == [pattern.id]


def test_detects_biweekly_income(conn, account, add_transaction):
    for day in every(date(2023, 1, 6), 14, 6):
        add_transaction(2500.0, day, name="ACME Payroll")

    patterns = detect_patterns(conn, USER_ID, account.id)

    assert len(patterns) == 1
    assert patterns[0].frequency == "biweekly"
    assert patterns[0].transaction_type == "income"


def test_fewer_than_three_transactions_yields_nothing(conn, account, add_transaction):
    add_transaction(-15.99, date(2023, 1, 15))
    add_transaction(-15.99, date(2023, 2, 15))

    assert detect_patterns(conn, USER_ID, account.id) == []
    assert list_patterns(conn, USER_ID) == []


def test_min_confidence_below_floor_has_no_effect(conn, account, add_transaction):
    # monthly, but with wildly uneven gaps
    for day in (date(2023, 1, 1), date(2023, 1, 20), date(2023, 3, 1), date(2023, 3, 25)):
        add_transaction(-30.0, day, name="Gym")

    assert detect_patterns(conn, USER_ID, account.id, min_confidence=0.0) == []


def test_min_confidence_can_raise_the_bar(conn, account, netflix_history):
    assert detect_patterns(conn, USER_ID, account.id, min_confidence=0.99) == []


def test_redetect_replaces_existing_patterns(conn, account, netflix_history):
    first = detect_patterns(conn, USER_ID, account.id)
    second = redetect_patterns(conn, USER_ID, account.id)

    stored = list_patterns(conn, USER_ID, account_id=account.id)
    assert len(stored) == 1
    assert stored[0].id == second[0].id != first[0].id
    assert (stored[0].frequency, stored[0].phase) == (first[0].frequency, first[0].phase)


def test_unknown_account_raises_not_found(conn):
    with pytest.raises(NotFoundError):
        detect_patterns(conn, USER_ID, "missing")


def test_other_users_account_is_not_found(conn, account, netflix_history):
    with pytest.raises(NotFoundError):
        detect_patterns(conn, "someone-else", account.id)
