import logging

from db import transaction
from models.records import (
    FREQUENCIES,
    MONTHLY_FREQUENCIES,
    WEEKLY_FREQUENCIES,
    DayOfMonth,
    DayOfWeek,
    RecurringPattern,
)
from repositories.patterns_repository import (
    delete_pattern as repo_delete_pattern,
    get_pattern,
    insert_pattern,
    list_patterns as repo_list_patterns,
    new_pattern_id,
    update_pattern as repo_update_pattern,
)
from repositories.transactions_repository import get_transaction_by_id
from services.errors import NotFoundError, ValidationError
from services.merchant_rules import DEFAULT_AMOUNT_TOLERANCE, normalize_merchant_name
from utils.dates import sunday_weekday

# user-declared patterns are trusted more than most detected ones
MANUAL_PATTERN_CONFIDENCE = 0.9

UNSET = object()


def default_phase(frequency, start_date, day_of_month=None, day_of_week=None):
    """
    Phase for a pattern of ``frequency`` anchored on ``start_date``.

    Explicit values win; otherwise the phase is read off ``start_date``.
    Daily patterns have none.
    """
    if frequency in MONTHLY_FREQUENCIES:
        return DayOfMonth(day_of_month if day_of_month is not None else start_date.day)
    if frequency in WEEKLY_FREQUENCIES:
        return DayOfWeek(day_of_week if day_of_week is not None else sunday_weekday(start_date))
    return None


def build_pattern(*, user_id, account_id, name, amount, frequency, start_date,
                  transaction_type, day_of_month=None, day_of_week=None,
                  end_date=None, confidence=MANUAL_PATTERN_CONFIDENCE):
    """Assemble a user-declared pattern, turning bad values into ``ValidationError``."""
    if frequency not in FREQUENCIES:
        raise ValidationError(f"unknown frequency: {frequency}")
    try:
        phase = default_phase(
            frequency, start_date,
            int(day_of_month) if day_of_month is not None else None,
            int(day_of_week) if day_of_week is not None else None,
        )
        return RecurringPattern(
            id=new_pattern_id(),
            user_id=user_id,
            account_id=account_id,
            name=name,
            merchant_name=normalize_merchant_name(name),
            amount=abs(amount),
            amount_tolerance=DEFAULT_AMOUNT_TOLERANCE,
            frequency=frequency,
            phase=phase,
            start_date=start_date,
            end_date=end_date,
            transaction_type=transaction_type,
            confidence=confidence,
        )
    except ValueError as e:
        raise ValidationError(str(e)) from e


def list_patterns(conn, user_id, account_id=None):
    return repo_list_patterns(conn, user_id, account_id=account_id)


def update_pattern(conn, user_id, pattern_id, *, end_date=UNSET, amount=None, frequency=None):
    """
    Edit a pattern's end date, amount or frequency.

    ``end_date=None`` clears the end date. When the frequency moves to
    another class (weekly-like vs month-like vs daily) the phase is
    re-derived from ``start_date``.
    """
    with transaction(conn):
        pattern = get_pattern(conn, user_id, pattern_id)
        if pattern is None:
            raise NotFoundError("Pattern not found")

        if end_date is not UNSET:
            if end_date is not None and end_date < pattern.start_date:
                raise ValidationError("endDate must not be before the pattern start")
            pattern.end_date = end_date

        if amount is not None:
            if amount == 0:
                raise ValidationError("amount must not be zero")
            pattern.amount = abs(amount)

        if frequency and frequency != pattern.frequency:
            if frequency not in FREQUENCIES:
                raise ValidationError(f"unknown frequency: {frequency}")
            phase = pattern.phase
            if ((frequency in MONTHLY_FREQUENCIES) != isinstance(phase, DayOfMonth)
                    or (frequency in WEEKLY_FREQUENCIES) != isinstance(phase, DayOfWeek)):
                phase = default_phase(frequency, pattern.start_date)
            pattern = RecurringPattern(**{**vars(pattern), "frequency": frequency, "phase": phase})

        repo_update_pattern(conn, pattern)

    return pattern


def delete_pattern(conn, user_id, pattern_id):
    with transaction(conn):
        if get_pattern(conn, user_id, pattern_id) is None:
            raise NotFoundError("Pattern not found")
        repo_delete_pattern(conn, pattern_id)


def create_pattern_from_transaction(conn, user_id, transaction_id, frequency, *,
                                    amount=None, name=None, day_of_month=None, day_of_week=None):
    """
    Declare a recurring pattern from one historical transaction.

    Amount, name and start date default to the transaction's; the type
    follows the transaction's sign and the phase defaults to its date.
    """
    if not frequency:
        raise ValidationError("frequency is required")

    with transaction(conn):
        txn = get_transaction_by_id(conn, user_id, transaction_id)
        if txn is None:
            raise NotFoundError("Transaction not found")

        pattern = build_pattern(
            user_id=user_id,
            account_id=txn.account_id,
            name=name or txn.name,
            amount=amount if amount is not None else txn.amount,
            frequency=frequency,
            start_date=txn.date,
            transaction_type="income" if txn.amount > 0 else "expense",
            day_of_month=day_of_month,
            day_of_week=day_of_week,
        )
        insert_pattern(conn, pattern)

    logging.info(f"Created {frequency} pattern {pattern.id} from transaction {transaction_id}")
    return pattern
