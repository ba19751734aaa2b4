"""
Editing of forecast transactions and creation of manual entries.

Every mutation re-projects the forecast so callers get the new balance
line back synchronously.
"""

import logging

from db import transaction
from models.records import MONTHLY_FREQUENCIES, WEEKLY_FREQUENCIES, FREQUENCIES, TRANSACTION_TYPES
from repositories.accounts_repository import get_account
from repositories.forecast_transactions_repository import (
    delete_forecast_transaction as repo_delete,
    get_forecast_transaction,
    insert_forecast_transaction,
    update_forecast_transaction as repo_update,
)
from repositories.forecasts_repository import get_forecast, update_projected_balance
from repositories.patterns_repository import insert_pattern
from services.errors import NotFoundError, ValidationError
from services.occurrence_service import first_slot
from services.pattern_service import MANUAL_PATTERN_CONFIDENCE, build_pattern
from services.projection_service import final_balance, project_balance

UNSET = object()


def _reproject(conn, user_id, forecast, today=None):
    snapshots = project_balance(
        conn, user_id, forecast.account_id, forecast.id, forecast.initial_balance,
        forecast.start_date, forecast.end_date, today=today,
    )
    forecast.projected_balance = final_balance(snapshots, forecast.initial_balance)
    update_projected_balance(conn, forecast.id, forecast.projected_balance)
    return snapshots


def update_forecast_transaction(conn, user_id, transaction_id, *, amount=None, date=None,
                                name=None, category=UNSET, note=UNSET, today=None):
    """
    Edit a forecast transaction and re-project its forecast.

    A pattern-derived row becomes manual but keeps its pattern reference, so
    regeneration neither deletes it nor generates its occurrence again.
    Returns ``(transaction, balance_snapshots, forecast)``.
    """
    with transaction(conn):
        txn = get_forecast_transaction(conn, user_id, transaction_id)
        if txn is None:
            raise NotFoundError("Transaction not found")

        if amount is not None:
            txn.amount = amount
        if date is not None:
            txn.date = date
        if name:
            txn.name = name
        if category is not UNSET:
            txn.category = category
        if note is not UNSET:
            txn.note = note

        if not txn.is_manual and txn.recurring_pattern_id:
            txn.is_manual = True

        repo_update(conn, txn)

        forecast = get_forecast(conn, user_id, txn.forecast_id)
        if forecast is None:
            return txn, [], None

        snapshots = _reproject(conn, user_id, forecast, today=today)

    return txn, snapshots, forecast


def delete_forecast_transaction(conn, user_id, transaction_id, today=None):
    """Delete a forecast transaction; returns the re-projected forecast snapshots."""
    with transaction(conn):
        txn = get_forecast_transaction(conn, user_id, transaction_id)
        if txn is None:
            raise NotFoundError("Transaction not found")

        repo_delete(conn, transaction_id)

        forecast = get_forecast(conn, user_id, txn.forecast_id)
        if forecast is None:
            return []
        return _reproject(conn, user_id, forecast, today=today)


def _validate_manual(account_id, forecast_id, amount, date, name,
                     transaction_type, is_recurring, frequency):
    if not account_id or not forecast_id or not amount or date is None or not name:
        raise ValidationError("accountId, forecastId, amount, date, and name are required")
    if transaction_type is not None and transaction_type not in TRANSACTION_TYPES:
        raise ValidationError(f"transactionType must be one of {', '.join(TRANSACTION_TYPES)}")
    if is_recurring and not frequency:
        raise ValidationError("frequency is required when creating a recurring transaction")
    if is_recurring and frequency not in FREQUENCIES:
        raise ValidationError(f"unknown frequency: {frequency}")


def create_manual_transaction(conn, user_id, *, account_id, forecast_id, amount, date,
                              name, transaction_type=None, category=None, note=None,
                              is_recurring=False, frequency=None, day_of_month=None,
                              day_of_week=None, recurring_end_date=None, today=None):
    """
    Add a user-entered transaction to a forecast.

    With ``is_recurring`` a ``RecurringPattern`` starting on ``date`` is
    created first and the entry is linked to it, so later regenerations keep
    projecting it. The entry stands in for the pattern's first slot, so a
    weekly entry dated off its weekday is not generated again that week.
    The stored amount takes its sign from ``transaction_type`` (inferred
    from the sign of ``amount`` when absent).
    Returns ``(transaction, pattern, balance_snapshots)``.
    """
    _validate_manual(account_id, forecast_id, amount, date, name,
                     transaction_type, is_recurring, frequency)

    transaction_type = transaction_type or ("income" if amount > 0 else "expense")
    signed_amount = -abs(amount) if transaction_type == "expense" else abs(amount)

    with transaction(conn):
        if get_account(conn, user_id, account_id) is None:
            raise NotFoundError("Account not found")
        forecast = get_forecast(conn, user_id, forecast_id)
        if forecast is None or forecast.account_id != account_id:
            raise NotFoundError("Forecast not found")

        pattern = None
        if is_recurring:
            pattern = build_pattern(
                user_id=user_id,
                account_id=account_id,
                name=name,
                amount=amount,
                frequency=frequency,
                start_date=date,
                transaction_type=transaction_type,
                day_of_month=day_of_month if frequency in MONTHLY_FREQUENCIES else None,
                day_of_week=day_of_week if frequency in WEEKLY_FREQUENCIES else None,
                end_date=recurring_end_date,
                confidence=MANUAL_PATTERN_CONFIDENCE,
            )
            insert_pattern(conn, pattern)
            logging.info(f"Created {frequency} pattern {pattern.id} from manual entry \"{name}\"")

        txn = insert_forecast_transaction(
            conn,
            user_id=user_id,
            account_id=account_id,
            forecast_id=forecast_id,
            recurring_pattern_id=pattern.id if pattern else None,
            is_manual=True,
            amount=signed_amount,
            date=date,
            scheduled_date=first_slot(pattern) if pattern else None,
            name=name,
            category=category or None,
            note=note or None,
        )

        snapshots = _reproject(conn, user_id, forecast, today=today)

    return txn, pattern, snapshots
