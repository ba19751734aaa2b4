### Forecast service looks ahead through recurring patterns and materializes their future occurrences.
import logging
from datetime import date

from config import FORECAST_TRANSACTION_TIMEOUT, MAX_FORECAST_MONTHS
from db import transaction
from models.projection_dto import ForecastResult
from repositories.accounts_repository import get_account
from repositories.forecast_transactions_repository import (
    delete_generated,
    insert_forecast_transaction,
    list_for_forecast,
)
from repositories.forecasts_repository import (
    get_forecast as repo_get_forecast,
    update_projected_balance,
    upsert_forecast,
)
from repositories.patterns_repository import list_patterns
from services.errors import NotFoundError, ValidationError
from services.occurrence_service import calculate_occurrences
from services.projection_service import final_balance, project_balance
from utils.dates import add_months
from utils.money import round_money


def occurrence_key(pattern_id, occurrence_date, name, amount):
    """Identity of one materialized occurrence for duplicate checks."""
    return f"{pattern_id}|{occurrence_date.isoformat()}|{name}|{round_money(amount):.2f}"


def generate_forecast_transactions(conn, user_id, account_id, forecast_id,
                                   start_date, end_date, include_pattern_ids=None, today=None):
    """
    Insert the pattern occurrences of ``[start_date, end_date]`` into a forecast.

    Must run inside the caller's store transaction. An occurrence is skipped
    when a row already on the forecast (or staged earlier in this pass)
    has the same pattern, date, name and rounded amount, or when a
    pattern-linked row was generated for that same scheduled date and has
    since been edited.
    """
    patterns = list_patterns(conn, user_id, account_id=account_id,
                             pattern_ids=include_pattern_ids)

    existing = list_for_forecast(conn, user_id, account_id, forecast_id,
                                 pattern_linked_only=True)
    existing_keys = {
        occurrence_key(t.recurring_pattern_id, t.date, t.name, t.amount) for t in existing
    }
    materialized = {
        (t.recurring_pattern_id, t.scheduled_date)
        for t in existing if t.scheduled_date is not None
    }

    staged_keys = set()
    created = []
    skipped = 0

    for pattern in patterns:
        amount = pattern.signed_amount
        for occurrence_date in calculate_occurrences(pattern, start_date, end_date, today=today):
            key = occurrence_key(pattern.id, occurrence_date, pattern.name, amount)
            if (key in existing_keys or key in staged_keys
                    or (pattern.id, occurrence_date) in materialized):
                skipped += 1
                continue
            staged_keys.add(key)

            created.append(insert_forecast_transaction(
                conn,
                user_id=user_id,
                account_id=account_id,
                forecast_id=forecast_id,
                recurring_pattern_id=pattern.id,
                is_manual=False,
                amount=amount,
                date=occurrence_date,
                scheduled_date=occurrence_date,
                name=pattern.name,
            ))

    logging.info(
        f"Forecast {forecast_id}: {len(created)} occurrences created from "
        f"{len(patterns)} patterns, {skipped} already materialized"
    )
    return created


def _validate_window(start_date, end_date):
    if end_date is None:
        raise ValidationError("endDate is required")
    if end_date < start_date:
        raise ValidationError("endDate must not be before the forecast start")
    if end_date > add_months(start_date, MAX_FORECAST_MONTHS):
        raise ValidationError(f"endDate must be within {MAX_FORECAST_MONTHS} months")


def generate_forecast(conn, user_id, account_id, end_date,
                      include_pattern_ids=None, today=None):
    """
    Regenerate the account's forecast up to ``end_date`` and project balances.

    Runs as one store transaction: the forecast row is upserted (its id,
    and with it every manual row, survives), non-manual rows are replaced by
    freshly reconciled occurrences and ``projected_balance`` is stored.
    A missing account raises ``NotFoundError`` with nothing written.
    """
    if today is None:
        today = date.today()
    start_date = today
    _validate_window(start_date, end_date)

    with transaction(conn, timeout=FORECAST_TRANSACTION_TIMEOUT):
        account = get_account(conn, user_id, account_id)
        if account is None:
            raise NotFoundError("Account not found")

        initial_balance = account.current_balance or 0.0

        forecast = upsert_forecast(
            conn, user_id, account_id,
            start_date=start_date,
            end_date=end_date,
            initial_balance=initial_balance,
            metadata={"include_pattern_ids": list(include_pattern_ids or [])},
        )

        removed = delete_generated(conn, forecast.id)
        logging.info(f"Forecast {forecast.id}: removed {removed} generated transactions")

        generate_forecast_transactions(
            conn, user_id, account_id, forecast.id, start_date, end_date,
            include_pattern_ids=include_pattern_ids, today=today,
        )

        transactions = list_for_forecast(conn, user_id, account_id, forecast.id)
        snapshots = project_balance(
            conn, user_id, account_id, forecast.id, initial_balance,
            start_date, end_date, today=today,
        )

        forecast.projected_balance = final_balance(snapshots, initial_balance)
        update_projected_balance(conn, forecast.id, forecast.projected_balance)

    return ForecastResult(
        forecast=forecast,
        transactions=transactions,
        balance_snapshots=snapshots,
    )


def get_forecast(conn, user_id, forecast_id, today=None):
    """Return a stored forecast with its transactions and a fresh projection."""
    forecast = repo_get_forecast(conn, user_id, forecast_id)
    if forecast is None:
        raise NotFoundError("Forecast not found")

    transactions = list_for_forecast(conn, user_id, forecast.account_id, forecast.id)
    snapshots = project_balance(
        conn, user_id, forecast.account_id, forecast.id, forecast.initial_balance,
        forecast.start_date, forecast.end_date, today=today,
    )
    return ForecastResult(forecast=forecast, transactions=transactions, balance_snapshots=snapshots)
