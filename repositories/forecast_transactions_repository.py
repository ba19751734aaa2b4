import uuid

from db import fetch_dicts
from models.records import ForecastTransaction

# -----------------------------
# Forecast Transactions Repository
# -----------------------------

_COLUMNS = """
    id, user_id, account_id, forecast_id, recurring_pattern_id, is_manual,
    amount, date, scheduled_date, name, category, note
"""


def insert_forecast_transaction(conn, *, user_id, account_id, forecast_id, amount,
                                date, name, recurring_pattern_id=None, is_manual=False,
                                scheduled_date=None, category=None, note=None):
    """Insert a forecast transaction and return it."""
    transaction_id = uuid.uuid4().hex
    conn.execute(
        """
        INSERT INTO forecast_transactions
        (id, user_id, account_id, forecast_id, recurring_pattern_id, is_manual,
         amount, date, scheduled_date, name, category, note)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (transaction_id, user_id, account_id, forecast_id, recurring_pattern_id,
         is_manual, amount, date, scheduled_date, name, category, note)
    )
    return ForecastTransaction(
        id=transaction_id,
        user_id=user_id,
        account_id=account_id,
        forecast_id=forecast_id,
        recurring_pattern_id=recurring_pattern_id,
        is_manual=is_manual,
        amount=amount,
        date=date,
        scheduled_date=scheduled_date,
        name=name,
        category=category,
        note=note,
    )


def get_forecast_transaction(conn, user_id, transaction_id):
    rows = fetch_dicts(conn.execute(
        f"SELECT {_COLUMNS} FROM forecast_transactions WHERE id = ? AND user_id = ?",
        (transaction_id, user_id)
    ))
    return ForecastTransaction.from_row(rows[0]) if rows else None


def list_for_forecast(conn, user_id, account_id, forecast_id, *, pattern_linked_only=False):
    """
    Return a forecast's transactions ordered by date.
    - pattern_linked_only: keep only rows that still reference a pattern
    """
    query = f"""
        SELECT {_COLUMNS} FROM forecast_transactions
        WHERE forecast_id = ? AND user_id = ? AND account_id = ?
    """
    if pattern_linked_only:
        query += " AND recurring_pattern_id IS NOT NULL"
    query += " ORDER BY date, id"

    rows = fetch_dicts(conn.execute(query, (forecast_id, user_id, account_id)))
    return [ForecastTransaction.from_row(r) for r in rows]


def delete_generated(conn, forecast_id):
    """Remove every non-manual row of a forecast; manual rows are untouched."""
    deleted = conn.execute(
        "SELECT COUNT(*) FROM forecast_transactions WHERE forecast_id = ? AND is_manual = FALSE",
        (forecast_id,)
    ).fetchone()[0]
    conn.execute(
        "DELETE FROM forecast_transactions WHERE forecast_id = ? AND is_manual = FALSE",
        (forecast_id,)
    )
    return deleted


def update_forecast_transaction(conn, transaction: ForecastTransaction):
    """Write back the editable fields of ``transaction``."""
    conn.execute(
        """
        UPDATE forecast_transactions
        SET amount = ?, date = ?, name = ?, category = ?, note = ?, is_manual = ?
        WHERE id = ?
        """,
        (transaction.amount, transaction.date, transaction.name, transaction.category,
         transaction.note, transaction.is_manual, transaction.id)
    )


def delete_forecast_transaction(conn, transaction_id):
    conn.execute("DELETE FROM forecast_transactions WHERE id = ?", (transaction_id,))
