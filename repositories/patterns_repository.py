import uuid

from db import fetch_dicts
from models.records import RecurringPattern

# -----------------------------
# Recurring Patterns Repository
# -----------------------------

_COLUMNS = """
    id, user_id, account_id, name, merchant_name, amount, amount_tolerance,
    frequency, day_of_month, day_of_week, start_date, end_date,
    transaction_type, confidence
"""


def new_pattern_id():
    return uuid.uuid4().hex


def insert_pattern(conn, pattern: RecurringPattern):
    """Persist ``pattern`` as given (its id included) and return it."""
    conn.execute(
        """
        INSERT INTO recurring_patterns
        (id, user_id, account_id, name, merchant_name, amount, amount_tolerance,
         frequency, day_of_month, day_of_week, start_date, end_date,
         transaction_type, confidence)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (pattern.id, pattern.user_id, pattern.account_id, pattern.name,
         pattern.merchant_name, pattern.amount, pattern.amount_tolerance,
         pattern.frequency, pattern.day_of_month, pattern.day_of_week,
         pattern.start_date, pattern.end_date, pattern.transaction_type,
         pattern.confidence)
    )
    return pattern


def get_pattern(conn, user_id, pattern_id):
    rows = fetch_dicts(conn.execute(
        f"SELECT {_COLUMNS} FROM recurring_patterns WHERE id = ? AND user_id = ?",
        (pattern_id, user_id)
    ))
    return RecurringPattern.from_row(rows[0]) if rows else None


def list_patterns(conn, user_id, account_id=None, pattern_ids=None):
    """
    Return patterns for a user, newest first.
    - account_id: optional account filter
    - pattern_ids: optional id filter; an empty list means "no filter"
    """
    query = f"SELECT {_COLUMNS} FROM recurring_patterns WHERE user_id = ?"
    params = [user_id]

    if account_id is not None:
        query += " AND account_id = ?"
        params.append(account_id)

    if pattern_ids:
        placeholders = ", ".join("?" for _ in pattern_ids)
        query += f" AND id IN ({placeholders})"
        params.extend(pattern_ids)

    query += " ORDER BY created_at DESC, id"

    return [RecurringPattern.from_row(r) for r in fetch_dicts(conn.execute(query, params))]


def update_pattern(conn, pattern: RecurringPattern):
    """Write back the user-editable fields of ``pattern``."""
    conn.execute(
        """
        UPDATE recurring_patterns
        SET name = ?, amount = ?, frequency = ?, day_of_month = ?, day_of_week = ?,
            start_date = ?, end_date = ?
        WHERE id = ?
        """,
        (pattern.name, pattern.amount, pattern.frequency, pattern.day_of_month,
         pattern.day_of_week, pattern.start_date, pattern.end_date, pattern.id)
    )


def delete_pattern(conn, pattern_id):
    """
    Delete a pattern. Forecast transactions that pointed at it are kept
    and lose their pattern reference.
    """
    conn.execute(
        "UPDATE forecast_transactions SET recurring_pattern_id = NULL WHERE recurring_pattern_id = ?",
        (pattern_id,)
    )
    conn.execute("DELETE FROM recurring_patterns WHERE id = ?", (pattern_id,))


def delete_patterns_for_account(conn, user_id, account_id):
    """Delete every pattern of the account; returns how many were removed."""
    conn.execute(
        """
        UPDATE forecast_transactions SET recurring_pattern_id = NULL
        WHERE recurring_pattern_id IN (
            SELECT id FROM recurring_patterns WHERE user_id = ? AND account_id = ?
        )
        """,
        (user_id, account_id)
    )
    deleted = conn.execute(
        "SELECT COUNT(*) FROM recurring_patterns WHERE user_id = ? AND account_id = ?",
        (user_id, account_id)
    ).fetchone()[0]
    conn.execute(
        "DELETE FROM recurring_patterns WHERE user_id = ? AND account_id = ?",
        (user_id, account_id)
    )
    return deleted
