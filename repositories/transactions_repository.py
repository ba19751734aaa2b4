import uuid
from datetime import datetime

from db import fetch_dicts
from models.records import Transaction

# -----------------------------
# Transactions Repository
# -----------------------------

_COLUMNS = """
    id, user_id, account_id, external_id, amount, date, name, merchant_name,
    category, pending, original_description
"""


def insert_transaction(conn, *, user_id, account_id, amount, date, name,
                       external_id=None, merchant_name=None, category=None,
                       pending=False, original_description=None):
    """
    Inserts a historical transaction and returns its id.
    - amount: already in the positive = inflow convention
    - original_description: the feed's name at first sight, kept for edit detection
    """
    transaction_id = uuid.uuid4().hex
    conn.execute(
        """
        INSERT INTO transactions
        (id, user_id, account_id, external_id, amount, date, name, merchant_name,
         category, pending, original_description, last_synced)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (transaction_id, user_id, account_id, external_id, amount, date, name,
         merchant_name, category, pending, original_description, datetime.now())
    )
    return transaction_id


def get_transaction_by_id(conn, user_id, transaction_id):
    rows = fetch_dicts(conn.execute(
        f"SELECT {_COLUMNS} FROM transactions WHERE id = ? AND user_id = ?",
        (transaction_id, user_id)
    ))
    return Transaction.from_row(rows[0]) if rows else None


def get_transaction_by_external_id(conn, external_id):
    rows = fetch_dicts(conn.execute(
        f"SELECT {_COLUMNS} FROM transactions WHERE external_id = ?",
        (external_id,)
    ))
    return Transaction.from_row(rows[0]) if rows else None


def get_transactions_for_account(conn, user_id, account_id, *,
                                 start_date=None, end_date=None, newest_first=False):
    """
    Returns the account's transactions.
    - start_date / end_date: optional inclusive calendar bounds
    - newest_first: order by date descending instead of ascending
    """
    query = f"SELECT {_COLUMNS} FROM transactions WHERE user_id = ? AND account_id = ?"
    params = [user_id, account_id]

    if start_date is not None:
        query += " AND date >= ?"
        params.append(start_date)
    if end_date is not None:
        query += " AND date <= ?"
        params.append(end_date)

    query += " ORDER BY date DESC, id" if newest_first else " ORDER BY date ASC, id"

    return [Transaction.from_row(r) for r in fetch_dicts(conn.execute(query, params))]


def update_synced_transaction(conn, transaction_id, *, amount, date, name,
                              merchant_name, category, pending, original_description):
    """Overwrite feed-owned fields of an already-synced transaction."""
    conn.execute(
        """
        UPDATE transactions
        SET amount = ?, date = ?, name = ?, merchant_name = ?, category = ?,
            pending = ?, original_description = ?, last_synced = ?
        WHERE id = ?
        """,
        (amount, date, name, merchant_name, category, pending,
         original_description, datetime.now(), transaction_id)
    )


def update_name(conn, transaction_id, name, original_description):
    conn.execute(
        "UPDATE transactions SET name = ?, original_description = ? WHERE id = ?",
        (name, original_description, transaction_id)
    )
