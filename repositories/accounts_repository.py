import uuid
from datetime import datetime

from db import fetch_dicts
from models.records import Account

# -----------------------------
# Accounts Repository
# -----------------------------

_COLUMNS = """
    id, user_id, external_id, name, type, current_balance, currency,
    sync_cursor, last_synced
"""


def get_account(conn, user_id, account_id):
    """Return the account if it exists and belongs to ``user_id``, else None."""
    rows = fetch_dicts(conn.execute(
        f"SELECT {_COLUMNS} FROM accounts WHERE id = ? AND user_id = ?",
        (account_id, user_id)
    ))
    return Account.from_row(rows[0]) if rows else None


def list_accounts(conn, user_id):
    """Return the user's accounts ordered by name."""
    rows = fetch_dicts(conn.execute(
        f"SELECT {_COLUMNS} FROM accounts WHERE user_id = ? ORDER BY name",
        (user_id,)
    ))
    return [Account.from_row(r) for r in rows]


def create_account(conn, user_id, name, *, account_type="depository",
                   external_id=None, current_balance=None, currency="USD"):
    """Insert an account and return it."""
    account_id = uuid.uuid4().hex
    conn.execute(
        """
        INSERT INTO accounts (id, user_id, external_id, name, type, current_balance, currency)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (account_id, user_id, external_id, name, account_type, current_balance, currency)
    )
    return get_account(conn, user_id, account_id)


def get_account_by_external_id(conn, external_id):
    rows = fetch_dicts(conn.execute(
        f"SELECT {_COLUMNS} FROM accounts WHERE external_id = ?",
        (external_id,)
    ))
    return Account.from_row(rows[0]) if rows else None


def upsert_account(conn, user_id, external_id, *, name, account_type="depository",
                   current_balance=None, currency="USD"):
    """
    Create the account linked to ``external_id`` or refresh its feed-owned fields.
    Returns ``(account, created)``. An external id already linked to another
    user raises ``ValueError``.
    """
    existing = get_account_by_external_id(conn, external_id)
    if existing is None:
        account = create_account(
            conn, user_id, name,
            account_type=account_type,
            external_id=external_id,
            current_balance=current_balance,
            currency=currency,
        )
        return account, True

    if existing.user_id != user_id:
        raise ValueError(f"feed account {external_id} is linked to another user")

    conn.execute(
        """
        UPDATE accounts
        SET name = ?, type = ?, current_balance = COALESCE(?, current_balance), currency = ?
        WHERE id = ?
        """,
        (name, account_type, current_balance, currency, existing.id)
    )
    return get_account(conn, user_id, existing.id), False


def update_sync_state(conn, account_id, *, sync_cursor, current_balance=None):
    """
    Record the feed cursor after a page was persisted.

    ``current_balance`` is only overwritten when the feed reported one.
    """
    if current_balance is None:
        conn.execute(
            "UPDATE accounts SET sync_cursor = ?, last_synced = ? WHERE id = ?",
            (sync_cursor, datetime.now(), account_id)
        )
    else:
        conn.execute(
            """
            UPDATE accounts
            SET sync_cursor = ?, last_synced = ?, current_balance = ?
            WHERE id = ?
            """,
            (sync_cursor, datetime.now(), current_balance, account_id)
        )
