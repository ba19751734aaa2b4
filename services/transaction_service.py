import logging

import duckdb

from helpers.normalize import normalize_feed_account, normalize_feed_record
from repositories.accounts_repository import get_account, update_sync_state, upsert_account
from repositories.transactions_repository import (
    get_transaction_by_external_id,
    get_transaction_by_id,
    get_transactions_for_account,
    insert_transaction,
    update_name,
    update_synced_transaction,
)
from services.errors import NotFoundError, ValidationError


def list_transactions(conn, user_id, account_id, start_date=None, end_date=None):
    """Return an account's transactions, newest first."""
    if get_account(conn, user_id, account_id) is None:
        raise NotFoundError("Account not found")
    return get_transactions_for_account(
        conn, user_id, account_id,
        start_date=start_date, end_date=end_date, newest_first=True,
    )


def update_transaction_name(conn, user_id, transaction_id, name):
    """Rename a historical transaction.

    The pre-edit name is remembered in ``original_description`` (once set it
    is never cleared) so a later sync can tell the edit apart from a
    feed-side rename.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Transaction name is required")

    txn = get_transaction_by_id(conn, user_id, transaction_id)
    if txn is None:
        raise NotFoundError("Transaction not found")

    original = txn.original_description or txn.name
    update_name(conn, transaction_id, name, original)

    txn.name = name
    txn.original_description = original
    return txn


def _preserve_user_name(existing, feed_name):
    """True when ``existing.name`` looks like a user edit rather than feed data."""
    current = existing.name
    if existing.original_description is not None:
        return current != feed_name and current != existing.original_description

    # older rows without an original description: only trust a clear divergence
    merchant = existing.merchant_name or ""
    return bool(
        merchant
        and current != feed_name
        and current.lower().strip() != merchant.lower().strip()
    )


def _persist_record(conn, user_id, account, raw):
    """Insert or refresh one feed record. Returns "created" or "updated"."""
    record = normalize_feed_record(raw)
    if record["external_account_id"] != account.external_id:
        raise ValueError(f"record belongs to feed account {record['external_account_id']}")

    existing = get_transaction_by_external_id(conn, record["external_id"])
    if existing is None:
        insert_transaction(
            conn,
            user_id=user_id,
            account_id=account.id,
            external_id=record["external_id"],
            amount=record["amount"],
            date=record["date"],
            name=record["name"],
            merchant_name=record["merchant_name"],
            category=record["category"],
            pending=record["pending"],
            original_description=record["name"],
        )
        return "created"

    if existing.account_id != account.id:
        raise ValueError(f"transaction {record['external_id']} is owned by another account")

    preserve = _preserve_user_name(existing, record["name"])
    update_synced_transaction(
        conn, existing.id,
        amount=record["amount"],
        date=record["date"],
        name=existing.name if preserve else record["name"],
        merchant_name=record["merchant_name"],
        category=record["category"],
        pending=record["pending"],
        original_description=existing.original_description or record["name"],
    )
    return "updated"


def sync_feed_accounts(conn, user_id, feed_client):
    """
    Link the feed's accounts to ``user_id``: unknown external ids create an
    account, known ones get their name, type, balance and currency refreshed.
    Sync cursors are left alone. Returns the synced accounts plus counts.
    """
    counts = {"created": 0, "updated": 0, "skipped": 0}
    accounts = []

    for raw in feed_client.fetch_accounts():
        try:
            record = normalize_feed_account(raw)
            account, created = upsert_account(
                conn, user_id, record["external_id"],
                name=record["name"],
                account_type=record["type"],
                current_balance=record["current_balance"],
                currency=record["currency"],
            )
        except (ValueError, TypeError, AttributeError, duckdb.Error) as e:
            counts["skipped"] += 1
            logging.warning(f"Skipped feed account {raw.get('id') if isinstance(raw, dict) else raw!r}: {e}")
            continue
        counts["created" if created else "updated"] += 1
        accounts.append(account)

    logging.info(
        f"Account sync for {user_id}: {counts['created']} created, "
        f"{counts['updated']} updated, {counts['skipped']} skipped"
    )
    return {"accounts": accounts, **counts}


def sync_account_transactions(conn, user_id, account_id, feed_client):
    """
    Pull new and changed transactions for an account from the feed.

    Each record is written on its own, so a bad record is skipped and
    counted without aborting the page. The cursor is saved after every
    page; if the feed fails mid-way, ``UpstreamFeedError`` propagates and
    the pages already persisted stay persisted. Pattern detection is not
    triggered here.
    """
    account = get_account(conn, user_id, account_id)
    if account is None:
        raise NotFoundError("Account not found")
    if not account.external_id:
        raise ValidationError("Account is not linked to the transaction feed")

    counts = {"created": 0, "updated": 0, "skipped": 0}
    cursor = account.sync_cursor

    while True:
        page = feed_client.fetch_transactions(account.external_id, cursor)

        for raw in page["transactions"]:
            try:
                outcome = _persist_record(conn, user_id, account, raw)
            except (ValueError, TypeError, KeyError, AttributeError, duckdb.Error) as e:
                counts["skipped"] += 1
                logging.warning(f"Skipped feed record {raw.get('id') if isinstance(raw, dict) else raw!r}: {e}")
                continue
            counts[outcome] += 1

        next_cursor = page["next_cursor"] or cursor
        update_sync_state(conn, account.id, sync_cursor=next_cursor,
                          current_balance=page["balance"])

        if not page["has_more"] or next_cursor == cursor:
            break
        cursor = next_cursor

    logging.info(
        f"Sync account {account_id}: {counts['created']} created, "
        f"{counts['updated']} updated, {counts['skipped']} skipped"
    )
    return counts
