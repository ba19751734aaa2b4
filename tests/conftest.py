"""Shared fixtures: an in-memory DuckDB with the schema applied, plus record factories."""

from datetime import date, timedelta

import duckdb
import pytest

from db import init_db
from repositories.accounts_repository import create_account
from repositories.transactions_repository import insert_transaction

USER_ID = "user-1"
TODAY = date(2024, 3, 15)


@pytest.fixture()
def conn():
    connection = duckdb.connect(":memory:")
    init_db(connection)
    yield connection
    connection.close()


@pytest.fixture()
def account(conn):
    return create_account(
        conn, USER_ID, "Checking",
        external_id="ext-acc-1",
        current_balance=1000.0,
    )


@pytest.fixture()
def add_transaction(conn, account):
    """Insert a historical transaction on the default account."""

    def _add(amount, day, name="Netflix", merchant_name=None, account_id=None, user_id=USER_ID):
        return insert_transaction(
            conn,
            user_id=user_id,
            account_id=account_id or account.id,
            amount=amount,
            date=day,
            name=name,
            merchant_name=merchant_name,
            original_description=name,
        )

    return _add


@pytest.fixture()
def netflix_history(add_transaction):
    """Four monthly -15.99 charges on the 15th."""
    for month in (1, 2, 3, 4):
        add_transaction(-15.99, date(2023, month, 15), name="Netflix")


def every(start, days, count):
    """``count`` dates spaced ``days`` apart, starting at ``start``."""
    return [start + timedelta(days=days * i) for i in range(count)]
