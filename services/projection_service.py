from collections import defaultdict
from datetime import date, timedelta

from models.projection_dto import BalanceSnapshot
from repositories.forecast_transactions_repository import list_for_forecast


def build_balance_snapshots(transactions, initial_balance, start_date, end_date, today=None):
    """Dense day-by-day balance series from ``start_date`` to ``end_date`` inclusive.

    Pure function of its inputs. Transactions dated on or before ``today``
    are ignored; every remaining amount is applied on its calendar day and
    days without activity repeat the previous balance.
    """
    if today is None:
        today = date.today()

    # --- bucket amounts by day ---
    daily_deltas = defaultdict(float)
    for txn in transactions:
        if txn.date > today:
            daily_deltas[txn.date] += txn.amount

    # --- build timeline ---
    snapshots = []
    running = initial_balance
    iter_day = start_date
    while iter_day <= end_date:
        running += daily_deltas.get(iter_day, 0.0)
        snapshots.append(BalanceSnapshot(date=iter_day, balance=running))
        iter_day += timedelta(days=1)

    return snapshots


def project_balance(conn, user_id, account_id, forecast_id, initial_balance,
                    start_date, end_date, today=None):
    """Load a forecast's transactions and project its balance line."""
    transactions = list_for_forecast(conn, user_id, account_id, forecast_id)
    return build_balance_snapshots(transactions, initial_balance, start_date, end_date, today)


def final_balance(snapshots, initial_balance):
    """Balance on the last projected day, or the starting balance for an empty window."""
    if not snapshots:
        return initial_balance
    return snapshots[-1].balance
