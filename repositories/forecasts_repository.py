import json
import uuid
from datetime import datetime

from db import fetch_dicts
from models.records import Forecast

# -----------------------------
# Forecasts Repository
# -----------------------------

_COLUMNS = """
    id, user_id, account_id, forecast_date, start_date, end_date,
    initial_balance, projected_balance, metadata
"""


def get_forecast(conn, user_id, forecast_id):
    rows = fetch_dicts(conn.execute(
        f"SELECT {_COLUMNS} FROM forecasts WHERE id = ? AND user_id = ?",
        (forecast_id, user_id)
    ))
    return Forecast.from_row(rows[0]) if rows else None


def get_forecast_for_account(conn, user_id, account_id):
    """Return the account's live forecast, if one was ever generated."""
    rows = fetch_dicts(conn.execute(
        f"SELECT {_COLUMNS} FROM forecasts WHERE user_id = ? AND account_id = ?",
        (user_id, account_id)
    ))
    return Forecast.from_row(rows[0]) if rows else None


def upsert_forecast(conn, user_id, account_id, *, start_date, end_date,
                    initial_balance, metadata):
    """
    Create the account's forecast or reset the window of the existing one.

    The existing row keeps its id so manual forecast transactions stay attached.
    ``projected_balance`` restarts at ``initial_balance`` until the caller
    stores the projection result.
    """
    existing = get_forecast_for_account(conn, user_id, account_id)
    now = datetime.now()
    metadata_json = json.dumps(metadata)

    if existing:
        conn.execute(
            """
            UPDATE forecasts
            SET forecast_date = ?, start_date = ?, end_date = ?,
                initial_balance = ?, projected_balance = ?, metadata = ?
            WHERE id = ?
            """,
            (now, start_date, end_date, initial_balance, initial_balance,
             metadata_json, existing.id)
        )
        forecast_id = existing.id
    else:
        forecast_id = uuid.uuid4().hex
        conn.execute(
            """
            INSERT INTO forecasts
            (id, user_id, account_id, forecast_date, start_date, end_date,
             initial_balance, projected_balance, metadata)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (forecast_id, user_id, account_id, now, start_date, end_date,
             initial_balance, initial_balance, metadata_json)
        )

    return get_forecast(conn, user_id, forecast_id)


def update_projected_balance(conn, forecast_id, projected_balance):
    conn.execute(
        "UPDATE forecasts SET projected_balance = ? WHERE id = ?",
        (projected_balance, forecast_id)
    )
