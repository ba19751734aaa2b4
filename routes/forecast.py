from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from db import get_conn
from routes.dependencies import get_user_id, parse_date_field
from services.errors import ValidationError
from services.forecast_dto import (
    forecast_result_to_json,
    forecast_to_json,
    snapshots_to_json,
    transaction_to_json,
)
from services.forecast_service import generate_forecast, get_forecast
from services.forecast_transaction_service import (
    UNSET,
    create_manual_transaction,
    delete_forecast_transaction,
    update_forecast_transaction,
)

router = APIRouter(prefix="/forecasts")


class GenerateRequest(BaseModel):
    account_id: Optional[str] = None
    end_date: Optional[str] = None
    include_pattern_ids: Optional[List[str]] = None


class ForecastTransactionUpdate(BaseModel):
    amount: Optional[float] = None
    date: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    note: Optional[str] = None


class ManualTransactionCreate(BaseModel):
    account_id: Optional[str] = None
    forecast_id: Optional[str] = None
    amount: Optional[float] = None
    date: Optional[str] = None
    name: Optional[str] = None
    transaction_type: Optional[str] = None
    category: Optional[str] = None
    note: Optional[str] = None
    is_recurring: bool = False
    frequency: Optional[str] = None
    day_of_month: Optional[int] = None
    day_of_week: Optional[int] = None
    recurring_end_date: Optional[str] = None


@router.post("/generate")
def generate(body: GenerateRequest, user_id: str = Depends(get_user_id), conn=Depends(get_conn)):
    """
    Regenerate the forecast of an account from today through ``end_date``.

    Manual and edited rows of an existing forecast are kept; pattern-derived
    rows are rebuilt. Returns the forecast, its transactions and the daily
    balance line.
    """
    if not body.account_id or not body.end_date:
        raise ValidationError("account_id and end_date are required")

    result = generate_forecast(
        conn, user_id, body.account_id,
        parse_date_field(body.end_date, "end_date"),
        include_pattern_ids=body.include_pattern_ids,
    )
    return forecast_result_to_json(result)


@router.get("/{forecast_id}")
def get_single_forecast(forecast_id: str, user_id: str = Depends(get_user_id),
                        conn=Depends(get_conn)):
    return forecast_result_to_json(get_forecast(conn, user_id, forecast_id))


@router.get("/{forecast_id}/balance")
def get_forecast_balance(forecast_id: str, user_id: str = Depends(get_user_id),
                         conn=Depends(get_conn)):
    result = get_forecast(conn, user_id, forecast_id)
    return {
        "forecast_id": result.forecast.id,
        "projected_balance": result.forecast.projected_balance,
        "balance_snapshots": snapshots_to_json(result.balance_snapshots),
    }


@router.put("/transactions/{transaction_id}")
def edit_forecast_transaction(transaction_id: str, body: ForecastTransactionUpdate,
                              user_id: str = Depends(get_user_id), conn=Depends(get_conn)):
    # category and note may be cleared with an explicit null
    fields_set = body.model_fields_set
    txn, snapshots, forecast = update_forecast_transaction(
        conn, user_id, transaction_id,
        amount=body.amount,
        date=parse_date_field(body.date, "date"),
        name=body.name,
        category=body.category if "category" in fields_set else UNSET,
        note=body.note if "note" in fields_set else UNSET,
    )
    return {
        "transaction": transaction_to_json(txn),
        "forecast": forecast_to_json(forecast) if forecast else None,
        "balance_snapshots": snapshots_to_json(snapshots),
    }


@router.delete("/transactions/{transaction_id}")
def remove_forecast_transaction(transaction_id: str, user_id: str = Depends(get_user_id),
                                conn=Depends(get_conn)):
    snapshots = delete_forecast_transaction(conn, user_id, transaction_id)
    return {"success": True, "balance_snapshots": snapshots_to_json(snapshots)}


@router.post("/transactions/manual")
def add_manual_transaction(body: ManualTransactionCreate,
                           user_id: str = Depends(get_user_id), conn=Depends(get_conn)):
    txn, pattern, snapshots = create_manual_transaction(
        conn, user_id,
        account_id=body.account_id,
        forecast_id=body.forecast_id,
        amount=body.amount,
        date=parse_date_field(body.date, "date"),
        name=body.name,
        transaction_type=body.transaction_type,
        category=body.category,
        note=body.note,
        is_recurring=body.is_recurring,
        frequency=body.frequency,
        day_of_month=body.day_of_month,
        day_of_week=body.day_of_week,
        recurring_end_date=parse_date_field(body.recurring_end_date, "recurring_end_date"),
    )
    return {
        "transaction": transaction_to_json(txn),
        "pattern": pattern.to_dict() if pattern else None,
        "balance_snapshots": snapshots_to_json(snapshots),
    }
