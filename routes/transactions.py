from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from db import get_conn
from routes.dependencies import get_feed_client, get_user_id, parse_date_field
from services.transaction_service import (
    list_transactions,
    sync_account_transactions,
    update_transaction_name,
)

router = APIRouter(prefix="/transactions")


class TransactionRename(BaseModel):
    name: str


@router.get("/account/{account_id}")
def get_account_transactions(
    account_id: str,
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    user_id: str = Depends(get_user_id),
    conn=Depends(get_conn),
):
    transactions = list_transactions(
        conn, user_id, account_id,
        start_date=parse_date_field(start_date, "start_date"),
        end_date=parse_date_field(end_date, "end_date"),
    )
    return {"transactions": [asdict(t) for t in transactions]}


@router.put("/{transaction_id}")
def rename_transaction(transaction_id: str, body: TransactionRename,
                       user_id: str = Depends(get_user_id), conn=Depends(get_conn)):
    txn = update_transaction_name(conn, user_id, transaction_id, body.name)
    return {"transaction": asdict(txn)}


@router.post("/sync/{account_id}")
def sync_transactions(account_id: str, user_id: str = Depends(get_user_id),
                      conn=Depends(get_conn), feed_client=Depends(get_feed_client)):
    """Pull transactions from the feed. Pattern detection is not re-run here."""
    counts = sync_account_transactions(conn, user_id, account_id, feed_client)
    return {"success": True, **counts}
