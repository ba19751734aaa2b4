from dataclasses import asdict

from fastapi import APIRouter, Depends

from db import get_conn
from repositories.accounts_repository import get_account, list_accounts
from routes.dependencies import get_feed_client, get_user_id
from services.errors import NotFoundError
from services.transaction_service import sync_feed_accounts

router = APIRouter(prefix="/accounts")


@router.get("")
def get_accounts(user_id: str = Depends(get_user_id), conn=Depends(get_conn)):
    return {"accounts": [asdict(a) for a in list_accounts(conn, user_id)]}


@router.post("/sync")
def sync_accounts(user_id: str = Depends(get_user_id), conn=Depends(get_conn),
                  feed_client=Depends(get_feed_client)):
    """Create or refresh the caller's accounts from the feed's account list."""
    result = sync_feed_accounts(conn, user_id, feed_client)
    return {
        "success": True,
        "accounts": [asdict(a) for a in result["accounts"]],
        "created": result["created"],
        "updated": result["updated"],
        "skipped": result["skipped"],
    }


@router.get("/{account_id}")
def get_single_account(account_id: str, user_id: str = Depends(get_user_id),
                       conn=Depends(get_conn)):
    account = get_account(conn, user_id, account_id)
    if account is None:
        raise NotFoundError("Account not found")
    return {"account": asdict(account)}
