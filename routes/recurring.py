from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from db import get_conn
from routes.dependencies import get_user_id, parse_date_field
from services.errors import ValidationError
from services.pattern_service import (
    UNSET,
    create_pattern_from_transaction,
    delete_pattern,
    list_patterns,
    update_pattern,
)
from services.recurring_detector import CONFIDENCE_FLOOR, detect_patterns, redetect_patterns

router = APIRouter(prefix="/recurring")


class DetectRequest(BaseModel):
    account_id: Optional[str] = None
    min_confidence: Optional[float] = None
    redetect: bool = False


class PatternUpdate(BaseModel):
    end_date: Optional[str] = None
    amount: Optional[float] = None
    frequency: Optional[str] = None


class PatternFromTransaction(BaseModel):
    transaction_id: Optional[str] = None
    frequency: Optional[str] = None
    amount: Optional[float] = None
    name: Optional[str] = None
    day_of_month: Optional[int] = None
    day_of_week: Optional[int] = None


@router.post("/detect")
def detect(body: DetectRequest, user_id: str = Depends(get_user_id), conn=Depends(get_conn)):
    """
    Detect recurring patterns for an account.

    ``min_confidence`` below 0.6 has no effect: 0.6 is a hard floor.
    ``redetect`` first deletes every existing pattern of the account.
    """
    if not body.account_id:
        raise ValidationError("account_id is required")

    min_confidence = body.min_confidence or CONFIDENCE_FLOOR
    run = redetect_patterns if body.redetect else detect_patterns
    patterns = run(conn, user_id, body.account_id, min_confidence)
    return {"patterns": [p.to_dict() for p in patterns]}


@router.get("/patterns")
def get_patterns(account_id: Optional[str] = Query(None),
                 user_id: str = Depends(get_user_id), conn=Depends(get_conn)):
    patterns = list_patterns(conn, user_id, account_id=account_id)
    return {"patterns": [p.to_dict() for p in patterns]}


@router.put("/patterns/{pattern_id}")
def edit_pattern(pattern_id: str, body: PatternUpdate,
                 user_id: str = Depends(get_user_id), conn=Depends(get_conn)):
    end_date = UNSET
    if "end_date" in body.model_fields_set:
        end_date = parse_date_field(body.end_date, "end_date")

    pattern = update_pattern(
        conn, user_id, pattern_id,
        end_date=end_date,
        amount=body.amount,
        frequency=body.frequency,
    )
    return {"pattern": pattern.to_dict()}


@router.delete("/patterns/{pattern_id}")
def remove_pattern(pattern_id: str, user_id: str = Depends(get_user_id), conn=Depends(get_conn)):
    delete_pattern(conn, user_id, pattern_id)
    return {"success": True}


@router.post("/patterns/from-transaction")
def pattern_from_transaction(body: PatternFromTransaction,
                             user_id: str = Depends(get_user_id), conn=Depends(get_conn)):
    if not body.transaction_id:
        raise ValidationError("transaction_id is required")

    pattern = create_pattern_from_transaction(
        conn, user_id, body.transaction_id, body.frequency,
        amount=body.amount,
        name=body.name,
        day_of_month=body.day_of_month,
        day_of_week=body.day_of_week,
    )
    return {"pattern": pattern.to_dict()}
