from typing import Optional

from fastapi import Header, HTTPException

from services.errors import ValidationError
from services.feed_client import FeedClient
from utils.dates import parse_calendar_date


def get_user_id(x_user_id: Optional[str] = Header(None)):
    """Caller identity; authenticating the header is the gateway's job."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    return x_user_id


def get_feed_client():
    return FeedClient()


def parse_date_field(value, field_name):
    """Parse an optional ``YYYY-MM-DD`` request value as a calendar day."""
    if value is None or value == "":
        return None
    try:
        return parse_calendar_date(value)
    except ValueError as e:
        raise ValidationError(f"{field_name} must be a YYYY-MM-DD date") from e
