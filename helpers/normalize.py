# helpers/normalize.py
from config import FEED_SIGN_CONVENTION
from utils.dates import parse_calendar_date
from utils.money import parse_money

SIGN_CONVENTIONS = ("outflow_positive", "inflow_positive")


def normalize_feed_record(record: dict, sign_convention: str = FEED_SIGN_CONVENTION):
    """
    Convert a raw feed record into a canonical transaction dict.

    The amount is flipped into the positive = inflow convention when the
    feed reports outflows as positive. Raises ``ValueError`` when a
    required field is missing or unparseable.
    """
    if sign_convention not in SIGN_CONVENTIONS:
        raise ValueError(f"unknown sign convention: {sign_convention}")

    external_id = record.get("id") or record.get("transaction_id")
    if not external_id:
        raise ValueError("missing transaction id")
    if not record.get("account_id"):
        raise ValueError("missing account id")
    if not record.get("date"):
        raise ValueError("missing date")

    name = (record.get("name") or "").strip()
    if not name:
        raise ValueError("missing name")

    amount = float(parse_money(record.get("amount")))
    if sign_convention == "outflow_positive":
        amount = -amount

    category = record.get("category")
    if isinstance(category, (list, tuple)):
        category = ", ".join(str(c) for c in category)

    return {
        "external_id": str(external_id),
        "external_account_id": str(record["account_id"]),
        "amount": amount,
        "date": parse_calendar_date(record["date"]),
        "name": name,
        "merchant_name": record.get("merchant_name") or None,
        "category": category or None,
        "pending": bool(record.get("pending") or False),
    }


def normalize_feed_account(record: dict):
    """
    Convert a raw feed account into the fields stored on ``accounts``.

    Balance and currency are read flat (``balance``, ``currency``) or from a
    nested ``balances`` object (``current``, ``iso_currency_code``). The
    currency defaults to USD.
    """
    external_id = record.get("id") or record.get("account_id")
    if not external_id:
        raise ValueError("missing account id")

    name = (record.get("name") or record.get("official_name") or "").strip()
    if not name:
        raise ValueError("missing account name")

    balances = record.get("balances") or {}
    balance = record.get("balance", balances.get("current"))
    currency = record.get("currency") or balances.get("iso_currency_code") or "USD"

    return {
        "external_id": str(external_id),
        "name": name,
        "type": record.get("type") or "depository",
        "current_balance": float(parse_money(balance)) if balance is not None else None,
        "currency": str(currency).upper(),
    }
