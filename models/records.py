"""Record types shared by the repositories and services."""

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Union

FREQUENCIES = ("daily", "weekly", "biweekly", "monthly", "quarterly", "yearly")
WEEKLY_FREQUENCIES = ("weekly", "biweekly")
MONTHLY_FREQUENCIES = ("monthly", "quarterly", "yearly")
TRANSACTION_TYPES = ("income", "expense")


@dataclass(frozen=True)
class DayOfMonth:
    """Phase for monthly, quarterly and yearly patterns."""
    day: int

    def __post_init__(self):
        if not 1 <= self.day <= 31:
            raise ValueError(f"day_of_month must be in 1..31, got {self.day}")


@dataclass(frozen=True)
class DayOfWeek:
    """Phase for weekly and biweekly patterns. 0 = Sunday .. 6 = Saturday."""
    day: int

    def __post_init__(self):
        if not 0 <= self.day <= 6:
            raise ValueError(f"day_of_week must be in 0..6, got {self.day}")


Phase = Union[DayOfMonth, DayOfWeek, None]


def phase_from_columns(day_of_month, day_of_week) -> Phase:
    if day_of_month is not None:
        return DayOfMonth(int(day_of_month))
    if day_of_week is not None:
        return DayOfWeek(int(day_of_week))
    return None


@dataclass
class Account:
    id: str
    user_id: str
    name: str
    type: str = "depository"
    external_id: Optional[str] = None
    current_balance: Optional[float] = None
    currency: Optional[str] = "USD"
    sync_cursor: Optional[str] = None
    last_synced: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "Account":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            type=row["type"],
            external_id=row["external_id"],
            current_balance=row["current_balance"],
            currency=row["currency"],
            sync_cursor=row["sync_cursor"],
            last_synced=row["last_synced"],
        )


@dataclass
class Transaction:
    """Historical transaction. Positive amount = money in."""
    id: str
    user_id: str
    account_id: str
    amount: float
    date: date
    name: str
    external_id: Optional[str] = None
    merchant_name: Optional[str] = None
    category: Optional[str] = None
    pending: bool = False
    original_description: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "Transaction":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            account_id=row["account_id"],
            amount=row["amount"],
            date=row["date"],
            name=row["name"],
            external_id=row["external_id"],
            merchant_name=row["merchant_name"],
            category=row["category"],
            pending=bool(row["pending"]),
            original_description=row["original_description"],
        )


@dataclass
class RecurringPattern:
    id: str
    user_id: str
    account_id: str
    name: str
    amount: float
    frequency: str
    start_date: date
    transaction_type: str
    merchant_name: Optional[str] = None
    amount_tolerance: float = 0.10
    phase: Phase = None
    end_date: Optional[date] = None
    confidence: float = 0.0

    def __post_init__(self):
        if self.frequency not in FREQUENCIES:
            raise ValueError(f"unknown frequency: {self.frequency}")
        if self.transaction_type not in TRANSACTION_TYPES:
            raise ValueError(f"unknown transaction type: {self.transaction_type}")
        if isinstance(self.phase, DayOfMonth) and self.frequency not in MONTHLY_FREQUENCIES:
            raise ValueError(f"day_of_month is not meaningful for {self.frequency} patterns")
        if isinstance(self.phase, DayOfWeek) and self.frequency not in WEEKLY_FREQUENCIES:
            raise ValueError(f"day_of_week is not meaningful for {self.frequency} patterns")

    @property
    def day_of_month(self) -> Optional[int]:
        return self.phase.day if isinstance(self.phase, DayOfMonth) else None

    @property
    def day_of_week(self) -> Optional[int]:
        return self.phase.day if isinstance(self.phase, DayOfWeek) else None

    @property
    def signed_amount(self) -> float:
        """Pattern amount with the sign implied by its transaction type."""
        if self.transaction_type == "expense":
            return -abs(self.amount)
        return abs(self.amount)

    @classmethod
    def from_row(cls, row: dict) -> "RecurringPattern":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            account_id=row["account_id"],
            name=row["name"],
            merchant_name=row["merchant_name"],
            amount=row["amount"],
            amount_tolerance=row["amount_tolerance"],
            frequency=row["frequency"],
            phase=phase_from_columns(row["day_of_month"], row["day_of_week"]),
            start_date=row["start_date"],
            end_date=row["end_date"],
            transaction_type=row["transaction_type"],
            confidence=row["confidence"],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "account_id": self.account_id,
            "name": self.name,
            "merchant_name": self.merchant_name,
            "amount": self.amount,
            "amount_tolerance": self.amount_tolerance,
            "frequency": self.frequency,
            "day_of_month": self.day_of_month,
            "day_of_week": self.day_of_week,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "transaction_type": self.transaction_type,
            "confidence": self.confidence,
        }


@dataclass
class Forecast:
    id: str
    user_id: str
    account_id: str
    forecast_date: datetime
    start_date: date
    end_date: date
    initial_balance: float
    projected_balance: float
    metadata: dict = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: dict) -> "Forecast":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            account_id=row["account_id"],
            forecast_date=row["forecast_date"],
            start_date=row["start_date"],
            end_date=row["end_date"],
            initial_balance=row["initial_balance"],
            projected_balance=row["projected_balance"],
            metadata=json.loads(row["metadata"]) if row["metadata"] else {},
        )


@dataclass
class ForecastTransaction:
    """
    A dated entry inside a forecast window.

    ``is_manual`` rows survive regeneration. A pattern-derived row that the
    user edited is manual *and* keeps ``recurring_pattern_id``; its
    ``scheduled_date`` still names the occurrence it was generated for.
    """
    id: str
    user_id: str
    account_id: str
    forecast_id: str
    amount: float
    date: date
    name: str
    recurring_pattern_id: Optional[str] = None
    is_manual: bool = False
    scheduled_date: Optional[date] = None
    category: Optional[str] = None
    note: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "ForecastTransaction":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            account_id=row["account_id"],
            forecast_id=row["forecast_id"],
            recurring_pattern_id=row["recurring_pattern_id"],
            is_manual=bool(row["is_manual"]),
            amount=row["amount"],
            date=row["date"],
            scheduled_date=row["scheduled_date"],
            name=row["name"],
            category=row["category"],
            note=row["note"],
        )
