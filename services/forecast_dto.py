from dataclasses import asdict, dataclass
from typing import List, Optional


@dataclass
class BalanceSnapshotDTO:
    """Single day in the forecast timeline."""
    date: str  # ISO format YYYY-MM-DD
    balance: float


@dataclass
class ForecastTransactionDTO:
    id: str
    forecast_id: str
    account_id: str
    recurring_pattern_id: Optional[str]
    is_manual: bool
    amount: float
    date: str  # ISO format
    name: str
    category: Optional[str]
    note: Optional[str]

    @classmethod
    def from_record(cls, txn):
        return cls(
            id=txn.id,
            forecast_id=txn.forecast_id,
            account_id=txn.account_id,
            recurring_pattern_id=txn.recurring_pattern_id,
            is_manual=txn.is_manual,
            amount=txn.amount,
            date=txn.date.isoformat(),
            name=txn.name,
            category=txn.category,
            note=txn.note,
        )


@dataclass
class ForecastDTO:
    id: str
    account_id: str
    forecast_date: str  # ISO timestamp
    start_date: str  # ISO format
    end_date: str  # ISO format
    initial_balance: float
    projected_balance: float
    metadata: dict

    @classmethod
    def from_record(cls, forecast):
        return cls(
            id=forecast.id,
            account_id=forecast.account_id,
            forecast_date=forecast.forecast_date.isoformat(),
            start_date=forecast.start_date.isoformat(),
            end_date=forecast.end_date.isoformat(),
            initial_balance=forecast.initial_balance,
            projected_balance=forecast.projected_balance,
            metadata=forecast.metadata,
        )


def snapshots_to_json(snapshots) -> List[dict]:
    return [
        asdict(BalanceSnapshotDTO(date=s.date.isoformat(), balance=s.balance))
        for s in snapshots
    ]


def transaction_to_json(txn) -> dict:
    return asdict(ForecastTransactionDTO.from_record(txn))


def forecast_to_json(forecast) -> dict:
    return asdict(ForecastDTO.from_record(forecast))


def forecast_result_to_json(result) -> dict:
    """Convert a ForecastResult to a JSON-serializable dict."""
    return {
        "forecast": forecast_to_json(result.forecast),
        "transactions": [transaction_to_json(t) for t in result.transactions],
        "balance_snapshots": snapshots_to_json(result.balance_snapshots),
    }
