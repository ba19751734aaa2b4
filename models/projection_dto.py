from dataclasses import dataclass, field
from datetime import date
from typing import List

from models.records import Forecast, ForecastTransaction


@dataclass
class BalanceSnapshot:
    date: date
    balance: float


@dataclass
class ForecastResult:
    forecast: Forecast
    transactions: List[ForecastTransaction] = field(default_factory=list)
    balance_snapshots: List[BalanceSnapshot] = field(default_factory=list)
