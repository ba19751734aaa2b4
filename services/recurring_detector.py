"""Recurring pattern detection over an account's transaction history."""

import logging
from dataclasses import dataclass, field
from math import sqrt
from typing import List, Optional

from db import transaction
from models.records import DayOfMonth, DayOfWeek, Phase, RecurringPattern, Transaction
from repositories.accounts_repository import get_account
from repositories.patterns_repository import (
    delete_patterns_for_account,
    insert_pattern,
    new_pattern_id,
)
from repositories.transactions_repository import get_transactions_for_account
from services.errors import NotFoundError
from services.merchant_rules import (
    DEFAULT_AMOUNT_TOLERANCE,
    amounts_similar,
    names_match,
    normalize_merchant_name,
)
from utils.dates import sunday_weekday

MIN_TRANSACTIONS = 3
MIN_GROUP_SIZE = 3
CONFIDENCE_FLOOR = 0.6

# (frequency, lowest mean interval, highest mean interval, reference interval)
# A reference of None means "use the mean interval itself".
FREQUENCY_BUCKETS = (
    ("daily", 1, 2, None),
    ("weekly", 5, 9, 7),
    ("biweekly", 11, 17, 14),
    ("monthly", 25, 35, 30),
    ("quarterly", 80, 100, 90),
    ("yearly", 350, 380, 365),
)


@dataclass
class TransactionGroup:
    name: str
    merchant_name: str
    average_amount: float
    transactions: List[Transaction] = field(default_factory=list)

    def add(self, txn: Transaction):
        self.transactions.append(txn)
        total = sum(abs(t.amount) for t in self.transactions)
        self.average_amount = total / len(self.transactions)


@dataclass
class FrequencyAnalysis:
    frequency: str
    phase: Phase
    confidence: float
    start_date: object


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def group_transactions(transactions: List[Transaction]) -> List[TransactionGroup]:
    """
    Greedily group transactions by normalized name and similar magnitude.

    Input is sorted by date (then id) first so the result does not depend on
    the order the store returned rows in. A transaction joins the first group
    whose name matches and whose running average is similar to its amount.
    """
    groups: List[TransactionGroup] = []

    for txn in sorted(transactions, key=lambda t: (t.date, t.id)):
        display_name = txn.name or txn.merchant_name or ""
        amount = abs(txn.amount)

        matched = None
        for group in groups:
            if names_match(group.name, display_name) and amounts_similar(group.average_amount, amount):
                matched = group
                break

        if matched is None:
            matched = TransactionGroup(
                name=display_name,
                merchant_name=txn.merchant_name or display_name,
                average_amount=amount,
            )
            groups.append(matched)
        matched.add(txn)

    return groups


def analyze_frequency(transactions: List[Transaction]) -> Optional[FrequencyAnalysis]:
    """
    Fit a frequency bucket to a group's dates.

    Returns None when the group is too small, the mean interval falls
    outside every bucket, or confidence lands below ``CONFIDENCE_FLOOR``.
    """
    if len(transactions) < MIN_GROUP_SIZE:
        return None

    dates = sorted(t.date for t in transactions)
    intervals = [(later - earlier).days for earlier, later in zip(dates, dates[1:])]

    mean_interval = sum(intervals) / len(intervals)
    variance = sum((i - mean_interval) ** 2 for i in intervals) / len(intervals)
    std_dev = sqrt(variance)

    for frequency, low, high, reference in FREQUENCY_BUCKETS:
        if low <= mean_interval <= high:
            break
    else:
        return None

    confidence = _clamp01(1 - std_dev / (reference or mean_interval))

    first = dates[0]
    if frequency in ("weekly", "biweekly"):
        phase = DayOfWeek(sunday_weekday(first))
    elif frequency == "daily":
        phase = None
    else:
        phase = DayOfMonth(first.day)

    min_occurrences = 3 if frequency in ("monthly", "quarterly") else 2
    occurrence_bonus = _clamp01((len(transactions) - min_occurrences) / 5)
    confidence = min(1.0, confidence * 0.7 + occurrence_bonus * 0.3)

    if confidence < CONFIDENCE_FLOOR:
        return None

    return FrequencyAnalysis(
        frequency=frequency,
        phase=phase,
        confidence=confidence,
        start_date=first,
    )


def determine_transaction_type(transactions: List[Transaction]) -> str:
    """Income only when inflows strictly outnumber outflows."""
    positive = sum(1 for t in transactions if t.amount > 0)
    negative = sum(1 for t in transactions if t.amount < 0)
    return "income" if positive > negative else "expense"


def _detect(conn, user_id, account_id, min_confidence):
    transactions = get_transactions_for_account(conn, user_id, account_id)

    if len(transactions) < MIN_TRANSACTIONS:
        logging.info(
            f"Not enough transactions for pattern detection: {len(transactions)} < {MIN_TRANSACTIONS}"
        )
        return []

    logging.info(f"Analyzing {len(transactions)} transactions for recurring patterns")
    groups = group_transactions(transactions)
    logging.info(f"Grouped transactions into {len(groups)} groups")

    threshold = max(min_confidence, CONFIDENCE_FLOOR)
    patterns = []

    for group in groups:
        if len(group.transactions) < MIN_GROUP_SIZE:
            logging.info(f'Skipping group "{group.name}" - only {len(group.transactions)} transactions')
            continue

        analysis = analyze_frequency(group.transactions)
        if analysis is None:
            logging.info(f'No frequency pattern detected for "{group.name}"')
            continue
        if analysis.confidence < threshold:
            logging.info(
                f'Pattern for "{group.name}" has low confidence: {analysis.confidence:.3f} < {threshold}'
            )
            continue

        logging.info(
            f'Found pattern for "{group.name}": {analysis.frequency}, confidence: {analysis.confidence:.3f}'
        )
        pattern = RecurringPattern(
            id=new_pattern_id(),
            user_id=user_id,
            account_id=account_id,
            name=group.name,
            merchant_name=normalize_merchant_name(group.merchant_name),
            amount=group.average_amount,
            amount_tolerance=DEFAULT_AMOUNT_TOLERANCE,
            frequency=analysis.frequency,
            phase=analysis.phase,
            start_date=analysis.start_date,
            transaction_type=determine_transaction_type(group.transactions),
            confidence=analysis.confidence,
        )
        patterns.append(insert_pattern(conn, pattern))

    return patterns


def detect_patterns(conn, user_id, account_id, min_confidence=CONFIDENCE_FLOOR):
    """
    Detect recurring patterns for an account and persist them.

    ``min_confidence`` can only raise the bar: patterns scoring below 0.6
    are always discarded, whatever the caller passes. Fewer than three
    transactions on the account yields an empty list.
    """
    with transaction(conn):
        if get_account(conn, user_id, account_id) is None:
            raise NotFoundError("Account not found")
        return _detect(conn, user_id, account_id, min_confidence)


def redetect_patterns(conn, user_id, account_id, min_confidence=CONFIDENCE_FLOOR):
    """
    Replace every pattern of the account with a fresh detection run.

    Destructive: manual edits to pattern metadata are lost. Forecast
    transactions keep living but lose their pattern reference.
    """
    with transaction(conn):
        if get_account(conn, user_id, account_id) is None:
            raise NotFoundError("Account not found")
        deleted = delete_patterns_for_account(conn, user_id, account_id)
        logging.info(f"Deleted {deleted} existing patterns for account {account_id}")
        return _detect(conn, user_id, account_id, min_confidence)
