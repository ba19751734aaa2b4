"""
Merchant Rules: Name Normalization and Amount Similarity

Pure functions shared by pattern detection and manual pattern creation.
No database access; no side effects.
"""

import re

_WHITESPACE = re.compile(r"\s+")
_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9 ]")

DEFAULT_AMOUNT_TOLERANCE = 0.10


def normalize_merchant_name(name: str) -> str:
    """
    Canonical grouping key for a merchant or transaction name.

    Lowercases, collapses whitespace runs to one space, drops everything
    outside ``[a-z0-9 ]`` and trims. Used for equality only, never display.
    """
    if not name:
        return ""
    collapsed = _WHITESPACE.sub(" ", name.lower())
    return _NON_ALPHANUMERIC.sub("", collapsed).strip()


def amounts_similar(amount1: float, amount2: float,
                    tolerance: float = DEFAULT_AMOUNT_TOLERANCE) -> bool:
    """
    True when the amounts differ by at most ``tolerance`` of their mean magnitude.

    The tolerance is relative: a 5.00 fee and a 5000.00 payment get very
    different absolute slack. Two zero magnitudes must match exactly.
    """
    diff = abs(amount1 - amount2)
    avg = (abs(amount1) + abs(amount2)) / 2
    if avg == 0:
        return amount1 == amount2
    return diff <= avg * tolerance


def names_match(name1: str, name2: str) -> bool:
    return normalize_merchant_name(name1) == normalize_merchant_name(name2)
