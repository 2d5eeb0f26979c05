from __future__ import annotations

from typing import List, Tuple

from .chips import budget_text
from .types import BudgetTier, Slots


# Checked in order, first tier with a matching keyword wins.
BUDGET_KEYWORDS: List[Tuple[BudgetTier, Tuple[str, ...]]] = [
    (BudgetTier.low, ("low", "$0", "$30", "cozy", "home")),
    (BudgetTier.medium, ("medium", "$50", "$100", "casual")),
    (BudgetTier.high, ("high", "$150", "special", "fine")),
]


def normalize_budget(slots: Slots) -> BudgetTier:
    text = (budget_text(slots) or "").lower()
    if not text:
        return BudgetTier.unknown
    for tier, keywords in BUDGET_KEYWORDS:
        if any(k in text for k in keywords):
            return tier
    return BudgetTier.unknown
