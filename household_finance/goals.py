"""Spending goal progress.

Progress is the share of a goal's limit already consumed by spending in the
goal's category, as a percentage clamped to 100. Monthly goals look at the
reference month only; yearly goals add up all twelve months of the
reference month's calendar year.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Sequence

from .aggregation import category_total
from .models import SpendingGoal, Transaction, months_of_year, validate_month_key


@dataclass
class GoalStatus:
    goal_id: str
    category: str
    period: str
    limit: Decimal
    spent: Decimal
    remaining: Decimal
    progress: float
    exceeded: bool


def goal_spend(goal: SpendingGoal, transactions: Sequence[Transaction], reference_month: str) -> Decimal:
    """Return what has been spent against ``goal`` in its period."""
    validate_month_key(reference_month)
    if goal.period == 'monthly':
        return category_total(transactions, goal.category, reference_month)
    return sum(
        (category_total(transactions, goal.category, month) for month in months_of_year(reference_month)),
        Decimal('0'),
    )


def _percent(spent: Decimal, limit: Decimal) -> float:
    return min(100.0, float(spent / limit * 100))


def goal_progress(goal: SpendingGoal, transactions: Sequence[Transaction], reference_month: str) -> float:
    """Return the percentage of ``goal`` consumed, between 0 and 100.

    ``goal.amount`` must be positive; the store rejects any other goal.
    """
    return _percent(goal_spend(goal, transactions, reference_month), goal.amount)


def goal_status(goal: SpendingGoal, transactions: Sequence[Transaction], reference_month: str) -> GoalStatus:
    spent = goal_spend(goal, transactions, reference_month)
    return GoalStatus(
        goal_id=goal.id,
        category=goal.category,
        period=goal.period,
        limit=goal.amount,
        spent=spent,
        remaining=goal.amount - spent,
        progress=_percent(spent, goal.amount),
        exceeded=spent > goal.amount,
    )


def goal_statuses(
    goals: Iterable[SpendingGoal],
    transactions: Sequence[Transaction],
    reference_month: str,
) -> List[GoalStatus]:
    return [goal_status(goal, transactions, reference_month) for goal in goals]
