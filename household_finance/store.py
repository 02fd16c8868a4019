"""In-process store holding the finance snapshot used by the UI.

The store owns the collections of transactions, spending goals and
categories, and exposes the projection, aggregation and goal functions as
methods bound to its current snapshot.

Mutations are applied to the local snapshot first and persisted second. A
persistence failure does not roll the local change back: it is logged,
recorded in :attr:`FinanceStore.notifications` and passed to the optional
``on_error`` callback so the UI can tell the user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

import pandas as pd

from . import aggregation, goals as goal_metrics
from .config import DEFAULT_CATEGORIES, DEFAULT_TREND_MONTHS
from .errors import PersistenceError
from .installments import IdFactory, project, reproject
from .models import (
    FutureInstallment,
    MonthlyTotal,
    SpendingGoal,
    SpendingGoalDraft,
    SpendingGoalUpdate,
    Transaction,
    TransactionDraft,
    TransactionUpdate,
    month_key,
    new_id,
    validate_goal_draft,
    validate_month_key,
    validate_transaction_draft,
)
from .repository import FinanceRepository, InMemoryRepository

LOGGER = logging.getLogger(__name__)


@dataclass
class Notification:
    level: str
    message: str


class FinanceStore:
    """Holds transactions, goals and categories, and answers queries over them."""

    def __init__(
        self,
        repository: Optional[FinanceRepository] = None,
        id_factory: IdFactory = new_id,
        today: Optional[Callable[[], date]] = None,
        on_error: Optional[Callable[[Notification], None]] = None,
    ):
        """Initialize the store from a repository.

        Args:
            repository: Persistence backend. Defaults to an in-memory one.
            id_factory: Source of unique ids for new entities
            today: Clock used for the default month and the trend window
            on_error: Called with a :class:`Notification` when persisting fails

        A JSON document that cannot be parsed loads as empty, and entries in
        it that are not valid transactions or goals are skipped; both are
        logged as warnings.

        Raises:
            PersistenceError: If the database cannot be opened or queried
            ValidationError: If a database row holds a value that is not valid
        """
        self.repository = repository or InMemoryRepository()
        self.id_factory = id_factory
        self._today = today or date.today
        self.on_error = on_error
        self.notifications: List[Notification] = []

        self._transactions: List[Transaction] = self.repository.load_transactions()
        self._goals: List[SpendingGoal] = self.repository.load_goals()
        self._categories: List[str] = self.repository.load_categories()
        if not self._categories:
            self._categories = list(DEFAULT_CATEGORIES)
            for category in self._categories:
                self._persist(self.repository.add_category, category)

        self._current_month = month_key(self._today())

    # State --------------------------------------------------------------------

    @property
    def transactions(self) -> Tuple[Transaction, ...]:
        return tuple(self._transactions)

    @property
    def spending_goals(self) -> Tuple[SpendingGoal, ...]:
        return tuple(self._goals)

    @property
    def categories(self) -> Tuple[str, ...]:
        return tuple(self._categories)

    @property
    def current_month(self) -> str:
        return self._current_month

    def set_current_month(self, month: str) -> None:
        self._current_month = validate_month_key(month)

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return next((t for t in self._transactions if t.id == transaction_id), None)

    def get_spending_goal(self, goal_id: str) -> Optional[SpendingGoal]:
        return next((g for g in self._goals if g.id == goal_id), None)

    # Persistence ----------------------------------------------------------------

    def _persist(self, operation: Callable[..., None], *args) -> bool:
        try:
            operation(*args)
        except PersistenceError as e:
            LOGGER.error("Could not persist change: %s", e)
            notification = Notification(level='error', message=str(e))
            self.notifications.append(notification)
            if self.on_error is not None:
                self.on_error(notification)
            return False
        return True

    def clear_notifications(self) -> List[Notification]:
        pending, self.notifications = self.notifications, []
        return pending

    # Transactions ---------------------------------------------------------------

    def add_transaction(self, draft: TransactionDraft) -> Transaction:
        """Record a transaction and, for credit purchases, its installment schedule.

        Raises:
            ValidationError: If the draft is invalid
        """
        transaction = project(validate_transaction_draft(draft), self.id_factory)
        self._transactions.append(transaction)
        self._persist(self.repository.add_transaction, transaction)
        return transaction

    def update_transaction(self, transaction_id: str, update: TransactionUpdate) -> Optional[Transaction]:
        """Apply ``update`` to a transaction; unknown ids are ignored.

        Changing the amount, date, payment method or installment count
        rebuilds the installment schedule so it keeps adding up to the amount.
        """
        for index, current in enumerate(self._transactions):
            if current.id != transaction_id:
                continue
            updated = update.apply(current)
            if update.touches_schedule():
                updated = reproject(updated, self.id_factory)
            self._transactions[index] = updated
            self._persist(self.repository.update_transaction, updated)
            return updated
        return None

    def delete_transaction(self, transaction_id: str) -> None:
        """Delete a transaction together with its installments."""
        remaining = [t for t in self._transactions if t.id != transaction_id]
        if len(remaining) == len(self._transactions):
            return
        self._transactions = remaining
        self._persist(self.repository.delete_transaction, transaction_id)

    # Goals ----------------------------------------------------------------------

    def add_spending_goal(self, draft: SpendingGoalDraft) -> SpendingGoal:
        """Create a spending goal.

        Raises:
            ValidationError: If the amount is not positive or the category is empty
        """
        validate_goal_draft(draft)
        goal = SpendingGoal(
            id=self.id_factory(),
            category=draft.category.strip(),
            amount=draft.amount,
            period=draft.period,
            start_date=draft.start_date,
            end_date=draft.end_date,
        )
        self._goals.append(goal)
        self._persist(self.repository.add_goal, goal)
        return goal

    def update_spending_goal(self, goal_id: str, update: SpendingGoalUpdate) -> Optional[SpendingGoal]:
        for index, current in enumerate(self._goals):
            if current.id != goal_id:
                continue
            updated = update.apply(current)
            self._goals[index] = updated
            self._persist(self.repository.update_goal, updated)
            return updated
        return None

    def delete_spending_goal(self, goal_id: str) -> None:
        remaining = [g for g in self._goals if g.id != goal_id]
        if len(remaining) == len(self._goals):
            return
        self._goals = remaining
        self._persist(self.repository.delete_goal, goal_id)

    # Categories -----------------------------------------------------------------

    def add_category(self, name: str) -> bool:
        """Add a category label. Blank and already known labels are ignored."""
        label = (name or '').strip()
        if not label or label in self._categories:
            return False
        self._categories.append(label)
        self._persist(self.repository.add_category, label)
        return True

    # Queries --------------------------------------------------------------------

    def monthly_transactions(self, month: str) -> List[Transaction]:
        return aggregation.monthly_transactions(self._transactions, month)

    def future_installments(self, month: str) -> List[FutureInstallment]:
        return aggregation.future_installments(self._transactions, month)

    def total_income(self, month: str) -> Decimal:
        return aggregation.total_income(self._transactions, month)

    def total_expense(self, month: str) -> Decimal:
        return aggregation.total_expense(self._transactions, month)

    def category_total(self, category: str, month: str) -> Decimal:
        return aggregation.category_total(self._transactions, category, month)

    def monthly_balance(self, month: str) -> Decimal:
        return aggregation.monthly_balance(self._transactions, month)

    def monthly_totals(self, count: int = DEFAULT_TREND_MONTHS) -> List[MonthlyTotal]:
        """Trend window ending at the real current month, not :attr:`current_month`."""
        return aggregation.monthly_totals(self._transactions, count, today=self._today())

    def category_breakdown(self, month: Optional[str] = None) -> pd.Series:
        return aggregation.category_breakdown(
            self._transactions, self._categories, month or self._current_month
        )

    def goal_progress(self, goal_id: str, reference_month: Optional[str] = None) -> float:
        """Return the progress of a goal in percent; unknown goals report 0."""
        goal = self.get_spending_goal(goal_id)
        if goal is None:
            return 0.0
        return goal_metrics.goal_progress(
            goal, self._transactions, reference_month or self._current_month
        )

    def goal_statuses(self, reference_month: Optional[str] = None) -> List[goal_metrics.GoalStatus]:
        return goal_metrics.goal_statuses(
            self._goals, self._transactions, reference_month or self._current_month
        )

