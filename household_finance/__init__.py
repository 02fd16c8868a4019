"""Top-level package for the household finance tracker.

This file makes the directory a Python package and exposes
convenient names. The primary modules are:

* ``models`` – transactions, installments, spending goals and month keys
* ``installments`` – projection of credit purchases into monthly installments
* ``aggregation`` – monthly income/expense/category totals and trend windows
* ``goals`` – spending goal progress
* ``repository`` – in-memory, JSON and SQLite persistence backends
* ``store`` – the snapshot-holding store the UI talks to
* ``visualization`` – Plotly figures for the dashboard charts

Typical use:

```python
from household_finance import FinanceStore, TransactionDraft

store = FinanceStore()
store.add_transaction(TransactionDraft(
    'TV', '1000.00', '2024-01-15', 'expense', 'Lazer', 'credit', installment_count=3,
))
store.total_expense('2024-02')  # Decimal('333.33')
```
"""

from .errors import (  # noqa: F401  # re-exported for convenience
    FinanceError,
    InvalidMonthKeyError,
    PersistenceError,
    ValidationError,
)
from .models import (  # noqa: F401
    FutureInstallment,
    MonthlyTotal,
    SpendingGoal,
    SpendingGoalDraft,
    SpendingGoalUpdate,
    Transaction,
    TransactionDraft,
    TransactionUpdate,
)
from .installments import project  # noqa: F401
from .repository import (  # noqa: F401
    FinanceRepository,
    InMemoryRepository,
    JsonFileRepository,
    SqliteRepository,
)
from .store import FinanceStore, Notification  # noqa: F401

__all__ = [
    'FinanceError',
    'InvalidMonthKeyError',
    'PersistenceError',
    'ValidationError',
    'FutureInstallment',
    'MonthlyTotal',
    'SpendingGoal',
    'SpendingGoalDraft',
    'SpendingGoalUpdate',
    'Transaction',
    'TransactionDraft',
    'TransactionUpdate',
    'project',
    'FinanceRepository',
    'InMemoryRepository',
    'JsonFileRepository',
    'SqliteRepository',
    'FinanceStore',
    'Notification',
]

__version__ = '0.1.0'
