"""Monthly aggregation over a snapshot of transactions.

Every function here is pure: it receives the current list of transactions
and a month key and returns a fresh result. Credit purchases are counted
through their installments only, spread over the months they fall in, never
through their own amount. That keeps a purchase from being counted twice in
any month.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .config import DEFAULT_TREND_MONTHS
from .models import (
    FutureInstallment,
    MonthlyTotal,
    Transaction,
    month_key,
    shift_month,
    validate_month_key,
)

ZERO = Decimal('0')


def _sum(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)


def monthly_transactions(transactions: Sequence[Transaction], month: str) -> List[Transaction]:
    """Return transactions dated in ``month`` plus those with an installment due in it."""
    validate_month_key(month)
    result = []
    for transaction in transactions:
        if transaction.month == month:
            result.append(transaction)
        elif any(installment.month == month for installment in transaction.future_installments or ()):
            result.append(transaction)
    return result


def future_installments(transactions: Sequence[Transaction], month: str) -> List[FutureInstallment]:
    """Return every installment due in ``month``, tagged with its owner's id."""
    validate_month_key(month)
    result = []
    for transaction in transactions:
        for installment in transaction.future_installments or ():
            if installment.month == month:
                result.append(replace(installment, transaction_id=transaction.id))
    return result


def total_income(transactions: Sequence[Transaction], month: str) -> Decimal:
    validate_month_key(month)
    return _sum(
        t.amount for t in transactions
        if t.month == month and t.type == 'income'
    )


def _expense_total(
    transactions: Sequence[Transaction],
    month: str,
    category: Optional[str] = None,
) -> Decimal:
    validate_month_key(month)

    def _matches(transaction: Transaction) -> bool:
        if transaction.type != 'expense':
            return False
        return category is None or transaction.category == category

    regular = _sum(
        t.amount for t in transactions
        if t.month == month and t.payment_method != 'credit' and _matches(t)
    )
    owners = {t.id: t for t in transactions}
    installments = _sum(
        installment.amount
        for installment in future_installments(transactions, month)
        if installment.transaction_id in owners and _matches(owners[installment.transaction_id])
    )
    return regular + installments


def total_expense(transactions: Sequence[Transaction], month: str) -> Decimal:
    """Return spending attributed to ``month``.

    Non-credit expenses dated in the month, plus the installments of credit
    expenses that fall in the month.
    """
    return _expense_total(transactions, month)


def category_total(transactions: Sequence[Transaction], category: str, month: str) -> Decimal:
    """Return the spending of one category in ``month`` (expenses only)."""
    return _expense_total(transactions, month, category=category)


def monthly_balance(transactions: Sequence[Transaction], month: str) -> Decimal:
    return total_income(transactions, month) - total_expense(transactions, month)


def monthly_totals(
    transactions: Sequence[Transaction],
    count: int = DEFAULT_TREND_MONTHS,
    today: Optional[date] = None,
) -> List[MonthlyTotal]:
    """Return income/expense totals for the ``count`` months ending this month.

    The window is anchored at the real calendar month (``today``, defaulting
    to ``date.today()``), not at whichever month a caller is browsing.

    Args:
        transactions: Snapshot to aggregate
        count: Number of months in the window, oldest first
        today: Override for the current date

    Returns:
        List of :class:`MonthlyTotal`, one per month, in chronological order
    """
    if count < 1:
        return []
    anchor = month_key(today or date.today())
    first = shift_month(anchor, -(count - 1))
    totals = []
    for offset in range(count):
        month = shift_month(first, offset)
        totals.append(
            MonthlyTotal(
                month=month,
                income=total_income(transactions, month),
                expense=total_expense(transactions, month),
            )
        )
    return totals


def category_totals(
    transactions: Sequence[Transaction],
    month: str,
    categories: Optional[Iterable[str]] = None,
) -> Dict[str, Decimal]:
    """Return spending per category for ``month``.

    With ``categories`` every given label appears (zero when unused);
    without it only the categories of the month's expenses are reported.
    """
    if categories is None:
        labels = sorted({
            t.category for t in monthly_transactions(transactions, month)
            if t.type == 'expense'
        })
    else:
        labels = list(categories)
    return {label: category_total(transactions, label, month) for label in labels}


def category_breakdown(
    transactions: Sequence[Transaction],
    categories: Iterable[str],
    month: str,
) -> pd.Series:
    """Return positive category totals for ``month`` sorted largest first."""
    totals = category_totals(transactions, month, categories)
    series = pd.Series(
        {label: float(value) for label, value in totals.items() if value > 0},
        dtype=float,
    )
    series.index.name = 'Category'
    return series.sort_values(ascending=False)


def filter_transactions(
    transactions: Iterable[Transaction],
    category: Optional[str] = None,
    type: Optional[str] = None,
) -> List[Transaction]:
    """Filter by category and/or type; ``None`` keeps everything."""
    result = []
    for transaction in transactions:
        if category is not None and transaction.category != category:
            continue
        if type is not None and transaction.type != type:
            continue
        result.append(transaction)
    return result


def monthly_totals_frame(totals: Sequence[MonthlyTotal]) -> pd.DataFrame:
    """Create a DataFrame with Month, Income, Expense and Balance columns."""
    rows = [
        {
            'Month': total.month,
            'Income': float(total.income),
            'Expense': float(total.expense),
            'Balance': float(total.balance),
        }
        for total in totals
    ]
    return pd.DataFrame(rows, columns=['Month', 'Income', 'Expense', 'Balance'])


def transactions_frame(transactions: Sequence[Transaction]) -> pd.DataFrame:
    """Flatten transactions into a table, one row per transaction."""
    columns = [
        'id', 'Transaction Date', 'Month', 'Description', 'Category', 'Type',
        'Payment Method', 'Amount', 'Installments',
    ]
    rows = [
        {
            'id': t.id,
            'Transaction Date': pd.Timestamp(t.date),
            'Month': t.month,
            'Description': t.description,
            'Category': t.category,
            'Type': t.type,
            'Payment Method': t.payment_method,
            'Amount': float(t.amount),
            'Installments': t.installment_count or 1,
        }
        for t in transactions
    ]
    return pd.DataFrame(rows, columns=columns)
