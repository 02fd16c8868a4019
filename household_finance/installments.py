"""Installment projection for credit card purchases.

A credit purchase split over ``N`` installments is materialised as ``N``
:class:`~household_finance.models.FutureInstallment` records, one per
consecutive calendar month starting at the purchase month. Every installment
but the last is the amount divided by ``N`` rounded to cents; the last one
absorbs the rounding remainder so the schedule always adds back up to the
purchase amount exactly.

Example:
    >>> draft = TransactionDraft('TV', '1000.00', '2024-01-15', 'expense', 'Lazer', 'credit', 3)
    >>> [str(i.amount) for i in project(draft).future_installments]
    ['333.33', '333.33', '333.34']
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, List, Tuple

from .config import AMOUNT_PRECISION
from .models import (
    FutureInstallment,
    Transaction,
    TransactionDraft,
    month_key,
    new_id,
    shift_month,
)

IdFactory = Callable[[], str]


def is_installment_purchase(payment_method: str, installment_count) -> bool:
    """Return True when a purchase should be spread over several months."""
    return payment_method == 'credit' and installment_count is not None and installment_count > 1


def split_amount(amount: Decimal, count: int) -> Tuple[Decimal, Decimal]:
    """Return ``(base, last)`` installment amounts for ``amount`` over ``count`` months."""
    base = (amount / count).quantize(AMOUNT_PRECISION, rounding=ROUND_HALF_UP)
    last = amount - base * (count - 1)
    return base, last


def build_schedule(
    transaction_id: str,
    amount: Decimal,
    first_month: str,
    count: int,
    id_factory: IdFactory = new_id,
) -> Tuple[FutureInstallment, ...]:
    base, last = split_amount(amount, count)
    schedule: List[FutureInstallment] = []
    for index in range(count):
        schedule.append(
            FutureInstallment(
                id=id_factory(),
                transaction_id=transaction_id,
                month=shift_month(first_month, index),
                amount=last if index == count - 1 else base,
                installment_number=index + 1,
            )
        )
    return tuple(schedule)


def _materialise(transaction_id: str, draft: TransactionDraft, id_factory: IdFactory) -> Transaction:
    transaction = Transaction(
        id=transaction_id,
        description=draft.description,
        amount=draft.amount,
        date=draft.date,
        type=draft.type,
        category=draft.category,
        payment_method=draft.payment_method,
    )
    if not is_installment_purchase(draft.payment_method, draft.installment_count):
        return transaction

    transaction.installment_count = draft.installment_count
    transaction.current_installment = 1
    transaction.future_installments = build_schedule(
        transaction_id,
        draft.amount,
        month_key(draft.date),
        draft.installment_count,
        id_factory,
    )
    return transaction


def project(draft: TransactionDraft, id_factory: IdFactory = new_id) -> Transaction:
    """Assign an id to ``draft`` and materialise its installment schedule.

    Args:
        draft: Transaction as entered by the user
        id_factory: Source of unique ids for the transaction and its installments

    Returns:
        The stored form of the transaction. Installment fields are left unset
        unless the draft is a credit purchase with more than one installment.
    """
    return _materialise(id_factory(), draft, id_factory)


def reproject(transaction: Transaction, id_factory: IdFactory = new_id) -> Transaction:
    """Rebuild the installment schedule of an edited transaction, keeping its id."""
    return _materialise(transaction.id, transaction.to_draft(), id_factory)


def installment_label(transaction: Transaction) -> str:
    """Return the ``current/total`` marker shown beside credit purchases."""
    if not transaction.installment_count or transaction.installment_count <= 1:
        return ''
    return f"{transaction.current_installment}/{transaction.installment_count}"


def installment_position(transaction: Transaction, month: str) -> str:
    """Return ``n/N`` for the installment of ``transaction`` falling in ``month``."""
    for installment in transaction.future_installments or ():
        if installment.month == month:
            return f"{installment.installment_number}/{transaction.installment_count}"
    return ''


__all__ = [
    'build_schedule',
    'installment_label',
    'installment_position',
    'is_installment_purchase',
    'project',
    'reproject',
    'split_amount',
]
