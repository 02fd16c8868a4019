"""Data model for transactions, installments, spending goals and month keys.

Entities are plain dataclasses. Amounts are always :class:`~decimal.Decimal`
so installment schedules reconstruct the original amount exactly; dates are
:class:`datetime.date`. Month keys (``YYYY-MM``) are the aggregation buckets
used throughout the package.

Records produced by ``to_record`` are JSON-safe dictionaries; ``from_record``
also accepts the camelCase keys written by the browser version of the app
(``paymentMethod``, ``installments``, ``futureInstallments`` ...), so data
exported from local storage loads unchanged.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, fields, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pandas as pd

from .errors import InvalidMonthKeyError, ValidationError

TRANSACTION_TYPES = {'income', 'expense'}
PAYMENT_METHODS = {'credit', 'debit', 'cash', 'transfer'}
GOAL_PERIODS = {'monthly', 'yearly'}

_MONTH_KEY_PATTERN = re.compile(r'^\d{4}-(0[1-9]|1[0-2])$')


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def new_id() -> str:
    """Return a new unique identifier."""
    return uuid.uuid4().hex


def to_amount(value: Any) -> Decimal:
    """Coerce ``value`` into a finite Decimal.

    Floats go through ``str`` first so ``1000.1`` becomes ``Decimal('1000.1')``
    rather than its binary approximation.
    """
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, bool) or value is None:
        raise ValidationError(f"Invalid amount {value!r}")
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as e:
            raise ValidationError(f"Invalid amount {value!r}") from e
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount {value!r}")
    return amount


def to_date(value: Any) -> date:
    """Coerce a date, datetime or ISO string (date or timestamp) into a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError as e:
            raise ValidationError(f"Invalid date {value!r}") from e
    raise ValidationError(f"Invalid date {value!r}")


def month_key(value: Any) -> str:
    """Return the ``YYYY-MM`` key of a date-like value."""
    return to_date(value).strftime('%Y-%m')


def validate_month_key(value: Any) -> str:
    if not isinstance(value, str) or not _MONTH_KEY_PATTERN.match(value):
        raise InvalidMonthKeyError(value)
    return value


def shift_month(month: str, offset: int) -> str:
    """Move a month key ``offset`` calendar months forward (or back)."""
    period = pd.Period(validate_month_key(month), freq='M') + offset
    return str(period)


def months_of_year(month: str) -> List[str]:
    """Return the twelve month keys of the calendar year containing ``month``."""
    year = validate_month_key(month)[:4]
    return [f"{year}-{number:02d}" for number in range(1, 13)]


def _pick(record: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return default


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Invalid integer {value!r}")
    if isinstance(value, int):
        return value
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid integer {value!r}") from e
    if not number.is_finite() or number != number.to_integral_value():
        raise ValidationError(f"Expected a whole number, got {value!r}")
    return int(number)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@dataclass
class FutureInstallment:
    """One monthly slice of a credit purchase."""
    id: str
    transaction_id: str
    month: str
    amount: Decimal
    installment_number: int

    def to_record(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'transaction_id': self.transaction_id,
            'month': self.month,
            'amount': str(self.amount),
            'installment_number': self.installment_number,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'FutureInstallment':
        return cls(
            id=str(record['id']),
            transaction_id=str(_pick(record, 'transaction_id', 'transactionId', default='')),
            month=validate_month_key(record['month']),
            amount=to_amount(record['amount']),
            installment_number=int(_pick(record, 'installment_number', 'installmentNumber')),
        )


@dataclass
class TransactionDraft:
    """A transaction as entered by the user, before it has an id."""
    description: str
    amount: Decimal
    date: date
    type: str
    category: str
    payment_method: str
    installment_count: Optional[int] = None

    def __post_init__(self) -> None:
        self.amount = to_amount(self.amount)
        self.date = to_date(self.date)
        self.installment_count = _optional_int(self.installment_count)


@dataclass
class Transaction:
    """A recorded income or expense.

    ``installment_count``, ``current_installment`` and ``future_installments``
    are only populated for credit purchases split over more than one month.
    """
    id: str
    description: str
    amount: Decimal
    date: date
    type: str
    category: str
    payment_method: str
    installment_count: Optional[int] = None
    current_installment: Optional[int] = None
    future_installments: Optional[Tuple[FutureInstallment, ...]] = None

    @property
    def month(self) -> str:
        return month_key(self.date)

    @property
    def has_installments(self) -> bool:
        return bool(self.future_installments)

    def to_draft(self) -> TransactionDraft:
        return TransactionDraft(
            description=self.description,
            amount=self.amount,
            date=self.date,
            type=self.type,
            category=self.category,
            payment_method=self.payment_method,
            installment_count=self.installment_count,
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'description': self.description,
            'amount': str(self.amount),
            'date': self.date.isoformat(),
            'type': self.type,
            'category': self.category,
            'payment_method': self.payment_method,
            'installment_count': self.installment_count,
            'current_installment': self.current_installment,
            'future_installments': (
                [installment.to_record() for installment in self.future_installments]
                if self.future_installments is not None
                else None
            ),
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'Transaction':
        """Build a transaction from a stored record.

        Raises:
            ValidationError: If the record is missing a field or holds a bad value
        """
        try:
            raw_installments = _pick(record, 'future_installments', 'futureInstallments')
            installments = None
            if raw_installments is not None:
                installments = tuple(
                    FutureInstallment.from_record(item) for item in raw_installments
                )
            return cls(
                id=str(record['id']),
                description=str(record.get('description', '')),
                amount=to_amount(record['amount']),
                date=to_date(record['date']),
                type=str(record['type']),
                category=str(record.get('category', '')),
                payment_method=str(_pick(record, 'payment_method', 'paymentMethod')),
                installment_count=_optional_int(
                    _pick(record, 'installment_count', 'installments')
                ),
                current_installment=_optional_int(
                    _pick(record, 'current_installment', 'currentInstallment')
                ),
                future_installments=installments,
            )
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise ValidationError(f"Invalid transaction record: {e!r}") from e


@dataclass
class SpendingGoalDraft:
    category: str
    amount: Decimal
    period: str
    start_date: date
    end_date: Optional[date] = None

    def __post_init__(self) -> None:
        self.amount = to_amount(self.amount)
        self.start_date = to_date(self.start_date)
        if self.end_date is not None:
            self.end_date = to_date(self.end_date)


@dataclass
class SpendingGoal:
    """A spending limit for one category over a month or a year."""
    id: str
    category: str
    amount: Decimal
    period: str
    start_date: date
    end_date: Optional[date] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'category': self.category,
            'amount': str(self.amount),
            'period': self.period,
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat() if self.end_date else None,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'SpendingGoal':
        try:
            end_date = _pick(record, 'end_date', 'endDate')
            return cls(
                id=str(record['id']),
                category=str(record['category']),
                amount=to_amount(record['amount']),
                period=str(record['period']),
                start_date=to_date(_pick(record, 'start_date', 'startDate')),
                end_date=to_date(end_date) if end_date else None,
            )
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise ValidationError(f"Invalid spending goal record: {e!r}") from e


@dataclass
class MonthlyTotal:
    """Income and expense of one month. Derived on demand, never stored."""
    month: str
    income: Decimal
    expense: Decimal

    @property
    def balance(self) -> Decimal:
        return self.income - self.expense


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _transaction_field_errors(
    description: str,
    amount: Decimal,
    type: str,
    category: str,
    payment_method: str,
    installment_count: Optional[int],
) -> List[str]:
    errors: List[str] = []
    if amount <= 0:
        errors.append("amount must be greater than zero")
    if not description or not description.strip():
        errors.append("description cannot be empty")
    if not category or not category.strip():
        errors.append("category cannot be empty")
    if type not in TRANSACTION_TYPES:
        errors.append(f"type must be one of {sorted(TRANSACTION_TYPES)}")
    if payment_method not in PAYMENT_METHODS:
        errors.append(f"payment method must be one of {sorted(PAYMENT_METHODS)}")
    if installment_count is not None and installment_count < 1:
        errors.append("installment count must be at least 1")
    return errors


def _goal_field_errors(
    category: str,
    amount: Decimal,
    period: str,
    start_date: date,
    end_date: Optional[date],
) -> List[str]:
    errors: List[str] = []
    if amount <= 0:
        errors.append("goal amount must be greater than zero")
    if not category or not category.strip():
        errors.append("goal category cannot be empty")
    if period not in GOAL_PERIODS:
        errors.append(f"period must be one of {sorted(GOAL_PERIODS)}")
    if end_date is not None and end_date < start_date:
        errors.append("end date cannot be before start date")
    return errors


def validate_transaction_draft(draft: TransactionDraft) -> TransactionDraft:
    """Raise :class:`ValidationError` listing every problem with ``draft``."""
    errors = _transaction_field_errors(
        draft.description,
        draft.amount,
        draft.type,
        draft.category,
        draft.payment_method,
        draft.installment_count,
    )
    if errors:
        raise ValidationError("; ".join(errors))
    return draft


def validate_goal_draft(draft: SpendingGoalDraft) -> SpendingGoalDraft:
    errors = _goal_field_errors(
        draft.category, draft.amount, draft.period, draft.start_date, draft.end_date
    )
    if errors:
        raise ValidationError("; ".join(errors))
    return draft


# ---------------------------------------------------------------------------
# Field-level updates
# ---------------------------------------------------------------------------

# Fields whose change invalidates an installment schedule
SCHEDULE_FIELDS = frozenset({'amount', 'date', 'payment_method', 'installment_count'})


@dataclass
class TransactionUpdate:
    """Fields to change on a stored transaction; ``None`` leaves a field as is."""
    description: Optional[str] = None
    amount: Optional[Decimal] = None
    date: Optional[date] = None
    type: Optional[str] = None
    category: Optional[str] = None
    payment_method: Optional[str] = None
    installment_count: Optional[int] = None

    def __post_init__(self) -> None:
        if self.amount is not None:
            self.amount = to_amount(self.amount)
        if self.date is not None:
            self.date = to_date(self.date)
        self.installment_count = _optional_int(self.installment_count)

    def changes(self) -> Dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def touches_schedule(self) -> bool:
        return bool(SCHEDULE_FIELDS.intersection(self.changes()))

    def apply(self, transaction: Transaction) -> Transaction:
        """Return a validated copy of ``transaction`` with the changes merged in.

        The installment schedule is carried over untouched; callers rebuild it
        when :meth:`touches_schedule` is true.
        """
        merged = replace(transaction, **self.changes())
        errors = _transaction_field_errors(
            merged.description,
            merged.amount,
            merged.type,
            merged.category,
            merged.payment_method,
            merged.installment_count,
        )
        if errors:
            raise ValidationError("; ".join(errors))
        return merged


@dataclass
class SpendingGoalUpdate:
    category: Optional[str] = None
    amount: Optional[Decimal] = None
    period: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    clear_end_date: bool = False

    def __post_init__(self) -> None:
        if self.amount is not None:
            self.amount = to_amount(self.amount)
        if self.start_date is not None:
            self.start_date = to_date(self.start_date)
        if self.end_date is not None:
            self.end_date = to_date(self.end_date)
        if self.clear_end_date and self.end_date is not None:
            raise ValidationError("cannot set and clear the end date at once")

    def changes(self) -> Dict[str, Any]:
        values = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != 'clear_end_date' and getattr(self, f.name) is not None
        }
        if self.clear_end_date:
            values['end_date'] = None
        return values

    def apply(self, goal: SpendingGoal) -> SpendingGoal:
        merged = replace(goal, **self.changes())
        errors = _goal_field_errors(
            merged.category, merged.amount, merged.period, merged.start_date, merged.end_date
        )
        if errors:
            raise ValidationError("; ".join(errors))
        return merged
