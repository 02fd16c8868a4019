from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from household_finance.errors import InvalidMonthKeyError, ValidationError
from household_finance.installments import project
from household_finance.models import (
    SpendingGoal,
    SpendingGoalDraft,
    SpendingGoalUpdate,
    Transaction,
    TransactionDraft,
    TransactionUpdate,
    month_key,
    months_of_year,
    shift_month,
    to_amount,
    validate_goal_draft,
    validate_month_key,
    validate_transaction_draft,
)


def test_month_helpers():
    assert month_key(date(2024, 1, 15)) == '2024-01'
    assert month_key(datetime(2024, 12, 31, 23, 59)) == '2024-12'
    assert month_key('2024-07-04T03:00:00.000Z') == '2024-07'
    assert shift_month('2024-12', 1) == '2025-01'
    assert shift_month('2024-01', -2) == '2023-11'
    assert months_of_year('2024-06')[0] == '2024-01'
    assert months_of_year('2024-06')[-1] == '2024-12'
    assert validate_month_key('2024-09') == '2024-09'
    with pytest.raises(InvalidMonthKeyError):
        validate_month_key('2024-00')


def test_to_amount_avoids_float_drift():
    assert to_amount(0.1) == Decimal('0.1')
    assert to_amount('1000.00') == Decimal('1000.00')
    assert to_amount(3) == Decimal('3')


@pytest.mark.parametrize('value', ['abc', None, True, float('nan'), 'Infinity'])
def test_to_amount_rejects_garbage(value):
    with pytest.raises(ValidationError):
        to_amount(value)


def test_draft_coerces_inputs():
    draft = TransactionDraft('Bus', 4.5, '2024-03-01', 'expense', 'Transporte', 'cash', '2')
    assert draft.amount == Decimal('4.5')
    assert draft.date == date(2024, 3, 1)
    assert draft.installment_count == 2


def test_transaction_draft_validation_lists_every_problem():
    draft = TransactionDraft(' ', '-5', '2024-03-01', 'gift', '', 'cheque', 0)

    with pytest.raises(ValidationError) as excinfo:
        validate_transaction_draft(draft)

    message = str(excinfo.value)
    for fragment in ('amount', 'description', 'category', 'type', 'payment method', 'installment'):
        assert fragment in message


def test_goal_draft_validation():
    with pytest.raises(ValidationError, match='greater than zero'):
        validate_goal_draft(SpendingGoalDraft('Lazer', '0', 'monthly', '2024-01-01'))
    with pytest.raises(ValidationError, match='category'):
        validate_goal_draft(SpendingGoalDraft('  ', '10', 'monthly', '2024-01-01'))
    with pytest.raises(ValidationError, match='end date'):
        validate_goal_draft(SpendingGoalDraft('Lazer', '10', 'yearly', '2024-05-01', '2024-01-01'))
    assert validate_goal_draft(SpendingGoalDraft('Lazer', '10', 'yearly', '2024-01-01'))


def test_transaction_record_preserves_schedule():
    transaction = project(
        TransactionDraft('Sofa', '1999.90', '2024-02-10', 'expense', 'Moradia', 'credit', 4)
    )

    restored = Transaction.from_record(transaction.to_record())

    assert restored == transaction


def test_loads_camel_case_records_from_browser_storage():
    record = {
        'id': 'k3j2h1a',
        'description': 'Notebook',
        'amount': 3000,
        'date': '2024-04-20T15:30:00.000Z',
        'type': 'expense',
        'category': 'Educação',
        'paymentMethod': 'credit',
        'installments': 2,
        'currentInstallment': 1,
        'futureInstallments': [
            {'id': 'a1', 'transactionId': 'k3j2h1a', 'month': '2024-04', 'amount': 1500, 'installmentNumber': 1},
            {'id': 'a2', 'transactionId': 'k3j2h1a', 'month': '2024-05', 'amount': 1500, 'installmentNumber': 2},
        ],
    }

    transaction = Transaction.from_record(record)

    assert transaction.payment_method == 'credit'
    assert transaction.date == date(2024, 4, 20)
    assert transaction.installment_count == 2
    assert [i.month for i in transaction.future_installments] == ['2024-04', '2024-05']


def test_goal_record_without_end_date():
    goal = SpendingGoal('g1', 'Lazer', Decimal('300'), 'monthly', date(2024, 1, 1))
    assert SpendingGoal.from_record(goal.to_record()) == goal


def test_transaction_update_only_changes_given_fields():
    transaction = project(TransactionDraft('Bus', '4.50', '2024-03-01', 'expense', 'Transporte', 'cash'))

    updated = TransactionUpdate(description='Metro').apply(transaction)

    assert updated.description == 'Metro'
    assert updated.amount == transaction.amount
    assert updated.id == transaction.id
    assert not TransactionUpdate(description='Metro').touches_schedule()
    assert TransactionUpdate(amount='5').touches_schedule()


def test_transaction_update_is_validated_before_merge():
    transaction = project(TransactionDraft('Bus', '4.50', '2024-03-01', 'expense', 'Transporte', 'cash'))
    with pytest.raises(ValidationError):
        TransactionUpdate(type='loan').apply(transaction)


def test_goal_update_can_clear_end_date():
    goal = SpendingGoal('g1', 'Lazer', Decimal('300'), 'monthly', date(2024, 1, 1), date(2024, 12, 31))

    assert SpendingGoalUpdate(clear_end_date=True).apply(goal).end_date is None
    assert SpendingGoalUpdate(amount='450').apply(goal).amount == Decimal('450')
    with pytest.raises(ValidationError):
        SpendingGoalUpdate(amount='-1').apply(goal)
    with pytest.raises(ValidationError):
        SpendingGoalUpdate(end_date='2025-01-01', clear_end_date=True)


@pytest.mark.parametrize('count', [2.5, '2.5', Decimal('3.1'), 'three'])
def test_fractional_installment_count_is_rejected(count):
    with pytest.raises(ValidationError):
        TransactionDraft('TV', '1000', '2024-01-01', 'expense', 'Lazer', 'credit', count)


@pytest.mark.parametrize('count', [2, '2', 2.0, Decimal('2')])
def test_whole_installment_counts_are_accepted(count):
    draft = TransactionDraft('TV', '1000', '2024-01-01', 'expense', 'Lazer', 'credit', count)

    assert draft.installment_count == 2
    assert len(project(draft).future_installments) == 2


def test_record_missing_a_field_raises_validation_error():
    with pytest.raises(ValidationError, match='amount'):
        Transaction.from_record({'id': 'x', 'description': 'a'})
    with pytest.raises(ValidationError):
        SpendingGoal.from_record({'id': 'g1', 'category': 'Lazer', 'period': 'monthly'})
