from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from household_finance import aggregation as agg
from household_finance.errors import InvalidMonthKeyError
from household_finance.installments import project
from household_finance.models import MonthlyTotal, TransactionDraft


def _txn(id_factory, description, amount, when, type='expense', category='Outros',
         payment_method='debit', installment_count=None):
    return project(
        TransactionDraft(description, amount, when, type, category, payment_method, installment_count),
        id_factory,
    )


@pytest.fixture
def transactions(id_factory):
    return [
        _txn(id_factory, 'Television', '1000.00', '2024-01-15', category='Lazer',
             payment_method='credit', installment_count=3),
        _txn(id_factory, 'Salary', '5000.00', '2024-02-05', type='income', category='Outros',
             payment_method='transfer'),
        _txn(id_factory, 'Groceries', '200.00', '2024-02-10', category='Alimentação'),
        _txn(id_factory, 'Cinema', '50.00', '2024-02-20', category='Lazer', payment_method='cash'),
        _txn(id_factory, 'Rent', '1500.00', '2024-01-05', category='Moradia', payment_method='transfer'),
        _txn(id_factory, 'Shoes', '120.00', '2024-03-02', category='Vestuário', payment_method='credit'),
    ]


def test_credit_purchase_counts_installments_not_original_amount(transactions):
    assert agg.total_expense(transactions, '2024-01') == Decimal('1833.33')
    assert agg.total_expense(transactions, '2024-02') == Decimal('583.33')
    assert agg.total_expense(transactions, '2024-03') == Decimal('333.34')
    assert agg.total_expense(transactions, '2024-04') == Decimal('0')


def test_single_payment_credit_purchase_is_not_counted(transactions):
    # A credit purchase without installments carries no schedule, so it never
    # reaches the expense totals.
    assert agg.category_total(transactions, 'Vestuário', '2024-03') == Decimal('0')


def test_total_income_only_counts_income_in_its_month(transactions):
    assert agg.total_income(transactions, '2024-02') == Decimal('5000.00')
    assert agg.total_income(transactions, '2024-01') == Decimal('0')


def test_credit_income_installments_are_not_expenses(id_factory):
    refund = _txn(id_factory, 'Refund', '300.00', '2024-05-01', type='income',
                  payment_method='credit', installment_count=3)

    assert agg.total_income([refund], '2024-05') == Decimal('300.00')
    assert agg.total_expense([refund], '2024-05') == Decimal('0')
    assert agg.total_expense([refund], '2024-06') == Decimal('0')


def test_expenses_are_never_double_counted(transactions):
    months = ['2023-12', '2024-01', '2024-02', '2024-03', '2024-04', '2024-05']
    across_months = sum((agg.total_expense(transactions, m) for m in months), Decimal('0'))

    counted = sum(
        (t.amount for t in transactions
         if t.type == 'expense' and (t.payment_method != 'credit' or t.has_installments)),
        Decimal('0'),
    )
    assert across_months == counted


def test_monthly_transactions_include_installment_owners(transactions):
    march = agg.monthly_transactions(transactions, '2024-03')
    assert {t.description for t in march} == {'Television', 'Shoes'}

    february = agg.monthly_transactions(transactions, '2024-02')
    assert {t.description for t in february} == {'Television', 'Salary', 'Groceries', 'Cinema'}


def test_future_installments_are_tagged_with_owner(transactions):
    due = agg.future_installments(transactions, '2024-02')

    assert len(due) == 1
    assert due[0].transaction_id == transactions[0].id
    assert due[0].amount == Decimal('333.33')
    assert due[0].installment_number == 2


def test_category_total_combines_regular_and_installment_spend(transactions):
    assert agg.category_total(transactions, 'Lazer', '2024-02') == Decimal('383.33')
    assert agg.category_total(transactions, 'Alimentação', '2024-02') == Decimal('200.00')
    assert agg.category_total(transactions, 'Outros', '2024-02') == Decimal('0')


@pytest.mark.parametrize('month', ['2024-01', '2024-02', '2024-03'])
def test_category_totals_add_up_to_total_expense(transactions, month):
    per_category = agg.category_totals(transactions, month)
    assert sum(per_category.values(), Decimal('0')) == agg.total_expense(transactions, month)


def test_category_totals_with_explicit_labels(transactions):
    totals = agg.category_totals(transactions, '2024-02', ['Lazer', 'Saúde'])
    assert totals == {'Lazer': Decimal('383.33'), 'Saúde': Decimal('0')}


def test_monthly_totals_window_ends_at_today(transactions):
    totals = agg.monthly_totals(transactions, 3, today=date(2024, 3, 10))

    assert totals == [
        MonthlyTotal('2024-01', Decimal('0'), Decimal('1833.33')),
        MonthlyTotal('2024-02', Decimal('5000.00'), Decimal('583.33')),
        MonthlyTotal('2024-03', Decimal('0'), Decimal('333.34')),
    ]
    assert totals[1].balance == Decimal('4416.67')


def test_monthly_totals_defaults_to_six_months_across_years():
    totals = agg.monthly_totals([], today=date(2024, 2, 29))
    assert [t.month for t in totals] == [
        '2023-09', '2023-10', '2023-11', '2023-12', '2024-01', '2024-02',
    ]


def test_monthly_totals_with_non_positive_count():
    assert agg.monthly_totals([], 0, today=date(2024, 1, 1)) == []


@pytest.mark.parametrize('bad_key', ['2024-1', '2024-13', '24-01', '2024/01', 202401, None])
def test_invalid_month_keys_are_rejected(transactions, bad_key):
    with pytest.raises(InvalidMonthKeyError):
        agg.total_expense(transactions, bad_key)


def test_empty_snapshot_returns_zero_and_empty():
    assert agg.total_income([], '2024-01') == Decimal('0')
    assert agg.total_expense([], '2024-01') == Decimal('0')
    assert agg.monthly_transactions([], '2024-01') == []
    assert agg.future_installments([], '2024-01') == []


def test_category_breakdown_sorted_and_positive_only(transactions):
    breakdown = agg.category_breakdown(transactions, ['Alimentação', 'Lazer', 'Saúde'], '2024-02')

    assert list(breakdown.index) == ['Lazer', 'Alimentação']
    assert breakdown['Lazer'] == pytest.approx(383.33)


def test_filter_transactions(transactions):
    assert [t.description for t in agg.filter_transactions(transactions, type='income')] == ['Salary']
    lazer = agg.filter_transactions(transactions, category='Lazer', type='expense')
    assert {t.description for t in lazer} == {'Television', 'Cinema'}
    assert len(agg.filter_transactions(transactions)) == len(transactions)


def test_monthly_totals_frame(transactions):
    frame = agg.monthly_totals_frame(agg.monthly_totals(transactions, 2, today=date(2024, 2, 1)))

    assert list(frame.columns) == ['Month', 'Income', 'Expense', 'Balance']
    assert frame['Month'].tolist() == ['2024-01', '2024-02']
    assert frame.loc[1, 'Balance'] == pytest.approx(4416.67)


def test_transactions_frame(transactions):
    frame = agg.transactions_frame(transactions)

    assert len(frame) == len(transactions)
    assert frame.loc[0, 'Installments'] == 3
    assert frame.loc[1, 'Month'] == '2024-02'
    assert agg.transactions_frame([]).empty
