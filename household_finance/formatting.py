"""Formatting utilities for currency display."""

from __future__ import annotations

from decimal import Decimal
from typing import Union

from .config import CURRENCY_SYMBOL


def format_currency(
    amount: Union[Decimal, float, int],
    include_sign: bool = True,
    symbol: str = CURRENCY_SYMBOL,
) -> str:
    """Format a currency amount with thousands separators and two decimals.

    Args:
        amount: The amount to format
        include_sign: Whether to prefix the currency symbol
        symbol: Currency symbol to use

    Returns:
        Formatted currency string (e.g. "R$ 1,234.56" or "1,234.56")

    Example:
        >>> format_currency(Decimal('1234.5'))
        'R$ 1,234.50'
        >>> format_currency(-20, include_sign=False)
        '-20.00'
    """
    formatted = f"{Decimal(str(amount)):,.2f}"
    return f"{symbol} {formatted}" if include_sign else formatted
