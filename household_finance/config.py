"""Configuration management for the household finance tracker.

This module centralizes all configuration values including paths,
defaults, and environment variable overrides.
"""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path

# Base project root - assumes this file is in household_finance/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("HOUSEHOLD_FINANCE_DATA_DIR", _PROJECT_ROOT / "data"))

# Local JSON document (one file holding transactions, goals and categories)
STORE_PATH = Path(
    os.getenv("HOUSEHOLD_FINANCE_STORE_PATH", DATA_DIR / "finance.json")
).resolve()

# Database
DB_PATH = Path(
    os.getenv("HOUSEHOLD_FINANCE_DB_PATH", DATA_DIR / "finance.db")
).resolve()

# Seed labels offered before the user adds their own
DEFAULT_CATEGORIES = (
    'Alimentação',
    'Moradia',
    'Transporte',
    'Lazer',
    'Saúde',
    'Educação',
    'Vestuário',
    'Outros',
)

# Length of the dashboard trend window, in months
DEFAULT_TREND_MONTHS = 6

# Installment amounts are rounded to cents
AMOUNT_PRECISION = Decimal('0.01')

CURRENCY_SYMBOL = os.getenv("HOUSEHOLD_FINANCE_CURRENCY", "R$")
