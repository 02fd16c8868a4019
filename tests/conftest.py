"""Shared pytest configuration for the project test suite."""
from __future__ import annotations

import itertools
import sys
from datetime import date
from pathlib import Path

import pytest

# Ensure the repository root (which contains the ``household_finance`` package) is importable.
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def id_factory():
    """Deterministic ids: ``id-1``, ``id-2`` ..."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def fixed_today():
    """Clock pinned to 2024-03-10."""
    return lambda: date(2024, 3, 10)
