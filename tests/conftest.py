from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure the repository root is on sys.path so tests can import `app`, `model`, etc.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(scope="session")
def ref():
    """Reference tables, validated and loaded once for the whole session."""
    from data.reference import get_reference_data

    return get_reference_data()
