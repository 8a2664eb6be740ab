import pathlib
import sys

import pytest

p = str(pathlib.Path(__file__).resolve().parents[1])
sys.path.insert(0, p) if p not in sys.path else None

from tax_engine.config import get_settings  # noqa: E402
from tax_engine.rates.sierra_leone import default_registry  # noqa: E402


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
