import pytest

from tests.helpers import FixedRandom


@pytest.fixture
def fixed_random():
    return FixedRandom(30)
