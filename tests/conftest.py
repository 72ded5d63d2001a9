import pytest

from milewise.domain.models import MccInclude
from milewise.engine.cache import CapUsageCache
from milewise.engine.calculator import RewardCalculator
from milewise.engine.caps import CapAccountant
from milewise.engine.matcher import RuleMatcher
from milewise.repository.memory import InMemoryTransactionStore
from tests.factories import make_rule


@pytest.fixture
def dining_rule():
    return make_rule(
        "dining-4x",
        priority=10,
        conditions=[MccInclude(values=["5812"])],
        base=1,
        bonus=3,
        cap=2000,
    )


@pytest.fixture
def transaction_store():
    return InMemoryTransactionStore()


@pytest.fixture
def matcher():
    return RuleMatcher()


@pytest.fixture
def calculator():
    return RewardCalculator(default_base_rate=1.0)


@pytest.fixture
def accountant(transaction_store, matcher, calculator):
    return CapAccountant(transaction_store, matcher, calculator, cache=CapUsageCache())
