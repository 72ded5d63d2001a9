from dataclasses import dataclass

from milewise.config import Settings
from milewise.currency.normalizer import CurrencyNormalizer
from milewise.engine.cache import CapUsageCache
from milewise.engine.calculator import RewardCalculator
from milewise.engine.caps import CapAccountant
from milewise.engine.matcher import RuleMatcher
from milewise.engine.rewards import RewardService
from milewise.repository.card_types import CardTypeIdService
from milewise.repository.json_stores import (
    JsonConversionRateStore,
    JsonPaymentMethodStore,
    JsonRuleStore,
    load_transaction_store,
)
from milewise.repository.stores import (
    ConversionRateStore,
    PaymentMethodStore,
    RuleStore,
    TransactionStore,
)
from milewise.simulation.orchestrator import SimulationOrchestrator


@dataclass
class Engine:
    payment_methods: PaymentMethodStore
    transactions: TransactionStore
    rewards: RewardService
    normalizer: CurrencyNormalizer
    simulator: SimulationOrchestrator


def build_engine(
    rule_store: RuleStore,
    transaction_store: TransactionStore,
    rate_store: ConversionRateStore,
    payment_method_store: PaymentMethodStore,
    default_base_rate: float = 1.0,
) -> Engine:
    matcher = RuleMatcher()
    calculator = RewardCalculator(default_base_rate=default_base_rate)
    accountant = CapAccountant(transaction_store, matcher, calculator, cache=CapUsageCache())
    rewards = RewardService(rule_store, CardTypeIdService(), matcher, calculator, accountant)
    normalizer = CurrencyNormalizer(rate_store)
    return Engine(
        payment_methods=payment_method_store,
        transactions=transaction_store,
        rewards=rewards,
        normalizer=normalizer,
        simulator=SimulationOrchestrator(rewards, normalizer),
    )


def build_engine_from_settings(settings: Settings) -> Engine:
    return build_engine(
        rule_store=JsonRuleStore(settings.rules_file),
        transaction_store=load_transaction_store(settings.transactions_file),
        rate_store=JsonConversionRateStore(settings.conversion_rates_file),
        payment_method_store=JsonPaymentMethodStore(settings.payment_methods_file),
        default_base_rate=settings.default_base_rate,
    )
