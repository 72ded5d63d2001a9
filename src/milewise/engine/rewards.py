import logging
from datetime import date

from milewise.domain.errors import NoRulesConfigured, RewardCalculationError, RewardEngineError
from milewise.domain.models import CapUsage, PaymentMethod, RewardBreakdown, RewardRule, Transaction
from milewise.engine.calculator import RewardCalculator
from milewise.engine.caps import CapAccountant
from milewise.engine.matcher import RuleMatcher
from milewise.repository.card_types import CardTypeIdService
from milewise.repository.stores import RuleStore

logger = logging.getLogger(__name__)


class RewardService:
    """Computes the reward one transaction earns on one payment method."""

    def __init__(
        self,
        rule_store: RuleStore,
        card_types: CardTypeIdService,
        matcher: RuleMatcher,
        calculator: RewardCalculator,
        accountant: CapAccountant,
    ):
        self.rule_store = rule_store
        self.card_types = card_types
        self.matcher = matcher
        self.calculator = calculator
        self.accountant = accountant

    async def rules_for(self, payment_method: PaymentMethod) -> list[RewardRule]:
        card_type_id = self.card_types.for_payment_method(payment_method)
        rules = await self.rule_store.get_rules_for_card_type(card_type_id)
        if not rules:
            raise NoRulesConfigured(card_type_id)
        logger.debug(
            f"Card type '{card_type_id}': {len(rules)} rule(s), "
            f"{sum(1 for rule in rules if rule.enabled)} enabled"
        )
        return rules

    async def _rules_or_empty(self, payment_method: PaymentMethod) -> list[RewardRule]:
        try:
            return await self.rules_for(payment_method)
        except NoRulesConfigured:
            return []

    async def calculate(self, txn: Transaction, payment_method: PaymentMethod) -> RewardBreakdown:
        if txn.payment_method_id != payment_method.id:
            raise RewardCalculationError(
                txn.id,
                f"transaction belongs to '{txn.payment_method_id}', not '{payment_method.id}'",
            )

        try:
            rules = await self._rules_or_empty(payment_method)
            rule = self.matcher.select(txn, rules)
            raw = self.calculator.calculate(rule, txn.payment_amount)
            breakdown = await self.accountant.apply(
                rule, rules, raw, txn, statement_day=payment_method.statement_start_day
            )
        except RewardEngineError:
            raise
        except Exception as exc:
            logger.exception(f"Reward calculation failed for transaction {txn.id} on {payment_method.id}")
            raise RewardCalculationError(txn.id, str(exc)) from exc

        if not rules:
            breakdown.messages.append("No reward rules configured; base rate applied")
        elif rule is None:
            breakdown.messages.append("No rule matched; base rate applied")

        logger.info(
            f"Transaction {txn.id} on {payment_method.id}: rule={breakdown.applied_rule_id}, "
            f"base={breakdown.base_points}, bonus={breakdown.bonus_points}"
        )
        return breakdown

    async def cap_usage(
        self, payment_method: PaymentMethod, reference_date: date | None = None
    ) -> list[CapUsage]:
        rules = await self._rules_or_empty(payment_method)
        return await self.accountant.get_cap_usage(
            rules,
            payment_method.id,
            statement_day=payment_method.statement_start_day,
            reference_date=reference_date,
        )
