import logging
from dataclasses import dataclass
from datetime import date

from milewise.domain.errors import CapGroupInconsistency
from milewise.domain.models import (
    CapDuration,
    CapType,
    CapUsage,
    Period,
    RawReward,
    RewardBreakdown,
    RewardRule,
    Transaction,
)
from milewise.engine.cache import CapUsageCache
from milewise.engine.calculator import RewardCalculator
from milewise.engine.matcher import RuleMatcher
from milewise.engine.periods import is_promotion_expired, resolve_period
from milewise.repository.stores import TransactionStore

logger = logging.getLogger(__name__)


@dataclass
class CapPool:
    """The rules whose bonus (or spend) is counted against one cap."""

    identifier: str
    anchor: RewardRule
    members: list[RewardRule]
    cap: float
    cap_type: CapType
    cap_duration: CapDuration

    @property
    def member_ids(self) -> set[str]:
        return {member.id for member in self.members}

    @property
    def display_name(self) -> str:
        if len(self.members) == 1:
            return self.anchor.name
        if self.cap_duration == "promotional_period":
            return "Promotional Bonus Cap"
        return f"{len(self.members)} Rules Shared Cap"


def _single_rule_pool(rule: RewardRule) -> CapPool:
    return CapPool(
        identifier=rule.id,
        anchor=rule,
        members=[rule],
        cap=rule.reward.monthly_cap,
        cap_type=rule.reward.cap_type,
        cap_duration=rule.reward.cap_duration,
    )


def _rules_fingerprint(rules: list[RewardRule]) -> tuple[str, ...]:
    return tuple(rule.model_dump_json() for rule in sorted(rules, key=lambda item: item.id))


class CapAccountant:
    """Resolves accounting periods, recomputes usage from the ledger and clamps bonus.

    Usage is never stored: every figure is rebuilt by replaying the payment
    method's transactions for the period through the matcher and calculator.
    """

    def __init__(
        self,
        transaction_store: TransactionStore,
        matcher: RuleMatcher,
        calculator: RewardCalculator,
        cache: CapUsageCache | None = None,
    ):
        self.transaction_store = transaction_store
        self.matcher = matcher
        self.calculator = calculator
        self.cache = cache

    def cap_pool(self, rule: RewardRule, rules: list[RewardRule]) -> CapPool | None:
        """The pool `rule` is clamped against, or None when nothing caps it.

        A grouped rule without a cap of its own shares the group's pool. Only
        capped members decide whether the group's semantics are consistent.
        """
        group_id = rule.reward.cap_group_id
        if group_id is None:
            return _single_rule_pool(rule) if rule.is_capped else None

        members = {member.id: member for member in rules if member.reward.cap_group_id == group_id}
        members[rule.id] = rule
        ordered = sorted(members.values(), key=lambda item: item.id)
        capped = [member for member in ordered if member.is_capped]
        if not capped:
            return None

        semantics = {(member.reward.cap_type, member.reward.cap_duration) for member in capped}
        if len(semantics) > 1:
            error = CapGroupInconsistency(group_id, [member.id for member in capped])
            logger.warning(f"{error}; accounting rule '{rule.id}' against its own cap")
            return _single_rule_pool(rule) if rule.is_capped else None

        anchor = capped[0]
        return CapPool(
            identifier=group_id,
            anchor=anchor,
            members=ordered,
            cap=min(member.reward.monthly_cap for member in capped),
            cap_type=anchor.reward.cap_type,
            cap_duration=anchor.reward.cap_duration,
        )

    def period_for(self, pool: CapPool, on: date, statement_day: int | None) -> Period:
        return resolve_period(pool.anchor, on, statement_day)

    async def period_history(
        self,
        payment_method_id: str,
        period: Period,
        exclude_transaction_id: str | None = None,
    ) -> list[Transaction]:
        transactions = await self.transaction_store.get_transactions_for_payment_method(
            payment_method_id, period.start, period.end_exclusive
        )
        return sorted(
            (
                txn
                for txn in transactions
                if not txn.is_deleted and txn.id != exclude_transaction_id
            ),
            key=lambda txn: (txn.date, txn.id),
        )

    async def min_spend_met(self, rule: RewardRule, txn: Transaction, period: Period) -> bool:
        """Whether spend in `period`, this transaction included, reaches the rule's minimum."""
        minimum = rule.reward.monthly_min_spend
        if minimum is None:
            return True
        history = await self.period_history(txn.payment_method_id, period, exclude_transaction_id=txn.id)
        spend = sum(item.payment_amount for item in history) + txn.payment_amount
        return round(spend, 9) >= minimum

    async def usage_so_far(
        self,
        pool: CapPool,
        payment_method_id: str,
        period: Period,
        rules: list[RewardRule],
        exclude_transaction_id: str | None = None,
    ) -> float:
        history = await self.period_history(payment_method_id, period, exclude_transaction_id)

        member_ids = pool.member_ids
        used = 0.0
        spend = 0.0
        for txn in history:
            spend += txn.payment_amount
            matched = self.matcher.select(txn, rules)
            if matched is None or matched.id not in member_ids:
                continue
            minimum = matched.reward.monthly_min_spend
            if minimum is not None and round(spend, 9) < minimum:
                continue
            if pool.cap_type == "spend_amount":
                used += txn.payment_amount
                continue
            # Replay with the same clamp the ledger applied when it was written.
            bonus = self.calculator.calculate(matched, txn.payment_amount).bonus_points
            used += min(bonus, int(max(0.0, pool.cap - used)))
        return used

    def clamp(
        self,
        rule: RewardRule,
        pool: CapPool,
        raw: RawReward,
        payment_amount: float,
        used: float,
    ) -> tuple[int, float, list[str]]:
        messages: list[str] = []
        remaining_before = max(0.0, pool.cap - used)

        if pool.cap_type == "spend_amount":
            eligible = min(payment_amount, remaining_before)
            bonus = self.calculator.bonus_for_amount(rule, eligible) if payment_amount > 0 else raw.bonus_points
            remaining = max(0.0, remaining_before - max(payment_amount, 0.0))
            unit = "spend"
        else:
            bonus = min(raw.bonus_points, int(remaining_before)) if raw.bonus_points > 0 else raw.bonus_points
            remaining = max(0.0, remaining_before - max(bonus, 0))
            unit = "bonus points"

        if raw.bonus_points > 0:
            if remaining_before <= 0:
                messages.append(f"Cap '{pool.identifier}' reached: no {unit} left this period")
            elif bonus < raw.bonus_points:
                messages.append(f"Bonus points capped at {bonus} due to '{pool.identifier}' limit")
        return bonus, remaining, messages

    async def apply(
        self,
        rule: RewardRule | None,
        rules: list[RewardRule],
        raw: RawReward,
        txn: Transaction,
        statement_day: int | None = None,
    ) -> RewardBreakdown:
        breakdown = RewardBreakdown(
            base_points=raw.base_points,
            bonus_points=raw.bonus_points,
            total_points=raw.base_points + raw.bonus_points,
            applied_rule_id=rule.id if rule else None,
            applied_rule_name=rule.name if rule else None,
        )
        if rule is None:
            return breakdown

        pool = self.cap_pool(rule, rules)
        if pool is None:
            period = resolve_period(rule, txn.date, statement_day)
        else:
            period = self.period_for(pool, txn.date, statement_day)
            breakdown.cap_identifier = pool.identifier

        if pool is not None and not period.contains(txn.date):
            breakdown.bonus_points = 0
            breakdown.total_points = raw.base_points
            breakdown.remaining_bonus = 0.0
            breakdown.messages.append(f"Promotional period for '{pool.identifier}' is not running")
            return breakdown

        if raw.bonus_points > 0 and not await self.min_spend_met(rule, txn, period):
            breakdown.bonus_points = 0
            breakdown.total_points = raw.base_points
            breakdown.messages.append(
                f"Minimum spend of {rule.reward.monthly_min_spend:g} not met this period; bonus withheld"
            )
            return breakdown

        if pool is None:
            return breakdown

        used = await self.usage_so_far(
            pool, txn.payment_method_id, period, rules, exclude_transaction_id=txn.id
        )
        bonus, remaining, messages = self.clamp(rule, pool, raw, txn.payment_amount, used)

        logger.debug(
            f"Cap '{pool.identifier}' ({pool.cap_type}, {pool.cap_duration}) "
            f"{period.start}..{period.end}: used={used}, cap={pool.cap}, bonus {raw.bonus_points} -> {bonus}"
        )

        breakdown.bonus_points = bonus
        breakdown.total_points = raw.base_points + bonus
        breakdown.remaining_bonus = remaining
        breakdown.messages.extend(messages)
        return breakdown

    async def get_cap_usage(
        self,
        rules: list[RewardRule],
        payment_method_id: str,
        statement_day: int | None = None,
        reference_date: date | None = None,
    ) -> list[CapUsage]:
        now = reference_date or date.today()
        context = (statement_day, now, _rules_fingerprint(rules))
        generation = await self.transaction_store.generation(payment_method_id)

        if self.cache is not None:
            cached = self.cache.get(payment_method_id, generation, context)
            if cached is not None:
                return cached

        usages = await self._compute_cap_usage(rules, payment_method_id, statement_day, now)

        if self.cache is not None:
            self.cache.put(payment_method_id, generation, context, usages)
        return usages

    async def _compute_cap_usage(
        self,
        rules: list[RewardRule],
        payment_method_id: str,
        statement_day: int | None,
        now: date,
    ) -> list[CapUsage]:
        capped = sorted(
            (rule for rule in rules if rule.enabled and rule.is_capped),
            key=lambda item: (-item.priority, item.id),
        )

        seen: set[str] = set()
        usages: list[CapUsage] = []
        for rule in capped:
            pool = self.cap_pool(rule, rules)
            if pool.identifier in seen:
                continue
            seen.add(pool.identifier)

            if is_promotion_expired(pool.anchor, now):
                logger.debug(f"Skipping expired promotional cap '{pool.identifier}'")
                continue

            period = self.period_for(pool, now, statement_day)
            used = await self.usage_so_far(pool, payment_method_id, period, rules)
            if pool.cap > 0:
                percentage = min(100.0, used / pool.cap * 100)
            else:
                percentage = 100.0

            usages.append(
                CapUsage(
                    identifier=pool.identifier,
                    rule_name=pool.display_name,
                    used=used,
                    cap=pool.cap,
                    cap_type=pool.cap_type,
                    period_type=pool.cap_duration,
                    period_start=period.start,
                    period_end=period.end,
                    valid_until=pool.anchor.promo_valid_until,
                    percentage=percentage,
                )
            )
        return usages
