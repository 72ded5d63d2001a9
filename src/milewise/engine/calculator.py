import math

from milewise.domain.models import AmountRounding, RawReward, RewardRule


def _round_points(value: float) -> int:
    # Floor toward zero so refunds mirror purchases. Rounding to 9 places first
    # keeps 0.29 * 100 at 29 rather than 28.
    value = round(value, 9)
    return int(math.floor(value)) if value >= 0 else -int(math.floor(-value))


def _round_amount(amount: float, strategy: AmountRounding) -> float:
    # Applied to the magnitude so a refund rounds the same way as its purchase.
    magnitude = round(abs(amount), 9)
    if strategy == "floor":
        magnitude = math.floor(magnitude)
    elif strategy == "ceiling":
        magnitude = math.ceil(magnitude)
    elif strategy == "nearest":
        magnitude = math.floor(magnitude + 0.5)
    elif strategy == "floor5":
        magnitude = math.floor(magnitude / 5) * 5
    return magnitude if amount >= 0 else -magnitude


class RewardCalculator:
    def __init__(self, default_base_rate: float = 1.0):
        if default_base_rate < 0:
            raise ValueError("default_base_rate must be >= 0")
        self.default_base_rate = default_base_rate

    def rates_for(self, rule: RewardRule | None) -> tuple[float, float]:
        if rule is None:
            return self.default_base_rate, 0.0
        return rule.reward.base_point_rate, rule.reward.bonus_point_rate

    def earning_units(self, rule: RewardRule | None, amount: float) -> float:
        """Amount after the rule's amount rounding, expressed in blocks."""
        if rule is None:
            return amount
        spec = rule.reward
        return _round_amount(amount, spec.amount_rounding) / spec.block_size

    def calculate(self, rule: RewardRule | None, payment_amount: float) -> RawReward:
        base_rate, bonus_rate = self.rates_for(rule)
        units = self.earning_units(rule, payment_amount)
        return RawReward(
            base_points=_round_points(units * base_rate),
            bonus_points=_round_points(units * bonus_rate),
        )

    def bonus_for_amount(self, rule: RewardRule | None, amount: float) -> int:
        _, bonus_rate = self.rates_for(rule)
        return _round_points(self.earning_units(rule, amount) * bonus_rate)
