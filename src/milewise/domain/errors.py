class RewardEngineError(Exception):
    pass


class RuleValidationError(RewardEngineError, ValueError):
    """A reward rule or one of its conditions is malformed."""


class NoRulesConfigured(RewardEngineError):
    def __init__(self, card_type_id: str):
        super().__init__(f"No reward rules configured for card type '{card_type_id}'")
        self.card_type_id = card_type_id


class ConversionUnavailable(RewardEngineError):
    def __init__(self, from_currency_id: str | None, to_currency_id: str):
        super().__init__(
            f"No conversion rate from '{from_currency_id}' to '{to_currency_id}'"
        )
        self.from_currency_id = from_currency_id
        self.to_currency_id = to_currency_id


class CapGroupInconsistency(RewardEngineError):
    """Rules sharing a cap group disagree on cap type or period type."""

    def __init__(self, cap_group_id: str, rule_ids: list[str]):
        super().__init__(
            f"Cap group '{cap_group_id}' has members with different cap semantics: "
            f"{', '.join(rule_ids)}"
        )
        self.cap_group_id = cap_group_id
        self.rule_ids = rule_ids


class RewardCalculationError(RewardEngineError):
    def __init__(self, transaction_id: str, message: str):
        super().__init__(f"Reward calculation failed for transaction '{transaction_id}': {message}")
        self.transaction_id = transaction_id
