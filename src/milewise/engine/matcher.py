import logging

from milewise.domain.models import RewardRule, Transaction
from milewise.engine.conditions import all_conditions_hold

logger = logging.getLogger(__name__)


def _selection_key(rule: RewardRule) -> tuple[int, str]:
    # Highest priority first, then ascending id.
    return -rule.priority, rule.id


class RuleMatcher:
    """Picks the single reward rule that applies to a transaction."""

    def candidates(self, txn: Transaction, rules: list[RewardRule]) -> list[RewardRule]:
        matching = [
            rule
            for rule in rules
            if rule.is_active_on(txn.date) and all_conditions_hold(rule.conditions, txn)
        ]
        matching.sort(key=_selection_key)
        return matching

    def select(self, txn: Transaction, rules: list[RewardRule]) -> RewardRule | None:
        matching = self.candidates(txn, rules)
        if not matching:
            logger.debug(f"No rule matched transaction {txn.id} among {len(rules)} rule(s)")
            return None

        selected = matching[0]
        if len(matching) > 1:
            logger.debug(
                f"Transaction {txn.id}: {len(matching)} rules matched, "
                f"selected '{selected.id}' (priority {selected.priority})"
            )
        return selected
