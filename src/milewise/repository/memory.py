from collections import defaultdict
from datetime import date

from milewise.domain.models import ConversionRate, PaymentMethod, RewardRule, Transaction


class LedgerGenerations:
    """Per-payment-method write counters used to stamp cached reads."""

    def __init__(self):
        self._counters: dict[str, int] = defaultdict(int)

    def bump(self, payment_method_id: str) -> int:
        self._counters[payment_method_id] += 1
        return self._counters[payment_method_id]

    def current(self, payment_method_id: str) -> int:
        return self._counters.get(payment_method_id, 0)


class InMemoryRuleStore:
    def __init__(self, rules: list[RewardRule] | None = None):
        self._rules: list[RewardRule] = list(rules or [])

    async def get_rules_for_card_type(self, card_type_id: str) -> list[RewardRule]:
        return [rule for rule in self._rules if rule.card_type_id == card_type_id]


class InMemoryTransactionStore:
    def __init__(self, transactions: list[Transaction] | None = None):
        self.generations = LedgerGenerations()
        self._transactions: dict[str, Transaction] = {}
        for txn in transactions or []:
            self.add(txn)

    def add(self, txn: Transaction) -> None:
        if txn.id in self._transactions:
            raise ValueError(f"Transaction already exists: {txn.id}")
        self._transactions[txn.id] = txn
        self.generations.bump(txn.payment_method_id)

    def update(self, txn: Transaction) -> None:
        previous = self._transactions.get(txn.id)
        if previous is None:
            raise KeyError(f"Transaction not found: {txn.id}")
        self._transactions[txn.id] = txn
        self.generations.bump(txn.payment_method_id)
        if previous.payment_method_id != txn.payment_method_id:
            self.generations.bump(previous.payment_method_id)

    def soft_delete(self, transaction_id: str) -> None:
        txn = self._transactions.get(transaction_id)
        if txn is None:
            raise KeyError(f"Transaction not found: {transaction_id}")
        self._transactions[transaction_id] = txn.model_copy(update={"is_deleted": True})
        self.generations.bump(txn.payment_method_id)

    async def get_transactions_for_payment_method(
        self, payment_method_id: str, start: date, end: date
    ) -> list[Transaction]:
        return [
            txn
            for txn in self._transactions.values()
            if txn.payment_method_id == payment_method_id
            and not txn.is_deleted
            and start <= txn.date < end
        ]

    async def generation(self, payment_method_id: str) -> int:
        return self.generations.current(payment_method_id)


class InMemoryConversionRateStore:
    def __init__(self, rates: list[ConversionRate] | None = None):
        self._rates: dict[tuple[str, str], ConversionRate] = {}
        for rate in rates or []:
            self._rates[rate.key] = rate

    async def get_rates(self) -> list[ConversionRate]:
        return list(self._rates.values())

    async def upsert(self, rates: list[ConversionRate]) -> None:
        for rate in rates:
            self._rates[rate.key] = rate


class InMemoryPaymentMethodStore:
    def __init__(self, payment_methods: list[PaymentMethod] | None = None):
        self._methods = {method.id: method for method in payment_methods or []}

    async def get_payment_methods(self) -> list[PaymentMethod]:
        return list(self._methods.values())

    async def get_payment_method(self, payment_method_id: str) -> PaymentMethod | None:
        return self._methods.get(payment_method_id)
