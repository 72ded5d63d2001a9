"""Read contracts the engine depends on.

Persistence lives outside the engine; anything satisfying these protocols can
be passed to the components.
"""

from datetime import date
from typing import Protocol

from milewise.domain.models import ConversionRate, PaymentMethod, RewardRule, Transaction


class RuleStore(Protocol):
    async def get_rules_for_card_type(self, card_type_id: str) -> list[RewardRule]: ...


class TransactionStore(Protocol):
    async def get_transactions_for_payment_method(
        self, payment_method_id: str, start: date, end: date
    ) -> list[Transaction]:
        """Non-deleted transactions dated within [start, end)."""
        ...

    async def generation(self, payment_method_id: str) -> int:
        """Counter bumped on every write touching `payment_method_id`."""
        ...


class ConversionRateStore(Protocol):
    async def get_rates(self) -> list[ConversionRate]: ...

    async def upsert(self, rates: list[ConversionRate]) -> None: ...


class PaymentMethodStore(Protocol):
    async def get_payment_methods(self) -> list[PaymentMethod]: ...

    async def get_payment_method(self, payment_method_id: str) -> PaymentMethod | None: ...
