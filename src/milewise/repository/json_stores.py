import json
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from milewise.domain.errors import RuleValidationError
from milewise.domain.models import ConversionRate, PaymentMethod, RewardRule, Transaction
from milewise.repository.memory import InMemoryTransactionStore

ModelT = TypeVar("ModelT", bound=BaseModel)


def _read_items(path: Path) -> list[dict]:
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)

    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON array in {path}")
    return data


def _load_models(path: Path, model: type[ModelT]) -> list[ModelT]:
    return [model.model_validate(item) for item in _read_items(path)]


class JsonRuleStore:
    def __init__(self, rules_file: str):
        self.rules_file = Path(rules_file)

    def load_rules(self) -> list[RewardRule]:
        try:
            return _load_models(self.rules_file, RewardRule)
        except ValidationError as exc:
            raise RuleValidationError(f"Invalid rule in {self.rules_file}: {exc}") from exc

    async def get_rules_for_card_type(self, card_type_id: str) -> list[RewardRule]:
        # Only this card type's entries are validated; a bad rule elsewhere in
        # the file does not affect it.
        items = [
            item
            for item in _read_items(self.rules_file)
            if isinstance(item, dict) and item.get("card_type_id") == card_type_id
        ]
        try:
            return [RewardRule.model_validate(item) for item in items]
        except ValidationError as exc:
            raise RuleValidationError(
                f"Invalid rule for card type '{card_type_id}' in {self.rules_file}: {exc}"
            ) from exc


class JsonPaymentMethodStore:
    def __init__(self, payment_methods_file: str):
        self.payment_methods_file = Path(payment_methods_file)

    async def get_payment_methods(self) -> list[PaymentMethod]:
        return _load_models(self.payment_methods_file, PaymentMethod)

    async def get_payment_method(self, payment_method_id: str) -> PaymentMethod | None:
        methods = await self.get_payment_methods()
        return next((method for method in methods if method.id == payment_method_id), None)


class JsonConversionRateStore:
    def __init__(self, rates_file: str):
        self.rates_file = Path(rates_file)

    async def get_rates(self) -> list[ConversionRate]:
        if not self.rates_file.exists():
            return []
        return _load_models(self.rates_file, ConversionRate)

    async def upsert(self, rates: list[ConversionRate]) -> None:
        table = {rate.key: rate for rate in await self.get_rates()}
        for rate in rates:
            table[rate.key] = rate

        self.rates_file.parent.mkdir(parents=True, exist_ok=True)
        payload = [rate.model_dump(mode="json") for rate in table.values()]
        self.rates_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def load_transaction_store(transactions_file: str) -> InMemoryTransactionStore:
    path = Path(transactions_file)
    if not path.exists():
        return InMemoryTransactionStore()
    return InMemoryTransactionStore(_load_models(path, Transaction))
