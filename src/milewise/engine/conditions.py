from typing import assert_never

from milewise.domain.models import (
    AmountRange,
    Condition,
    ContactlessOnly,
    CurrencyIn,
    ForeignCurrencyOnly,
    MccExclude,
    MccInclude,
    MerchantName,
    OnlineOnly,
    Transaction,
)


def _normalize(value: str | None) -> str:
    return (value or "").strip().lower()


def condition_holds(condition: Condition, txn: Transaction) -> bool:
    match condition:
        case MccInclude(values=values):
            return txn.merchant.mcc is not None and txn.merchant.mcc in values
        case MccExclude(values=values):
            return txn.merchant.mcc not in values
        case MerchantName(values=values):
            name = _normalize(txn.merchant.name)
            return bool(name) and name in {_normalize(value) for value in values}
        case OnlineOnly():
            return txn.merchant.is_online
        case ContactlessOnly():
            return txn.is_contactless
        case ForeignCurrencyOnly():
            return _normalize(txn.currency) != _normalize(txn.payment_currency)
        case AmountRange(min=low, max=high):
            if low is not None and txn.amount < low:
                return False
            if high is not None and txn.amount > high:
                return False
            return True
        case CurrencyIn(values=values):
            return _normalize(txn.currency) in {_normalize(value) for value in values}
        case _:
            assert_never(condition)


def all_conditions_hold(conditions: list[Condition], txn: Transaction) -> bool:
    # An empty list is a catch-all.
    return all(condition_holds(condition, txn) for condition in conditions)
