import logging
from typing import Iterable

from milewise.domain.errors import ConversionUnavailable
from milewise.domain.models import ConversionRate
from milewise.repository.stores import ConversionRateStore

logger = logging.getLogger(__name__)

RateUpdate = ConversionRate | tuple[str, str, float] | dict


def _to_rate(update: RateUpdate) -> ConversionRate:
    if isinstance(update, ConversionRate):
        return update
    if isinstance(update, tuple):
        reward_currency_id, miles_currency_id, rate = update
        return ConversionRate(
            reward_currency_id=reward_currency_id,
            miles_currency_id=miles_currency_id,
            rate=rate,
        )
    return ConversionRate.model_validate(update)


class CurrencyNormalizer:
    """Converts reward points into a miles currency using the rate table."""

    def __init__(self, rate_store: ConversionRateStore):
        self.rate_store = rate_store

    async def list_rates(self) -> list[ConversionRate]:
        rates = await self.rate_store.get_rates()
        return sorted(rates, key=lambda rate: rate.key)

    async def rate_for(self, from_currency_id: str | None, to_currency_id: str) -> ConversionRate:
        if not from_currency_id:
            raise ConversionUnavailable(from_currency_id, to_currency_id)
        if from_currency_id == to_currency_id:
            return ConversionRate(
                reward_currency_id=from_currency_id, miles_currency_id=to_currency_id, rate=1.0
            )

        for rate in await self.rate_store.get_rates():
            if rate.key == (from_currency_id, to_currency_id):
                return rate
        raise ConversionUnavailable(from_currency_id, to_currency_id)

    async def convert(self, amount: float, from_currency_id: str | None, to_currency_id: str) -> float:
        rate = await self.rate_for(from_currency_id, to_currency_id)
        return amount * rate.rate

    async def batch_update_conversion_rates(self, updates: Iterable[RateUpdate]) -> list[ConversionRate]:
        # Validate everything before writing anything.
        validated = [_to_rate(update) for update in updates]
        deduplicated = list({rate.key: rate for rate in validated}.values())
        if not deduplicated:
            return []

        await self.rate_store.upsert(deduplicated)
        logger.info(f"Upserted {len(deduplicated)} conversion rate(s)")
        return deduplicated
