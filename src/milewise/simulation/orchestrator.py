import asyncio
import logging

from milewise.currency.normalizer import CurrencyNormalizer
from milewise.domain.errors import RewardEngineError
from milewise.domain.models import CardSimulationResult, PaymentMethod, SimulationInput
from milewise.engine.rewards import RewardService

logger = logging.getLogger(__name__)


def _excluded(result: CardSimulationResult, exc: Exception) -> CardSimulationResult:
    result.excluded = True
    result.reason = type(exc).__name__
    result.detail = str(exc)
    result.miles_equivalent = None
    result.conversion_rate = None
    return result


def rank_results(results: list[CardSimulationResult]) -> list[CardSimulationResult]:
    converted = [item for item in results if not item.excluded]
    excluded = [item for item in results if item.excluded]

    converted.sort(key=lambda item: (-item.miles_equivalent, item.payment_method_name))
    excluded.sort(key=lambda item: item.payment_method_name)

    ranked = converted + excluded
    for index, item in enumerate(ranked, start=1):
        item.rank = index
    return ranked


class SimulationOrchestrator:
    """Runs one hypothetical purchase against every active card and ranks them by miles."""

    def __init__(self, reward_service: RewardService, normalizer: CurrencyNormalizer):
        self.reward_service = reward_service
        self.normalizer = normalizer

    async def simulate_card(
        self, simulation: SimulationInput, payment_method: PaymentMethod, miles_currency_id: str
    ) -> CardSimulationResult:
        result = CardSimulationResult(
            payment_method_id=payment_method.id,
            payment_method_name=payment_method.name,
        )

        # Every failure stays on this card's entry.
        try:
            txn = simulation.to_transaction(payment_method.id)
            breakdown = await self.reward_service.calculate(txn, payment_method)
            result.base_points = breakdown.base_points
            result.bonus_points = breakdown.bonus_points
            result.total_points = breakdown.total_points
            result.applied_rule_id = breakdown.applied_rule_id

            rate = await self.normalizer.rate_for(payment_method.reward_currency_id, miles_currency_id)
        except RewardEngineError as exc:
            logger.warning(f"Excluding {payment_method.id} from simulation: {exc}")
            return _excluded(result, exc)
        except Exception as exc:
            logger.exception(f"Unexpected failure simulating {payment_method.id}")
            return _excluded(result, exc)

        result.conversion_rate = rate.rate
        result.miles_equivalent = result.total_points * rate.rate
        return result

    async def simulate(
        self,
        simulation: SimulationInput,
        payment_methods: list[PaymentMethod],
        miles_currency_id: str,
    ) -> list[CardSimulationResult]:
        active = [method for method in payment_methods if method.active]
        if not active:
            return []

        results = await asyncio.gather(
            *(self.simulate_card(simulation, method, miles_currency_id) for method in active)
        )
        ranked = rank_results(list(results))
        logger.info(
            f"Simulated {len(ranked)} card(s) into {miles_currency_id}; "
            f"{sum(1 for item in ranked if item.excluded)} excluded"
        )
        return ranked
