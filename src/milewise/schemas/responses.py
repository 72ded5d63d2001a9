from pydantic import BaseModel

from milewise.domain.models import CapUsage, CardSimulationResult, ConversionRate


class SimulateResponse(BaseModel):
    miles_currency_id: str
    best_card: CardSimulationResult | None
    ranked_cards: list[CardSimulationResult]


class CapUsageResponse(BaseModel):
    payment_method_id: str
    usages: list[CapUsage]


class ConversionRatesResponse(BaseModel):
    rates: list[ConversionRate]
