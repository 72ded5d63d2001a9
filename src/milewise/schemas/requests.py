from pydantic import BaseModel, Field

from milewise.domain.models import ConversionRate, SimulationInput, Transaction


class CalculateRequest(BaseModel):
    transaction: Transaction


class SimulateRequest(SimulationInput):
    miles_currency_id: str | None = None
    payment_method_ids: list[str] | None = None


class ConversionRatesUpdate(BaseModel):
    rates: list[ConversionRate] = Field(min_length=1)
