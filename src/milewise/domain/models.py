import datetime as dt
from datetime import date, timedelta
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

CapType = Literal["bonus_points", "spend_amount"]
CapDuration = Literal["calendar_month", "statement_month", "promotional_period"]
AmountRounding = Literal["none", "floor", "ceiling", "nearest", "floor5"]


class _ValuesCondition(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    values: list[str] = Field(min_length=1)


class MccInclude(_ValuesCondition):
    kind: Literal["mcc_include"] = "mcc_include"


class MccExclude(_ValuesCondition):
    kind: Literal["mcc_exclude"] = "mcc_exclude"


class MerchantName(_ValuesCondition):
    kind: Literal["merchant_name"] = "merchant_name"


class CurrencyIn(_ValuesCondition):
    kind: Literal["currency"] = "currency"


class OnlineOnly(BaseModel):
    kind: Literal["online_only"] = "online_only"


class ContactlessOnly(BaseModel):
    kind: Literal["contactless_only"] = "contactless_only"


class ForeignCurrencyOnly(BaseModel):
    kind: Literal["foreign_currency_only"] = "foreign_currency_only"


class AmountRange(BaseModel):
    kind: Literal["amount_range"] = "amount_range"
    min: float | None = None
    max: float | None = None

    @model_validator(mode="after")
    def _check_bounds(self) -> "AmountRange":
        if self.min is None and self.max is None:
            raise ValueError("amount_range needs at least one of min/max")
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"amount_range min {self.min} is greater than max {self.max}")
        return self


Condition = Annotated[
    Union[
        MccInclude,
        MccExclude,
        MerchantName,
        OnlineOnly,
        ContactlessOnly,
        ForeignCurrencyOnly,
        AmountRange,
        CurrencyIn,
    ],
    Field(discriminator="kind"),
]


class RewardSpec(BaseModel):
    base_point_rate: float = Field(default=1.0, ge=0)
    bonus_point_rate: float = Field(default=0.0, ge=0)
    # Points accrue per `block_size` units of the (rounded) payment amount.
    block_size: float = Field(default=1.0, gt=0)
    amount_rounding: AmountRounding = "none"
    monthly_min_spend: float | None = Field(default=None, ge=0)
    monthly_cap: float | None = Field(default=None, ge=0)
    cap_type: CapType = "bonus_points"
    cap_group_id: str | None = None
    cap_duration: CapDuration = "calendar_month"
    valid_from: date | None = None
    valid_until: date | None = None


class RewardRule(BaseModel):
    id: str
    card_type_id: str
    name: str
    description: str | None = None
    priority: int = 0
    enabled: bool = True
    conditions: list[Condition] = Field(default_factory=list)
    reward: RewardSpec = Field(default_factory=RewardSpec)
    valid_from: date | None = None
    valid_until: date | None = None

    @model_validator(mode="after")
    def _check_promotional_window(self) -> "RewardRule":
        if self.reward.cap_duration == "promotional_period" and self.promo_valid_until is None:
            raise ValueError(f"rule '{self.id}': promotional_period caps require valid_until")
        return self

    @property
    def promo_valid_from(self) -> date | None:
        return self.reward.valid_from or self.valid_from

    @property
    def promo_valid_until(self) -> date | None:
        return self.reward.valid_until or self.valid_until

    @property
    def is_capped(self) -> bool:
        return self.reward.monthly_cap is not None

    def is_active_on(self, day: date) -> bool:
        if not self.enabled:
            return False
        if self.valid_from is not None and day < self.valid_from:
            return False
        if self.valid_until is not None and day > self.valid_until:
            return False
        return True


class Merchant(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str = ""
    mcc: str | None = None
    is_online: bool = False


class Transaction(BaseModel):
    id: str
    date: dt.date
    amount: float
    currency: str = "USD"
    payment_amount: float
    payment_currency: str
    merchant: Merchant = Field(default_factory=Merchant)
    is_contactless: bool = False
    payment_method_id: str
    is_deleted: bool = False

    @model_validator(mode="before")
    @classmethod
    def _default_payment_fields(cls, data):
        if isinstance(data, dict):
            data = dict(data)
            if data.get("payment_amount") is None:
                data["payment_amount"] = data.get("amount")
            if data.get("payment_currency") is None:
                data["payment_currency"] = data.get("currency", "USD")
        return data


class PaymentMethod(BaseModel):
    id: str
    issuer: str
    name: str
    type: str = "credit_card"
    reward_currency_id: str | None = None
    statement_start_day: int | None = Field(default=None, ge=1, le=31)
    active: bool = True


class ConversionRate(BaseModel):
    reward_currency_id: str
    miles_currency_id: str
    rate: float = Field(gt=0)
    minimum_transfer: float | None = Field(default=None, gt=0)
    transfer_increment: float | None = Field(default=None, gt=0)

    @property
    def key(self) -> tuple[str, str]:
        return self.reward_currency_id, self.miles_currency_id


class Period(BaseModel):
    start: date
    end: date

    @property
    def end_exclusive(self) -> date:
        return self.end + timedelta(days=1)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


class RawReward(BaseModel):
    base_points: int = 0
    bonus_points: int = 0


class CapUsage(BaseModel):
    identifier: str
    rule_name: str
    used: float
    cap: float
    cap_type: CapType
    period_type: CapDuration
    period_start: date
    period_end: date
    valid_until: date | None = None
    percentage: float


class RewardBreakdown(BaseModel):
    base_points: int
    bonus_points: int
    total_points: int
    applied_rule_id: str | None = None
    applied_rule_name: str | None = None
    cap_identifier: str | None = None
    remaining_bonus: float | None = None
    messages: list[str] = Field(default_factory=list)


class SimulationInput(BaseModel):
    merchant: Merchant = Field(default_factory=Merchant)
    amount: float = Field(gt=0)
    currency: str = "USD"
    payment_amount: float | None = Field(default=None, gt=0)
    payment_currency: str | None = None
    is_contactless: bool = False
    date: dt.date = Field(default_factory=dt.date.today)

    def to_transaction(self, payment_method_id: str) -> Transaction:
        return Transaction(
            id=f"simulation:{payment_method_id}",
            date=self.date,
            amount=self.amount,
            currency=self.currency,
            payment_amount=self.payment_amount,
            payment_currency=self.payment_currency,
            merchant=self.merchant,
            is_contactless=self.is_contactless,
            payment_method_id=payment_method_id,
        )


class CardSimulationResult(BaseModel):
    payment_method_id: str
    payment_method_name: str
    base_points: int = 0
    bonus_points: int = 0
    total_points: int = 0
    applied_rule_id: str | None = None
    conversion_rate: float | None = None
    miles_equivalent: float | None = None
    excluded: bool = False
    reason: str | None = None
    detail: str | None = None
    rank: int = 0
