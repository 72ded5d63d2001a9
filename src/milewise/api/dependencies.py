from functools import lru_cache

from fastapi import HTTPException

from milewise.config import settings
from milewise.domain.models import PaymentMethod
from milewise.wiring import Engine, build_engine_from_settings


@lru_cache
def get_engine() -> Engine:
    return build_engine_from_settings(settings)


async def require_payment_method(engine: Engine, payment_method_id: str) -> PaymentMethod:
    payment_method = await engine.payment_methods.get_payment_method(payment_method_id)
    if payment_method is None:
        raise HTTPException(status_code=404, detail=f"Unknown payment method: {payment_method_id}")
    return payment_method
