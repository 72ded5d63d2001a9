from datetime import date

from fastapi import APIRouter, Depends, HTTPException

from milewise.api.dependencies import get_engine, require_payment_method
from milewise.domain.errors import RewardEngineError
from milewise.domain.models import RewardBreakdown
from milewise.schemas.requests import CalculateRequest
from milewise.schemas.responses import CapUsageResponse
from milewise.wiring import Engine

router = APIRouter(tags=["rewards"])


@router.post("/rewards/calculate", response_model=RewardBreakdown)
async def calculate(request: CalculateRequest, engine: Engine = Depends(get_engine)) -> RewardBreakdown:
    payment_method = await require_payment_method(engine, request.transaction.payment_method_id)
    try:
        return await engine.rewards.calculate(request.transaction, payment_method)
    except RewardEngineError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/cap-usage/{payment_method_id}", response_model=CapUsageResponse)
async def cap_usage(
    payment_method_id: str,
    reference_date: date | None = None,
    engine: Engine = Depends(get_engine),
) -> CapUsageResponse:
    payment_method = await require_payment_method(engine, payment_method_id)
    try:
        usages = await engine.rewards.cap_usage(payment_method, reference_date=reference_date)
    except (RewardEngineError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return CapUsageResponse(payment_method_id=payment_method_id, usages=usages)
