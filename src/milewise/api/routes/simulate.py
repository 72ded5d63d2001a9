from fastapi import APIRouter, Depends, HTTPException

from milewise.api.dependencies import get_engine
from milewise.config import settings
from milewise.domain.models import SimulationInput
from milewise.schemas.requests import SimulateRequest
from milewise.schemas.responses import SimulateResponse
from milewise.wiring import Engine

router = APIRouter(tags=["simulate"])


@router.post("/simulate", response_model=SimulateResponse)
async def simulate(request: SimulateRequest, engine: Engine = Depends(get_engine)) -> SimulateResponse:
    miles_currency_id = request.miles_currency_id or settings.default_miles_currency_id
    if not miles_currency_id:
        raise HTTPException(status_code=400, detail="miles_currency_id is required.")

    payment_methods = await engine.payment_methods.get_payment_methods()
    if request.payment_method_ids is not None:
        wanted = set(request.payment_method_ids)
        payment_methods = [method for method in payment_methods if method.id in wanted]

    simulation = SimulationInput.model_validate(
        request.model_dump(exclude={"miles_currency_id", "payment_method_ids"})
    )
    ranked = await engine.simulator.simulate(simulation, payment_methods, miles_currency_id)
    best = next((item for item in ranked if not item.excluded), None)
    return SimulateResponse(miles_currency_id=miles_currency_id, best_card=best, ranked_cards=ranked)
