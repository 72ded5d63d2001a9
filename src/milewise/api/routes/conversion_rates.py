from fastapi import APIRouter, Depends

from milewise.api.dependencies import get_engine
from milewise.schemas.requests import ConversionRatesUpdate
from milewise.schemas.responses import ConversionRatesResponse
from milewise.wiring import Engine

router = APIRouter(tags=["conversion-rates"])


@router.get("/conversion-rates", response_model=ConversionRatesResponse)
async def list_rates(engine: Engine = Depends(get_engine)) -> ConversionRatesResponse:
    return ConversionRatesResponse(rates=await engine.normalizer.list_rates())


@router.put("/conversion-rates", response_model=ConversionRatesResponse)
async def update_rates(
    request: ConversionRatesUpdate, engine: Engine = Depends(get_engine)
) -> ConversionRatesResponse:
    await engine.normalizer.batch_update_conversion_rates(request.rates)
    return ConversionRatesResponse(rates=await engine.normalizer.list_rates())
