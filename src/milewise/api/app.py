import uvicorn
from fastapi import FastAPI

from milewise.api.routes.conversion_rates import router as conversion_rates_router
from milewise.api.routes.health import router as health_router
from milewise.api.routes.rewards import router as rewards_router
from milewise.api.routes.simulate import router as simulate_router
from milewise.config import settings
from milewise.logging_setup import setup_logging

app = FastAPI(title="Milewise API", version="0.1.0")
app.include_router(health_router)
app.include_router(rewards_router)
app.include_router(simulate_router)
app.include_router(conversion_rates_router)


def run() -> None:
    setup_logging(settings.log_level)
    uvicorn.run("milewise.api.app:app", host=settings.app_host, port=settings.app_port, reload=False)
