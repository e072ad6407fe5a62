from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from newapi_stats.api.routes import router as api_router
from newapi_stats.client.http import HttpClient
from newapi_stats.config import settings
from newapi_stats.core.poller import StatsPoller
from newapi_stats.observability.logger import get_logger, setup_logging
from newapi_stats.stats.service import NewAPIStatsService

setup_logging(settings.log_level)
log = get_logger("main")

# Shared application state, read by API routes
app_state = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("newapi_stats_starting", base_url=settings.base_url)

    service = NewAPIStatsService(
        settings.to_api_config(),
        http=HttpClient(timeout=settings.request_timeout_seconds),
    )
    poller = StatsPoller(service, settings.refresh_interval_seconds)
    app_state.update({
        "service": service,
        "poller": poller,
    })

    poller.start()
    log.info("newapi_stats_ready", configured=service.is_configured, interval=poller.interval_seconds)

    yield

    log.info("newapi_stats_shutting_down")
    await poller.stop()
    await service.aclose()
    app_state.clear()


app = FastAPI(title="New API Stats", version="0.1.0", lifespan=lifespan)
app.include_router(api_router)


def run():
    uvicorn.run("newapi_stats.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
