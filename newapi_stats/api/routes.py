from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from newapi_stats.api.schemas import ConfigResponse, ConfigUpdate, StatsResponse, StatusResponse
from newapi_stats.client.errors import NewAPIError
from newapi_stats.core.poller import RefreshInProgress
from newapi_stats.observability.logger import get_logger
from newapi_stats.report import REPORT_FORMATS, render_report

log = get_logger("api")

router = APIRouter(prefix="/api")


def get_app_state():
    """Get shared app state, set during startup."""
    from newapi_stats.main import app_state

    return app_state


def _stats_response(poller) -> StatsResponse:
    return StatsResponse(
        configured=poller.service.is_configured,
        stats=poller.latest,
        error=poller.last_error,
        last_attempt_at=poller.last_attempt_at,
    )


def _config_response(poller) -> ConfigResponse:
    config = poller.service.config
    return ConfigResponse(
        base_url=config.base_url,
        user_id=config.user_id,
        has_session_cookie=bool(config.session_cookie),
        conversion_factor=config.conversion_factor,
        exchange_rate=config.exchange_rate,
        refresh_interval_seconds=poller.interval_seconds,
        configured=config.is_configured,
    )


@router.get("/stats", response_model=StatsResponse)
async def get_stats():
    return _stats_response(get_app_state()["poller"])


@router.post("/refresh", response_model=StatsResponse)
async def refresh_stats():
    poller = get_app_state()["poller"]
    try:
        await poller.refresh()
    except RefreshInProgress:
        raise HTTPException(status_code=409, detail="A refresh is already in progress")
    except NewAPIError as e:
        raise HTTPException(status_code=502, detail=e.message)
    return _stats_response(poller)


@router.get("/status", response_model=StatusResponse)
async def get_status():
    poller = get_app_state()["poller"]
    return StatusResponse(
        configured=poller.service.is_configured,
        running=poller.is_running,
        busy=poller.is_busy,
        refresh_interval_seconds=poller.interval_seconds,
        has_stats=poller.latest is not None,
        last_attempt_at=poller.last_attempt_at,
        last_error=poller.last_error,
    )


@router.get("/report", response_class=PlainTextResponse)
async def get_report(fmt: str = Query("text", alias="format")):
    if fmt not in REPORT_FORMATS:
        raise HTTPException(status_code=400, detail=f"Unknown format: {fmt}")
    poller = get_app_state()["poller"]
    if poller.latest is None:
        raise HTTPException(status_code=404, detail="No stats available yet")
    return PlainTextResponse(render_report(poller.latest, fmt))


@router.get("/config", response_model=ConfigResponse)
async def get_config():
    return _config_response(get_app_state()["poller"])


@router.put("/config", response_model=ConfigResponse)
async def update_config(body: ConfigUpdate):
    poller = get_app_state()["poller"]
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    interval = changes.pop("refresh_interval_seconds", None)

    if changes:
        try:
            poller.service.update_config(**changes)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=str(e))
    if interval is not None:
        poller.set_interval(interval)
    elif changes:
        poller.wake()

    log.info("config_update_applied", fields=sorted(body.model_dump(exclude_unset=True)))
    return _config_response(poller)
