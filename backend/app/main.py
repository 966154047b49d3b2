from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import Response
from loguru import logger

from . import schemas
from .core.config import get_settings, settings
from .domain import TimeWindow
from .series import NoDataError
from .services.history_service import FundingHistoryService
from .services.export import render_csv
from .services.live_service import LiveFundingService
from .services.viewport_service import ViewportService
from ingestion.client import BinanceClient, HyperliquidClient
from ingestion.service import SeriesFetcher

app = FastAPI(title="Funding Spread API", version="0.1.0", debug=settings.debug)


@lru_cache
def _venue_clients() -> tuple[HyperliquidClient, BinanceClient]:
    return HyperliquidClient(), BinanceClient()


@lru_cache
def _history_service() -> FundingHistoryService:
    """Process-wide history service so the aligned-series cache is shared."""

    hyperliquid, binance = _venue_clients()
    return FundingHistoryService(SeriesFetcher(hyperliquid=hyperliquid, binance=binance))


def _viewport_service(
    history: FundingHistoryService = Depends(_history_service),
) -> ViewportService:
    return ViewportService(history)


def _live_service() -> LiveFundingService:
    hyperliquid, binance = _venue_clients()
    return LiveFundingService(hyperliquid=hyperliquid, binance=binance)


@app.on_event("shutdown")
def on_shutdown() -> None:
    """Release pooled venue connections."""

    if _venue_clients.cache_info().currsize:
        for client in _venue_clients():
            client.close()
        _venue_clients.cache_clear()
        _history_service.cache_clear()


@app.get("/healthz", tags=["system"])
def healthcheck() -> dict[str, str]:
    """Basic readiness probe consumed by infrastructure monitors."""

    return {"status": "ok"}


@app.get("/funding/lookbacks", response_model=schemas.LookbackOptions, tags=["funding"])
def funding_lookbacks():
    """Lookback lengths a chart client may offer, and the one selected by default."""

    current = get_settings()
    return schemas.LookbackOptions(
        default_days=current.history_default_days,
        lookback_days=current.history_lookback_days,
    )


def _load_history(request: schemas.HistoryRequest, service: FundingHistoryService):
    try:
        return service.load(request.to_query())
    except NoDataError as exc:
        logger.warning("Funding history request for {} returned no data", request.symbol)
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.post("/funding/history", response_model=schemas.HistoryResponse, tags=["funding"])
def funding_history(
    request: schemas.HistoryRequest,
    service: FundingHistoryService = Depends(_history_service),
):
    """Return the hourly-aligned primary/secondary funding series and their spread."""

    points = _load_history(request, service)
    return schemas.HistoryResponse(
        dataset=[schemas.HistoryPoint.model_validate(point) for point in points]
    )


@app.post("/funding/history/export", tags=["funding"])
def export_funding_history(
    request: schemas.HistoryRequest,
    service: FundingHistoryService = Depends(_history_service),
) -> Response:
    """Download the aligned series as CSV."""

    points = _load_history(request, service)
    return Response(
        content=render_csv(points),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{request.symbol}.csv"'},
    )


@app.post("/funding/viewport", response_model=schemas.ViewportResponse, tags=["funding"])
def funding_viewport(
    request: schemas.ViewportRequest,
    service: ViewportService = Depends(_viewport_service),
):
    """Apply one zoom/pan/brush gesture to the client's current window."""

    window = (
        TimeWindow(start=request.window.start, end=request.window.end)
        if request.window is not None
        else None
    )
    try:
        result = service.apply(request.query.to_query(), window, request.action)
    except NoDataError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return schemas.ViewportResponse(
        window=schemas.Window.model_validate(result.window),
        brush=schemas.Brush.model_validate(result.brush),
        bounds=schemas.Window(start=result.bounds.min, end=result.bounds.max),
        explicit=result.explicit,
    )


@app.post("/funding/live", response_model=schemas.LiveFundingResponse, tags=["funding"])
def live_funding(
    request: schemas.LiveFundingRequest,
    service: LiveFundingService = Depends(_live_service),
):
    """Return current hourly funding rates for the requested symbols on both venues."""

    snapshot = service.snapshot(request.hyper_symbols, request.binance_symbols)
    return schemas.LiveFundingResponse.model_validate(snapshot)
