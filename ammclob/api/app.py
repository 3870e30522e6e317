"""FastAPI app that serves aligned AMM/CLOB chart data."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import Settings, get_settings
from ..io.xrpl_data import XrplDataClient
from ..services import (
    NotReadyError,
    RefreshController,
    RefreshState,
    SourceEmpty,
    TradingPair,
)
from ..services.refresh import MarketDataSource
from ..utils.logging import get_logger
from ..version import APP_VERSION
from .dto import PairsResponse, SelectionRequest, StatusResponse

LOGGER = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    source: Optional[MarketDataSource] = None,
) -> FastAPI:
    settings = settings or get_settings()
    market_data = source or XrplDataClient(
        settings.data.base_url,
        timeout=settings.data.timeout_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.controller.close()

    app = FastAPI(title="AMM/CLOB Chart API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.market_data = market_data
    app.state.controller = RefreshController.from_settings(settings, market_data)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/version")
    async def version() -> dict[str, str]:
        return {"version": APP_VERSION}

    @app.get("/pairs", response_model=PairsResponse)
    async def pairs(request: Request) -> PairsResponse:
        cfg: Settings = request.app.state.settings
        listed = []
        for item in cfg.pairs:
            try:
                pair = TradingPair.parse(
                    item.base,
                    item.counter,
                    base_name=item.base_name,
                    counter_name=item.counter_name,
                )
            except ValueError as exc:
                LOGGER.warning("Ignoring configured pair %s/%s: %s", item.base, item.counter, exc)
                continue
            listed.append(pair.as_dict())
        return PairsResponse(
            pairs=listed,
            intervals=list(cfg.data.intervals),
            default_interval=cfg.data.default_interval,
        )

    @app.get("/status", response_model=StatusResponse)
    async def status(request: Request) -> StatusResponse:
        return StatusResponse(**request.app.state.controller.status())

    @app.post("/selection", response_model=StatusResponse)
    async def select(request: Request, body: SelectionRequest) -> StatusResponse:
        cfg: Settings = request.app.state.settings
        controller: RefreshController = request.app.state.controller
        try:
            pair = TradingPair.parse(
                body.base,
                body.counter,
                base_name=body.base_name,
                counter_name=body.counter_name,
            )
            controller.select(pair, body.interval or cfg.data.default_interval)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        if body.wait:
            await controller.wait()
        return StatusResponse(**controller.status())

    @app.get("/chart")
    async def chart(
        request: Request,
        source: Optional[str] = Query(None, description="AMM, CLOB or BLENDED"),
        comparison: Optional[str] = Query(None, description="RAW_PAIR or DEVIATION"),
        price_lines: Optional[bool] = Query(None, description="Include close-price lines"),
    ) -> JSONResponse:
        cfg: Settings = request.app.state.settings
        controller: RefreshController = request.app.state.controller
        include_lines = cfg.view.price_lines if price_lines is None else price_lines
        state = controller.state
        if state is RefreshState.FETCHING:
            return JSONResponse(controller.status(), status_code=202)
        if state is RefreshState.IDLE:
            raise HTTPException(status_code=409, detail="No pair selected")
        if state is RefreshState.FAILED:
            error = controller.error
            code = 404 if isinstance(error, SourceEmpty) else 502
            raise HTTPException(status_code=code, detail=str(error))
        try:
            payload = controller.view(source, comparison, include_price_lines=include_lines)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except NotReadyError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        body: Dict[str, Any] = payload.as_dict()
        body["colors"] = {"trend_up": cfg.ui.trend_up, "trend_down": cfg.ui.trend_down}
        return JSONResponse(body)

    return app


app = create_app()
