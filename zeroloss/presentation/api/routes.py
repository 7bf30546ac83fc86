"""
ZeroLoss – API Routes (FastAPI)
=================================
Endpoints REST de solo lectura (más algunos controles) para los
colaboradores externos: UI, export, logging.

Endpoints disponibles:
  GET    /api/health                          → health check
  GET    /api/status                          → estado completo del sistema
  GET    /api/candles/{symbol}                → últimas N velas cerradas (+ vela en formación)
  GET    /api/indicators/{symbol}             → snapshot de indicadores
  GET    /api/signal/{symbol}                 → última señal (refresh=true → evaluar ahora)
  GET    /api/trades                          → trades abiertos y cerrados
  GET    /api/trades/stats                    → estadísticas por símbolo
  POST   /api/trades/{symbol}/{trade_id}/close → cierre manual
  GET    /api/mode                            → modo de trading activo y tabla de perfiles
  POST   /api/mode                            → cambiar modo / auto-trade / noticias
  GET    /api/alerts/{symbol}                 → alertas activas
  POST   /api/alerts/{symbol}                 → crear alerta
  DELETE /api/alerts/{symbol}/{alert_id}      → eliminar alerta

ERRORES:
  DomainError → 400 con {"error": code, "message": ...}
  Símbolo / trade / alerta desconocidos → 404
"""

from __future__ import annotations

import time
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from zeroloss.domain.exceptions.domain_errors import DomainError
from zeroloss.domain.services.trade_decision import NewsImpact
from zeroloss.domain.value_objects.trading_mode import TRADING_MODE_PROFILES, TradingMode
from zeroloss.shared.logging.logger import get_logger

logger = get_logger("api.routes")

router = APIRouter()

# Referencias a componentes inyectados desde main.py
_process_update = None
_feed = None
_signal_provider = None
_event_bus = None


class ModeRequest(BaseModel):
    """Body para cambiar el modo de trading."""

    mode: Optional[TradingMode] = None
    auto_trade: Optional[bool] = None
    avoid_news: Optional[bool] = None
    news_impact: Optional[NewsImpact] = None


class AlertRequest(BaseModel):
    """Body para crear una alerta de precio."""

    price: float = Field(gt=0)


class CloseTradeRequest(BaseModel):
    """Body opcional para cierre manual (sin precio → último precio)."""

    price: Optional[float] = Field(default=None, gt=0)


def init_routes(process_update, feed=None, signal_provider=None, event_bus=None) -> None:
    """Inyectar dependencias desde main.py al arrancar."""
    global _process_update, _feed, _signal_provider, _event_bus
    _process_update = process_update
    _feed = feed
    _signal_provider = signal_provider
    _event_bus = event_bus


def _require_ready():
    if _process_update is None:
        raise HTTPException(status_code=503, detail="Server not ready")
    return _process_update


def _require_pipeline(symbol: str):
    pipeline = _require_ready().get_pipeline(symbol)
    if pipeline is None:
        raise HTTPException(status_code=404, detail=f"Símbolo desconocido: {symbol}")
    return pipeline


def _domain_error(e: DomainError) -> HTTPException:
    return HTTPException(status_code=400, detail=e.to_dict())


# ─── Estado ────────────────────────────────────────────────────────────

@router.get("/api/health")
async def health_check() -> dict:
    """Health check para monitoreo."""
    return {"status": "ok", "service": "zeroloss"}


@router.get("/api/status")
async def system_status() -> dict:
    """Estado completo del sistema."""
    process_update = _require_ready()
    return {
        "pipeline": process_update.snapshot(),
        "feed": _feed.stats if _feed is not None else {},
        "signal_provider": getattr(_signal_provider, "stats", {}) if _signal_provider else {},
        "event_bus": _event_bus.stats if _event_bus is not None else {},
    }


# ─── Velas e indicadores ───────────────────────────────────────────────

@router.get("/api/candles/{symbol}")
async def get_candles(symbol: str, count: int = Query(default=50, ge=1, le=500)) -> dict:
    """Últimas N velas cerradas de un símbolo, más la vela en formación."""
    pipeline = _require_pipeline(symbol)
    candles = pipeline.aggregator.history()[-count:]
    current = pipeline.aggregator.current()
    return {
        "symbol": symbol,
        "timeframe": pipeline.aggregator.timeframe,
        "count": len(candles),
        "candles": [c.to_dict() for c in candles],
        "current": current.to_dict() if current else None,
    }


@router.get("/api/indicators/{symbol}")
async def get_indicators(symbol: str) -> dict:
    """Snapshot de indicadores (siempre completo; neutral en warm-up)."""
    pipeline = _require_pipeline(symbol)
    snapshot = pipeline.snapshot or pipeline.engine.compute(pipeline.aggregator.history())
    return {"symbol": symbol, **snapshot.to_dict()}


@router.get("/api/signal/{symbol}")
async def get_signal(symbol: str, refresh: bool = False) -> dict:
    """Última señal del símbolo. refresh=true evalúa ahora (sin abrir trade)."""
    pipeline = _require_pipeline(symbol)
    if refresh:
        result = await _process_update.evaluate_signal(symbol, allow_trade=False)
        return {"symbol": symbol, **result.to_dict()}
    signal = pipeline.last_signal
    return {
        "symbol": symbol,
        "signal": signal.to_dict() if signal else None,
        "decision": (
            pipeline.last_result.decision.to_dict()
            if pipeline.last_result and pipeline.last_result.decision else None
        ),
    }


# ─── Trades ────────────────────────────────────────────────────────────

@router.get("/api/trades")
async def list_trades(
    symbol: str | None = Query(default=None, description="Filtrar por símbolo"),
    count: int = Query(default=50, ge=1, le=500, description="Máximo de trades cerrados"),
) -> dict:
    """Trades abiertos y cerrados (los cerrados, el más reciente primero)."""
    process_update = _require_ready()
    symbols = [symbol] if symbol else process_update.symbols
    open_trades, closed_trades = [], []
    for sym in symbols:
        pipeline = process_update.get_pipeline(sym)
        if pipeline is None:
            continue
        open_trades.extend(pipeline.risk_manager.open_trades)
        closed_trades.extend(pipeline.risk_manager.closed_trades)
    closed_trades.sort(key=lambda t: t.closed_at or 0.0, reverse=True)
    return {
        "open": [t.to_dict() for t in open_trades],
        "closed": [t.to_dict() for t in closed_trades[:count]],
    }


@router.get("/api/trades/stats")
async def trade_stats() -> dict:
    """Estadísticas de trades por símbolo."""
    process_update = _require_ready()
    return {
        sym: process_update.get_pipeline(sym).risk_manager.stats
        for sym in process_update.symbols
    }


@router.post("/api/trades/{symbol}/{trade_id}/close")
async def close_trade(symbol: str, trade_id: str, body: CloseTradeRequest | None = None) -> dict:
    """Cierre manual de un trade abierto."""
    pipeline = _require_pipeline(symbol)
    trade = pipeline.risk_manager.get_trade(trade_id)
    if trade is None:
        raise HTTPException(status_code=404, detail=f"Trade desconocido: {trade_id}")
    price = body.price if body is not None else None
    try:
        event = await _process_update.close_trade(symbol, trade_id, price, time.time())
    except DomainError as e:
        raise _domain_error(e) from e
    return event.trade.to_dict()


# ─── Modo de trading ───────────────────────────────────────────────────

def _mode_payload(process_update) -> dict:
    return {
        "mode": process_update.trading_mode.value,
        "auto_trade": process_update.auto_trade,
        "avoid_news": process_update.avoid_news,
        "news_impact": process_update.news_impact.value,
        "profile": process_update.profile.to_dict(),
        "available": [p.to_dict() for p in TRADING_MODE_PROFILES.values()],
    }


@router.get("/api/mode")
async def get_mode() -> dict:
    """Modo de trading activo y tabla de perfiles."""
    return _mode_payload(_require_ready())


@router.post("/api/mode")
async def set_mode(body: ModeRequest) -> dict:
    """Cambiar modo de trading (solo afecta a trades nuevos)."""
    process_update = _require_ready()
    if body.mode is not None:
        process_update.trading_mode = body.mode
    if body.auto_trade is not None:
        process_update.auto_trade = body.auto_trade
    if body.avoid_news is not None:
        process_update.avoid_news = body.avoid_news
    if body.news_impact is not None:
        process_update.news_impact = body.news_impact
    return _mode_payload(process_update)


# ─── Alertas de precio ─────────────────────────────────────────────────

@router.get("/api/alerts/{symbol}")
async def list_alerts(symbol: str) -> dict:
    pipeline = _require_pipeline(symbol)
    return {"symbol": symbol, "alerts": [a.to_dict() for a in pipeline.alerts.alerts]}


@router.post("/api/alerts/{symbol}")
async def create_alert(symbol: str, body: AlertRequest) -> dict:
    """Crear alerta; la condición (ABOVE/BELOW) se decide con el último precio."""
    _require_pipeline(symbol)
    try:
        alert = _process_update.add_alert(symbol, body.price, time.time())
    except DomainError as e:
        raise _domain_error(e) from e
    return alert.to_dict()


@router.delete("/api/alerts/{symbol}/{alert_id}")
async def delete_alert(symbol: str, alert_id: str) -> dict:
    pipeline = _require_pipeline(symbol)
    removed = pipeline.alerts.remove(alert_id)
    if removed is None:
        raise HTTPException(status_code=404, detail=f"Alerta desconocida: {alert_id}")
    return {"deleted": alert_id}
