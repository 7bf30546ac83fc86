"""
ZeroLoss – Main Application Entry Point
==========================================
Orquesta todos los componentes: Feed + Candle Aggregator + Indicadores +
Signal Provider (remoto con fallback) + Ratchet de trades + API.

ARQUITECTURA DE ARRANQUE:
  1. Configurar logging
  2. Crear el contenedor (Event Bus, providers, use cases, feed)
  3. FastAPI lifespan startup:
     a. Precargar histórico por REST (arranque en frío)
     b. Iniciar ProcessUpdateUseCase (consumer de updates)
     c. Iniciar el feed (Binance WS o ReplayFeed)
  4. FastAPI lifespan shutdown:
     a. Detener todo en orden inverso

FLUJO DE DATOS:
  Binance WS / CSV → Feed → EventBus(price_update) → ProcessUpdateUseCase
       → CandleAggregator → MarketState (historial acotado)
       → PositionRiskManager → ratchet riesgo → breakeven → trailing
       → IndicatorEngine → RSI/MA50/EMA20/EMA50/MACD/StochRSI (incremental)
       → FallbackSignalProvider → Signal (remoto o scorer local)
       → decide() → Trade nuevo
       → EventBus(candle|indicators|signal|trade_*|price_alert)
  uvicorn zeroloss.main:app --host 0.0.0.0 --port 8888
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

import aiohttp
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from zeroloss import __version__
from zeroloss.container import init_container
from zeroloss.infrastructure.external.binance_client import BinanceKlineClient
from zeroloss.presentation.api.routes import init_routes, router
from zeroloss.shared.config.settings import settings
from zeroloss.shared.logging.logger import get_logger, setup_logging

# ─── Logging ────────────────────────────────────────────────────────────
setup_logging("DEBUG" if settings.debug else "INFO")
logger = get_logger("main")

# ─── Contenedor de Dependencias ─────────────────────────────────────────
container = init_container(settings)


WARM_UP_FAILURES = (aiohttp.ClientError, asyncio.TimeoutError, ValueError)


async def _warm_up(client: BinanceKlineClient, process_update, symbols) -> int:
    """
    Precargar historial de cada símbolo; un fallo REST no bloquea el arranque.

    Errores de transporte, timeout o cuerpo no-JSON se loguean y el símbolo
    arranca en frío. Retorna el total de velas precargadas.
    """
    total = 0
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=10)) as session:
        for symbol in symbols:
            try:
                candles = await client.fetch_history(symbol, session=session)
            except WARM_UP_FAILURES as e:
                logger.warning(
                    "No se pudo precargar histórico de %s: %s: %s", symbol, type(e).__name__, e,
                )
                continue
            loaded = process_update.seed(symbol, candles)
            logger.info("  %s: %d velas precargadas", symbol, loaded)
            total += loaded
    return total


# ─── FastAPI Lifespan ───────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup/shutdown lifecycle de la aplicación.
    Las coroutines de larga duración se lanzan como tasks dentro de cada componente.
    """
    logger.info("=" * 60)
    logger.info("  ZeroLoss v%s", __version__)
    logger.info("  Símbolos: %s", ", ".join(settings.symbols))
    logger.info("  Timeframe: %s  (buffer: %d velas, volumen: %s)",
                settings.timeframe, settings.max_candles_buffer, settings.volume_mode)
    logger.info("  Modo de trading: %s  (lote %.2f, auto-trade: %s)",
                settings.trading_mode, settings.lot_size, settings.auto_trade)
    logger.info("  Señales: cada %d velas, proveedor remoto: %s (timeout %.1fs)",
                settings.signal_every_n_candles,
                settings.remote_signal_url or "deshabilitado",
                settings.remote_signal_timeout)
    logger.info("  Feed: %s", settings.replay_csv or settings.binance_ws_url)
    logger.info("=" * 60)

    process_update = container.process_update
    feed = container.feed

    init_routes(
        process_update,
        feed=feed,
        signal_provider=container.signal_provider,
        event_bus=container.event_bus,
    )

    if isinstance(feed, BinanceKlineClient):
        await _warm_up(feed, process_update, settings.symbols)

    await process_update.start()
    await feed.start()

    logger.info("✓ Todos los componentes iniciados correctamente")

    yield  # ← La app está corriendo aquí

    # ── SHUTDOWN ──
    logger.info("Iniciando shutdown...")
    await feed.stop()
    await process_update.stop()
    await container.remote_provider.close()
    await container.event_bus.unsubscribe_all()
    logger.info("✓ Shutdown completo")


# ─── FastAPI App ────────────────────────────────────────────────────────

app = FastAPI(
    title="ZeroLoss",
    description="Velas en vivo, indicadores técnicos, señales con fallback y ratchet de stop-loss",
    version=__version__,
    lifespan=lifespan,
)

# CORS para colaboradores locales (UI, export)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rutas
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("zeroloss.main:app", host=settings.host, port=settings.port, reload=settings.debug)
