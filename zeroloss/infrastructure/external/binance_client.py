"""
ZeroLoss – Binance Kline Client (asíncrono)
=============================================
Cliente WebSocket que se suscribe a streams `<par>@kline_<tf>` de Binance
y publica cada actualización de vela como PriceUpdate en el EventBus.

SÍMBOLOS:
- Se trabaja con nombres estándar (XAUUSD, BTCUSDT...) y se traducen a
  pares de Binance con settings.symbol_map (XAUUSD → PAXGUSDT).

RECONEXIÓN AUTOMÁTICA CON BACKOFF EXPONENCIAL:
- Ante cualquier desconexión el cliente espera base × 2^intento (capped
  a max_delay) más un jitter aleatorio de hasta el 30 %.
- Un flag `_running` permite shutdown limpio. start()/stop() son idempotentes.

HEARTBEAT:
- Binance envía pings de control; la librería websockets los responde
  automáticamente (ping_interval por defecto).

ARRANQUE EN FRÍO:
- fetch_history() pide las últimas `history_limit` klines cerradas por
  REST (aiohttp) para precargar el CandleAggregator.

Cada update de kline trae el OHLCV ACUMULADO de la vela en curso, por eso
el modo de volumen por defecto es "snapshot".
"""

from __future__ import annotations

import asyncio
import json
import random
import time
from typing import Dict, List, Optional

import aiohttp
import websockets
from websockets.asyncio.client import ClientConnection

from zeroloss.application.services.candle_aggregator import timeframe_to_seconds
from zeroloss.application.use_cases.process_update_usecase import PRICE_UPDATE_TOPIC
from zeroloss.domain.entities.candle import Candle
from zeroloss.domain.value_objects.price_update import PriceUpdate
from zeroloss.infrastructure.external.event_bus import EventBus
from zeroloss.shared.config.settings import Settings
from zeroloss.shared.logging.logger import get_logger

logger = get_logger("binance_client")


def parse_kline_message(data: dict, symbol_by_pair: Dict[str, str]) -> Optional[PriceUpdate]:
    """
    Convertir un mensaje kline de Binance en PriceUpdate.

    Formato: {"e": "kline", "s": "PAXGUSDT", "k": {"t": 1700000000000,
              "o": "...", "h": "...", "l": "...", "c": "...", "v": "...", "x": false}}

    El timestamp es la apertura de la vela (k.t), así todos los updates de
    una misma kline caen en el mismo bucket; la hora del evento (E) viaja
    aparte como event_time. Retorna None si no es kline.
    """
    if data.get("e") != "kline" or "k" not in data:
        return None
    k = data["k"]
    pair = str(k.get("s") or data.get("s", "")).upper()
    symbol = symbol_by_pair.get(pair, pair)
    try:
        return PriceUpdate(
            symbol=symbol,
            timestamp=float(k["t"]) / 1000.0,
            open=float(k["o"]),
            high=float(k["h"]),
            low=float(k["l"]),
            close=float(k["c"]),
            volume=float(k.get("v", 0.0)),
            event_time=float(data["E"]) / 1000.0 if "E" in data else None,
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Kline malformada de %s: %s", pair, e)
        return None


def parse_rest_klines(rows: list, symbol: str, interval: int, now_ms: float) -> List[Candle]:
    """
    Convertir la respuesta de GET /klines en velas cerradas.

    Cada fila: [open_time, o, h, l, c, v, close_time, ...]. La última fila
    suele ser la vela en curso (close_time > now) y se descarta.
    """
    candles: List[Candle] = []
    for row in rows:
        try:
            open_time, o, h, l, c, v, close_time = row[:7]
            if float(close_time) > now_ms:
                continue
            candles.append(Candle(
                symbol=symbol,
                bucket_start=float(open_time) / 1000.0,
                open=float(o),
                high=float(h),
                low=float(l),
                close=float(c),
                volume=float(v),
                interval=interval,
            ))
        except (TypeError, ValueError) as e:
            logger.warning("Fila de kline REST inválida para %s: %s", symbol, e)
    return candles


class BinanceKlineClient:
    """
    Cliente WebSocket asíncrono para streams kline de Binance.

    Ciclo de vida:
      1. start()          → lanza el task de conexión
      2. _connect_loop()  → reconexión perpetua con backoff
      3. _listen()        → parsear mensajes y publicar updates
      4. stop()           → shutdown limpio
    """

    def __init__(self, event_bus: EventBus, settings: Settings) -> None:
        self._event_bus = event_bus
        self._settings = settings
        self._timeframe = settings.timeframe
        self._interval = timeframe_to_seconds(settings.timeframe)
        self._pairs: Dict[str, str] = {
            symbol: settings.symbol_map.get(symbol, symbol).upper()
            for symbol in settings.symbols
        }
        self._symbol_by_pair = {pair: symbol for symbol, pair in self._pairs.items()}

        self._ws: Optional[ClientConnection] = None
        self._running = False
        self._connect_task: Optional[asyncio.Task] = None
        self._reconnect_attempt = 0

        # Estadísticas de monitoreo
        self._updates_received: int = 0
        self._last_update_time: float = 0.0
        self._connected_since: float = 0.0

    # ──────────────────────── Lifecycle ──────────────────────────────────

    async def start(self) -> None:
        """Iniciar cliente. Idempotente: llamar varias veces es seguro."""
        if self._running:
            logger.warning("BinanceKlineClient ya está corriendo, ignorando start()")
            return

        self._running = True
        self._connect_task = asyncio.create_task(
            self._connect_loop(), name="binance-connect-loop"
        )
        logger.info("BinanceKlineClient iniciado (%s)", ", ".join(self.stream_names))

    async def stop(self) -> None:
        """Shutdown limpio: cerrar WS y cancelar el task. Idempotente."""
        if not self._running and self._connect_task is None:
            return
        self._running = False
        logger.info("Deteniendo BinanceKlineClient...")

        if self._ws is not None:
            try:
                await self._ws.close()
            except websockets.exceptions.WebSocketException as e:
                logger.debug("Error cerrando WS: %s", e)

        if self._connect_task and not self._connect_task.done():
            self._connect_task.cancel()
            try:
                await self._connect_task
            except asyncio.CancelledError:
                pass
        self._connect_task = None

        logger.info(
            "BinanceKlineClient detenido. Total updates recibidos: %d", self._updates_received
        )

    @property
    def stream_names(self) -> List[str]:
        return [f"{pair.lower()}@kline_{self._timeframe}" for pair in self._pairs.values()]

    # ──────────────────────── Connection Loop ───────────────────────────

    def _backoff_delay(self) -> float:
        delay = min(
            self._settings.ws_reconnect_base_delay * (2 ** self._reconnect_attempt),
            self._settings.ws_reconnect_max_delay,
        )
        return delay + random.uniform(0, delay * 0.3)

    async def _connect_loop(self) -> None:
        """
        Loop principal de reconexión con backoff exponencial.
        Se ejecuta indefinidamente hasta que self._running = False.
        """
        ws_url = self._settings.binance_ws_url

        while self._running:
            try:
                logger.info("Conectando a Binance: %s", ws_url)
                async with websockets.connect(
                    ws_url,
                    close_timeout=10,
                    max_size=2**20,       # 1 MB máximo por mensaje
                ) as ws:
                    self._ws = ws
                    self._reconnect_attempt = 0
                    self._connected_since = time.time()
                    logger.info("✓ Conectado a Binance WebSocket")

                    await self._subscribe_streams(ws)
                    await self._listen(ws)

            except websockets.exceptions.ConnectionClosed as e:
                logger.warning("Conexión cerrada: %s", e)
            except OSError as e:
                logger.error("Error de red: %s", e)
            except websockets.exceptions.WebSocketException as e:
                logger.error("Error de protocolo WebSocket: %s", e)
            finally:
                self._ws = None

            if not self._running:
                break

            total_delay = self._backoff_delay()
            self._reconnect_attempt += 1
            logger.info(
                "Reconectando en %.1fs (intento #%d)...",
                total_delay, self._reconnect_attempt,
            )
            await asyncio.sleep(total_delay)

    # ──────────────────────── Subscribe ─────────────────────────────────

    async def _subscribe_streams(self, ws: ClientConnection) -> None:
        """Suscribir a los streams kline de todos los símbolos configurados."""
        msg = {"method": "SUBSCRIBE", "params": self.stream_names, "id": 1}
        await ws.send(json.dumps(msg))
        for symbol, pair in self._pairs.items():
            logger.info("Suscrito a klines de '%s' (%s, %s)", symbol, pair, self._timeframe)

    # ──────────────────────── Listener ──────────────────────────────────

    async def _listen(self, ws: ClientConnection) -> None:
        """
        Loop de escucha. Solo procesa mensajes kline; las respuestas de
        suscripción ({"result": null, "id": 1}) y errores se registran.
        """
        async for raw_msg in ws:
            if not self._running:
                break

            try:
                data = json.loads(raw_msg)
            except json.JSONDecodeError:
                logger.warning("Mensaje no-JSON recibido, ignorando")
                continue

            if "error" in data:
                logger.error("Error de Binance API: %s", data["error"])
                continue
            if "result" in data:
                continue

            update = parse_kline_message(data, self._symbol_by_pair)
            if update is None:
                continue

            self._updates_received += 1
            self._last_update_time = update.timestamp
            await self._event_bus.publish(PRICE_UPDATE_TOPIC, update)

    # ──────────────────────── REST history ──────────────────────────────

    async def fetch_history(
        self, symbol: str, session: aiohttp.ClientSession | None = None,
    ) -> List[Candle]:
        """
        Últimas klines cerradas de un símbolo vía REST.

        Raises:
            aiohttp.ClientError si la petición falla, asyncio.TimeoutError si
            vence el timeout, ValueError si el cuerpo no es JSON
        """
        pair = self._pairs.get(symbol, self._settings.symbol_map.get(symbol, symbol)).upper()
        url = f"{self._settings.binance_rest_url}/klines"
        params = {
            "symbol": pair,
            "interval": self._timeframe,
            "limit": str(self._settings.history_limit),
        }
        timeout = aiohttp.ClientTimeout(total=10)

        if session is None:
            async with aiohttp.ClientSession(timeout=timeout) as own_session:
                rows = await self._get_json(own_session, url, params)
        else:
            rows = await self._get_json(session, url, params)

        candles = parse_rest_klines(rows, symbol, self._interval, time.time() * 1000)
        logger.info("Histórico %s (%s): %d klines cerradas", symbol, pair, len(candles))
        return candles

    @staticmethod
    async def _get_json(session: aiohttp.ClientSession, url: str, params: dict) -> list:
        async with session.get(url, params=params) as response:
            response.raise_for_status()
            return await response.json()

    # ──────────────────────── Stats ─────────────────────────────────────

    @property
    def stats(self) -> dict:
        """Estadísticas del cliente para monitoreo."""
        return {
            "running": self._running,
            "connected": self._ws is not None,
            "streams": self.stream_names,
            "updates_received": self._updates_received,
            "last_update_time": self._last_update_time,
            "connected_since": self._connected_since,
            "reconnect_attempts": self._reconnect_attempt,
        }
