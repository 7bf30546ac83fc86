"""
ZeroLoss – Replay Feed
========================
Reproduce una secuencia histórica de PriceUpdate en el EventBus, en el
mismo tópico que el feed en vivo. Sirve para backtesting y para tests
de integración sin red.

CSV aceptado (cabecera obligatoria):
    symbol,timestamp,open,high,low,close,volume
    XAUUSD,1700000000,2350.1,2350.9,2349.8,2350.4,12.5

`symbol` puede omitirse si se pasa `symbol=` a from_csv(); un CSV con
solo `timestamp,price` se interpreta como ticks (O=H=L=C=price).
"""

from __future__ import annotations

import asyncio
import csv
from pathlib import Path
from typing import Iterable, List, Optional

from zeroloss.domain.value_objects.price_update import PriceUpdate
from zeroloss.infrastructure.external.binance_client import PRICE_UPDATE_TOPIC
from zeroloss.infrastructure.external.event_bus import EventBus
from zeroloss.shared.logging.logger import get_logger

logger = get_logger("replay_feed")


def _row_to_update(row: dict, symbol: Optional[str]) -> PriceUpdate:
    sym = row.get("symbol") or symbol or ""
    ts = float(row["timestamp"])
    if "price" in row and "close" not in row:
        return PriceUpdate.from_price(sym, ts, float(row["price"]), float(row.get("volume") or 0.0))
    return PriceUpdate(
        symbol=sym,
        timestamp=ts,
        open=float(row["open"]),
        high=float(row["high"]),
        low=float(row["low"]),
        close=float(row["close"]),
        volume=float(row.get("volume") or 0.0),
    )


class ReplayFeed:
    """
    Feed histórico.

    Uso:
        feed = ReplayFeed.from_csv(bus, "xau_1m.csv", symbol="XAUUSD")
        await feed.run()          # publica todo y retorna
        # o bien
        await feed.start(); ...; await feed.stop()
    """

    def __init__(
        self,
        event_bus: EventBus,
        updates: Iterable[PriceUpdate],
        delay: float = 0.0,
        topic: str = PRICE_UPDATE_TOPIC,
    ) -> None:
        self._event_bus = event_bus
        self._updates: List[PriceUpdate] = list(updates)
        self._delay = delay
        self._topic = topic
        self._task: Optional[asyncio.Task] = None
        self._published = 0

    @classmethod
    def from_csv(
        cls,
        event_bus: EventBus,
        path: str | Path,
        symbol: Optional[str] = None,
        delay: float = 0.0,
    ) -> "ReplayFeed":
        """Cargar updates desde CSV. Filas malformadas se omiten con warning."""
        updates: List[PriceUpdate] = []
        with open(path, newline="", encoding="utf-8") as fh:
            for line_no, row in enumerate(csv.DictReader(fh), start=2):
                try:
                    updates.append(_row_to_update(row, symbol))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning("Fila %d de %s omitida: %s", line_no, path, e)
        logger.info("ReplayFeed cargado desde %s: %d updates", path, len(updates))
        return cls(event_bus, updates, delay=delay)

    async def run(self) -> int:
        """Publicar todos los updates en orden. Retorna cuántos se publicaron."""
        for update in self._updates[self._published:]:
            await self._event_bus.publish(self._topic, update)
            self._published += 1
            # Ceder el loop para que los consumidores drenen su cola
            await asyncio.sleep(self._delay)
        logger.info("Replay completado: %d updates publicados", self._published)
        return self._published

    async def start(self) -> None:
        """Lanzar el replay en background. Idempotente."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self.run(), name="replay-feed")

    async def stop(self) -> None:
        """Cancelar el replay en curso. Idempotente."""
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    @property
    def done(self) -> bool:
        return self._published >= len(self._updates)

    @property
    def stats(self) -> dict:
        return {
            "total": len(self._updates),
            "published": self._published,
            "running": self._task is not None and not self._task.done(),
        }
