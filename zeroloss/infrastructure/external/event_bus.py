"""
ZeroLoss – Event Bus (asyncio.Queue fan-out)
==============================================
Bus de eventos interno para desacoplar productores (BinanceKlineClient,
ReplayFeed) de consumidores (ProcessUpdateUseCase, API, futuros motores).

Arquitectura:
  ┌──────────┐            ┌───────────┐
  │ Binance  │──update──▸ │ Event Bus │──▸ Consumer 1 (ProcessUpdate)
  │ / Replay │            │ (fan-out) │──▸ Consumer 2 (UI, export...)
  └──────────┘            └───────────┘──▸ Consumer N ...

CONTRAPRESIÓN:
- Cada consumidor tiene su propia asyncio.Queue con tamaño limitado.
- Si un consumidor es lento y su cola se llena, se descarta el evento MÁS
  ANTIGUO de esa cola (drop-oldest): el productor nunca se bloquea.
- Los consumidores rápidos NUNCA pierden eventos.

CANCELACIÓN:
- unsubscribe() es idempotente: desuscribir dos veces no falla.
- Tras desuscribir, la cola deja de recibir eventos; lo ya encolado
  permanece intacto para quien quiera drenarlo.

asyncio.Queue es seguro dentro del mismo event loop, que es nuestro caso.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict

from zeroloss.shared.logging.logger import get_logger

logger = get_logger("event_bus")


class EventBus:
    """Fan-out event bus basado en asyncio.Queue."""

    def __init__(self, max_queue_size: int = 10_000) -> None:
        self._max_queue_size = max_queue_size
        # topic → lista de (queue, nombre_consumidor)
        self._subscribers: Dict[str, list[tuple[asyncio.Queue, str]]] = {}
        self._lock = asyncio.Lock()
        self._published = 0
        self._dropped = 0

    async def subscribe(self, topic: str, consumer_name: str) -> asyncio.Queue:
        """
        Registrar un consumidor en un tópico.
        Retorna la Queue exclusiva de ese consumidor.
        """
        async with self._lock:
            queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
            self._subscribers.setdefault(topic, []).append((queue, consumer_name))
            logger.info(
                "Consumidor '%s' suscrito a tópico '%s' (max_queue=%d)",
                consumer_name, topic, self._max_queue_size,
            )
            return queue

    async def unsubscribe(self, topic: str, consumer_name: str) -> bool:
        """Eliminar un consumidor de un tópico. Retorna False si no estaba."""
        async with self._lock:
            subs = self._subscribers.get(topic)
            if not subs:
                return False
            remaining = [(q, name) for q, name in subs if name != consumer_name]
            if len(remaining) == len(subs):
                return False
            if remaining:
                self._subscribers[topic] = remaining
            else:
                del self._subscribers[topic]
            logger.info("Consumidor '%s' desuscrito de '%s'", consumer_name, topic)
            return True

    async def publish(self, topic: str, data: Any) -> None:
        """
        Publicar un evento a todos los suscriptores de un tópico.
        Política drop-oldest si la cola está llena → el productor NUNCA se bloquea.
        """
        self._published += 1
        for queue, consumer_name in list(self._subscribers.get(topic, ())):
            if queue.full():
                try:
                    queue.get_nowait()
                    self._dropped += 1
                    logger.warning(
                        "Cola llena para '%s' en tópico '%s' – evento antiguo descartado",
                        consumer_name, topic,
                    )
                except asyncio.QueueEmpty:
                    pass
            try:
                queue.put_nowait(data)
            except asyncio.QueueFull:
                logger.error(
                    "No se pudo encolar evento para '%s' (tópico '%s')",
                    consumer_name, topic,
                )

    async def unsubscribe_all(self, topic: str | None = None) -> None:
        """Desuscribir todos los consumidores (cleanup al shutdown)."""
        async with self._lock:
            if topic:
                self._subscribers.pop(topic, None)
                logger.info("Todos los suscriptores del tópico '%s' eliminados", topic)
            else:
                self._subscribers.clear()
                logger.info("Todos los suscriptores eliminados (shutdown)")

    @property
    def subscriber_count(self) -> int:
        return sum(len(subs) for subs in self._subscribers.values())

    @property
    def stats(self) -> dict:
        return {
            "topics": sorted(self._subscribers),
            "subscribers": self.subscriber_count,
            "published": self._published,
            "dropped": self._dropped,
        }
