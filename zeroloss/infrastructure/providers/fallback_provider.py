"""
ZeroLoss – Fallback Signal Provider
=====================================
Combinador: proveedor primario (remoto) con timeout explícito y caída
al proveedor local.

  primary no disponible            → local, source="local"
  primary responde a tiempo        → señal del primary
  timeout / red / HTTP / validación → local, source="fallback" y el
                                      motivo se añade al reasoning

Contrato: get_signal() NUNCA lanza por fallos del primario. El local es
una función pura y tampoco lanza.
"""

from __future__ import annotations

import asyncio

import aiohttp
from pydantic import ValidationError as PydanticValidationError

from zeroloss.application.ports.signal_provider import SignalProvider, SignalRequest
from zeroloss.domain.entities.signal import Signal
from zeroloss.domain.exceptions.domain_errors import DomainError
from zeroloss.infrastructure.providers.local_provider import LocalHeuristicProvider
from zeroloss.shared.logging.logger import get_logger

logger = get_logger("fallback_provider")

# Fallos del primario que activan el fallback
_PRIMARY_FAILURES = (
    asyncio.TimeoutError,
    aiohttp.ClientError,
    PydanticValidationError,
    DomainError,
    ValueError,
)


class FallbackSignalProvider(SignalProvider):
    name = "fallback"

    def __init__(
        self,
        primary: SignalProvider,
        fallback: LocalHeuristicProvider,
        timeout: float = 6.0,
    ) -> None:
        self._primary = primary
        self._fallback = fallback
        self._timeout = timeout
        self.primary_hits = 0
        self.fallbacks = 0
        self.last_failure: str | None = None

    def is_available(self) -> bool:
        return True

    async def get_signal(self, request: SignalRequest) -> Signal:
        if not self._primary.is_available():
            return self._fallback.score(request)

        try:
            signal = await asyncio.wait_for(self._primary.get_signal(request), timeout=self._timeout)
        except asyncio.TimeoutError:
            return self._degrade(request, f"Timeout del proveedor remoto ({self._timeout:g}s)")
        except _PRIMARY_FAILURES as e:
            return self._degrade(request, f"Proveedor remoto falló: {type(e).__name__}: {e}")

        self.primary_hits += 1
        return signal

    def _degrade(self, request: SignalRequest, reason: str) -> Signal:
        self.fallbacks += 1
        self.last_failure = reason
        logger.warning("⚠️ %s → scorer local para %s", reason, request.symbol)
        return self._fallback.score(request, source="fallback", note=reason)

    @property
    def stats(self) -> dict:
        return {
            "primary": self._primary.name,
            "primary_available": self._primary.is_available(),
            "primary_hits": self.primary_hits,
            "fallbacks": self.fallbacks,
            "last_failure": self.last_failure,
            "timeout": self._timeout,
        }
