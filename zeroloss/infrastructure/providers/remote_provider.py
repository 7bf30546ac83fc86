"""
ZeroLoss – Remote Signal Provider
===================================
Adaptador SignalProvider sobre un modelo remoto vía HTTP.

PROTOCOLO:
  POST {remote_signal_url}
  Authorization: Bearer {api_key}        (si hay API key)
  body = SignalRequest.to_dict()         (símbolo, indicadores, últimas 15 velas)

  200 → JSON validado con RemoteSignalResponse:
    { "signal": "BUY"|"SELL"|"HOLD", "confidence": 0-99,
      "trend": "UP"|"DOWN"|"SIDEWAYS", "support": float,
      "resistance": float, "reasoning": str,
      "suggested_sl": float?, "suggested_tp": float? }

ERRORES:
- Sin URL configurada → ProviderUnavailableError.
- Errores de transporte (aiohttp.ClientError), HTTP != 2xx y respuestas
  que no validan (pydantic.ValidationError) se PROPAGAN: el
  FallbackSignalProvider los convierte en fallback local.
- El timeout lo impone el combinador (asyncio.wait_for), no este cliente.
"""

from __future__ import annotations

from typing import Literal, Optional

import aiohttp
from pydantic import BaseModel, Field, field_validator

from zeroloss.application.ports.signal_provider import SignalProvider, SignalRequest
from zeroloss.domain.entities.signal import MAX_CONFIDENCE, Signal
from zeroloss.domain.exceptions.domain_errors import ProviderUnavailableError
from zeroloss.shared.logging.logger import get_logger

logger = get_logger("remote_provider")


class RemoteSignalResponse(BaseModel):
    """Schema de la respuesta del proveedor remoto."""

    signal: Literal["BUY", "SELL", "HOLD"]
    confidence: float = Field(ge=0)
    trend: Literal["UP", "DOWN", "SIDEWAYS"] = "SIDEWAYS"
    support: float = Field(gt=0)
    resistance: float = Field(gt=0)
    reasoning: str = ""
    suggested_sl: Optional[float] = Field(default=None, gt=0)
    suggested_tp: Optional[float] = Field(default=None, gt=0)

    @field_validator("signal", "trend", mode="before")
    @classmethod
    def _upper(cls, value):
        return value.upper() if isinstance(value, str) else value

    @field_validator("confidence")
    @classmethod
    def _cap_confidence(cls, value: float) -> float:
        return min(float(MAX_CONFIDENCE), value)


class RemoteSignalProvider(SignalProvider):
    name = "remote"

    def __init__(
        self,
        url: str,
        api_key: str = "",
        session: aiohttp.ClientSession | None = None,
        max_candles: int = 15,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._session = session
        self._owns_session = session is None
        self._max_candles = max_candles
        self._requests = 0
        self._failures = 0

    def is_available(self) -> bool:
        return bool(self._url)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Cerrar la sesión HTTP propia (no la inyectada)."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def get_signal(self, request: SignalRequest) -> Signal:
        if not self.is_available():
            raise ProviderUnavailableError("Proveedor remoto sin URL configurada", provider=self.name)

        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        self._requests += 1
        session = await self._get_session()
        try:
            async with session.post(
                self._url, json=request.to_dict(self._max_candles), headers=headers,
            ) as response:
                response.raise_for_status()
                payload = await response.json(content_type=None)
            parsed = RemoteSignalResponse.model_validate(payload)
        except Exception:
            self._failures += 1
            raise

        last = request.last_candle
        logger.debug(
            "Señal remota %s: %s (%.0f%%)", request.symbol, parsed.signal, parsed.confidence,
        )
        return Signal(
            signal_type=parsed.signal,
            confidence=int(parsed.confidence),
            trend=parsed.trend,
            support=parsed.support,
            resistance=parsed.resistance,
            reasoning=parsed.reasoning,
            suggested_sl=parsed.suggested_sl,
            suggested_tp=parsed.suggested_tp,
            symbol=request.symbol,
            price=last.close,
            candle_timestamp=last.bucket_start,
            source=self.name,
        )

    @property
    def stats(self) -> dict:
        return {
            "available": self.is_available(),
            "requests": self._requests,
            "failures": self._failures,
        }
