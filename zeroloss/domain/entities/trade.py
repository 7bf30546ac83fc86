"""
ZeroLoss – Domain Entity: Trade (ratchet "zero-loss")
=======================================================
Trade con stop-loss de trinquete: riesgo inicial → breakeven garantizado
→ trailing que solo se aprieta a favor.

═══════════════════════════════════════════════════════════════
            MÁQUINA DE ESTADOS
═══════════════════════════════════════════════════════════════

  Trade.open()
       │
       ▼
  OPEN_RISKED ──(movimiento favorable > riesgo × trigger)──▸ OPEN_SECURED
       │                                                        │
       │                                          (trailing: SL = extremo − gap,
       │                                           solo si aprieta)
       │                                                        │
       ├── precio cruza SL ──▸ CLOSED (STOP_LOSS)               ├── cruza SL ──▸ CLOSED
       └── precio cruza TP ──▸ CLOSED (TAKE_PROFIT)             │   (BREAKEVEN_STOP / TRAILING_STOP)
                                                                └── cruza TP ──▸ CLOSED (TAKE_PROFIT)

  El estado es un tag explícito (TradeState). "secured" se deriva del
  tag, así que no existe la combinación "asegurado pero con SL inicial".

ORDEN DE EVALUACIÓN POR TICK (apply_price):
  1. highest_favorable  → max (BUY) / min (SELL), nunca retrocede.
  2. OPEN_RISKED → OPEN_SECURED si favorable_move > riesgo × trigger;
     SL := entry. Dispara una sola vez.
  3. Si asegurado: candidato = highest ∓ trail_gap; SL := candidato solo
     si aprieta (BUY: sube, SELL: baja).
  4. Cierre contra los niveles YA actualizados. Stop antes que TP
     (adverso primero). exit_price = nivel cruzado, no el tick.

INVARIANTE DEL TRINQUETE:
  sl_price es monótono no decreciente (BUY) / no creciente (SELL) durante
  toda la vida del trade, en cualquier estado.

INMUTABILIDAD:
  Trade es frozen. Cada transición devuelve una instancia NUEVA; un trade
  CLOSED devuelve siempre self (terminal).

PnL:
  profit = (exit − entry) × dirección × lot_size × contract_multiplier
  dirección = +1 BUY, −1 SELL
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from zeroloss.domain.exceptions.domain_errors import InvalidTradeError


class Side(str, Enum):
    BUY = "BUY"
    SELL = "SELL"

    @property
    def direction(self) -> int:
        return 1 if self is Side.BUY else -1


class TradeState(str, Enum):
    OPEN_RISKED = "OPEN_RISKED"
    OPEN_SECURED = "OPEN_SECURED"
    CLOSED = "CLOSED"


class TradeStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class CloseReason(str, Enum):
    STOP_LOSS = "STOP_LOSS"            # stop inicial (pérdida acotada)
    BREAKEVEN_STOP = "BREAKEVEN_STOP"  # stop en entry (resultado 0)
    TRAILING_STOP = "TRAILING_STOP"    # stop de trailing (ganancia bloqueada)
    TAKE_PROFIT = "TAKE_PROFIT"
    MANUAL = "MANUAL"


@dataclass(frozen=True, slots=True)
class RiskParameters:
    """Parámetros del trinquete, fijados al crear el trade."""

    breakeven_trigger_fraction: float
    trail_gap: float  # distancia absoluta mantenida una vez asegurado

    def __post_init__(self) -> None:
        if not math.isfinite(self.breakeven_trigger_fraction) or self.breakeven_trigger_fraction < 0:
            raise InvalidTradeError(
                f"breakeven_trigger_fraction inválido: {self.breakeven_trigger_fraction}",
            )
        if not math.isfinite(self.trail_gap) or self.trail_gap <= 0:
            raise InvalidTradeError(f"trail_gap debe ser > 0, recibido {self.trail_gap}")


def _finite_positive(value: float) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value) and value > 0


@dataclass(frozen=True, slots=True)
class Trade:
    """Posición con gestión de riesgo por trinquete."""

    id: str
    symbol: str
    side: Side
    entry_price: float
    lot_size: float
    sl_price: float
    initial_sl_price: float
    tp_price: Optional[float]
    highest_favorable: float
    state: TradeState
    risk: RiskParameters
    contract_multiplier: float = 1.0
    opened_at: float = 0.0
    closed_at: Optional[float] = None
    exit_price: Optional[float] = None
    profit: float = 0.0
    close_reason: Optional[CloseReason] = None
    mode: str = ""

    # ════════════════════════════════════════════════════════════════
    #  CONSTRUCCIÓN
    # ════════════════════════════════════════════════════════════════

    @classmethod
    def open(
        cls,
        *,
        symbol: str,
        side: Side | str,
        entry_price: float,
        lot_size: float,
        sl_price: float,
        risk: RiskParameters,
        tp_price: Optional[float] = None,
        contract_multiplier: float = 1.0,
        timestamp: float = 0.0,
        mode: str = "",
        trade_id: Optional[str] = None,
    ) -> "Trade":
        """Crea un trade OPEN_RISKED validando la geometría SL/TP."""
        side = Side(side)
        if not _finite_positive(entry_price):
            raise InvalidTradeError(f"entry_price inválido: {entry_price}")
        if not _finite_positive(lot_size):
            raise InvalidTradeError(f"lot_size inválido: {lot_size}")
        if not _finite_positive(contract_multiplier):
            raise InvalidTradeError(f"contract_multiplier inválido: {contract_multiplier}")
        if not _finite_positive(sl_price):
            raise InvalidTradeError(f"sl_price inválido: {sl_price}")

        d = side.direction
        if (entry_price - sl_price) * d <= 0:
            raise InvalidTradeError(
                f"SL {sl_price} del lado equivocado para {side.value} @ {entry_price}",
            )
        if tp_price is not None:
            if not _finite_positive(tp_price) or (tp_price - entry_price) * d <= 0:
                raise InvalidTradeError(
                    f"TP {tp_price} del lado equivocado para {side.value} @ {entry_price}",
                )

        return cls(
            id=trade_id or uuid.uuid4().hex[:12],
            symbol=symbol,
            side=side,
            entry_price=entry_price,
            lot_size=lot_size,
            sl_price=sl_price,
            initial_sl_price=sl_price,
            tp_price=tp_price,
            highest_favorable=entry_price,
            state=TradeState.OPEN_RISKED,
            risk=risk,
            contract_multiplier=contract_multiplier,
            opened_at=timestamp,
            mode=mode,
        )

    # ════════════════════════════════════════════════════════════════
    #  TRANSICIONES
    # ════════════════════════════════════════════════════════════════

    def apply_price(self, price: float, timestamp: float = 0.0) -> "Trade":
        """
        Evalúa un tick y devuelve el trade resultante.

        Precios no finitos o no positivos se ignoran (devuelve self).
        """
        if self.state is TradeState.CLOSED or not _finite_positive(price):
            return self

        d = self.direction

        # 1. Extremo favorable (monótono)
        if d > 0:
            highest = max(self.highest_favorable, price)
        else:
            highest = min(self.highest_favorable, price)

        state = self.state
        sl = self.sl_price

        # 2. Breakeven (una sola vez)
        if state is TradeState.OPEN_RISKED and self.favorable_move(price) > self.breakeven_trigger_distance:
            state = TradeState.OPEN_SECURED
            if (self.entry_price - sl) * d > 0:
                sl = self.entry_price

        # 3. Trailing: solo aprieta
        if state is TradeState.OPEN_SECURED:
            candidate = highest - d * self.risk.trail_gap
            if (candidate - sl) * d > 0:
                sl = candidate

        # 4. Cierre (stop antes que TP)
        if (price - sl) * d <= 0:
            if state is TradeState.OPEN_RISKED:
                reason = CloseReason.STOP_LOSS
            elif sl == self.entry_price:
                reason = CloseReason.BREAKEVEN_STOP
            else:
                reason = CloseReason.TRAILING_STOP
            return self._closed(sl, timestamp, reason, highest=highest, sl=sl)

        if self.tp_price is not None and (price - self.tp_price) * d >= 0:
            return self._closed(
                self.tp_price, timestamp, CloseReason.TAKE_PROFIT, highest=highest, sl=sl,
            )

        if highest == self.highest_favorable and sl == self.sl_price and state is self.state:
            return self
        return replace(self, highest_favorable=highest, sl_price=sl, state=state)

    def close_at(
        self,
        price: float,
        timestamp: float = 0.0,
        reason: CloseReason = CloseReason.MANUAL,
    ) -> "Trade":
        """Cierre explícito (manual) al precio dado."""
        if self.state is TradeState.CLOSED:
            raise InvalidTradeError(f"Trade {self.id} ya está cerrado", trade_id=self.id)
        if not _finite_positive(price):
            raise InvalidTradeError(f"Precio de cierre inválido: {price}", trade_id=self.id)
        return self._closed(price, timestamp, reason)

    def _closed(
        self,
        exit_price: float,
        timestamp: float,
        reason: CloseReason,
        *,
        highest: Optional[float] = None,
        sl: Optional[float] = None,
    ) -> "Trade":
        return replace(
            self,
            state=TradeState.CLOSED,
            highest_favorable=self.highest_favorable if highest is None else highest,
            sl_price=self.sl_price if sl is None else sl,
            exit_price=exit_price,
            closed_at=timestamp,
            close_reason=reason,
            profit=self.profit_at(exit_price),
        )

    # ════════════════════════════════════════════════════════════════
    #  CONSULTAS
    # ════════════════════════════════════════════════════════════════

    @property
    def direction(self) -> int:
        return self.side.direction

    @property
    def status(self) -> TradeStatus:
        return TradeStatus.CLOSED if self.state is TradeState.CLOSED else TradeStatus.OPEN

    @property
    def is_open(self) -> bool:
        return self.state is not TradeState.CLOSED

    @property
    def is_closed(self) -> bool:
        return self.state is TradeState.CLOSED

    @property
    def secured(self) -> bool:
        """
        ¿Se alcanzó el breakeven? Un trade cerrado conserva el dato:
        si el SL ya no es el inicial, pasó por OPEN_SECURED.
        """
        if self.state is TradeState.OPEN_SECURED:
            return True
        return self.state is TradeState.CLOSED and self.sl_price != self.initial_sl_price

    @property
    def is_trailing(self) -> bool:
        """Asegurado y con el SL ya más allá del entry."""
        return self.secured and (self.sl_price - self.entry_price) * self.direction > 0

    @property
    def initial_risk_distance(self) -> float:
        return abs(self.entry_price - self.initial_sl_price)

    @property
    def breakeven_trigger_distance(self) -> float:
        return self.initial_risk_distance * self.risk.breakeven_trigger_fraction

    @property
    def max_loss(self) -> float:
        """Peor pérdida posible antes de asegurar (ignorando gaps)."""
        return self.initial_risk_distance * self.lot_size * self.contract_multiplier

    def favorable_move(self, price: float) -> float:
        return (price - self.entry_price) * self.direction

    def profit_at(self, price: float) -> float:
        """PnL si el trade se cerrara a `price`."""
        return (price - self.entry_price) * self.direction * self.lot_size * self.contract_multiplier

    def to_dict(self) -> dict:
        """Serialización para API / WebSocket."""
        return {
            "id": self.id,
            "symbol": self.symbol,
            "side": self.side.value,
            "mode": self.mode,
            "entry_price": round(self.entry_price, 5),
            "lot_size": self.lot_size,
            "sl_price": round(self.sl_price, 5),
            "initial_sl_price": round(self.initial_sl_price, 5),
            "tp_price": round(self.tp_price, 5) if self.tp_price is not None else None,
            "highest_favorable": round(self.highest_favorable, 5),
            "state": self.state.value,
            "status": self.status.value,
            "secured": self.secured,
            "breakeven_trigger_fraction": self.risk.breakeven_trigger_fraction,
            "trail_gap": self.risk.trail_gap,
            "contract_multiplier": self.contract_multiplier,
            "opened_at": self.opened_at,
            "closed_at": self.closed_at,
            "exit_price": round(self.exit_price, 5) if self.exit_price is not None else None,
            "close_reason": self.close_reason.value if self.close_reason else None,
            "profit": round(self.profit, 2),
        }
