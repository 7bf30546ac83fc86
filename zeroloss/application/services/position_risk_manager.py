"""
ZeroLoss – Position Risk Manager
==================================
Gestor de posiciones de UN símbolo: abre trades, les aplica cada precio
(trinquete de Trade.apply_price) y mantiene el log de cerrados.

═══════════════════════════════════════════════════════════════
            FLUJO POR PRECIO
═══════════════════════════════════════════════════════════════

    on_price(price, ts)
        │
        ├── precio inválido (NaN, inf, ≤ 0) → warning, sin eventos
        │
        └── por cada trade abierto (aislados entre sí):
                nuevo = trade.apply_price(price, ts)
                    ├── RISKED → SECURED        → TradeSecured
                    ├── SL apretado por trailing → StopMoved
                    └── CLOSED                  → TradeClosed (+ log)

PROPIEDAD:
- Único escritor de los trades abiertos del símbolo. Hacia afuera solo
  salen instancias Trade inmutables.
- closed_trades es append-only: un trade cerrado nunca se borra ni se
  reabre.

on_price NUNCA lanza excepción por datos de mercado.
"""

from __future__ import annotations

import math
from typing import Dict, List, Optional, Tuple

from zeroloss.domain.entities.trade import CloseReason, RiskParameters, Side, Trade, TradeState
from zeroloss.domain.events.domain_events import (
    DomainEvent,
    StopMoved,
    TradeClosed,
    TradeOpened,
    TradeSecured,
)
from zeroloss.domain.exceptions.domain_errors import InvalidTradeError
from zeroloss.domain.services.risk_calculator import RiskCalculator
from zeroloss.domain.value_objects.trading_mode import TradingModeProfile
from zeroloss.shared.logging.logger import get_logger

logger = get_logger("position_risk_manager")


class PositionRiskManager:
    """
    Motor de trinquete por símbolo.

    Uso:
        manager = PositionRiskManager("XAUUSD")
        trade, opened = manager.open_from_profile(Side.BUY, 2350.0, profile)
        events = manager.on_price(2351.6, ts)
    """

    def __init__(self, symbol: str, risk_calculator: RiskCalculator | None = None) -> None:
        self._symbol = symbol
        self._risk_calculator = risk_calculator or RiskCalculator()
        self._open: Dict[str, Trade] = {}
        self._closed: List[Trade] = []
        self.ignored_prices = 0

    # ════════════════════════════════════════════════════════════════
    #  1. ABRIR TRADE
    # ════════════════════════════════════════════════════════════════

    def open_trade(
        self,
        *,
        side: Side | str,
        entry_price: float,
        lot_size: float,
        sl_price: float,
        risk: RiskParameters,
        tp_price: Optional[float] = None,
        contract_multiplier: float = 1.0,
        timestamp: float = 0.0,
        mode: str = "",
    ) -> Tuple[Trade, TradeOpened]:
        """
        Abre un trade con niveles explícitos.

        Raises:
            InvalidTradeError si la geometría SL/TP o el lote son inválidos
        """
        trade = Trade.open(
            symbol=self._symbol,
            side=side,
            entry_price=entry_price,
            lot_size=lot_size,
            sl_price=sl_price,
            risk=risk,
            tp_price=tp_price,
            contract_multiplier=contract_multiplier,
            timestamp=timestamp,
            mode=mode,
        )
        self._open[trade.id] = trade
        logger.info(
            "📝 Trade OPEN | id=%s sym=%s side=%s entry=%.5f SL=%.5f TP=%s lot=%.2f",
            trade.id, trade.symbol, trade.side.value, trade.entry_price,
            trade.sl_price,
            f"{trade.tp_price:.5f}" if trade.tp_price is not None else "-",
            trade.lot_size,
        )
        return trade, TradeOpened(timestamp=timestamp, trade=trade)

    def open_from_profile(
        self,
        side: Side | str,
        entry_price: float,
        profile: TradingModeProfile,
        *,
        lot_size: float = 1.0,
        suggested_sl: Optional[float] = None,
        suggested_tp: Optional[float] = None,
        contract_multiplier: float = 1.0,
        timestamp: float = 0.0,
    ) -> Tuple[Trade, TradeOpened]:
        """Abre un trade derivando SL/TP/trinquete del perfil del modo."""
        levels = self._risk_calculator.calculate_levels(
            side, entry_price, profile,
            suggested_sl=suggested_sl, suggested_tp=suggested_tp,
        )
        return self.open_trade(
            side=levels.side,
            entry_price=levels.entry,
            lot_size=lot_size,
            sl_price=levels.stop_loss,
            risk=levels.risk,
            tp_price=levels.take_profit,
            contract_multiplier=contract_multiplier,
            timestamp=timestamp,
            mode=profile.mode.value,
        )

    # ════════════════════════════════════════════════════════════════
    #  2. APLICAR PRECIO
    # ════════════════════════════════════════════════════════════════

    def on_price(self, price: float, timestamp: float = 0.0) -> List[DomainEvent]:
        """Aplica un precio a todos los trades abiertos y retorna los eventos."""
        if not self._open:
            return []
        if not isinstance(price, (int, float)) or not math.isfinite(price) or price <= 0:
            self.ignored_prices += 1
            logger.warning("Precio inválido ignorado para %s: %r", self._symbol, price)
            return []

        events: List[DomainEvent] = []
        for trade_id, trade in list(self._open.items()):
            updated = trade.apply_price(price, timestamp)
            if updated is trade:
                continue
            events.extend(self._transition_events(trade, updated, timestamp))
            if updated.is_closed:
                self._archive(updated)
            else:
                self._open[trade_id] = updated
        return events

    def _transition_events(self, before: Trade, after: Trade, timestamp: float) -> List[DomainEvent]:
        events: List[DomainEvent] = []
        baseline = before.sl_price

        if before.state is TradeState.OPEN_RISKED and after.secured:
            events.append(TradeSecured(timestamp=timestamp, trade=after))
            baseline = after.entry_price
            logger.info(
                "🛡️ Trade SECURED | id=%s sym=%s precio=%.5f SL → entry %.5f",
                after.id, after.symbol, after.highest_favorable, after.entry_price,
            )

        if after.sl_price != baseline:
            events.append(StopMoved(timestamp=timestamp, trade=after, previous_sl=baseline))
            logger.debug(
                "Trailing %s: SL %.5f → %.5f", after.id, baseline, after.sl_price,
            )

        if after.is_closed:
            events.append(TradeClosed(timestamp=timestamp, trade=after))
        return events

    # ════════════════════════════════════════════════════════════════
    #  3. CIERRE MANUAL
    # ════════════════════════════════════════════════════════════════

    def close_trade(self, trade_id: str, price: float, timestamp: float = 0.0) -> TradeClosed:
        """
        Cierra manualmente un trade abierto.

        Raises:
            InvalidTradeError si el trade no existe, ya está cerrado o el
            precio es inválido
        """
        trade = self._open.get(trade_id)
        if trade is None:
            raise InvalidTradeError(f"Trade {trade_id} no está abierto", trade_id=trade_id)
        closed = trade.close_at(price, timestamp, CloseReason.MANUAL)
        self._archive(closed)
        return TradeClosed(timestamp=timestamp, trade=closed)

    def _archive(self, trade: Trade) -> None:
        self._open.pop(trade.id, None)
        self._closed.append(trade)
        logger.info(
            "%s Trade CLOSED (%s) | id=%s sym=%s entry=%.5f exit=%.5f profit=%.2f",
            "🟢" if trade.profit > 0 else ("⚪" if trade.profit == 0 else "🔴"),
            trade.close_reason.value if trade.close_reason else "?",
            trade.id, trade.symbol, trade.entry_price, trade.exit_price, trade.profit,
        )

    # ════════════════════════════════════════════════════════════════
    #  CONSULTAS
    # ════════════════════════════════════════════════════════════════

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def open_trades(self) -> Tuple[Trade, ...]:
        return tuple(self._open.values())

    @property
    def closed_trades(self) -> Tuple[Trade, ...]:
        return tuple(self._closed)

    @property
    def open_count(self) -> int:
        return len(self._open)

    def get_trade(self, trade_id: str) -> Optional[Trade]:
        """Buscar un trade (abierto o cerrado) por id."""
        trade = self._open.get(trade_id)
        if trade is not None:
            return trade
        for closed in self._closed:
            if closed.id == trade_id:
                return closed
        return None

    @property
    def stats(self) -> dict:
        """Resumen de rendimiento del símbolo."""
        wins = sum(1 for t in self._closed if t.profit > 0)
        losses = sum(1 for t in self._closed if t.profit < 0)
        by_reason: Dict[str, int] = {}
        for t in self._closed:
            key = t.close_reason.value if t.close_reason else "UNKNOWN"
            by_reason[key] = by_reason.get(key, 0) + 1
        total = len(self._closed)
        return {
            "symbol": self._symbol,
            "open_trades": len(self._open),
            "closed_trades": total,
            "wins": wins,
            "losses": losses,
            "breakeven": total - wins - losses,
            "win_rate": round(wins / total * 100, 2) if total else 0.0,
            "net_profit": round(sum(t.profit for t in self._closed), 2),
            "secured_trades": sum(1 for t in self._closed if t.secured),
            "by_reason": by_reason,
            "ignored_prices": self.ignored_prices,
        }
