"""
ZeroLoss – Settings (Pydantic BaseSettings)
=============================================
Configuración centralizada cargada desde variables de entorno / .env.
Se usa pydantic-settings para validación estricta al arranque.
"""

from __future__ import annotations

from typing import Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ─── Binance (feed de velas) ────────────────────────────────────────
    binance_ws_url: str = Field(
        default="wss://stream.binance.com:9443/ws",
        description="WebSocket endpoint de Binance (streams kline)",
    )
    binance_rest_url: str = Field(
        default="https://api.binance.com/api/v3",
        description="REST endpoint de Binance para histórico de klines",
    )
    symbols: List[str] = Field(
        default=["XAUUSD"],
        description="Símbolos a seguir (nombre estándar, se mapean a pares Binance)",
    )
    symbol_map: Dict[str, str] = Field(
        default={
            "XAUUSD": "PAXGUSDT",
            "BTCUSDT": "BTCUSDT",
            "ETHUSDT": "ETHUSDT",
            "SOLUSDT": "SOLUSDT",
            "BNBUSDT": "BNBUSDT",
            "XRPUSDT": "XRPUSDT",
            "ADAUSDT": "ADAUSDT",
            "DOGEUSDT": "DOGEUSDT",
        },
        description="Símbolo estándar → par de Binance (XAUUSD vía token PAXG)",
    )
    history_limit: int = Field(
        default=100, description="Klines históricas a pedir en el arranque en frío",
    )

    # ─── Replay (backtesting sin red) ───────────────────────────────────
    replay_csv: str = Field(
        default="", description="CSV a reproducir en lugar del feed de Binance (vacío = en vivo)",
    )
    replay_delay: float = Field(
        default=0.0, description="Pausa (seg) entre updates reproducidos",
    )

    # ─── Reconexión ─────────────────────────────────────────────────────
    ws_reconnect_base_delay: float = Field(
        default=1.0, description="Delay base (seg) para backoff exponencial"
    )
    ws_reconnect_max_delay: float = Field(
        default=60.0, description="Delay máximo (seg) entre reconexiones"
    )

    # ─── Candle Aggregator ──────────────────────────────────────────────
    timeframe: str = Field(default="1m", description="Timeframe de las velas")
    max_candles_buffer: int = Field(
        default=100, description="Capacidad de CandleHistory por símbolo",
    )
    volume_mode: str = Field(
        default="snapshot",
        description="'snapshot' (el update trae el volumen total de la vela) o 'delta'",
    )

    # ─── Trading ────────────────────────────────────────────────────────
    trading_mode: str = Field(
        default="ULTRA_SAFE", description="Modo de trading activo al arrancar",
    )
    lot_size: float = Field(default=1.0, description="Tamaño de lote por trade")
    auto_trade: bool = Field(
        default=True, description="Abrir trades automáticamente desde señales aceptadas",
    )
    avoid_news: bool = Field(
        default=False, description="Subir el umbral de confianza ante noticias HIGH",
    )
    max_open_trades_per_symbol: int = Field(
        default=1, description="Máximo de trades abiertos simultáneos por símbolo",
    )
    default_contract_multiplier: float = Field(
        default=1.0, description="Multiplicador de contrato si el símbolo no tiene uno propio",
    )
    contract_multipliers: Dict[str, float] = Field(
        default={"XAUUSD": 100.0},
        description="Unidades por lote (XAUUSD: 100 oz por lote estándar)",
    )

    # ─── Signal Provider ────────────────────────────────────────────────
    remote_signal_url: str = Field(
        default="", description="Endpoint del proveedor remoto de señales (vacío = deshabilitado)",
    )
    remote_signal_api_key: str = Field(default="", description="API key del proveedor remoto")
    remote_signal_timeout: float = Field(
        default=6.0, description="Timeout (seg) antes de caer al scorer local",
    )
    signal_every_n_candles: int = Field(
        default=5, description="Evaluar señal cada N velas cerradas",
    )
    signal_min_candles: int = Field(
        default=10, description="Velas mínimas en historial antes de evaluar señales",
    )

    # ─── Signal Scorer ──────────────────────────────────────────────────
    scorer_rsi_buy: float = Field(default=45.0, description="RSI por debajo → sesgo compra")
    scorer_rsi_sell: float = Field(default=55.0, description="RSI por encima → sesgo venta")
    scorer_buy_threshold: float = Field(default=2.5, description="Score mínimo para BUY")
    scorer_sell_threshold: float = Field(default=2.5, description="|Score| mínimo para SELL")

    # ─── Event Bus ──────────────────────────────────────────────────────
    event_bus_max_queue_size: int = Field(
        default=10_000,
        description="Tamaño máximo de cola del Event Bus para contrapresión",
    )

    # ─── Server ─────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8888)
    debug: bool = Field(default=False)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    def contract_multiplier_for(self, symbol: str) -> float:
        return self.contract_multipliers.get(symbol, self.default_contract_multiplier)


# Singleton global – se importa donde se necesite
settings = Settings()
