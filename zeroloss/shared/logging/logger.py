"""
ZeroLoss – Logging configuration
==================================
Un único formato para todo el pipeline, con loggers bajo el namespace
`zeroloss.` (p. ej. `zeroloss.candle_aggregator`).

El camino caliente (cada update) loguea en DEBUG; las transiciones
(trade asegurado/cerrado, updates rechazados, fallback de proveedor) en
INFO/WARNING.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
NOISY_LOGGERS = ("websockets", "aiohttp", "uvicorn.access")


def setup_logging(level: int | str = logging.INFO) -> None:
    """
    Configura el root logger al arranque.

    Acepta el nivel como int o como nombre ("DEBUG", "info", ...).
    Llamarlo dos veces no duplica handlers.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Logger `zeroloss.<name>`."""
    return logging.getLogger(f"zeroloss.{name}")
