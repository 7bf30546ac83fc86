"""
ZeroLoss
========
Velas en vivo, indicadores técnicos, señales con fallback determinista y
un ratchet de stop-loss (riesgo → breakeven → trailing) por trade.
"""

__version__ = "1.0.0"
