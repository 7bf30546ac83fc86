"""
ZeroLoss – Infrastructure Layer
=================================
Implementaciones concretas de interfaces.

Este módulo contiene:
- external/: Event Bus, feed de Binance (WS + REST), ReplayFeed
- providers/: Proveedores de señales (local, remoto, fallback)

REGLA DE DEPENDENCIA:
Esta capa implementa interfaces definidas en application/ports/.

Puede importar de:
- domain/ (entidades, servicios)
- application/ (ports, tópicos)
- shared/ (config, logging)
"""
