"""Proveedores de señales (implementaciones de SignalProvider)."""

from zeroloss.infrastructure.providers.fallback_provider import FallbackSignalProvider
from zeroloss.infrastructure.providers.local_provider import LocalHeuristicProvider
from zeroloss.infrastructure.providers.remote_provider import RemoteSignalProvider

__all__ = [
    "FallbackSignalProvider",
    "LocalHeuristicProvider",
    "RemoteSignalProvider",
]
