"""Application ports - Interfaces hacia infraestructura."""

from zeroloss.application.ports.signal_provider import SignalProvider, SignalRequest

__all__ = [
    "SignalProvider",
    "SignalRequest",
]
