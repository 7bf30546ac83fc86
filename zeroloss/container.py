"""
Dependency Injection Container.

Este módulo proporciona el contenedor de inyección de dependencias
que gestiona todas las instancias de servicios, proveedores y casos de uso.

Clean Architecture: Este contenedor vive en la capa más externa y es el único
lugar donde se crean dependencias concretas.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

# Domain
from zeroloss.domain.services.signal_scorer import ScorerConfig, SignalScorer

# Application
from zeroloss.application.use_cases.generate_signal_usecase import GenerateSignalUseCase
from zeroloss.application.use_cases.process_update_usecase import ProcessUpdateUseCase

# Infrastructure
from zeroloss.infrastructure.external.binance_client import BinanceKlineClient
from zeroloss.infrastructure.external.event_bus import EventBus
from zeroloss.infrastructure.external.replay_feed import ReplayFeed
from zeroloss.infrastructure.providers.fallback_provider import FallbackSignalProvider
from zeroloss.infrastructure.providers.local_provider import LocalHeuristicProvider
from zeroloss.infrastructure.providers.remote_provider import RemoteSignalProvider

# Shared
from zeroloss.shared.config.settings import Settings


@dataclass
class Container:
    """
    Contenedor de Inyección de Dependencias.

    Gestiona el ciclo de vida de todas las dependencias de la aplicación.
    Las instancias se crean perezosamente y se comparten (singleton por
    contenedor).
    """

    # Configuración
    settings: Settings = field(default_factory=Settings)

    _event_bus: Optional[EventBus] = None
    _signal_scorer: Optional[SignalScorer] = None
    _local_provider: Optional[LocalHeuristicProvider] = None
    _remote_provider: Optional[RemoteSignalProvider] = None
    _signal_provider: Optional[FallbackSignalProvider] = None
    _signal_usecase: Optional[GenerateSignalUseCase] = None
    _process_update: Optional[ProcessUpdateUseCase] = None
    _feed: Optional[Any] = None

    # ==================== Infraestructura ====================

    @property
    def event_bus(self) -> EventBus:
        """Obtiene o crea el EventBus (singleton)."""
        if self._event_bus is None:
            self._event_bus = EventBus(max_queue_size=self.settings.event_bus_max_queue_size)
        return self._event_bus

    @property
    def feed(self):
        """
        Feed de precios: ReplayFeed si hay CSV configurado, si no Binance.
        """
        if self._feed is None:
            if self.settings.replay_csv:
                self._feed = ReplayFeed.from_csv(
                    self.event_bus,
                    self.settings.replay_csv,
                    symbol=self.settings.symbols[0] if len(self.settings.symbols) == 1 else None,
                    delay=self.settings.replay_delay,
                )
            else:
                self._feed = BinanceKlineClient(self.event_bus, self.settings)
        return self._feed

    # ==================== Domain Services ====================

    @property
    def signal_scorer(self) -> SignalScorer:
        """Obtiene o crea el SignalScorer con los umbrales de settings."""
        if self._signal_scorer is None:
            self._signal_scorer = SignalScorer(ScorerConfig(
                rsi_buy=self.settings.scorer_rsi_buy,
                rsi_sell=self.settings.scorer_rsi_sell,
                buy_threshold=self.settings.scorer_buy_threshold,
                sell_threshold=self.settings.scorer_sell_threshold,
            ))
        return self._signal_scorer

    # ==================== Providers ====================

    @property
    def local_provider(self) -> LocalHeuristicProvider:
        if self._local_provider is None:
            self._local_provider = LocalHeuristicProvider(self.signal_scorer)
        return self._local_provider

    @property
    def remote_provider(self) -> RemoteSignalProvider:
        if self._remote_provider is None:
            self._remote_provider = RemoteSignalProvider(
                self.settings.remote_signal_url,
                api_key=self.settings.remote_signal_api_key,
            )
        return self._remote_provider

    @property
    def signal_provider(self) -> FallbackSignalProvider:
        """Remoto con timeout y caída al scorer local."""
        if self._signal_provider is None:
            self._signal_provider = FallbackSignalProvider(
                self.remote_provider,
                self.local_provider,
                timeout=self.settings.remote_signal_timeout,
            )
        return self._signal_provider

    # ==================== Use Cases ====================

    @property
    def signal_usecase(self) -> GenerateSignalUseCase:
        if self._signal_usecase is None:
            self._signal_usecase = GenerateSignalUseCase(
                self.signal_provider,
                min_candles=self.settings.signal_min_candles,
                timeframe=self.settings.timeframe,
            )
        return self._signal_usecase

    @property
    def process_update(self) -> ProcessUpdateUseCase:
        """Pipeline por símbolo; crea los pipelines de los símbolos configurados."""
        if self._process_update is None:
            s = self.settings
            self._process_update = ProcessUpdateUseCase(
                self.event_bus,
                self.signal_usecase,
                timeframe=s.timeframe,
                capacity=s.max_candles_buffer,
                volume_mode=s.volume_mode,
                trading_mode=s.trading_mode,
                lot_size=s.lot_size,
                auto_trade=s.auto_trade,
                avoid_news=s.avoid_news,
                max_open_trades=s.max_open_trades_per_symbol,
                signal_every_n_candles=s.signal_every_n_candles,
                signal_min_candles=s.signal_min_candles,
                contract_multiplier_for=s.contract_multiplier_for,
            )
            for symbol in s.symbols:
                self._process_update.pipeline(symbol)
        return self._process_update

    # ==================== Lifecycle ====================

    def reset(self) -> None:
        """Resetea todas las instancias (útil para tests)."""
        self._event_bus = None
        self._signal_scorer = None
        self._local_provider = None
        self._remote_provider = None
        self._signal_provider = None
        self._signal_usecase = None
        self._process_update = None
        self._feed = None

    def override(self, name: str, instance: Any) -> None:
        """
        Override una dependencia (útil para tests con fakes).

        Args:
            name: Nombre de la dependencia (ej: 'remote_provider')
            instance: Instancia a usar
        """
        attr_name = f"_{name}"
        if hasattr(self, attr_name):
            setattr(self, attr_name, instance)
        else:
            raise ValueError(f"Unknown dependency: {name}")


# ==================== Global Container ====================

_container: Optional[Container] = None


def get_container() -> Container:
    """
    Obtiene la instancia global del contenedor.

    Patrón Singleton para asegurar una única instancia
    compartida en toda la aplicación.
    """
    global _container
    if _container is None:
        _container = Container()
    return _container


def reset_container() -> None:
    """Resetea el contenedor global."""
    global _container
    if _container is not None:
        _container.reset()
    _container = None


def init_container(settings: Optional[Settings] = None) -> Container:
    """
    Inicializa el contenedor con configuración específica.

    Args:
        settings: Configuración opcional. Si es None, usa valores por defecto.

    Returns:
        Container inicializado
    """
    global _container
    if settings is None:
        settings = Settings()
    _container = Container(settings=settings)
    return _container
