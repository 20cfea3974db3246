from dependency_injector import containers, providers

from predictapi.config import Settings
from predictapi.services.broadcast_service import BroadcastService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class ServiceModule(containers.DeclarativeContainer):
    """Process-wide service dependencies.

    요청 단위 DB 세션이 필요한 서비스는 predictapi.deps 에서 생성한다.
    """

    config = providers.DependenciesContainer()

    broadcast_service = providers.Singleton(BroadcastService, settings=config.config)


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "predictapi.deps",
        ],
    )

    config = providers.Container(ConfigModule)
    services = providers.Container(ServiceModule, config=config)
