from dishka import provide

from eacchain.config import Config
from eacchain.domain.chain.port.name_service import NameService
from eacchain.domain.chain.service.registry import ChainRegistry
from eacchain.domain.record.port.content_store import ContentStore
from eacchain.util.di.base import Provider
from eacchain.util.di.scope import Scope


class ChainProvider(Provider):
    @provide(scope=Scope.APP)
    def get_registry(
        self, store: ContentStore, names: NameService, config: Config
    ) -> ChainRegistry:
        return ChainRegistry(
            store=store,
            names=names,
            lifetime=config.chain.lifetime,
            key_type=config.chain.key_type,
        )
