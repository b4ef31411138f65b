from dishka import provide

from eacchain.config import Config
from eacchain.domain.record.port.content_store import ContentStore
from eacchain.domain.record.service.graph_builder import RecordGraphBuilder
from eacchain.domain.record.service.normalizer import RecordNormalizer
from eacchain.util.di.base import Provider
from eacchain.util.di.scope import Scope


class RecordProvider(Provider):
    @provide(scope=Scope.APP)
    def get_normalizer(self) -> RecordNormalizer:
        return RecordNormalizer()

    @provide(scope=Scope.APP)
    def get_graph_builder(
        self, store: ContentStore, normalizer: RecordNormalizer, config: Config
    ) -> RecordGraphBuilder:
        return RecordGraphBuilder(
            store=store,
            normalizer=normalizer,
            order_spec=config.normalization.order_spec(),
            attestation_spec=config.normalization.attestation_spec(),
        )
