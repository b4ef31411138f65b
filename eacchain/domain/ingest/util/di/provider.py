from dishka import provide

from eacchain.config import Config
from eacchain.domain.chain.service.registry import ChainRegistry
from eacchain.domain.ingest.port.source import ResultSink, SourceRowProvider
from eacchain.domain.ingest.service.ingest import IngestService
from eacchain.domain.record.port.content_store import ContentStore
from eacchain.domain.record.service.graph_builder import RecordGraphBuilder
from eacchain.util.di.base import Provider
from eacchain.util.di.scope import Scope


class IngestProvider(Provider):
    @provide(scope=Scope.RUN)
    def get_ingest_service(
        self,
        source: SourceRowProvider,
        sink: ResultSink,
        store: ContentStore,
        builder: RecordGraphBuilder,
        registry: ChainRegistry,
        config: Config,
    ) -> IngestService:
        return IngestService(
            source=source,
            store=store,
            builder=builder,
            registry=registry,
            transaction_files=config.source.transaction_files(),
            attestation_files=config.source.attestation_files(),
            policy=config.batch.policy(),
            chains=config.chain.names(),
            sink=sink,
        )
