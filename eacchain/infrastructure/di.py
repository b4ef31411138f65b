"""DI provider selecting port adapters by configured backend."""

from dishka import provide

from eacchain.config import Config
from eacchain.domain.chain.port.name_service import NameService
from eacchain.domain.ingest.port.source import ResultSink, SourceRowProvider
from eacchain.domain.record.port.content_store import ContentStore
from eacchain.domain.shared.error import ConfigurationError
from eacchain.infrastructure.github.client import GitHubRepository
from eacchain.infrastructure.github.sink import GitHubResultSink
from eacchain.infrastructure.github.source import GitHubSourceProvider
from eacchain.infrastructure.ipfs.client import IpfsClient
from eacchain.infrastructure.ipfs.content_store import IpfsContentStore
from eacchain.infrastructure.ipfs.name_service import IpnsNameService
from eacchain.infrastructure.local.content_store import LocalContentStore
from eacchain.infrastructure.local.name_service import LocalNameService
from eacchain.infrastructure.local.source import DirectoryResultSink, DirectorySourceProvider
from eacchain.util.di.base import Provider
from eacchain.util.di.scope import Scope


class StorageProvider(Provider):
    @provide(scope=Scope.APP)
    def get_content_store(self, config: Config, ipfs: IpfsClient) -> ContentStore:
        if config.store.backend == "local":
            return LocalContentStore(config.store.path)
        return IpfsContentStore(
            client=ipfs,
            store_codec=config.ipfs.store_codec,
            hash_alg=config.ipfs.hash_alg,
            cid_version=config.ipfs.cid_version,
            pin=config.ipfs.pin,
        )

    @provide(scope=Scope.APP)
    def get_name_service(self, config: Config, ipfs: IpfsClient) -> NameService:
        if config.store.backend == "local":
            return LocalNameService(config.store.path)
        return IpnsNameService(client=ipfs, resolve_timeout=config.ipfs.resolve_timeout)


class SourceProvider(Provider):
    @provide(scope=Scope.APP)
    def get_source(self, config: Config, repository: GitHubRepository) -> SourceRowProvider:
        if config.source.backend == "directory":
            return DirectorySourceProvider(_source_root(config))
        return GitHubSourceProvider(repository)

    @provide(scope=Scope.APP)
    def get_sink(self, config: Config, repository: GitHubRepository) -> ResultSink:
        if config.source.backend == "directory":
            return DirectoryResultSink(_source_root(config))
        return GitHubResultSink(repository)


def _source_root(config: Config) -> str:
    if not config.source.root:
        raise ConfigurationError("source.root is required for the directory backend")
    return config.source.root
