from dishka import AsyncContainer, from_context, make_async_container

from eacchain.config import Config
from eacchain.domain.chain.util.di import ChainProvider
from eacchain.domain.ingest.util.di import IngestProvider
from eacchain.domain.record.util.di import RecordProvider
from eacchain.infrastructure.di import SourceProvider, StorageProvider
from eacchain.infrastructure.github.di import GitHubProvider
from eacchain.infrastructure.ipfs.di import IpfsProvider
from eacchain.util.di.base import Provider
from eacchain.util.di.scope import Scope


class ConfigProvider(Provider):
    config = from_context(provides=Config, scope=Scope.APP)


def create_container(config: Config | None = None) -> AsyncContainer:
    # Pydantic Settings populates from env vars at runtime
    config = config or Config()  # type: ignore[call-arg]

    return make_async_container(
        ConfigProvider(),
        IpfsProvider(),
        GitHubProvider(),
        StorageProvider(),
        SourceProvider(),
        RecordProvider(),
        ChainProvider(),
        IngestProvider(),
        context={Config: config},
        scopes=Scope,  # type: ignore[arg-type]  # Custom scope class
    )
