"""DI provider for the IPFS (Kubo) RPC adapters."""

from typing import AsyncIterable, NewType

import httpx
from dishka import provide

from eacchain.config import Config
from eacchain.infrastructure.ipfs.client import IpfsClient
from eacchain.util.di.base import Provider
from eacchain.util.di.scope import Scope

# Disambiguate from the GitHub httpx.AsyncClient
IpfsHttpClient = NewType("IpfsHttpClient", httpx.AsyncClient)


class IpfsProvider(Provider):
    @provide(scope=Scope.APP)
    async def get_ipfs_http_client(self, config: Config) -> AsyncIterable[IpfsHttpClient]:
        client = httpx.AsyncClient(timeout=httpx.Timeout(config.ipfs.timeout, connect=5.0))
        yield IpfsHttpClient(client)
        await client.aclose()

    @provide(scope=Scope.APP)
    def get_ipfs_client(self, http: IpfsHttpClient, config: Config) -> IpfsClient:
        return IpfsClient(client=http, api_url=config.ipfs.api_url)
