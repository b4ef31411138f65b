"""DI provider for GitHub access."""

from typing import AsyncIterable, NewType

import httpx
from dishka import provide

from eacchain.config import Config
from eacchain.infrastructure.github.client import GitHubRepository
from eacchain.util.di.base import Provider
from eacchain.util.di.scope import Scope

GitHubHttpClient = NewType("GitHubHttpClient", httpx.AsyncClient)


class GitHubProvider(Provider):
    @provide(scope=Scope.APP)
    async def get_github_http_client(self, config: Config) -> AsyncIterable[GitHubHttpClient]:
        client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.source.timeout, connect=5.0),
            follow_redirects=True,
        )
        yield GitHubHttpClient(client)
        await client.aclose()

    @provide(scope=Scope.APP)
    def get_repository(self, http: GitHubHttpClient, config: Config) -> GitHubRepository:
        source = config.source
        return GitHubRepository(
            client=http,
            owner=source.owner,
            repo=source.repo,
            branch=source.branch,
            token=source.token,
            api_url=source.api_url,
            raw_url=source.raw_url,
        )
