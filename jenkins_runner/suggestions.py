import hashlib
from typing import Awaitable, Callable

from loguru import logger

from jenkins_runner.cache import CacheProvider, InMemoryCacheProvider
from jenkins_runner.core.client import JenkinsClient
from jenkins_runner.settings import ConnectionConfig, reveal_secret


def connection_cache_key(connection: ConnectionConfig) -> str:
    """Cache namespace for one server and credential pair; the secret is only hashed."""
    secret_hash = hashlib.sha256(reveal_secret(connection.secret).encode("utf-8")).hexdigest()
    return f"{connection.api_url}|{connection.user_name or ''}|{secret_hash[:16]}"


class SuggestionProvider:
    """
    Job, branch, build number and artifact name lookups for pickers.

    Results are cached per server and credentials until ``invalidate`` is called.
    """

    def __init__(self, client: JenkinsClient, cache: CacheProvider | None = None) -> None:
        self.client = client
        self.cache = cache or InMemoryCacheProvider()
        self.namespace = connection_cache_key(client.transport.connection)

    async def _cached(
        self, key: str, load: Callable[[], Awaitable[list[str]]]
    ) -> list[str]:
        cache_key = f"{self.namespace}|{key}"
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return cached

        values = await load()
        await self.cache.set(cache_key, values)
        logger.debug(f"Cached {len(values)} suggestions for {key}")
        return values

    async def job_names(self) -> list[str]:
        return await self._cached("jobs", self.client.list_job_names)

    async def branch_names(self, job: str) -> list[str]:
        if not job:
            return []
        return await self._cached(
            f"branches|{job}", lambda: self.client.list_branches(job)
        )

    async def build_numbers(self, job: str, branch: str | None = None) -> list[str]:
        if not job:
            return []
        return await self._cached(
            f"builds|{job}|{branch or ''}",
            lambda: self.client.list_build_numbers(job, branch),
        )

    async def artifact_names(
        self, job: str, branch: str | None, build_number: str
    ) -> list[str]:
        if not job or not build_number:
            return []

        async def load() -> list[str]:
            artifacts = await self.client.list_artifacts(job, branch, build_number)
            return [artifact.file_name for artifact in artifacts if artifact.file_name]

        return await self._cached(f"artifacts|{job}|{branch or ''}|{build_number}", load)

    async def invalidate(self) -> None:
        await self.cache.delete_prefix(f"{self.namespace}|")
