import asyncio
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, BinaryIO, Mapping

import aiofiles
import httpx
from loguru import logger

from jenkins_runner.constants import (
    DEFAULT_CLIENT_TIMEOUT,
    DEFAULT_DOWNLOAD_CHUNK_SIZE,
    ENDPOINTS,
)
from jenkins_runner.core.paths import join_path
from jenkins_runner.core.result import Absent, Failed, Ok, Result
from jenkins_runner.exceptions import ConfigurationError, RequestFailed
from jenkins_runner.log.sink import LogSink
from jenkins_runner.settings import (
    ConnectionConfig,
    JenkinsConnectionInfo,
    reveal_secret,
)
from jenkins_runner.utils import generate_basic_auth_header

Destination = str | os.PathLike[str] | BinaryIO


class JenkinsTransport:
    """
    Authenticated GET/POST/download calls against one Jenkins server.

    A transport belongs to a single connection configuration. The CSRF crumb it
    negotiates is kept on the instance and never shared with another transport.
    """

    def __init__(
        self,
        connection: JenkinsConnectionInfo,
        log: LogSink = logger,
        timeout: float = DEFAULT_CLIENT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.connection = ConnectionConfig.from_connection_info(connection)
        self.log = log

        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

        self.auth_headers: dict[str, str] = {}
        if self.connection.user_name:
            name, value = generate_basic_auth_header(
                self.connection.user_name, reveal_secret(self.connection.secret)
            )
            self.auth_headers[name] = value

        self._crumb_headers: dict[str, str] = {}
        self._crumb_negotiated = False
        self._crumb_lock = asyncio.Lock()

    async def __aenter__(self) -> "JenkinsTransport":
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    @property
    def has_server_url(self) -> bool:
        return bool(self.connection.server_url)

    @property
    def headers(self) -> dict[str, str]:
        return {**self.auth_headers, **self._crumb_headers}

    def url(self, path: str) -> str:
        if not self.has_server_url:
            raise ConfigurationError()
        return join_path(self.connection.api_url, path)

    async def get_result(self, path: str) -> Result[str]:
        """GET ``path``; a 404 is reported as ``Absent``, other failures as ``Failed``."""
        url = self.url(path)
        self.log.debug(f"Requesting XML from {url}")

        try:
            response = await self.client.get(url, headers=self.headers)
        except httpx.HTTPError as e:
            self.log.error(f"HTTP error for GET request to {url}: {e}")
            raise

        if response.status_code == 404:
            return Absent(url)
        if not response.is_success:
            return Failed(RequestFailed(response.status_code, url, response.text))
        return Ok(response.text)

    async def get_text(self, path: str) -> str:
        match await self.get_result(path):
            case Ok(value):
                return value
            case Absent(url):
                raise RequestFailed(404, url or path)
            case Failed(error):
                raise error
        raise AssertionError("unreachable")

    async def negotiate_crumb(self) -> None:
        if not self.connection.csrf_protection_enabled or self._crumb_negotiated:
            return

        async with self._crumb_lock:
            if self._crumb_negotiated:
                return

            self.log.debug("Checking for CSRF protection...")
            url = self.url(ENDPOINTS["crumb"])
            response = await self.client.get(url, headers=self.auth_headers)
            if response.is_success:
                name, separator, value = response.text.partition(":")
                if separator and name.strip():
                    self._crumb_headers = {name.strip(): value.strip()}
            else:
                # Jenkins without CSRF protection has no crumb issuer
                self.log.debug(
                    f"Crumb issuer returned HTTP {response.status_code}; "
                    "continuing without a CSRF crumb."
                )
            self._crumb_negotiated = True

    async def post(
        self, path: str, data: Mapping[str, str] | None = None
    ) -> str | None:
        """POST to ``path`` and return the ``Location`` header, if any."""
        url = self.url(path)
        await self.negotiate_crumb()
        self.log.debug(f"Posting to {url}")

        try:
            response = await self.client.post(url, data=data, headers=self.headers)
        except httpx.HTTPError as e:
            self.log.error(f"HTTP error for POST request to {url}: {e}")
            raise

        if not response.is_success:
            raise RequestFailed(
                response.status_code,
                url,
                response.text,
                message=f"Invalid Jenkins API call, response body was: {response.text}",
            )
        return response.headers.get("Location")

    @asynccontextmanager
    async def stream(self, path: str) -> AsyncIterator[httpx.Response]:
        url = self.url(path)
        self.log.debug(f"Downloading file from {url}...")

        async with self.client.stream("GET", url, headers=self.headers) as response:
            if not response.is_success:
                await response.aread()
                raise RequestFailed(response.status_code, url, response.text)
            yield response

    async def download(
        self,
        path: str,
        destination: Destination,
        chunk_size: int = DEFAULT_DOWNLOAD_CHUNK_SIZE,
    ) -> int:
        """Stream the body of ``path`` into a file path or a writable binary stream."""
        written = 0
        async with self.stream(path) as response:
            if isinstance(destination, (str, os.PathLike)):
                async with aiofiles.open(destination, "wb") as f:
                    async for chunk in response.aiter_bytes(chunk_size=chunk_size):
                        await f.write(chunk)
                        written += len(chunk)
            else:
                async for chunk in response.aiter_bytes(chunk_size=chunk_size):
                    destination.write(chunk)
                    written += len(chunk)
        return written
