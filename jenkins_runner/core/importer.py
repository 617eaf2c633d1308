import os
import tempfile
from typing import Protocol

import aiofiles
import aiofiles.os
from loguru import logger

from jenkins_runner.core.client import JenkinsClient
from jenkins_runner.core.types import BuildContext
from jenkins_runner.exceptions import ResolutionFailed
from jenkins_runner.log.sink import LogSink
from jenkins_runner.utils import normalize_artifact_name

COPY_CHUNK_SIZE = 64 * 1024


class AsyncReadable(Protocol):
    async def read(self, size: int = -1) -> bytes: ...


class ArtifactSink(Protocol):
    """Host artifact store that receives an imported build archive."""

    async def create_artifact(
        self, context: BuildContext, name: str, content: AsyncReadable
    ) -> None: ...


class DirectoryArtifactSink:
    """Stores artifacts as ``{root}/{application_id}/{name}.zip``."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = os.fspath(root)

    def path_for(self, context: BuildContext, name: str) -> str:
        return os.path.join(self.root, str(context.application_id), f"{name}.zip")

    async def create_artifact(
        self, context: BuildContext, name: str, content: AsyncReadable
    ) -> None:
        path = self.path_for(context, name)
        await aiofiles.os.makedirs(os.path.dirname(path), exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            while chunk := await content.read(COPY_CHUNK_SIZE):
                await f.write(chunk)


class ArtifactImporter:
    def __init__(
        self, client: JenkinsClient, sink: ArtifactSink, log: LogSink = logger
    ) -> None:
        self.client = client
        self.sink = sink
        self.log = log

    async def resolve_build_number(
        self, job: str, branch: str | None, build_number: str
    ) -> str:
        if not build_number.strip().isdigit():
            self.log.debug(
                f'Build number is not an integer, resolving special build number "{build_number}"...'
            )
        number = await self.client.resolve_special_build_number(job, branch, build_number)
        if not number:
            error = ResolutionFailed(job, branch, build_number)
            self.log.error(str(error))
            raise error
        return number

    async def import_artifact(
        self,
        job: str,
        branch: str | None,
        build_number: str,
        artifact_name: str,
        context: BuildContext,
        sub_path: str | None = None,
    ) -> str:
        """
        Download a build's archive and store it in the sink.

        Returns the Jenkins build number that was imported. The temporary
        download is removed whether or not the import succeeds.
        """
        self.log.info(f'Importing artifact "{artifact_name}" from Jenkins...')
        number = await self.resolve_build_number(job, branch, build_number)

        fd, temp_path = tempfile.mkstemp(suffix=".zip")
        os.close(fd)
        try:
            self.log.debug(f"Temp file: {temp_path}")
            self.log.debug("Downloading artifact...")
            await self.client.download_artifact(job, branch, number, temp_path, sub_path)
            self.log.info("Artifact downloaded.")

            async with aiofiles.open(temp_path, "rb") as f:
                await self.sink.create_artifact(
                    context, normalize_artifact_name(artifact_name), f
                )
        finally:
            self.log.debug("Removing temp file...")
            try:
                await aiofiles.os.remove(temp_path)
            except OSError as e:
                self.log.warning(f"Error deleting temp file: {e}")

        self.log.info(f"{artifact_name} artifact imported.")
        return number
