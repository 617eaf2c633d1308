import asyncio
import os
import re
import tempfile
import zipfile
from pathlib import Path
from typing import Iterable

import aiofiles.os
from loguru import logger

from jenkins_runner.core.client import JenkinsClient
from jenkins_runner.core.types import BuildArtifact, DownloadResult
from jenkins_runner.exceptions import MalformedResponse
from jenkins_runner.log.sink import LogSink

ARCHIVE_FILE_NAME = "archive.zip"


def wildcard_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a ``*``/``?`` wildcard into an anchored, case-insensitive regex."""
    escaped = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(f"^{escaped}$", re.IGNORECASE)


def filter_artifacts(
    artifacts: Iterable[BuildArtifact], pattern: str
) -> list[BuildArtifact]:
    regex = wildcard_to_regex(pattern)
    return [
        artifact
        for artifact in artifacts
        if artifact.file_name is not None and regex.match(artifact.file_name)
    ]


def is_whole_archive(pattern: str | None) -> bool:
    return not pattern or pattern.strip() == "*"


def local_destination(target_directory: str, artifact: BuildArtifact) -> Path:
    """
    Local file for an artifact, keeping its folder under ``target_directory``.

    Raises ``MalformedResponse`` when the artifact path leaves the target folder.
    """
    relative = artifact.relative_path or artifact.file_name or ""
    root = Path(target_directory).resolve()
    destination = Path(root, relative).resolve()
    if destination == root or not destination.is_relative_to(root):
        raise MalformedResponse(
            f"Artifact path {relative!r} does not stay inside {target_directory}"
        )
    return Path(target_directory, relative)


def _extract(archive: str, target_directory: str) -> list[str]:
    with zipfile.ZipFile(archive) as zf:
        zf.extractall(target_directory)
        return [
            os.path.join(target_directory, name)
            for name in zf.namelist()
            if not name.endswith("/")
        ]


class ArtifactDownloader:
    def __init__(self, client: JenkinsClient, log: LogSink = logger) -> None:
        self.client = client
        self.log = log

    async def download(
        self,
        job: str,
        branch: str | None,
        build_number: str,
        target_directory: str | os.PathLike[str],
        pattern: str | None = None,
        extract: bool = True,
    ) -> DownloadResult:
        """
        Download a build's artifacts into ``target_directory``.

        An empty pattern (or ``*``) fetches the whole archive zip, extracted
        unless ``extract`` is false. Any other pattern is matched against each
        artifact's file name and the matches are downloaded side by side, each
        under its relative path in the build.
        """
        number = await self.client.resolve_build_number(job, branch, build_number)
        target = os.fspath(target_directory)
        await aiofiles.os.makedirs(target, exist_ok=True)

        if is_whole_archive(pattern):
            files = await self._download_archive(job, branch, number, target, extract)
        else:
            files = await self._download_matching(job, branch, number, target, pattern or "")

        return DownloadResult(build_number=number, files=files)

    async def _download_archive(
        self, job: str, branch: str | None, number: str, target: str, extract: bool
    ) -> list[str]:
        if not extract:
            destination = os.path.join(target, ARCHIVE_FILE_NAME)
            self.log.info(f"Downloading artifact archive to {destination}...")
            await self.client.download_artifact(job, branch, number, destination)
            return [destination]

        fd, temp_path = tempfile.mkstemp(suffix=".zip")
        os.close(fd)
        try:
            self.log.info("Downloading artifact archive...")
            await self.client.download_artifact(job, branch, number, temp_path)
            self.log.info(f"Extracting artifact archive to {target}...")
            files = await asyncio.to_thread(_extract, temp_path, target)
        finally:
            try:
                await aiofiles.os.remove(temp_path)
            except OSError as e:
                self.log.warning(f"Error deleting temporary file {temp_path}: {e}")

        self.log.info(f"{len(files)} files were extracted.")
        return files

    async def _download_matching(
        self, job: str, branch: str | None, number: str, target: str, pattern: str
    ) -> list[str]:
        artifacts = await self.client.list_artifacts(job, branch, number)
        if not artifacts:
            self.log.warning(f"Build {number} of {job} has no artifacts.")
            return []

        matches = filter_artifacts(artifacts, pattern)
        if not matches:
            self.log.warning(f"No artifacts matched the pattern \"{pattern}\".")
            return []

        destinations = [local_destination(target, artifact) for artifact in matches]
        tasks = [
            asyncio.create_task(
                self._download_one(job, branch, number, destination, artifact)
            )
            for destination, artifact in zip(destinations, matches)
        ]
        try:
            files = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        self.log.info(f"{len(files)} artifacts were downloaded from Jenkins.")
        return list(files)

    async def _download_one(
        self,
        job: str,
        branch: str | None,
        number: str,
        destination: Path,
        artifact: BuildArtifact,
    ) -> str:
        self.log.debug(f"Target local file: {destination}")
        await aiofiles.os.makedirs(destination.parent, exist_ok=True)
        await self.client.download_single_artifact(
            job, branch, number, str(destination), artifact
        )
        return str(destination)
