import xml.etree.ElementTree as ET
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator, Mapping

from loguru import logger

from jenkins_runner.constants import (
    CANONICAL_BUILD_NUMBERS,
    DEFAULT_CLIENT_TIMEOUT,
    DEFAULT_DOWNLOAD_CHUNK_SIZE,
    MULTI_BRANCH_PROJECT_TAG,
    SPECIAL_BUILD_NUMBERS,
    VALIDATION_PROJECT_LIMIT,
)
from jenkins_runner.core import paths
from jenkins_runner.core.result import Absent, Failed, Ok, Result
from jenkins_runner.core.transport import Destination, JenkinsTransport
from jenkins_runner.core.types import BuildArtifact, BuildInfo, BuildSummary, QueueItem
from jenkins_runner.exceptions import (
    MalformedResponse,
    ResolutionFailed,
)
from jenkins_runner.log.sink import LogSink
from jenkins_runner.settings import JenkinsConnectionInfo
from jenkins_runner.utils import convert_timestamp_to_utc_dt, parse_int


def parse_xml(text: str, url: str = "") -> ET.Element:
    try:
        return ET.fromstring(text)
    except ET.ParseError as e:
        raise MalformedResponse(f"Jenkins returned malformed XML for {url}: {e}") from e


def child_text(element: ET.Element | None, *names: str) -> str | None:
    """Text of a nested child element, or None when any level is missing."""
    for name in names:
        if element is None:
            return None
        element = element.find(name)
    if element is None:
        return None
    return element.text or ""


class JenkinsClient:
    """
    Typed operations over the Jenkins XML API.

    Build numbers are passed around as strings and only parsed when arithmetic
    or comparison is needed.
    """

    def __init__(
        self,
        connection: JenkinsConnectionInfo,
        log: LogSink = logger,
        timeout: float = DEFAULT_CLIENT_TIMEOUT,
        chunk_size: int = DEFAULT_DOWNLOAD_CHUNK_SIZE,
        transport: JenkinsTransport | None = None,
    ) -> None:
        self.log = log
        self.chunk_size = chunk_size
        self.transport = transport or JenkinsTransport(connection, log=log, timeout=timeout)

        user_name = self.transport.connection.user_name
        auth = f'Username "{user_name}"' if user_name else "Anonymous"
        self.log.debug(
            f"Initiating Jenkins connection as {auth} to {self.transport.connection.api_url}"
        )

    async def __aenter__(self) -> "JenkinsClient":
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def _get_xml(self, path: str) -> ET.Element:
        text = await self.transport.get_text(path)
        return parse_xml(text, path)

    async def _get_xml_result(self, path: str) -> Result[ET.Element]:
        match await self.transport.get_result(path):
            case Ok(text):
                return Ok(parse_xml(text, path))
            case other:
                return other

    # ── jobs and branches ──────────────────────────────────────────────────

    async def list_job_names(self) -> list[str]:
        if not self.transport.has_server_url:
            return []

        root = await self._get_xml(paths.api_path("/", "jobs"))
        return [name.text for name in root.iter("name") if name.text]

    async def list_projects(self) -> AsyncGenerator[str, None]:
        root = await self._get_xml(paths.api_path("/"))
        for job in root.iter("job"):
            name = child_text(job, "name")
            if name:
                yield name

    async def validate_connection(self) -> bool:
        count = 0
        async for project in self.list_projects():
            self.log.debug(f"Found project: {project}")
            count += 1
            if count >= VALIDATION_PROJECT_LIMIT:
                break
        if count == 0:
            self.log.warning("No projects were found.")
        return True

    async def list_branches(self, job: str) -> list[str]:
        root = await self._get_xml(paths.api_path(paths.job_path(job)))
        if root.tag != MULTI_BRANCH_PROJECT_TAG:
            return []

        branches = []
        for branch in root.iter("job"):
            name = child_text(branch, "name")
            if name and child_text(branch, "url"):
                branches.append(name)
        return branches

    # ── build numbers ──────────────────────────────────────────────────────

    async def resolve_special_build_number(
        self, job: str, branch: str | None, token: str
    ) -> str | None:
        """
        Resolve a symbolic build number such as ``lastSuccessfulBuild``.

        Returns None when Jenkins has no such build, or when the job itself is
        absent; a numeric token is returned unchanged and any other token
        is not a build number at all.
        """
        if parse_int(token) is not None:
            return token
        if token not in SPECIAL_BUILD_NUMBERS:
            self.log.debug(f"{token!r} is not a known build number token")
            return None

        self.log.debug(f"Looking up {token} build...")
        match await self._get_xml_result(paths.api_path(paths.job_path(job, branch))):
            case Ok(root):
                element = root.find(token)
                if element is None:
                    return None
                return child_text(element, "number") or None
            case Absent():
                return None
            case Failed(error):
                raise error
        raise AssertionError("unreachable")

    async def resolve_build_number(
        self, job: str, branch: str | None, token: str
    ) -> str:
        number = await self.resolve_special_build_number(job, branch, token)
        if not number:
            raise ResolutionFailed(job, branch, token)
        return number

    async def _literal_build_number(
        self, job: str, branch: str | None, build_number: str | int
    ) -> str:
        build_number = str(build_number)
        if parse_int(build_number) is not None:
            return build_number
        return await self.resolve_build_number(job, branch, build_number)

    async def list_build_numbers(self, job: str, branch: str | None = None) -> list[str]:
        root = await self._get_xml(
            paths.api_path(paths.job_path(job, branch), "build_numbers")
        )
        numbers = [number.text for number in root.iter("number") if number.text]
        return [*CANONICAL_BUILD_NUMBERS, *numbers]

    async def get_next_build_number(self, job: str, branch: str | None = None) -> str | None:
        root = await self._get_xml(
            paths.api_path(paths.job_path(job, branch), "next_build_number")
        )
        return child_text(root, "nextBuildNumber") or None

    # ── builds ─────────────────────────────────────────────────────────────

    async def fetch_build_info(
        self, job: str, branch: str | None, build_number: str | int
    ) -> Result[BuildInfo]:
        path = paths.api_path(paths.build_path(job, build_number, branch), "build_info")
        match await self._get_xml_result(path):
            case Ok(root):
                return Ok(self._parse_build_info(root, path))
            case other:
                return other

    async def get_build_info(
        self, job: str, branch: str | None, build_number: str | int
    ) -> BuildInfo | None:
        """Build status, or None while Jenkins has not materialized the build yet."""
        return (await self.fetch_build_info(job, branch, build_number)).unwrap()

    @staticmethod
    def _parse_build_info(root: ET.Element, path: str) -> BuildInfo:
        building = child_text(root, "building")
        if building is None:
            raise MalformedResponse(f"Missing <building> element in response from {path}")

        return BuildInfo(
            building=building.strip().lower() == "true",
            result=child_text(root, "result") or None,
            number=child_text(root, "number") or None,
            duration=parse_int(child_text(root, "duration")),
            estimated_duration=parse_int(child_text(root, "estimatedDuration")),
        )

    async def get_build_variables(
        self, job: str, branch: str | None, build_number: str | int
    ) -> dict[str, str]:
        number = await self._literal_build_number(job, branch, build_number)
        root = await self._get_xml(paths.api_path(paths.build_path(job, number, branch)))

        variables: dict[str, str] = {}
        for parameter in root.iter("parameter"):
            name = child_text(parameter, "name")
            value = child_text(parameter, "value")
            if name is None or value is None:
                continue
            variables[name] = value
        return variables

    async def list_builds(
        self, job: str, branch: str | None = None
    ) -> AsyncGenerator[BuildSummary, None]:
        root = await self._get_xml(paths.api_path(paths.job_path(job, branch)))

        if root.tag == MULTI_BRANCH_PROJECT_TAG:
            for branch_element in root.iter("job"):
                name = child_text(branch_element, "name")
                if not name or not child_text(branch_element, "url"):
                    continue
                async for build in self.list_builds(job, name):
                    yield build.model_copy(
                        update={"id": f"{name}-{build.number}", "scope": name}
                    )
            return

        for build_element in root.iter("build"):
            number = child_text(build_element, "number")
            if not number:
                continue

            build_root = await self._get_xml(
                paths.api_path(paths.build_path(job, number, branch))
            )
            timestamp = child_text(build_root, "timestamp")
            if timestamp is None:
                continue

            yield BuildSummary(
                id=number,
                number=number,
                result=child_text(build_root, "result") or None,
                timestamp=convert_timestamp_to_utc_dt(timestamp),
                url=child_text(build_element, "url"),
                scope=branch,
            )

    # ── artifacts ──────────────────────────────────────────────────────────

    async def list_artifacts(
        self, job: str, branch: str | None, build_number: str | int
    ) -> list[BuildArtifact]:
        number = await self._literal_build_number(job, branch, build_number)
        root = await self._get_xml(paths.api_path(paths.build_path(job, number, branch)))

        return [
            BuildArtifact(
                display_path=child_text(artifact, "displayPath"),
                file_name=child_text(artifact, "fileName"),
                relative_path=child_text(artifact, "relativePath"),
            )
            for artifact in root.iter("artifact")
        ]

    async def download_artifact(
        self,
        job: str,
        branch: str | None,
        build_number: str | int,
        destination: Destination,
        sub_path: str | None = None,
    ) -> int:
        number = await self._literal_build_number(job, branch, build_number)
        return await self.transport.download(
            paths.artifact_path(job, number, sub_path, branch),
            destination,
            chunk_size=self.chunk_size,
        )

    async def download_single_artifact(
        self,
        job: str,
        branch: str | None,
        build_number: str | int,
        destination: Destination,
        artifact: BuildArtifact,
    ) -> int:
        if not artifact.relative_path:
            raise MalformedResponse(
                f"Artifact {artifact.file_name!r} has no relative path to download from"
            )
        number = await self._literal_build_number(job, branch, build_number)
        return await self.transport.download(
            paths.single_artifact_path(job, number, artifact.relative_path, branch),
            destination,
            chunk_size=self.chunk_size,
        )

    @asynccontextmanager
    async def open_artifact(
        self,
        job: str,
        branch: str | None,
        build_number: str | int,
        sub_path: str | None = None,
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        number = await self._literal_build_number(job, branch, build_number)
        async with self.transport.stream(
            paths.artifact_path(job, number, sub_path, branch)
        ) as response:
            yield response.aiter_bytes(chunk_size=self.chunk_size)

    @asynccontextmanager
    async def open_single_artifact(
        self,
        job: str,
        branch: str | None,
        build_number: str | int,
        artifact: BuildArtifact,
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        if not artifact.relative_path:
            raise MalformedResponse(
                f"Artifact {artifact.file_name!r} has no relative path to download from"
            )
        number = await self._literal_build_number(job, branch, build_number)
        async with self.transport.stream(
            paths.single_artifact_path(job, number, artifact.relative_path, branch)
        ) as response:
            yield response.aiter_bytes(chunk_size=self.chunk_size)

    # ── queue ──────────────────────────────────────────────────────────────

    async def trigger_build(
        self,
        job: str,
        branch: str | None = None,
        additional_parameters: str | None = None,
        parameters: Mapping[str, str] | None = None,
    ) -> int:
        """
        Queue a build and return the id of its queue item.

        ``additional_parameters`` is a ready-made query string appended to
        ``buildWithParameters``; ``parameters`` are sent form-encoded instead.
        """
        path = paths.join_path(paths.job_path(job, branch), "build")
        if additional_parameters:
            path += f"WithParameters?{additional_parameters}"
        elif parameters:
            path += "WithParameters"

        self.log.debug(f"Queuing build to {path}")
        location = await self.transport.post(
            path, data=dict(parameters) if parameters else None
        )
        return self._parse_queue_item_id(location)

    @staticmethod
    def _parse_queue_item_id(location: str | None) -> int:
        if not location:
            raise MalformedResponse("Jenkins did not return a Location header for the queued build")

        queue_item_id = parse_int(location.rstrip("/").rsplit("/", 1)[-1])
        if queue_item_id is None:
            raise MalformedResponse(f"Unexpected location header received: \"{location}\"")
        return queue_item_id

    async def get_queued_build_info(self, queue_item_id: int) -> QueueItem:
        path = paths.queue_path(queue_item_id)
        root = await self._get_xml(path)

        number = child_text(root, "executable", "number")
        if number:
            build_number = parse_int(number)
            if build_number is None:
                raise MalformedResponse(f"\"{number}\" is not an expected value for <number>")
            return QueueItem(build_number=build_number)

        return QueueItem(why=child_text(root, "why") or "")
