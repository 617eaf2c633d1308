import asyncio
from typing import Callable, Mapping

from loguru import logger

from jenkins_runner.constants import (
    DEFAULT_BUILD_INFO_ATTEMPTS,
    DEFAULT_POLL_INTERVAL_SECONDS,
)
from jenkins_runner.core.client import JenkinsClient
from jenkins_runner.core.result import Absent, Failed, Ok
from jenkins_runner.core.types import BuildInfo, BuildOutcome, BuildState, Progress
from jenkins_runner.log.sink import LogSink
from jenkins_runner.utils import parse_legacy_parameters

ProgressCallback = Callable[[Progress], None]


class BuildOrchestrator:
    """
    Drives one queued Jenkins build through Queued -> Started -> Polling -> Finished.

    Each orchestrator tracks a single build. Cancelling the task running it
    aborts the pending poll or sleep and leaves the orchestrator ABANDONED.
    """

    def __init__(
        self,
        client: JenkinsClient,
        log: LogSink = logger,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        build_info_attempts: int = DEFAULT_BUILD_INFO_ATTEMPTS,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.client = client
        self.log = log
        self.poll_interval = poll_interval
        self.build_info_attempts = build_info_attempts
        self.on_progress = on_progress

        self.state = BuildState.QUEUED
        self.queue_item_id: int | None = None
        self.build_number: int | None = None
        self._progress = Progress()

    @property
    def progress(self) -> Progress:
        return self._progress

    def _set_progress(self, progress: Progress) -> None:
        self._progress = progress
        if self.on_progress is not None:
            self.on_progress(progress)

    async def _sleep(self) -> None:
        await asyncio.sleep(self.poll_interval)

    async def wait_for_start(self, queue_item_id: int) -> int:
        """Poll the queue item until Jenkins assigns it a build number."""
        self.queue_item_id = queue_item_id
        last_reason: str | None = None

        try:
            while True:
                await self._sleep()
                item = await self.client.get_queued_build_info(queue_item_id)
                if item.build_number is not None:
                    self.build_number = item.build_number
                    self.state = BuildState.STARTED
                    self.log.info(f"Jenkins build number is {item.build_number}.")
                    return item.build_number

                if item.why and item.why != last_reason:
                    self.log.debug(f"Waiting for build to start... ({item.why})")
                    last_reason = item.why
                    self._set_progress(Progress(message=item.why))
        except asyncio.CancelledError:
            self.state = BuildState.ABANDONED
            raise

    async def wait_for_completion(
        self, job: str, branch: str | None, build_number: int
    ) -> BuildInfo | None:
        """
        Poll build status until Jenkins reports the build is no longer running.

        A missing build (404) is tolerated ``build_info_attempts`` times in a
        row; any answer resets the budget. Returns None when the budget runs
        out without Jenkins reporting the build.
        """
        self.build_number = build_number
        self.state = BuildState.POLLING
        self.log.info(f"Waiting for build {build_number} to complete...")

        attempts = self.build_info_attempts
        info: BuildInfo | None = None
        try:
            while True:
                await self._sleep()
                match await self.client.fetch_build_info(job, branch, build_number):
                    case Ok(value):
                        info = value
                    case Absent():
                        info = None
                    case Failed(error):
                        raise error

                if info is None:
                    self.log.debug("Build information was not returned.")
                    if attempts > 0:
                        self.log.debug(
                            f"Reloading build data ({attempts} attempts remaining)..."
                        )
                        attempts -= 1
                        continue
                    break

                attempts = self.build_info_attempts

                progress = Progress.from_build_info(info)
                if not info.building:
                    self.log.debug("Build has finished building.")
                    self._set_progress(progress)
                    break

                if not progress.unknown:
                    self._set_progress(progress)
        except asyncio.CancelledError:
            self.state = BuildState.ABANDONED
            raise

        self.state = BuildState.FINISHED
        return info

    def classify(self, queue_item_id: int, info: BuildInfo | None) -> BuildOutcome:
        outcome = BuildOutcome(
            queue_item_id=queue_item_id,
            state=self.state,
            build_number=self.build_number,
            result=info.result if info else None,
            info_returned=info is not None,
        )
        if outcome.succeeded:
            self.log.debug("Build status returned: success")
        else:
            self.log.error(
                f"Build did not report success; result was: {outcome.result_text}"
            )
        return outcome

    async def track(
        self,
        queue_item_id: int,
        job: str,
        branch: str | None = None,
        wait_for_completion: bool = True,
    ) -> BuildOutcome:
        build_number = await self.wait_for_start(queue_item_id)
        if not wait_for_completion:
            self.log.debug("The operation is not configured to wait for build completion.")
            return BuildOutcome(
                queue_item_id=queue_item_id, state=self.state, build_number=build_number
            )

        info = await self.wait_for_completion(job, branch, build_number)
        return self.classify(queue_item_id, info)

    async def run(
        self,
        job: str,
        branch: str | None = None,
        parameters: Mapping[str, str] | None = None,
        additional_parameters: str | None = None,
        wait_for_start: bool = True,
        wait_for_completion: bool = True,
    ) -> BuildOutcome:
        """Queue a build of ``job`` and follow it as far as the wait flags ask."""
        if additional_parameters:
            self.log.warning(
                f"additional_parameters ({additional_parameters}) is deprecated; "
                "use parameters instead."
            )
            parameters = parse_legacy_parameters(additional_parameters)

        queue_item_id = await self.client.trigger_build(job, branch, parameters=parameters)
        self.queue_item_id = queue_item_id
        self.log.info(f"Jenkins build has been queued as item {queue_item_id}.")

        if not wait_for_start and not wait_for_completion:
            self.log.debug("The operation is not configured to wait for the build to start.")
            return BuildOutcome(queue_item_id=queue_item_id, state=self.state)

        return await self.track(queue_item_id, job, branch, wait_for_completion)
