from datetime import datetime
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

from jenkins_runner.constants import NOT_RETURNED, SPECIAL_BUILD_NUMBERS


class BuildState(StrEnum):
    QUEUED = "queued"
    STARTED = "started"
    POLLING = "polling"
    FINISHED = "finished"
    ABANDONED = "abandoned"


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class BuildIdentifier(FrozenModel):
    job: str
    branch: Optional[str] = None
    build_number: str = "lastSuccessfulBuild"

    @property
    def is_symbolic(self) -> bool:
        return not self.build_number.isdigit()

    @property
    def is_known_token(self) -> bool:
        return self.build_number in SPECIAL_BUILD_NUMBERS


class QueueItem(FrozenModel):
    """A queued build: either dequeued into a build number, or still waiting for a reason."""

    build_number: Optional[int] = None
    why: Optional[str] = None

    @model_validator(mode="after")
    def exactly_one_populated(self) -> "QueueItem":
        if (self.build_number is None) == (self.why is None):
            raise ValueError("a queue item holds either a build number or a wait reason")
        return self

    @property
    def started(self) -> bool:
        return self.build_number is not None


class BuildInfo(FrozenModel):
    building: bool
    result: Optional[str] = None
    number: Optional[str] = None
    duration: Optional[int] = None
    estimated_duration: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return (self.result or "").lower() == "success"


class BuildArtifact(FrozenModel):
    file_name: Optional[str] = None
    relative_path: Optional[str] = None
    display_path: Optional[str] = None


class Progress(FrozenModel):
    percent: Optional[int] = None
    message: Optional[str] = None

    @property
    def unknown(self) -> bool:
        return self.percent is None

    @classmethod
    def from_build_info(cls, info: BuildInfo) -> "Progress":
        """Progress of a running build; capped at 99 until Jenkins reports it finished."""
        if not info.building:
            return cls(percent=100)
        if info.duration is None or not info.estimated_duration or info.estimated_duration <= 0:
            return cls()
        return cls(percent=min(99, max(0, info.duration * 100 // info.estimated_duration)))


class BuildContext(FrozenModel):
    """Host-side coordinates an imported artifact is attached to."""

    application_id: int
    release_number: Optional[str] = None
    build_number: Optional[str] = None
    deployable_id: Optional[int] = None
    execution_id: Optional[int] = None


class BuildOutcome(FrozenModel):
    queue_item_id: int
    state: BuildState
    build_number: Optional[int] = None
    result: Optional[str] = None
    info_returned: bool = False

    @property
    def succeeded(self) -> bool:
        return (self.result or "").lower() == "success"

    @property
    def result_text(self) -> str:
        return self.result or NOT_RETURNED


class BuildSummary(FrozenModel):
    id: str
    number: str
    result: Optional[str] = None
    timestamp: Optional[datetime] = None
    url: Optional[str] = None
    scope: Optional[str] = None


class DownloadResult(FrozenModel):
    build_number: str
    files: list[str] = []
