from urllib.parse import unquote

import pytest

from jenkins_runner.core.paths import (
    artifact_path,
    build_path,
    job_path,
    join_path,
    last_folder,
    queue_path,
    single_artifact_path,
)


@pytest.mark.parametrize(
    "job",
    ["app", "my app", "folder/app", "a&b=c?d#e", "100%", "ünïcode", "job+plus"],
)
def test_job_path_round_trips_reserved_characters(job: str) -> None:
    path = job_path(job)

    assert path.startswith("/job/")
    segment = path.removeprefix("/job/")
    assert "/" not in segment
    assert unquote(segment) == job


def test_job_path_with_branch() -> None:
    assert job_path("app", "feature/x") == "/job/app/job/feature%2Fx"


def test_job_path_requires_job() -> None:
    with pytest.raises(ValueError):
        job_path("")


def test_build_path() -> None:
    assert build_path("my app", "42") == "/job/my%20app/42"
    assert build_path("app", 7, branch="main") == "/job/app/job/main/7"


def test_artifact_path_defaults_to_whole_archive() -> None:
    assert artifact_path("app", "3") == "/job/app/3/artifact/*zip*/archive.zip"
    assert artifact_path("app", "3", "") == "/job/app/3/artifact/*zip*/archive.zip"


def test_artifact_path_scoped_to_sub_folder() -> None:
    assert (
        artifact_path("app", "3", "/dist/web/")
        == "/job/app/3/artifact/dist/web/*zip*/web.zip"
    )


def test_single_artifact_path() -> None:
    assert (
        single_artifact_path("app", "3", "target/my app.jar", branch="main")
        == "/job/app/job/main/3/artifact/target/my%20app.jar"
    )


def test_queue_path() -> None:
    assert queue_path(17) == "/queue/item/17/api/xml?tree=executable[number],why"


@pytest.mark.parametrize(
    "parts, expected",
    [
        (("http://jenkins/", "/job/a"), "http://jenkins/job/a"),
        (("http://jenkins", "job/a"), "http://jenkins/job/a"),
        (("/job/a/", "", "/api/xml"), "/job/a/api/xml"),
    ],
)
def test_join_path_never_doubles_slashes(parts: tuple[str, ...], expected: str) -> None:
    assert join_path(*parts) == expected


def test_last_folder() -> None:
    assert last_folder("a/b/c/") == "c"
    assert last_folder("single") == "single"
