"""Unit tests for jenkins_runner/core/client.py."""

from pathlib import Path
from typing import Callable

import pytest
import pytest_httpx

from jenkins_runner.core.client import JenkinsClient
from jenkins_runner.core.types import BuildArtifact
from jenkins_runner.exceptions import MalformedResponse, ResolutionFailed
from jenkins_runner.settings import ConnectionConfig

BASE = "http://jenkins.local"


# ── Jobs and branches ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_job_names(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient
) -> None:
    httpx_mock.add_response(
        url=f"{BASE}/api/xml?tree=jobs[name]",
        text="<hudson><job><name>app</name></job><job><name>web api</name></job></hudson>",
    )

    async with client:
        names = await client.list_job_names()

    assert names == ["app", "web api"]


@pytest.mark.asyncio
async def test_list_job_names_without_server_url() -> None:
    async with JenkinsClient(ConnectionConfig()) as client:
        assert await client.list_job_names() == []


@pytest.mark.asyncio
async def test_list_branches_of_multi_branch_project(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient
) -> None:
    httpx_mock.add_response(
        url=f"{BASE}/job/pipeline/api/xml",
        text=(
            "<workflowMultiBranchProject>"
            "<job><name>main</name><url>http://jenkins.local/job/pipeline/job/main/</url></job>"
            "<job><name>feature%2Fx</name><url>http://jenkins.local/job/pipeline/job/feature%252Fx/</url></job>"
            "</workflowMultiBranchProject>"
        ),
    )

    async with client:
        branches = await client.list_branches("pipeline")

    assert branches == ["main", "feature%2Fx"]


@pytest.mark.asyncio
async def test_list_branches_of_plain_job_is_empty(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient, job_xml: str
) -> None:
    httpx_mock.add_response(url=f"{BASE}/job/app/api/xml", text=job_xml)

    async with client:
        assert await client.list_branches("app") == []


@pytest.mark.asyncio
async def test_validate_connection_warns_without_projects(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient
) -> None:
    httpx_mock.add_response(url=f"{BASE}/api/xml", text="<hudson/>")

    async with client:
        assert await client.validate_connection() is True


# ── Build numbers ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_resolve_numeric_token_without_request(client: JenkinsClient) -> None:
    async with client:
        assert await client.resolve_special_build_number("app", None, "42") == "42"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "token, expected",
    [
        ("lastBuild", "12"),
        ("lastSuccessfulBuild", "11"),
        ("lastFailedBuild", "12"),
        ("lastStableBuild", None),
    ],
)
async def test_resolve_special_build_number(
    httpx_mock: pytest_httpx.HTTPXMock,
    client: JenkinsClient,
    job_xml: str,
    token: str,
    expected: str | None,
) -> None:
    httpx_mock.add_response(url=f"{BASE}/job/app/api/xml", text=job_xml)

    async with client:
        assert await client.resolve_special_build_number("app", None, token) == expected


@pytest.mark.asyncio
async def test_resolve_special_build_number_of_missing_job(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient
) -> None:
    httpx_mock.add_response(url=f"{BASE}/job/gone/job/main/api/xml", status_code=404)

    async with client:
        assert await client.resolve_special_build_number("gone", "main", "lastBuild") is None


@pytest.mark.asyncio
@pytest.mark.parametrize("token", ["build", "*", "name", "-3"])
async def test_resolve_unknown_token_without_request(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient, token: str
) -> None:
    async with client:
        assert await client.resolve_special_build_number("app", None, token) is None


@pytest.mark.asyncio
async def test_resolve_special_build_number_reads_direct_children_only(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient
) -> None:
    httpx_mock.add_response(
        url=f"{BASE}/job/app/api/xml",
        text=(
            "<freeStyleProject>"
            "<build><number>12</number><lastBuild><number>99</number></lastBuild></build>"
            "<lastBuild><number>12</number></lastBuild>"
            "</freeStyleProject>"
        ),
    )

    async with client:
        assert await client.resolve_special_build_number("app", None, "lastBuild") == "12"


@pytest.mark.asyncio
async def test_download_artifact_rejects_unknown_token(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient, tmp_path: Path
) -> None:
    async with client:
        with pytest.raises(ResolutionFailed):
            await client.download_artifact("app", None, "build", tmp_path / "a.zip")


@pytest.mark.asyncio
async def test_list_build_numbers_keeps_duplicates(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient
) -> None:
    httpx_mock.add_response(
        url=f"{BASE}/job/app/api/xml?xpath=/*/build/number&wrapper=builds",
        text="<builds><number>12</number><number>11</number><number>11</number></builds>",
    )

    async with client:
        numbers = await client.list_build_numbers("app")

    assert numbers == [
        "lastBuild",
        "lastCompletedBuild",
        "lastStableBuild",
        "lastSuccessfulBuild",
        "12",
        "11",
        "11",
    ]


@pytest.mark.asyncio
async def test_get_next_build_number(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient
) -> None:
    httpx_mock.add_response(
        url=f"{BASE}/job/app/api/xml?tree=nextBuildNumber",
        text="<freeStyleProject><nextBuildNumber>13</nextBuildNumber></freeStyleProject>",
    )

    async with client:
        assert await client.get_next_build_number("app") == "13"


# ── Builds ─────────────────────────────────────────────────────────────────────


BUILD_INFO_URL = (
    f"{BASE}/job/app/12/api/xml?tree=building,result,number,duration,estimatedDuration"
)


@pytest.mark.asyncio
async def test_get_build_info(
    httpx_mock: pytest_httpx.HTTPXMock,
    client: JenkinsClient,
    build_info_xml: Callable[..., str],
) -> None:
    httpx_mock.add_response(
        url=BUILD_INFO_URL,
        text=build_info_xml(building="true", result=None, duration=500, estimatedDuration=1000),
    )

    async with client:
        info = await client.get_build_info("app", None, 12)

    assert info is not None
    assert info.building is True
    assert info.duration == 500
    assert info.estimated_duration == 1000


@pytest.mark.asyncio
async def test_get_build_info_reads_missing_elements_as_none(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient
) -> None:
    httpx_mock.add_response(
        url=BUILD_INFO_URL,
        text="<freeStyleBuild><building>true</building><number>12</number></freeStyleBuild>",
    )

    async with client:
        info = await client.get_build_info("app", None, "12")

    assert info is not None
    assert info.result is None
    assert info.duration is None
    assert info.estimated_duration is None


@pytest.mark.asyncio
async def test_get_build_info_not_found_is_none(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient
) -> None:
    httpx_mock.add_response(url=BUILD_INFO_URL, status_code=404)

    async with client:
        assert await client.get_build_info("app", None, 12) is None


@pytest.mark.asyncio
async def test_malformed_xml_raises(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient
) -> None:
    httpx_mock.add_response(url=BUILD_INFO_URL, text="<html>oops")

    async with client:
        with pytest.raises(MalformedResponse):
            await client.get_build_info("app", None, 12)


@pytest.mark.asyncio
async def test_get_build_variables_resolves_token(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient, job_xml: str, build_xml: str
) -> None:
    httpx_mock.add_response(url=f"{BASE}/job/app/api/xml", text=job_xml)
    httpx_mock.add_response(url=f"{BASE}/job/app/11/api/xml", text=build_xml)

    async with client:
        variables = await client.get_build_variables("app", None, "lastSuccessfulBuild")

    assert variables == {"ENV": "prod", "DEBUG": "false"}


@pytest.mark.asyncio
async def test_list_builds_recurses_into_branches(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient, build_xml: str
) -> None:
    httpx_mock.add_response(
        url=f"{BASE}/job/pipeline/api/xml",
        text=(
            "<workflowMultiBranchProject>"
            "<job><name>main</name><url>http://jenkins.local/job/pipeline/job/main/</url></job>"
            "</workflowMultiBranchProject>"
        ),
    )
    httpx_mock.add_response(
        url=f"{BASE}/job/pipeline/job/main/api/xml",
        text=(
            "<workflowJob><build><number>11</number>"
            "<url>http://jenkins.local/job/pipeline/job/main/11/</url></build></workflowJob>"
        ),
    )
    httpx_mock.add_response(url=f"{BASE}/job/pipeline/job/main/11/api/xml", text=build_xml)

    async with client:
        builds = [build async for build in client.list_builds("pipeline")]

    assert len(builds) == 1
    assert builds[0].id == "main-11"
    assert builds[0].number == "11"
    assert builds[0].scope == "main"
    assert builds[0].result == "SUCCESS"
    assert builds[0].timestamp is not None
    assert builds[0].timestamp.year == 2023


# ── Artifacts ──────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_artifacts_reads_fields_defensively(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient, build_xml: str
) -> None:
    httpx_mock.add_response(url=f"{BASE}/job/app/11/api/xml", text=build_xml)

    async with client:
        artifacts = await client.list_artifacts("app", None, "11")

    assert artifacts == [
        BuildArtifact(display_path="app.jar", file_name="app.jar", relative_path="target/app.jar"),
        BuildArtifact(file_name="README.md", relative_path="README.md"),
        BuildArtifact(display_path="orphan"),
    ]


@pytest.mark.asyncio
async def test_download_artifact_resolves_symbolic_build(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient, job_xml: str, tmp_path: Path
) -> None:
    httpx_mock.add_response(url=f"{BASE}/job/app/api/xml", text=job_xml)
    httpx_mock.add_response(
        url=f"{BASE}/job/app/11/artifact/*zip*/archive.zip", content=b"zip-bytes"
    )
    destination = tmp_path / "archive.zip"

    async with client:
        await client.download_artifact("app", None, "lastSuccessfulBuild", destination)

    assert destination.read_bytes() == b"zip-bytes"


@pytest.mark.asyncio
async def test_download_artifact_unresolvable_token(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient, job_xml: str, tmp_path: Path
) -> None:
    httpx_mock.add_response(url=f"{BASE}/job/app/api/xml", text=job_xml)

    async with client:
        with pytest.raises(ResolutionFailed) as exc_info:
            await client.download_artifact("app", None, "lastStableBuild", tmp_path / "a.zip")

    assert exc_info.value.token == "lastStableBuild"
    assert "app" in str(exc_info.value)


@pytest.mark.asyncio
async def test_open_single_artifact_streams_bytes(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient
) -> None:
    httpx_mock.add_response(
        url=f"{BASE}/job/app/11/artifact/target/app.jar", content=b"jar-bytes"
    )
    artifact = BuildArtifact(file_name="app.jar", relative_path="target/app.jar")

    async with client:
        async with client.open_single_artifact("app", None, "11", artifact) as chunks:
            body = b"".join([chunk async for chunk in chunks])

    assert body == b"jar-bytes"


@pytest.mark.asyncio
async def test_open_single_artifact_without_relative_path(client: JenkinsClient) -> None:
    artifact = BuildArtifact(file_name="orphan")

    async with client:
        with pytest.raises(MalformedResponse):
            async with client.open_single_artifact("app", None, "11", artifact):
                pass


# ── Queue ──────────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_trigger_build_without_parameters_posts_to_build(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient
) -> None:
    httpx_mock.add_response(
        method="POST",
        url=f"{BASE}/job/app/build",
        status_code=201,
        headers={"Location": f"{BASE}/queue/item/4711/"},
    )

    async with client:
        queue_item_id = await client.trigger_build("app", None, additional_parameters="")

    assert queue_item_id == 4711


@pytest.mark.asyncio
async def test_trigger_build_with_query_string(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient
) -> None:
    httpx_mock.add_response(
        method="POST",
        url=f"{BASE}/job/app/job/main/buildWithParameters?ENV=prod&DEBUG=false",
        status_code=201,
        headers={"Location": f"{BASE}/queue/item/8/"},
    )

    async with client:
        queue_item_id = await client.trigger_build(
            "app", "main", additional_parameters="ENV=prod&DEBUG=false"
        )

    assert queue_item_id == 8


@pytest.mark.asyncio
async def test_trigger_build_with_form_parameters(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient
) -> None:
    httpx_mock.add_response(
        method="POST",
        url=f"{BASE}/job/app/buildWithParameters",
        status_code=201,
        headers={"Location": f"{BASE}/queue/item/9"},
    )

    async with client:
        queue_item_id = await client.trigger_build("app", parameters={"ENV": "prod qa"})

    assert queue_item_id == 9
    request = httpx_mock.get_request()
    assert request is not None
    assert request.content == b"ENV=prod+qa"


@pytest.mark.asyncio
async def test_trigger_build_without_location(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient
) -> None:
    httpx_mock.add_response(method="POST", url=f"{BASE}/job/app/build", status_code=201)

    async with client:
        with pytest.raises(MalformedResponse):
            await client.trigger_build("app")


@pytest.mark.asyncio
async def test_get_queued_build_info_waiting(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient
) -> None:
    httpx_mock.add_response(
        url=f"{BASE}/queue/item/8/api/xml?tree=executable[number],why",
        text="<waitingItem><why>In the quiet period.</why></waitingItem>",
    )

    async with client:
        item = await client.get_queued_build_info(8)

    assert not item.started
    assert item.why == "In the quiet period."


@pytest.mark.asyncio
async def test_get_queued_build_info_started(
    httpx_mock: pytest_httpx.HTTPXMock, client: JenkinsClient
) -> None:
    httpx_mock.add_response(
        url=f"{BASE}/queue/item/8/api/xml?tree=executable[number],why",
        text="<leftItem><executable><number>42</number></executable></leftItem>",
    )

    async with client:
        item = await client.get_queued_build_info(8)

    assert item.started
    assert item.build_number == 42
    assert item.why is None
