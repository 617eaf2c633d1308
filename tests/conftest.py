"""Shared pytest fixtures for the jenkins-runner test suite."""

from typing import Any, Callable

import pytest

from jenkins_runner.core.client import JenkinsClient
from jenkins_runner.settings import ConnectionConfig

SERVER_URL = "http://jenkins.local"


@pytest.fixture
def server_url() -> str:
    return SERVER_URL


@pytest.fixture
def connection() -> ConnectionConfig:
    return ConnectionConfig(server_url=f"{SERVER_URL}/", user_name="admin", secret="s3cret")


@pytest.fixture
def csrf_connection() -> ConnectionConfig:
    return ConnectionConfig(
        server_url=SERVER_URL,
        user_name="admin",
        secret="s3cret",
        csrf_protection_enabled=True,
    )


@pytest.fixture
def client(connection: ConnectionConfig) -> JenkinsClient:
    return JenkinsClient(connection)


@pytest.fixture
def job_xml() -> str:
    return (
        "<freeStyleProject>"
        "<name>app</name>"
        "<lastBuild><number>12</number><url>http://jenkins.local/job/app/12/</url></lastBuild>"
        "<lastSuccessfulBuild><number>11</number></lastSuccessfulBuild>"
        "<lastFailedBuild><number>12</number></lastFailedBuild>"
        "</freeStyleProject>"
    )


@pytest.fixture
def build_xml() -> str:
    return (
        "<freeStyleBuild>"
        "<action><parameter><name>ENV</name><value>prod</value></parameter>"
        "<parameter><name>DEBUG</name><value>false</value></parameter></action>"
        "<artifact><displayPath>app.jar</displayPath><fileName>app.jar</fileName>"
        "<relativePath>target/app.jar</relativePath></artifact>"
        "<artifact><fileName>README.md</fileName><relativePath>README.md</relativePath></artifact>"
        "<artifact><displayPath>orphan</displayPath></artifact>"
        "<building>false</building><number>11</number><result>SUCCESS</result>"
        "<timestamp>1700000000000</timestamp>"
        "</freeStyleBuild>"
    )


def render_build_info(**fields: Any) -> str:
    elements: dict[str, Any] = {
        "building": "false",
        "result": "SUCCESS",
        "number": "11",
        "duration": "0",
        "estimatedDuration": "1000",
    }
    elements.update(fields)
    body = "".join(
        f"<{name}>{value}</{name}>" for name, value in elements.items() if value is not None
    )
    return f"<freeStyleBuild>{body}</freeStyleBuild>"


@pytest.fixture
def build_info_xml() -> Callable[..., str]:
    """Render a build-info response; pass ``name=None`` to leave an element out."""
    return render_build_info
