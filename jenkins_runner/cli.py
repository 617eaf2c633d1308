# -*- coding: utf-8 -*-
import asyncio
import sys
from typing import Any, Coroutine, TypeVar

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from jenkins_runner import __version__
from jenkins_runner.core.artifacts import ArtifactDownloader
from jenkins_runner.core.client import JenkinsClient
from jenkins_runner.core.importer import ArtifactImporter, DirectoryArtifactSink
from jenkins_runner.core.orchestrator import BuildOrchestrator
from jenkins_runner.core.types import BuildContext, Progress
from jenkins_runner.exceptions import JenkinsRunnerException
from jenkins_runner.log import setup_logger
from jenkins_runner.settings import JenkinsSettings, reveal_secret

T = TypeVar("T")

console = Console()


def run_async(coroutine: Coroutine[Any, Any, T]) -> T:
    try:
        return asyncio.run(coroutine)
    except JenkinsRunnerException as e:
        console.print(str(e), style="bold red", markup=False)
        sys.exit(1)


def create_client(settings: JenkinsSettings) -> JenkinsClient:
    return JenkinsClient(
        settings.connection,
        timeout=settings.client_timeout,
        chunk_size=settings.download_chunk_size,
    )


@click.group
@click.version_option(__version__, prog_name="jenkins-runner")
@click.option("--server-url", "server_url", help="Jenkins server URL (JENKINS_SERVER_URL).")
@click.option("--user-name", "user_name", help="Jenkins user name (JENKINS_USER_NAME).")
@click.option(
    "--secret",
    "secret",
    help="Jenkins password or API token (JENKINS_SECRET).",
)
@click.option(
    "--csrf/--no-csrf",
    "csrf_protection_enabled",
    default=None,
    help="Negotiate a CSRF crumb before triggering builds.",
)
@click.option(
    "-l",
    "--log-level",
    "log_level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    default=None,
    help="Set the logging level. Defaults to JENKINS_LOG_LEVEL or INFO.",
)
@click.pass_context
def cli_start(ctx: click.Context, **overrides: Any) -> None:
    # jenkins-runner root command
    settings = JenkinsSettings(
        **{name: value for name, value in overrides.items() if value is not None}
    )
    setup_logger(settings.log_level, reveal_secret(settings.secret))
    ctx.obj = settings


@cli_start.command()
@click.pass_obj
def jobs(settings: JenkinsSettings) -> None:
    """
    List the jobs on the Jenkins server.
    """

    async def list_jobs() -> list[str]:
        async with create_client(settings) as client:
            return await client.list_job_names()

    for name in run_async(list_jobs()):
        console.print(f"[bold][blue]{escape(name)}[/blue][/bold]")


@cli_start.command()
@click.argument("job")
@click.pass_obj
def branches(settings: JenkinsSettings, job: str) -> None:
    """
    List the branches of a multi-branch JOB.
    """

    async def list_branches() -> list[str]:
        async with create_client(settings) as client:
            return await client.list_branches(job)

    names = run_async(list_branches())
    if not names:
        console.print(f"{job} is not a multi-branch project.")
    for name in names:
        console.print(name)


@cli_start.command()
@click.argument("job")
@click.option("-b", "--branch", "branch", default=None, help="Branch of a multi-branch project.")
@click.pass_obj
def builds(settings: JenkinsSettings, job: str, branch: str | None) -> None:
    """
    Show the builds of JOB, recursing into branches of multi-branch projects.
    """

    async def list_builds() -> list[Any]:
        async with create_client(settings) as client:
            return [build async for build in client.list_builds(job, branch)]

    table = Table("Id", "Result", "Started", "Branch")
    for build in run_async(list_builds()):
        table.add_row(
            build.id,
            build.result or "",
            build.timestamp.isoformat() if build.timestamp else "",
            build.scope or "",
        )
    console.print(table)


@cli_start.command(name="queue-build")
@click.argument("job")
@click.option("-b", "--branch", "branch", default=None, help="Branch of a multi-branch project.")
@click.option(
    "-p",
    "--param",
    "params",
    multiple=True,
    help="Build parameter as NAME=VALUE. May be repeated.",
)
@click.option(
    "--additional-parameters",
    "additional_parameters",
    default=None,
    help="Deprecated query string form of the build parameters.",
)
@click.option(
    "--wait-for-start/--no-wait-for-start",
    "wait_for_start",
    default=True,
    help="Wait until Jenkins assigns a build number.",
)
@click.option(
    "--wait-for-completion/--no-wait-for-completion",
    "wait_for_completion",
    default=True,
    help="Wait until the build finishes.",
)
@click.pass_obj
def queue_build(
    settings: JenkinsSettings,
    job: str,
    branch: str | None,
    params: tuple[str, ...],
    additional_parameters: str | None,
    wait_for_start: bool,
    wait_for_completion: bool,
) -> None:
    """
    Queue a build of JOB and optionally wait for it to finish.
    """
    parameters = {}
    for param in params:
        name, separator, value = param.partition("=")
        if not separator:
            raise click.BadParameter(f"{param!r} is not NAME=VALUE", param_hint="--param")
        parameters[name] = value

    def report(progress: Progress) -> None:
        if progress.message:
            console.print(f"[dim]{escape(progress.message)}[/dim]")
        elif not progress.unknown:
            console.print(f"[dim]{progress.percent}%[/dim]")

    async def queue() -> Any:
        async with create_client(settings) as client:
            orchestrator = BuildOrchestrator(
                client,
                poll_interval=settings.poll_interval_seconds,
                build_info_attempts=settings.build_info_attempts,
                on_progress=report,
            )
            return await orchestrator.run(
                job,
                branch,
                parameters=parameters or None,
                additional_parameters=additional_parameters,
                wait_for_start=wait_for_start,
                wait_for_completion=wait_for_completion,
            )

    outcome = run_async(queue())
    console.print(f"Queued as item {outcome.queue_item_id}.")
    if outcome.build_number is not None:
        console.print(f"Jenkins build number: [bold]{outcome.build_number}[/bold]")

    if wait_for_completion:
        if not outcome.succeeded:
            console.print(f"[bold red]Build result: {outcome.result_text}[/bold red]")
            sys.exit(1)
        console.print(f"[bold green]Build result: {outcome.result_text}[/bold green]")


@cli_start.command(name="download-artifacts")
@click.argument("job")
@click.argument("target", type=click.Path(file_okay=False))
@click.option("-b", "--branch", "branch", default=None, help="Branch of a multi-branch project.")
@click.option(
    "-n",
    "--build-number",
    "build_number",
    default="lastSuccessfulBuild",
    help="Build number or special token such as lastSuccessfulBuild.",
)
@click.option(
    "--pattern",
    "pattern",
    default=None,
    help="Wildcard matched against artifact file names; all artifacts when omitted.",
)
@click.option(
    "--extract/--no-extract",
    "extract",
    default=True,
    help="Extract the archive when downloading all artifacts.",
)
@click.pass_obj
def download_artifacts(
    settings: JenkinsSettings,
    job: str,
    target: str,
    branch: str | None,
    build_number: str,
    pattern: str | None,
    extract: bool,
) -> None:
    """
    Download artifacts of a JOB build into TARGET.
    """

    async def download() -> Any:
        async with create_client(settings) as client:
            return await ArtifactDownloader(client).download(
                job, branch, build_number, target, pattern=pattern, extract=extract
            )

    result = run_async(download())
    console.print(f"Jenkins build number: [bold]{result.build_number}[/bold]")
    for path in result.files:
        console.print(path)


@cli_start.command(name="import-artifact")
@click.argument("job")
@click.argument("artifact_name")
@click.argument("store", type=click.Path(file_okay=False))
@click.option("-b", "--branch", "branch", default=None, help="Branch of a multi-branch project.")
@click.option(
    "-n",
    "--build-number",
    "build_number",
    default="lastSuccessfulBuild",
    help="Build number or special token such as lastSuccessfulBuild.",
)
@click.option("--application-id", "application_id", type=int, default=0)
@click.option("--sub-path", "sub_path", default=None, help="Archive only this artifact folder.")
@click.pass_obj
def import_artifact(
    settings: JenkinsSettings,
    job: str,
    artifact_name: str,
    store: str,
    branch: str | None,
    build_number: str,
    application_id: int,
    sub_path: str | None,
) -> None:
    """
    Import the archive of a JOB build into the artifact STORE directory as ARTIFACT_NAME.
    """
    context = BuildContext(application_id=application_id, build_number=build_number)

    async def import_() -> str:
        async with create_client(settings) as client:
            importer = ArtifactImporter(client, DirectoryArtifactSink(store))
            return await importer.import_artifact(
                job, branch, build_number, artifact_name, context, sub_path
            )

    number = run_async(import_())
    console.print(f"Imported Jenkins build [bold]{number}[/bold].")
