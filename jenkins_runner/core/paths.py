"""
URL path fragments for the Jenkins XML API.

Every function here is pure. Job, branch and build names are escaped as a
single path segment, so a nested job name such as ``folder/app`` is sent as
``folder%2Fapp`` rather than being decomposed into ``/job/folder/job/app``.
"""
from urllib.parse import quote

from jenkins_runner.constants import ENDPOINTS


def escape_segment(value: str) -> str:
    return quote(value, safe="")


def join_path(*parts: str) -> str:
    """Join path fragments, trimming one boundary slash on each side of a join."""
    path = ""
    for part in parts:
        if not part:
            continue
        if not path:
            path = part
            continue
        path = f"{path.removesuffix('/')}/{part.removeprefix('/')}"
    return path


def job_path(job: str, branch: str | None = None) -> str:
    if not job:
        raise ValueError("job name must not be empty")

    path = f"/job/{escape_segment(job)}"
    if branch:
        path = join_path(path, "job", escape_segment(branch))
    return path


def build_path(job: str, build: str | int, branch: str | None = None) -> str:
    return join_path(job_path(job, branch), escape_segment(str(build)))


def last_folder(sub_path: str) -> str:
    return sub_path.strip("/").rsplit("/", 1)[-1]


def artifact_path(
    job: str,
    build: str | int,
    sub_path: str | None = None,
    branch: str | None = None,
) -> str:
    """
    Path of a zip of the build's artifacts.

    Without ``sub_path`` the whole archive is addressed; with it, a zip scoped
    to that folder and named after its last segment.
    """
    base = build_path(job, build, branch)
    sub_path = (sub_path or "").strip("/")
    if not sub_path:
        return join_path(base, ENDPOINTS["archive"])

    return join_path(
        base,
        "artifact",
        quote(sub_path, safe="/"),
        "*zip*",
        f"{quote(last_folder(sub_path), safe='')}.zip",
    )


def single_artifact_path(
    job: str, build: str | int, relative_path: str, branch: str | None = None
) -> str:
    return join_path(
        build_path(job, build, branch), "artifact", quote(relative_path, safe="/")
    )


def api_path(path: str, endpoint: str = "projects") -> str:
    return join_path(path, ENDPOINTS[endpoint])


def queue_path(queue_item_id: int | str) -> str:
    return api_path(f"/queue/item/{queue_item_id}", "queue_item")
