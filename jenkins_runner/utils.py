import base64
from datetime import datetime, timezone
from urllib.parse import unquote

from loguru import logger

from jenkins_runner.exceptions import InvalidBuildIdError


def generate_basic_auth_header(username: str, password: str | None) -> tuple[str, str]:
    """
    Returns the Basic Auth header for given username and password
    """
    credentials = f"{username}:{password or ''}"
    encoded = base64.b64encode(credentials.encode("utf-8")).decode("utf-8")

    return "Authorization", f"Basic {encoded}"


def parse_int(value: str | None) -> int | None:
    """Non-negative integer made only of ASCII digits, or None."""
    if value is None:
        return None
    value = value.strip()
    if not value.isascii() or not value.isdigit():
        return None
    return int(value)


def parse_build_id(build_id: str) -> tuple[str | None, int]:
    """
    Split a build id of the form ``{branch}-{number}`` (multi-branch projects)
    or ``{number}`` into its branch and build number.
    """
    branch, _, number = build_id.rpartition("-")
    build_number = parse_int(number)
    if build_number is None:
        raise InvalidBuildIdError(build_id)
    return branch or None, build_number


def parse_legacy_parameters(additional_parameters: str) -> dict[str, str]:
    """
    Convert a ``name=value&name2=value2`` query string into a parameter mapping.
    """
    parameters: dict[str, str] = {}
    for pair in additional_parameters.split("&"):
        if not pair:
            continue
        name, _, value = pair.partition("=")
        parameters[unquote(name)] = unquote(value)
    return parameters


def normalize_artifact_name(artifact_name: str) -> str:
    """Trim whitespace and a trailing ``.zip`` from the stored artifact name."""
    name = artifact_name.replace("\\", "/").rsplit("/", 1)[-1].strip()
    if name.lower().endswith(".zip"):
        return name[: -len(".zip")]
    return name


def convert_timestamp_to_utc_dt(timestamp: int | str | None) -> datetime | None:
    if timestamp is None:
        return None
    try:
        return datetime.fromtimestamp(int(timestamp) / 1000.0, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError) as e:
        logger.warning(f"Could not convert Jenkins timestamp {timestamp!r}: {e}")
        return None
