"""Constants for the Jenkins XML API.

Keep this file focused on constants only.
"""
from enum import StrEnum


class SpecialBuildNumber(StrEnum):
    LAST_BUILD = "lastBuild"
    LAST_COMPLETED_BUILD = "lastCompletedBuild"
    LAST_STABLE_BUILD = "lastStableBuild"
    LAST_SUCCESSFUL_BUILD = "lastSuccessfulBuild"
    LAST_FAILED_BUILD = "lastFailedBuild"
    LAST_UNSUCCESSFUL_BUILD = "lastUnsuccessfulBuild"


SPECIAL_BUILD_NUMBERS = frozenset(token.value for token in SpecialBuildNumber)

# offered ahead of concrete build numbers when listing builds
CANONICAL_BUILD_NUMBERS = (
    SpecialBuildNumber.LAST_BUILD.value,
    SpecialBuildNumber.LAST_COMPLETED_BUILD.value,
    SpecialBuildNumber.LAST_STABLE_BUILD.value,
    SpecialBuildNumber.LAST_SUCCESSFUL_BUILD.value,
)

MULTI_BRANCH_PROJECT_TAG = "workflowMultiBranchProject"

DEFAULT_POLL_INTERVAL_SECONDS = 2.0
DEFAULT_BUILD_INFO_ATTEMPTS = 5
DEFAULT_CLIENT_TIMEOUT = 60
DEFAULT_DOWNLOAD_CHUNK_SIZE = 64 * 1024
VALIDATION_PROJECT_LIMIT = 5

NOT_RETURNED = "<not returned>"

ENDPOINTS = {
    "jobs": "api/xml?tree=jobs[name]",
    "projects": "api/xml",
    "crumb": 'crumbIssuer/api/xml?xpath=concat(//crumbRequestField,":",//crumb)',
    "build_numbers": "api/xml?xpath=/*/build/number&wrapper=builds",
    "build_info": "api/xml?tree=building,result,number,duration,estimatedDuration",
    "next_build_number": "api/xml?tree=nextBuildNumber",
    "queue_item": "api/xml?tree=executable[number],why",
    "archive": "artifact/*zip*/archive.zip",
}
