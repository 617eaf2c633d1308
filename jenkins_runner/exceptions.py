"""
Exceptions raised by the Jenkins client and the build workflows built on it.

Expected absence (a 404 on build info, a symbolic build number Jenkins does not
know about) is not modelled here; see ``jenkins_runner.core.result``.
"""


class JenkinsRunnerException(Exception):
    pass


class ConfigurationError(JenkinsRunnerException):
    """Raised when the connection configuration cannot serve the operation"""

    def __init__(self, message: str = "Jenkins server URL has not been set.") -> None:
        super().__init__(message)


class RequestFailed(JenkinsRunnerException):
    """Raised when Jenkins answers a required call with a non-success status"""

    def __init__(
        self,
        status_code: int,
        url: str,
        body: str | None = None,
        message: str | None = None,
    ) -> None:
        if message is None:
            message = f"Jenkins returned HTTP {status_code} for {url}"
            if body:
                message += f"; response body was: {body}"
        super().__init__(message)
        self.status_code = status_code
        self.url = url
        self.body = body


class ResolutionFailed(JenkinsRunnerException):
    """Raised when a build number token cannot be resolved to a concrete build"""

    def __init__(self, job: str, branch: str | None, token: str) -> None:
        scope = f" (branch \"{branch}\")" if branch else ""
        super().__init__(
            f"Could not resolve Jenkins build number \"{token}\" for job \"{job}\"{scope}. "
            "This can mean that the special build type was not found, that there are no "
            "builds for the job, or that the job was not found or is disabled."
        )
        self.job = job
        self.branch = branch
        self.token = token


class MalformedResponse(JenkinsRunnerException):
    """Raised when a Jenkins response is missing the elements a call relies on"""


class InvalidBuildIdError(JenkinsRunnerException, ValueError):
    def __init__(self, build_id: str) -> None:
        super().__init__(f"build id has an unexpected format (\"{build_id}\").")
        self.build_id = build_id
