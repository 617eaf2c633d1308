from .artifacts import ArtifactDownloader, filter_artifacts, wildcard_to_regex
from .client import JenkinsClient
from .importer import ArtifactImporter, ArtifactSink, DirectoryArtifactSink
from .orchestrator import BuildOrchestrator
from .result import Absent, Failed, Ok, Result
from .transport import JenkinsTransport

__all__ = [
    "Absent",
    "ArtifactDownloader",
    "ArtifactImporter",
    "ArtifactSink",
    "BuildOrchestrator",
    "DirectoryArtifactSink",
    "Failed",
    "JenkinsClient",
    "JenkinsTransport",
    "Ok",
    "Result",
    "filter_artifacts",
    "wildcard_to_regex",
]
