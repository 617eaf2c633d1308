from .version import __version__
from .core.client import JenkinsClient
from .core.importer import ArtifactImporter
from .core.orchestrator import BuildOrchestrator
from .settings import ConnectionConfig, JenkinsSettings

__all__ = [
    "ArtifactImporter",
    "BuildOrchestrator",
    "ConnectionConfig",
    "JenkinsClient",
    "JenkinsSettings",
    "__version__",
]
