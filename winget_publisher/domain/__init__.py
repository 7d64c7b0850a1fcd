# -----------------------------------------------------------------------------
# DOMAIN LAYER
# -----------------------------------------------------------------------------
# Pydantic models for the publish configuration and the winget manifests,
# plus the error taxonomy shared by every layer.
# -----------------------------------------------------------------------------

from .context import RunContext
from .errors import (
    CompositionError,
    ConfigurationError,
    InvalidIdentifierError,
    PublishCancelled,
    PublishError,
    RemoteAPIError,
    TransferError,
)
from .manifests import (
    Installer,
    InstallerManifest,
    LocaleManifest,
    ManifestSet,
    ManifestSettings,
    VersionManifest,
)
from .models import (
    InstallerConfig,
    LocaleConfig,
    MetadataConfig,
    PublisherConfig,
    PublishResult,
    PublishStage,
    PullRequestConfig,
    ValidationIssue,
)

__all__ = [
    "RunContext",
    "CompositionError", "ConfigurationError", "InvalidIdentifierError",
    "PublishCancelled", "PublishError", "RemoteAPIError", "TransferError",
    "Installer", "InstallerManifest", "LocaleManifest", "ManifestSet",
    "ManifestSettings", "VersionManifest",
    "InstallerConfig", "LocaleConfig", "MetadataConfig", "PublisherConfig",
    "PublishResult", "PublishStage", "PullRequestConfig", "ValidationIssue",
]
