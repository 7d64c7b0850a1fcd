# -----------------------------------------------------------------------------
# INFRASTRUCTURE LAYER
# -----------------------------------------------------------------------------
# Network adapters:
# - calculate_installer_hash: streaming SHA256 of a remote installer
# - GitHubClient: winget-pkgs fork / branch / commit / pull request calls
# -----------------------------------------------------------------------------

from .github_client import GitHubClient, GitHubSettings
from .hasher import DownloadSettings, calculate_installer_hash, hash_bytes

__all__ = [
    "GitHubClient", "GitHubSettings",
    "DownloadSettings", "calculate_installer_hash", "hash_bytes",
]
