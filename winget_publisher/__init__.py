# -----------------------------------------------------------------------------
# WINGET PUBLISHER
# -----------------------------------------------------------------------------
# Publishes a release into the winget-pkgs manifest repository:
# - Hash every installer (SHA256)
# - Render the version / installer / defaultLocale manifests
# - Open a Pull Request from a fork of microsoft/winget-pkgs
# -----------------------------------------------------------------------------

__version__ = "0.1.0"

__all__ = ["__version__"]
