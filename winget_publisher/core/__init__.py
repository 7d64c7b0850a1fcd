# -----------------------------------------------------------------------------
# CORE LAYER
# -----------------------------------------------------------------------------
# The publish pipeline:
# - load_config / validate_config: configuration boundary
# - compile_manifests: config + installers -> ManifestSet
# - render_files: ManifestSet -> {path: YAML}
# - Publisher: hash -> compile -> dry-run report | fork / branch / commit / PR
# - WinGetPlugin: host-facing entry point
# -----------------------------------------------------------------------------

from .compiler import compile_manifests, manifest_path
from .config import load_config, load_config_file, validate_config
from .publisher import Publisher, RepositoryGateway
from .plugin import WinGetPlugin
from .serializer import render_files

__all__ = [
    "compile_manifests", "manifest_path",
    "load_config", "load_config_file", "validate_config",
    "Publisher", "RepositoryGateway",
    "WinGetPlugin",
    "render_files",
]
