# Copyright 2026 Pramod Kumar Voola
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# -----------------------------------------------------------------------------
# CONFIGURATION - PARSING & PRE-FLIGHT VALIDATION
# -----------------------------------------------------------------------------
# Responsibility: Turn the untyped mapping handed over by the plugin host (or
# read from a YAML file by the CLI) into an immutable PublisherConfig, and
# report every configuration problem before any network activity.
#
# Parsing is tolerant: unknown keys are ignored and optional values of the
# wrong type are dropped, so a typo never crashes the host. Validation is
# strict and reports field path -> message.
# -----------------------------------------------------------------------------

import os
from pathlib import Path

import yaml
from rich.console import Console

from winget_publisher.domain.errors import ConfigurationError
from winget_publisher.domain.models import (
    Architecture,
    InstallerConfig,
    LocaleConfig,
    MetadataConfig,
    PublisherConfig,
    PullRequestConfig,
    ValidationIssue,
    is_valid_package_id,
)

console = Console()

TOKEN_ENV_VAR = "GITHUB_TOKEN"
MAX_SHORT_DESCRIPTION = 256

_METADATA_STRINGS = (
    "publisher",
    "publisher_url",
    "publisher_support_url",
    "name",
    "short_description",
    "license",
    "license_url",
    "copyright",
    "package_url",
    "moniker",
    "release_notes_url",
)


def _mapping(value) -> dict:
    return value if isinstance(value, dict) else {}


def _sequence(value) -> list:
    return value if isinstance(value, list) else []


def _strings(raw: dict, keys) -> dict[str, str]:
    """Keep only the keys whose value is a string."""
    return {key: raw[key] for key in keys if isinstance(raw.get(key), str)}


def _parse_installer(raw: dict) -> InstallerConfig:
    fields = _strings(raw, ("url", "architecture", "type", "scope", "product_code"))
    switches = {k: v for k, v in _mapping(raw.get("switches")).items() if isinstance(v, str)}
    return InstallerConfig(switches=switches, **fields)


def _parse_metadata(raw: dict) -> MetadataConfig:
    tags = [t for t in _sequence(raw.get("tags")) if isinstance(t, str)]
    return MetadataConfig(tags=tags, **_strings(raw, _METADATA_STRINGS))


def _parse_pull_request(raw: dict) -> PullRequestConfig:
    return PullRequestConfig(**_strings(raw, ("fork_owner", "base_branch", "title")))


def load_config(raw: dict | None) -> PublisherConfig:
    """
    Parse the raw plugin configuration.

    Defaults are applied here and only here:
    - github_token falls back to $GITHUB_TOKEN
    - pull_request.base_branch defaults to "master"
    - pull_request.title defaults to "New version: {{.PackageId}} version {{.Version}}"

    Args:
        raw: Mapping as supplied by the host (None is treated as empty)

    Returns:
        Immutable PublisherConfig
    """
    raw = _mapping(raw)

    token = raw.get("github_token")
    if not isinstance(token, str) or not token:
        token = os.getenv(TOKEN_ENV_VAR, "")

    dry_run = raw.get("dry_run")

    return PublisherConfig(
        package_id=raw["package_id"] if isinstance(raw.get("package_id"), str) else "",
        github_token=token,
        installers=[
            _parse_installer(item) for item in _sequence(raw.get("installers")) if isinstance(item, dict)
        ],
        metadata=_parse_metadata(_mapping(raw.get("metadata"))),
        locales=[
            LocaleConfig(**_strings(item, ("locale", "description")))
            for item in _sequence(raw.get("locales"))
            if isinstance(item, dict)
        ],
        pull_request=_parse_pull_request(_mapping(raw.get("pull_request"))),
        dry_run=dry_run if isinstance(dry_run, bool) else False,
    )


def validate_config(config: PublisherConfig) -> list[ValidationIssue]:
    """
    Run the pre-flight checks.

    Returns:
        Every problem found (empty when the configuration is usable)
    """
    issues: list[ValidationIssue] = []

    def add(field: str, message: str) -> None:
        issues.append(ValidationIssue(field=field, message=message))

    if not is_valid_package_id(config.package_id):
        add("package_id", "Package ID must be in format Publisher.PackageName")

    if not config.github_token:
        add("github_token", "GitHub token is required")

    if not config.installers:
        add("installers", "At least one installer is required")

    architectures = {a.value for a in Architecture}
    for i, installer in enumerate(config.installers):
        if not installer.url:
            add(f"installers[{i}].url", "Installer URL is required")
        if installer.architecture not in architectures:
            add(f"installers[{i}].architecture", "Architecture must be x86, x64, arm, or arm64")

    meta = config.metadata
    if not meta.publisher:
        add("metadata.publisher", "Publisher is required")
    if not meta.name:
        add("metadata.name", "Package name is required")
    if not meta.short_description:
        add("metadata.short_description", "Short description is required")
    elif len(meta.short_description) > MAX_SHORT_DESCRIPTION:
        add(
            "metadata.short_description",
            f"Short description must be <= {MAX_SHORT_DESCRIPTION} characters",
        )
    if not meta.license:
        add("metadata.license", "License is required")

    return issues


def require_valid(config: PublisherConfig) -> PublisherConfig:
    """
    Raises:
        ConfigurationError: Listing every issue, if validation fails.
    """
    issues = validate_config(config)
    if issues:
        summary = "; ".join(f"{i.field}: {i.message}" for i in issues)
        raise ConfigurationError(f"invalid configuration: {summary}", issues)
    return config


def load_config_file(path: Path | str) -> dict:
    """
    Read a YAML configuration file into a raw mapping.

    A top-level "winget" section is unwrapped, so the plugin block of a larger
    release config can be used directly.

    Raises:
        ConfigurationError: If the file is missing or not valid YAML.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"configuration file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"failed to read {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping")

    if isinstance(data.get("winget"), dict):
        data = data["winget"]

    console.print(f"[cyan][CONFIG] Loaded {path}[/cyan]")
    return data
