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
# DOMAIN MODELS - PUBLISH CONFIGURATION
# -----------------------------------------------------------------------------
# Typed, immutable configuration consumed by the publish pipeline, plus the
# request/response models exchanged with the plugin host.
#
# The raw mapping supplied by the host is parsed exactly once (see
# core/config.py). Everything downstream works with these models only.
# -----------------------------------------------------------------------------

from enum import Enum

from pydantic import BaseModel, Field

from winget_publisher.domain.errors import InvalidIdentifierError

DEFAULT_BASE_BRANCH = "master"
DEFAULT_PR_TITLE = "New version: {{.PackageId}} version {{.Version}}"


class Architecture(str, Enum):
    """Installer architectures accepted by winget-pkgs."""

    X86 = "x86"
    X64 = "x64"
    ARM = "arm"
    ARM64 = "arm64"


class Hook(str, Enum):
    """Release lifecycle events a plugin can subscribe to."""

    PRE_PUBLISH = "pre_publish"
    POST_PUBLISH = "post_publish"


class InstallerConfig(BaseModel):
    """
    A configured installer, before its URL is resolved and its digest computed.

    The URL may contain the {{.Version}} placeholder.
    """

    url: str = ""
    architecture: str = ""
    type: str = ""
    switches: dict[str, str] = Field(default_factory=dict)
    scope: str = ""
    product_code: str = ""

    class Config:
        frozen = True


class MetadataConfig(BaseModel):
    """Package metadata rendered into the defaultLocale manifest."""

    publisher: str = ""
    publisher_url: str = ""
    publisher_support_url: str = ""
    name: str = ""
    short_description: str = ""
    license: str = ""
    license_url: str = ""
    copyright: str = ""
    package_url: str = ""
    tags: list[str] = Field(default_factory=list)
    moniker: str = ""
    release_notes_url: str = ""

    class Config:
        frozen = True


class LocaleConfig(BaseModel):
    locale: str = ""
    description: str = ""

    class Config:
        frozen = True


class PullRequestConfig(BaseModel):
    """Pull request settings. The title supports {{.PackageId}} and {{.Version}}."""

    fork_owner: str = ""
    base_branch: str = DEFAULT_BASE_BRANCH
    title: str = DEFAULT_PR_TITLE

    class Config:
        frozen = True


class PublisherConfig(BaseModel):
    """
    The fully-typed plugin configuration.

    Fields:
    - package_id: winget identifier, Namespace.Name (e.g. "MyOrg.MyApp")
    - github_token: token used for every GitHub REST call
    - installers: installers in the order they appear in the manifest
    - metadata: publisher / name / license / description metadata
    - locales: per-locale descriptions (only en-US is rendered)
    - pull_request: fork owner override, base branch and title template
    - dry_run: render manifests without touching GitHub
    """

    package_id: str = ""
    github_token: str = ""
    installers: list[InstallerConfig] = Field(default_factory=list)
    metadata: MetadataConfig = Field(default_factory=MetadataConfig)
    locales: list[LocaleConfig] = Field(default_factory=list)
    pull_request: PullRequestConfig = Field(default_factory=PullRequestConfig)
    dry_run: bool = False

    class Config:
        frozen = True


class ValidationIssue(BaseModel):
    """A single configuration problem: field path -> message."""

    field: str
    message: str

    class Config:
        frozen = True


class ReleaseContext(BaseModel):
    """What the host knows about the release being published."""

    version: str = Field(..., min_length=1)
    tag: str = ""
    previous_version: str = ""


class ExecuteRequest(BaseModel):
    """A lifecycle invocation from the plugin host."""

    hook: Hook
    config: dict = Field(default_factory=dict)
    context: ReleaseContext
    dry_run: bool = False


class PluginInfo(BaseModel):
    name: str
    version: str
    description: str
    hooks: list[Hook]


class ValidateResponse(BaseModel):
    """Pre-flight validation outcome returned to the host."""

    valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)


class PublishStage(str, Enum):
    """
    Stages of one publish run. The machine is strictly linear:

    IDLE -> HASHING_INSTALLERS -> COMPOSING_MANIFESTS
         -> (DRY_RUN_REPORTING | SUBMITTING_PR) -> DONE | FAILED
    """

    IDLE = "idle"
    HASHING_INSTALLERS = "hashing_installers"
    COMPOSING_MANIFESTS = "composing_manifests"
    DRY_RUN_REPORTING = "dry_run_reporting"
    SUBMITTING_PR = "submitting_pr"
    DONE = "done"
    FAILED = "failed"


class PublishResult(BaseModel):
    """Outcome of a plugin invocation, as reported back to the host."""

    success: bool
    message: str
    stage: PublishStage = PublishStage.DONE
    pr_url: str | None = None
    files: dict[str, str] = Field(default_factory=dict)


def split_package_id(package_id: str) -> tuple[str, str]:
    """
    Split a package identifier around its first ".".

    Only the first separator counts: "MyOrg.My.App" -> ("MyOrg", "My.App").

    Raises:
        InvalidIdentifierError: If either segment is empty or there is no ".".
    """
    namespace, sep, name = package_id.partition(".")
    if not sep or not namespace or not name:
        raise InvalidIdentifierError(package_id)
    return namespace, name


def is_valid_package_id(package_id: str) -> bool:
    """Check the Namespace.Name format without raising."""
    try:
        split_package_id(package_id)
    except InvalidIdentifierError:
        return False
    return True


def render_template(template: str, values: dict[str, str]) -> str:
    """
    Substitute {{.Key}} placeholders by literal replacement.

    Unknown placeholders are left verbatim.
    """
    result = template
    for key, value in values.items():
        result = result.replace("{{." + key + "}}", value)
    return result
