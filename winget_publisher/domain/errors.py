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
# ERROR TAXONOMY
# -----------------------------------------------------------------------------
# Every stage of the publish pipeline is fail-fast. Failures are raised as one
# of these exceptions and mapped to a PublishResult by the Publisher.
#
# - ConfigurationError: bad configuration, caught before any network activity
# - TransferError: installer download / hash failures
# - CompositionError: manifest synthesis or YAML encoding failures
# - RemoteAPIError: non-success status from the GitHub REST API
# -----------------------------------------------------------------------------

# Longest slice of a response body kept on a RemoteAPIError
BODY_SNIPPET_LIMIT = 500


class PublishError(Exception):
    """Base class for every publish pipeline failure."""

    pass


class ConfigurationError(PublishError):
    """
    Raised when the configuration is malformed or incomplete.

    Args:
        message: Human readable summary.
        issues: Field-level problems (ValidationIssue list), if any.
    """

    def __init__(self, message: str, issues: list | None = None) -> None:
        super().__init__(message)
        self.issues = list(issues or [])


class InvalidIdentifierError(ConfigurationError):
    """Raised when a package identifier is not of the form Namespace.Name."""

    def __init__(self, package_id: str) -> None:
        super().__init__(f"invalid package ID format: {package_id!r}")
        self.package_id = package_id


class TransferError(PublishError):
    """Raised when an installer cannot be downloaded and hashed."""

    def __init__(self, message: str, url: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class CompositionError(PublishError):
    """Raised when manifests cannot be built or serialized."""

    pass


class RemoteAPIError(PublishError):
    """
    Raised on any non-success response from the GitHub REST API.

    The message is prefixed with the step that failed (e.g. "create branch")
    so a failed PR run can be diagnosed from the result message alone.
    """

    def __init__(
        self,
        step: str,
        message: str,
        status_code: int | None = None,
        body: str = "",
        committed_files: list[str] | None = None,
    ) -> None:
        super().__init__(f"{step}: {message}")
        self.step = step
        self.detail = message
        self.status_code = status_code
        self.body = body[:BODY_SNIPPET_LIMIT]
        self.committed_files = list(committed_files or [])


class PublishCancelled(PublishError):
    """Raised when a run is cancelled or its deadline passes."""

    pass
