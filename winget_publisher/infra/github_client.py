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
# GITHUB INFRASTRUCTURE - winget-pkgs PULL REQUESTS
# -----------------------------------------------------------------------------
# Responsibility: Every GitHub REST call made by the publisher.
#
# Fork workflow:
# 1. Resolve the fork owner (configured, or the authenticated user)
# 2. Fork microsoft/winget-pkgs if the user has no fork yet
# 3. Branch off the upstream base branch tip inside the fork
# 4. Commit each manifest file to the branch (one PUT per file)
# 5. Open a PR <owner>:<branch> -> microsoft/winget-pkgs:<base>
#
# Security:
# - The token is only sent in the Authorization header
# - Tokens are NEVER logged; error bodies are redacted before use
#
# There is no retry anywhere: a call succeeds once or the run fails. Commits
# are not atomic as a set; a failure mid-way leaves a partially committed
# branch in the fork (reported on the raised RemoteAPIError).
#
# Cancellation is checked before every call. A call already in flight is not
# interrupted: it ends within its own timeout, which is capped by the run
# deadline, and the run stops before the next call.
# -----------------------------------------------------------------------------

import base64
from dataclasses import dataclass, field

import requests
from pydantic import BaseModel
from rich.console import Console

from winget_publisher.domain.context import RunContext
from winget_publisher.domain.errors import RemoteAPIError
from winget_publisher.domain.manifests import ManifestSet
from winget_publisher.domain.models import PublisherConfig, PullRequestConfig, render_template

console = Console()

# GitHub API configuration
GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
WINGET_PKGS_OWNER = "microsoft"
WINGET_PKGS_REPO = "winget-pkgs"
REQUEST_TIMEOUT_SECONDS = 60
FORK_SETTLE_SECONDS = 5  # Fork creation is asynchronous on GitHub's side

PR_BODY = "This PR was automatically created by winget-publisher."


class GitHubSettings(BaseModel):
    """Upstream repository and API endpoint, injectable for tests."""

    api_url: str = GITHUB_API_URL
    api_version: str = GITHUB_API_VERSION
    upstream_owner: str = WINGET_PKGS_OWNER
    upstream_repo: str = WINGET_PKGS_REPO
    request_timeout: float = REQUEST_TIMEOUT_SECONDS
    fork_settle_seconds: float = FORK_SETTLE_SECONDS

    class Config:
        frozen = True


@dataclass
class RepositoryPublishState:
    """What one create_pr call has done so far. Discarded after the call."""

    fork_owner: str = ""
    base_sha: str = ""
    branch: str = ""
    committed_files: list[str] = field(default_factory=list)
    pr_url: str = ""


def branch_name(manifests: ManifestSet) -> str:
    """winget/<identifier with dots as dashes>/<version>"""
    return "winget/{}/{}".format(
        manifests.package_identifier.replace(".", "-"), manifests.package_version
    )


def commit_message(manifests: ManifestSet) -> str:
    return f"New version: {manifests.package_identifier} version {manifests.package_version}"


class GitHubClient:
    """
    Thin wrapper over the GitHub REST API for the winget-pkgs fork workflow.

    Holds the token, an optional fork owner override and an HTTP session.
    Nothing else is retained between calls.
    """

    def __init__(
        self,
        token: str,
        fork_owner: str = "",
        settings: GitHubSettings | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """
        Args:
            token: GitHub token with public_repo scope
            fork_owner: Use this owner's fork instead of the authenticated user's
            settings: API endpoint and upstream repository
            session: HTTP session (reused across calls)
        """
        self._token = token
        self._fork_owner = fork_owner
        self._settings = settings or GitHubSettings()
        self._session = session or requests.Session()

    @classmethod
    def from_config(cls, config: PublisherConfig) -> "GitHubClient":
        return cls(token=config.github_token, fork_owner=config.pull_request.fork_owner)

    @property
    def upstream(self) -> str:
        return f"{self._settings.upstream_owner}/{self._settings.upstream_repo}"

    # =========================================================================
    # HTTP PLUMBING
    # =========================================================================

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self._settings.api_version,
        }

    def _sanitize(self, text: str) -> str:
        """Remove the token from text before it is logged or raised."""
        if self._token and self._token in text:
            text = text.replace(self._token, "[REDACTED]")
        return text

    def _request(
        self,
        ctx: RunContext,
        step: str,
        method: str,
        path: str,
        payload: dict | None = None,
    ) -> requests.Response:
        """
        Send one REST call. Transport failures become RemoteAPIError.

        Raises:
            PublishCancelled: If the run was cancelled before the call
            RemoteAPIError: If the request could not be sent or completed
        """
        ctx.check()
        url = f"{self._settings.api_url}{path}"
        try:
            return self._session.request(
                method,
                url,
                headers=self._headers(),
                json=payload,
                timeout=ctx.timeout(self._settings.request_timeout),
            )
        except requests.RequestException as e:
            raise RemoteAPIError(step, f"request failed: {self._sanitize(str(e))}") from e

    def _expect(self, response: requests.Response, step: str, *statuses: int) -> None:
        """Raise RemoteAPIError unless the status is one of `statuses` (default: any 2xx)."""
        ok = response.status_code in statuses if statuses else 200 <= response.status_code < 300
        if not ok:
            body = self._sanitize(response.text or "")
            raise RemoteAPIError(
                step,
                f"GitHub API error {response.status_code}: {body[:200]}",
                status_code=response.status_code,
                body=body,
            )

    def _json(self, response: requests.Response, step: str) -> dict:
        try:
            data = response.json()
        except ValueError as e:
            raise RemoteAPIError(
                step, f"failed to decode response: {e}", status_code=response.status_code
            ) from e
        if not isinstance(data, dict):
            raise RemoteAPIError(step, "unexpected response shape", status_code=response.status_code)
        return data

    # =========================================================================
    # REST CALLS
    # =========================================================================

    def get_current_user(self, ctx: RunContext) -> str:
        """GET /user -> login of the token's owner."""
        step = "get current user"
        response = self._request(ctx, step, "GET", "/user")
        self._expect(response, step)
        login = self._json(response, step).get("login") or ""
        if not login:
            raise RemoteAPIError(step, "response has no login", status_code=response.status_code)
        return login

    def fork_exists(self, ctx: RunContext, owner: str) -> bool:
        """GET /repos/{owner}/winget-pkgs -> True on 2xx, False on 404."""
        step = "check fork"
        response = self._request(
            ctx, step, "GET", f"/repos/{owner}/{self._settings.upstream_repo}"
        )
        if response.status_code == 404:
            return False
        self._expect(response, step)
        return True

    def create_fork(self, ctx: RunContext) -> None:
        """POST /repos/microsoft/winget-pkgs/forks (200 or 202)."""
        step = "create fork"
        console.print(f"[cyan][GITHUB API] Forking {self.upstream}[/cyan]")
        response = self._request(ctx, step, "POST", f"/repos/{self.upstream}/forks")
        self._expect(response, step, 200, 202)

    def get_branch_sha(self, ctx: RunContext, owner: str, repo: str, branch: str) -> str:
        """Tip commit SHA of a branch."""
        step = "get base branch SHA"
        response = self._request(ctx, step, "GET", f"/repos/{owner}/{repo}/git/ref/heads/{branch}")
        self._expect(response, step)
        sha = (self._json(response, step).get("object") or {}).get("sha") or ""
        if not sha:
            raise RemoteAPIError(step, f"no commit SHA for {owner}/{repo}@{branch}")
        return sha

    def create_branch(self, ctx: RunContext, owner: str, branch: str, sha: str) -> None:
        """POST /repos/{owner}/winget-pkgs/git/refs (expects 201)."""
        step = "create branch"
        response = self._request(
            ctx,
            step,
            "POST",
            f"/repos/{owner}/{self._settings.upstream_repo}/git/refs",
            {"ref": f"refs/heads/{branch}", "sha": sha},
        )
        self._expect(response, step, 201)

    def commit_files(
        self,
        ctx: RunContext,
        owner: str,
        branch: str,
        files: dict[str, str],
        message: str,
        committed: list[str] | None = None,
    ) -> list[str]:
        """
        Create each file on the branch with one contents API call per file.

        Args:
            committed: Optional list that receives each path as it lands

        Returns:
            Paths committed, in order

        Raises:
            RemoteAPIError: On the first failing file; `committed_files` on
                the error lists what already landed on the branch
        """
        step = "commit files"
        committed = committed if committed is not None else []
        for path, content in files.items():
            payload = {
                "message": message,
                "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
                "branch": branch,
            }
            try:
                response = self._request(
                    ctx,
                    step,
                    "PUT",
                    f"/repos/{owner}/{self._settings.upstream_repo}/contents/{path}",
                    payload,
                )
                self._expect(response, step, 200, 201)
            except RemoteAPIError as e:
                raise RemoteAPIError(
                    step,
                    f"failed to create file {path}: {e.detail}",
                    status_code=e.status_code,
                    body=e.body,
                    committed_files=committed,
                ) from e
            committed.append(path)
            console.print(f"[cyan][GITHUB API] Committed {path}[/cyan]")
        return committed

    def open_pull_request(
        self, ctx: RunContext, fork_owner: str, branch: str, base: str, title: str
    ) -> str:
        """POST /repos/microsoft/winget-pkgs/pulls -> PR html_url."""
        step = "create pull request"
        response = self._request(
            ctx,
            step,
            "POST",
            f"/repos/{self.upstream}/pulls",
            {"title": title, "head": f"{fork_owner}:{branch}", "base": base, "body": PR_BODY},
        )
        self._expect(response, step)
        data = self._json(response, step)
        pr_url = data.get("html_url") or ""
        if not pr_url:
            raise RemoteAPIError(
                step, "response has no html_url", status_code=response.status_code
            )
        console.print(f"[green][GITHUB API] PR #{data.get('number', '?')} created: {pr_url}[/green]")
        return pr_url

    # =========================================================================
    # WORKFLOW
    # =========================================================================

    def ensure_fork(self, ctx: RunContext) -> str:
        """
        Make sure a fork of winget-pkgs exists and return its owner.

        A configured fork owner is trusted as-is (no network call).
        """
        if self._fork_owner:
            return self._fork_owner

        user = self.get_current_user(ctx)
        if self.fork_exists(ctx, user):
            console.print(f"[cyan][GITHUB API] Fork found: {user}/{self._settings.upstream_repo}[/cyan]")
            return user

        self.create_fork(ctx)
        ctx.sleep(self._settings.fork_settle_seconds)
        console.print(f"[green][GITHUB API] Fork created: {user}/{self._settings.upstream_repo}[/green]")
        return user

    def create_pr(self, ctx: RunContext, manifests: ManifestSet, pr_config: PullRequestConfig) -> str:
        """
        Branch, commit the manifests and open the pull request.

        Args:
            ctx: Cancellation / deadline of the publish run
            manifests: The compiled ManifestSet
            pr_config: Base branch and title template

        Returns:
            The pull request URL

        Raises:
            RemoteAPIError: On the first failing step (step name in the message)
            CompositionError: If the manifests cannot be serialized
        """
        state = RepositoryPublishState(fork_owner=self._fork_owner)
        if not state.fork_owner:
            state.fork_owner = self.get_current_user(ctx)

        state.base_sha = self.get_branch_sha(
            ctx, self._settings.upstream_owner, self._settings.upstream_repo, pr_config.base_branch
        )

        state.branch = branch_name(manifests)
        console.print(f"[cyan][GITHUB API] Creating branch {state.fork_owner}:{state.branch}[/cyan]")
        self.create_branch(ctx, state.fork_owner, state.branch, state.base_sha)

        files = manifests.get_files()
        try:
            self.commit_files(
                ctx,
                state.fork_owner,
                state.branch,
                files,
                commit_message(manifests),
                committed=state.committed_files,
            )
        except RemoteAPIError:
            console.print(
                f"[red][GITHUB API] Branch {state.fork_owner}:{state.branch} left with "
                f"{len(state.committed_files)}/{len(files)} files committed[/red]"
            )
            raise

        title = render_template(
            pr_config.title,
            {"PackageId": manifests.package_identifier, "Version": manifests.package_version},
        )
        state.pr_url = self.open_pull_request(
            ctx, state.fork_owner, state.branch, pr_config.base_branch, title
        )
        return state.pr_url
