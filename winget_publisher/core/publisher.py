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
# THE PUBLISHER - RELEASE TO winget-pkgs
# -----------------------------------------------------------------------------
# Responsibility: Run one publish attempt end to end.
#
#   IDLE -> HASHING_INSTALLERS -> COMPOSING_MANIFESTS
#        -> DRY_RUN_REPORTING  (print manifests, touch nothing remote)
#        -> SUBMITTING_PR      (ensure fork, branch, commit, open PR)
#        -> DONE | FAILED
#
# The Gate:
# - The first failure aborts the run (no partial publish, no retry)
# - Every failure comes back as PublishResult(success=False, ...)
# - A failed run restarts from IDLE; nothing is resumed
# -----------------------------------------------------------------------------

from typing import Callable, Protocol

from rich.console import Console
from rich.panel import Panel

from winget_publisher.core.compiler import compile_manifests
from winget_publisher.core.config import require_valid, validate_config
from winget_publisher.core.serializer import render_files
from winget_publisher.domain.context import RunContext
from winget_publisher.domain.errors import PublishError
from winget_publisher.domain.manifests import (
    PLACEHOLDER_SHA256,
    Installer,
    ManifestSet,
    ManifestSettings,
)
from winget_publisher.domain.models import (
    InstallerConfig,
    PublisherConfig,
    PublishResult,
    PublishStage,
    PullRequestConfig,
    render_template,
)
from winget_publisher.infra.github_client import GitHubClient
from winget_publisher.infra.hasher import calculate_installer_hash

console = Console()


class RepositoryGateway(Protocol):
    """The part of the GitHub client the Publisher depends on."""

    def ensure_fork(self, ctx: RunContext) -> str:
        ...

    def create_pr(self, ctx: RunContext, manifests: ManifestSet, pr_config: PullRequestConfig) -> str:
        ...


HashFunction = Callable[[str, RunContext], str]
GatewayFactory = Callable[[PublisherConfig], RepositoryGateway]


class StageFailed(Exception):
    """Internal: carries a user-facing message out of a failed stage."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def resolve_installer(installer: InstallerConfig, version: str, sha256: str) -> Installer:
    """Installer entry with {{.Version}} substituted into its URL."""
    return Installer(
        architecture=installer.architecture,
        installer_type=installer.type,
        installer_url=render_template(installer.url, {"Version": version}),
        installer_sha256=sha256,
        scope=installer.scope,
        installer_switches=dict(installer.switches),
        product_code=installer.product_code,
    )


class Publisher:
    """
    The publish pipeline for one package configuration.

    Flow:
    1. Hash each installer in declared order (placeholder digest in dry-run)
    2. Compile the three manifests
    3. Dry-run: print the manifests and report the PR that would be opened
       Live: ensure the fork exists, then branch / commit / open the PR

    Collaborators are injectable so the sequencing can be tested without a
    network: `hash_fn` replaces the installer download and `gateway_factory`
    builds the repository client.
    """

    def __init__(
        self,
        config: PublisherConfig,
        hash_fn: HashFunction | None = None,
        gateway_factory: GatewayFactory | None = None,
        settings: ManifestSettings | None = None,
    ) -> None:
        self._config = config
        self._hash_fn = hash_fn or (lambda url, ctx: calculate_installer_hash(url, ctx))
        self._gateway_factory = gateway_factory or GitHubClient.from_config
        self._settings = settings or ManifestSettings()
        self.stage = PublishStage.IDLE

    def publish(self, version: str, dry_run: bool = False, ctx: RunContext | None = None) -> PublishResult:
        """
        Publish `version` of the configured package.

        Args:
            version: Release version (e.g. "1.2.3")
            dry_run: Render and report only; no downloads, no GitHub calls
            ctx: Cancellation / deadline for the run

        Returns:
            PublishResult; `success` is False on any failure. The message is
            always suitable for showing to the operator.
        """
        ctx = ctx or RunContext()
        dry_run = dry_run or self._config.dry_run
        package_id = self._config.package_id
        self.stage = PublishStage.IDLE

        console.print(
            f"[cyan][PUBLISHER] Publishing {package_id} {version}"
            f"{' (dry-run)' if dry_run else ''}[/cyan]"
        )

        try:
            if not dry_run:
                self._run_stage(require_valid, "Invalid configuration", self._config)

            installers = self._hash_installers(version, dry_run, ctx)

            self.stage = PublishStage.COMPOSING_MANIFESTS
            manifests = self._run_stage(
                compile_manifests,
                "Failed to generate manifests",
                self._config,
                version,
                installers,
                self._settings,
            )

            if dry_run:
                return self._report_dry_run(manifests)
            return self._submit(manifests, ctx)

        except StageFailed as e:
            self.stage = PublishStage.FAILED
            console.print(f"[red][PUBLISHER] {e.message}[/red]")
            return PublishResult(success=False, message=e.message, stage=PublishStage.FAILED)

    # =========================================================================
    # STAGES
    # =========================================================================

    def _run_stage(self, fn, failure: str, *args):
        """Call fn(*args); a PublishError becomes StageFailed("<failure>: <error>")."""
        try:
            return fn(*args)
        except PublishError as e:
            raise StageFailed(f"{failure}: {e}") from e

    def _hash_installers(self, version: str, dry_run: bool, ctx: RunContext) -> list[Installer]:
        """Hash installers one at a time; the first failure aborts the run."""
        self.stage = PublishStage.HASHING_INSTALLERS
        console.print(f"[cyan][PUBLISHER] Calculating {len(self._config.installers)} installer hash(es)[/cyan]")

        installers: list[Installer] = []
        for i, installer in enumerate(self._config.installers):
            url = render_template(installer.url, {"Version": version})
            console.print(f"[cyan][PUBLISHER] Installer {i} ({installer.architecture}): {url}[/cyan]")

            if dry_run:
                console.print("[yellow][PUBLISHER] [DRY-RUN] Would download and hash installer[/yellow]")
                sha256 = PLACEHOLDER_SHA256
            else:
                sha256 = self._run_stage(
                    self._hash_fn, f"Failed to calculate hash for installer {i}", url, ctx
                )

            try:
                installers.append(resolve_installer(installer, version, sha256))
            except ValueError as e:
                raise StageFailed(f"Failed to calculate hash for installer {i}: {e}") from e
        return installers

    def _report_dry_run(self, manifests: ManifestSet) -> PublishResult:
        self.stage = PublishStage.DRY_RUN_REPORTING
        files = self._run_stage(render_files, "Failed to generate manifests", manifests, self._settings)

        console.print(
            f"[yellow][PUBLISHER] [DRY-RUN] Generated manifests at {manifests.path} "
            f"({len(manifests.installer.installers)} installer(s))[/yellow]"
        )
        for issue in validate_config(self._config):
            console.print(
                f"[yellow][PUBLISHER] [DRY-RUN] Live run would fail: "
                f"{issue.field}: {issue.message}[/yellow]"
            )
        for path, content in files.items():
            console.print(Panel(content, title=path, border_style="yellow"))

        self.stage = PublishStage.DONE
        return PublishResult(
            success=True,
            message=(
                f"[DRY-RUN] Would create PR for {manifests.package_identifier} "
                f"version {manifests.package_version}"
            ),
            stage=PublishStage.DONE,
            files=files,
        )

    def _submit(self, manifests: ManifestSet, ctx: RunContext) -> PublishResult:
        self.stage = PublishStage.SUBMITTING_PR
        console.print("[cyan][PUBLISHER] Creating pull request to winget-pkgs[/cyan]")
        gateway = self._gateway_factory(self._config)

        fork_owner = self._run_stage(gateway.ensure_fork, "Failed to ensure fork", ctx)
        console.print(f"[cyan][PUBLISHER] Using fork: {fork_owner}[/cyan]")

        pr_url = self._run_stage(
            gateway.create_pr, "Failed to create PR", ctx, manifests, self._config.pull_request
        )

        self.stage = PublishStage.DONE
        console.print(f"[green][PUBLISHER] PR opened: {pr_url}[/green]")
        return PublishResult(
            success=True,
            message=(
                f"Created PR for {manifests.package_identifier} "
                f"version {manifests.package_version}: {pr_url}"
            ),
            stage=PublishStage.DONE,
            pr_url=pr_url,
        )
