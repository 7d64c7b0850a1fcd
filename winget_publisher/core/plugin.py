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
# THE PLUGIN - HOST INTERFACE
# -----------------------------------------------------------------------------
# Responsibility: The surface the release host talks to.
# - get_info(): name, version and the single hook we run on (post_publish)
# - validate(): pre-flight configuration check, field path -> message
# - execute(): run the Publisher for a lifecycle event
#
# The host decides what to do with a failure; execute() never raises for
# pipeline errors, it returns PublishResult(success=False).
# -----------------------------------------------------------------------------

from rich.console import Console

from winget_publisher import __version__
from winget_publisher.core.config import load_config, validate_config
from winget_publisher.core.publisher import GatewayFactory, HashFunction, Publisher
from winget_publisher.domain.context import RunContext
from winget_publisher.domain.models import (
    ExecuteRequest,
    Hook,
    PluginInfo,
    PublishResult,
    ValidateResponse,
)

console = Console()

PLUGIN_NAME = "winget"


class WinGetPlugin:
    """
    Windows Package Manager (winget) manifest generation and PR submission.

    Stateless: every call parses its own configuration.
    """

    def __init__(
        self,
        hash_fn: HashFunction | None = None,
        gateway_factory: GatewayFactory | None = None,
    ) -> None:
        self._hash_fn = hash_fn
        self._gateway_factory = gateway_factory

    def get_info(self) -> PluginInfo:
        return PluginInfo(
            name=PLUGIN_NAME,
            version=__version__,
            description="Windows Package Manager (winget) manifest generation and PR submission",
            hooks=[Hook.POST_PUBLISH],
        )

    def validate(self, raw_config: dict | None) -> ValidateResponse:
        """Check a raw configuration without running anything."""
        issues = validate_config(load_config(raw_config))
        for issue in issues:
            console.print(f"[yellow][PLUGIN] {issue.field}: {issue.message}[/yellow]")
        return ValidateResponse(valid=not issues, errors=issues)

    def execute(self, request: ExecuteRequest, ctx: RunContext | None = None) -> PublishResult:
        """
        Run the plugin for a lifecycle event.

        Only post_publish does any work; other hooks succeed immediately.
        """
        hook = Hook(request.hook)
        if hook != Hook.POST_PUBLISH:
            return PublishResult(
                success=True, message=f"Hook {hook.value} not handled by winget plugin"
            )

        config = load_config(request.config)
        console.print(
            f"[cyan][PLUGIN] {PLUGIN_NAME} hook={hook.value} "
            f"package_id={config.package_id} version={request.context.version}[/cyan]"
        )

        publisher = Publisher(
            config, hash_fn=self._hash_fn, gateway_factory=self._gateway_factory
        )
        return publisher.publish(
            request.context.version,
            dry_run=config.dry_run or request.dry_run,
            ctx=ctx,
        )
