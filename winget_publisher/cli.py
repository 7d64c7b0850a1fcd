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
# WINGET PUBLISHER - COMMAND LINE
# -----------------------------------------------------------------------------
# Responsibility: Run the plugin outside a release host.
#
#   winget-publisher publish winget.yaml --version 1.2.3 [--dry-run]
#   winget-publisher validate winget.yaml
#   winget-publisher hash https://example.com/app-1.2.3.msi
#
# GITHUB_TOKEN may come from the environment or a .env file.
# -----------------------------------------------------------------------------

import argparse
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel

from winget_publisher import __version__
from winget_publisher.core.config import load_config_file
from winget_publisher.core.plugin import WinGetPlugin
from winget_publisher.domain.context import RunContext
from winget_publisher.domain.errors import PublishError
from winget_publisher.domain.models import ExecuteRequest, Hook, ReleaseContext
from winget_publisher.infra.hasher import calculate_installer_hash

console = Console()


def publish_cmd(args: argparse.Namespace) -> int:
    raw = load_config_file(args.config)
    request = ExecuteRequest(
        hook=Hook.POST_PUBLISH,
        config=raw,
        context=ReleaseContext(version=args.version),
        dry_run=bool(args.dry_run),
    )
    ctx = RunContext(timeout=args.timeout)
    result = WinGetPlugin().execute(request, ctx=ctx)

    style = "green" if result.success else "red"
    console.print(Panel(result.message, title="winget", border_style=style))
    return 0 if result.success else 1


def validate_cmd(args: argparse.Namespace) -> int:
    response = WinGetPlugin().validate(load_config_file(args.config))
    if response.valid:
        console.print(f"[green][CLI] {args.config}: configuration is valid[/green]")
        return 0
    console.print(f"[red][CLI] {args.config}: {len(response.errors)} problem(s)[/red]")
    return 1


def hash_cmd(args: argparse.Namespace) -> int:
    console.print(calculate_installer_hash(args.url, RunContext(timeout=args.timeout)))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="winget-publisher",
        description="Publish release manifests to microsoft/winget-pkgs",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--env-file", default=".env", help="dotenv file to load (default: .env)")
    sub = p.add_subparsers(dest="command", required=True)

    pub = sub.add_parser("publish", help="Hash installers, render manifests and open a PR")
    pub.add_argument("config", type=Path, help="YAML plugin configuration")
    pub.add_argument("--version", dest="version", required=True, help="Release version, e.g. 1.2.3")
    pub.add_argument("--dry-run", action="store_true", help="Render manifests only; no GitHub calls")
    pub.add_argument("--timeout", type=float, default=None, help="Abort the whole run after N seconds")
    pub.set_defaults(func=publish_cmd)

    val = sub.add_parser("validate", help="Check a configuration file")
    val.add_argument("config", type=Path, help="YAML plugin configuration")
    val.set_defaults(func=validate_cmd)

    hsh = sub.add_parser("hash", help="Print the InstallerSha256 of a URL")
    hsh.add_argument("url", help="Installer URL")
    hsh.add_argument("--timeout", type=float, default=None, help="Abort after N seconds")
    hsh.set_defaults(func=hash_cmd)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    load_dotenv(args.env_file)

    try:
        return int(args.func(args))
    except PublishError as e:
        console.print(f"[red][CLI] {e}[/red]")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
