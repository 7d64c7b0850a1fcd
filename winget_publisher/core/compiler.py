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
# THE COMPILER - MANIFEST SYNTHESIS
# -----------------------------------------------------------------------------
# Responsibility: Turn (config, version, resolved installers) into a
# ManifestSet. Pure and deterministic: no network, no clock, no randomness.
#
# Target directory follows the winget-pkgs sharding convention:
#   manifests/<first letter of namespace, lowercase>/<identifier>/<version>
# -----------------------------------------------------------------------------

from pydantic import ValidationError
from rich.console import Console

from winget_publisher.domain.errors import CompositionError
from winget_publisher.domain.manifests import (
    Installer,
    InstallerManifest,
    LocaleManifest,
    ManifestSet,
    ManifestSettings,
    VersionManifest,
)
from winget_publisher.domain.models import PublisherConfig, split_package_id

console = Console()


def manifest_path(package_id: str, version: str, settings: ManifestSettings | None = None) -> str:
    """
    Directory of a package version inside winget-pkgs.

    Raises:
        InvalidIdentifierError: If package_id is not Namespace.Name.
    """
    settings = settings or ManifestSettings()
    namespace, _ = split_package_id(package_id)
    return f"{settings.manifests_root}/{namespace[0].lower()}/{package_id}/{version}"


def _default_locale_description(config: PublisherConfig, locale: str) -> str:
    # Other configured locales are accepted but not rendered
    for entry in config.locales:
        if entry.locale == locale:
            return entry.description
    return ""


def compile_manifests(
    config: PublisherConfig,
    version: str,
    installers: list[Installer],
    settings: ManifestSettings | None = None,
) -> ManifestSet:
    """
    Build the version, installer and defaultLocale manifests for a release.

    Args:
        config: Parsed plugin configuration
        version: Release version being published (e.g. "1.0.0")
        installers: Resolved installers, in declared order
        settings: Schema constants (defaults to winget schema 1.6.0, en-US)

    Returns:
        A fully built ManifestSet

    Raises:
        InvalidIdentifierError: If the package ID is not Namespace.Name
        CompositionError: If the documents cannot be assembled
    """
    settings = settings or ManifestSettings()
    package_id = config.package_id
    path = manifest_path(package_id, version, settings)
    meta = config.metadata

    try:
        manifests = ManifestSet(
            version=VersionManifest(
                package_identifier=package_id,
                package_version=version,
                default_locale=settings.default_locale,
                manifest_version=settings.schema_version,
            ),
            installer=InstallerManifest(
                package_identifier=package_id,
                package_version=version,
                installers=list(installers),
                manifest_version=settings.schema_version,
            ),
            locale=LocaleManifest(
                package_identifier=package_id,
                package_version=version,
                package_locale=settings.default_locale,
                publisher=meta.publisher,
                publisher_url=meta.publisher_url,
                publisher_support_url=meta.publisher_support_url,
                package_name=meta.name,
                license=meta.license,
                license_url=meta.license_url,
                copyright=meta.copyright,
                short_description=meta.short_description,
                description=_default_locale_description(config, settings.default_locale),
                moniker=meta.moniker,
                tags=list(meta.tags),
                package_url=meta.package_url,
                release_notes_url=meta.release_notes_url,
                manifest_version=settings.schema_version,
            ),
            path=path,
        )
    except ValidationError as e:
        raise CompositionError(f"failed to build manifests for {package_id}: {e}") from e

    console.print(
        f"[cyan][COMPILER] {package_id} {version}: "
        f"{len(installers)} installer(s) -> {path}[/cyan]"
    )
    return manifests
