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
# DOMAIN MODELS - WINGET MANIFESTS
# -----------------------------------------------------------------------------
# The three documents winget-pkgs expects for every package version:
# - <id>.yaml                  (ManifestType: version)
# - <id>.installer.yaml        (ManifestType: installer)
# - <id>.locale.en-US.yaml     (ManifestType: defaultLocale)
#
# Field aliases are the exact PascalCase keys of the winget schema. The
# upstream validation pipeline rejects anything else, so the aliases and the
# field order are part of the contract.
# -----------------------------------------------------------------------------

from pydantic import BaseModel, Field, model_validator

MANIFEST_VERSION = "1.6.0"
DEFAULT_LOCALE = "en-US"
MANIFESTS_ROOT = "manifests"
TOOL_NAME = "winget-publisher"

# Placeholder digest used when installers are not downloaded (dry-run)
PLACEHOLDER_SHA256 = "0" * 64


class ManifestSettings(BaseModel):
    """Schema constants injected into the compiler and serializer."""

    schema_version: str = MANIFEST_VERSION
    default_locale: str = DEFAULT_LOCALE
    manifests_root: str = MANIFESTS_ROOT
    tool_name: str = TOOL_NAME

    class Config:
        frozen = True


class _ManifestModel(BaseModel):
    class Config:
        frozen = True
        populate_by_name = True


class Installer(_ManifestModel):
    """
    A resolved installer entry: URL with the version substituted, plus the
    uppercase SHA256 of the downloaded file.
    """

    architecture: str = Field(..., alias="Architecture")
    installer_type: str = Field(..., alias="InstallerType")
    installer_url: str = Field(..., alias="InstallerUrl")
    installer_sha256: str = Field(..., alias="InstallerSha256", pattern=r"^[0-9A-F]{64}$")
    scope: str = Field("", alias="Scope")
    installer_switches: dict[str, str] = Field(default_factory=dict, alias="InstallerSwitches")
    product_code: str = Field("", alias="ProductCode")


class VersionManifest(_ManifestModel):
    package_identifier: str = Field(..., alias="PackageIdentifier")
    package_version: str = Field(..., alias="PackageVersion")
    default_locale: str = Field(..., alias="DefaultLocale")
    manifest_type: str = Field("version", alias="ManifestType")
    manifest_version: str = Field(MANIFEST_VERSION, alias="ManifestVersion")


class InstallerManifest(_ManifestModel):
    package_identifier: str = Field(..., alias="PackageIdentifier")
    package_version: str = Field(..., alias="PackageVersion")
    installers: list[Installer] = Field(default_factory=list, alias="Installers")
    manifest_type: str = Field("installer", alias="ManifestType")
    manifest_version: str = Field(MANIFEST_VERSION, alias="ManifestVersion")


class LocaleManifest(_ManifestModel):
    package_identifier: str = Field(..., alias="PackageIdentifier")
    package_version: str = Field(..., alias="PackageVersion")
    package_locale: str = Field(..., alias="PackageLocale")
    publisher: str = Field(..., alias="Publisher")
    publisher_url: str = Field("", alias="PublisherUrl")
    publisher_support_url: str = Field("", alias="PublisherSupportUrl")
    package_name: str = Field(..., alias="PackageName")
    license: str = Field(..., alias="License")
    license_url: str = Field("", alias="LicenseUrl")
    copyright: str = Field("", alias="Copyright")
    short_description: str = Field(..., alias="ShortDescription")
    description: str = Field("", alias="Description")
    moniker: str = Field("", alias="Moniker")
    tags: list[str] = Field(default_factory=list, alias="Tags")
    package_url: str = Field("", alias="PackageUrl")
    release_notes_url: str = Field("", alias="ReleaseNotesUrl")
    manifest_type: str = Field("defaultLocale", alias="ManifestType")
    manifest_version: str = Field(MANIFEST_VERSION, alias="ManifestVersion")


class ManifestSet(_ManifestModel):
    """
    The atomic output of the compiler: three documents and their directory.

    All three documents carry the same PackageIdentifier and PackageVersion;
    a set that breaks this is rejected at construction.
    """

    version: VersionManifest
    installer: InstallerManifest
    locale: LocaleManifest
    path: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def _check_consistency(self) -> "ManifestSet":
        keys = {
            (doc.package_identifier, doc.package_version)
            for doc in (self.version, self.installer, self.locale)
        }
        if len(keys) != 1:
            raise ValueError(f"manifests disagree on identifier/version: {sorted(keys)}")
        return self

    @property
    def package_identifier(self) -> str:
        return self.version.package_identifier

    @property
    def package_version(self) -> str:
        return self.version.package_version

    def get_files(self, settings: ManifestSettings | None = None) -> dict[str, str]:
        """Header-prefixed YAML for each document, keyed by repository path."""
        from winget_publisher.core.serializer import render_files

        return render_files(self, settings)
