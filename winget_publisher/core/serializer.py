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
# THE SERIALIZER - MANIFEST YAML
# -----------------------------------------------------------------------------
# Responsibility: Render manifest documents to the YAML committed to
# winget-pkgs and assemble the path -> content mapping for a ManifestSet.
#
# Rules:
# - Keys use the winget schema names, in model field order
# - Empty optional fields are omitted; required keys are always emitted
# - Every file starts with the two-line header (tool + schema hint)
# -----------------------------------------------------------------------------

import yaml
from pydantic import BaseModel
from rich.console import Console

from winget_publisher.domain.errors import CompositionError
from winget_publisher.domain.manifests import ManifestSet, ManifestSettings

console = Console()

SCHEMA_URL = "https://aka.ms/winget-manifest.{manifest_type}.{schema_version}.schema.json"
EMPTY = ("", None, [], {})


def to_document(model: BaseModel) -> dict:
    """
    Plain mapping of a manifest model keyed by schema names.

    Optional fields that are empty are dropped. Required fields are always
    emitted, even when empty, so an incomplete document stays visibly
    incomplete.
    """
    document = {}
    for name, field in type(model).model_fields.items():
        value = getattr(model, name)
        if isinstance(value, BaseModel):
            value = to_document(value)
        elif isinstance(value, list):
            value = [to_document(v) if isinstance(v, BaseModel) else v for v in value]
        elif isinstance(value, dict):
            value = dict(value)

        if not field.is_required() and value in EMPTY:
            continue
        document[field.alias or name] = value
    return document


def to_yaml(model: BaseModel) -> str:
    """
    Serialize a manifest model to YAML.

    Raises:
        CompositionError: If the document cannot be encoded.
    """
    try:
        return yaml.safe_dump(
            to_document(model),
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
            width=4096,
        )
    except yaml.YAMLError as e:
        raise CompositionError(f"failed to encode {type(model).__name__}: {e}") from e


def yaml_header(manifest_type: str, schema_version: str, tool_name: str) -> str:
    """The fixed two-line comment block, followed by a blank line."""
    schema = SCHEMA_URL.format(manifest_type=manifest_type, schema_version=schema_version)
    return f"# Created using {tool_name}\n# yaml-language-server: $schema={schema}\n\n"


def render_document(model: BaseModel, settings: ManifestSettings | None = None) -> str:
    """Header-prefixed YAML for a single manifest document."""
    settings = settings or ManifestSettings()
    header = yaml_header(model.manifest_type, model.manifest_version, settings.tool_name)
    return header + to_yaml(model)


def render_files(
    manifests: ManifestSet, settings: ManifestSettings | None = None
) -> dict[str, str]:
    """
    Build the files to commit for a ManifestSet.

    Returns:
        Ordered mapping of repository path -> file content
        (version, installer, locale).

    Raises:
        CompositionError: If any document fails to serialize.
    """
    identifier = manifests.package_identifier
    base = manifests.path
    locale = manifests.locale.package_locale

    files = {
        f"{base}/{identifier}.yaml": render_document(manifests.version, settings),
        f"{base}/{identifier}.installer.yaml": render_document(manifests.installer, settings),
        f"{base}/{identifier}.locale.{locale}.yaml": render_document(manifests.locale, settings),
    }
    console.print(f"[cyan][SERIALIZER] Rendered {len(files)} manifests under {base}[/cyan]")
    return files
