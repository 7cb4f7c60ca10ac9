"""Manifest system: payload/tag manifests and tag files."""

from bagsmith.core.manifest.manifest import (
    Manifest,
    ManifestKind,
    manifest_filename,
    parse_manifest_filename,
)
from bagsmith.core.manifest.tag_file import TagField, TagFile

__all__ = [
    "Manifest",
    "ManifestKind",
    "manifest_filename",
    "parse_manifest_filename",
    "TagField",
    "TagFile",
]
