"""
Bag validation.

Re-hashes every manifested file and checks presence and payload
completeness. Each file is read once, however many manifests list it.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from bagsmith.core.checksum import hash_file
from bagsmith.core.errors import (
    BagError,
    ChecksumMismatchError,
    MissingFileError,
    UnmanifestedFileError,
)
from bagsmith.core.manifest.manifest import ManifestKind

if TYPE_CHECKING:
    from bagsmith.bag.bag import Bag

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of validating a bag."""

    valid: bool
    errors: list[BagError] = field(default_factory=list)
    files_checked: int = 0
    files_valid: int = 0


def expected_checksums(bag: Bag) -> dict[str, dict[str, str]]:
    """
    Collect recorded digests per file across all manifests.

    Returns:
        Dict mapping bag-relative path to {algorithm: digest}.
    """
    expected: dict[str, dict[str, str]] = {}
    for manifest in bag.manifests:
        for path, digest in manifest.entries.items():
            expected.setdefault(path, {})[manifest.algorithm] = digest
    return expected


def find_unmanifested_payload(bag: Bag) -> list[UnmanifestedFileError]:
    """Payload files not listed in any payload manifest."""
    listed: set[str] = set()
    for manifest in bag.manifests:
        if manifest.kind == ManifestKind.PAYLOAD:
            listed.update(manifest.entries)

    errors = []
    for dirpath, dirnames, filenames in os.walk(bag.payload.data_dir):
        dirnames.sort()
        for filename in sorted(filenames):
            relative = (Path(dirpath) / filename).relative_to(bag.root).as_posix()
            if relative not in listed:
                errors.append(UnmanifestedFileError(relative))
    return errors


def validate_bag(bag: Bag, verify_content: bool = True) -> ValidationResult:
    """
    Validate a bag against its manifests.

    Checks:
    - Tracked files exist
    - Every manifested file exists
    - Recorded digests match file content (if verify_content)
    - Every payload file is manifested

    Args:
        bag: Bag to validate.
        verify_content: Whether to re-hash file content.

    Returns:
        ValidationResult listing every problem found.
    """
    errors: list[BagError] = list(bag.confirm_files())
    reported_missing = {e.path for e in errors}
    files_checked = 0
    files_valid = 0

    for path, digests in sorted(expected_checksums(bag).items()):
        files_checked += 1
        location = bag.root / path
        if not location.is_file():
            if path not in reported_missing:
                errors.append(MissingFileError(path))
            continue

        if not verify_content:
            files_valid += 1
            continue

        try:
            actual = hash_file(location, list(digests), chunk_size=bag.config.chunk_size)
        except BagError as e:
            errors.append(e)
            continue

        mismatches = [
            ChecksumMismatchError(path, algorithm, expected, actual[algorithm].digest)
            for algorithm, expected in sorted(digests.items())
            if actual[algorithm].digest != expected
        ]
        if mismatches:
            for mismatch in mismatches:
                logger.error(str(mismatch))
            errors.extend(mismatches)
        else:
            files_valid += 1

    errors.extend(find_unmanifested_payload(bag))

    logger.info(
        f"Validated {bag.root}: {files_valid}/{files_checked} files valid, {len(errors)} errors"
    )
    return ValidationResult(
        valid=not errors,
        errors=errors,
        files_checked=files_checked,
        files_valid=files_valid,
    )
