"""
Payload and tag manifests.

A manifest maps bag-relative file paths to digests for one algorithm and
round-trips through the line-oriented ``manifest-<algo>.txt`` format.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from enum import Enum
from pathlib import Path

from bagsmith.core.errors import (
    BagIOError,
    DuplicateEntryError,
    MalformedManifestError,
    UnsupportedAlgorithmError,
)
from bagsmith.core.hashing import Checksum, is_valid_digest, normalize_algorithm

logger = logging.getLogger(__name__)

MANIFEST_FILENAME_PATTERN = re.compile(r"^(tagmanifest|manifest)-([A-Za-z0-9]+)\.txt$")


class ManifestKind(str, Enum):
    """Whether a manifest checksums payload files or tag files."""

    PAYLOAD = "manifest"
    TAG = "tagmanifest"


def manifest_filename(kind: ManifestKind, algorithm: str) -> str:
    """
    Build the bag-root filename for a manifest.

    Examples:
        >>> manifest_filename(ManifestKind.TAG, "md5")
        'tagmanifest-md5.txt'
    """
    return f"{kind.value}-{normalize_algorithm(algorithm)}.txt"


def parse_manifest_filename(filename: str) -> tuple[ManifestKind, str] | None:
    """
    Identify a manifest by filename.

    Returns:
        (kind, algorithm) if the name follows the manifest naming convention,
        None otherwise.

    Raises:
        UnsupportedAlgorithmError: If the name is a manifest name for an
            unknown algorithm.
    """
    match = MANIFEST_FILENAME_PATTERN.match(filename)
    if match is None:
        return None
    kind = ManifestKind(match.group(1))
    try:
        algorithm = normalize_algorithm(match.group(2))
    except UnsupportedAlgorithmError as e:
        raise UnsupportedAlgorithmError(match.group(2), path=filename) from e
    return kind, algorithm


class Manifest:
    """
    Checksums of a set of bag files under one algorithm.

    Entries are keyed by POSIX path relative to the bag root. Insertion
    order is irrelevant; serialization sorts by path.
    """

    def __init__(self, root: str | Path, kind: ManifestKind, algorithm: str):
        """
        Initialize an empty manifest.

        Args:
            root: Bag root directory the manifest lives in.
            kind: Payload or tag manifest.
            algorithm: Checksum algorithm name.
        """
        self.root = Path(root)
        self._kind = ManifestKind(kind)
        self._algorithm = normalize_algorithm(algorithm)
        self.entries: dict[str, str] = {}

    def __repr__(self) -> str:
        return f"Manifest({self.filename!r}, entries={len(self.entries)})"

    @property
    def kind(self) -> ManifestKind:
        return self._kind

    @property
    def algorithm(self) -> str:
        return self._algorithm

    @property
    def filename(self) -> str:
        """Filename relative to the bag root."""
        return manifest_filename(self._kind, self._algorithm)

    @property
    def location(self) -> Path:
        """Absolute path of the manifest file."""
        return self.root / self.filename

    def set(self, path: str, checksum: Checksum | str) -> None:
        """
        Insert or overwrite the digest for a path.

        Args:
            path: Bag-relative POSIX path.
            checksum: Checksum for this manifest's algorithm, or a bare digest.

        Raises:
            ValueError: If the path cannot be represented on one line or the
                checksum is for a different algorithm.
        """
        if "\n" in path or "\r" in path:
            raise ValueError(f"Manifest paths cannot contain line breaks: {path!r}")
        if not path.strip() or path[0].isspace():
            raise ValueError(f"Manifest paths cannot be blank or start with whitespace: {path!r}")
        if isinstance(checksum, Checksum):
            if checksum.algorithm != self._algorithm:
                raise ValueError(
                    f"{checksum.algorithm} checksum given to {self._algorithm} manifest"
                )
            digest = checksum.digest
        else:
            digest = checksum
        self.entries[path] = digest.lower()

    def get(self, path: str) -> str | None:
        return self.entries.get(path)

    def remove(self, path: str) -> bool:
        """Remove an entry. Returns True if it was present."""
        return self.entries.pop(path, None) is not None

    def __contains__(self, path: object) -> bool:
        return path in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def serialize(self) -> str:
        """
        Render the manifest body.

        One ``<digest> <path>`` line per entry, sorted by path.
        """
        return "".join(f"{self.entries[p]} {p}\n" for p in sorted(self.entries))

    def create(self) -> None:
        """
        Write the manifest file atomically.

        Raises:
            BagIOError: If the file cannot be written.
        """
        location = self.location
        try:
            location.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{location.name}.", suffix=".tmp", dir=location.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                    f.write(self.serialize())
                os.replace(tmp_name, location)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise BagIOError(f"Failed to write manifest {location}: {e}", self.filename) from e

        logger.debug(f"Wrote {self.filename} with {len(self.entries)} entries")

    @classmethod
    def parse(
        cls,
        text: str,
        root: str | Path,
        kind: ManifestKind,
        algorithm: str,
    ) -> tuple[Manifest, list[MalformedManifestError]]:
        """
        Parse manifest text, collecting every malformed line.

        Well-formed lines are kept even when sibling lines fail. For a
        duplicated path the first occurrence wins.

        Args:
            text: Manifest file body.
            root: Bag root directory.
            kind: Payload or tag manifest.
            algorithm: Checksum algorithm the digests must match.

        Returns:
            Tuple of (manifest, errors).
        """
        manifest = cls(root, kind, algorithm)
        errors: list[MalformedManifestError] = []
        source = manifest.filename

        for line_number, raw in enumerate(text.split("\n"), start=1):
            line = raw.rstrip("\r")
            if not line.strip():
                continue

            parts = line.split(None, 1)
            if len(parts) != 2 or not parts[1].strip():
                errors.append(
                    MalformedManifestError(
                        "expected '<digest> <path>'", source, line_number
                    )
                )
                continue

            digest, path = parts[0], parts[1]
            if not is_valid_digest(manifest.algorithm, digest):
                errors.append(
                    MalformedManifestError(
                        f"invalid {manifest.algorithm} digest {digest!r}",
                        source,
                        line_number,
                    )
                )
                continue

            if path in manifest.entries:
                errors.append(
                    DuplicateEntryError(f"duplicate entry for {path}", source, line_number)
                )
                continue

            manifest.entries[path] = digest.lower()

        return manifest, errors

    @classmethod
    def loads(
        cls,
        text: str,
        root: str | Path,
        kind: ManifestKind,
        algorithm: str,
    ) -> Manifest:
        """
        Parse manifest text strictly.

        Raises:
            MalformedManifestError: On the first malformed or duplicate line.
        """
        manifest, errors = cls.parse(text, root, kind, algorithm)
        if errors:
            raise errors[0]
        return manifest

    @classmethod
    def load(cls, path: str | Path) -> tuple[Manifest, list[MalformedManifestError]]:
        """
        Read and parse a manifest file; kind and algorithm come from its name.

        Raises:
            MalformedManifestError: If the filename is not a manifest name.
            UnsupportedAlgorithmError: If the algorithm is unknown.
            BagIOError: If the file cannot be read.
        """
        path = Path(path)
        identity = parse_manifest_filename(path.name)
        if identity is None:
            raise MalformedManifestError("not a manifest filename", path.name)
        kind, algorithm = identity

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise BagIOError(f"Failed to read manifest {path}: {e}", path.name) from e

        return cls.parse(text, path.parent, kind, algorithm)
