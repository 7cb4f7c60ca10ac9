"""
Bag payload directory.

Adding a file copies it under the data directory while computing every
requested checksum in the same pass.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Iterable

from bagsmith.core.checksum import DEFAULT_CHUNK_SIZE, copy_and_hash
from bagsmith.core.errors import (
    BagError,
    BagIOError,
    InvalidBagError,
    InvalidPathError,
    SourceNotFoundError,
)
from bagsmith.core.hashing import Checksum

logger = logging.getLogger(__name__)


def safe_relative_path(path: str | PurePosixPath) -> str:
    """
    Normalize a relative path to POSIX form, rejecting escapes.

    Backslashes are separators only where the platform treats them so.

    Raises:
        InvalidPathError: If the path is empty, absolute, contains '..',
            or contains a line break.

    Examples:
        >>> safe_relative_path("docs/./a.txt")
        'docs/a.txt'
    """
    text = str(path)
    if os.altsep:
        text = text.replace(os.sep, "/")
    if "\n" in text or "\r" in text:
        raise InvalidPathError(f"Path cannot contain line breaks: {path!r}", text)
    posix = PurePosixPath(text)
    if not text or posix.is_absolute() or ".." in posix.parts:
        raise InvalidPathError(f"Path must be relative and inside the bag: {path}", text)
    normalized = posix.as_posix()
    if normalized in ("", "."):
        raise InvalidPathError(f"Path must name a file: {path}", text)
    return normalized


class Payload:
    """The data directory of a bag."""

    def __init__(self, data_dir: str | Path, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Initialize a payload over an existing directory.

        Args:
            data_dir: Payload directory; must already exist.
            chunk_size: Read size in bytes for copy-and-hash.

        Raises:
            InvalidBagError: If data_dir is not an existing directory.
        """
        self.data_dir = Path(data_dir)
        self.chunk_size = chunk_size
        if not self.data_dir.is_dir():
            raise InvalidBagError(f"Payload directory not found: {self.data_dir}", str(data_dir))

    @property
    def name(self) -> str:
        """Absolute path of the payload directory."""
        return str(self.data_dir)

    def add(
        self,
        source: str | Path,
        relative_dest: str,
        algorithms: Iterable[str],
    ) -> dict[str, Checksum]:
        """
        Copy a file into the payload and checksum it.

        Args:
            source: File to copy.
            relative_dest: Destination path relative to the data directory.
            algorithms: Algorithms to compute.

        Returns:
            Dict mapping algorithm name to Checksum.

        Raises:
            SourceNotFoundError: If source does not exist.
            InvalidPathError: If relative_dest escapes the data directory.
            BagIOError: On copy or hash failure.
        """
        source = Path(source)
        if not source.exists():
            raise SourceNotFoundError(f"Source not found: {source}", str(source))
        if not source.is_file():
            raise BagIOError(f"Source is not a regular file: {source}", str(source))

        dest = safe_relative_path(relative_dest)
        checksums = copy_and_hash(
            source, self.data_dir / dest, algorithms, chunk_size=self.chunk_size
        )
        logger.debug(f"Added {source} as data/{dest}")
        return checksums

    def add_all(
        self,
        source_dir: str | Path,
        algorithms: Iterable[str],
        *,
        follow_symlinks: bool = False,
    ) -> tuple[dict[str, dict[str, Checksum]], list[BagError]]:
        """
        Add every regular file under a directory, keeping relative layout.

        A failing file is recorded and the walk continues.

        Args:
            source_dir: Directory to walk.
            algorithms: Algorithms to compute for every file.
            follow_symlinks: Follow symlinked files and directories; when
                False they are skipped.

        Returns:
            Tuple of (checksums by relative path, errors).
        """
        source_dir = Path(source_dir)
        algorithms = list(algorithms)
        results: dict[str, dict[str, Checksum]] = {}
        errors: list[BagError] = []

        if not source_dir.is_dir():
            errors.append(SourceNotFoundError(f"Source directory not found: {source_dir}", str(source_dir)))
            return results, errors

        def on_walk_error(e: OSError) -> None:
            logger.error(f"Cannot read {e.filename}: {e}")
            errors.append(BagIOError(f"Cannot read {e.filename}: {e}", e.filename))

        for dirpath, dirnames, filenames in os.walk(
            source_dir, onerror=on_walk_error, followlinks=follow_symlinks
        ):
            current = Path(dirpath)
            dirnames.sort()
            if not follow_symlinks:
                for d in [d for d in dirnames if (current / d).is_symlink()]:
                    logger.warning(f"Skipping symlinked directory {current / d}")
                    dirnames.remove(d)

            for filename in sorted(filenames):
                path = current / filename
                if path.is_symlink() and not follow_symlinks:
                    logger.warning(f"Skipping symlink {path}")
                    continue
                if not path.is_file():
                    logger.debug(f"Skipping non-regular file {path}")
                    continue

                relative = path.relative_to(source_dir).as_posix()
                try:
                    dest = safe_relative_path(relative)
                    results[dest] = self.add(path, dest, algorithms)
                except BagError as e:
                    logger.error(f"Failed to add {path}: {e}")
                    errors.append(e)

        logger.info(f"Added {len(results)} files from {source_dir} ({len(errors)} errors)")
        return results, errors
