"""
Single-pass checksum pipeline.

Streams a source once, feeding every chunk to one hash object per
algorithm and optionally writing it to a destination.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, Any, Iterable

from bagsmith.core.errors import BagIOError
from bagsmith.core.hashing import Checksum, lookup, normalize_algorithms

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 65536


def _stream(
    reader: IO[bytes],
    algorithms: list[str],
    writer: IO[bytes] | None,
    chunk_size: int,
) -> tuple[dict[str, Checksum], int]:
    hashers: dict[str, Any] = {name: lookup(name)() for name in algorithms}
    total = 0

    for chunk in iter(lambda: reader.read(chunk_size), b""):
        if writer is not None:
            written = writer.write(chunk)
            if written is not None and written != len(chunk):
                raise OSError(f"short write: {written} of {len(chunk)} bytes")
        for hasher in hashers.values():
            hasher.update(chunk)
        total += len(chunk)

    checksums = {
        name: Checksum(algorithm=name, digest=hasher.hexdigest())
        for name, hasher in hashers.items()
    }
    return checksums, total


def copy_and_hash(
    source: str | Path,
    destination: str | Path,
    algorithms: Iterable[str],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> dict[str, Checksum]:
    """
    Copy a file while computing its checksums in the same pass.

    Every returned checksum is derived from exactly the bytes written to
    the destination. A partially written destination is left in place
    on failure.

    Args:
        source: File to read.
        destination: File to write; parent directories are created.
        algorithms: Algorithm names to compute.
        chunk_size: Read size in bytes.

    Returns:
        Dict mapping canonical algorithm name to Checksum.

    Raises:
        UnsupportedAlgorithmError: If an algorithm is not supported.
        BagIOError: If either file cannot be opened, read or written.
    """
    names = normalize_algorithms(list(algorithms))
    source = Path(source)
    destination = Path(destination)

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        with open(source, "rb") as reader, open(destination, "wb") as writer:
            checksums, total = _stream(reader, names, writer, chunk_size)
    except OSError as e:
        raise BagIOError(f"Failed to copy {source} to {destination}: {e}", str(source)) from e

    logger.debug(f"Copied {total} bytes from {source} to {destination}")
    return checksums


def hash_file(
    path: str | Path,
    algorithms: Iterable[str],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> dict[str, Checksum]:
    """
    Compute checksums of a file under several algorithms in one read.

    Args:
        path: File to hash.
        algorithms: Algorithm names to compute.
        chunk_size: Read size in bytes.

    Returns:
        Dict mapping canonical algorithm name to Checksum.

    Raises:
        BagIOError: If the file cannot be read.
    """
    names = normalize_algorithms(list(algorithms))
    try:
        with open(path, "rb") as reader:
            checksums, _ = _stream(reader, names, None, chunk_size)
    except OSError as e:
        raise BagIOError(f"Failed to hash {path}: {e}", str(path)) from e
    return checksums
