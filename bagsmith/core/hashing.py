"""
Checksum algorithm registry.

Maps canonical algorithm names to streaming hash constructors. The set of
algorithms is fixed by the BagIt format, so the table is static.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import Any, Callable

from bagsmith.core.errors import UnsupportedAlgorithmError

_CONSTRUCTORS: dict[str, Callable[[], Any]] = {
    "md5": hashlib.md5,
    "sha1": hashlib.sha1,
    "sha224": hashlib.sha224,
    "sha256": hashlib.sha256,
    "sha384": hashlib.sha384,
    "sha512": hashlib.sha512,
}

SUPPORTED_ALGORITHMS: tuple[str, ...] = tuple(_CONSTRUCTORS)

# Hex digest length per algorithm
DIGEST_LENGTHS: dict[str, int] = {
    name: ctor().digest_size * 2 for name, ctor in _CONSTRUCTORS.items()
}

_HEX_PATTERN = re.compile(r"^[0-9a-fA-F]+$")


@dataclass(frozen=True)
class Checksum:
    """A digest computed under one algorithm."""

    algorithm: str
    digest: str

    def __str__(self) -> str:
        return f"{self.algorithm}:{self.digest}"


def normalize_algorithm(name: str) -> str:
    """
    Return the canonical lowercase name for an algorithm.

    Args:
        name: Algorithm name in any case (e.g. "SHA256").

    Returns:
        Canonical name (e.g. "sha256").

    Raises:
        UnsupportedAlgorithmError: If the name is not supported.

    Examples:
        >>> normalize_algorithm("SHA256")
        'sha256'
    """
    canonical = name.strip().lower()
    if canonical not in _CONSTRUCTORS:
        raise UnsupportedAlgorithmError(name)
    return canonical


def lookup(name: str) -> Callable[[], Any]:
    """
    Look up the streaming hash constructor for an algorithm.

    Args:
        name: Algorithm name, case-insensitive.

    Returns:
        Zero-argument callable producing a fresh hash object.

    Raises:
        UnsupportedAlgorithmError: If the name is not supported.
    """
    return _CONSTRUCTORS[normalize_algorithm(name)]


def digest_length(name: str) -> int:
    """Get the expected hex digest length for an algorithm."""
    return DIGEST_LENGTHS[normalize_algorithm(name)]


def is_valid_digest(name: str, digest: str) -> bool:
    """
    Check that a digest is hex of the right length for the algorithm.

    Examples:
        >>> is_valid_digest("md5", "5d41402abc4b2a76b9719d911017c592")
        True
        >>> is_valid_digest("md5", "zz")
        False
    """
    return len(digest) == digest_length(name) and bool(_HEX_PATTERN.match(digest))


def normalize_algorithms(names: list[str] | tuple[str, ...] | set[str]) -> list[str]:
    """Normalize and de-duplicate algorithm names, preserving first-seen order."""
    seen: list[str] = []
    for name in names:
        canonical = normalize_algorithm(name)
        if canonical not in seen:
            seen.append(canonical)
    return seen
