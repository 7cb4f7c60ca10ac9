"""Core utilities: checksum registry, streaming hashing, config, errors."""

from bagsmith.core.checksum import copy_and_hash, hash_file
from bagsmith.core.config import BagConfig
from bagsmith.core.errors import BagError, ErrorKind
from bagsmith.core.hashing import (
    SUPPORTED_ALGORITHMS,
    Checksum,
    lookup,
    normalize_algorithm,
)

__all__ = [
    "copy_and_hash",
    "hash_file",
    "BagConfig",
    "BagError",
    "ErrorKind",
    "SUPPORTED_ALGORITHMS",
    "Checksum",
    "lookup",
    "normalize_algorithm",
]
