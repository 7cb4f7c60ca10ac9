"""
Error taxonomy for bag operations.

Batch operations collect these into lists; structural failures raise them.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Category of error for collection and reporting."""

    ALREADY_EXISTS = "already_exists"
    SOURCE_NOT_FOUND = "source_not_found"
    UNSUPPORTED_ALGORITHM = "unsupported_algorithm"
    MALFORMED_MANIFEST = "malformed_manifest"
    DUPLICATE_ENTRY = "duplicate_entry"
    MISSING_FILE = "missing_file"
    NO_MANIFEST_FOUND = "no_manifest_found"
    TAG_FILE_NOT_FOUND = "tag_file_not_found"
    IO = "io"
    INVALID_BAG = "invalid_bag"
    INVALID_PATH = "invalid_path"
    MALFORMED_TAG_FILE = "malformed_tag_file"
    CHECKSUM_MISMATCH = "checksum_mismatch"
    UNMANIFESTED_FILE = "unmanifested_file"
    INVALID_STATE = "invalid_state"


class BagError(Exception):
    """Base class for all bag errors."""

    kind: ErrorKind = ErrorKind.IO

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.message = message
        self.path = path


class AlreadyExistsError(BagError):
    """Bag directory already exists."""

    kind = ErrorKind.ALREADY_EXISTS


class SourceNotFoundError(BagError):
    """Source file for a payload add does not exist."""

    kind = ErrorKind.SOURCE_NOT_FOUND


class UnsupportedAlgorithmError(BagError):
    """Hash algorithm is not one of the supported names."""

    kind = ErrorKind.UNSUPPORTED_ALGORITHM

    def __init__(self, algorithm: str, path: str | None = None):
        super().__init__(f"Unsupported checksum algorithm: {algorithm!r}", path)
        self.algorithm = algorithm


class MalformedManifestError(BagError):
    """A manifest line could not be parsed."""

    kind = ErrorKind.MALFORMED_MANIFEST

    def __init__(self, message: str, path: str | None = None, line_number: int | None = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message, path)
        self.line_number = line_number


class DuplicateEntryError(MalformedManifestError):
    """The same file path appears twice in one manifest."""

    kind = ErrorKind.DUPLICATE_ENTRY


class MissingFileError(BagError):
    """A tracked or manifested file is not present on disk."""

    kind = ErrorKind.MISSING_FILE

    def __init__(self, path: str):
        super().__init__(f"Unable to find: {path}", path)


class NoManifestFoundError(BagError):
    """No payload manifest was discovered in a bag."""

    kind = ErrorKind.NO_MANIFEST_FOUND


class TagFileNotFoundError(BagError, LookupError):
    """Tag file name is not registered with the bag."""

    kind = ErrorKind.TAG_FILE_NOT_FOUND

    def __init__(self, name: str):
        super().__init__(f"Unable to find tagfile {name}", name)


class BagIOError(BagError):
    """Filesystem failure; the underlying OSError is chained as __cause__."""

    kind = ErrorKind.IO


class InvalidBagError(BagError):
    """Bag root or payload directory is missing or not a directory."""

    kind = ErrorKind.INVALID_BAG


class InvalidPathError(BagError):
    """A relative path is absolute or escapes its base directory."""

    kind = ErrorKind.INVALID_PATH


class MalformedTagFileError(BagError):
    """A tag file line is not a 'Name: value' field."""

    kind = ErrorKind.MALFORMED_TAG_FILE


class ChecksumMismatchError(BagError):
    """File content does not hash to the recorded digest."""

    kind = ErrorKind.CHECKSUM_MISMATCH

    def __init__(self, path: str, algorithm: str, expected: str, actual: str):
        super().__init__(
            f"{algorithm} checksum mismatch for {path}: expected {expected}, got {actual}",
            path,
        )
        self.algorithm = algorithm
        self.expected = expected
        self.actual = actual


class UnmanifestedFileError(BagError):
    """A payload file is not listed in any payload manifest."""

    kind = ErrorKind.UNMANIFESTED_FILE

    def __init__(self, path: str):
        super().__init__(f"Payload file not in any manifest: {path}", path)


class BagStateError(BagError):
    """Operation is not allowed in the bag's current lifecycle state."""

    kind = ErrorKind.INVALID_STATE
