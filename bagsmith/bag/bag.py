"""
Bag integrity engine.

Owns a bag's payload, manifests and tag files, and keeps on-disk content
and recorded checksums consistent across the create/save and open/validate
lifecycles.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from bagsmith.bag.payload import Payload, safe_relative_path
from bagsmith.core.checksum import hash_file
from bagsmith.core.config import BAG_INFO_TXT, BAGIT_TXT, BagConfig
from bagsmith.core.errors import (
    AlreadyExistsError,
    BagError,
    BagIOError,
    BagStateError,
    InvalidBagError,
    InvalidPathError,
    MissingFileError,
    NoManifestFoundError,
    TagFileNotFoundError,
    UnsupportedAlgorithmError,
)
from bagsmith.core.hashing import normalize_algorithms
from bagsmith.core.manifest.manifest import (
    Manifest,
    ManifestKind,
    parse_manifest_filename,
)
from bagsmith.core.manifest.tag_file import TagFile

if TYPE_CHECKING:
    from bagsmith.bag.validation import ValidationResult

logger = logging.getLogger(__name__)

BAGIT_VERSION = "0.97"
TAG_FILE_ENCODING = "UTF-8"
PAYLOAD_DIR = "data"


class BagState(str, Enum):
    """Lifecycle state of a bag within one process run."""

    UNINITIALIZED = "uninitialized"
    CREATED = "created"
    POPULATED = "populated"
    SAVED = "saved"
    OPENED = "opened"
    VALIDATED = "validated"


class Bag:
    """
    A BagIt bag: payload directory, manifests and tag files.

    Use Bag.create() to build a new bag or Bag.open() to read one.
    """

    def __init__(
        self,
        root: str | Path,
        payload: Payload,
        manifests: list[Manifest],
        config: BagConfig | None = None,
        state: BagState = BagState.UNINITIALIZED,
    ):
        self.root = Path(root)
        self.payload = payload
        self.manifests = manifests
        self.config = config or BagConfig()
        self.state = state
        self.tag_files: dict[str, TagFile] = {}
        self.warnings: list[BagError] = []

    def __repr__(self) -> str:
        return f"Bag({str(self.root)!r}, state={self.state.value})"

    # Construction

    @classmethod
    def create(
        cls,
        location: str | Path,
        name: str,
        algorithms: Iterable[str] | None = None,
        tag_manifests: bool | None = None,
        *,
        config: BagConfig | None = None,
    ) -> Bag:
        """
        Create a new, empty bag directory.

        Args:
            location: Existing parent directory.
            name: Name of the bag directory to create.
            algorithms: Manifest algorithms; defaults to config.algorithms.
            tag_manifests: Also keep tag manifests; defaults to config.tag_manifests.
            config: Bag configuration.

        Returns:
            Bag in CREATED state with bagit.txt registered.

        Raises:
            AlreadyExistsError: If the bag directory already exists.
            UnsupportedAlgorithmError: If an algorithm is not supported.
            BagIOError: If a directory or file cannot be created.
        """
        config = config or BagConfig()
        names = normalize_algorithms(list(algorithms) if algorithms else config.algorithms)
        if tag_manifests is None:
            tag_manifests = config.tag_manifests

        root = Path(location) / name
        try:
            root.mkdir()
        except FileExistsError as e:
            raise AlreadyExistsError(f"Bag already exists: {root}", str(root)) from e
        except OSError as e:
            raise BagIOError(f"Failed to create bag directory {root}: {e}", str(root)) from e

        manifests = [Manifest(root, ManifestKind.PAYLOAD, a) for a in names]
        if tag_manifests:
            manifests += [Manifest(root, ManifestKind.TAG, a) for a in names]

        data_dir = root / PAYLOAD_DIR
        try:
            data_dir.mkdir()
        except OSError as e:
            raise BagIOError(f"Failed to create payload directory {data_dir}: {e}", PAYLOAD_DIR) from e
        payload = Payload(data_dir, chunk_size=config.chunk_size)

        bag = cls(root, payload, manifests, config=config, state=BagState.CREATED)
        bagit = bag.add_tag_file(BAGIT_TXT)
        bagit.add_field("BagIt-Version", BAGIT_VERSION)
        bagit.add_field("Tag-File-Character-Encoding", TAG_FILE_ENCODING)
        bagit.write()

        logger.info(f"Created bag {root} ({', '.join(names)})")
        return bag

    @classmethod
    def open(
        cls,
        root: str | Path,
        known_tag_files: Iterable[str] | None = None,
        *,
        config: BagConfig | None = None,
    ) -> tuple[Bag, list[BagError]]:
        """
        Open an existing bag for reading.

        Every manifest at the bag root is parsed; malformed lines are
        collected rather than aborting. Only the named tag files are parsed.

        Args:
            root: Bag root directory.
            known_tag_files: Tag files to parse; defaults to config.known_tag_files.
            config: Bag configuration.

        Returns:
            Tuple of (bag in OPENED state, errors).

        Raises:
            InvalidBagError: If root or its payload directory is missing.
            NoManifestFoundError: If no payload manifest exists.
        """
        config = config or BagConfig()
        root = Path(root)
        if not root.is_dir():
            raise InvalidBagError(f"Bag directory not found: {root}", str(root))

        names = config.known_tag_files if known_tag_files is None else list(known_tag_files)
        errors: list[BagError] = []
        manifests: list[Manifest] = []

        for entry in sorted(root.iterdir()):
            if not entry.is_file():
                continue
            try:
                if parse_manifest_filename(entry.name) is None:
                    continue
                manifest, manifest_errors = Manifest.load(entry)
            except BagError as e:
                logger.error(f"Cannot read manifest {entry.name}: {e}")
                errors.append(e)
                continue
            for error in manifest_errors:
                logger.error(str(error))
            manifests.append(manifest)
            errors.extend(manifest_errors)

        if not any(m.kind == ManifestKind.PAYLOAD for m in manifests):
            raise NoManifestFoundError(f"No payload manifest found in {root}", str(root))

        payload = Payload(root / PAYLOAD_DIR, chunk_size=config.chunk_size)
        bag = cls(root, payload, manifests, config=config, state=BagState.OPENED)

        for name in names:
            if not (root / name).is_file():
                logger.debug(f"Known tag file {name} not present")
                continue
            try:
                bag.tag_files[name] = TagFile.load(root, name)
            except BagError as e:
                if config.strict_tag_files:
                    logger.error(f"Malformed tag file {name}: {e}")
                    errors.append(e)
                else:
                    logger.warning(f"Ignoring malformed tag file {name}: {e}")
                    bag.warnings.append(e)

        logger.info(f"Opened bag {root} with {len(manifests)} manifests ({len(errors)} errors)")
        return bag, errors

    # Accessors

    @property
    def path(self) -> Path:
        return self.root

    @property
    def algorithms(self) -> list[str]:
        """Algorithms of the payload manifests."""
        return [m.algorithm for m in self.payload_manifests()]

    def payload_manifests(self) -> list[Manifest]:
        return [m for m in self.manifests if m.kind == ManifestKind.PAYLOAD]

    def tag_manifests(self) -> list[Manifest]:
        return [m for m in self.manifests if m.kind == ManifestKind.TAG]

    def manifest(self, kind: ManifestKind, algorithm: str) -> Manifest | None:
        for m in self.manifests:
            if m.kind == kind and m.algorithm == algorithm:
                return m
        return None

    def _require(self, *states: BagState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise BagStateError(f"Operation requires state {allowed}; bag is {self.state.value}")

    # Tag files

    def add_tag_file(self, name: str) -> TagFile:
        """
        Register a tag file by bag-relative name.

        An existing file is parsed and tracked as-is; otherwise an empty
        file is created, along with any intermediate directories.

        Raises:
            InvalidPathError: If name escapes the bag or names a manifest
                or payload path.
            MalformedTagFileError: If an existing file is not a field list.
            BagIOError: On filesystem failure.
        """
        name = safe_relative_path(name)
        if name == PAYLOAD_DIR or name.startswith(f"{PAYLOAD_DIR}/"):
            raise InvalidPathError(f"Tag files cannot live in the payload: {name}", name)
        try:
            is_manifest = parse_manifest_filename(name) is not None
        except UnsupportedAlgorithmError:
            is_manifest = True
        if is_manifest:
            raise InvalidPathError(f"Tag file name is reserved for manifests: {name}", name)

        if name in self.tag_files:
            return self.tag_files[name]

        path = self.root / name
        if path.is_file():
            tag_file = TagFile.load(self.root, name)
        else:
            tag_file = TagFile(name=name, root=self.root)
            tag_file.write()

        self.tag_files[name] = tag_file
        logger.debug(f"Registered tag file {name}")
        return tag_file

    def tag_file(self, name: str) -> TagFile:
        """
        Get a registered tag file.

        Raises:
            TagFileNotFoundError: If no tag file is registered under name.
        """
        try:
            return self.tag_files[safe_relative_path(name)]
        except (KeyError, InvalidPathError):
            raise TagFileNotFoundError(name) from None

    def bag_info(self) -> TagFile:
        """
        Get bag-info.txt. It is optional, so it must have been added first.

        Raises:
            TagFileNotFoundError: If bag-info.txt is not registered.
        """
        return self.tag_file(BAG_INFO_TXT)

    # Payload

    def add_file(self, source: str | Path, dest: str) -> None:
        """
        Copy a file into the payload and record it in every payload manifest.

        Args:
            source: File to add.
            dest: Destination relative to the data directory.
        """
        self._require(BagState.CREATED, BagState.POPULATED)
        dest = safe_relative_path(dest)
        manifests = self.payload_manifests()
        checksums = self.payload.add(source, dest, [m.algorithm for m in manifests])
        for m in manifests:
            m.set(f"{PAYLOAD_DIR}/{dest}", checksums[m.algorithm])
        self.state = BagState.POPULATED

    def add_directory(self, source: str | Path) -> list[BagError]:
        """
        Add every file under a directory to the payload.

        Returns:
            Errors for files that could not be added.
        """
        self._require(BagState.CREATED, BagState.POPULATED)
        manifests = self.payload_manifests()
        results, errors = self.payload.add_all(
            source,
            [m.algorithm for m in manifests],
            follow_symlinks=self.config.follow_symlinks,
        )
        for relative, checksums in results.items():
            for m in manifests:
                m.set(f"{PAYLOAD_DIR}/{relative}", checksums[m.algorithm])
        self.state = BagState.POPULATED
        return errors

    # Save

    def save(self) -> list[BagError]:
        """
        Write tag files and manifests.

        Files are written before anything that checksums them: tag files
        first, then payload manifests, then tag manifest entries are
        recomputed from the bytes on disk, then tag manifests are written.
        A tag manifest never lists itself or another tag manifest.

        Returns:
            Every error encountered; non-empty means the bag is incomplete.
        """
        self._require(BagState.CREATED, BagState.POPULATED, BagState.SAVED)
        errors: list[BagError] = []
        written: list[str] = []
        failed: list[str] = []

        for name in sorted(self.tag_files):
            try:
                self.tag_files[name].write()
                written.append(name)
            except BagError as e:
                logger.error(f"Failed to write tag file {name}: {e}")
                errors.append(e)
                failed.append(name)

        for manifest in self.payload_manifests():
            try:
                manifest.create()
                written.append(manifest.filename)
            except BagError as e:
                logger.error(f"Failed to write {manifest.filename}: {e}")
                errors.append(e)
                failed.append(manifest.filename)

        tag_manifests = self.tag_manifests()
        if tag_manifests:
            tag_algorithms = [m.algorithm for m in tag_manifests]
            for manifest in tag_manifests:
                for name in failed:
                    manifest.remove(name)

            for name in written:
                try:
                    checksums = hash_file(
                        self.root / name, tag_algorithms, chunk_size=self.config.chunk_size
                    )
                except BagError as e:
                    logger.error(f"Failed to checksum {name}: {e}")
                    errors.append(e)
                    for manifest in tag_manifests:
                        manifest.remove(name)
                    continue
                for manifest in tag_manifests:
                    manifest.set(name, checksums[manifest.algorithm])

            for manifest in tag_manifests:
                try:
                    manifest.create()
                except BagError as e:
                    logger.error(f"Failed to write {manifest.filename}: {e}")
                    errors.append(e)

        self.state = BagState.SAVED
        logger.info(f"Saved bag {self.root} ({len(errors)} errors)")
        return errors

    # Consistency

    def tracked_files(self) -> set[str]:
        """
        Non-payload files the bag accounts for.

        Registered tag files, manifest files, and files listed in tag
        manifests.
        """
        tracked = set(self.tag_files)
        for manifest in self.manifests:
            tracked.add(manifest.filename)
            if manifest.kind == ManifestKind.TAG:
                tracked.update(manifest.entries)
        return tracked

    def confirm_files(self) -> list[MissingFileError]:
        """Report every tracked file that is not present on disk."""
        errors = []
        for name in sorted(self.tracked_files()):
            if not os.path.exists(self.root / name):
                errors.append(MissingFileError(name))
        return errors

    def list_files(self) -> list[str]:
        """
        Walk the bag root, skipping the payload directory.

        Returns:
            Sorted root-relative POSIX paths of files and empty directories.
        """
        found: list[str] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            current = Path(dirpath)
            if current == self.root:
                dirnames[:] = [d for d in dirnames if self.root / d != self.payload.data_dir]
            dirnames.sort()
            relative = current.relative_to(self.root)
            if current != self.root and not dirnames and not filenames:
                found.append(relative.as_posix())
            for filename in filenames:
                found.append((relative / filename).as_posix())
        return sorted(found)

    def orphans(self) -> list[str]:
        """Files under the bag root that nothing in the bag accounts for."""
        tracked = self.tracked_files()
        return [f for f in self.list_files() if f not in tracked]

    # Validation

    def validate(self, verify_content: bool = True) -> ValidationResult:
        """
        Re-verify an opened bag against its manifests.

        Args:
            verify_content: Re-hash file content; when False only presence
                and completeness are checked.

        Returns:
            ValidationResult with every problem found.
        """
        from bagsmith.bag.validation import validate_bag

        self._require(BagState.OPENED, BagState.VALIDATED)
        result = validate_bag(self, verify_content=verify_content)
        self.state = BagState.VALIDATED
        return result
