"""Tests for manifest parsing, serialization and writing."""

import hashlib
from pathlib import Path

import pytest

from bagsmith.core.errors import (
    DuplicateEntryError,
    MalformedManifestError,
    UnsupportedAlgorithmError,
)
from bagsmith.core.hashing import Checksum
from bagsmith.core.manifest.manifest import (
    Manifest,
    ManifestKind,
    manifest_filename,
    parse_manifest_filename,
)

MD5_HELLO = "5d41402abc4b2a76b9719d911017c592"
MD5_WORLD = hashlib.md5(b"world").hexdigest()


class TestManifestNames:
    """Tests for manifest filename conventions."""

    def test_payload_filename(self):
        """Payload manifests are manifest-<algo>.txt."""
        assert manifest_filename(ManifestKind.PAYLOAD, "SHA256") == "manifest-sha256.txt"

    def test_tag_filename(self):
        """Tag manifests are tagmanifest-<algo>.txt."""
        assert manifest_filename(ManifestKind.TAG, "md5") == "tagmanifest-md5.txt"

    def test_parse_filename(self):
        """Filenames identify kind and algorithm."""
        assert parse_manifest_filename("manifest-md5.txt") == (ManifestKind.PAYLOAD, "md5")
        assert parse_manifest_filename("tagmanifest-sha1.txt") == (ManifestKind.TAG, "sha1")
        assert parse_manifest_filename("bagit.txt") is None

    def test_parse_filename_unknown_algorithm(self):
        """A manifest name with an unknown algorithm is an error."""
        with pytest.raises(UnsupportedAlgorithmError):
            parse_manifest_filename("manifest-crc32.txt")

    def test_location(self, tmp_path: Path):
        """Location is at the bag root."""
        manifest = Manifest(tmp_path, ManifestKind.TAG, "sha512")
        assert manifest.location == tmp_path / "tagmanifest-sha512.txt"
        assert manifest.kind == ManifestKind.TAG
        assert manifest.algorithm == "sha512"


class TestManifestEntries:
    """Tests for entry manipulation."""

    def test_set_overwrites(self, tmp_path: Path):
        """Re-adding a path overwrites its digest."""
        manifest = Manifest(tmp_path, ManifestKind.PAYLOAD, "md5")
        manifest.set("data/a.txt", MD5_HELLO)
        manifest.set("data/a.txt", MD5_WORLD)

        assert len(manifest) == 1
        assert manifest.get("data/a.txt") == MD5_WORLD

    def test_set_checksum_object(self, tmp_path: Path):
        """Checksum objects are accepted for the matching algorithm."""
        manifest = Manifest(tmp_path, ManifestKind.PAYLOAD, "md5")
        manifest.set("data/a.txt", Checksum("md5", MD5_HELLO))
        assert "data/a.txt" in manifest

    def test_set_wrong_algorithm(self, tmp_path: Path):
        """A checksum for another algorithm is rejected."""
        manifest = Manifest(tmp_path, ManifestKind.PAYLOAD, "md5")
        with pytest.raises(ValueError):
            manifest.set("data/a.txt", Checksum("sha1", "0" * 40))

    def test_set_rejects_newlines(self, tmp_path: Path):
        """Paths must fit on one line."""
        manifest = Manifest(tmp_path, ManifestKind.PAYLOAD, "md5")
        with pytest.raises(ValueError):
            manifest.set("data/a\nb.txt", MD5_HELLO)

    def test_remove(self, tmp_path: Path):
        """remove() reports whether the entry existed."""
        manifest = Manifest(tmp_path, ManifestKind.PAYLOAD, "md5")
        manifest.set("data/a.txt", MD5_HELLO)
        assert manifest.remove("data/a.txt") is True
        assert manifest.remove("data/a.txt") is False


class TestManifestFormat:
    """Tests for the text format."""

    def test_serialize_sorted(self, tmp_path: Path):
        """Lines are sorted by path."""
        manifest = Manifest(tmp_path, ManifestKind.PAYLOAD, "md5")
        manifest.set("data/z.txt", MD5_WORLD)
        manifest.set("data/a.txt", MD5_HELLO)

        assert manifest.serialize() == (
            f"{MD5_HELLO} data/a.txt\n{MD5_WORLD} data/z.txt\n"
        )

    def test_roundtrip(self, tmp_path: Path):
        """parse(serialize(E)) == E."""
        manifest = Manifest(tmp_path, ManifestKind.PAYLOAD, "md5")
        manifest.set("data/a.txt", MD5_HELLO)
        manifest.set("data/with space.txt", MD5_WORLD)
        manifest.set("data/sub/dir/ünïcode.bin", MD5_HELLO)

        parsed = Manifest.loads(manifest.serialize(), tmp_path, ManifestKind.PAYLOAD, "md5")

        assert parsed.entries == manifest.entries

    def test_parse_whitespace_variants(self, tmp_path: Path):
        """Multiple spaces, tabs, CRLF and blank lines are tolerated."""
        text = f"{MD5_HELLO}   data/a.txt\r\n\n{MD5_WORLD}\tdata/b.txt\n"

        manifest = Manifest.loads(text, tmp_path, ManifestKind.PAYLOAD, "md5")

        assert manifest.entries == {"data/a.txt": MD5_HELLO, "data/b.txt": MD5_WORLD}

    def test_parse_uppercase_digest(self, tmp_path: Path):
        """Uppercase digests are stored lowercase."""
        manifest = Manifest.loads(
            f"{MD5_HELLO.upper()} data/a.txt\n", tmp_path, ManifestKind.PAYLOAD, "md5"
        )
        assert manifest.get("data/a.txt") == MD5_HELLO

    def test_invalid_digest_aggregated(self, tmp_path: Path):
        """A bad line is reported while well-formed siblings still parse."""
        text = f"zz invalidhex data/x.txt\n{MD5_HELLO} data/a.txt\n"

        manifest, errors = Manifest.parse(text, tmp_path, ManifestKind.PAYLOAD, "md5")

        assert len(errors) == 1
        assert isinstance(errors[0], MalformedManifestError)
        assert errors[0].line_number == 1
        assert manifest.entries == {"data/a.txt": MD5_HELLO}

    def test_invalid_digest_strict(self, tmp_path: Path):
        """loads() raises on the first malformed line."""
        with pytest.raises(MalformedManifestError):
            Manifest.loads("zz invalidhex data/x.txt\n", tmp_path, ManifestKind.PAYLOAD, "md5")

    def test_wrong_length_for_algorithm(self, tmp_path: Path):
        """An md5 digest is not a valid sha256 digest."""
        _, errors = Manifest.parse(
            f"{MD5_HELLO} data/a.txt\n", tmp_path, ManifestKind.PAYLOAD, "sha256"
        )
        assert len(errors) == 1

    def test_missing_path(self, tmp_path: Path):
        """A digest without a path is malformed."""
        _, errors = Manifest.parse(f"{MD5_HELLO}\n", tmp_path, ManifestKind.PAYLOAD, "md5")
        assert len(errors) == 1

    def test_duplicate_entry(self, tmp_path: Path):
        """A path listed twice is a DuplicateEntryError; the first wins."""
        text = f"{MD5_HELLO} data/a.txt\n{MD5_WORLD} data/a.txt\n"

        manifest, errors = Manifest.parse(text, tmp_path, ManifestKind.PAYLOAD, "md5")

        assert len(errors) == 1
        assert isinstance(errors[0], DuplicateEntryError)
        assert isinstance(errors[0], MalformedManifestError)
        assert manifest.get("data/a.txt") == MD5_HELLO


class TestManifestFiles:
    """Tests for writing and loading manifest files."""

    def test_create_writes_file(self, tmp_path: Path):
        """create() writes the serialized body."""
        manifest = Manifest(tmp_path, ManifestKind.PAYLOAD, "md5")
        manifest.set("data/a.txt", MD5_HELLO)

        manifest.create()

        assert manifest.location.read_text() == f"{MD5_HELLO} data/a.txt\n"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["manifest-md5.txt"]

    def test_create_makes_parent(self, tmp_path: Path):
        """Parent directories are created."""
        manifest = Manifest(tmp_path / "new" / "bag", ManifestKind.TAG, "sha1")
        manifest.create()
        assert manifest.location.exists()
        assert manifest.location.read_text() == ""

    def test_create_regenerates(self, tmp_path: Path):
        """Each create fully replaces the previous body."""
        manifest = Manifest(tmp_path, ManifestKind.PAYLOAD, "md5")
        manifest.set("data/a.txt", MD5_HELLO)
        manifest.set("data/b.txt", MD5_WORLD)
        manifest.create()

        manifest.remove("data/b.txt")
        manifest.create()

        assert manifest.location.read_text() == f"{MD5_HELLO} data/a.txt\n"

    def test_load(self, tmp_path: Path):
        """load() infers kind and algorithm from the filename."""
        path = tmp_path / "tagmanifest-md5.txt"
        path.write_text(f"{MD5_HELLO} bagit.txt\n")

        manifest, errors = Manifest.load(path)

        assert errors == []
        assert manifest.kind == ManifestKind.TAG
        assert manifest.algorithm == "md5"
        assert manifest.root == tmp_path
        assert manifest.entries == {"bagit.txt": MD5_HELLO}
