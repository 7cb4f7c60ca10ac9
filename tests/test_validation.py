"""Tests for bag validation and reports."""

from pathlib import Path

import orjson
import pytest

from bagsmith.bag.bag import Bag, BagState
from bagsmith.bag.report import BagReport
from bagsmith.bag.validation import expected_checksums, find_unmanifested_payload
from bagsmith.core.errors import (
    ChecksumMismatchError,
    MissingFileError,
    UnmanifestedFileError,
)


@pytest.fixture
def bag_root(tmp_path: Path) -> Path:
    """Create and save a two-file bag, returning its root."""
    src = tmp_path / "src"
    src.mkdir()
    (src / "one.txt").write_text("first")
    (src / "two.txt").write_text("second")

    bag = Bag.create(tmp_path, "bag", ["md5", "sha1"], tag_manifests=True)
    assert bag.add_directory(src) == []
    assert bag.save() == []
    return tmp_path / "bag"


class TestValidate:
    """Tests for validate_bag through Bag.validate."""

    def test_valid_bag(self, bag_root: Path):
        """An untouched bag validates cleanly."""
        bag, errors = Bag.open(bag_root)
        result = bag.validate()

        assert errors == []
        assert result.valid
        assert result.errors == []
        assert result.files_checked == result.files_valid
        assert bag.state == BagState.VALIDATED

    def test_expected_checksums_merge(self, bag_root: Path):
        """Digests from every manifest are grouped per file."""
        bag, _ = Bag.open(bag_root)
        expected = expected_checksums(bag)
        assert set(expected["data/one.txt"]) == {"md5", "sha1"}
        assert "bagit.txt" in expected

    def test_checksum_mismatch(self, bag_root: Path):
        """Modified content is reported once per algorithm."""
        (bag_root / "data" / "one.txt").write_text("tampered")

        bag, _ = Bag.open(bag_root)
        result = bag.validate()

        assert not result.valid
        mismatches = [e for e in result.errors if isinstance(e, ChecksumMismatchError)]
        assert {e.algorithm for e in mismatches} == {"md5", "sha1"}
        assert all(e.path == "data/one.txt" for e in mismatches)

    def test_fast_skips_content(self, bag_root: Path):
        """Presence-only validation ignores modified content."""
        (bag_root / "data" / "one.txt").write_text("tampered")

        bag, _ = Bag.open(bag_root)
        assert bag.validate(verify_content=False).valid

    def test_missing_payload_file(self, bag_root: Path):
        """A deleted payload file is reported as missing."""
        (bag_root / "data" / "two.txt").unlink()

        bag, _ = Bag.open(bag_root)
        result = bag.validate()

        missing = [e for e in result.errors if isinstance(e, MissingFileError)]
        assert [e.path for e in missing] == ["data/two.txt"]

    def test_missing_tag_file_reported_once(self, bag_root: Path):
        """A tracked file listed in manifests is not double-reported."""
        (bag_root / "bagit.txt").unlink()

        bag, _ = Bag.open(bag_root)
        result = bag.validate()

        missing = [e for e in result.errors if isinstance(e, MissingFileError)]
        assert [e.path for e in missing] == ["bagit.txt"]

    def test_unmanifested_payload(self, bag_root: Path):
        """Payload files absent from the manifests are reported."""
        (bag_root / "data" / "extra.txt").write_text("stray")

        bag, _ = Bag.open(bag_root)
        assert [e.path for e in find_unmanifested_payload(bag)] == ["data/extra.txt"]

        result = bag.validate()
        assert not result.valid
        assert any(isinstance(e, UnmanifestedFileError) for e in result.errors)


class TestBagReport:
    """Tests for the report model."""

    def test_report_json(self, bag_root: Path):
        """Reports serialize with sorted keys."""
        bag, errors = Bag.open(bag_root)
        result = bag.validate()

        report = BagReport.from_bag(bag, errors + result.errors)
        data = orjson.loads(report.to_json())

        assert data["valid"] is True
        assert data["state"] == "validated"
        assert list(data) == sorted(data)
        assert {m["filename"] for m in data["manifests"]} == {
            "manifest-md5.txt", "manifest-sha1.txt",
            "tagmanifest-md5.txt", "tagmanifest-sha1.txt",
        }

    def test_report_errors(self, bag_root: Path):
        """Errors carry their kind and path."""
        (bag_root / "data" / "one.txt").write_text("tampered")
        bag, _ = Bag.open(bag_root)
        result = bag.validate()

        report = BagReport.from_bag(bag, result.errors)

        assert not report.valid
        assert {e.kind for e in report.errors} == {"checksum_mismatch"}
        assert {e.path for e in report.errors} == {"data/one.txt"}
