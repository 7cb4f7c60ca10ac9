"""
Bag configuration.

Defaults for bag creation and opening, loadable from YAML.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from bagsmith.core.errors import UnsupportedAlgorithmError
from bagsmith.core.hashing import normalize_algorithms

BAGIT_TXT = "bagit.txt"
BAG_INFO_TXT = "bag-info.txt"


class BagConfig(BaseModel):
    """Options controlling how bags are built and read."""

    model_config = ConfigDict(frozen=True)

    algorithms: list[str] = Field(
        default_factory=lambda: ["sha256"],
        description="Checksum algorithms for payload (and tag) manifests",
    )
    tag_manifests: bool = Field(
        default=True, description="Write tagmanifest-<algo>.txt files"
    )
    follow_symlinks: bool = Field(
        default=False, description="Follow symlinks when adding directories"
    )
    strict_tag_files: bool = Field(
        default=False,
        description="Report malformed known tag files as errors instead of warnings",
    )
    known_tag_files: list[str] = Field(
        default_factory=lambda: [BAGIT_TXT, BAG_INFO_TXT],
        description="Tag files parsed when opening a bag",
    )
    chunk_size: int = Field(
        default=65536, gt=0, description="Read size in bytes for hashing"
    )

    @field_validator("algorithms")
    @classmethod
    def _normalize_algorithms(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one algorithm is required")
        try:
            return normalize_algorithms(value)
        except UnsupportedAlgorithmError as e:
            raise ValueError(e.message) from e

    @classmethod
    def load(cls, path: Path) -> BagConfig:
        """
        Load configuration from a YAML file.

        Args:
            path: Path to config YAML.

        Returns:
            Loaded BagConfig instance.
        """
        content = Path(path).read_text()
        data = yaml.safe_load(content) or {}
        return cls.model_validate(data)

    def save(self, path: Path) -> None:
        """Save configuration to a YAML file."""
        content = yaml.dump(self.model_dump(), default_flow_style=False, sort_keys=True)
        Path(path).write_text(content)
