"""
Bag status report for display and JSON export.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import orjson
from pydantic import BaseModel, ConfigDict, Field

from bagsmith.core.errors import BagError

if TYPE_CHECKING:
    from bagsmith.bag.bag import Bag


class ErrorRecord(BaseModel):
    """Serializable form of a BagError."""

    model_config = ConfigDict(frozen=True)

    kind: str = Field(description="Error kind")
    message: str = Field(description="Human-readable message")
    path: str | None = Field(default=None, description="Bag-relative path involved")

    @classmethod
    def from_error(cls, error: BagError) -> ErrorRecord:
        return cls(kind=error.kind.value, message=error.message, path=error.path)


class ManifestSummary(BaseModel):
    """Summary of one manifest."""

    model_config = ConfigDict(frozen=True)

    filename: str
    kind: str
    algorithm: str
    entries: int


class BagReport(BaseModel):
    """
    Snapshot of a bag's consistency state.

    Built after opening/validating or saving a bag.
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="Bag root")
    state: str = Field(description="Lifecycle state")
    valid: bool = Field(description="True when no errors were found")
    manifests: list[ManifestSummary] = Field(default_factory=list)
    tracked_files: list[str] = Field(default_factory=list)
    orphans: list[str] = Field(default_factory=list)
    errors: list[ErrorRecord] = Field(default_factory=list)
    warnings: list[ErrorRecord] = Field(default_factory=list)

    @classmethod
    def from_bag(cls, bag: Bag, errors: list[BagError] | None = None) -> BagReport:
        """
        Build a report from a bag and the errors gathered while using it.

        Args:
            bag: The bag.
            errors: Errors from open/save/validate.

        Returns:
            BagReport instance.
        """
        errors = errors or []
        return cls(
            path=str(bag.root),
            state=bag.state.value,
            valid=not errors,
            manifests=[
                ManifestSummary(
                    filename=m.filename,
                    kind=m.kind.value,
                    algorithm=m.algorithm,
                    entries=len(m.entries),
                )
                for m in bag.manifests
            ],
            tracked_files=sorted(bag.tracked_files()),
            orphans=bag.orphans(),
            errors=[ErrorRecord.from_error(e) for e in errors],
            warnings=[ErrorRecord.from_error(w) for w in bag.warnings],
        )

    def to_json(self, indent: bool = True) -> str:
        """Serialize to JSON with sorted keys."""
        options = orjson.OPT_SORT_KEYS
        if indent:
            options |= orjson.OPT_INDENT_2
        return orjson.dumps(self.model_dump(mode="json"), option=options).decode("utf-8")
