"""
Tag files: ``Name: value`` field lists such as bagit.txt and bag-info.txt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from bagsmith.core.errors import BagIOError, MalformedTagFileError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TagField:
    """A single ``Name: value`` field."""

    name: str
    value: str

    def render(self) -> str:
        return f"{self.name}: {self.value}"


@dataclass
class TagFile:
    """
    A tag file tracked by a bag.

    Fields keep their order and may repeat, as bag-info.txt allows.
    """

    name: str  # Path relative to the bag root
    root: Path  # Bag root, not owned
    fields: list[TagField] = field(default_factory=list)

    @property
    def path(self) -> Path:
        """Absolute location on disk."""
        return self.root / self.name

    def add_field(self, name: str, value: str) -> None:
        """Append a field, keeping any existing fields of the same name."""
        if not name or ":" in name or "\n" in name:
            raise ValueError(f"Invalid tag field name: {name!r}")
        self.fields.append(TagField(name=name, value=value))

    def set_field(self, name: str, value: str) -> None:
        """Replace all fields with this name by a single field."""
        kept = [f for f in self.fields if f.name != name]
        if len(kept) == len(self.fields):
            self.add_field(name, value)
            return
        index = next(i for i, f in enumerate(self.fields) if f.name == name)
        kept.insert(index, TagField(name=name, value=value))
        self.fields = kept

    def get(self, name: str) -> str | None:
        """Get the first value for a field name."""
        for f in self.fields:
            if f.name == name:
                return f.value
        return None

    def get_all(self, name: str) -> list[str]:
        return [f.value for f in self.fields if f.name == name]

    def to_text(self) -> str:
        # Embedded newlines are folded onto indented continuation lines
        lines = [f.render().replace("\n", "\n  ") for f in self.fields]
        return "".join(line + "\n" for line in lines)

    def write(self) -> None:
        """
        Write the current fields to disk, creating parent directories.

        Raises:
            BagIOError: If the file cannot be written.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8", newline="\n") as f:
                f.write(self.to_text())
        except OSError as e:
            raise BagIOError(f"Failed to write tag file {self.path}: {e}", self.name) from e

    @staticmethod
    def parse_fields(text: str, name: str = "<text>") -> list[TagField]:
        """
        Parse ``Name: value`` lines.

        Lines starting with whitespace continue the previous value.

        Raises:
            MalformedTagFileError: On a line without a field separator.
        """
        fields: list[TagField] = []
        for line_number, raw in enumerate(text.splitlines(), start=1):
            if not raw.strip():
                continue
            if raw[0] in " \t":
                if not fields:
                    raise MalformedTagFileError(
                        f"{name}: line {line_number}: continuation without a field", name
                    )
                last = fields.pop()
                fields.append(TagField(last.name, f"{last.value}\n{raw.strip()}"))
                continue
            if ":" not in raw:
                raise MalformedTagFileError(
                    f"{name}: line {line_number}: expected 'Name: value'", name
                )
            key, value = raw.split(":", 1)
            fields.append(TagField(name=key.strip(), value=value.strip()))
        return fields

    @classmethod
    def load(cls, root: str | Path, name: str) -> TagFile:
        """
        Read a tag file from disk.

        Raises:
            BagIOError: If the file cannot be read or is not UTF-8.
            MalformedTagFileError: If a line is not a field.
        """
        root = Path(root)
        try:
            text = (root / name).read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            raise BagIOError(f"Failed to read tag file {name}: {e}", name) from e
        return cls(name=name, root=root, fields=cls.parse_fields(text, name))
