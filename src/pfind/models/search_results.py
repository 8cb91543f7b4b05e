"""
Search result data models for pfind.

This module defines the record published for every matching entry and the
rules that turn a record into the line printed for it.
"""

from typing import Any, Dict, Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .config import OutputMode


class EntryKind(Enum):
    """Kind of a directory entry, as reported in result lines."""
    FILE = "FILE"
    DIRECTORY = "DIR"
    SYMLINK = "SYMLINK"
    OTHER = "OTHER"


class ResultRecord(BaseModel):
    """
    A single match found during traversal.

    Records are immutable once constructed. Only regular files carry a size or
    a content hash, and never both at once.

    Attributes:
        path: Path of the entry, joined from the search root
        kind: Kind of entry that matched
        size: File size in bytes (size output mode only)
        xxhash: xxHash64 of the file content (hash output mode only)
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1, description="Path of the matched entry")
    kind: EntryKind = Field(EntryKind.FILE, description="Kind of the matched entry")
    size: Optional[int] = Field(None, ge=0, description="File size in bytes")
    xxhash: Optional[int] = Field(None, ge=0, description="xxHash64 of the file content")

    @field_validator('kind', mode='before')
    @classmethod
    def validate_kind(cls, v) -> EntryKind:
        """Ensure kind is an EntryKind enum."""
        if isinstance(v, str):
            try:
                return EntryKind(v)
            except ValueError:
                raise ValueError(f"Invalid entry kind: {v}")
        return v

    @model_validator(mode='after')
    def validate_record(self):
        """Auxiliary data is only attached to regular files."""
        if self.size is not None and self.xxhash is not None:
            raise ValueError("A record carries either a size or a hash, not both")
        if self.kind is not EntryKind.FILE and (self.size is not None or self.xxhash is not None):
            raise ValueError(f"{self.kind.value} records cannot carry a size or hash")
        return self

    def format_line(self, output_mode: OutputMode = OutputMode.PLAIN) -> str:
        """
        Render the record as a single output line.

        Args:
            output_mode: Active output mode; directories are tagged only when
                sizes are being printed

        Returns:
            ``path``, ``path\\tSIZE``, ``path\\txxHash:N``, ``path\\tDIR`` or
            ``path\\tSYMLINK``
        """
        if self.kind is EntryKind.SYMLINK:
            return f"{self.path}\tSYMLINK"
        if self.kind is EntryKind.DIRECTORY:
            if output_mode is OutputMode.SIZE:
                return f"{self.path}\tDIR"
            return self.path
        if self.xxhash is not None:
            return f"{self.path}\txxHash:{self.xxhash}"
        if self.size is not None:
            return f"{self.path}\t{self.size}"
        return self.path

    def to_dict(self) -> Dict[str, Any]:
        """Convert the record to dictionary representation."""
        data = self.model_dump()
        data['kind'] = self.kind.value
        return data

    def __str__(self) -> str:
        return self.format_line()
