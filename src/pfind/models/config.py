"""
Configuration data models for pfind.

This module defines the immutable configuration shared by every traversal
task: the name predicate, the output mode, directory reporting, the exclusion
set and the concurrency settings.
"""

import os
from typing import Any, Dict, FrozenSet, List
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .search_query import SearchQuery


DEFAULT_MAX_CONCURRENT = 256
DEFAULT_STREAM_BUFFER = 1024


class OutputMode(Enum):
    """Auxiliary data computed for matching regular files."""
    PLAIN = "plain"
    SIZE = "size"
    HASH = "xxhash"

    @classmethod
    def from_flags(cls, size: bool = False, xxhash: bool = False) -> 'OutputMode':
        """Select the mode from command-line style flags; the hash wins over the size."""
        if xxhash:
            return cls.HASH
        if size:
            return cls.SIZE
        return cls.PLAIN


class ExcludeMode(Enum):
    """How exclusion entries are compared against directories."""
    NAME = "name"
    PATH_SUBSTRING = "path"


class FinderConfig(BaseModel):
    """
    Read-only configuration for a traversal run.

    Instances are frozen so they can be shared by reference across worker
    threads without locking.

    Attributes:
        query: Name predicate applied to files and, when enabled, directories
        output_mode: Auxiliary data printed for regular files
        print_dirs: Also report directories whose name matches the query
        exclude: Directory names (or path fragments) never descended into
        exclude_mode: Match exclusions by exact name or by path substring
        max_concurrent: Maximum number of directory scans running at once
        stream_buffer: Capacity of the result stream (0 means unbounded)
    """

    model_config = ConfigDict(frozen=True)

    query: SearchQuery = Field(default_factory=SearchQuery, description="Name predicate")
    output_mode: OutputMode = Field(OutputMode.PLAIN, description="Auxiliary data printed for files")
    print_dirs: bool = Field(False, description="Also report matching directories")
    exclude: FrozenSet[str] = Field(default_factory=frozenset, description="Excluded directory names")
    exclude_mode: ExcludeMode = Field(ExcludeMode.NAME, description="How exclusions are matched")
    max_concurrent: int = Field(DEFAULT_MAX_CONCURRENT, gt=0, description="Maximum concurrent directory scans")
    stream_buffer: int = Field(DEFAULT_STREAM_BUFFER, ge=0, description="Result stream capacity")

    @field_validator('output_mode', mode='before')
    @classmethod
    def validate_output_mode(cls, v) -> OutputMode:
        """Validate and convert output mode to enum."""
        if isinstance(v, str):
            try:
                return OutputMode(v.lower())
            except ValueError:
                raise ValueError(f"Invalid output mode: {v}")
        return v

    @field_validator('exclude_mode', mode='before')
    @classmethod
    def validate_exclude_mode(cls, v) -> ExcludeMode:
        """Validate and convert exclude mode to enum."""
        if isinstance(v, str):
            try:
                return ExcludeMode(v.lower())
            except ValueError:
                raise ValueError(f"Invalid exclude mode: {v}")
        return v

    @field_validator('exclude', mode='before')
    @classmethod
    def validate_exclude(cls, v) -> FrozenSet[str]:
        """Strip entries and drop blank ones."""
        if v is None:
            return frozenset()
        if isinstance(v, str):
            v = [v]
        names = set()
        for name in v:
            if not isinstance(name, str):
                raise ValueError(f"Exclusion entry must be a string, got {type(name).__name__}")
            name = name.strip()
            if name:
                names.add(name)
        return frozenset(names)

    def is_excluded(self, dir_path: str, name: str) -> bool:
        """
        Check whether a directory must be skipped entirely.

        Args:
            dir_path: Full path of the directory
            name: Final component of the directory path

        Returns:
            True if the directory is not to be descended into
        """
        if not self.exclude:
            return False
        if self.exclude_mode is ExcludeMode.NAME:
            return name in self.exclude
        return any(fragment in dir_path for fragment in self.exclude)

    def validate_configuration(self) -> List[str]:
        """
        Collect non-fatal warnings about this configuration.

        Returns:
            List of warning messages
        """
        warnings = []

        if self.exclude_mode is ExcludeMode.NAME:
            for name in sorted(self.exclude):
                if os.sep in name or (os.altsep and os.altsep in name):
                    warnings.append(
                        f"Exclusion '{name}' contains a path separator and can never match a directory name"
                    )

        if self.max_concurrent > 10000:
            warnings.append(f"Very high max_concurrent ({self.max_concurrent}) may exhaust threads or file descriptors")

        return warnings

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = self.model_dump()
        data['query'] = self.query.to_dict()
        data['output_mode'] = self.output_mode.value
        data['exclude'] = sorted(self.exclude)
        data['exclude_mode'] = self.exclude_mode.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FinderConfig':
        """Create a FinderConfig instance from a dictionary."""
        return cls.model_validate(data)

    def __str__(self) -> str:
        """String representation of the configuration."""
        parts = [str(self.query)]
        parts.append(f"Output: {self.output_mode.value}")
        if self.print_dirs:
            parts.append("Directories: reported")
        if self.exclude:
            parts.append(f"Excluded: {len(self.exclude)} by {self.exclude_mode.value}")
        parts.append(f"Max concurrent: {self.max_concurrent}")
        return " | ".join(parts)
