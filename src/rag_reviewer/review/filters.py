"""
File Filters

Selects which files of a parsed diff are reviewed: deleted files are
always skipped and paths matching any exclude pattern are dropped.
"""

import logging
from typing import Iterable, List, Optional, Sequence

import pathspec

from ..models.pr_diff import DiffFile


logger = logging.getLogger(__name__)


def reviewable_files(files: Iterable[DiffFile]) -> List[DiffFile]:
    """Drop deleted files; they are never sent to later stages."""
    return [f for f in files if not f.is_deleted]


class ExcludeFilter:
    """
    Glob-style exclude patterns (gitignore syntax).

    Filtering is idempotent: applying the same filter twice gives the same
    result as applying it once.
    """

    def __init__(self, patterns: Optional[Sequence[str]] = None):
        self.patterns = [p.strip() for p in (patterns or []) if p and p.strip()]
        self._spec = pathspec.PathSpec.from_lines('gitwildmatch', self.patterns)

    @classmethod
    def from_string(cls, value: Optional[str]) -> "ExcludeFilter":
        """Build a filter from a comma-separated pattern list."""
        if not value:
            return cls([])
        return cls(value.split(','))

    def is_excluded(self, file: DiffFile) -> bool:
        path = file.path
        if not path or not self.patterns:
            return False
        return self._spec.match_file(path)

    def filter(self, files: Iterable[DiffFile]) -> List[DiffFile]:
        """
        Keep files whose path matches no exclude pattern.

        Args:
            files: Parsed diff files

        Returns:
            Remaining files, in input order
        """
        files = list(files)
        kept = [f for f in files if not self.is_excluded(f)]

        excluded = len(files) - len(kept)
        if excluded:
            logger.info(f"Excluded {excluded} files by patterns {self.patterns}")
        return kept
