"""
Unified Diff Parser

Parses raw unified diff text (as returned by the GitHub diff media type)
into structured files, hunks and line changes for review.
"""

import re
import logging
from typing import List, Optional

from ..exceptions import ReviewerError
from ..models.pr_diff import (
    DEV_NULL,
    AddedLine,
    RemovedLine,
    ContextLine,
    DiffChunk,
    DiffFile,
)


logger = logging.getLogger(__name__)


class MalformedDiffError(ReviewerError):
    """Raised when no file header can be recognised in a diff."""
    pass


class _ChunkBuilder:
    """Mutable state for the hunk currently being read."""

    def __init__(self, old_start: int, old_lines: int, new_start: int, new_lines: int, header: str):
        self.old_start = old_start
        self.old_lines = old_lines
        self.new_start = new_start
        self.new_lines = new_lines
        self.header = header
        self.changes = []
        self.old_ln = old_start
        self.new_ln = new_start
        self.old_remaining = old_lines
        self.new_remaining = new_lines
        self.error = None

    @property
    def exhausted(self) -> bool:
        return self.old_remaining <= 0 and self.new_remaining <= 0

    def build(self) -> DiffChunk:
        return DiffChunk(
            old_start=self.old_start,
            old_lines=self.old_lines,
            new_start=self.new_start,
            new_lines=self.new_lines,
            content=self.header,
            changes=tuple(self.changes),
        )


class _FileBuilder:
    """Mutable state for the file currently being read."""

    def __init__(self, from_path: Optional[str] = None, to_path: Optional[str] = None):
        self.from_path = from_path
        self.to_path = to_path
        self.chunks = []
        self.additions = 0
        self.deletions = 0
        self.is_binary = False
        self.seen_old_header = False
        self.seen_new_header = False

    def build(self) -> DiffFile:
        return DiffFile(
            from_path=self.from_path,
            to_path=self.to_path,
            chunks=tuple(self.chunks),
            additions=self.additions,
            deletions=self.deletions,
            is_binary=self.is_binary,
        )


class UnifiedDiffParser:
    """
    Parser for unified diff text.

    Produces one DiffFile per file header, in input order. Each hunk carries
    its changes with diff-relative line numbers: added and context lines are
    numbered in the new file, removed lines in the old file.
    """

    def __init__(self):
        """Initialize unified diff parser."""
        self.git_header_pattern = re.compile(r'^diff --git "?(a/.+?)"? "?(b/.+?)"?$')
        self.old_file_pattern = re.compile(r'^--- (.+)$')
        self.new_file_pattern = re.compile(r'^\+\+\+ (.+)$')
        self.hunk_header_pattern = re.compile(r'^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$')
        self.binary_file_pattern = re.compile(r'^Binary files? .* differ')

    def parse(self, raw_diff: str) -> List[DiffFile]:
        """
        Parse unified diff text into structured files.

        Args:
            raw_diff: Raw unified diff text

        Returns:
            List of DiffFile objects in input order

        Raises:
            MalformedDiffError: If the text is non-empty but contains no file header
        """
        if not raw_diff or not raw_diff.strip():
            return []

        files: List[_FileBuilder] = []
        current: Optional[_FileBuilder] = None
        chunk: Optional[_ChunkBuilder] = None

        def close_chunk():
            nonlocal chunk
            if chunk is not None and current is not None:
                if chunk.error:
                    logger.warning(f"Skipping hunk {chunk.header!r} in {current.to_path}: {chunk.error}")
                else:
                    current.chunks.append(chunk.build())
            chunk = None

        def start_file(from_path=None, to_path=None) -> _FileBuilder:
            close_chunk()
            builder = _FileBuilder(from_path, to_path)
            files.append(builder)
            return builder

        for line in raw_diff.split('\n'):
            line = line.rstrip('\r')
            # Body lines are consumed first while the hunk still expects lines
            if chunk is not None and not chunk.exhausted:
                if self._consume_change(current, chunk, line):
                    continue

            git_match = self.git_header_pattern.match(line)
            if git_match:
                current = start_file(
                    self._strip_prefix(git_match.group(1)),
                    self._strip_prefix(git_match.group(2)),
                )
                continue

            if line.startswith('--- ') and self.old_file_pattern.match(line):
                # A '---' header without a preceding 'diff --git' starts a new file
                if current is None or current.seen_old_header or current.chunks or chunk is not None:
                    current = start_file()
                current.from_path = self._parse_path(line[4:])
                current.seen_old_header = True
                continue

            if line.startswith('+++ ') and self.new_file_pattern.match(line):
                if current is None or current.seen_new_header:
                    current = start_file()
                current.to_path = self._parse_path(line[4:])
                current.seen_new_header = True
                continue

            if line.startswith('@@'):
                close_chunk()
                if current is None:
                    logger.warning(f"Hunk header without file header skipped: {line!r}")
                    continue
                header_match = self.hunk_header_pattern.match(line)
                if not header_match:
                    logger.warning(f"Unparsable hunk header in {current.to_path}: {line!r}")
                    continue
                chunk = _ChunkBuilder(
                    old_start=int(header_match.group(1)),
                    old_lines=int(header_match.group(2) if header_match.group(2) is not None else 1),
                    new_start=int(header_match.group(3)),
                    new_lines=int(header_match.group(4) if header_match.group(4) is not None else 1),
                    header=line,
                )
                continue

            if current is None:
                continue

            if line.startswith('new file mode'):
                current.from_path = DEV_NULL
            elif line.startswith('deleted file mode'):
                current.to_path = DEV_NULL
            elif line.startswith('rename from '):
                current.from_path = line[len('rename from '):]
            elif line.startswith('rename to '):
                current.to_path = line[len('rename to '):]
            elif self.binary_file_pattern.match(line):
                current.is_binary = True
            elif chunk is not None:
                # Lenient: hunk counts were too small, keep reading change lines
                self._consume_change(current, chunk, line, strict=False)

        close_chunk()

        if not files:
            raise MalformedDiffError("No file headers found in diff")

        parsed = [builder.build() for builder in files]
        logger.info(
            f"Parsed diff: {len(parsed)} files, "
            f"{sum(len(f.chunks) for f in parsed)} hunks"
        )
        return parsed

    def _consume_change(
        self,
        current: _FileBuilder,
        chunk: _ChunkBuilder,
        line: str,
        strict: bool = True
    ) -> bool:
        """
        Add a body line to the current hunk.

        Returns:
            True if the line was consumed as part of the hunk
        """
        if line.startswith('\\'):
            # "\ No newline at end of file"
            return True

        if line.startswith('+'):
            self._append_change(chunk, AddedLine, content=line[1:], new_line=chunk.new_ln)
            chunk.new_ln += 1
            chunk.new_remaining -= 1
            current.additions += 1
            return True

        if line.startswith('-'):
            self._append_change(chunk, RemovedLine, content=line[1:], old_line=chunk.old_ln)
            chunk.old_ln += 1
            chunk.old_remaining -= 1
            current.deletions += 1
            return True

        # Some tools strip the trailing space of empty context lines
        if line.startswith(' ') or (line == '' and strict):
            self._append_change(
                chunk, ContextLine, content=line[1:], new_line=chunk.new_ln, old_line=chunk.old_ln
            )
            chunk.new_ln += 1
            chunk.old_ln += 1
            chunk.new_remaining -= 1
            chunk.old_remaining -= 1
            return True

        return False

    def _append_change(self, chunk: _ChunkBuilder, change_type, **fields):
        """Append a change, marking the hunk unusable if its line numbers are invalid."""
        try:
            chunk.changes.append(change_type(**fields))
        except ValueError as e:
            chunk.error = str(e)

    def _parse_path(self, raw_path: str) -> str:
        """Parse the path of a '---' / '+++' header line."""
        # Drop trailing timestamps ("--- a/file\t2024-01-01 ...")
        path = raw_path.split('\t', 1)[0].strip()
        if path.startswith('"') and path.endswith('"') and len(path) >= 2:
            path = path[1:-1]
        if path == DEV_NULL:
            return DEV_NULL
        return self._strip_prefix(path)

    def _strip_prefix(self, path: str) -> str:
        """Strip the 'a/' or 'b/' prefix git adds to paths."""
        if path.startswith(('a/', 'b/')):
            return path[2:]
        return path


def parse_diff(raw_diff: str) -> List[DiffFile]:
    """Parse unified diff text with a default parser."""
    return UnifiedDiffParser().parse(raw_diff)
