"""
Comment Mapper

Anchors model findings to diff coordinates. A finding becomes a review
comment only when its line can be placed on the new side of the hunk it
was generated from; everything else is dropped before it reaches GitHub.
"""

import logging
import re
from typing import List, Optional, Sequence

from ..models.pr_diff import DEV_NULL, DiffChunk, DiffFile
from ..models.review import ReviewComment, ReviewFinding


logger = logging.getLogger(__name__)


_LINE_NUMBER_PATTERN = re.compile(r'^\s*(?:L|line\s*)?(\d+)\s*$', re.IGNORECASE)


def coerce_line_number(value) -> Optional[int]:
    """
    Convert a model-reported line number to an int.

    Accepts ints and strings such as "42", " 42 ", "L42" or "line 42".
    Ranges ("42-45") resolve to their first line.

    Returns:
        Positive line number, or None if it cannot be read
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if value is None:
        return None

    text = str(value).strip()
    range_match = re.match(r'^(\d+)\s*[-–:]\s*\d+$', text)
    if range_match:
        text = range_match.group(1)

    match = _LINE_NUMBER_PATTERN.match(text)
    if not match:
        return None
    number = int(match.group(1))
    return number if number > 0 else None


class CommentMapper:
    """
    Maps review findings onto anchored review comments.

    In strict mode (default) a line must be the new-file number of an added
    or context line in the hunk. Non-strict mode forwards any positive line
    number, which GitHub may reject at submission time.
    """

    def __init__(self, strict: bool = True):
        """
        Initialize comment mapper.

        Args:
            strict: Drop findings whose line is not on the new side of the hunk
        """
        self.strict = strict

    def map(
        self,
        file: DiffFile,
        chunk: DiffChunk,
        findings: Optional[Sequence[ReviewFinding]]
    ) -> List[ReviewComment]:
        """
        Convert findings for one hunk into review comments.

        Args:
            file: File the hunk belongs to
            chunk: Hunk the findings were generated from
            findings: Findings returned by the model

        Returns:
            Anchored comments in finding order
        """
        if not findings:
            return []

        if not file.to_path or file.to_path == DEV_NULL:
            logger.debug(f"Dropping {len(findings)} findings for removed file {file.from_path}")
            return []

        valid_lines = chunk.new_line_numbers
        comments: List[ReviewComment] = []

        for finding in findings:
            line = coerce_line_number(finding.line_number)
            if line is None:
                logger.debug(f"Dropping finding with unreadable line {finding.line_number!r} in {file.to_path}")
                continue

            if self.strict and line not in valid_lines:
                logger.debug(f"Dropping finding on line {line} outside {chunk.content} in {file.to_path}")
                continue

            if not finding.comment or not finding.comment.strip():
                logger.debug(f"Dropping empty finding on line {line} in {file.to_path}")
                continue

            comments.append(ReviewComment(path=file.to_path, line=line, body=finding.comment))

        dropped = len(findings) - len(comments)
        if dropped:
            logger.info(f"Dropped {dropped} of {len(findings)} findings for {file.to_path}")
        return comments
