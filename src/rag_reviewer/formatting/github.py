"""
GitHub Review Formatter

Packs anchored comments into a single comment-only review submission,
keeping each body within GitHub's size limit.
"""

import logging
from typing import List, Optional

from ..models.review import ReviewComment, ReviewSubmission


logger = logging.getLogger(__name__)


DEFAULT_REVIEW_BODY = "This is an automated review generated by an LLM reviewer."


class GitHubReviewFormatter:
    """
    Formats review comments for the GitHub create-review API.

    Comments keep their original order; the review event is always
    COMMENT (never APPROVE or REQUEST_CHANGES).
    """

    def __init__(self, review_body: Optional[str] = None):
        """
        Initialize GitHub review formatter.

        Args:
            review_body: Summary text of the review (defaults to a generic notice)
        """
        self.review_body = review_body or DEFAULT_REVIEW_BODY
        self.max_comment_length = 65536  # GitHub's comment limit

    def build_submission(self, comments: List[ReviewComment]) -> Optional[ReviewSubmission]:
        """
        Build a review submission.

        Args:
            comments: Anchored comments in file/hunk order

        Returns:
            ReviewSubmission, or None when there is nothing to submit
        """
        if not comments:
            return None

        formatted = [self._fit_comment(c) for c in comments]
        logger.info(f"Prepared review with {len(formatted)} comments")
        return ReviewSubmission(body=self.review_body, comments=formatted)

    def _fit_comment(self, comment: ReviewComment) -> ReviewComment:
        if len(comment.body) <= self.max_comment_length:
            return comment

        logger.warning(f"Truncating comment on {comment.path}:{comment.line}")
        suffix = "\n\n... (truncated)"
        body = comment.body[:self.max_comment_length - len(suffix)] + suffix
        return ReviewComment(path=comment.path, line=comment.line, body=body)
