"""
Review Formatter

This module packs anchored review comments into GitHub review
submissions.
"""

from .github import GitHubReviewFormatter, DEFAULT_REVIEW_BODY

__all__ = ['GitHubReviewFormatter', 'DEFAULT_REVIEW_BODY']
