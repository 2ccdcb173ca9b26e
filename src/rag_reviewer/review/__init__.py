"""
Review Pipeline

This module provides file filtering, comment mapping and the pipeline
that drives a pull request review.
"""

from .filters import ExcludeFilter, reviewable_files
from .mapper import CommentMapper, coerce_line_number
from .pipeline import ReviewPipeline, ReviewRunStats

__all__ = [
    'ExcludeFilter',
    'reviewable_files',
    'CommentMapper',
    'coerce_line_number',
    'ReviewPipeline',
    'ReviewRunStats',
]
