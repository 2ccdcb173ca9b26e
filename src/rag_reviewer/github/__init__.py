"""
GitHub Integration Layer

This module provides GitHub API integration for PR diff retrieval,
unified diff parsing, event payloads and review submission.
"""

from .client import GitHubClient, GitHubAPIError, RateLimitExceeded
from .parser import UnifiedDiffParser, MalformedDiffError, parse_diff
from .events import PullRequestEvent, EventPayloadError, load_event

__all__ = [
    'GitHubClient',
    'GitHubAPIError',
    'RateLimitExceeded',
    'UnifiedDiffParser',
    'MalformedDiffError',
    'parse_diff',
    'PullRequestEvent',
    'EventPayloadError',
    'load_event',
]
