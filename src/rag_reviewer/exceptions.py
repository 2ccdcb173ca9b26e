"""
Exceptions

Base error type shared by the reviewer components. Component-specific
errors live next to the code that raises them:

ReviewerError
├── MalformedDiffError   (github.parser)
├── EventPayloadError    (github.events)
├── GitHubAPIError       (github.client)
│   └── RateLimitExceeded
├── VectorStoreError     (conventions.vector_store)
├── EmbeddingError       (conventions.embeddings)
└── ChatModelError       (llm.chat)
"""

from typing import Any, Dict, Optional


class ReviewerError(Exception):
    """Base exception for the RAG PR reviewer."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
