"""
Data Models

RAG PR Reviewer 시스템의 핵심 데이터 모델들
"""

from .pr_diff import (
    DEV_NULL,
    AddedLine,
    RemovedLine,
    ContextLine,
    Change,
    DiffChunk,
    DiffFile,
    PRContext,
)
from .convention import RetrievedDocument
from .review import (
    ReviewFinding,
    ReviewComment,
    ReviewSubmission,
    ReviewDecodeSuccess,
    ReviewDecodeError,
    ReviewDecodeResult,
)

__all__ = [
    "DEV_NULL",
    "AddedLine",
    "RemovedLine",
    "ContextLine",
    "Change",
    "DiffChunk",
    "DiffFile",
    "PRContext",
    "RetrievedDocument",
    "ReviewFinding",
    "ReviewComment",
    "ReviewSubmission",
    "ReviewDecodeSuccess",
    "ReviewDecodeError",
    "ReviewDecodeResult",
]
