"""
Review Data Models

코드 리뷰 결과 관련 데이터 모델들
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Union
from pydantic import BaseModel, field_validator


@dataclass(frozen=True)
class ReviewFinding:
    """LLM 이 반환한 개별 리뷰 항목 (검증 전에는 신뢰하지 않음)"""
    line_number: str
    comment: str


@dataclass(frozen=True)
class ReviewComment:
    """GitHub PR 인라인 코멘트"""
    path: str
    line: int
    body: str

    def __post_init__(self):
        """데이터 검증"""
        if self.line <= 0:
            raise ValueError("Line number must be positive")
        if not self.path:
            raise ValueError("Comment path cannot be empty")
        if not self.body.strip():
            raise ValueError("Comment body cannot be empty")

    def to_api(self) -> Dict[str, Any]:
        """GitHub create review API 형식으로 변환"""
        return {"path": self.path, "line": self.line, "body": self.body}


@dataclass
class ReviewSubmission:
    """하나의 PR 리뷰로 제출되는 코멘트 묶음"""
    body: str
    comments: List[ReviewComment] = field(default_factory=list)
    event: str = "COMMENT"

    def __post_init__(self):
        """데이터 검증"""
        valid_events = {"COMMENT"}
        if self.event not in valid_events:
            raise ValueError(f"Invalid review event: {self.event}")

    def to_api(self) -> Dict[str, Any]:
        return {
            "body": self.body,
            "event": self.event,
            "comments": [c.to_api() for c in self.comments],
        }


# LLM 응답 디코딩 결과

@dataclass(frozen=True)
class ReviewDecodeSuccess:
    """디코딩 성공"""
    findings: List[ReviewFinding]


@dataclass(frozen=True)
class ReviewDecodeError:
    """디코딩 실패"""
    kind: str  # 'invalid_json', 'missing_reviews', 'invalid_schema'
    detail: str

    def __post_init__(self):
        valid_kinds = {"invalid_json", "missing_reviews", "invalid_schema"}
        if self.kind not in valid_kinds:
            raise ValueError(f"Invalid decode error kind: {self.kind}")


ReviewDecodeResult = Union[ReviewDecodeSuccess, ReviewDecodeError]


# Pydantic models for LLM output validation
class ReviewItemPayload(BaseModel):
    """LLM 응답의 reviews 배열 항목"""
    lineNumber: Union[int, str]
    reviewComment: str

    @field_validator("lineNumber")
    @classmethod
    def normalize_line_number(cls, v):
        return str(v).strip()

    @field_validator("reviewComment")
    @classmethod
    def validate_comment(cls, v):
        if not v.strip():
            raise ValueError("Review comment cannot be empty")
        return v

    def to_finding(self) -> ReviewFinding:
        return ReviewFinding(line_number=self.lineNumber, comment=self.reviewComment)


class ReviewPayload(BaseModel):
    """LLM 응답 전체 ({"reviews": [...]}), 항목은 개별 검증"""
    reviews: List[Any]
