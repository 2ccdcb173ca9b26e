"""
PR Diff Data Models

Unified diff 파싱 결과와 Pull Request 메타데이터 모델들
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union


# 새 파일의 from / 삭제된 파일의 to 에 사용되는 sentinel
DEV_NULL = "/dev/null"


@dataclass(frozen=True)
class AddedLine:
    """추가된 라인 (새 파일 기준 라인 번호)"""
    content: str
    new_line: int

    marker = "+"

    def __post_init__(self):
        if self.new_line <= 0:
            raise ValueError("Line numbers must be positive")

    @property
    def diff_line_number(self) -> int:
        return self.new_line


@dataclass(frozen=True)
class RemovedLine:
    """삭제된 라인 (기존 파일 기준 라인 번호)"""
    content: str
    old_line: int

    marker = "-"

    def __post_init__(self):
        if self.old_line <= 0:
            raise ValueError("Line numbers must be positive")

    @property
    def diff_line_number(self) -> int:
        return self.old_line


@dataclass(frozen=True)
class ContextLine:
    """변경되지 않은 컨텍스트 라인"""
    content: str
    new_line: int
    old_line: int

    marker = " "

    def __post_init__(self):
        if self.new_line <= 0 or self.old_line <= 0:
            raise ValueError("Line numbers must be positive")

    @property
    def diff_line_number(self) -> int:
        return self.new_line


Change = Union[AddedLine, RemovedLine, ContextLine]


@dataclass(frozen=True)
class DiffChunk:
    """파일 diff 의 개별 hunk"""
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    content: str  # '@@ -l,c +l,c @@' 헤더 원문
    changes: Tuple[Change, ...] = ()

    def __post_init__(self):
        """데이터 검증"""
        if self.old_start < 0 or self.new_start < 0:
            raise ValueError("Line numbers must be non-negative")
        if self.old_lines < 0 or self.new_lines < 0:
            raise ValueError("Line counts must be non-negative")

    @property
    def added_lines(self) -> List[AddedLine]:
        return [c for c in self.changes if isinstance(c, AddedLine)]

    @property
    def removed_lines(self) -> List[RemovedLine]:
        return [c for c in self.changes if isinstance(c, RemovedLine)]

    @property
    def new_line_numbers(self) -> frozenset:
        """새 파일 좌표계에서 코멘트를 달 수 있는 라인 번호 집합"""
        return frozenset(
            c.new_line for c in self.changes if isinstance(c, (AddedLine, ContextLine))
        )


@dataclass(frozen=True)
class DiffFile:
    """diff 에 포함된 파일 하나"""
    from_path: Optional[str]
    to_path: Optional[str]
    chunks: Tuple[DiffChunk, ...] = ()
    additions: int = 0
    deletions: int = 0
    is_binary: bool = False

    def __post_init__(self):
        """데이터 검증"""
        if self.additions < 0 or self.deletions < 0:
            raise ValueError("Addition and deletion counts must be non-negative")

    @property
    def is_deleted(self) -> bool:
        return self.to_path == DEV_NULL

    @property
    def is_new(self) -> bool:
        return self.from_path == DEV_NULL

    @property
    def path(self) -> Optional[str]:
        """리뷰 대상 경로 (삭제된 파일이면 기존 경로)"""
        if self.to_path and self.to_path != DEV_NULL:
            return self.to_path
        if self.from_path and self.from_path != DEV_NULL:
            return self.from_path
        return None


@dataclass(frozen=True)
class PRContext:
    """리뷰 한 번 동안 고정되는 Pull Request 메타데이터"""
    owner: str
    repo: str
    pull_number: int
    title: str = ""
    description: str = ""

    def __post_init__(self):
        """데이터 검증"""
        if self.pull_number <= 0:
            raise ValueError("PR number must be positive")
        if not self.owner or not self.repo:
            raise ValueError("Repository owner and name are required")

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"

    @classmethod
    def from_api(cls, owner: str, repo: str, pr_data: dict) -> "PRContext":
        """GitHub pulls API 응답으로부터 생성"""
        return cls(
            owner=owner,
            repo=repo,
            pull_number=pr_data["number"],
            title=pr_data.get("title") or "",
            description=pr_data.get("body") or "",
        )
