"""
Convention Data Models

벡터 인덱스에서 검색된 컨벤션 문서 모델
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class RetrievedDocument:
    """검색된 컨벤션 문서 (content + 출처 URL)"""
    content: str
    url: str = ""

    @classmethod
    def from_payload(
        cls,
        payload: Optional[Dict[str, Any]],
        content_field: str = "text",
        url_field: str = "url",
    ) -> Optional["RetrievedDocument"]:
        """Qdrant payload 로부터 생성. 본문이 없으면 None"""
        if not payload:
            return None
        content = payload.get(content_field)
        if not content or not str(content).strip():
            return None
        return cls(content=str(content).strip(), url=str(payload.get(url_field) or ""))

    def render(self, index: int) -> str:
        """프롬프트에 삽입할 형식으로 변환"""
        return f"{index}. {self.content}\nrelated wiki: {self.url}\n"
