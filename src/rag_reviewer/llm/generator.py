"""
Review Generator

Sends a review prompt to the chat model and decodes the structured
findings it returns. Failures never propagate: a hunk whose call or
decode fails simply has no findings.
"""

import json
import logging
import re
from typing import List, Optional

from pydantic import ValidationError

from ..models.review import (
    ReviewFinding,
    ReviewItemPayload,
    ReviewPayload,
    ReviewDecodeResult,
    ReviewDecodeSuccess,
    ReviewDecodeError,
)
from .chat import ChatModel, system_message, user_message
from .prompts import SYSTEM_PROMPT


logger = logging.getLogger(__name__)


_FENCE_PATTERN = re.compile(r'^```(?:json)?\s*\n(.*?)\n?```\s*$', re.DOTALL)


def decode_review_payload(text: str) -> ReviewDecodeResult:
    """
    Decode model output into review findings.

    Accepts a JSON object, optionally wrapped in a ```json fence, of the
    shape {"reviews": [{"lineNumber": ..., "reviewComment": ...}]}. Items that
    fail validation are skipped; their valid siblings are kept.

    Args:
        text: Raw model output

    Returns:
        ReviewDecodeSuccess with findings, or ReviewDecodeError
    """
    if text is None:
        return ReviewDecodeError(kind="invalid_json", detail="empty response")

    stripped = text.strip()
    fence_match = _FENCE_PATTERN.match(stripped)
    if fence_match:
        stripped = fence_match.group(1).strip()

    try:
        data = json.loads(stripped)
    except json.JSONDecodeError as e:
        return ReviewDecodeError(kind="invalid_json", detail=str(e))

    if not isinstance(data, dict) or "reviews" not in data:
        return ReviewDecodeError(kind="missing_reviews", detail="response has no 'reviews' key")

    try:
        payload = ReviewPayload.model_validate(data)
    except ValidationError as e:
        return ReviewDecodeError(kind="invalid_schema", detail=str(e))

    findings = []
    for index, item in enumerate(payload.reviews):
        try:
            findings.append(ReviewItemPayload.model_validate(item).to_finding())
        except ValidationError as e:
            logger.warning(f"Skipping review item {index}: {e.error_count()} validation errors")
            logger.debug(f"Invalid review item: {item!r}")

    return ReviewDecodeSuccess(findings=findings)


class ReviewGenerator:
    """
    Generates review findings for a prompt.

    Single attempt per prompt; retry policies belong to the caller.
    """

    def __init__(self, chat_model: ChatModel):
        """
        Initialize review generator.

        Args:
            chat_model: Backend used for generation
        """
        self.chat_model = chat_model

    def review(self, prompt: str, system_prompt: str = SYSTEM_PROMPT) -> Optional[List[ReviewFinding]]:
        """
        Generate findings for one review prompt.

        Args:
            prompt: Review prompt for a hunk
            system_prompt: System persona

        Returns:
            Findings (possibly empty), or None when the call or decode failed
        """
        messages = [system_message(system_prompt), user_message(prompt)]

        try:
            response = self.chat_model.generate(messages, json_mode=True)
        except Exception as e:
            # Transport, backend and timeout errors all degrade to no findings
            logger.error(f"Review generation failed: {e}")
            return None

        result = decode_review_payload(response)
        if isinstance(result, ReviewDecodeError):
            logger.warning(f"Discarding model output ({result.kind}): {result.detail}")
            logger.debug(f"Model output was: {response!r}")
            return None

        logger.debug(f"Model returned {len(result.findings)} findings")
        return result.findings
