"""
Chat Model Interface

The "generate text given messages" capability used for query expansion
and review generation. Concrete backends live in ``openai_models`` (hosted)
and ``local`` (transformers).
"""

import logging
from typing import Any, Dict, List

from ..exceptions import ReviewerError


logger = logging.getLogger(__name__)


Message = Dict[str, str]


class ChatModelError(ReviewerError):
    """Raised when a generation call fails."""
    pass


def system_message(content: str) -> Message:
    return {"role": "system", "content": content}


def user_message(content: str) -> Message:
    return {"role": "user", "content": content}


class ChatModel:
    """
    Base class for text generation backends.

    Implementations must be safe to call from several worker threads at once
    and should raise ChatModelError for any backend failure.
    """

    model_name: str = "unknown"

    def generate(self, messages: List[Message], json_mode: bool = False) -> str:
        """
        Generate a completion for role-tagged messages.

        Args:
            messages: Conversation turns ({"role": ..., "content": ...})
            json_mode: Ask the backend for a JSON object, where supported

        Returns:
            Generated text
        """
        raise NotImplementedError

    def get_model_info(self) -> Dict[str, Any]:
        """Get information about the backing model."""
        return {'model_name': self.model_name, 'backend': type(self).__name__}
