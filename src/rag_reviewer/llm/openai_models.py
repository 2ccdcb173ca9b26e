"""
OpenAI Models

Hosted chat and embedding backends for any OpenAI-compatible endpoint.
"""

import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError

from ..conventions.embeddings import TextEmbedder, EmbeddingError
from .chat import ChatModel, ChatModelError, Message


logger = logging.getLogger(__name__)


def default_embedding_dimensions(model_name: str) -> int:
    """Index dimensions used for the hosted embedding models."""
    return 1024 if model_name == "text-embedding-3-large" else 512


def create_client(
    api_key: Optional[str],
    base_url: Optional[str] = None,
    timeout_seconds: float = 60.0
) -> OpenAI:
    """Create an OpenAI client without automatic retries."""
    return OpenAI(
        api_key=api_key,
        base_url=base_url or None,
        timeout=timeout_seconds,
        max_retries=0,
    )


class OpenAIChatModel(ChatModel):
    """Chat completions with zero temperature and optional JSON mode."""

    def __init__(
        self,
        client: OpenAI,
        model_name: str = "gpt-4o-mini",
        temperature: float = 0.0
    ):
        self.client = client
        self.model_name = model_name
        self.temperature = temperature

    def generate(self, messages: List[Message], json_mode: bool = False) -> str:
        kwargs = {}
        if json_mode:
            kwargs['response_format'] = {'type': 'json_object'}

        try:
            completion = self.client.chat.completions.create(
                model=self.model_name,
                messages=messages,
                temperature=self.temperature,
                **kwargs
            )
        except OpenAIError as e:
            logger.error(f"Chat completion failed ({self.model_name}): {e}")
            raise ChatModelError(f"Chat completion failed: {e}") from e

        content = completion.choices[0].message.content if completion.choices else None
        if content is None:
            raise ChatModelError("Chat completion returned no content")
        return content

    def get_model_info(self) -> Dict[str, Any]:
        return {
            'model_name': self.model_name,
            'backend': 'openai',
            'temperature': self.temperature,
        }


class OpenAIEmbeddingGenerator(TextEmbedder):
    """Embeddings from the OpenAI embeddings endpoint."""

    def __init__(
        self,
        client: OpenAI,
        model_name: str = "text-embedding-3-small",
        dimensions: Optional[int] = None
    ):
        self.client = client
        self.model_name = model_name
        self.embedding_dim = dimensions or default_embedding_dimensions(model_name)

    def embed_query(self, text: str) -> List[float]:
        if not text.strip():
            raise EmbeddingError("Cannot embed empty text")

        try:
            response = self.client.embeddings.create(
                model=self.model_name,
                input=text,
                dimensions=self.embedding_dim,
            )
        except OpenAIError as e:
            logger.error(f"Embedding request failed ({self.model_name}): {e}")
            raise EmbeddingError(f"Embedding request failed: {e}") from e

        return list(response.data[0].embedding)
