"""
Unit tests for the hosted OpenAI-compatible backends.
"""

import pytest
from unittest.mock import Mock
from openai import OpenAIError

from rag_reviewer.conventions.embeddings import EmbeddingError, fit_dimensions
from rag_reviewer.llm.chat import ChatModelError
from rag_reviewer.llm.openai_models import (
    OpenAIChatModel,
    OpenAIEmbeddingGenerator,
    default_embedding_dimensions,
)


def completion_with(content):
    message = Mock()
    message.content = content
    choice = Mock()
    choice.message = message
    completion = Mock()
    completion.choices = [choice]
    return completion


class TestOpenAIChatModel:
    """Unit tests for OpenAIChatModel."""

    def test_json_mode_sets_response_format(self):
        client = Mock()
        client.chat.completions.create.return_value = completion_with('{"reviews": []}')
        model = OpenAIChatModel(client, model_name="gpt-4o")

        result = model.generate([{'role': 'user', 'content': 'hi'}], json_mode=True)

        assert result == '{"reviews": []}'
        kwargs = client.chat.completions.create.call_args[1]
        assert kwargs['model'] == "gpt-4o"
        assert kwargs['temperature'] == 0.0
        assert kwargs['response_format'] == {'type': 'json_object'}

    def test_plain_mode_has_no_response_format(self):
        client = Mock()
        client.chat.completions.create.return_value = completion_with("<questions>\na\n</questions>")

        OpenAIChatModel(client).generate([{'role': 'user', 'content': 'expand'}])

        assert 'response_format' not in client.chat.completions.create.call_args[1]

    def test_backend_error_wrapped(self):
        client = Mock()
        client.chat.completions.create.side_effect = OpenAIError("connection reset")

        with pytest.raises(ChatModelError):
            OpenAIChatModel(client).generate([{'role': 'user', 'content': 'x'}])

    def test_empty_content_raises(self):
        client = Mock()
        client.chat.completions.create.return_value = completion_with(None)

        with pytest.raises(ChatModelError):
            OpenAIChatModel(client).generate([{'role': 'user', 'content': 'x'}])


class TestOpenAIEmbeddingGenerator:
    """Unit tests for OpenAIEmbeddingGenerator."""

    def test_default_dimensions(self):
        assert default_embedding_dimensions("text-embedding-3-large") == 1024
        assert default_embedding_dimensions("text-embedding-3-small") == 512
        assert default_embedding_dimensions("anything-else") == 512

    def test_embed_query_requests_index_dimensions(self):
        client = Mock()
        client.embeddings.create.return_value = Mock(data=[Mock(embedding=[0.5, 0.25])])
        embedder = OpenAIEmbeddingGenerator(client, model_name="text-embedding-3-large")

        assert embedder.embed_query("naming rules") == [0.5, 0.25]
        assert client.embeddings.create.call_args[1] == {
            'model': "text-embedding-3-large",
            'input': "naming rules",
            'dimensions': 1024,
        }

    def test_explicit_dimensions(self):
        embedder = OpenAIEmbeddingGenerator(Mock(), dimensions=256)
        assert embedder.embedding_dim == 256

    def test_empty_text_rejected(self):
        with pytest.raises(EmbeddingError):
            OpenAIEmbeddingGenerator(Mock()).embed_query("  ")

    def test_backend_error_wrapped(self):
        client = Mock()
        client.embeddings.create.side_effect = OpenAIError("quota")

        with pytest.raises(EmbeddingError):
            OpenAIEmbeddingGenerator(client).embed_query("text")


def test_fit_dimensions_truncates_and_normalises():
    result = fit_dimensions([3.0, 4.0, 12.0], 2)

    assert result == pytest.approx([0.6, 0.8])


def test_fit_dimensions_keeps_native_size():
    assert fit_dimensions([1.0, 2.0], None) == pytest.approx([1.0, 2.0])
    assert fit_dimensions([1.0, 2.0], 5) == pytest.approx([1.0, 2.0])
