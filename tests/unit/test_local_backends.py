"""
Unit tests for the local (transformers / sentence-transformers) backends.

Model weights are never loaded: constructors are bypassed or patched.
"""

import pytest
from unittest.mock import Mock, patch

from rag_reviewer.api import create_models
from rag_reviewer.config import AppConfig
from rag_reviewer.llm.local import JSON_MODE_INSTRUCTION, TransformersChatModel


def bare_chat_model():
    return TransformersChatModel.__new__(TransformersChatModel)


class TestTransformersChatModel:

    def test_json_instruction_appended_to_system_turn(self):
        messages = [{"role": "system", "content": "Be strict."}, {"role": "user", "content": "Review"}]

        result = bare_chat_model()._with_json_instruction(messages)

        assert result[0]["content"] == f"Be strict.\n{JSON_MODE_INSTRUCTION}"
        assert messages[0]["content"] == "Be strict."

    def test_json_instruction_without_system_turn(self):
        result = bare_chat_model()._with_json_instruction([{"role": "user", "content": "Review"}])

        assert result == [
            {"role": "system", "content": JSON_MODE_INSTRUCTION},
            {"role": "user", "content": "Review"},
        ]


class TestCreateModels:

    def test_local_provider(self):
        config = AppConfig.from_env({
            "LLM_PROVIDER": "local",
            "LLM_API_CHAT": "Qwen/Qwen2.5-Coder-0.5B-Instruct",
            "LLM_API_EMBEDDING": "sentence-transformers/all-MiniLM-L6-v2",
            "EMBEDDING_DIMENSIONS": "256",
            "LLM_DEVICE": "cpu",
        })

        with patch('rag_reviewer.llm.local.TransformersChatModel') as chat_cls, \
                patch('rag_reviewer.conventions.embeddings.EmbeddingGenerator') as embedder_cls:
            chat_model, embedder = create_models(config)

        assert chat_model is chat_cls.return_value
        assert embedder is embedder_cls.return_value
        assert chat_cls.call_args[1] == {
            'model_name': "Qwen/Qwen2.5-Coder-0.5B-Instruct",
            'device': "cpu",
            'max_new_tokens': 1024,
        }
        assert embedder_cls.call_args[1]['dimensions'] == 256


class TestEmbeddingGenerator:

    def test_embeddings_truncated_and_cached(self):
        pytest.importorskip("sentence_transformers")
        from rag_reviewer.conventions.embeddings import EmbeddingGenerator

        model = Mock()
        model.get_sentence_embedding_dimension.return_value = 4
        model.encode.return_value = [3.0, 4.0, 1.0, 1.0]

        with patch('sentence_transformers.SentenceTransformer', return_value=model):
            embedder = EmbeddingGenerator(dimensions=2)

        first = embedder.embed_query("naming rules")
        second = embedder.embed_query("naming rules")

        assert first == pytest.approx([0.6, 0.8])
        assert second == first
        assert model.encode.call_count == 1
        assert embedder.get_cache_stats()['cached_embeddings'] == 1
