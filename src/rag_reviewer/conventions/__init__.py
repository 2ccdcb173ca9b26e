"""
Convention Retrieval Layer

This module provides query embeddings, read access to the convention
vector index, and multi-query retrieval for review prompts.
"""

from .embeddings import TextEmbedder, EmbeddingGenerator, EmbeddingError
from .vector_store import VectorStore, VectorStoreError
from .retriever import MultiQueryRetriever

__all__ = [
    'TextEmbedder',
    'EmbeddingGenerator',
    'EmbeddingError',
    'VectorStore',
    'VectorStoreError',
    'MultiQueryRetriever',
]
