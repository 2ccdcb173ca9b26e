"""
Embedding Generator

Generates query embeddings for convention retrieval. The local generator
uses sentence transformers; hosted embeddings live in
``llm.openai_models``.
"""

import logging
import hashlib
import threading
from typing import Dict, List, Optional

import numpy as np

from ..exceptions import ReviewerError


logger = logging.getLogger(__name__)


class EmbeddingError(ReviewerError):
    """Raised when a text cannot be embedded."""
    pass


def fit_dimensions(embedding, dimensions: Optional[int]) -> List[float]:
    """
    Truncate an embedding to the index dimension and re-normalise it.

    Matryoshka-style models keep most of their quality when cut down, which
    lets one model serve indexes built with a smaller vector size.

    Args:
        embedding: Embedding vector (list or numpy array)
        dimensions: Target dimension, or None to keep the native size

    Returns:
        Embedding as a list of floats
    """
    vector = np.asarray(embedding, dtype=np.float32)
    if dimensions is None or dimensions >= vector.shape[0]:
        return vector.tolist()

    vector = vector[:dimensions]
    norm = np.linalg.norm(vector)
    if norm > 0:
        vector = vector / norm
    return vector.tolist()


class TextEmbedder:
    """Base class for the "embed text" capability."""

    model_name: str = "unknown"
    embedding_dim: int = 0

    def embed_query(self, text: str) -> List[float]:
        """
        Embed a single retrieval query.

        Raises:
            EmbeddingError: If the text is empty or the backend fails
        """
        raise NotImplementedError


class EmbeddingGenerator(TextEmbedder):
    """
    Generates vector embeddings with sentence-transformers.

    Repeated queries within a run (the same paraphrase for several hunks)
    are served from an in-memory cache.
    """

    def __init__(
        self,
        model_name: str = "sentence-transformers/all-MiniLM-L6-v2",
        dimensions: Optional[int] = None,
        device: Optional[str] = None
    ):
        """
        Initialize embedding generator.

        Args:
            model_name: Name of sentence transformer model
            dimensions: Index vector size (None keeps the model's native size)
            device: Device to run model on ('cpu', 'cuda', etc.)
        """
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as e:
            logger.error(f"Required ML dependencies not installed: {e}")
            logger.error("Install with: pip install sentence-transformers torch")
            raise

        self.model_name = model_name

        logger.info(f"Loading embedding model: {model_name}")
        try:
            self.model = SentenceTransformer(model_name, device=device)
        except Exception as e:
            logger.error(f"Failed to load model {model_name}: {e}")
            raise EmbeddingError(f"Failed to load model {model_name}: {e}") from e

        native_dim = self.model.get_sentence_embedding_dimension()
        self.dimensions = dimensions if dimensions and dimensions < native_dim else None
        self.embedding_dim = self.dimensions or native_dim
        logger.info(f"Model loaded successfully. Embedding dimension: {self.embedding_dim}")

        self._embedding_cache: Dict[str, List[float]] = {}
        self._cache_lock = threading.Lock()

    def embed_query(self, text: str) -> List[float]:
        if not text.strip():
            raise EmbeddingError("Cannot embed empty text")

        text_hash = self._hash_text(text)
        with self._cache_lock:
            cached = self._embedding_cache.get(text_hash)
        if cached is not None:
            logger.debug("Using cached embedding")
            return cached

        try:
            logger.debug(f"Generating embedding for text: {text[:100]}...")
            embedding = self.model.encode(text, convert_to_tensor=False)
        except Exception as e:
            logger.error(f"Failed to generate embedding: {e}")
            raise EmbeddingError(f"Failed to generate embedding: {e}") from e

        embedding_list = fit_dimensions(embedding, self.dimensions)
        with self._cache_lock:
            self._embedding_cache[text_hash] = embedding_list
        return embedding_list

    def _hash_text(self, text: str) -> str:
        """Generate hash for text caching."""
        return hashlib.md5(text.encode('utf-8')).hexdigest()

    def get_cache_stats(self) -> Dict[str, int]:
        """Get cache statistics."""
        return {
            'cached_embeddings': len(self._embedding_cache),
            'embedding_dimension': self.embedding_dim,
            'model_name': self.model_name
        }
