"""
Reviewer Application

Builds every component of the review pipeline from an AppConfig and
exposes the operations used by the entry points.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from .config import AppConfig
from .conventions.embeddings import TextEmbedder
from .conventions.retriever import MultiQueryRetriever
from .conventions.vector_store import VectorStore
from .formatting.github import GitHubReviewFormatter
from .github.client import GitHubClient
from .github.events import PullRequestEvent
from .github.parser import UnifiedDiffParser
from .llm.chat import ChatModel
from .llm.generator import ReviewGenerator
from .llm.prompts import PromptBuilder
from .models.pr_diff import PRContext
from .models.review import ReviewComment
from .review.filters import ExcludeFilter, reviewable_files
from .review.mapper import CommentMapper
from .review.pipeline import ReviewPipeline


logger = logging.getLogger(__name__)


def create_models(config: AppConfig):
    """
    Create the chat model and embedder for the configured provider.

    Returns:
        Tuple of (ChatModel, TextEmbedder)
    """
    model_config = config.model

    if model_config.provider == "local":
        from .conventions.embeddings import EmbeddingGenerator
        from .llm.local import TransformersChatModel

        chat_model = TransformersChatModel(
            model_name=model_config.chat_model,
            device=model_config.device,
            max_new_tokens=model_config.max_new_tokens,
        )
        embedder = EmbeddingGenerator(
            model_name=model_config.embedding_model,
            dimensions=model_config.embedding_dimensions,
            device=model_config.device,
        )
        return chat_model, embedder

    from .llm.openai_models import OpenAIChatModel, OpenAIEmbeddingGenerator, create_client

    client = create_client(
        api_key=model_config.api_key,
        base_url=model_config.base_url,
        timeout_seconds=model_config.timeout_seconds,
    )
    chat_model = OpenAIChatModel(client, model_name=model_config.chat_model)
    embedder = OpenAIEmbeddingGenerator(
        client,
        model_name=model_config.embedding_model,
        dimensions=model_config.embedding_dimensions,
    )
    return chat_model, embedder


class ReviewerApp:
    """
    Main reviewer interface.

    Wires the GitHub client, convention retriever, review generator and
    comment mapper into a ReviewPipeline.
    """

    def __init__(
        self,
        config: AppConfig,
        chat_model: Optional[ChatModel] = None,
        embedder: Optional[TextEmbedder] = None,
        vector_store: Optional[VectorStore] = None,
        github: Optional[GitHubClient] = None
    ):
        """
        Initialize reviewer application.

        Args:
            config: Validated application configuration
            chat_model: Chat backend override
            embedder: Embedding backend override
            vector_store: Vector store override
            github: GitHub client override
        """
        self.config = config

        logger.info("Initializing reviewer components...")

        if chat_model is None or embedder is None:
            default_chat, default_embedder = create_models(config)
            chat_model = chat_model or default_chat
            embedder = embedder or default_embedder
        self.chat_model = chat_model
        self.embedder = embedder

        self.vector_store = vector_store or VectorStore(
            host=config.qdrant.host,
            port=config.qdrant.port,
            url=config.qdrant.url,
            api_key=config.qdrant.api_key,
            collection_name=config.qdrant.collection_name,
            namespace=config.qdrant.namespace,
            content_field=config.qdrant.content_field,
            url_field=config.qdrant.url_field,
        )
        self.github = github or GitHubClient(
            token=config.github.token,
            base_url=config.github.api_base_url,
            timeout_seconds=config.github.timeout_seconds,
            max_retries=config.github.max_retries,
        )

        self.prompt_builder = PromptBuilder(language=config.review.language)
        self.retriever = MultiQueryRetriever(
            chat_model=self.chat_model,
            vector_store=self.vector_store,
            embedder=self.embedder,
            prompt_builder=self.prompt_builder,
            query_count=config.review.query_count,
        )
        self.pipeline = ReviewPipeline(
            github=self.github,
            retriever=self.retriever,
            generator=ReviewGenerator(self.chat_model),
            prompt_builder=self.prompt_builder,
            mapper=CommentMapper(strict=config.review.strict_line_validation),
            formatter=GitHubReviewFormatter(review_body=config.review.review_body),
            exclude_filter=ExcludeFilter(config.exclude_patterns),
            parser=UnifiedDiffParser(),
            max_workers=config.review.max_workers,
            hunk_timeout=config.review.hunk_timeout,
        )

        logger.info("Reviewer initialized successfully")

    def review_event(self, event: PullRequestEvent) -> List[ReviewComment]:
        """Run the review pipeline for a pull request event."""
        return self.pipeline.run(event)

    def preview_diff(self, diff: str, pr: PRContext) -> List[ReviewComment]:
        """
        Review a raw diff without touching GitHub.

        Args:
            diff: Unified diff text
            pr: Pull request metadata used in prompts

        Returns:
            Comments that would be submitted
        """
        files = self.pipeline.exclude_filter.filter(
            reviewable_files(self.pipeline.parser.parse(diff))
        )
        return self.pipeline.review_files(files, pr)

    def get_system_health(self) -> Dict:
        """Get system health status."""
        health = {
            'status': 'healthy',
            'components': {},
            'timestamp': datetime.now().isoformat()
        }

        vector_stats = self.vector_store.get_collection_stats()
        health['components']['vector_store'] = {
            'status': 'healthy' if vector_stats else 'unhealthy',
            'stats': vector_stats
        }

        try:
            health['components']['chat_model'] = {
                'status': 'healthy',
                'info': self.chat_model.get_model_info()
            }
        except Exception as e:
            health['components']['chat_model'] = {
                'status': 'unhealthy',
                'error': str(e)
            }

        embedder_info = {
            'model_name': self.embedder.model_name,
            'embedding_dim': self.embedder.embedding_dim,
        }
        cache_stats = getattr(self.embedder, 'get_cache_stats', None)
        if callable(cache_stats):
            embedder_info['cache'] = cache_stats()
        health['components']['embedder'] = {
            'status': 'healthy',
            'info': embedder_info
        }

        # Falls back to the last seen headers when the API is unreachable
        rate = self.github.get_rate_limit_status().get('rate', {})
        health['components']['github'] = {
            'status': 'healthy' if rate.get('remaining', 0) > 0 else 'unhealthy',
            'rate_limit': rate
        }

        health['config'] = self.config.to_dict()

        component_statuses = [comp['status'] for comp in health['components'].values()]
        if 'unhealthy' in component_statuses:
            health['status'] = 'unhealthy'

        return health

    def cleanup_resources(self):
        """Release HTTP sessions and model caches."""
        logger.info("Cleaning up reviewer resources")

        session = getattr(self.github, 'session', None)
        if session is not None:
            session.close()

        clear_cache = getattr(self.chat_model, 'clear_cache', None)
        if callable(clear_cache):
            clear_cache()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit with cleanup."""
        self.cleanup_resources()
