"""
Vector Store

Read-only access to convention passages indexed in a Qdrant collection.
Indexing is handled by a separate ingestion job; this module only queries.
"""

import logging
from typing import Any, Dict, List, Optional

from qdrant_client import QdrantClient
from qdrant_client.http.models import Filter, FieldCondition, MatchValue

from ..exceptions import ReviewerError
from ..models.convention import RetrievedDocument


logger = logging.getLogger(__name__)


class VectorStoreError(ReviewerError):
    """Vector store related errors"""
    pass


class VectorStore:
    """
    Query interface over a Qdrant collection of convention passages.

    Each point's payload carries the passage text and the URL of the wiki
    page it came from. An optional namespace narrows the search to points
    whose ``namespace`` payload field matches.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6333,
        collection_name: str = "conventions",
        namespace: Optional[str] = None,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        content_field: str = "text",
        url_field: str = "url",
        client: Optional[QdrantClient] = None
    ):
        """
        Initialize vector store.

        Args:
            host: Qdrant server host
            port: Qdrant server port
            collection_name: Name of the collection (index) to query
            namespace: Optional namespace payload filter
            url: Full Qdrant URL (takes precedence over host/port)
            api_key: Qdrant Cloud API key
            content_field: Payload key holding the passage text
            url_field: Payload key holding the source URL
            client: Pre-built client, mainly for tests
        """
        self.collection_name = collection_name
        self.namespace = namespace or None
        self.content_field = content_field
        self.url_field = url_field

        if client is not None:
            self.client = client
            return

        try:
            if url:
                self.client = QdrantClient(url=url, api_key=api_key)
                logger.info(f"Connected to Qdrant at {url}")
            else:
                self.client = QdrantClient(host=host, port=port, api_key=api_key)
                logger.info(f"Connected to Qdrant at {host}:{port}")
        except Exception as e:
            logger.error(f"Failed to connect to Qdrant: {e}")
            raise VectorStoreError(f"Failed to connect to Qdrant: {e}")

    def _namespace_filter(self) -> Optional[Filter]:
        if not self.namespace:
            return None
        return Filter(
            must=[FieldCondition(key="namespace", match=MatchValue(value=self.namespace))]
        )

    def search(self, query_embedding: List[float], limit: int = 1) -> List[RetrievedDocument]:
        """
        Search for the passages closest to a query embedding.

        Args:
            query_embedding: Query embedding vector
            limit: Maximum number of results

        Returns:
            Retrieved documents, best match first

        Raises:
            VectorStoreError: If the query fails
        """
        try:
            response = self.client.query_points(
                collection_name=self.collection_name,
                query=query_embedding,
                query_filter=self._namespace_filter(),
                limit=limit,
                with_payload=True
            )
        except Exception as e:
            logger.error(f"Failed to search conventions: {e}")
            raise VectorStoreError(f"Failed to search conventions: {e}")

        results = []
        for scored_point in response.points:
            document = RetrievedDocument.from_payload(
                scored_point.payload, self.content_field, self.url_field
            )
            if document is None:
                logger.warning(f"Point {scored_point.id} has no '{self.content_field}' payload")
                continue
            results.append(document)

        logger.debug(f"Found {len(results)} conventions")
        return results

    def get_collection_stats(self) -> Dict[str, Any]:
        """
        Get collection statistics.

        Returns:
            Dictionary with collection stats
        """
        try:
            collection_info = self.client.get_collection(self.collection_name)

            return {
                'collection_name': self.collection_name,
                'namespace': self.namespace,
                'points_count': collection_info.points_count,
                'indexed_vectors_count': collection_info.indexed_vectors_count,
                'status': collection_info.status.value,
            }

        except Exception as e:
            logger.error(f"Failed to get collection stats: {e}")
            return {}
