"""
Multi-Query Retriever

Expands a hunk query into several paraphrases with the chat model,
retrieves the best convention passage for each paraphrase and renders the
de-duplicated passages as a citation-annotated block.
"""

import logging
import re
from typing import List, Optional

from ..llm.chat import ChatModel, user_message
from ..llm.prompts import PromptBuilder
from ..models.convention import RetrievedDocument
from .embeddings import TextEmbedder
from .vector_store import VectorStore


logger = logging.getLogger(__name__)


_QUESTIONS_PATTERN = re.compile(r'<questions>(.*?)(?:</questions>|$)', re.DOTALL | re.IGNORECASE)
_LIST_MARKER_PATTERN = re.compile(r'^\s*(?:[-*•]|\d+[.)])\s*')


def parse_expanded_queries(text: str, query_count: int) -> List[str]:
    """
    Extract paraphrased queries from the expansion response.

    Lines between <questions> tags are used when present, otherwise every
    non-empty line. List markers are stripped and duplicates dropped.

    Args:
        text: Raw model response
        query_count: Maximum number of queries to keep

    Returns:
        Up to query_count queries, in response order
    """
    if not text:
        return []

    match = _QUESTIONS_PATTERN.search(text)
    body = match.group(1) if match else text

    queries: List[str] = []
    for line in body.splitlines():
        phrase = _LIST_MARKER_PATTERN.sub('', line).strip()
        if not phrase or phrase.startswith('<') or phrase in queries:
            continue
        queries.append(phrase)
        if len(queries) >= query_count:
            break
    return queries


class MultiQueryRetriever:
    """
    Retrieval augmenter with multi-query expansion.

    Each expanded query contributes its single best match (top-1 per query),
    so a query_count of 5 yields at most five passages.
    """

    def __init__(
        self,
        chat_model: ChatModel,
        vector_store: VectorStore,
        embedder: TextEmbedder,
        prompt_builder: Optional[PromptBuilder] = None,
        query_count: int = 5
    ):
        """
        Initialize retriever.

        Args:
            chat_model: Backend used for query expansion
            vector_store: Convention index to query
            embedder: Embeds each expanded query
            prompt_builder: Source of the expansion prompt
            query_count: Default number of expanded queries
        """
        if query_count <= 0:
            raise ValueError("query_count must be positive")

        self.chat_model = chat_model
        self.vector_store = vector_store
        self.embedder = embedder
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.query_count = query_count

    def generate_queries(self, query: str, query_count: Optional[int] = None) -> List[str]:
        """
        Expand a query into paraphrases.

        Falls back to the original query alone when the model call fails or
        returns nothing usable.
        """
        count = query_count or self.query_count
        prompt = self.prompt_builder.build_query_expansion_prompt(query, count)

        try:
            response = self.chat_model.generate([user_message(prompt)])
        except Exception as e:
            logger.warning(f"Query expansion failed, using original query: {e}")
            return [query]

        queries = parse_expanded_queries(response, count)
        if not queries:
            logger.warning("Query expansion returned no phrases, using original query")
            return [query]

        logger.debug(f"Expanded query into {len(queries)} phrases: {queries}")
        return queries

    def retrieve(self, query: str, query_count: Optional[int] = None) -> List[RetrievedDocument]:
        """
        Retrieve de-duplicated convention passages for a query.

        Args:
            query: Natural-language query (hunk and PR metadata)
            query_count: Number of expanded queries (defaults to the configured count)

        Returns:
            Passages in first-seen order
        """
        documents: List[RetrievedDocument] = []
        seen = set()

        for expanded in self.generate_queries(query, query_count):
            try:
                embedding = self.embedder.embed_query(expanded)
                matches = self.vector_store.search(embedding, limit=1)
            except Exception as e:
                logger.warning(f"Retrieval failed for phrase {expanded[:80]!r}: {e}")
                continue

            for document in matches:
                if document in seen:
                    continue
                seen.add(document)
                documents.append(document)

        logger.info(f"Retrieved {len(documents)} convention passages")
        return documents

    def augment(self, query: str, query_count: Optional[int] = None) -> str:
        """
        Render retrieved passages as a numbered, citation-annotated block.

        Returns:
            "{index}. {passage}\\nrelated wiki: {url}\\n" per passage, or ""
        """
        documents = self.retrieve(query, query_count)
        return "".join(document.render(index) for index, document in enumerate(documents, 1))
