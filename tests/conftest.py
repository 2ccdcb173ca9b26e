"""
Shared fixtures and in-memory fakes for the chat model, embedder,
vector store and GitHub client.
"""

import json
import threading
from unittest.mock import Mock

import pytest

from rag_reviewer.conventions.embeddings import TextEmbedder
from rag_reviewer.llm.chat import ChatModel
from rag_reviewer.models.convention import RetrievedDocument
from rag_reviewer.models.pr_diff import PRContext


SAMPLE_DIFF = "\n".join([
    "diff --git a/src/app.py b/src/app.py",
    "index 1111111..2222222 100644",
    "--- a/src/app.py",
    "+++ b/src/app.py",
    "@@ -10,3 +10,4 @@ def main():",
    "     setup()",
    "-    run()",
    "+    run(debug=True)",
    "+    log()",
    "     return 0",
    "diff --git a/docs/old.md b/docs/old.md",
    "deleted file mode 100644",
    "index 3333333..0000000",
    "--- a/docs/old.md",
    "+++ /dev/null",
    "@@ -1,2 +0,0 @@",
    "-# Old",
    "-text",
    "diff --git a/lib/util.py b/lib/util.py",
    "new file mode 100644",
    "index 0000000..4444444",
    "--- /dev/null",
    "+++ b/lib/util.py",
    "@@ -0,0 +1,3 @@",
    "+def helper():",
    "+    return 42",
    "+",
    "",
])


def reviews_json(*items):
    """Render model output for (lineNumber, reviewComment) pairs."""
    return json.dumps({
        "reviews": [{"lineNumber": line, "reviewComment": comment} for line, comment in items]
    })


class FakeChatModel(ChatModel):
    """
    Chat model double.

    Expansion calls (json_mode off) return a fixed <questions> block; review
    calls (json_mode on) are answered by ``review_handler(prompt)``.
    """

    model_name = "fake-chat"

    def __init__(self, review_handler=None, expansion_response=None):
        self.review_handler = review_handler or (lambda prompt: reviews_json())
        self.expansion_response = expansion_response or "<questions>\nnaming rules\nerror handling\n</questions>"
        self.calls = []
        self._lock = threading.Lock()

    def generate(self, messages, json_mode=False):
        with self._lock:
            self.calls.append((messages, json_mode))
        if json_mode:
            return self.review_handler(messages[-1]["content"])
        return self.expansion_response

    @property
    def review_prompts(self):
        return [messages[-1]["content"] for messages, json_mode in self.calls if json_mode]


class FakeEmbedder(TextEmbedder):
    model_name = "fake-embedder"
    embedding_dim = 3

    def __init__(self):
        self.queries = []

    def embed_query(self, text):
        self.queries.append(text)
        return [0.1, 0.2, 0.3]


class FakeVectorStore:
    """Returns the same best match for every query."""

    def __init__(self, documents=None):
        self.documents = documents if documents is not None else [
            RetrievedDocument(content="Use snake_case for functions.", url="https://wiki.example.com/naming")
        ]
        self.searches = 0

    def search(self, query_embedding, limit=1):
        self.searches += 1
        return self.documents[:limit]

    def get_collection_stats(self):
        return {'collection_name': 'conventions', 'points_count': len(self.documents)}


@pytest.fixture
def sample_diff():
    return SAMPLE_DIFF


@pytest.fixture
def pr_context():
    return PRContext(owner="octo", repo="shop", pull_number=7, title="Add debug run", description="Turns on debug mode")


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def fake_vector_store():
    return FakeVectorStore()


@pytest.fixture
def github_mock(pr_context, sample_diff):
    """GitHub client double serving the sample diff."""
    github = Mock()
    github.get_pr_context.return_value = pr_context
    github.get_pull_request_diff.return_value = sample_diff
    github.compare_commits_diff.return_value = sample_diff
    github.create_review.return_value = {'id': 1}
    github.get_rate_limit_status.return_value = {'rate': {'remaining': 4999, 'reset': 0}}
    return github


def make_event_payload(action="opened", number=7, before=None, after=None):
    payload = {
        "action": action,
        "number": number,
        "repository": {"name": "shop", "owner": {"login": "octo"}},
        "pull_request": {"number": number, "title": "Add debug run"},
    }
    if before is not None:
        payload["before"] = before
    if after is not None:
        payload["after"] = after
    return payload
