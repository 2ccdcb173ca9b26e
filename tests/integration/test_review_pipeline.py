"""
Integration tests for the review pipeline.

Runs the full parse → retrieve → prompt → generate → map → submit flow with
in-memory doubles for the chat model, vector store and GitHub.
"""

import time

import pytest

from conftest import FakeChatModel, make_event_payload, reviews_json
from rag_reviewer.conventions.retriever import MultiQueryRetriever
from rag_reviewer.github.client import GitHubAPIError
from rag_reviewer.github.events import PullRequestEvent
from rag_reviewer.llm.generator import ReviewGenerator
from rag_reviewer.llm.prompts import PromptBuilder
from rag_reviewer.review.filters import ExcludeFilter
from rag_reviewer.review.mapper import CommentMapper
from rag_reviewer.review.pipeline import ReviewPipeline


HUNK_AT_42 = "\n".join([
    "diff --git a/app/models.py b/app/models.py",
    "--- a/app/models.py",
    "+++ b/app/models.py",
    "@@ -40,2 +40,4 @@ class Order:",
    "     total = 0",
    "+    discount = 0",
    "+    tmp = compute()",
    "     return total",
    "",
])


def event(action="opened", **kwargs):
    return PullRequestEvent.from_payload(make_event_payload(action=action, **kwargs))


class TestReviewPipeline:
    """Integration tests for ReviewPipeline."""

    @pytest.fixture(autouse=True)
    def setup_components(self, github_mock, fake_vector_store, fake_embedder):
        self.github = github_mock
        self.vector_store = fake_vector_store
        self.embedder = fake_embedder

    def build(self, chat_model, exclude=None, max_workers=1, hunk_timeout=None):
        prompt_builder = PromptBuilder(language="none")
        retriever = MultiQueryRetriever(
            chat_model, self.vector_store, self.embedder, prompt_builder=prompt_builder, query_count=2
        )
        return ReviewPipeline(
            github=self.github,
            retriever=retriever,
            generator=ReviewGenerator(chat_model),
            mapper=CommentMapper(),
            exclude_filter=ExcludeFilter(exclude or []),
            max_workers=max_workers,
            hunk_timeout=hunk_timeout,
        )

    def test_opened_event_posts_single_review(self):
        def answer(prompt):
            if '"src/app.py"' in prompt:
                return reviews_json(("12", "Remove the stray log() call."))
            return reviews_json()

        chat_model = FakeChatModel(answer)
        comments = self.build(chat_model).run(event())

        assert [(c.path, c.line, c.body) for c in comments] == [
            ("src/app.py", 12, "Remove the stray log() call.")
        ]
        self.github.get_pull_request_diff.assert_called_once_with("octo", "shop", 7)
        self.github.compare_commits_diff.assert_not_called()
        self.github.create_review.assert_called_once()
        owner, repo, number, submission = self.github.create_review.call_args[0]
        assert (owner, repo, number) == ("octo", "shop", 7)
        assert submission.event == "COMMENT"
        assert submission.comments == comments

    def test_retrieved_conventions_reach_the_prompt(self):
        chat_model = FakeChatModel()

        self.build(chat_model).run(event())

        assert chat_model.review_prompts
        for prompt in chat_model.review_prompts:
            assert "1. Use snake_case for functions.\nrelated wiki: https://wiki.example.com/naming\n" in prompt

    def test_empty_reviews_submit_nothing(self):
        comments = self.build(FakeChatModel(lambda prompt: '{"reviews": []}')).run(event())

        assert comments == []
        self.github.create_review.assert_not_called()

    def test_malformed_output_only_affects_its_hunk(self):
        def answer(prompt):
            if '"src/app.py"' in prompt:
                return "I think this code is fine."
            return reviews_json(("2", "Add a docstring."))

        comments = self.build(FakeChatModel(answer)).run(event())

        assert [(c.path, c.line) for c in comments] == [("lib/util.py", 2)]
        self.github.create_review.assert_called_once()

    def test_string_line_number_anchors_to_that_line(self):
        self.github.get_pull_request_diff.return_value = HUNK_AT_42

        comments = self.build(FakeChatModel(lambda prompt: reviews_json(("42", "Name tmp clearly.")))).run(event())

        assert [(c.path, c.line) for c in comments] == [("app/models.py", 42)]

    def test_out_of_hunk_lines_never_submitted(self):
        self.github.get_pull_request_diff.return_value = HUNK_AT_42

        comments = self.build(FakeChatModel(lambda prompt: reviews_json(("7", "Elsewhere")))).run(event())

        assert comments == []
        self.github.create_review.assert_not_called()

    def test_excluded_files_make_no_model_calls(self):
        self.github.get_pull_request_diff.return_value = "\n".join([
            "diff --git a/src/app.py b/src/app.py",
            "--- a/src/app.py",
            "+++ b/src/app.py",
            "@@ -1 +1 @@",
            "-a",
            "+b",
        ])
        chat_model = FakeChatModel()

        comments = self.build(chat_model, exclude=["src/*"]).run(event())

        assert comments == []
        assert chat_model.calls == []
        assert self.embedder.queries == []
        assert self.vector_store.searches == 0
        self.github.create_review.assert_not_called()

    def test_synchronize_reviews_commit_range(self):
        self.build(FakeChatModel()).run(event("synchronize", before="aaa", after="bbb"))

        self.github.compare_commits_diff.assert_called_once_with("octo", "shop", "aaa", "bbb")
        self.github.get_pull_request_diff.assert_not_called()

    def test_synchronize_without_shas_skips(self):
        pipeline = self.build(FakeChatModel())

        assert pipeline.run(event("synchronize")) == []
        self.github.compare_commits_diff.assert_not_called()
        assert pipeline.last_stats.skipped_reason == "no_diff"

    def test_deleted_file_never_reviewed(self):
        chat_model = FakeChatModel(lambda prompt: reviews_json(("1", "x")))

        self.build(chat_model).run(event())

        assert len(chat_model.review_prompts) == 2
        assert all("docs/old.md" not in prompt for prompt in chat_model.review_prompts)
        expansion_prompts = [messages[-1]["content"] for messages, json_mode in chat_model.calls if not json_mode]
        assert len(expansion_prompts) == 2
        assert all("docs/old.md" not in prompt for prompt in expansion_prompts)

    def test_unsupported_event_does_nothing(self):
        pipeline = self.build(FakeChatModel())

        assert pipeline.run(event("closed")) == []
        self.github.get_pr_context.assert_not_called()
        self.github.get_pull_request_diff.assert_not_called()
        assert pipeline.last_stats.skipped_reason == "unsupported_event"

    def test_diff_fetch_failure_is_not_fatal(self):
        self.github.get_pull_request_diff.side_effect = GitHubAPIError("Not Found", status_code=404)

        assert self.build(FakeChatModel()).run(event()) == []
        self.github.create_review.assert_not_called()

    def test_metadata_fetch_failure_propagates(self):
        self.github.get_pr_context.side_effect = GitHubAPIError("Bad credentials", status_code=401)

        with pytest.raises(GitHubAPIError):
            self.build(FakeChatModel()).run(event())

    def test_malformed_diff_submits_nothing(self):
        self.github.get_pull_request_diff.return_value = "<html>rate limited</html>"

        pipeline = self.build(FakeChatModel())

        assert pipeline.run(event()) == []
        assert pipeline.last_stats.skipped_reason == "malformed_diff"

    def test_hunk_exception_does_not_abort_run(self):
        pipeline = self.build(FakeChatModel(lambda prompt: reviews_json(("2", "Docstring"))))
        original = pipeline.mapper.map

        def flaky_map(file, chunk, findings):
            if file.path == "src/app.py":
                raise RuntimeError("mapper blew up")
            return original(file, chunk, findings)

        pipeline.mapper.map = flaky_map

        comments = pipeline.run(event())

        assert [(c.path, c.line) for c in comments] == [("lib/util.py", 2)]
        assert pipeline.last_stats.hunks_failed == 1

    def test_parallel_workers_keep_file_order(self):
        def answer(prompt):
            # Finish the first file last
            if '"src/app.py"' in prompt:
                time.sleep(0.05)
                return reviews_json(("11", "first file"))
            return reviews_json(("1", "second file"))

        comments = self.build(FakeChatModel(answer), max_workers=4).run(event())

        assert [c.body for c in comments] == ["first file", "second file"]

    def test_hunk_timeout_drops_slow_hunk(self):
        def answer(prompt):
            if '"src/app.py"' in prompt:
                time.sleep(0.5)
                return reviews_json(("11", "too late"))
            return reviews_json(("1", "on time"))

        pipeline = self.build(FakeChatModel(answer), max_workers=2, hunk_timeout=0.2)

        comments = pipeline.run(event())

        assert [c.body for c in comments] == ["on time"]
        assert pipeline.last_stats.hunks_failed == 1

    def test_hunk_timeout_sequential_keeps_later_hunks(self):
        def answer(prompt):
            if '"src/app.py"' in prompt:
                time.sleep(0.5)
                return reviews_json(("11", "too late"))
            return reviews_json(("1", "on time"))

        chat_model = FakeChatModel(answer)
        pipeline = self.build(chat_model, max_workers=1, hunk_timeout=0.2)

        comments = pipeline.run(event())

        assert [(c.path, c.body) for c in comments] == [("lib/util.py", "on time")]
        assert len(chat_model.review_prompts) == 2
        assert pipeline.last_stats.hunks_failed == 1

    def test_hunk_with_invalid_line_numbers_skipped(self):
        self.github.get_pull_request_diff.return_value = "\n".join([
            "diff --git a/bad.py b/bad.py",
            "--- a/bad.py",
            "+++ b/bad.py",
            "@@ -1,1 +0,0 @@",
            "+oops",
            HUNK_AT_42,
        ])
        chat_model = FakeChatModel(lambda prompt: reviews_json(("42", "Drop the unused tmp.")))

        comments = self.build(chat_model).run(event())

        assert [(c.path, c.line) for c in comments] == [("app/models.py", 42)]
        assert len(chat_model.review_prompts) == 1
        self.github.create_review.assert_called_once()

    def test_run_stats(self):
        pipeline = self.build(FakeChatModel(lambda prompt: reviews_json(("1", "x"))))

        pipeline.run(event())
        stats = pipeline.last_stats

        assert stats.files_in_diff == 3
        assert stats.files_reviewed == 2
        assert stats.hunks_reviewed == 2
        assert stats.comments == 1
        assert stats.submitted is True

    def test_invalid_worker_count(self):
        with pytest.raises(ValueError):
            self.build(FakeChatModel(), max_workers=0)
