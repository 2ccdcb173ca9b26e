"""
Review Pipeline

Drives one review run for a pull request event: fetch the diff, parse and
filter it, review every hunk (retrieve → prompt → generate → map) and
submit the anchored comments as a single review.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import List, Optional

from ..conventions.retriever import MultiQueryRetriever
from ..formatting.github import GitHubReviewFormatter
from ..github.client import GitHubClient, GitHubAPIError
from ..github.events import PullRequestEvent
from ..github.parser import UnifiedDiffParser, MalformedDiffError
from ..llm.generator import ReviewGenerator
from ..llm.prompts import PromptBuilder, SYSTEM_PROMPT
from ..models.pr_diff import DiffChunk, DiffFile, PRContext
from ..models.review import ReviewComment
from .filters import ExcludeFilter, reviewable_files
from .mapper import CommentMapper


logger = logging.getLogger(__name__)


class _HunkJob:
    """A hunk submitted to the pool and the moment a worker picked it up."""

    def __init__(self, file: DiffFile, chunk: DiffChunk):
        self.file = file
        self.chunk = chunk
        self.started = threading.Event()
        self.started_at: Optional[float] = None
        self.future = None

    def run(self, review, pr: PRContext) -> List[ReviewComment]:
        self.started_at = time.monotonic()
        self.started.set()
        return review(self.file, self.chunk, pr)

    def result(self, timeout: Optional[float]) -> List[ReviewComment]:
        """Wait for the review; the timeout counts from when the hunk started running."""
        if timeout is None:
            return self.future.result()
        self.started.wait()
        elapsed = time.monotonic() - self.started_at
        return self.future.result(timeout=max(timeout - elapsed, 0))


@dataclass
class ReviewRunStats:
    """Summary of one pipeline run."""
    action: str
    files_in_diff: int = 0
    files_reviewed: int = 0
    hunks_reviewed: int = 0
    hunks_failed: int = 0
    comments: int = 0
    submitted: bool = False
    processing_time: float = 0.0
    skipped_reason: Optional[str] = None


class ReviewPipeline:
    """
    Pull request review pipeline.

    Hunks are independent, so they are fanned out on a bounded thread pool
    and collected back in file/hunk order. A hunk that fails or times out
    contributes no comments; it never aborts the run.
    """

    def __init__(
        self,
        github: GitHubClient,
        retriever: MultiQueryRetriever,
        generator: ReviewGenerator,
        prompt_builder: Optional[PromptBuilder] = None,
        mapper: Optional[CommentMapper] = None,
        formatter: Optional[GitHubReviewFormatter] = None,
        exclude_filter: Optional[ExcludeFilter] = None,
        parser: Optional[UnifiedDiffParser] = None,
        max_workers: int = 1,
        hunk_timeout: Optional[float] = None,
        system_prompt: str = SYSTEM_PROMPT
    ):
        """
        Initialize review pipeline.

        Args:
            github: GitHub API client
            retriever: Convention retriever
            generator: Review generator
            prompt_builder: Prompt builder (shared with the retriever by default)
            mapper: Comment mapper
            formatter: Review submission formatter
            exclude_filter: Exclude patterns applied to file paths
            parser: Unified diff parser
            max_workers: Concurrent hunks (1 reviews sequentially)
            hunk_timeout: Seconds to wait for a single hunk (None waits forever)
            system_prompt: System persona for review generation
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self.github = github
        self.retriever = retriever
        self.generator = generator
        self.prompt_builder = prompt_builder or retriever.prompt_builder
        self.mapper = mapper or CommentMapper()
        self.formatter = formatter or GitHubReviewFormatter()
        self.exclude_filter = exclude_filter or ExcludeFilter()
        self.parser = parser or UnifiedDiffParser()
        self.max_workers = max_workers
        self.hunk_timeout = hunk_timeout
        self.system_prompt = system_prompt
        self.last_stats: Optional[ReviewRunStats] = None

    def run(self, event: PullRequestEvent) -> List[ReviewComment]:
        """
        Review the pull request described by an event.

        Args:
            event: Pull request lifecycle event

        Returns:
            Comments submitted as the review (empty if nothing was submitted)
        """
        start_time = time.monotonic()
        stats = ReviewRunStats(action=event.action)
        self.last_stats = stats

        try:
            return self._run(event, stats)
        finally:
            stats.processing_time = time.monotonic() - start_time
            logger.info(
                f"Review run finished ({event.action}): "
                f"{stats.files_reviewed}/{stats.files_in_diff} files, "
                f"{stats.hunks_reviewed} hunks ({stats.hunks_failed} failed), "
                f"{stats.comments} comments, submitted={stats.submitted}, "
                f"{stats.processing_time:.2f}s"
            )

    def _run(self, event: PullRequestEvent, stats: ReviewRunStats) -> List[ReviewComment]:
        if not event.is_supported:
            logger.info(f"Unsupported event: {event.action}")
            stats.skipped_reason = "unsupported_event"
            return []

        pr = self.github.get_pr_context(event.owner, event.repo, event.number)

        diff = self.fetch_diff(event)
        if not diff or not diff.strip():
            logger.info("No diff found")
            stats.skipped_reason = "no_diff"
            return []

        try:
            parsed = self.parser.parse(diff)
        except MalformedDiffError as e:
            logger.warning(f"Diff could not be parsed: {e}")
            stats.skipped_reason = "malformed_diff"
            return []

        stats.files_in_diff = len(parsed)
        files = self.exclude_filter.filter(reviewable_files(parsed))
        stats.files_reviewed = len(files)

        comments = self.review_files(files, pr, stats)
        stats.comments = len(comments)

        submission = self.formatter.build_submission(comments)
        if submission is None:
            logger.info("No review comments, skipping review submission")
            return []

        self.github.create_review(event.owner, event.repo, event.number, submission)
        stats.submitted = True
        return submission.comments

    def fetch_diff(self, event: PullRequestEvent) -> Optional[str]:
        """
        Fetch the diff to review for an event.

        ``opened`` reviews the full pull request; ``synchronize`` reviews only
        the commits between the event's before and after SHAs.
        """
        try:
            if event.action == "synchronize":
                if not event.before or not event.after:
                    logger.warning("synchronize event without before/after SHAs")
                    return None
                return self.github.compare_commits_diff(
                    event.owner, event.repo, event.before, event.after
                )
            return self.github.get_pull_request_diff(event.owner, event.repo, event.number)
        except GitHubAPIError as e:
            logger.error(f"Failed to fetch diff: {e}")
            return None

    def review_files(
        self,
        files: List[DiffFile],
        pr: PRContext,
        stats: Optional[ReviewRunStats] = None
    ) -> List[ReviewComment]:
        """
        Review every hunk of the given files.

        Args:
            files: Files to review (already filtered)
            pr: Pull request metadata
            stats: Run statistics to update

        Returns:
            Comments in file/hunk order
        """
        jobs = [_HunkJob(file, chunk) for file in files for chunk in file.chunks]
        if not jobs:
            return []

        logger.info(f"Reviewing {len(jobs)} hunks in {len(files)} files (workers={self.max_workers})")

        comments: List[ReviewComment] = []
        failed = 0
        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="review-hunk")
        try:
            for job in jobs:
                job.future = executor.submit(job.run, self.review_hunk, pr)
            for job in jobs:
                try:
                    comments.extend(job.result(self.hunk_timeout))
                except FutureTimeoutError:
                    failed += 1
                    logger.error(f"Timed out reviewing {job.file.to_path} {job.chunk.content}")
                except Exception as e:
                    failed += 1
                    logger.error(f"Failed to review {job.file.to_path} {job.chunk.content}: {e}")
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        if stats is not None:
            stats.hunks_reviewed = len(jobs)
            stats.hunks_failed = failed
        return comments

    def review_hunk(self, file: DiffFile, chunk: DiffChunk, pr: PRContext) -> List[ReviewComment]:
        """
        Review a single hunk.

        Returns:
            Anchored comments for the hunk
        """
        query = self.prompt_builder.build_retrieval_query(file, chunk, pr)
        retrieved_text = self.retriever.augment(query)

        prompt = self.prompt_builder.build_review_prompt(file, chunk, pr, retrieved_text)
        findings = self.generator.review(prompt, self.system_prompt)
        if findings is None:
            logger.warning(f"No findings for {file.to_path} {chunk.content} (generation failed)")
            return []

        return self.mapper.map(file, chunk, findings)
