"""
Prompt Builder

Builds the retrieval query, the query-expansion prompt and the per-hunk
review prompt. Diff lines are numbered here with the same convention the
comment mapper expects back from the model.
"""

import logging
from typing import Dict, List, Optional

from ..models.pr_diff import DiffChunk, DiffFile, PRContext


logger = logging.getLogger(__name__)


SYSTEM_PROMPT = "You are a strict and perfect code review AI."

# Review languages the comment is translated into after the English text
LANGUAGE_NAMES = {
    "korean": "Korean",
    "japanese": "Japanese",
    "chinese": "Chinese",
    "spanish": "Spanish",
    "german": "German",
    "french": "French",
}

QUERY_EXPANSION_TEMPLATE = """You are a good AI developer. Your answer must always be based on the given context; you can't lie.
Generate {query_count} phrases that summarize the given context. The phrases are used to search for relevant documents in the company's engineering wiki.
Cover different facets of the change: at least one phrase about coding style and naming conventions, and at least one about architecture and design conventions.

Provide these alternative phrases separated by newlines between XML tags of 'questions'. For example:

<questions>
phrase 1
phrase 2
phrase 3
</questions>

context:{query}"""


def format_diff_lines(chunk: DiffChunk) -> str:
    """
    Render a hunk with each change prefixed by its diff line number.

    Added and context lines use their new-file line number, removed lines
    their old-file line number.
    """
    lines = [chunk.content]
    for change in chunk.changes:
        lines.append(f"{change.diff_line_number} {change.marker}{change.content}")
    return "\n".join(lines)


class PromptBuilder:
    """
    Builds prompts for convention retrieval and review generation.

    All methods are pure: the same inputs always give the same text.
    """

    def __init__(self, language: Optional[str] = "korean"):
        """
        Initialize prompt builder.

        Args:
            language: Language review comments are translated into after the
                English text (None or "none" for English only)
        """
        if language and language.lower() not in ("none", "english"):
            key = language.lower()
            self.translation_language = LANGUAGE_NAMES.get(key, language.capitalize())
        else:
            self.translation_language = None

        self.templates = self._load_templates()

    def build_retrieval_query(self, file: DiffFile, chunk: DiffChunk, pr: PRContext) -> str:
        """
        Build the natural-language query used to retrieve conventions.

        Args:
            file: File the hunk belongs to
            chunk: Hunk under review
            pr: Pull request metadata

        Returns:
            Query text
        """
        return "\n".join([
            "<pullRequestTitle>",
            pr.title,
            "</pullRequestTitle>",
            "<pullRequestDescription>",
            pr.description,
            "</pullRequestDescription>",
            "<fileName>",
            file.to_path or "",
            "</fileName>",
            "```diff",
            format_diff_lines(chunk),
            "```",
        ])

    def build_query_expansion_prompt(self, query: str, query_count: int) -> str:
        """Build the prompt asking for paraphrased retrieval queries."""
        return QUERY_EXPANSION_TEMPLATE.format(query_count=query_count, query=query)

    def build_review_prompt(
        self,
        file: DiffFile,
        chunk: DiffChunk,
        pr: PRContext,
        retrieved_text: str
    ) -> str:
        """
        Build the review prompt for a single hunk.

        Args:
            file: File the hunk belongs to
            chunk: Hunk under review
            pr: Pull request metadata
            retrieved_text: Rendered convention passages (may be empty)

        Returns:
            Complete prompt string
        """
        template = self.templates
        sections = [
            template["task"],
            self._format_rules(),
            template["file_header"].format(file_name=file.to_path),
            template["grounding"],
            "",
            "<title>",
            pr.title,
            "</title>",
            "<description>",
            pr.description,
            "</description>",
            "",
            "<convention>",
            retrieved_text,
            "</convention>",
            "",
            "```diff",
            format_diff_lines(chunk),
            "```",
            "",
            template["closing"],
        ]

        prompt = "\n".join(sections)
        logger.debug(f"Built review prompt for {file.to_path} {chunk.content} ({len(prompt)} chars)")
        return prompt

    def _format_rules(self) -> str:
        rules: List[str] = list(self.templates["rules"])
        if self.translation_language:
            # Keep the translation rule right after the markdown rule
            rules.insert(4, f"Give a comment first in English, and finally translate it to {self.translation_language}.")
        return "Review Rules:\n" + "\n".join(f"- {rule}" for rule in rules)

    def _load_templates(self) -> Dict:
        """Load prompt templates."""
        return {
            "task": "Your task is to review pull requests.",
            "rules": [
                'Give the answer as a single JSON object: {"reviews": [{"lineNumber": <line_number>, "reviewComment": "<review comment>"}]}.',
                "Do not give positive comments or compliments.",
                'Provide comments and suggestions ONLY if there is something to improve, otherwise "reviews" should be an empty array.',
                "Write the comment in GitHub Markdown format.",
                "If you rely on a convention in <convention> when writing a comment, you must cite its 'related wiki' URL in the comment.",
                "IMPORTANT: NEVER suggest adding comments to the code.",
            ],
            "file_header": 'Review the following code diff in the file "{file_name}".',
            "grounding": (
                "All answers must be based on the given XML tags <title>, <description> and <convention>.\n"
                "If <convention> is empty or has no relevant information, comment only where you are "
                "certain and not guessing. You can't lie."
            ),
            "closing": (
                'Each "lineNumber" must be one of the line numbers shown at the start of the diff lines above.'
            ),
        }
