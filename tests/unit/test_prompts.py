"""
Unit tests for prompt construction.
"""

from rag_reviewer.github.parser import parse_diff
from rag_reviewer.llm.prompts import PromptBuilder, format_diff_lines


class TestFormatDiffLines:

    def test_lines_prefixed_with_diff_line_number(self, sample_diff):
        chunk = parse_diff(sample_diff)[0].chunks[0]

        assert format_diff_lines(chunk) == "\n".join([
            "@@ -10,3 +10,4 @@ def main():",
            "10      setup()",
            "11 -    run()",
            "11 +    run(debug=True)",
            "12 +    log()",
            "13      return 0",
        ])


class TestPromptBuilder:
    """Unit tests for PromptBuilder."""

    def setup_method(self):
        self.builder = PromptBuilder()

    def first_hunk(self, sample_diff):
        diff_file = parse_diff(sample_diff)[0]
        return diff_file, diff_file.chunks[0]

    def test_review_prompt_sections(self, sample_diff, pr_context):
        diff_file, chunk = self.first_hunk(sample_diff)
        convention = "1. Use snake_case.\nrelated wiki: https://wiki.example.com/naming\n"

        prompt = self.builder.build_review_prompt(diff_file, chunk, pr_context, convention)

        assert 'Review the following code diff in the file "src/app.py".' in prompt
        assert "<title>\nAdd debug run\n</title>" in prompt
        assert "<description>\nTurns on debug mode\n</description>" in prompt
        assert f"<convention>\n{convention}\n</convention>" in prompt
        assert "12 +    log()" in prompt
        assert '"reviews"' in prompt
        assert "related wiki" in prompt

    def test_section_order(self, sample_diff, pr_context):
        diff_file, chunk = self.first_hunk(sample_diff)

        prompt = self.builder.build_review_prompt(diff_file, chunk, pr_context, "")

        positions = [prompt.index(marker) for marker in ("Review Rules:", "<title>", "<convention>", "```diff")]
        assert positions == sorted(positions)

    def test_empty_convention_still_rendered(self, sample_diff, pr_context):
        diff_file, chunk = self.first_hunk(sample_diff)

        prompt = self.builder.build_review_prompt(diff_file, chunk, pr_context, "")

        assert "<convention>\n\n</convention>" in prompt
        assert "not guessing" in prompt

    def test_translation_rule(self, sample_diff, pr_context):
        diff_file, chunk = self.first_hunk(sample_diff)

        korean = PromptBuilder(language="korean").build_review_prompt(diff_file, chunk, pr_context, "")
        english = PromptBuilder(language="none").build_review_prompt(diff_file, chunk, pr_context, "")

        assert "translate it to Korean" in korean
        assert "translate it to" not in english

    def test_unknown_language_capitalized(self):
        assert PromptBuilder(language="portuguese").translation_language == "Portuguese"
        assert PromptBuilder(language=None).translation_language is None

    def test_prompts_deterministic(self, sample_diff, pr_context):
        diff_file, chunk = self.first_hunk(sample_diff)

        first = self.builder.build_review_prompt(diff_file, chunk, pr_context, "x")
        second = PromptBuilder().build_review_prompt(diff_file, chunk, pr_context, "x")

        assert first == second

    def test_retrieval_query(self, sample_diff, pr_context):
        diff_file, chunk = self.first_hunk(sample_diff)

        query = self.builder.build_retrieval_query(diff_file, chunk, pr_context)

        assert "<pullRequestTitle>\nAdd debug run\n</pullRequestTitle>" in query
        assert "<fileName>\nsrc/app.py\n</fileName>" in query
        assert "11 +    run(debug=True)" in query

    def test_query_expansion_prompt(self):
        prompt = self.builder.build_query_expansion_prompt("diff context", 3)

        assert "Generate 3 phrases" in prompt
        assert prompt.endswith("context:diff context")
        assert "<questions>" in prompt
