"""
Tests for zenn_to_epub.fences

Covers:
  - HTML token cleanup
  - diff fence normalization
  - shell command splitting
  - code-line unwrapping
  - fence balancing
"""

from zenn_to_epub.fences import (
    balance_code_fences,
    clean_html_tokens,
    is_closing_fence,
    is_opening_fence,
    normalize_diff_fences,
    split_shell_commands,
    unwrap_code_lines,
)


def count_closers(lines):
    return sum(1 for line in lines if is_closing_fence(line))


def count_openers(lines):
    return sum(1 for line in lines if is_opening_fence(line))


class TestCleanHtmlTokens:

    def test_removes_highlighter_spans(self):
        content = 'x <span class="token function">echo</span> <span class="token builtin class-name">cd</span>'
        assert clean_html_tokens(content) == "x echo cd"

    def test_leaves_other_markup(self):
        content = '<span class="token string">"a"</span>'
        assert clean_html_tokens(content) == '<span class="token string">"a"'


class TestFenceClassification:

    def test_opening_fence_with_language(self):
        assert is_opening_fence("```go")
        assert is_opening_fence("  ```diff  ")
        assert not is_closing_fence("```go")

    def test_bare_fence_is_closing(self):
        assert is_closing_fence("```")
        assert is_closing_fence("   ```   ")
        assert not is_opening_fence("```")

    def test_plain_text(self):
        assert not is_opening_fence("text ``` inside")
        assert not is_closing_fence("")


class TestNormalizeDiffFences:

    def test_diff_suffix_is_dropped(self):
        lines = ["```diff-js", "+ a", "```", "```diff-unified:main.go", "- b", "```"]
        assert normalize_diff_fences(lines) == ["```diff", "+ a", "```", "```diff", "- b", "```"]

    def test_other_lines_untouched(self):
        lines = ["```diff", "```js", "diff-js", " ```diff-js"]
        assert normalize_diff_fences(lines) == lines

    def test_code_line_marker_survives(self):
        assert normalize_diff_fences(["```diff-sh code-line"]) == ["```diff code-line"]

    def test_empty_document(self):
        assert normalize_diff_fences([]) == []

    def test_input_not_mutated(self):
        lines = ["```diff-js"]
        normalize_diff_fences(lines)
        assert lines == ["```diff-js"]


class TestSplitShellCommands:

    def test_commands_on_separate_lines_stay_separate(self):
        lines = ["mkdir foo", "cd foo", "go mod init x"]
        assert split_shell_commands(lines) == ["mkdir foo", "cd foo", "go mod init x"]

    def test_flattened_commands_are_split_at_keywords(self):
        lines = ["mkdir foo && cd foo && go mod init x"]
        assert split_shell_commands(lines) == ["mkdir foo &&", "cd foo &&", "go mod init x"]

    def test_flattened_without_separators(self):
        lines = ["mkdir app cd app npm init -y git init"]
        assert split_shell_commands(lines) == ["mkdir app", "cd app", "npm init -y", "git init"]

    def test_no_trigger_returns_input_unchanged(self):
        lines = ["npm   install", "echo  done"]
        assert split_shell_commands(lines) == lines

    def test_tokens_before_first_keyword_form_a_command(self):
        lines = ["sudo mkdir /opt/x"]
        assert split_shell_commands(lines) == ["sudo", "mkdir /opt/x"]

    def test_keyword_must_match_whole_token(self):
        lines = ["cd src && gofmt -w ."]
        assert split_shell_commands(lines) == ["cd src && gofmt -w ."]

    def test_export_and_echo(self):
        lines = ["cd x export A=1 echo $A"]
        assert split_shell_commands(lines) == ["cd x", "export A=1", "echo $A"]


class TestUnwrapCodeLines:

    def test_strips_suffix_and_splits_commands(self):
        lines = [
            "```shell code-line",
            "mkdir foo cd foo go mod init x ",
            "```",
            "after",
        ]
        assert unwrap_code_lines(lines) == [
            "```shell",
            "mkdir foo",
            "cd foo",
            "go mod init x",
            "```",
            "after",
        ]

    def test_blank_line_after_trigger_only_strips_suffix(self):
        lines = ["```bash code-line", "", "mkdir foo cd foo", "```"]
        result = unwrap_code_lines(lines)
        assert result == ["```bash", "", "mkdir foo cd foo", "```"]
        assert len(result) == len(lines)

    def test_stops_at_blank_line(self):
        lines = ["```sh code-line", "mkdir a cd a", "   ", "mkdir b cd b"]
        assert unwrap_code_lines(lines) == ["```sh", "mkdir a", "cd a", "   ", "mkdir b cd b"]

    def test_trigger_at_end_of_document(self):
        assert unwrap_code_lines(["text", "```sh code-line"]) == ["text", "```sh"]

    def test_collection_runs_to_end_of_document(self):
        lines = ["```sh code-line", "mkdir a cd a"]
        assert unwrap_code_lines(lines) == ["```sh", "mkdir a", "cd a"]

    def test_lines_without_trigger_keep_formatting(self):
        lines = ["```sh code-line", "npm install  ", "```"]
        assert unwrap_code_lines(lines) == ["```sh", "npm install ", "```"]

    def test_multiple_triggers(self):
        lines = [
            "```sh code-line",
            "mkdir a cd a",
            "```",
            "",
            "```sh code-line",
            "git init go mod tidy",
            "```",
        ]
        assert unwrap_code_lines(lines) == [
            "```sh",
            "mkdir a",
            "cd a",
            "```",
            "",
            "```sh",
            "git init",
            "go mod tidy",
            "```",
        ]

    def test_inserted_lines_are_not_rescanned(self):
        lines = ["```sh code-line", "echo ```x code-line", "```"]
        assert unwrap_code_lines(lines) == ["```sh", "echo ```x code-line", "```"]

    def test_suffix_without_fence_is_ignored(self):
        lines = ["plain code-line", "mkdir a cd a"]
        assert unwrap_code_lines(lines) == lines


class TestBalanceCodeFences:

    def test_drops_excess_closers(self):
        lines = ["```go", "x", "```", "```", "text", "```"]
        assert balance_code_fences(lines) == ["```go", "x", "```", "text"]

    def test_balanced_document_unchanged(self):
        lines = ["```go", "x", "```", "```js", "y", "```"]
        assert balance_code_fences(lines) == lines

    def test_closers_never_exceed_openers(self):
        docs = [
            ["```", "```", "```"],
            ["```py", "```", "```", "```rb", "```"],
            ["a", "```c", "b"],
            [],
        ]
        for lines in docs:
            assert count_closers(balance_code_fences(lines)) <= count_openers(lines)

    def test_idempotent(self):
        lines = ["```go", "x", "```", "```", "```sh", "y", "```", "```"]
        once = balance_code_fences(lines)
        assert balance_code_fences(once) == once

    def test_under_closed_document_is_left_alone(self):
        lines = ["```go", "x", "```js", "y", "```"]
        assert balance_code_fences(lines) == lines

    def test_close_unterminated_appends_missing_closers(self):
        lines = ["```go", "x", "```js", "y", "```"]
        result = balance_code_fences(lines, close_unterminated=True)
        assert result == lines + ["```"]
        assert balance_code_fences(result, close_unterminated=True) == result

    def test_non_fence_lines_keep_order(self):
        lines = ["a", "```", "b", "```x", "c", "```", "d", "```"]
        assert balance_code_fences(lines) == ["a", "```", "b", "```x", "c", "d"]
