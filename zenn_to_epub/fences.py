"""
Line-oriented cleanup passes for Markdown produced from zenn.dev chapter HTML.

Every function here takes a list of lines and returns a new list; none of them
can fail. They are chained by :func:`zenn_to_epub.pipeline.process_content`.

MIT License - Copyright (c) 2025 Zenn to EPUB Converter
"""

from typing import List

FENCE = "```"
DIFF_FENCE_PREFIX = "```diff-"
DIFF_FENCE = "```diff"
CODE_LINE_SUFFIX = " code-line"

# Residue of the site's syntax highlighter that survives HTML conversion
HTML_TOKENS = (
    '<span class="token builtin class-name">',
    '<span class="token function">',
    "</span>",
)

# Substrings that make a flattened command run worth re-splitting
SHELL_TRIGGERS = ("mkdir", "cd", "go ")

# Tokens that start a new command when re-splitting
SHELL_KEYWORDS = frozenset({"mkdir", "cd", "go", "npm", "git", "echo", "export"})


def clean_html_tokens(content: str) -> str:
    """Remove leftover highlighter <span> tags from converted Markdown."""
    for token in HTML_TOKENS:
        content = content.replace(token, "")
    return content


def is_fence_marker(line: str) -> bool:
    """Return True if the stripped line starts with a code fence."""
    return line.strip().startswith(FENCE)


def is_opening_fence(line: str) -> bool:
    """A fence carrying anything after the backticks (usually a language tag)."""
    stripped = line.strip()
    return stripped.startswith(FENCE) and len(stripped) > len(FENCE)


def is_closing_fence(line: str) -> bool:
    """A bare fence with nothing else on the line."""
    return line.strip() == FENCE


def _normalize_diff_fence(line: str) -> str:
    if not line.startswith(DIFF_FENCE_PREFIX):
        return line
    # The code-line marker is left for unwrap_code_lines
    if line.endswith(CODE_LINE_SUFFIX):
        return DIFF_FENCE + CODE_LINE_SUFFIX
    return DIFF_FENCE


def normalize_diff_fences(lines: List[str]) -> List[str]:
    """Rewrite ```diff-<lang> fences to plain ```diff."""
    return [_normalize_diff_fence(line) for line in lines]


def split_shell_commands(command_lines: List[str]) -> List[str]:
    """Split shell commands that were flattened onto one line back into one per line.

    The lines are joined and, if they look like a shell session, re-grouped so
    that every keyword in SHELL_KEYWORDS starts a new command. This is a
    heuristic and knows nothing about quoting, pipes or subshells.

    Example:
        ["mkdir foo cd foo go mod init x"] -> ["mkdir foo", "cd foo", "go mod init x"]
    """
    joined = " ".join(command_lines)
    if not any(trigger in joined for trigger in SHELL_TRIGGERS):
        return list(command_lines)

    commands: List[str] = []
    current = ""
    for token in joined.split():
        if token in SHELL_KEYWORDS:
            if current:
                commands.append(current)
            current = token
        elif current:
            current = f"{current} {token}"
        else:
            current = token

    if current:
        commands.append(current)

    return commands


def _collect_command_lines(lines: List[str], start: int) -> List[str]:
    """Collect lines from start up to the next blank line or fence marker."""
    command_lines = []
    j = start
    while j < len(lines) and lines[j].strip() and not is_fence_marker(lines[j]):
        line = lines[j]
        if line.endswith(" "):
            line = line[:-1]
        command_lines.append(line)
        j += 1
    return command_lines


def unwrap_code_lines(lines: List[str]) -> List[str]:
    """Fix fences that the converter tagged with a trailing ' code-line' marker.

    The marker is stripped from the fence, and the command lines that follow it
    are passed through split_shell_commands and spliced back in place.
    """
    result = list(lines)
    i = 0
    while i < len(result):
        line = result[i]
        if FENCE in line and line.endswith(CODE_LINE_SUFFIX):
            result[i] = line[: -len(CODE_LINE_SUFFIX)]

            command_lines = _collect_command_lines(result, i + 1)
            if command_lines:
                replacement = split_shell_commands(command_lines)
                result[i + 1 : i + 1 + len(command_lines)] = replacement
                # Skip what was just inserted
                i += len(replacement)
        i += 1

    return result


def balance_code_fences(lines: List[str], close_unterminated: bool = False) -> List[str]:
    """Drop excess closing fences so there are never more closers than openers.

    Opening fences (fences with a language tag or any other suffix) are trusted
    as the ground truth. Bare fences are kept in order until that many have been
    emitted; the rest are dropped.

    A document with fewer closers than openers is left unterminated unless
    close_unterminated is set, in which case the missing closers are appended
    at the end of the document.
    """
    opens = sum(1 for line in lines if is_opening_fence(line))

    result = []
    closes = 0
    for line in lines:
        if is_closing_fence(line):
            if closes < opens:
                result.append(line)
                closes += 1
            continue
        result.append(line)

    if close_unterminated and closes < opens:
        result.extend([FENCE] * (opens - closes))

    return result
