"""
Markdown post-processing applied to every converted chapter before it is written.

MIT License - Copyright (c) 2025 Zenn to EPUB Converter
"""

from typing import List, Optional

from .fences import (
    balance_code_fences,
    clean_html_tokens,
    normalize_diff_fences,
    unwrap_code_lines,
)
from .formatters import CodeBlockFormatter


def process_content(content: str, formatter: Optional[CodeBlockFormatter] = None,
                    close_unterminated: bool = False) -> List[str]:
    """Run all cleanup passes over one chapter and return its final lines.

    Args:
        content: Markdown text of the chapter
        formatter: Code block formatter; code blocks are left alone when None
        close_unterminated: Append closing fences for blocks that never close
    """
    # Clean HTML tokens
    content = clean_html_tokens(content)

    # Split into lines for processing
    lines = content.split("\n")

    # Fix code blocks
    lines = normalize_diff_fences(lines)
    lines = unwrap_code_lines(lines)

    # Balance code block tags
    lines = balance_code_fences(lines, close_unterminated=close_unterminated)

    # Format code blocks
    if formatter is not None:
        lines = formatter.format_code_blocks(lines)

    return lines
