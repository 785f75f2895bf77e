"""
HTML to Markdown conversion for chapter bodies.

Two converters are available: the ``html2md`` command line tool (the default,
whose output the cleanup passes in :mod:`zenn_to_epub.fences` are tuned for) and
the ``markdownify`` library.

MIT License - Copyright (c) 2025 Zenn to EPUB Converter
"""

import subprocess
import tempfile
from pathlib import Path
from typing import Optional

from markdownify import markdownify

HTML2MD = "html2md"
MARKDOWNIFY = "markdownify"
CONVERTERS = (HTML2MD, MARKDOWNIFY)


class HtmlConversionError(Exception):
    """Raised when chapter HTML cannot be converted to Markdown."""


def _code_language(el) -> str:
    """Pick the fence language from a language-* class on <pre> or its <code>."""
    candidates = [el]
    code = el.find("code")
    if code is not None:
        candidates.append(code)
    for candidate in candidates:
        for css_class in candidate.get("class") or []:
            if css_class.startswith("language-"):
                return css_class[len("language-"):]
    return ""


def convert_with_html2md(html: str, timeout: Optional[float] = None) -> str:
    """Convert HTML with the html2md binary, feeding it through a temporary file."""
    with tempfile.TemporaryDirectory(prefix="zenn_to_epub_") as temp_dir:
        html_file = Path(temp_dir) / "chapter.html"
        html_file.write_text(html, encoding="utf-8")

        try:
            result = subprocess.run(
                [HTML2MD, "-i", str(html_file)],
                capture_output=True,
                text=True,
                encoding="utf-8",
                timeout=timeout,
            )
        except FileNotFoundError as e:
            raise HtmlConversionError(f"{HTML2MD} is required but not found") from e
        except subprocess.TimeoutExpired as e:
            raise HtmlConversionError(f"{HTML2MD} timed out after {timeout}s") from e

    if result.returncode != 0:
        raise HtmlConversionError(f"{HTML2MD} failed with exit status {result.returncode}: {result.stderr.strip()}")

    return result.stdout


def convert_with_markdownify(html: str) -> str:
    """Convert HTML in-process with markdownify."""
    try:
        return markdownify(html, heading_style="ATX", code_language_callback=_code_language)
    except Exception as e:
        raise HtmlConversionError(f"markdownify failed: {e}") from e


def convert_html(html: str, converter: str = HTML2MD, timeout: Optional[float] = None) -> str:
    """Convert a chapter's HTML body to Markdown with the selected converter."""
    if converter == HTML2MD:
        return convert_with_html2md(html, timeout=timeout)
    if converter == MARKDOWNIFY:
        return convert_with_markdownify(html)
    raise ValueError(f"Invalid converter '{converter}'. Valid converters: {list(CONVERTERS)}")
