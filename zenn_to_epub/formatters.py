#!/usr/bin/env python3
"""
Per-language code block formatting through external formatters.

Each fenced block with a language tag is looked up in FORMATTERS and, when a
recipe exists, fed to the matching tool (prettier, gofmt, black, ...). Any
failure leaves the block untouched.

MIT License - Copyright (c) 2025 Zenn to EPUB Converter
"""

import shutil
import subprocess
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from colorama import Fore, Style, init

from .fences import FENCE

# Initialize colorama for cross-platform colored output
init(autoreset=True)

# How the code reaches the formatter and how the result comes back
STDIN = "stdin"      # code on stdin, result on stdout
FILE = "file"        # code in a temp file passed as last argument, result on stdout
INPLACE = "inplace"  # code in a temp file rewritten by the tool

DEFAULT_FORMATTER_TIMEOUT = 30


@dataclass(frozen=True)
class FormatterRecipe:
    """How to invoke one external formatter."""

    name: str
    command: Tuple[str, ...]
    channel: str = STDIN
    suffix: str = ".tmp"

    @property
    def executable(self) -> str:
        return self.command[0]


PRETTIER_PARSERS = {
    "javascript": ("babel", ".js"),
    "js": ("babel", ".js"),
    "jsx": ("babel", ".jsx"),
    "typescript": ("typescript", ".ts"),
    "ts": ("typescript", ".ts"),
    "tsx": ("typescript", ".tsx"),
    "json": ("json", ".json"),
    "css": ("css", ".css"),
    "scss": ("scss", ".scss"),
    "less": ("less", ".less"),
    "html": ("html", ".html"),
    "markdown": ("markdown", ".md"),
    "md": ("markdown", ".md"),
    "yaml": ("yaml", ".yaml"),
    "yml": ("yaml", ".yaml"),
    "graphql": ("graphql", ".graphql"),
}

GOFMT = FormatterRecipe("gofmt", ("gofmt",))
RUBOCOP = FormatterRecipe(
    "RuboCop",
    ("rubocop", "--autocorrect", "--format", "quiet", "--fail-level", "F"),
    channel=INPLACE,
    suffix=".rb",
)
DOTNET_FORMAT = FormatterRecipe(
    "dotnet format",
    ("dotnet", "format", "whitespace", ".", "--folder", "--include"),
    channel=INPLACE,
    suffix=".cs",
)
BLACK = FormatterRecipe("Black", ("black", "--quiet", "-"))
RUSTFMT = FormatterRecipe("rustfmt", ("rustfmt", "--emit", "stdout"))
GOOGLE_JAVA_FORMAT = FormatterRecipe("google-java-format", ("google-java-format", "-"))


def _build_formatter_table() -> Dict[str, FormatterRecipe]:
    table = {
        lang: FormatterRecipe("Prettier", ("prettier", "--parser", parser), channel=FILE, suffix=suffix)
        for lang, (parser, suffix) in PRETTIER_PARSERS.items()
    }
    table.update({
        "go": GOFMT,
        "ruby": RUBOCOP,
        "rb": RUBOCOP,
        "c#": DOTNET_FORMAT,
        "cs": DOTNET_FORMAT,
        "csharp": DOTNET_FORMAT,
        "python": BLACK,
        "py": BLACK,
        "rust": RUSTFMT,
        "rs": RUSTFMT,
        "java": GOOGLE_JAVA_FORMAT,
    })
    return table


# Language tag (lower case) -> recipe
FORMATTERS: Dict[str, FormatterRecipe] = _build_formatter_table()


def get_recipe(language: str) -> Optional[FormatterRecipe]:
    """Look up the formatter recipe for a fence language tag (case-insensitive)."""
    return FORMATTERS.get(language.strip().lower())


def available_formatters() -> Dict[str, bool]:
    """Map each formatter name to whether its executable is on PATH."""
    availability = {}
    for recipe in FORMATTERS.values():
        if recipe.name not in availability:
            availability[recipe.name] = shutil.which(recipe.executable) is not None
    return availability


def _split_output(output: str) -> List[str]:
    if output.endswith("\n"):
        output = output[:-1]
    return output.split("\n")


class CodeBlockFormatter:
    """Reformat fenced code blocks with language-specific external tools."""

    def __init__(self, timeout: Optional[float] = DEFAULT_FORMATTER_TIMEOUT, debug: bool = False):
        """Initialize the formatter.

        Args:
            timeout: Seconds to wait for a single formatter run (None waits forever)
            debug: Print debug messages
        """
        self.timeout = timeout
        self.debug = debug
        self._lock = threading.Lock()  # For thread-safe logging

    def _log_debug(self, message: str) -> None:
        """Log debug message with color (only if debug mode is enabled)."""
        if self.debug:
            with self._lock:
                print(f"{Fore.CYAN}[DEBUG]{Style.RESET_ALL} {message}")

    def _log_warning(self, message: str) -> None:
        """Log warning message with color."""
        with self._lock:
            print(f"{Fore.YELLOW}[WARNING]{Style.RESET_ALL} {message}")

    def format_code_blocks(self, lines: List[str]) -> List[str]:
        """Format every tagged code block in the document, leaving others as is."""
        result = list(lines)
        block_start = None
        block_lang = ""
        formatted_count = 0

        i = 0
        while i < len(result):
            trimmed = result[i].strip()
            if trimmed.startswith(FENCE):
                if block_start is None:
                    block_start = i
                    block_lang = trimmed[len(FENCE):].strip()
                else:
                    if block_lang:
                        formatted = self.format_code_block(result[block_start + 1:i], block_lang)
                        if formatted is not None:
                            result[block_start + 1:i] = formatted
                            # Point at the closing fence so the scan moves past it
                            i = block_start + 1 + len(formatted)
                            formatted_count += 1
                    block_start = None
                    block_lang = ""
            i += 1

        if formatted_count:
            self._log_debug(f"Formatted {formatted_count} code block(s)")
        return result

    def format_code_block(self, code_lines: List[str], language: str) -> Optional[List[str]]:
        """Format one block's lines; return None to keep the original content."""
        code = "\n".join(code_lines)
        if not code.strip():
            return None

        recipe = get_recipe(language)
        if recipe is None:
            self._log_debug(f"No formatter for language '{language}', keeping block as is")
            return None

        return self._run_formatter(recipe, code, language)

    def _run_formatter(self, recipe: FormatterRecipe, code: str, language: str) -> Optional[List[str]]:
        """Run a formatter recipe and return the formatted lines, or None on failure."""
        try:
            if recipe.channel == STDIN:
                result = subprocess.run(
                    list(recipe.command),
                    input=code,
                    capture_output=True,
                    text=True,
                    encoding="utf-8",
                    timeout=self.timeout,
                )
                output = result.stdout
            else:
                with tempfile.TemporaryDirectory(prefix="zenn_to_epub_") as temp_dir:
                    code_file = Path(temp_dir) / f"code{recipe.suffix}"
                    code_file.write_text(code, encoding="utf-8")

                    result = subprocess.run(
                        [*recipe.command, str(code_file)],
                        capture_output=True,
                        text=True,
                        encoding="utf-8",
                        timeout=self.timeout,
                        cwd=temp_dir,
                    )
                    if recipe.channel == INPLACE and result.returncode == 0:
                        output = code_file.read_text(encoding="utf-8")
                    else:
                        output = result.stdout
        except FileNotFoundError:
            self._log_warning(f"{recipe.name} formatting skipped ({language}): '{recipe.executable}' not found")
            return None
        except subprocess.TimeoutExpired:
            self._log_warning(f"{recipe.name} formatting timed out after {self.timeout}s ({language})")
            return None
        except UnicodeDecodeError as e:
            self._log_warning(f"{recipe.name} produced output that is not UTF-8 ({language}): {e}")
            return None
        except OSError as e:
            self._log_warning(f"{recipe.name} formatting error ({language}): {e}")
            return None

        if result.returncode != 0:
            self._log_warning(
                f"{recipe.name} formatting error ({language}): exit status {result.returncode}\n"
                f"Stderr: {result.stderr.strip()}"
            )
            return None

        if not output.strip():
            self._log_warning(f"{recipe.name} returned empty output ({language}), keeping block as is")
            return None

        return _split_output(output)
