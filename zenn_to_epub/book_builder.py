#!/usr/bin/env python3
"""
Zenn book to EPUB converter.
Downloads every chapter of a zenn.dev book, writes them as cleaned-up Markdown
files and merges them into one EPUB with Pandoc.

MIT License - Copyright (c) 2025 Zenn to EPUB Converter
"""

import subprocess
import sys
import threading
from pathlib import Path
from typing import List, Optional

from colorama import Fore, Style, init
from tqdm import tqdm

from .config import Config
from .dependencies import check_dependencies
from .formatters import CodeBlockFormatter
from .html_converter import CONVERTERS, HTML2MD, convert_html
from .pipeline import process_content
from .zenn_client import Chapter, ZennAPIError, ZennClient, normalize_book_id

# Initialize colorama for cross-platform colored output
init(autoreset=True)


class BookBuildError(Exception):
    """Raised when the book as a whole cannot be produced."""


def chapter_filename(no: int, total: int = 0) -> str:
    """File name for chapter no, zero padded so name order is reading order."""
    width = max(2, len(str(total)))
    return f"chapter{no:0{width}d}.md"


class ZennBookConverter:
    """Download a zenn.dev book and compile it into an EPUB."""

    def __init__(self, book_id: str, title: str, output_dir: str = ".",
                 css: Optional[str] = None, converter: str = HTML2MD,
                 format_code: bool = False, close_unterminated: bool = False,
                 author: Optional[str] = None, language: Optional[str] = None,
                 toc: bool = False, request_timeout: float = 30,
                 formatter_timeout: Optional[float] = 30, debug: bool = False,
                 client: Optional[ZennClient] = None):
        """Initialize the converter.

        Args:
            book_id: Book path such as 'user/books/slug' or its full URL
            title: Book title, also used as the output directory name
            format_code: Run tagged code blocks through external formatters
            close_unterminated: Append closing fences to blocks that never close
        """
        if converter not in CONVERTERS:
            raise ValueError(f"Invalid converter '{converter}'. Valid converters: {list(CONVERTERS)}")

        self.book_id = normalize_book_id(book_id)
        self.title = title
        self.output_dir = Path(output_dir)
        self.book_dir = self.output_dir / title
        self.css = css
        self.converter = converter
        self.close_unterminated = close_unterminated
        self.author = author
        self.language = language
        self.toc = toc
        self.request_timeout = request_timeout
        self.debug = debug
        self._lock = threading.Lock()  # For thread-safe logging

        self.client = client or ZennClient(timeout=request_timeout, debug=debug)
        self.formatter = CodeBlockFormatter(timeout=formatter_timeout, debug=debug) if format_code else None

        self._log_debug(f"Book: {self.book_id}")
        self._log_debug(f"Output directory: {self.book_dir}")
        self._log_debug(f"Converter: {self.converter}, format code: {format_code}")

    def _log_debug(self, message: str) -> None:
        """Log debug message with color (only if debug mode is enabled)."""
        if self.debug:
            with self._lock:
                print(f"{Fore.CYAN}[DEBUG]{Style.RESET_ALL} {message}")

    def _log_info(self, message: str) -> None:
        """Log info message with color."""
        with self._lock:
            print(f"{Fore.GREEN}[INFO]{Style.RESET_ALL} {message}")

    def _log_warning(self, message: str) -> None:
        """Log warning message with color."""
        with self._lock:
            print(f"{Fore.YELLOW}[WARNING]{Style.RESET_ALL} {message}")

    def _log_error(self, message: str) -> None:
        """Log error message with color."""
        with self._lock:
            print(f"{Fore.RED}[ERROR]{Style.RESET_ALL} {message}")

    def _log_success(self, message: str) -> None:
        """Log success message with color."""
        with self._lock:
            print(f"{Fore.GREEN}[OK]{Style.RESET_ALL} {message}")

    def _prepare_book_dir(self) -> Path:
        """Create the directory the chapter files are written to."""
        try:
            self.book_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BookBuildError(f"Cannot create output directory {self.book_dir}: {e}") from e
        return self.book_dir

    def build(self) -> Path:
        """Fetch, convert and write every chapter, then compile the EPUB."""
        book_dir = self._prepare_book_dir()

        try:
            chapters = self.client.fetch_chapters(self.book_id)
        except ZennAPIError as e:
            raise BookBuildError(f"Cannot list chapters of {self.book_id}: {e}") from e

        if not chapters:
            raise BookBuildError(f"No chapters found for {self.book_id}")

        self._log_info(f"Found {len(chapters)} chapters")

        written_paths = []
        failed_count = 0
        for no, chapter in enumerate(tqdm(chapters, desc="Fetching chapters", unit="chapter"), start=1):
            self._log_info(f"fetch ... {chapter.name} (ID: {chapter.id}) {chapter.url}")
            try:
                path = self.write_chapter(book_dir, no, chapter, total=len(chapters))
                written_paths.append(path)
                self._log_debug(f"Wrote {path}")
            except Exception as e:
                # Continue with next chapter instead of stopping
                self._log_error(f"Error processing chapter {no}: {e}")
                failed_count += 1

        if failed_count:
            self._log_warning(f"{failed_count} chapter(s) skipped, the EPUB will be incomplete")
        self._log_success(f"Chapters complete: {len(written_paths)} written, {failed_count} failed ({len(chapters)} total)")

        # Only this run's files, never leftovers from an earlier run
        return self.compile_book(book_dir, [p.absolute() for p in written_paths])

    def write_chapter(self, book_dir: Path, no: int, chapter: Chapter, total: int = 0) -> Path:
        """Fetch one chapter, run it through the cleanup pipeline and write it."""
        body_html = self.client.fetch_chapter_html(chapter)
        markdown = convert_html(body_html, self.converter, timeout=self.request_timeout)

        content = f"# {no}. {chapter.name}\n\n{markdown}"
        lines = process_content(content, formatter=self.formatter, close_unterminated=self.close_unterminated)

        path = book_dir / chapter_filename(no, total)
        path.write_text("\n".join(lines), encoding="utf-8")
        return path

    def get_chapter_paths(self, book_dir: Path) -> List[Path]:
        """Absolute paths of the chapter Markdown files, in file name order."""
        return sorted(p.absolute() for p in book_dir.glob("*.md") if p.is_file())

    def build_pandoc_command(self, output_file: Path, chapter_paths: List[Path]) -> List[str]:
        """Assemble the pandoc command line for the final merge."""
        cmd = [
            "pandoc",
            "-f", "markdown",
            "-o", str(output_file),
            "--metadata", f"title={self.title}",
        ]
        if self.author:
            cmd.extend(["--metadata", f"author={self.author}"])
        if self.language:
            cmd.extend(["--metadata", f"lang={self.language}"])
        if self.toc:
            cmd.append("--toc")
        if self.css:
            cmd.extend(["--css", str(self.css)])
        cmd.extend(str(p) for p in chapter_paths)
        return cmd

    def compile_book(self, book_dir: Path, chapter_paths: Optional[List[Path]] = None) -> Path:
        """Merge chapter files into <title>/<title>.epub with Pandoc.

        Without chapter_paths every *.md file in book_dir is used.
        """
        if chapter_paths is None:
            chapter_paths = self.get_chapter_paths(book_dir)
        if not chapter_paths:
            raise BookBuildError(f"No chapter files to compile in {book_dir}")

        output_file = book_dir / f"{self.title}.epub"
        cmd = self.build_pandoc_command(output_file, chapter_paths)
        self._log_debug(" ".join(cmd))

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, encoding="utf-8", errors="replace")
        except FileNotFoundError as e:
            raise BookBuildError("pandoc is required but not found") from e

        if result.returncode != 0:
            raise BookBuildError(f"Pandoc EPUB conversion failed: {result.stderr}")

        self._log_success(f"EPUB saved to: {output_file.absolute()}")
        return output_file


def main(argv=None):
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Download a zenn.dev book and convert it to EPUB")
    parser.add_argument("book", help="Book id (e.g. user/books/012345) or its https://zenn.dev/ URL")
    parser.add_argument("title", help="Book title, also used as the output directory name")
    parser.add_argument("--css", default=None, help="Stylesheet passed to pandoc (default: from config/env)")
    parser.add_argument("--output-dir", default=None, help="Directory the book directory is created in (default: from config/env/.)")
    parser.add_argument("--converter", default=None, choices=list(CONVERTERS), help="HTML to Markdown converter (default: html2md)")
    parser.add_argument("--format-code", action="store_true", help="Reformat code blocks with external formatters (prettier, gofmt, black, ...)")
    parser.add_argument("--close-unterminated-fences", action="store_true", help="Append closing fences to code blocks that never close")
    parser.add_argument("--author", default=None, help="Author name for ebook metadata")
    parser.add_argument("--language", default=None, help="Language code for ebook metadata (e.g. 'ja')")
    parser.add_argument("--toc", action="store_true", help="Add a table of contents to the EPUB")
    parser.add_argument("--timeout", type=float, default=None, help="HTTP request timeout in seconds (default: 30)")
    parser.add_argument("--formatter-timeout", type=float, default=None, help="Timeout for a single formatter run in seconds (default: 30)")
    parser.add_argument("--config", default=None, help="Path to a JSON config file")
    parser.add_argument("--skip-dependency-check", action="store_true", help="Do not check for pandoc/html2md before starting")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging for detailed output")

    args = parser.parse_args(argv)

    # Build config from CLI args
    cli_config = {
        "output_dir": args.output_dir,
        "css": args.css,
        "converter": args.converter,
        "author": args.author,
        "language": args.language,
        "request_timeout": args.timeout,
        "formatter_timeout": args.formatter_timeout,
    }
    try:
        config = Config(cli_config, config_path=args.config)
        converter = config.get_converter()
    except ValueError as e:
        print(f"{Fore.RED}[ERROR]{Style.RESET_ALL} {e}")
        sys.exit(1)

    # Check dependencies (formatters are optional)
    if not args.skip_dependency_check:
        if not check_dependencies(converter=converter, check_optional=args.format_code):
            sys.exit(1)

    css_path = config.get_css_path()
    client = ZennClient(base_url=config.get_base_url(), timeout=config.get_request_timeout(), debug=args.debug)

    book = ZennBookConverter(
        args.book,
        args.title,
        output_dir=str(config.get_output_dir()),
        css=str(css_path) if css_path else None,
        converter=converter,
        format_code=args.format_code,
        close_unterminated=args.close_unterminated_fences,
        author=config.get_author(),
        language=config.get_language(),
        toc=args.toc,
        request_timeout=config.get_request_timeout(),
        formatter_timeout=config.get_formatter_timeout(),
        debug=args.debug,
        client=client,
    )

    try:
        book.build()
    except BookBuildError as e:
        print(f"{Fore.RED}[ERROR]{Style.RESET_ALL} {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
