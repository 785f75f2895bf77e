"""
Minimal zenn.dev client: the chapter list of a book and each chapter's HTML body.

MIT License - Copyright (c) 2025 Zenn to EPUB Converter
"""

import json
import threading
from dataclasses import dataclass
from typing import List, Optional

import requests
from bs4 import BeautifulSoup
from colorama import Fore, Style

ZENN_BASE_URL = "https://zenn.dev"
BUILD_ID_MARKER = '"buildId":"'
DEFAULT_REQUEST_TIMEOUT = 30
USER_AGENT = "zenn-to-epub/1.0 (+https://zenn.dev)"


class ZennAPIError(Exception):
    """Raised when the book page or one of the JSON endpoints cannot be used."""


@dataclass(frozen=True)
class Chapter:
    """One chapter of a book as listed by the site."""

    id: int
    name: str
    url: str
    position: int


def normalize_book_id(value: str, base_url: str = ZENN_BASE_URL) -> str:
    """Turn 'https://zenn.dev/user/books/slug/' into 'user/books/slug'."""
    book_id = value.strip()
    if book_id.startswith("http"):
        prefix = base_url.rstrip("/") + "/"
        if book_id.startswith(prefix):
            book_id = book_id[len(prefix):]
    return book_id.strip("/")


def extract_build_id(page_html: str) -> str:
    """Find the Next.js buildId in a book page."""
    soup = BeautifulSoup(page_html, "html.parser")
    script = soup.find("script", id="__NEXT_DATA__")
    if script is not None and script.string:
        try:
            build_id = json.loads(script.string).get("buildId")
        except ValueError:
            build_id = None
        if build_id:
            return build_id

    # Fall back to scanning the raw page
    start = page_html.find(BUILD_ID_MARKER)
    if start == -1:
        raise ZennAPIError("buildId not found")
    start += len(BUILD_ID_MARKER)
    end = page_html.find('"', start)
    if end == -1:
        raise ZennAPIError("buildId end not found")
    return page_html[start:end]


class ZennClient:
    """Fetch book metadata and chapter bodies from zenn.dev."""

    def __init__(self, base_url: str = ZENN_BASE_URL, timeout: float = DEFAULT_REQUEST_TIMEOUT,
                 session: Optional[requests.Session] = None, debug: bool = False):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.debug = debug
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self._lock = threading.Lock()  # For thread-safe logging

    def _log_debug(self, message: str) -> None:
        """Log debug message with color (only if debug mode is enabled)."""
        if self.debug:
            with self._lock:
                print(f"{Fore.CYAN}[DEBUG]{Style.RESET_ALL} {message}")

    def _log_info(self, message: str) -> None:
        """Log info message with color."""
        with self._lock:
            print(f"{Fore.GREEN}[INFO]{Style.RESET_ALL} {message}")

    def _get(self, url: str) -> requests.Response:
        self._log_debug(f"GET {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ZennAPIError(f"Request to {url} failed: {e}") from e
        return response

    def _get_json(self, url: str) -> dict:
        response = self._get(url)
        try:
            return response.json()
        except ValueError as e:
            raise ZennAPIError(f"Invalid JSON from {url}: {e}") from e

    def fetch_chapters(self, book_id: str) -> List[Chapter]:
        """Return the chapters of a book in reading order."""
        book_id = normalize_book_id(book_id, self.base_url)
        url = f"{self.base_url}/{book_id}"
        self._log_info(f"fetch : {url}")

        build_id = extract_build_id(self._get(url).text)
        self._log_debug(f"buildId: {build_id}")

        api_url = f"{self.base_url}/_next/data/{build_id}/{book_id}.json"
        self._log_info(f"API fetch: {api_url}")
        data = self._get_json(api_url)

        try:
            raw_chapters = data["pageProps"]["chapters"]
        except (KeyError, TypeError) as e:
            raise ZennAPIError(f"No chapters in {api_url}") from e

        chapters = [self._parse_chapter(book_id, raw, index) for index, raw in enumerate(raw_chapters, start=1)]
        for chapter in chapters:
            self._log_debug(f"{chapter.name} {chapter.url}")
        return chapters

    def _parse_chapter(self, book_id: str, raw: dict, index: int) -> Chapter:
        """Build a Chapter from one entry of pageProps.chapters."""
        try:
            chapter_id = int(raw["id"])
        except (KeyError, TypeError, ValueError) as e:
            raise ZennAPIError(f"Chapter {index} has no usable id: {raw!r}") from e

        name = raw.get("title") or raw.get("name") or f"Chapter {index}"
        path = raw.get("url") or raw.get("path")
        if not path:
            path = f"/{book_id}/viewer/{raw.get('slug', chapter_id)}"
        url = path if path.startswith("http") else f"{self.base_url}{path}"

        position = raw.get("position")
        if not isinstance(position, int):
            position = index

        return Chapter(id=chapter_id, name=name, url=url, position=position)

    def fetch_chapter_html(self, chapter: Chapter) -> str:
        """Return the HTML body of a chapter."""
        api_url = f"{self.base_url}/api/chapters/{chapter.id}"
        self._log_info(f"Fetching chapter content from: {api_url}")
        data = self._get_json(api_url)

        try:
            body_html = data["chapter"]["body_html"]
        except (KeyError, TypeError) as e:
            raise ZennAPIError(f"No body_html in {api_url}") from e
        if body_html is None:
            raise ZennAPIError(f"Chapter {chapter.id} has no body (paid or unpublished?)")
        return body_html
