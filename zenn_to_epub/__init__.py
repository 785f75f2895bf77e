"""Download zenn.dev books and convert them to EPUB."""

__version__ = "1.0.0"
