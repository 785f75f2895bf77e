#!/usr/bin/env python3
"""
Download a zenn.dev book and convert it to EPUB.

Usage: python convert_zenn_to_epub.py user/books/012345 "Book Title" [--css style.css]

MIT License - Copyright (c) 2025 Zenn to EPUB Converter
"""

from zenn_to_epub.book_builder import main


if __name__ == "__main__":
    main()
