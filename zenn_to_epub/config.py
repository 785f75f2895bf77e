"""
Configuration for zenn-to-epub.

Values are resolved in this order: CLI arguments, environment variables, the
JSON config file, then built-in defaults.

MIT License - Copyright (c) 2025 Zenn to EPUB Converter
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .formatters import DEFAULT_FORMATTER_TIMEOUT
from .html_converter import CONVERTERS, HTML2MD
from .zenn_client import DEFAULT_REQUEST_TIMEOUT, ZENN_BASE_URL

ENV_PREFIX = "ZENN_TO_EPUB_"
CONFIG_ENV_VAR = ENV_PREFIX + "CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "zenn_to_epub" / "config.json"

DEFAULTS: Dict[str, Any] = {
    "output_dir": ".",
    "css": None,
    "converter": HTML2MD,
    "formatter_timeout": DEFAULT_FORMATTER_TIMEOUT,
    "request_timeout": DEFAULT_REQUEST_TIMEOUT,
    "author": None,
    "language": None,
    "base_url": ZENN_BASE_URL,
}


def get_config_path() -> Path:
    """Location of the JSON config file."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def load_config_file(path: Path) -> Dict[str, Any]:
    """Read the JSON config file; a missing or broken file yields no settings."""
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


class Config:
    """Layered configuration lookup."""

    def __init__(self, cli_config: Optional[Dict[str, Any]] = None, config_path: Optional[Path] = None):
        self.cli_config = {k: v for k, v in (cli_config or {}).items() if v is not None}
        self.config_path = Path(config_path) if config_path else get_config_path()
        self.file_config = load_config_file(self.config_path)

    def get(self, key: str) -> Any:
        """Resolve a single setting."""
        if key in self.cli_config:
            return self.cli_config[key]
        env_value = os.environ.get(ENV_PREFIX + key.upper())
        if env_value:
            return env_value
        if self.file_config.get(key) is not None:
            return self.file_config[key]
        return DEFAULTS.get(key)

    def _get_float(self, key: str) -> float:
        value = self.get(key)
        try:
            number = float(value)
        except (TypeError, ValueError):
            return float(DEFAULTS[key])
        return number if number > 0 else float(DEFAULTS[key])

    def get_output_dir(self) -> Path:
        return Path(self.get("output_dir")).expanduser()

    def get_css_path(self) -> Optional[Path]:
        css = self.get("css")
        return Path(css).expanduser() if css else None

    def get_converter(self) -> str:
        converter = str(self.get("converter")).lower()
        if converter not in CONVERTERS:
            raise ValueError(f"Invalid converter '{converter}'. Valid converters: {list(CONVERTERS)}")
        return converter

    def get_formatter_timeout(self) -> float:
        return self._get_float("formatter_timeout")

    def get_request_timeout(self) -> float:
        return self._get_float("request_timeout")

    def get_author(self) -> Optional[str]:
        return self.get("author")

    def get_language(self) -> Optional[str]:
        return self.get("language")

    def get_base_url(self) -> str:
        return str(self.get("base_url")).rstrip("/")
