"""
Check that the external programs zenn-to-epub shells out to are installed.

MIT License - Copyright (c) 2025 Zenn to EPUB Converter
"""

import shutil
import subprocess

from colorama import Fore, Style

from .formatters import available_formatters
from .html_converter import HTML2MD


def check_command(cmd: list, description: str) -> bool:
    """Check if a command is available."""
    try:
        subprocess.run(cmd, capture_output=True, check=True)
        print(f"{Fore.GREEN}✓{Style.RESET_ALL} {description} is available")
        return True
    except (subprocess.CalledProcessError, FileNotFoundError):
        print(f"{Fore.RED}✗{Style.RESET_ALL} Error: {description} is required but not found.")
        return False


def check_executable(name: str, description: str) -> bool:
    """Check if an executable is on PATH without running it."""
    if shutil.which(name):
        print(f"{Fore.GREEN}✓{Style.RESET_ALL} {description} is available")
        return True
    print(f"{Fore.RED}✗{Style.RESET_ALL} Error: {description} is required but not found.")
    return False


def check_dependencies(converter: str = HTML2MD, check_optional: bool = False) -> bool:
    """Check required tools and, optionally, the code formatters.

    Returns False if a required tool is missing. Missing formatters are only
    reported since their code blocks are kept as they are.
    """
    ok = check_command(["pandoc", "--version"], "Pandoc")
    if not ok:
        print("Please install it from: https://pandoc.org/installing.html")

    if converter == HTML2MD:
        if not check_executable(HTML2MD, "html2md"):
            print("Install html2md or run with --converter markdownify")
            ok = False

    if check_optional:
        for name, available in available_formatters().items():
            if available:
                print(f"{Fore.GREEN}✓{Style.RESET_ALL} {name} is available")
            else:
                print(f"{Fore.YELLOW}-{Style.RESET_ALL} {name} not found (those code blocks stay unformatted)")

    return ok
