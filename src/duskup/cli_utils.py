"""CLI utility functions for duskup.

This module provides common utilities used across CLI commands including:
- Logging setup
- Error handling and formatting
- Project directory validation
"""

import logging
import sys
from pathlib import Path
from typing import List


class UsageError(Exception):
    """Raised when the command line is missing or has invalid arguments."""

    pass


def setup_logging(verbose: bool = False) -> None:
    """Setup logging for the CLI.

    Args:
        verbose: Log everything down to DEBUG instead of only warnings
    """
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def cause_chain(error: BaseException) -> List[str]:
        """Messages of an exception and each exception it was raised from."""
        messages = []
        seen = set()
        current = error
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            messages.append(f"{type(current).__name__}: {current}")
            current = current.__cause__
        return messages

    @staticmethod
    def format_cause_chain(error: BaseException) -> str:
        """Render the cause chain, outermost first, one cause per line."""
        lines = ErrorFormatter.cause_chain(error)
        return "\n".join(
            line if i == 0 else f"{'  ' * i}caused by {line}" for i, line in enumerate(lines)
        )

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Toolchain unavailable", "Build failed")
            message: Error message details
        """
        print()
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}")
        print()
        print(message)
        print()

    @staticmethod
    def print_success(message: str) -> None:
        """Print formatted success message."""
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        """Print formatted warning message."""
        print()
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def handle_usage_error(error: UsageError, usage: str) -> None:
        """Handle UsageError: print usage and exit with status 2."""
        ErrorFormatter.print_error("Error: Invalid usage", str(error))
        print(usage)
        sys.exit(2)

    @staticmethod
    def handle_failure(title: str, error: BaseException) -> None:
        """Print an error with its full cause chain and exit with status 1."""
        ErrorFormatter.print_error(title, ErrorFormatter.format_cause_chain(error))
        sys.exit(1)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        ErrorFormatter.print_error("Unexpected error", ErrorFormatter.format_cause_chain(error))

        if verbose:
            import traceback

            print("Traceback:")
            print(traceback.format_exc())

        sys.exit(1)


class PathValidator:
    """Validates project paths and directories."""

    @staticmethod
    def validate_project_dir(project_dir: Path) -> None:
        """Validate that project directory exists and is a directory.

        Raises:
            SystemExit: If path doesn't exist or isn't a directory
        """
        if not project_dir.exists():
            print(
                f"{ErrorFormatter.RED}✗ Error: Path does not exist: {project_dir}{ErrorFormatter.RESET}"
            )
            sys.exit(2)
        if not project_dir.is_dir():
            print(
                f"{ErrorFormatter.RED}✗ Error: Path is not a directory: {project_dir}{ErrorFormatter.RESET}"
            )
            sys.exit(2)
