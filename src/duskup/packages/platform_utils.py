"""Platform Detection Utilities.

This module determines the host triple used to select a compiler release
artifact. The triple is whatever the host Rust compiler reports as its host
target, for example:

    - Linux: x86_64-unknown-linux-gnu, aarch64-unknown-linux-gnu
    - macOS: x86_64-apple-darwin, aarch64-apple-darwin
    - Windows: x86_64-pc-windows-msvc

The DUSKUP_HOST_TRIPLE environment variable bypasses detection entirely.
"""

import logging
import os
import platform
import subprocess
from typing import Dict, Optional


class PlatformError(Exception):
    """Raised when the host platform cannot be determined."""

    pass


class PlatformDetector:
    """Detects the host triple for toolchain artifact selection."""

    ENV_OVERRIDE = "DUSKUP_HOST_TRIPLE"

    # Keyed by rustc executable; the host never changes during a process
    _cache: Dict[str, str] = {}

    @staticmethod
    def parse_host_triple(version_output: str) -> Optional[str]:
        """Extract the host triple from `rustc -vV` output.

        Args:
            version_output: Verbose version output of rustc

        Returns:
            Host triple, or None if no `host:` line is present
        """
        for line in version_output.splitlines():
            if line.startswith("host:"):
                host = line[len("host:"):].strip()
                return host or None
        return None

    @classmethod
    def detect_host_triple(cls, rustc: str = "rustc") -> str:
        """Detect the host triple, querying the compiler at most once.

        Args:
            rustc: Name or path of the rustc executable to query

        Returns:
            Host triple (e.g., 'x86_64-unknown-linux-gnu')

        Raises:
            PlatformError: If the compiler is missing or reports no host
        """
        override = os.environ.get(cls.ENV_OVERRIDE)
        if override:
            return override

        if rustc in cls._cache:
            return cls._cache[rustc]

        try:
            result = subprocess.run(
                [rustc, "-vV"],
                capture_output=True,
                text=True,
                check=True,
            )
        except FileNotFoundError as e:
            raise PlatformError(
                f"'{rustc}' not found; a host Rust compiler is required to "
                + f"determine the platform (or set {cls.ENV_OVERRIDE})"
            ) from e
        except subprocess.CalledProcessError as e:
            raise PlatformError(
                f"'{rustc} -vV' failed with exit code {e.returncode}: "
                + f"{(e.stderr or '').strip()}"
            ) from e

        host = cls.parse_host_triple(result.stdout)
        if not host:
            raise PlatformError(f"'{rustc} -vV' did not report a host triple")

        logging.debug(f"Detected host triple {host} via {rustc}")
        cls._cache[rustc] = host
        return host

    @classmethod
    def clear_cache(cls) -> None:
        """Forget previously detected triples."""
        cls._cache.clear()

    @staticmethod
    def get_platform_info() -> dict:
        """Get detailed information about the current platform.

        Returns:
            Dictionary with platform information
        """
        return {
            "system": platform.system(),
            "machine": platform.machine(),
            "platform": platform.platform(),
            "python_version": platform.python_version(),
        }
