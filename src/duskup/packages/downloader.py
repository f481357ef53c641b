"""Compiler release downloader with progress tracking and checksum verification.

This module downloads versioned compiler release artifacts. A download is
streamed into a temporary file next to its final location and renamed into
place only after every byte arrived, so a partial transfer is never mistaken
for a cached artifact.
"""

import hashlib
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import requests
from tqdm import tqdm

from .cache import ToolchainCache


class FetchFailed(Exception):
    """Raised when a release artifact cannot be downloaded."""

    def __init__(self, version: str, platform: str, cause: object):
        self.version = version
        self.platform = platform
        self.cause = cause
        super().__init__(
            f"Failed to fetch compiler {version} for {platform}: {cause}"
        )


class ChecksumError(Exception):
    """Raised when checksum verification fails."""

    pass


@dataclass(frozen=True)
class ArtifactRef:
    """One downloadable release artifact."""

    version: str
    platform: str
    url: str
    local_path: Path


class ArtifactFetcher:
    """Downloads compiler release artifacts into the toolchain cache."""

    BASE_URL = "https://github.com/dusk-network/rust/releases/download"
    ENV_BASE_URL = "DUSKUP_RELEASES_URL"

    def __init__(
        self,
        cache: ToolchainCache,
        base_url: Optional[str] = None,
        timeout: Tuple[float, float] = (10.0, 60.0),
        chunk_size: int = 8192,
        show_progress: bool = True,
    ):
        """Initialize fetcher.

        Args:
            cache: Cache that decides where artifacts are stored
            base_url: Release download root (default: DUSKUP_RELEASES_URL or
                the Dusk GitHub releases)
            timeout: (connect, read) timeout in seconds for HTTP requests
            chunk_size: Size of chunks for downloading and hashing
            show_progress: Whether to show a progress bar
        """
        self.cache = cache
        self.base_url = (
            base_url or os.environ.get(self.ENV_BASE_URL) or self.BASE_URL
        ).rstrip("/")
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.show_progress = show_progress

    def artifact_ref(self, version: str, platform: str) -> ArtifactRef:
        """Describe the artifact for a version and platform.

        Both the URL and the local path are pure functions of the inputs.
        """
        name = ToolchainCache.artifact_name(platform)
        return ArtifactRef(
            version=version,
            platform=platform,
            url=f"{self.base_url}/{version}/{name}",
            local_path=self.cache.get_artifact_path(version, platform),
        )

    def fetch(
        self, version: str, platform: str, checksum: Optional[str] = None
    ) -> Path:
        """Ensure the artifact for (version, platform) is on disk.

        Args:
            version: Compiler release version (e.g., 'v0.2.0')
            platform: Host triple
            checksum: Optional SHA256 of the artifact

        Returns:
            Path to the local artifact

        Raises:
            FetchFailed: If the artifact cannot be downloaded or verified
        """
        ref = self.artifact_ref(version, platform)

        if self.is_cached(version, platform, checksum):
            logging.debug(f"Using cached artifact {ref.local_path}")
            return ref.local_path

        try:
            if ref.local_path.is_file():
                logging.warning(f"Discarding cached artifact {ref.local_path}")
                ref.local_path.unlink()

            if self.show_progress:
                print(f"Downloading compiler version {version}")

            self._download(ref.url, ref.local_path, checksum)
        except (requests.RequestException, ChecksumError, OSError) as e:
            raise FetchFailed(version, platform, e) from e

        return ref.local_path

    def is_cached(
        self, version: str, platform: str, checksum: Optional[str] = None
    ) -> bool:
        """Check whether a usable artifact is already on disk.

        With a checksum, the cached file must also match it.

        Raises:
            FetchFailed: If the cached file cannot be read
        """
        local_path = self.artifact_ref(version, platform).local_path
        if not local_path.is_file():
            return False
        if checksum is None:
            return True

        try:
            self.verify_checksum(local_path, checksum)
        except ChecksumError as e:
            logging.warning(f"Cached artifact failed verification: {e}")
            return False
        except OSError as e:
            raise FetchFailed(version, platform, e) from e
        return True

    def _download(self, url: str, dest_path: Path, checksum: Optional[str]) -> None:
        dest_path.parent.mkdir(parents=True, exist_ok=True)

        # Unique name so concurrent processes never share a partial file
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{dest_path.name}.", suffix=".part", dir=dest_path.parent
        )
        temp_file = Path(temp_name)

        try:
            with os.fdopen(fd, "wb") as f:
                with requests.get(url, stream=True, timeout=self.timeout) as response:
                    response.raise_for_status()

                    total_size = int(response.headers.get("content-length", 0))
                    progress_bar = None
                    if self.show_progress and total_size > 0:
                        progress_bar = tqdm(
                            total=total_size,
                            unit="B",
                            unit_scale=True,
                            unit_divisor=1024,
                            desc=f"Downloading {dest_path.name}",
                        )

                    sha256 = hashlib.sha256()
                    try:
                        for chunk in response.iter_content(chunk_size=self.chunk_size):
                            if chunk:
                                f.write(chunk)
                                sha256.update(chunk)
                                if progress_bar:
                                    progress_bar.update(len(chunk))
                    finally:
                        if progress_bar:
                            progress_bar.close()

                f.flush()
                os.fsync(f.fileno())

            if checksum:
                actual = sha256.hexdigest()
                if actual.lower() != checksum.lower():
                    raise ChecksumError(
                        f"Checksum mismatch for {url}\n"
                        + f"Expected: {checksum}\n"
                        + f"Got: {actual}"
                    )

            os.replace(temp_file, dest_path)
            logging.info(f"Downloaded {url} to {dest_path}")

        finally:
            if temp_file.exists():
                temp_file.unlink()

    def verify_checksum(self, file_path: Path, expected: str) -> bool:
        """Verify SHA256 checksum of a file.

        Args:
            file_path: Path to file to verify
            expected: Expected SHA256 checksum (hex string)

        Returns:
            True if checksum matches

        Raises:
            ChecksumError: If checksum doesn't match
        """
        sha256 = hashlib.sha256()

        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(self.chunk_size), b""):
                sha256.update(chunk)

        actual = sha256.hexdigest()
        if actual.lower() != expected.lower():
            raise ChecksumError(
                f"Checksum mismatch for {file_path}\n"
                + f"Expected: {expected}\n"
                + f"Got: {actual}"
            )

        return True
