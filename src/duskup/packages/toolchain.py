"""Toolchain management for the Dusk compiler.

This module drives a compiler release through its installation stages:

    NotFetched -> Fetched -> Extracted -> Installed

Each call to `ToolchainManager.ensure` resumes from whatever stage the cache
records, so running it again after a crash or on every build is cheap and
never repeats finished work.
"""

import logging
from pathlib import Path
from typing import Optional

from .archive_utils import ArchiveExtractor, ExtractFailed
from .cache import CacheError, Stage, ToolchainCache
from .downloader import ArtifactFetcher, FetchFailed
from .installer import InstallFailed, ToolchainInstaller
from .platform_utils import PlatformDetector, PlatformError


class ToolchainUnavailable(Exception):
    """Raised when a toolchain version cannot be made available."""

    def __init__(self, version: str, cause: BaseException):
        self.version = version
        self.cause = cause
        super().__init__(f"Toolchain {version} is unavailable: {cause}")


class ToolchainManager:
    """Makes compiler releases available as the active toolchain."""

    DEFAULT_LINK_NAME = "dusk"

    def __init__(
        self,
        cache: Optional[ToolchainCache] = None,
        fetcher: Optional[ArtifactFetcher] = None,
        extractor: Optional[ArchiveExtractor] = None,
        installer: Optional[ToolchainInstaller] = None,
        link_name: str = DEFAULT_LINK_NAME,
        platform: Optional[str] = None,
        show_progress: bool = True,
    ):
        """Initialize toolchain manager.

        Args:
            cache: Cache for artifacts and extracted trees
            fetcher: Artifact downloader
            extractor: Archive extractor
            installer: Active-link publisher
            link_name: Toolchain name to publish under
            platform: Host triple (default: detected once, on first use)
            show_progress: Whether to print progress messages
        """
        self.installer = installer or ToolchainInstaller()
        self.link_name = link_name
        self.cache = cache or ToolchainCache()
        if self.cache.link_path is None:
            self.cache.link_path = self.installer.link_path(link_name)
        self.fetcher = fetcher or ArtifactFetcher(self.cache, show_progress=show_progress)
        self.extractor = extractor or ArchiveExtractor(show_progress=show_progress)
        self.show_progress = show_progress
        self._platform = platform

    @property
    def platform(self) -> str:
        """Host triple, detected on first access."""
        if self._platform is None:
            self._platform = PlatformDetector.detect_host_triple()
        return self._platform

    def ensure(self, version: str, checksum: Optional[str] = None) -> Path:
        """Ensure a toolchain version is downloaded, extracted and active.

        Args:
            version: Compiler release version (e.g., 'v0.2.0')
            checksum: Optional SHA256 of the release artifact

        Returns:
            Path to the extracted toolchain tree

        Raises:
            ToolchainUnavailable: Wrapping the first step that failed
        """
        try:
            return self._ensure(version, checksum)
        except (
            PlatformError,
            FetchFailed,
            ExtractFailed,
            CacheError,
            InstallFailed,
            OSError,
        ) as e:
            raise ToolchainUnavailable(version, e) from e

    def _ensure(self, version: str, checksum: Optional[str]) -> Path:
        platform = self.platform

        if not self.fetcher.is_cached(version, platform, checksum):
            # Trees unpacked from a missing or rejected artifact can't be trusted
            self.cache.discard_derived(version)
            self.fetcher.fetch(version, platform, checksum)
            self.cache.mark_stage(version, Stage.FETCHED)
        else:
            logging.debug(f"{version}: artifact already fetched")

        extracted = self.cache.get_extracted_path(version)
        if not self.cache.stage_complete(version, Stage.EXTRACTED, platform):
            self._extract(version, platform)
        else:
            logging.debug(f"{version}: toolchain already extracted")

        if not self.cache.stage_complete(version, Stage.INSTALLED, platform):
            self.installer.publish(extracted, self.link_name)
            self.cache.mark_stage(version, Stage.INSTALLED)
            if self.show_progress:
                print(f"Dusk compiler {version} installed as '{self.link_name}'")
        else:
            logging.debug(f"{version}: already the active '{self.link_name}' toolchain")

        return extracted

    def _extract(self, version: str, platform: str) -> None:
        artifact = self.cache.get_artifact_path(version, platform)

        if not self.cache.unzipped_complete(version):
            if self.show_progress:
                print("Extracting compiler...")
            staged = self.cache.staging_dir(version, "unzipped")
            try:
                self.extractor.extract_outer(artifact, staged)
                self.cache.commit_unzipped(version, staged)
            finally:
                self.cache.discard_staging(staged)

        staged = self.cache.staging_dir(version, "extracted")
        try:
            results = self.extractor.extract_inner_all(
                self.cache.get_unzipped_path(version), staged
            )
            self.cache.mark_stage(version, Stage.EXTRACTED, staged)
        finally:
            self.cache.discard_staging(staged)

        logging.info(
            f"{version}: extracted {len(results)} component archives "
            + f"({sum(r.files for r in results)} files)"
        )
