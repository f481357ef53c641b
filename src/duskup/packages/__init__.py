"""Toolchain package management for duskup.

This module handles downloading, verifying, caching, extracting and
installing versioned Dusk compiler releases.
"""

from .archive_utils import ArchiveExtractor, ExtractFailed, InnerExtraction
from .cache import CacheEntry, CacheError, Stage, ToolchainCache
from .downloader import ArtifactFetcher, ArtifactRef, ChecksumError, FetchFailed
from .installer import InstallFailed, ToolchainInstaller
from .platform_utils import PlatformDetector, PlatformError
from .toolchain import ToolchainManager, ToolchainUnavailable

__all__ = [
    "ArchiveExtractor",
    "ExtractFailed",
    "InnerExtraction",
    "CacheEntry",
    "CacheError",
    "Stage",
    "ToolchainCache",
    "ArtifactFetcher",
    "ArtifactRef",
    "ChecksumError",
    "FetchFailed",
    "InstallFailed",
    "ToolchainInstaller",
    "PlatformDetector",
    "PlatformError",
    "ToolchainManager",
    "ToolchainUnavailable",
]
