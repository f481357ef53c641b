"""Cache management for compiler toolchains.

This module owns the on-disk layout of downloaded and extracted compiler
releases and records how far each version has progressed.

Cache Structure:
    {workdir}/target/toolchains/
    └── {version}/                      # Version string, e.g. v0.2.0
        ├── duskc-{platform}.zip        # Downloaded artifact      (Fetched)
        ├── unzipped/                   # Outer archive contents
        │   └── *.tar.gz                # Component tarballs
        └── extracted/                  # Merged toolchain tree    (Extracted)
            ├── bin/
            └── lib/

Stage directories are only ever created by renaming a fully populated
staging directory into place, so their presence is a reliable record that
the stage finished. Every version lives under its own directory, so
installs of different versions never touch each other.
"""

import enum
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


class CacheError(Exception):
    """Raised when cache bookkeeping is inconsistent."""

    pass


class Stage(enum.IntEnum):
    """Installation stages of a toolchain version, in order."""

    FETCHED = 1
    EXTRACTED = 2
    INSTALLED = 3


@dataclass
class CacheEntry:
    """Snapshot of one cached version."""

    version: str
    stage: Optional[Stage]
    paths: Dict[str, Path] = field(default_factory=dict)


class ToolchainCache:
    """Manages the toolchain cache directory structure.

    The cache lives in the project's target directory, or in a global
    location specified by the DUSKUP_CACHE_DIR environment variable.
    """

    ENV_CACHE_DIR = "DUSKUP_CACHE_DIR"
    ARTIFACT_TEMPLATE = "duskc-{platform}.zip"

    def __init__(
        self,
        workdir: Optional[Path] = None,
        link_path: Optional[Path] = None,
    ):
        """Initialize cache manager.

        Args:
            workdir: Project directory. If None, uses current directory.
            link_path: Active toolchain link; needed to answer whether a
                version is installed.
        """
        if workdir is None:
            workdir = Path.cwd()

        self.workdir = Path(workdir).resolve()
        self.link_path = link_path

        cache_env = os.environ.get(self.ENV_CACHE_DIR)
        if cache_env:
            self.cache_root = Path(cache_env).resolve()
        else:
            self.cache_root = self.workdir / "target" / "toolchains"

    @classmethod
    def artifact_name(cls, platform: str) -> str:
        """Artifact filename for a host triple."""
        return cls.ARTIFACT_TEMPLATE.format(platform=platform)

    def get_version_dir(self, version: str) -> Path:
        """Directory holding everything for one version."""
        if not version or version in (".", "..") or "/" in version or "\\" in version:
            raise CacheError(f"Invalid toolchain version: {version!r}")
        return self.cache_root / version

    def get_artifact_path(self, version: str, platform: str) -> Path:
        """Get path where a release artifact would be stored."""
        return self.get_version_dir(version) / self.artifact_name(platform)

    def get_unzipped_path(self, version: str) -> Path:
        """Get path where the outer archive is unpacked."""
        return self.get_version_dir(version) / "unzipped"

    def get_extracted_path(self, version: str) -> Path:
        """Get path of the merged toolchain tree."""
        return self.get_version_dir(version) / "extracted"

    @staticmethod
    def _is_populated(path: Path) -> bool:
        return path.is_dir() and any(path.iterdir())

    def _find_artifact(self, version: str) -> Optional[Path]:
        version_dir = self.get_version_dir(version)
        if not version_dir.is_dir():
            return None
        for candidate in sorted(version_dir.glob(self.artifact_name("*"))):
            if candidate.is_file():
                return candidate
        return None

    def stage_complete(
        self, version: str, stage: Stage, platform: Optional[str] = None
    ) -> bool:
        """Check whether a stage, and every stage before it, is complete.

        Args:
            version: Toolchain version
            stage: Stage to check
            platform: Host triple; when omitted any platform's artifact counts

        Returns:
            True if the stage's filesystem effect is in place
        """
        if platform is not None:
            fetched = self.get_artifact_path(version, platform).is_file()
        else:
            fetched = self._find_artifact(version) is not None

        if stage == Stage.FETCHED or not fetched:
            return fetched

        extracted_path = self.get_extracted_path(version)
        extracted = self._is_populated(extracted_path)
        if stage == Stage.EXTRACTED or not extracted:
            return extracted

        if self.link_path is None or not self.link_path.is_symlink():
            return False
        try:
            return self.link_path.resolve() == extracted_path.resolve()
        except OSError:
            return False

    def unzipped_complete(self, version: str) -> bool:
        """Check whether the outer archive has been fully unpacked."""
        return self._is_populated(self.get_unzipped_path(version))

    def staging_dir(self, version: str, name: str) -> Path:
        """Create a fresh staging directory beside a stage directory.

        The directory sits on the same filesystem as its final location so
        it can be committed with a rename.
        """
        version_dir = self.get_version_dir(version)
        version_dir.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=f".{name}.", dir=version_dir))

    def commit_unzipped(self, version: str, staged: Path) -> Path:
        """Publish a staged outer-archive extraction."""
        final = self.get_unzipped_path(version)
        self._commit_dir(staged, final)
        return final

    def mark_stage(
        self, version: str, stage: Stage, staged: Optional[Path] = None
    ) -> None:
        """Record a stage as complete.

        For Extracted, the staged directory is renamed into place. Fetched
        and Installed are recorded by the fetcher's and installer's own
        atomic renames; marking them only checks they happened.

        Args:
            version: Toolchain version
            stage: Stage to record
            staged: Staging directory holding the stage's result

        Raises:
            CacheError: If an earlier stage is incomplete or the stage's
                effect is missing
        """
        for earlier in Stage:
            if earlier >= stage:
                break
            if not self.stage_complete(version, earlier):
                raise CacheError(
                    f"Cannot mark {version} {stage.name.lower()}: "
                    + f"{earlier.name.lower()} stage is incomplete"
                )

        if stage == Stage.EXTRACTED and staged is not None:
            self._commit_dir(staged, self.get_extracted_path(version))

        if not self.stage_complete(version, stage):
            raise CacheError(
                f"Cannot mark {version} {stage.name.lower()}: "
                + "stage result is not in place"
            )
        logging.debug(f"{version}: {stage.name.lower()} stage complete")

    def _commit_dir(self, staged: Path, final: Path) -> None:
        try:
            os.replace(staged, final)
        except OSError as e:
            if self._is_populated(final):
                # Another writer committed first; its result is equivalent
                logging.info(f"{final} already committed by another process")
                shutil.rmtree(staged, ignore_errors=True)
                return
            if not final.is_dir():
                raise CacheError(f"Cannot commit {final}: {e}") from e
            # Empty leftover from an interrupted run
            try:
                final.rmdir()
                os.replace(staged, final)
            except OSError as retry_error:
                raise CacheError(f"Cannot commit {final}: {retry_error}") from retry_error

    def discard_derived(self, version: str) -> None:
        """Remove the stage directories unpacked from a version's artifact.

        Raises:
            CacheError: If a directory cannot be removed
        """
        for path in (self.get_unzipped_path(version), self.get_extracted_path(version)):
            try:
                if path.is_symlink() or path.is_file():
                    path.unlink()
                elif path.is_dir():
                    shutil.rmtree(path)
                else:
                    continue
            except OSError as e:
                raise CacheError(f"Cannot remove stale {path}: {e}") from e
            logging.info(f"{version}: removed stale {path.name}/")

    def entry(self, version: str) -> CacheEntry:
        """Describe the current state of a version."""
        stage = None
        for candidate in Stage:
            if not self.stage_complete(version, candidate):
                break
            stage = candidate

        paths = {
            "unzipped": self.get_unzipped_path(version),
            "extracted": self.get_extracted_path(version),
        }
        artifact = self._find_artifact(version)
        if artifact is not None:
            paths["artifact"] = artifact
        return CacheEntry(version=version, stage=stage, paths=paths)

    def cached_versions(self) -> List[str]:
        """List versions that have a directory in the cache."""
        if not self.cache_root.is_dir():
            return []
        return sorted(p.name for p in self.cache_root.iterdir() if p.is_dir())

    def discard_staging(self, staged: Path) -> None:
        """Remove an abandoned staging directory."""
        if staged.exists():
            shutil.rmtree(staged, ignore_errors=True)
