"""Archive Extraction Utilities.

Compiler releases ship as a zip of component tarballs:

    duskc-x86_64-unknown-linux-gnu.zip
    ├── rustc-nightly-x86_64-unknown-linux-gnu.tar.gz
    ├── rust-std-nightly-x86_64-unknown-linux-gnu.tar.gz
    ├── cargo-nightly-x86_64-unknown-linux-gnu.tar.gz
    └── rustc-nightly-src.tar.gz            (never needed, removed)

Each component tarball nests its payload two levels deep
(`<package>/<component>/bin/rustc`), so stripping two leading path
components merges every component into one toolchain tree. Component
tarballs are extracted concurrently into the shared tree.
"""

import logging
import os
import shutil
import tarfile
import tempfile
import zipfile
import zlib
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional


class ExtractFailed(Exception):
    """Raised when an archive cannot be extracted safely."""

    def __init__(
        self,
        message: str,
        archive: Optional[Path] = None,
        failures: Optional[Dict[Path, BaseException]] = None,
    ):
        self.archive = archive
        self.failures = failures or {}
        super().__init__(message)


@dataclass
class InnerExtraction:
    """What one component tarball contributed to the toolchain tree."""

    archive: Path
    files: int = 0
    directories: int = 0
    links: int = 0


class ArchiveExtractor:
    """Unpacks compiler release archives.

    Rejects entries that would land outside the destination and refuses to
    let two component tarballs write the same file.
    """

    OUTER_EXCLUDE = "rustc-nightly-src.tar.gz"
    INNER_PATTERN = "*.tar.gz"
    STRIP_COMPONENTS = 2

    # Written by every component tarball, not part of the usable tree
    BYPRODUCTS = frozenset({"manifest.in"})

    def __init__(self, max_workers: Optional[int] = None, show_progress: bool = True):
        """Initialize archive extractor.

        Args:
            max_workers: Upper bound on concurrent tarball extractions
                (default: one per archive, capped at the CPU count)
            show_progress: Whether to show extraction progress
        """
        self.max_workers = max_workers
        self.show_progress = show_progress

    def extract_outer(self, archive_path: Path, dest_dir: Path) -> Path:
        """Unpack the outer release zip into dest_dir.

        Every entry name is validated before anything is written.

        Args:
            archive_path: Path to the release zip
            dest_dir: Destination directory

        Returns:
            The destination directory

        Raises:
            ExtractFailed: If the zip is missing, corrupt or unsafe
        """
        archive_path = Path(archive_path)
        dest_dir = Path(dest_dir)

        if not archive_path.is_file():
            raise ExtractFailed(f"Archive not found: {archive_path}", archive_path)

        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
            root = dest_dir.resolve()
            with zipfile.ZipFile(archive_path, "r") as zf:
                for info in zf.infolist():
                    relative = self._safe_relative(info.filename, 0, archive_path)
                    if relative is not None:
                        self._ensure_within(root, root / relative, archive_path)
                zf.extractall(dest_dir)
        except ExtractFailed:
            raise
        except (zipfile.BadZipFile, zlib.error, EOFError, OSError) as e:
            raise ExtractFailed(
                f"Failed to extract {archive_path.name}: {e}", archive_path
            ) from e

        excluded = dest_dir / self.OUTER_EXCLUDE
        if excluded.exists():
            excluded.unlink()
            logging.debug(f"Removed {excluded.name} from {dest_dir}")

        return dest_dir

    def find_inner_archives(self, src_dir: Path) -> List[Path]:
        """Find every component tarball below src_dir, in a stable order."""
        return sorted(p for p in Path(src_dir).rglob(self.INNER_PATTERN) if p.is_file())

    def extract_inner_all(self, src_dir: Path, dest_dir: Path) -> List[InnerExtraction]:
        """Extract every component tarball into one merged tree.

        Extractions run concurrently; the call returns only once all of
        them have ended. After the first failure, extractions that have not
        started yet are cancelled and the ones in flight run to completion.

        Args:
            src_dir: Directory containing the component tarballs
            dest_dir: Shared destination directory

        Returns:
            One InnerExtraction per tarball, in discovery order

        Raises:
            ExtractFailed: If no tarball is found or any extraction fails
        """
        archives = self.find_inner_archives(src_dir)
        if not archives:
            raise ExtractFailed(f"No {self.INNER_PATTERN} archives found in {src_dir}")

        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)

        workers = self.max_workers or min(len(archives), os.cpu_count() or 1)
        results: Dict[Path, InnerExtraction] = {}
        failures: Dict[Path, BaseException] = {}

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures: Dict[Future, Path] = {
                executor.submit(self.extract_inner, archive, dest_dir): archive
                for archive in archives
            }
            for future in as_completed(futures):
                archive = futures[future]
                if future.cancelled():
                    continue
                error = future.exception()
                if error is None:
                    results[archive] = future.result()
                    continue
                if not failures:
                    for pending in futures:
                        pending.cancel()
                failures[archive] = error

        if failures:
            first_archive, first_error = next(iter(failures.items()))
            names = ", ".join(a.name for a in failures)
            raise ExtractFailed(
                f"Failed to extract {names}: {first_error}",
                first_archive,
                failures,
            ) from first_error

        self._remove_byproducts(dest_dir)
        return [results[archive] for archive in archives]

    def extract_inner(self, archive_path: Path, dest_dir: Path) -> InnerExtraction:
        """Extract one component tarball, stripping leading components.

        Raises:
            ExtractFailed: On corruption, unsafe entries or file collisions
        """
        root = Path(dest_dir).resolve()
        result = InnerExtraction(archive=archive_path)
        logging.debug(f"Extracting {archive_path.name}")

        try:
            with tarfile.open(archive_path, "r:gz") as tar:
                for member in tar:
                    relative = self._safe_relative(
                        member.name, self.STRIP_COMPONENTS, archive_path
                    )
                    if relative is None:
                        continue
                    target = root / relative
                    self._ensure_within(root, target.parent, archive_path)

                    if member.isdir():
                        target.mkdir(parents=True, exist_ok=True)
                        result.directories += 1
                    elif member.issym():
                        self._extract_symlink(root, member, target, relative, archive_path)
                        result.links += 1
                    elif member.isfile() or member.islnk():
                        self._extract_file(tar, member, target, relative, archive_path)
                        result.files += 1
                    else:
                        raise ExtractFailed(
                            f"Unsupported entry type in {archive_path.name}: {member.name}",
                            archive_path,
                        )
        except ExtractFailed:
            raise
        except (tarfile.TarError, zlib.error, EOFError, OSError) as e:
            raise ExtractFailed(
                f"Failed to extract {archive_path.name}: {e}", archive_path
            ) from e

        logging.debug(
            f"{archive_path.name}: {result.files} files, "
            + f"{result.directories} directories, {result.links} links"
        )
        return result

    def _extract_file(
        self,
        tar: tarfile.TarFile,
        member: tarfile.TarInfo,
        target: Path,
        relative: PurePosixPath,
        archive_path: Path,
    ) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        source = tar.extractfile(member)
        if source is None:
            raise ExtractFailed(f"Cannot read {member.name} in {archive_path.name}", archive_path)

        with source:
            if str(relative) in self.BYPRODUCTS:
                fd, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
                with os.fdopen(fd, "wb") as f:
                    shutil.copyfileobj(source, f)
                os.replace(temp_name, target)
                return

            try:
                f = open(target, "xb")
            except FileExistsError as e:
                raise ExtractFailed(
                    f"{relative} is provided by more than one archive "
                    + f"(collision in {archive_path.name})",
                    archive_path,
                ) from e
            with f:
                shutil.copyfileobj(source, f)

        os.chmod(target, member.mode & 0o777)

    def _extract_symlink(
        self,
        root: Path,
        member: tarfile.TarInfo,
        target: Path,
        relative: PurePosixPath,
        archive_path: Path,
    ) -> None:
        if os.path.isabs(member.linkname):
            raise ExtractFailed(
                f"Absolute symlink {member.name} -> {member.linkname} in {archive_path.name}",
                archive_path,
            )
        joined = os.path.join(str(target.parent), member.linkname)
        # realpath follows links already extracted, e.g. `d -> ..` then `d/../x`
        escapes = any(
            os.path.commonpath([str(root), candidate]) != str(root)
            for candidate in (os.path.normpath(joined), os.path.realpath(joined))
        )
        if escapes:
            raise ExtractFailed(
                f"Symlink {member.name} -> {member.linkname} escapes the destination",
                archive_path,
            )

        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            os.symlink(member.linkname, target)
        except FileExistsError as e:
            raise ExtractFailed(
                f"{relative} is provided by more than one archive "
                + f"(collision in {archive_path.name})",
                archive_path,
            ) from e

    @staticmethod
    def _safe_relative(
        name: str, strip: int, archive_path: Path
    ) -> Optional[PurePosixPath]:
        """Validate an entry name and strip leading components.

        Returns:
            The stripped relative path, or None if nothing is left

        Raises:
            ExtractFailed: If the name is absolute or climbs out with '..'
        """
        normalized = name.replace("\\", "/")
        path = PurePosixPath(normalized)
        if path.is_absolute() or (len(normalized) > 1 and normalized[1] == ":"):
            raise ExtractFailed(
                f"Absolute path {name!r} in {archive_path.name}", archive_path
            )

        parts = [part for part in path.parts if part not in ("", ".")]
        if ".." in parts:
            raise ExtractFailed(
                f"Path traversal attempt {name!r} in {archive_path.name}", archive_path
            )

        if len(parts) <= strip:
            return None
        return PurePosixPath(*parts[strip:])

    @staticmethod
    def _ensure_within(root: Path, path: Path, archive_path: Path) -> None:
        # Catches escapes through symlinks created by earlier entries
        real = os.path.realpath(str(path))
        if os.path.commonpath([str(root), real]) != str(root):
            raise ExtractFailed(
                f"Entry would be written outside {root}: {path}", archive_path
            )

    def _remove_byproducts(self, dest_dir: Path) -> None:
        for name in self.BYPRODUCTS:
            byproduct = dest_dir / name
            if byproduct.exists():
                byproduct.unlink()
