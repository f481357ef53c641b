"""Active toolchain publication.

rustup resolves `cargo +dusk` by looking up `{toolchain_root}/dusk`. This
module points that name at an extracted toolchain tree. The link is replaced
by renaming a freshly created link over it, so a build that dereferences it
concurrently sees either the old toolchain or the new one, never nothing.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Optional


class InstallFailed(Exception):
    """Raised when a toolchain cannot be published."""

    pass


class ToolchainInstaller:
    """Publishes extracted toolchains under a rustup toolchain name."""

    ENV_TOOLCHAIN_DIR = "DUSKUP_TOOLCHAIN_DIR"

    def __init__(self, toolchain_root: Optional[Path] = None):
        """Initialize installer.

        Args:
            toolchain_root: Directory holding toolchain links (default:
                DUSKUP_TOOLCHAIN_DIR, else $RUSTUP_HOME/toolchains, else
                ~/.rustup/toolchains)
        """
        if toolchain_root is None:
            toolchain_root = self.default_toolchain_root()
        self.toolchain_root = Path(toolchain_root)

    @classmethod
    def default_toolchain_root(cls) -> Path:
        override = os.environ.get(cls.ENV_TOOLCHAIN_DIR)
        if override:
            return Path(override)
        rustup_home = os.environ.get("RUSTUP_HOME")
        if rustup_home:
            return Path(rustup_home) / "toolchains"
        return Path.home() / ".rustup" / "toolchains"

    def link_path(self, link_name: str) -> Path:
        """Path of the named toolchain link."""
        if not link_name or "/" in link_name or "\\" in link_name or link_name in (".", ".."):
            raise InstallFailed(f"Invalid toolchain name: {link_name!r}")
        return self.toolchain_root / link_name

    def active_target(self, link_name: str) -> Optional[Path]:
        """Directory the named link currently points at, if it is a link."""
        link = self.link_path(link_name)
        if not link.is_symlink():
            return None
        return Path(os.readlink(link))

    def publish(self, extracted_dir: Path, link_name: str) -> Path:
        """Make extracted_dir the active toolchain named link_name.

        Args:
            extracted_dir: Extracted toolchain tree
            link_name: Toolchain name (e.g., 'dusk')

        Returns:
            Path to the link

        Raises:
            InstallFailed: If the link cannot be created; any previous link
                is left in place
        """
        target = Path(extracted_dir).resolve()
        link = self.link_path(link_name)

        if not target.is_dir():
            raise InstallFailed(f"Toolchain directory does not exist: {target}")

        if link.is_symlink():
            if Path(os.readlink(link)) == target:
                logging.debug(f"{link} already points at {target}")
                return link
        elif link.exists():
            raise InstallFailed(
                f"{link} exists and is not a symlink; refusing to replace it"
            )

        try:
            self.toolchain_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InstallFailed(f"Cannot create {self.toolchain_root}: {e}") from e

        temp_link = link.with_name(f".{link_name}.{uuid.uuid4().hex}.tmp")
        try:
            os.symlink(target, temp_link, target_is_directory=True)
        except OSError as e:
            raise InstallFailed(f"Cannot create toolchain link {link}: {e}") from e

        try:
            self._swap(temp_link, link)
        except OSError as e:
            if temp_link.is_symlink():
                temp_link.unlink()
            raise InstallFailed(f"Cannot replace toolchain link {link}: {e}") from e

        logging.info(f"Published {target} as toolchain '{link_name}'")
        return link

    @staticmethod
    def _swap(temp_link: Path, link: Path) -> None:
        try:
            os.replace(temp_link, link)
        except PermissionError:
            if not link.is_symlink():
                raise
            # Some platforms refuse to rename over an existing link
            logging.warning(
                f"Atomic replacement of {link} unsupported; "
                + "the link is briefly absent while it is swapped"
            )
            link.unlink()
            os.replace(temp_link, link)
