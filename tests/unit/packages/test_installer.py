"""Unit tests for active toolchain publication."""

import os
import sys
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from duskup.packages.installer import InstallFailed, ToolchainInstaller

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges")


def make_toolchain(root: Path, name: str) -> Path:
    path = root / name / "extracted"
    (path / "bin").mkdir(parents=True)
    (path / "bin" / "rustc").write_text(name)
    return path


class TestToolchainInstaller:
    """Test cases for ToolchainInstaller class."""

    def test_default_root(self, monkeypatch):
        monkeypatch.setenv("HOME", "/home/tester")
        assert ToolchainInstaller().toolchain_root == Path.home() / ".rustup" / "toolchains"

    def test_rustup_home_root(self, monkeypatch):
        monkeypatch.setenv("RUSTUP_HOME", "/opt/rustup")
        assert ToolchainInstaller().toolchain_root == Path("/opt/rustup/toolchains")

    def test_env_override_root(self, monkeypatch):
        monkeypatch.setenv("RUSTUP_HOME", "/opt/rustup")
        monkeypatch.setenv("DUSKUP_TOOLCHAIN_DIR", "/srv/toolchains")
        assert ToolchainInstaller().toolchain_root == Path("/srv/toolchains")

    @pytest.mark.parametrize("name", ["", ".", "..", "a/b"])
    def test_invalid_link_name(self, name):
        with pytest.raises(InstallFailed, match="Invalid toolchain name"):
            ToolchainInstaller(Path("/tmp")).link_path(name)

    def test_publish_creates_link(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            temp = Path(temp_dir)
            target = make_toolchain(temp, "v0.2.0")
            installer = ToolchainInstaller(temp / "toolchains")

            link = installer.publish(target, "dusk")

            assert link == temp / "toolchains" / "dusk"
            assert link.is_symlink()
            assert (link / "bin" / "rustc").read_text() == "v0.2.0"
            assert installer.active_target("dusk") == target.resolve()

    def test_republish_same_target_is_noop(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            temp = Path(temp_dir)
            target = make_toolchain(temp, "v0.2.0")
            installer = ToolchainInstaller(temp / "toolchains")
            installer.publish(target, "dusk")

            with patch("os.symlink") as symlink:
                installer.publish(target, "dusk")

            symlink.assert_not_called()
            assert installer.active_target("dusk") == target.resolve()

    def test_publish_replaces_existing_link(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            temp = Path(temp_dir)
            old = make_toolchain(temp, "v0.1.0")
            new = make_toolchain(temp, "v0.2.0")
            installer = ToolchainInstaller(temp / "toolchains")

            installer.publish(old, "dusk")
            link = installer.publish(new, "dusk")

            assert (link / "bin" / "rustc").read_text() == "v0.2.0"
            # No temporary links left behind
            assert [p.name for p in (temp / "toolchains").iterdir()] == ["dusk"]
            # The previous toolchain itself is untouched
            assert (old / "bin" / "rustc").read_text() == "v0.1.0"

    def test_replaces_dangling_link(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            temp = Path(temp_dir)
            target = make_toolchain(temp, "v0.2.0")
            root = temp / "toolchains"
            root.mkdir()
            os.symlink(temp / "gone", root / "dusk")

            link = ToolchainInstaller(root).publish(target, "dusk")

            assert (link / "bin" / "rustc").exists()

    def test_failed_publish_keeps_old_link(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            temp = Path(temp_dir)
            old = make_toolchain(temp, "v0.1.0")
            new = make_toolchain(temp, "v0.2.0")
            installer = ToolchainInstaller(temp / "toolchains")
            link = installer.publish(old, "dusk")

            with patch("os.symlink", side_effect=OSError("read-only file system")):
                with pytest.raises(InstallFailed, match="read-only"):
                    installer.publish(new, "dusk")

            assert (link / "bin" / "rustc").read_text() == "v0.1.0"

    def test_failed_swap_keeps_old_link_and_cleans_up(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            temp = Path(temp_dir)
            old = make_toolchain(temp, "v0.1.0")
            new = make_toolchain(temp, "v0.2.0")
            installer = ToolchainInstaller(temp / "toolchains")
            link = installer.publish(old, "dusk")

            with patch("os.replace", side_effect=OSError("device busy")):
                with pytest.raises(InstallFailed, match="device busy"):
                    installer.publish(new, "dusk")

            assert (link / "bin" / "rustc").read_text() == "v0.1.0"
            assert [p.name for p in (temp / "toolchains").iterdir()] == ["dusk"]

    def test_refuses_to_replace_real_directory(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            temp = Path(temp_dir)
            target = make_toolchain(temp, "v0.2.0")
            occupied = temp / "toolchains" / "dusk"
            occupied.mkdir(parents=True)
            (occupied / "keep.txt").write_text("user data")

            with pytest.raises(InstallFailed, match="not a symlink"):
                ToolchainInstaller(temp / "toolchains").publish(target, "dusk")

            assert (occupied / "keep.txt").read_text() == "user data"

    def test_missing_target(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            temp = Path(temp_dir)
            with pytest.raises(InstallFailed, match="does not exist"):
                ToolchainInstaller(temp / "toolchains").publish(temp / "missing", "dusk")

    def test_active_target_without_link(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            assert ToolchainInstaller(Path(temp_dir)).active_target("dusk") is None
