"""Fixtures that build fake compiler releases."""

import io
import tarfile
import zipfile
from pathlib import Path
from typing import Dict, Optional

import pytest

HOST = "x86_64-unknown-linux-gnu"


def build_component_tarball(
    path: Path,
    component: str,
    files: Dict[str, bytes],
    package: Optional[str] = None,
    symlinks: Optional[Dict[str, str]] = None,
    mode: int = 0o755,
) -> Path:
    """Write a component tarball laid out like a rust-installer package.

    Entries are nested as `<package>/<component>/<relative>`, plus the
    installer metadata files that stripping two components discards.
    """
    package = package or f"{component}-nightly-{HOST}"

    def add_bytes(tar: tarfile.TarFile, name: str, data: bytes, file_mode: int = 0o644):
        info = tarfile.TarInfo(name)
        info.size = len(data)
        info.mode = file_mode
        tar.addfile(info, io.BytesIO(data))

    def add_dir(tar: tarfile.TarFile, name: str):
        info = tarfile.TarInfo(name)
        info.type = tarfile.DIRTYPE
        info.mode = 0o755
        tar.addfile(info)

    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as tar:
        add_dir(tar, package)
        add_bytes(tar, f"{package}/components", f"{component}\n".encode())
        add_bytes(tar, f"{package}/rust-installer-version", b"3\n")
        add_dir(tar, f"{package}/{component}")
        add_bytes(tar, f"{package}/{component}/manifest.in", b"file:bin/placeholder\n")
        for relative, data in files.items():
            add_bytes(tar, f"{package}/{component}/{relative}", data, mode)
        for relative, target in (symlinks or {}).items():
            info = tarfile.TarInfo(f"{package}/{component}/{relative}")
            info.type = tarfile.SYMTYPE
            info.linkname = target
            tar.addfile(info)
    return path


def build_raw_tarball(path: Path, entries: Dict[str, bytes]) -> Path:
    """Write a tarball with exactly the given entry names."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as tar:
        for name, data in entries.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return path


def build_release_zip(path: Path, tarballs: Dict[str, Path], include_src: bool = True) -> Path:
    """Write a release zip holding the given tarballs at its root."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, tarball in tarballs.items():
            zf.write(tarball, name)
        if include_src:
            zf.writestr("rustc-nightly-src.tar.gz", b"not needed")
    return path


def build_two_component_release(work_dir: Path, zip_path: Path) -> Path:
    """A release with a rustc component and a rust-std component."""
    rustc = build_component_tarball(
        work_dir / f"rustc-nightly-{HOST}.tar.gz",
        "rustc",
        {"bin/rustc": b"#!/bin/sh\necho rustc\n", "lib/librustc_driver.so": b"driver"},
    )
    std = build_component_tarball(
        work_dir / f"rust-std-nightly-{HOST}.tar.gz",
        "rust-std-wasm64-unknown-unknown",
        {"lib/rustlib/wasm64-unknown-unknown/lib/libcore.rlib": b"core"},
    )
    return build_release_zip(zip_path, {rustc.name: rustc, std.name: std})


@pytest.fixture
def release_builder():
    """Helpers for writing fake release archives."""

    class ReleaseBuilder:
        component_tarball = staticmethod(build_component_tarball)
        raw_tarball = staticmethod(build_raw_tarball)
        release_zip = staticmethod(build_release_zip)
        two_component_release = staticmethod(build_two_component_release)

    return ReleaseBuilder
