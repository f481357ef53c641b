"""Contract Builder.

This module runs cargo against the installed Dusk toolchain to build
contract crates and run the contract test suite.

Design:
    - Wraps subprocess.run for cargo commands
    - Selects the toolchain with rustup's `+<name>` syntax
    - Builds core/alloc from source for the wasm target (-Z build-std)
    - Reports the cargo exit code as the only result signal
"""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..config import ContractConfig


class ContractBuildError(Exception):
    """Raised when cargo cannot be invoked."""

    pass


@dataclass
class BuildResult:
    """Result of a cargo invocation."""

    success: bool
    message: str
    returncode: int = 0
    name: Optional[str] = None


class ContractBuilder:
    """Builds and tests contracts with the installed toolchain."""

    def __init__(
        self,
        project_dir: Path,
        toolchain_name: str = "dusk",
        cargo: str = "cargo",
        verbose: bool = False,
    ):
        """Initialize contract builder.

        Args:
            project_dir: Directory cargo runs in
            toolchain_name: rustup toolchain name used for contract builds
            cargo: Name or path of the cargo executable
            verbose: Whether to show verbose output
        """
        self.project_dir = Path(project_dir)
        self.toolchain_name = toolchain_name
        self.cargo = cargo
        self.verbose = verbose

    def build_command(self, contract: ContractConfig) -> List[str]:
        """Cargo command line for building one contract."""
        cmd = [
            self.cargo,
            f"+{self.toolchain_name}",
            "build",
            "--release",
            f"--manifest-path={contract.manifest}",
            "--color=always",
        ]
        if contract.build_std:
            cmd.extend(["-Z", f"build-std={contract.build_std}"])
        cmd.extend(["--target", contract.target])
        return cmd

    def build(self, contract: ContractConfig) -> BuildResult:
        """Build one contract.

        Returns:
            BuildResult carrying cargo's exit code
        """
        env = os.environ.copy()
        if contract.rustflags:
            env["RUSTFLAGS"] = contract.rustflags

        print(f"Building contract: {contract.name}")
        result = self._run(self.build_command(contract), env)
        result.name = contract.name
        if result.success:
            result.message = f"Built {contract.name}"
        else:
            result.message = f"Build of {contract.name} failed (exit code {result.returncode})"
        return result

    def build_all(self, contracts: Sequence[ContractConfig]) -> List[BuildResult]:
        """Build contracts in order, stopping at the first failure."""
        results = []
        for contract in contracts:
            result = self.build(contract)
            results.append(result)
            if not result.success:
                break
        return results

    def test(self, manifest: Path) -> BuildResult:
        """Run the contract test suite with the default toolchain."""
        cmd = [self.cargo, "test", f"--manifest-path={manifest}"]
        result = self._run(cmd, os.environ.copy())
        if result.success:
            result.message = "Tests passed"
        else:
            result.message = f"Tests failed (exit code {result.returncode})"
        return result

    def _run(self, cmd: List[str], env: Dict[str, str]) -> BuildResult:
        if shutil.which(self.cargo) is None:
            raise ContractBuildError(
                f"'{self.cargo}' not found. Install Rust from https://rustup.rs"
            )

        logging.debug(f"Running: {' '.join(cmd)}")
        if self.verbose:
            print(f"Running: {' '.join(cmd)}")

        completed = subprocess.run(cmd, cwd=self.project_dir, env=env)
        return BuildResult(
            success=completed.returncode == 0,
            message="",
            returncode=completed.returncode,
        )
