"""
Contract deployment module.

This module publishes a compiled contract to the Dusk network by invoking
dusk-deploy-cli (install with `cargo install dusk-deploy-cli`).
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional


@dataclass
class DeploymentResult:
    """Result of a contract deployment operation."""

    success: bool
    message: str
    returncode: int = 0


class DeploymentError(Exception):
    """Raised when deployment cannot be attempted."""

    pass


class Deployer:
    """Handles contract deployment through dusk-deploy-cli."""

    TOOL = "dusk-deploy-cli"
    REDACTED = "********"

    def __init__(self, tool: str = TOOL, verbose: bool = False):
        """Initialize deployer.

        Args:
            tool: Name or path of the deploy CLI
            verbose: Whether to show verbose output
        """
        self.tool = tool
        self.verbose = verbose

    def deploy_command(
        self,
        contract_path: Path,
        seed: str,
        config_path: Path,
        gas_limit: int,
        moonlight_key: Optional[str] = None,
    ) -> List[str]:
        """Deploy tool command line."""
        cmd = [
            self.tool,
            "--contract-path",
            str(contract_path),
            "--seed",
            seed,
            "--config-path",
            str(config_path),
            "--gas-limit",
            str(gas_limit),
        ]
        if moonlight_key:
            cmd.extend(["--moonlight", moonlight_key])
        return cmd

    def redact(self, cmd: List[str]) -> str:
        """Render a command for display with secret values hidden."""
        shown = []
        hide_next = False
        for arg in cmd:
            shown.append(self.REDACTED if hide_next else arg)
            hide_next = arg in ("--seed", "--moonlight")
        return " ".join(shown)

    def deploy(
        self,
        contract_path: Path,
        seed: str,
        config_path: Path,
        gas_limit: int = 1000000000,
        moonlight_key: Optional[str] = None,
    ) -> DeploymentResult:
        """Deploy a compiled contract.

        Args:
            contract_path: Compiled contract (.wasm)
            seed: Wallet seed phrase
            config_path: Deploy tool configuration file
            gas_limit: Gas limit for the deployment transaction
            moonlight_key: Optional Moonlight account secret key

        Returns:
            DeploymentResult carrying the deploy tool's exit code

        Raises:
            DeploymentError: If the seed, contract or deploy tool is missing
        """
        if not seed or not seed.strip():
            raise DeploymentError("A wallet seed phrase is required")

        if not contract_path.is_file():
            raise DeploymentError(
                f"WASM file not found at {contract_path}. Build the contract first."
            )

        if shutil.which(self.tool) is None:
            raise DeploymentError(
                f"'{self.tool}' not found. Install with: cargo install {self.TOOL}"
            )

        cmd = self.deploy_command(contract_path, seed, config_path, gas_limit, moonlight_key)

        print(f"WASM file: {contract_path}")
        print(f"Config: {config_path}")
        logging.debug(f"Running: {self.redact(cmd)}")
        if self.verbose:
            print(f"Running: {self.redact(cmd)}")

        completed = subprocess.run(cmd)
        if completed.returncode != 0:
            return DeploymentResult(
                success=False,
                message=f"{self.tool} exited with code {completed.returncode}",
                returncode=completed.returncode,
            )

        return DeploymentResult(
            success=True,
            message="Deployment complete. Save the contract ID for frontend integration.",
        )
