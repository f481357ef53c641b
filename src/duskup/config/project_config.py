"""
duskup.ini configuration parser.

This module parses the project file that names the compiler version, the
contracts to build and the deployment settings.
"""

import configparser
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional


class ProjectConfigError(Exception):
    """Exception raised for duskup.ini configuration errors."""

    pass


@dataclass
class ContractConfig:
    """Build settings for one contract crate."""

    name: str
    manifest: Path
    target: str = "wasm64-unknown-unknown"
    rustflags: str = "-C link-args=-zstack-size=65536"
    build_std: str = "core,alloc"


@dataclass
class DeployConfig:
    """Settings passed to the deploy tool."""

    contract_path: Path
    config_path: Path
    gas_limit: int = 1000000000


class ProjectConfig:
    """
    Parser for duskup.ini project files.

    Example duskup.ini:
        [toolchain]
        version = v0.2.0

        [contract:vote-contract]
        manifest = contract/Cargo.toml

        [deploy]
        contract_path = target/wasm32-unknown-unknown/release/vote_contract.wasm
        config_path = deploy-config.toml

    Usage:
        config = ProjectConfig(Path("duskup.ini"))
        version = config.toolchain_version
        contracts = config.get_contracts()
    """

    FILENAME = "duskup.ini"
    CONTRACT_PREFIX = "contract:"

    def __init__(self, ini_path: Path):
        """
        Initialize the parser with a duskup.ini file.

        Args:
            ini_path: Path to the duskup.ini file

        Raises:
            ProjectConfigError: If the file doesn't exist or cannot be parsed
        """
        self.ini_path = ini_path
        self.project_dir = ini_path.parent.resolve()

        if not ini_path.exists():
            raise ProjectConfigError(f"Configuration file not found: {ini_path}")

        self.config = configparser.ConfigParser(
            interpolation=configparser.ExtendedInterpolation()
        )

        try:
            self.config.read(ini_path, encoding="utf-8")
        except configparser.Error as e:
            raise ProjectConfigError(f"Failed to parse {ini_path}: {e}") from e

    @classmethod
    def load(cls, project_dir: Path) -> "ProjectConfig":
        """Load the duskup.ini of a project directory."""
        return cls(Path(project_dir) / cls.FILENAME)

    def _get(self, section: str, key: str, fallback: Optional[str] = None) -> Optional[str]:
        if section not in self.config:
            return fallback
        value = self.config[section].get(key, fallback)
        return value.strip() if isinstance(value, str) else value

    def _require(self, section: str, key: str) -> str:
        value = self._get(section, key)
        if not value:
            raise ProjectConfigError(f"[{section}] {key} is missing from {self.ini_path}")
        return value

    def _path(self, value: str) -> Path:
        path = Path(value)
        return path if path.is_absolute() else self.project_dir / path

    @property
    def toolchain_version(self) -> str:
        """Compiler release version to install."""
        return self._require("toolchain", "version")

    @property
    def link_name(self) -> str:
        """Toolchain name the compiler is published under."""
        return self._get("toolchain", "link_name", "dusk") or "dusk"

    @property
    def checksum(self) -> Optional[str]:
        """Optional SHA256 of the release artifact."""
        return self._get("toolchain", "sha256") or None

    def get_contract_names(self) -> List[str]:
        """Get contract names in file order.

        Example:
            For [contract:vote-contract], [contract:mock-token], returns
            ['vote-contract', 'mock-token']
        """
        return [
            section[len(self.CONTRACT_PREFIX):]
            for section in self.config.sections()
            if section.startswith(self.CONTRACT_PREFIX)
        ]

    def get_contract(self, name: str) -> ContractConfig:
        """
        Get build settings for one contract.

        Raises:
            ProjectConfigError: If the contract is unknown or has no manifest
        """
        section = f"{self.CONTRACT_PREFIX}{name}"
        if section not in self.config:
            available = ", ".join(self.get_contract_names())
            raise ProjectConfigError(
                f"Contract '{name}' not found. "
                + f"Available contracts: {available or 'none'}"
            )

        defaults = ContractConfig(name=name, manifest=Path())
        return ContractConfig(
            name=name,
            manifest=self._path(self._require(section, "manifest")),
            target=self._get(section, "target", defaults.target) or defaults.target,
            rustflags=self._get(section, "rustflags", defaults.rustflags) or "",
            build_std=self._get(section, "build_std", defaults.build_std) or "",
        )

    def get_contracts(self) -> List[ContractConfig]:
        """Get build settings for every contract."""
        return [self.get_contract(name) for name in self.get_contract_names()]

    @property
    def test_manifest(self) -> Optional[Path]:
        """Manifest of the test crate, if configured."""
        value = self._get("test", "manifest")
        return self._path(value) if value else None

    def get_deploy_config(self) -> DeployConfig:
        """
        Get deployment settings.

        Raises:
            ProjectConfigError: If [deploy] is missing or gas_limit is invalid
        """
        if "deploy" not in self.config:
            raise ProjectConfigError(f"No [deploy] section in {self.ini_path}")

        gas_limit_str = self._get("deploy", "gas_limit", "1000000000")
        try:
            gas_limit = int(gas_limit_str or "")
        except ValueError as e:
            raise ProjectConfigError(f"Invalid gas_limit: {gas_limit_str}") from e

        return DeployConfig(
            contract_path=self._path(self._require("deploy", "contract_path")),
            config_path=self._path(
                self._get("deploy", "config_path", "deploy-config.toml") or "deploy-config.toml"
            ),
            gas_limit=gas_limit,
        )
