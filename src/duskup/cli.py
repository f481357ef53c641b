"""
Command-line interface for duskup.

This module provides two entry points:
    ensure-toolchain <version>   Install a Dusk compiler release as 'dusk'
    duskup <command>             Ensure, build, test and deploy contracts
"""

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from duskup import __version__
from duskup.build import ContractBuilder, ContractBuildError
from duskup.cli_utils import (
    ErrorFormatter,
    PathValidator,
    UsageError,
    setup_logging,
)
from duskup.config import ProjectConfig, ProjectConfigError
from duskup.deploy import Deployer, DeploymentError
from duskup.packages import (
    PlatformDetector,
    ToolchainCache,
    ToolchainInstaller,
    ToolchainManager,
    ToolchainUnavailable,
)

DEFAULT_CONTRACT_PATH = Path("target/wasm32-unknown-unknown/release/vote_contract.wasm")
DEFAULT_DEPLOY_CONFIG = Path("deploy-config.toml")


@dataclass
class EnsureArgs:
    """Arguments for the ensure command."""

    project_dir: Path
    version: Optional[str] = None
    checksum: Optional[str] = None
    link_name: Optional[str] = None
    verbose: bool = False


@dataclass
class BuildArgs:
    """Arguments for the build command."""

    project_dir: Path
    contracts: List[str] = field(default_factory=list)
    verbose: bool = False


@dataclass
class ContractTestArgs:
    """Arguments for the test command."""

    project_dir: Path
    verbose: bool = False


@dataclass
class DeployArgs:
    """Arguments for the deploy command."""

    project_dir: Path
    seed: Optional[str] = None
    moonlight_key: Optional[str] = None
    contract_path: Optional[Path] = None
    config_path: Optional[Path] = None
    gas_limit: Optional[int] = None
    verbose: bool = False


def _load_config(project_dir: Path) -> Optional[ProjectConfig]:
    ini_path = project_dir / ProjectConfig.FILENAME
    if not ini_path.exists():
        return None
    return ProjectConfig(ini_path)


def _make_manager(project_dir: Path, link_name: str) -> ToolchainManager:
    installer = ToolchainInstaller()
    cache = ToolchainCache(project_dir, link_path=installer.link_path(link_name))
    return ToolchainManager(cache=cache, installer=installer, link_name=link_name)


def _ensure_project_toolchain(config: ProjectConfig) -> None:
    manager = _make_manager(config.project_dir, config.link_name)
    manager.ensure(config.toolchain_version, config.checksum)


def ensure_command(args: EnsureArgs) -> None:
    """Download, extract and activate a compiler release.

    Examples:
        ensure-toolchain v0.2.0          # Install v0.2.0 as 'dusk'
        duskup ensure                    # Install the version in duskup.ini
        duskup ensure v0.2.0 --sha256 <hex>  # Verify the release artifact
    """
    try:
        config = _load_config(args.project_dir)
        version = args.version or (config.toolchain_version if config else None)
        if not version:
            raise UsageError(
                f"A compiler version is required (argument or [toolchain] version in {ProjectConfig.FILENAME})"
            )
        link_name = args.link_name or (config.link_name if config else ToolchainManager.DEFAULT_LINK_NAME)
        checksum = args.checksum or (config.checksum if config and not args.version else None)

        if args.verbose:
            print(f"Project: {args.project_dir}")
            print(f"Host: {PlatformDetector.get_platform_info()}")

        manager = _make_manager(args.project_dir, link_name)
        extracted = manager.ensure(version, checksum)

        ErrorFormatter.print_success("Dusk compiler installed successfully!")
        print(f"Toolchain: {extracted}")
        sys.exit(0)

    except UsageError as e:
        ErrorFormatter.handle_usage_error(e, "Usage: ensure-toolchain <compiler-version>")
    except (ToolchainUnavailable, ProjectConfigError) as e:
        ErrorFormatter.handle_failure("Toolchain unavailable", e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def build_command(args: BuildArgs) -> None:
    """Build contracts with the Dusk toolchain.

    Examples:
        duskup build                     # Build every contract in duskup.ini
        duskup build -c vote-contract    # Build one contract
    """
    try:
        config = ProjectConfig.load(args.project_dir)
        _ensure_project_toolchain(config)

        if args.contracts:
            contracts = [config.get_contract(name) for name in args.contracts]
        else:
            contracts = config.get_contracts()
        if not contracts:
            raise UsageError(f"No [contract:<name>] sections in {config.ini_path}")

        builder = ContractBuilder(args.project_dir, config.link_name, verbose=args.verbose)
        for result in builder.build_all(contracts):
            if not result.success:
                ErrorFormatter.print_error("Build failed!", result.message)
                sys.exit(result.returncode)

        ErrorFormatter.print_success("Build successful!")
        sys.exit(0)

    except UsageError as e:
        ErrorFormatter.handle_usage_error(e, "Usage: duskup build [-c CONTRACT]...")
    except (ToolchainUnavailable, ProjectConfigError, ContractBuildError) as e:
        ErrorFormatter.handle_failure("Build failed!", e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def contract_test_command(args: ContractTestArgs) -> None:
    """Build every contract, then run the contract test suite."""
    try:
        config = ProjectConfig.load(args.project_dir)
        manifest = config.test_manifest
        if manifest is None:
            raise UsageError(f"No [test] manifest in {config.ini_path}")

        _ensure_project_toolchain(config)

        builder = ContractBuilder(args.project_dir, config.link_name, verbose=args.verbose)
        for result in builder.build_all(config.get_contracts()):
            if not result.success:
                ErrorFormatter.print_error("Build failed!", result.message)
                sys.exit(result.returncode)

        result = builder.test(manifest)
        if not result.success:
            ErrorFormatter.print_error("Tests failed!", result.message)
            sys.exit(result.returncode)

        ErrorFormatter.print_success(result.message)
        sys.exit(0)

    except UsageError as e:
        ErrorFormatter.handle_usage_error(e, "Usage: duskup test")
    except (ToolchainUnavailable, ProjectConfigError, ContractBuildError) as e:
        ErrorFormatter.handle_failure("Tests failed!", e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def deploy_command(args: DeployArgs) -> None:
    """Deploy a compiled contract to the Dusk network.

    Examples:
        duskup deploy "twelve word seed phrase"
        duskup deploy "twelve word seed phrase" MOONLIGHT_SECRET_KEY
    """
    try:
        if not args.seed:
            raise UsageError("Please provide your 12-word seed phrase")

        config = _load_config(args.project_dir)
        deploy_config = config.get_deploy_config() if config and "deploy" in config.config else None

        contract_path = args.contract_path or (
            deploy_config.contract_path if deploy_config else args.project_dir / DEFAULT_CONTRACT_PATH
        )
        config_path = args.config_path or (
            deploy_config.config_path if deploy_config else args.project_dir / DEFAULT_DEPLOY_CONFIG
        )
        gas_limit = args.gas_limit if args.gas_limit is not None else (
            deploy_config.gas_limit if deploy_config else 1000000000
        )

        print("Deploying contract to the Dusk network...")
        deployer = Deployer(verbose=args.verbose)
        result = deployer.deploy(
            contract_path=contract_path,
            seed=args.seed,
            config_path=config_path,
            gas_limit=gas_limit,
            moonlight_key=args.moonlight_key,
        )

        if not result.success:
            ErrorFormatter.print_error("Deployment failed!", result.message)
            sys.exit(result.returncode)

        ErrorFormatter.print_success(result.message)
        sys.exit(0)

    except UsageError as e:
        ErrorFormatter.handle_usage_error(e, 'Usage: duskup deploy "your twelve word seed phrase" [MOONLIGHT_KEY]')
    except (DeploymentError, ProjectConfigError) as e:
        ErrorFormatter.handle_failure("Deployment failed!", e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-d",
        "--project-dir",
        type=Path,
        default=Path.cwd(),
        help="Project directory (default: current directory)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output",
    )


def _add_ensure_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--sha256",
        default=None,
        help="Expected SHA256 of the release artifact",
    )
    parser.add_argument(
        "--link-name",
        default=None,
        help="Toolchain name to install as (default: dusk)",
    )
    _add_common_arguments(parser)


def ensure_toolchain_main(argv: Optional[List[str]] = None) -> None:
    """ensure-toolchain - Install a Dusk compiler release."""
    parser = argparse.ArgumentParser(
        prog="ensure-toolchain",
        description="Download, verify and activate a Dusk compiler release",
    )
    parser.add_argument("version", help="Compiler release version (e.g., v0.2.0)")
    _add_ensure_arguments(parser)

    parsed_args = parser.parse_args(argv)
    setup_logging(parsed_args.verbose)
    PathValidator.validate_project_dir(parsed_args.project_dir)

    ensure_command(
        EnsureArgs(
            project_dir=parsed_args.project_dir,
            version=parsed_args.version,
            checksum=parsed_args.sha256,
            link_name=parsed_args.link_name,
            verbose=parsed_args.verbose,
        )
    )


def main(argv: Optional[List[str]] = None) -> None:
    """duskup - Dusk contract toolchain manager."""
    parser = argparse.ArgumentParser(
        prog="duskup",
        description="duskup - Dusk compiler toolchain and contract workflow",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"duskup {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    ensure_parser = subparsers.add_parser(
        "ensure",
        help="Download, verify and activate a compiler release",
    )
    ensure_parser.add_argument(
        "toolchain_version",
        nargs="?",
        default=None,
        help="Compiler release version (default: [toolchain] version in duskup.ini)",
    )
    _add_ensure_arguments(ensure_parser)

    build_parser = subparsers.add_parser(
        "build",
        help="Build contracts with the Dusk toolchain",
    )
    build_parser.add_argument(
        "-c",
        "--contract",
        dest="contracts",
        action="append",
        default=[],
        help="Contract to build (repeatable, default: all)",
    )
    _add_common_arguments(build_parser)

    test_parser = subparsers.add_parser(
        "test",
        help="Build contracts and run the contract tests",
    )
    _add_common_arguments(test_parser)

    deploy_parser = subparsers.add_parser(
        "deploy",
        help="Deploy a compiled contract with dusk-deploy-cli",
    )
    deploy_parser.add_argument("seed", nargs="?", default=None, help="Wallet seed phrase")
    deploy_parser.add_argument(
        "moonlight_key",
        nargs="?",
        default=None,
        help="Moonlight account secret key (base58)",
    )
    deploy_parser.add_argument("--contract-path", type=Path, default=None, help="Compiled contract")
    deploy_parser.add_argument("--config-path", type=Path, default=None, help="Deploy config file")
    deploy_parser.add_argument("--gas-limit", type=int, default=None, help="Gas limit")
    _add_common_arguments(deploy_parser)

    parsed_args = parser.parse_args(argv)

    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    setup_logging(parsed_args.verbose)
    PathValidator.validate_project_dir(parsed_args.project_dir)

    if parsed_args.command == "ensure":
        ensure_command(
            EnsureArgs(
                project_dir=parsed_args.project_dir,
                version=parsed_args.toolchain_version,
                checksum=parsed_args.sha256,
                link_name=parsed_args.link_name,
                verbose=parsed_args.verbose,
            )
        )
    elif parsed_args.command == "build":
        build_command(
            BuildArgs(
                project_dir=parsed_args.project_dir,
                contracts=parsed_args.contracts,
                verbose=parsed_args.verbose,
            )
        )
    elif parsed_args.command == "test":
        contract_test_command(ContractTestArgs(project_dir=parsed_args.project_dir, verbose=parsed_args.verbose))
    elif parsed_args.command == "deploy":
        deploy_command(
            DeployArgs(
                project_dir=parsed_args.project_dir,
                seed=parsed_args.seed,
                moonlight_key=parsed_args.moonlight_key,
                contract_path=parsed_args.contract_path,
                config_path=parsed_args.config_path,
                gas_limit=parsed_args.gas_limit,
                verbose=parsed_args.verbose,
            )
        )


if __name__ == "__main__":
    main()
