"""
Contract build system for duskup.

This module runs cargo builds of contract crates against the installed
Dusk toolchain.
"""

from .contract_builder import BuildResult, ContractBuilder, ContractBuildError

__all__ = [
    "BuildResult",
    "ContractBuilder",
    "ContractBuildError",
]
