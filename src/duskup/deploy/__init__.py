"""
Contract deployment functionality for duskup.

This module provides deployment of compiled contracts to the Dusk network.
"""

from .deployer import Deployer, DeploymentError, DeploymentResult

__all__ = [
    "Deployer",
    "DeploymentResult",
    "DeploymentError",
]
