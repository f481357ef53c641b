"""Configuration parsing modules for duskup."""

from .project_config import ContractConfig, DeployConfig, ProjectConfig, ProjectConfigError

__all__ = [
    "ProjectConfig",
    "ProjectConfigError",
    "ContractConfig",
    "DeployConfig",
]
