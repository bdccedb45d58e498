"""
n8n-deployer - Production provisioning for self-hosted n8n
"""

__version__ = "0.3.0"

from .core import DeployerError, N8nDeployer

__all__ = ["N8nDeployer", "DeployerError"]
