"""Domain errors for n8n-deployer."""

from typing import Optional


class DeployerError(RuntimeError):
    """Raised when the deployment cannot continue safely."""


class ConfigurationError(DeployerError):
    """Raised when the resolved configuration is unusable."""


class ToolInvocationError(DeployerError):
    """Raised when an external tool exits non-zero or cannot be executed."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode


class ReadinessTimeoutError(DeployerError):
    """Raised when a service never answered with an accepted status."""


class CertificateAcquisitionError(DeployerError):
    """Raised when the certificate agent could not issue a certificate."""


class ReverseProxyValidationError(DeployerError):
    """Raised when the reverse proxy rejects its configuration."""
