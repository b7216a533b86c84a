"""
Error taxonomy for workspace namespace provisioning.

Configuration problems are fatal at startup, validation problems are
surfaced to the end user, and infrastructure problems wrap any cluster or
transport failure that could not be recovered locally.
"""

from typing import Optional


class NamespaceProvisioningError(Exception):
    """Base exception for all namespace provisioning errors"""
    pass


class ConfigurationError(NamespaceProvisioningError):
    """Raised when the provisioner is configured in an unusable way."""
    pass


class ValidationError(NamespaceProvisioningError):
    """Raised when a caller requests a namespace it is not allowed to use."""
    pass


class InfrastructureError(NamespaceProvisioningError):
    """Raised when the cluster reports a failure that cannot be recovered locally."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
