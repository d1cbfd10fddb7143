"""Portal backend client."""

from .client import PortalAuthError, PortalClient, PortalDecodeError, PortalError

__all__ = ["PortalClient", "PortalError", "PortalAuthError", "PortalDecodeError"]
