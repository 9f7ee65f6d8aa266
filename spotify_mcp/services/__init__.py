"""Service layer exports."""

from .authorization import AuthorizationBootstrapper
from .credential_manager import CredentialManager

__all__ = [
    "AuthorizationBootstrapper",
    "CredentialManager",
]
