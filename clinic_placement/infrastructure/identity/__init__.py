"""
Caller identity verification and the admin allow-list.
"""

from .client import AdminDirectory, Identity, IdentityVerifier, StaticTokenVerifier

__all__ = ["AdminDirectory", "Identity", "IdentityVerifier", "StaticTokenVerifier"]
