"""
Identity: client HTTP du service d'identité de la boutique.
"""

from .http_identity_service import HttpIdentityService

__all__ = [
    "HttpIdentityService",
]
