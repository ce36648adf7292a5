"""
Core: configuration du contrôleur de session.
"""

from .interfaces import AuthConfig, IConfigLoader
from .config_loader import ConfigLoader, ConfigIntegrityError

__all__ = [
    "AuthConfig",
    "IConfigLoader",
    "ConfigLoader",
    "ConfigIntegrityError",
]
