"""
Core: Interfaces

Configuration du contrôleur de session et contrat de chargement.
"""

from abc import ABC, abstractmethod
from typing import List

from pydantic import BaseModel, ConfigDict, Field


# ══════════════════════════════════════════════════════════════════════════════
# TYPES
# ══════════════════════════════════════════════════════════════════════════════


class AuthConfig(BaseModel):
    """
    Configuration du contrôleur de session.

    Attributes:
        api_base_url: URL de base du service d'identité
        request_timeout_seconds: Timeout des requêtes HTTP
        near_expiry_threshold_seconds: Seuil de refresh proactif
        guard_interval_seconds: Période de revalidation en arrière-plan
        admin_path_markers: Fragments de chemin de l'espace admin
        customer_path_markers: Fragments de chemin de l'espace client
        log_level: Niveau minimum de log
    """

    model_config = ConfigDict(extra="forbid")

    api_base_url: str = "http://localhost:3001"
    request_timeout_seconds: float = Field(default=10.0, gt=0)
    near_expiry_threshold_seconds: int = Field(default=300, gt=0)
    guard_interval_seconds: float = Field(default=60.0, gt=0)
    admin_path_markers: List[str] = Field(default_factory=lambda: ["/admin"])
    customer_path_markers: List[str] = Field(default_factory=lambda: ["/customer", "/dashboard"])
    log_level: str = "INFO"


# ══════════════════════════════════════════════════════════════════════════════
# INTERFACES
# ══════════════════════════════════════════════════════════════════════════════


class IConfigLoader(ABC):
    """Charge la configuration depuis un fichier YAML."""

    @abstractmethod
    async def load(self, name: str) -> AuthConfig:
        """
        Charge la configuration nommée.

        Raises:
            ConfigIntegrityError: Fichier absent ou contenu invalide
        """
        pass
