"""
Core: Config Loader

Charge la configuration du contrôleur depuis des fichiers YAML.
"""

from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from ..logging import InvalidLogLevelError, parse_level
from .interfaces import AuthConfig, IConfigLoader


class ConfigIntegrityError(Exception):
    """Erreur d'intégrité de configuration."""

    pass


class ConfigLoader(IConfigLoader):
    """Chargement des configurations depuis fichiers YAML."""

    def __init__(self, configs_path: str = "fixtures/configs"):
        self.configs_path = Path(configs_path)

    async def load(self, name: str) -> AuthConfig:
        """
        Charge <configs_path>/<name>.yaml.

        Raises:
            ConfigIntegrityError: Si fichier inexistant ou structure invalide
        """
        config_file = self.configs_path / f"{name}.yaml"

        if not config_file.exists():
            raise ConfigIntegrityError(f"Configuration non trouvée: {name}")

        try:
            with open(config_file, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigIntegrityError(f"Erreur de parsing YAML: {e}")
        except OSError as e:
            raise ConfigIntegrityError(f"Erreur de lecture fichier: {e}")

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigIntegrityError("Configuration doit être un objet YAML")

        return self.from_dict(raw)

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> AuthConfig:
        """
        Valide un dictionnaire de configuration.

        Raises:
            ConfigIntegrityError: Champ inconnu, type ou valeur invalide
        """
        try:
            config = AuthConfig(**raw)
        except ValidationError as e:
            raise ConfigIntegrityError(f"Configuration invalide: {e}")

        try:
            parse_level(config.log_level)
        except InvalidLogLevelError as e:
            raise ConfigIntegrityError(str(e))

        if not config.admin_path_markers:
            raise ConfigIntegrityError("admin_path_markers ne peut pas être vide")

        return config
