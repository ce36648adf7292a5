"""
Auth: Token Codec

Lecture des claims d'un bearer token JWT, sans vérification de signature.

Politique fail-safe: tout token illisible (format, payload non JSON,
claim exp absent ou invalide) est considéré expiré.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt

from .interfaces import ITokenCodec


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec(ITokenCodec):
    """
    Décodeur d'expiration JWT.

    La clé de vérification n'est pas distribuée au client: le décodage
    sert uniquement aux décisions UX (afficher le login plus tôt).

    Example:
        codec = TokenCodec()
        if codec.expires_within(token, 300):
            await validator.attempt_refresh(Role.ADMIN)
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            clock: Source de l'heure courante UTC (injectable pour tests)
        """
        self._clock = clock or utc_now

    def decode_expiry(self, token: Optional[str]) -> Optional[datetime]:
        """
        Extrait l'instant d'expiration.

        Returns:
            exp en datetime UTC, ou None si token illisible
        """
        if not token or not isinstance(token, str):
            return None
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
            exp_timestamp = payload.get("exp")
            if exp_timestamp is None or isinstance(exp_timestamp, bool):
                return None
            return datetime.fromtimestamp(float(exp_timestamp), tz=timezone.utc)
        except (jwt.InvalidTokenError, TypeError, ValueError, OverflowError, OSError):
            return None

    def is_expired(self, token: Optional[str]) -> bool:
        """Vérifie expiration sans valider signature."""
        exp = self.decode_expiry(token)
        if exp is None:
            return True
        return self._clock() >= exp

    def expires_within(
        self, token: Optional[str], threshold_seconds: int = ITokenCodec.DEFAULT_NEAR_EXPIRY_SECONDS
    ) -> bool:
        """Vérifie si exp tombe avant maintenant + threshold_seconds."""
        exp = self.decode_expiry(token)
        if exp is None:
            return True
        return exp <= self._clock() + timedelta(seconds=threshold_seconds)
