"""
Auth: Session Validator

Applique la politique d'expiration aux tokens persistés et orchestre
les tentatives de refresh.

Aucune méthode ne lève: les échecs d'E/S deviennent False / invalide.
"""

from typing import Optional

from ..logging import StructuredLogger
from .interfaces import (
    IIdentityService,
    ISessionStore,
    ISessionValidator,
    ITokenCodec,
    ReconcileResult,
    Role,
    Session,
    TokenPair,
)
from .token_codec import TokenCodec


class SessionValidator(ISessionValidator):
    """
    Validation des sessions persistées.

    Example:
        validator = SessionValidator(store, identity)
        result = validator.reconcile_stored_tokens()
        if not result.admin_valid:
            ...
    """

    def __init__(
        self,
        store: ISessionStore,
        identity: IIdentityService,
        codec: Optional[ITokenCodec] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self._store = store
        self._identity = identity
        self._codec = codec or TokenCodec()
        self._log = (logger or StructuredLogger("storefront-auth")).with_context(component="session_validator")

    @property
    def codec(self) -> ITokenCodec:
        return self._codec

    def reconcile_stored_tokens(self) -> ReconcileResult:
        """
        Réconcilie les tokens persistés des deux rôles.

        Un token présent mais expiré entraîne l'effacement du rôle
        (token + profil). Un token valide est laissé intact.

        Returns:
            ReconcileResult par rôle
        """
        return ReconcileResult(
            admin_valid=self.reconcile_role(Role.ADMIN),
            customer_valid=self.reconcile_role(Role.CUSTOMER),
        )

    def reconcile_role(self, role: Role) -> bool:
        """Réconcilie un seul rôle. Retourne True si son token est valide."""
        try:
            token = self._store.get_access_token(role)
        except Exception as e:
            self._log.warn("Stored token unreadable", role=role.value, error=str(e))
            return False

        if not token:
            return False

        if not self._codec.is_expired(token):
            return True

        self._log.info("Stored token expired, clearing role", role=role.value)
        try:
            self._store.clear_tokens(role)
        except Exception as e:
            self._log.warn("Failed to clear expired role", role=role.value, error=str(e))
        return False

    def with_stored_tokens(self, session: Session) -> Session:
        """
        Aligne une session ouverte sur la paire persistée.

        Le service d'identité persiste lui-même les paires renouvelées
        (refresh proactif, refresh après un 403). Store vide ou illisible:
        session inchangée.

        Returns:
            La même session, ou une copie portant la paire persistée
        """
        if session.tokens is None:
            return session
        try:
            access = self._store.get_access_token(session.role)
            refresh = self._store.get_refresh_token(session.role) or ""
        except Exception as e:
            self._log.warn("Stored token unreadable", role=session.role.value, error=str(e))
            return session

        if not access or access == session.tokens.access_token:
            return session
        return session.with_tokens(TokenPair(access_token=access, refresh_token=refresh))

    async def attempt_refresh(self, role: Role) -> bool:
        """
        Demande un refresh au service d'identité.

        Le service persiste lui-même la nouvelle paire. L'échec n'est pas
        fatal ici: l'appelant décide de forcer ou non la déconnexion.

        Returns:
            True si refresh réussi
        """
        try:
            result = await self._identity.refresh_token(role)
        except Exception as e:
            self._log.warn("Token refresh raised", role=role.value, error=str(e))
            return False

        if not result.success:
            self._log.warn("Token refresh rejected", role=role.value, reason=result.message)
            return False

        self._log.info("Token refreshed", role=role.value)
        return True
