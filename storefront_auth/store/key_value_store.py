"""
Store: Key-Value Session Store

Persistance des sessions sur un mapping clé-valeur (localStorage, fichier,
cache...), avec les clés préfixées par rôle:

    admin_accessToken, admin_refreshToken, admin_user
    customer_accessToken, customer_refreshToken, customer_user

Chaque écriture remplace la valeur entière d'une clé.
"""

import json
from typing import MutableMapping, Optional

from ..auth.interfaces import ISessionStore, Role, TokenPair, UserProfile, profile_from_dict


ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"
USER_KEY = "user"


def storage_key(role: Role, name: str) -> str:
    return f"{role.value}_{name}"


class KeyValueSessionStore(ISessionStore):
    """
    Store de sessions par rôle.

    Example:
        store = KeyValueSessionStore()
        store.set_tokens(TokenPair("access", "refresh"), Role.ADMIN)
        store.get_access_token(Role.ADMIN)
    """

    def __init__(self, backend: Optional[MutableMapping[str, str]] = None):
        """
        Args:
            backend: Mapping sous-jacent (dict en mémoire par défaut)
        """
        self._backend: MutableMapping[str, str] = backend if backend is not None else {}

    @property
    def backend(self) -> MutableMapping[str, str]:
        return self._backend

    def get_access_token(self, role: Role) -> Optional[str]:
        return self._backend.get(storage_key(role, ACCESS_TOKEN_KEY)) or None

    def get_refresh_token(self, role: Role) -> Optional[str]:
        return self._backend.get(storage_key(role, REFRESH_TOKEN_KEY)) or None

    def set_tokens(self, tokens: TokenPair, role: Role) -> None:
        self._backend[storage_key(role, ACCESS_TOKEN_KEY)] = tokens.access_token
        self._backend[storage_key(role, REFRESH_TOKEN_KEY)] = tokens.refresh_token

    def get_user(self, role: Optional[Role] = None) -> Optional[UserProfile]:
        """
        Lit le profil persisté.

        Sans rôle: profil admin s'il existe, sinon profil client.
        Une entrée corrompue se lit comme absente.
        """
        if role is None:
            return self.get_user(Role.ADMIN) or self.get_user(Role.CUSTOMER)

        raw = self._backend.get(storage_key(role, USER_KEY))
        if not raw:
            return None
        try:
            return profile_from_dict(json.loads(raw), role)
        except ValueError:
            return None

    def set_user(self, profile: UserProfile, role: Role) -> None:
        if profile.user_type is not role:
            raise ValueError(f"{profile.user_type.value} profile cannot be stored as {role.value}")
        self._backend[storage_key(role, USER_KEY)] = json.dumps(profile.to_dict(), ensure_ascii=False)

    def clear_tokens(self, role: Optional[Role] = None) -> None:
        """Efface tokens + profil du rôle (les deux rôles si None)."""
        roles = [role] if role is not None else [Role.ADMIN, Role.CUSTOMER]
        for target in roles:
            for name in (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY):
                self._backend.pop(storage_key(target, name), None)
