"""
Identity: HTTP Identity Service

Client du service d'identité de la boutique (API REST JSON).

Comportement:
    - Login réussi → paire de tokens et profil persistés pour le rôle
    - Requête authentifiée en 403 → un refresh du rôle puis un seul rejeu
    - Refresh échoué → le rôle est effacé du store
    - Erreurs transport / JSON → résultat en échec, jamais d'exception
"""

from typing import Any, Dict, Optional

import httpx

from ..auth.interfaces import (
    IIdentityService,
    ISessionStore,
    LoginResult,
    ProfileResult,
    RefreshResult,
    Role,
    TokenPair,
    profile_from_dict,
)
from ..core import AuthConfig
from ..logging import StructuredLogger


CUSTOMER_LOGIN_PATH = "/api/auth/customer/login"
ADMIN_LOGIN_PATH = "/api/auth/admin/super"
REFRESH_PATH = "/api/auth/refresh"
ADMIN_PROFILE_PATH = "/api/auth/admin/profile"
CUSTOMER_PROFILE_PATH = "/api/auth/customer/profile"


class HttpIdentityService(IIdentityService):
    """
    Service d'identité sur HTTP.

    Example:
        async with httpx.AsyncClient(base_url=config.api_base_url) as client:
            identity = HttpIdentityService(store, client=client)
            result = await identity.login_admin("admin@shop.dk", "secret")
    """

    def __init__(
        self,
        store: ISessionStore,
        config: Optional[AuthConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        """
        Args:
            store: Persistance des sessions (écrite au login et au refresh)
            config: URL de base et timeout
            client: Client httpx (créé à la demande si None)
            logger: Logger structuré partagé
        """
        self._store = store
        self._config = config or AuthConfig()
        self._client = client
        self._owns_client = client is None
        self._log = (logger or StructuredLogger("storefront-auth")).with_context(component="identity_service")

    def _get_client(self) -> httpx.AsyncClient:
        """Récupère ou crée le client HTTP (lazy loading)."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._config.api_base_url.rstrip("/"),
                timeout=self._config.request_timeout_seconds,
            )
        return self._client

    async def aclose(self) -> None:
        """Ferme le client HTTP s'il a été créé ici."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    # ══════════════════════════════════════════════════════════════════════
    # LOGIN / LOGOUT
    # ══════════════════════════════════════════════════════════════════════

    async def login_customer(self, email: str, password: str) -> LoginResult:
        return await self._login(CUSTOMER_LOGIN_PATH, email, password, Role.CUSTOMER)

    async def login_admin(self, email: str, password: str) -> LoginResult:
        return await self._login(ADMIN_LOGIN_PATH, email, password, Role.ADMIN)

    async def _login(self, path: str, email: str, password: str, role: Role) -> LoginResult:
        try:
            response = await self._get_client().post(path, json={"email": email, "password": password})
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            self._log.warn("Login request failed", role=role.value, error=str(e))
            return LoginResult(success=False, message=str(e) or "Login request failed")

        if not isinstance(data, dict) or not data.get("success"):
            message = data.get("message") if isinstance(data, dict) else None
            return LoginResult(success=False, message=message or "Login failed")

        try:
            tokens = TokenPair.from_dict(data.get("tokens") or {})
            user = profile_from_dict(data.get("user") or {}, role)
        except ValueError as e:
            self._log.warn("Malformed login response", role=role.value, error=str(e))
            return LoginResult(success=False, message=f"Malformed login response: {e}")

        self._store.set_tokens(tokens, role)
        self._store.set_user(user, role)
        return LoginResult(success=True, user=user, tokens=tokens, message=data.get("message"))

    async def logout(self, role: Optional[Role] = None) -> None:
        """Pas d'appel serveur: la session locale est effacée."""
        self._store.clear_tokens(role)

    # ══════════════════════════════════════════════════════════════════════
    # REFRESH
    # ══════════════════════════════════════════════════════════════════════

    async def refresh_token(self, role: Optional[Role] = None) -> RefreshResult:
        """
        Renouvelle la paire d'un rôle (rôle actif si None).

        La nouvelle paire est persistée; un échec efface le rôle.
        """
        target = role or self._ambient_role()
        if target is None:
            return RefreshResult(success=False, message="No refresh token")

        refresh_token = self._store.get_refresh_token(target)
        if not refresh_token:
            return RefreshResult(success=False, message="No refresh token")

        try:
            response = await self._get_client().post(REFRESH_PATH, json={"refreshToken": refresh_token})
            if response.is_success:
                tokens = TokenPair.from_dict(response.json().get("tokens") or {})
                self._store.set_tokens(tokens, target)
                return RefreshResult(success=True)
            message = f"Refresh rejected with status {response.status_code}"
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            message = f"Refresh failed: {e}"

        self._log.warn("Token refresh failed, clearing role", role=target.value, reason=message)
        self._store.clear_tokens(target)
        return RefreshResult(success=False, message=message)

    def _ambient_role(self) -> Optional[Role]:
        """Rôle dont le token est utilisé par défaut (admin en priorité)."""
        for role in (Role.ADMIN, Role.CUSTOMER):
            if self._store.get_access_token(role):
                return role
        return None

    # ══════════════════════════════════════════════════════════════════════
    # PROFILS
    # ══════════════════════════════════════════════════════════════════════

    async def get_admin_profile(self) -> ProfileResult:
        return await self._get_profile(ADMIN_PROFILE_PATH, "admin", Role.ADMIN)

    async def get_customer_profile(self) -> ProfileResult:
        return await self._get_profile(CUSTOMER_PROFILE_PATH, "customer", Role.CUSTOMER)

    async def _get_profile(self, path: str, field_name: str, role: Role) -> ProfileResult:
        try:
            response = await self._authorized_request("GET", path, role)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            self._log.warn("Profile request failed", role=role.value, error=str(e))
            return ProfileResult(success=False, message=str(e) or "Profile request failed")

        if not isinstance(data, dict) or not data.get("success"):
            message = data.get("message") if isinstance(data, dict) else None
            return ProfileResult(success=False, message=message or f"HTTP {response.status_code}")

        try:
            profile = profile_from_dict(data.get(field_name) or {}, role)
        except ValueError as e:
            return ProfileResult(success=False, message=f"Malformed profile: {e}")
        return ProfileResult(success=True, profile=profile)

    # ══════════════════════════════════════════════════════════════════════
    # INTERNE
    # ══════════════════════════════════════════════════════════════════════

    async def _authorized_request(
        self, method: str, path: str, role: Role, payload: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        """
        Requête avec le bearer token du rôle.

        Un 403 déclenche un refresh puis un seul rejeu.
        """
        access_token = self._store.get_access_token(role)
        response = await self._send(method, path, access_token, payload)

        if response.status_code == 403 and access_token:
            self._log.info("Access token rejected, attempting refresh", role=role.value)
            refreshed = await self.refresh_token(role)
            if refreshed.success:
                response = await self._send(method, path, self._store.get_access_token(role), payload)

        return response

    async def _send(
        self, method: str, path: str, access_token: Optional[str], payload: Optional[Dict[str, Any]]
    ) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return await self._get_client().request(method, path, headers=headers, json=payload)
