"""
Auth: Auth Controller

Conteneur d'état réactif des deux sessions (admin, client) et de
l'identité principale. Toute mutation passe par init, login, logout,
refresh_user ou apply_validation.

Les écritures ne font que restreindre l'état (remplacement par une
session valide ou effacement): le dernier écrivain gagne par rôle.
"""

from dataclasses import replace
from typing import Callable, List, Optional

from ..core import AuthConfig
from ..logging import StructuredLogger, parse_level
from .interfaces import (
    AdminProfile,
    ControllerState,
    CustomerProfile,
    IIdentityService,
    InitState,
    ISessionStore,
    ITokenCodec,
    LoginResult,
    ProfileResult,
    ReconcileResult,
    Role,
    Session,
    UserProfile,
)
from .periodic_guard import PeriodicGuard
from .session_initializer import SessionInitializer
from .session_validator import SessionValidator
from .token_codec import TokenCodec


class AuthError(Exception):
    """Erreur d'authentification remontée à l'appelant."""

    pass


class LoginRejectedError(AuthError):
    """Le service d'identité a refusé le login (message transmis tel quel)."""

    def __init__(self, message: str, role: Optional[Role] = None):
        self.message = message
        self.role = role
        super().__init__(message)


class UntrustedServerTokenError(AuthError):
    """Le serveur a émis un token déjà expiré à réception."""

    def __init__(self, role: Role):
        self.role = role
        super().__init__("server returned expired token")


StateListener = Callable[[ControllerState], None]


class AuthController:
    """
    Contrôleur des sessions admin et client.

    Lecture: user, admin_user, customer_user, is_loading,
    is_profile_refreshing, is_authenticated, is_admin_authenticated,
    is_customer_authenticated.

    Écriture: init, login, logout, refresh_user.

    Example:
        controller = AuthController(identity, store)
        await controller.init("/admin")
        await controller.login("a@b.dk", "secret", Role.CUSTOMER)
        controller.guard.start()
    """

    def __init__(
        self,
        identity: IIdentityService,
        store: ISessionStore,
        *,
        codec: Optional[ITokenCodec] = None,
        config: Optional[AuthConfig] = None,
        logger: Optional[StructuredLogger] = None,
        validator: Optional[SessionValidator] = None,
        initializer: Optional[SessionInitializer] = None,
        guard: Optional[PeriodicGuard] = None,
    ):
        self._identity = identity
        self._store = store
        self._config = config or AuthConfig()
        if logger is None:
            logger = StructuredLogger("storefront-auth")
            logger.set_min_level(parse_level(self._config.log_level))
        self._logger = logger
        self._log = logger.with_context(component="auth_controller")
        self._codec = codec or TokenCodec()
        self._validator = validator or SessionValidator(store, identity, self._codec, logger)
        self._initializer = initializer or SessionInitializer(
            self._validator, store, identity, self._config, logger
        )
        self._initializer.set_refresh_callback(self._adopt_refreshed_tokens)
        self._guard = guard or PeriodicGuard(
            self._validator,
            self.apply_validation,
            interval_seconds=self._config.guard_interval_seconds,
            logger=logger,
        )
        self._state = ControllerState()
        self._listeners: List[StateListener] = []

    # ══════════════════════════════════════════════════════════════════════
    # LECTURE
    # ══════════════════════════════════════════════════════════════════════

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def guard(self) -> PeriodicGuard:
        return self._guard

    @property
    def initializer(self) -> SessionInitializer:
        return self._initializer

    @property
    def user(self) -> Optional[UserProfile]:
        return self._state.primary

    @property
    def admin_user(self) -> Optional[UserProfile]:
        return self._state.admin.profile

    @property
    def customer_user(self) -> Optional[UserProfile]:
        return self._state.customer.profile

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def is_profile_refreshing(self) -> bool:
        return self._state.is_profile_refreshing

    @property
    def is_admin_authenticated(self) -> bool:
        return self._is_session_valid(self._state.admin)

    @property
    def is_customer_authenticated(self) -> bool:
        return self._is_session_valid(self._state.customer)

    @property
    def is_authenticated(self) -> bool:
        primary_role = self._state.primary_role
        if primary_role is None:
            return False
        return self._is_session_valid(self._state.session(primary_role))

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Abonne un écouteur aux changements d'état.

        Returns:
            Fonction de désabonnement
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ══════════════════════════════════════════════════════════════════════
    # INITIALISATION
    # ══════════════════════════════════════════════════════════════════════

    async def init(self, path: str = "/") -> None:
        """
        Démarrage one-shot: applique le résultat de SessionInitializer.

        Les appels suivants sont des no-op. is_loading passe à False à la
        fin du seul vrai passage, y compris sur annulation.
        """
        if self._initializer.state is not InitState.NOT_STARTED:
            return
        try:
            outcome = await self._initializer.run(path)
            if outcome is not None:
                self._set_state(
                    replace(
                        self._state,
                        admin=outcome.admin,
                        customer=outcome.customer,
                        primary_role=outcome.primary_role,
                    )
                )
        finally:
            self._set_state(replace(self._state, is_loading=False))

    # ══════════════════════════════════════════════════════════════════════
    # LOGIN
    # ══════════════════════════════════════════════════════════════════════

    async def login(self, email: str, password: str, role: Role) -> LoginResult:
        """
        Authentifie un rôle.

        Returns:
            Résultat original du login, quel que soit le sort du profil enrichi

        Raises:
            LoginRejectedError: Refus du service (message inchangé)
            UntrustedServerTokenError: Token émis déjà expiré
        """
        if role is Role.ADMIN:
            result = await self._identity.login_admin(email, password)
        else:
            result = await self._identity.login_customer(email, password)

        if not result.success:
            self._log.warn("Login rejected", role=role.value, reason=result.message)
            raise LoginRejectedError(result.message or "Login failed", role)

        tokens = result.tokens
        if tokens is None or self._codec.is_expired(tokens.access_token):
            self._log.error("Server issued an expired token", role=role.value)
            self._clear_store(role)
            raise UntrustedServerTokenError(role)

        session = Session.open(role, result.user, tokens)
        if result.user is not None:
            self._store.set_user(result.user, role)
        self._set_state(self._state.with_session(session))
        self._log.info("Login succeeded", role=role.value)

        if role is Role.ADMIN:
            await self._enrich_admin_profile(session)
        else:
            await self._enrich_customer_profile(session)

        return result

    async def _enrich_admin_profile(self, session: Session) -> None:
        profile = await self._fetch_profile(Role.ADMIN)
        if not self._is_current(session):
            self._log.info("Discarding admin profile for a replaced session")
            return
        current = self._validator.with_stored_tokens(self._state.admin)
        if profile is not None:
            self._store.set_user(profile, Role.ADMIN)
            current = current.with_profile(profile)
        else:
            self._log.warn("Admin profile fetch failed, keeping login profile")
        self._set_state(replace(self._state.with_session(current), primary_role=Role.ADMIN))

    async def _enrich_customer_profile(self, session: Session) -> None:
        self._set_state(replace(self._state, is_profile_refreshing=True))
        try:
            profile = await self._fetch_profile(Role.CUSTOMER)
            if not self._is_current(session):
                self._log.info("Discarding customer profile for a replaced session")
                return
            current = self._validator.with_stored_tokens(self._state.customer)
            if profile is not None:
                self._store.set_user(profile, Role.CUSTOMER)
                current = current.with_profile(profile)
            else:
                self._log.warn("Customer profile missing or incomplete, keeping login profile")
            self._set_state(replace(self._state.with_session(current), primary_role=Role.CUSTOMER))
        finally:
            self._set_state(replace(self._state, is_profile_refreshing=False))

    # ══════════════════════════════════════════════════════════════════════
    # LOGOUT
    # ══════════════════════════════════════════════════════════════════════

    async def logout(self, role: Optional[Role] = None) -> None:
        """
        Déconnecte un rôle, ou les deux si role=None.

        Après la déconnexion d'un rôle, l'autre devient principal s'il
        détient encore un token valide; sinon il est effacé lui aussi.
        """
        if role is None:
            await self._invalidate_remote(None)
            self._clear_store(None)
            self._set_state(
                replace(
                    self._state,
                    admin=Session.empty(Role.ADMIN),
                    customer=Session.empty(Role.CUSTOMER),
                    primary_role=None,
                )
            )
            self._log.info("Logged out all roles")
            return

        self._set_state(self._state.with_session(Session.empty(role)))
        await self._invalidate_remote(role)
        self._clear_store(role)

        other = self._sync_tokens(role.other)
        if not other.is_present and other.tokens is None:
            primary = None
        elif self._is_session_valid(other):
            primary = role.other
        else:
            self._clear_store(role.other)
            self._set_state(self._state.with_session(Session.empty(role.other)))
            primary = None

        self._set_state(replace(self._state, primary_role=primary))
        self._log.info(
            "Logged out role",
            role=role.value,
            primary=primary.value if primary else None,
        )

    # ══════════════════════════════════════════════════════════════════════
    # REFRESH USER
    # ══════════════════════════════════════════════════════════════════════

    async def refresh_user(self) -> None:
        """
        Revalide l'identité principale et recharge son profil enrichi.

        Ne tente pas de refresh de token: un token expiré efface la session.
        """
        role = self._state.primary_role
        if role is None:
            return

        session = self._sync_tokens(role)
        if not self._is_session_valid(session):
            self._log.info("Primary session expired, clearing", role=role.value)
            self._clear_store(role)
            self._set_state(replace(self._state.with_session(Session.empty(role)), primary_role=None))
            return

        profile = await self._fetch_profile(role)
        if not self._is_current(session):
            return

        current = self._validator.with_stored_tokens(self._state.session(role))
        if profile is not None:
            self._store.set_user(profile, role)
            current = current.with_profile(profile)
        if current is not self._state.session(role):
            self._set_state(self._state.with_session(current))

    # ══════════════════════════════════════════════════════════════════════
    # REVALIDATION PÉRIODIQUE
    # ══════════════════════════════════════════════════════════════════════

    def apply_validation(self, result: ReconcileResult) -> None:
        """
        Efface les sessions en mémoire devenues invalides.

        Seul un rôle valide en mémoire puis déclaré invalide est effacé.
        Un rôle encore valide reprend la paire persistée.
        """
        state = self._state
        cleared: List[Role] = []
        for role in (Role.ADMIN, Role.CUSTOMER):
            session = state.session(role)
            if session.tokens is None:
                continue
            if not result.is_valid(role):
                state = state.with_session(Session.empty(role))
                cleared.append(role)
            else:
                state = state.with_session(self._validator.with_stored_tokens(session))

        if state == self._state:
            return

        if state.primary_role in cleared:
            other = state.primary_role.other
            primary = other if self._is_session_valid(state.session(other)) else None
            state = replace(state, primary_role=primary)

        self._set_state(state)
        for role in cleared:
            self._log.info("Session invalidated by background validation", role=role.value)

    def _adopt_refreshed_tokens(self, requester: Session) -> None:
        """Remplace les tokens en mémoire après un refresh d'arrière-plan."""
        if self._is_current(requester):
            self._sync_tokens(requester.role)

    # ══════════════════════════════════════════════════════════════════════
    # INTERNE
    # ══════════════════════════════════════════════════════════════════════

    def _is_session_valid(self, session: Session) -> bool:
        return (
            session.is_present
            and session.tokens is not None
            and not self._codec.is_expired(session.tokens.access_token)
        )

    def _sync_tokens(self, role: Role) -> Session:
        """Reprend dans l'état la paire persistée du rôle si elle a changé."""
        session = self._state.session(role)
        synced = self._validator.with_stored_tokens(session)
        if synced is not session:
            self._set_state(self._state.with_session(synced))
        return synced

    def _is_current(self, session: Session) -> bool:
        """Vérifie que la session du rôle est toujours celle qui a lancé la requête."""
        current = self._state.session(session.role)
        return current.session_id is not None and current.session_id == session.session_id

    async def _fetch_profile(self, role: Role) -> Optional[UserProfile]:
        """
        Charge le profil enrichi d'un rôle.

        Returns:
            Profil exploitable, ou None (échec, mauvais type, client incomplet)
        """
        try:
            if role is Role.ADMIN:
                result: ProfileResult = await self._identity.get_admin_profile()
            else:
                result = await self._identity.get_customer_profile()
        except Exception as e:
            self._log.warn("Profile fetch raised", role=role.value, error=str(e))
            return None

        if not result.success:
            return None
        profile = result.profile
        if role is Role.ADMIN:
            return profile if isinstance(profile, AdminProfile) else None
        if isinstance(profile, CustomerProfile) and profile.is_complete():
            return profile
        return None

    async def _invalidate_remote(self, role: Optional[Role]) -> None:
        try:
            await self._identity.logout(role)
        except Exception as e:
            self._log.warn("Identity service logout failed", role=role.value if role else None, error=str(e))

    def _clear_store(self, role: Optional[Role]) -> None:
        try:
            self._store.clear_tokens(role)
        except Exception as e:
            self._log.warn("Store clear failed", role=role.value if role else None, error=str(e))

    def _set_state(self, state: ControllerState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                self._log.warn("State listener failed", error=str(e))
