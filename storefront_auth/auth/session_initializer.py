"""
Auth: Session Initializer

Séquence de démarrage exécutée une seule fois par durée de vie du client:
réconcilie les sessions persistées avec leur validité, lance les refresh
proactifs et résout l'identité principale depuis le chemin courant.

Ordre garanti: admin, puis client, puis résolution de l'identité principale.
"""

import asyncio
from typing import Callable, Optional, Sequence, Set

from ..core import AuthConfig
from ..logging import StructuredLogger
from .interfaces import (
    CustomerProfile,
    IIdentityService,
    InitOutcome,
    InitState,
    ISessionStore,
    Role,
    Session,
    TokenPair,
)
from .session_validator import SessionValidator


def resolve_primary_role(
    path: str,
    admin_valid: bool,
    customer_valid: bool,
    admin_markers: Sequence[str] = ("/admin",),
    customer_markers: Sequence[str] = ("/customer", "/dashboard"),
) -> Optional[Role]:
    """
    Choisit l'identité principale selon le chemin de navigation.

    - chemin admin → admin (ou None si pas de session admin valide)
    - chemin client → client (ou None)
    - sinon → admin si valide, puis client si valide, sinon None
    """
    path = path or "/"
    if any(marker and marker in path for marker in admin_markers):
        return Role.ADMIN if admin_valid else None
    if any(marker and marker in path for marker in customer_markers):
        return Role.CUSTOMER if customer_valid else None
    if admin_valid:
        return Role.ADMIN
    if customer_valid:
        return Role.CUSTOMER
    return None


class SessionInitializer:
    """
    Démarrage one-shot du contrôleur.

    Un second appel pendant (IN_PROGRESS) ou après (DONE) la séquence
    est un no-op qui retourne None.

    Example:
        initializer = SessionInitializer(validator, store, identity)
        outcome = await initializer.run("/admin/products")
    """

    def __init__(
        self,
        validator: SessionValidator,
        store: ISessionStore,
        identity: IIdentityService,
        config: Optional[AuthConfig] = None,
        logger: Optional[StructuredLogger] = None,
        on_refreshed: Optional[Callable[[Session], None]] = None,
    ):
        """
        Args:
            validator: Politique d'expiration/refresh
            store: Persistance des sessions
            identity: Service d'identité distant
            config: Seuils et marqueurs de chemin
            logger: Logger structuré partagé
            on_refreshed: Rappel après un refresh d'arrière-plan réussi,
                reçoit la session qui l'a demandé
        """
        self._validator = validator
        self._store = store
        self._identity = identity
        self._config = config or AuthConfig()
        self._log = (logger or StructuredLogger("storefront-auth")).with_context(component="session_initializer")
        self._on_refreshed = on_refreshed
        self._state = InitState.NOT_STARTED
        self._background: Set[asyncio.Task] = set()

    @property
    def state(self) -> InitState:
        return self._state

    def set_refresh_callback(self, callback: Optional[Callable[[Session], None]]) -> None:
        self._on_refreshed = callback

    async def run(self, path: str = "/") -> Optional[InitOutcome]:
        """
        Exécute la séquence de démarrage.

        Returns:
            InitOutcome à appliquer, ou None si déjà lancée
        """
        if self._state is not InitState.NOT_STARTED:
            self._log.debug("Initialization already triggered, ignoring", state=self._state.value)
            return None

        self._state = InitState.IN_PROGRESS
        try:
            return await self._initialize(path)
        except Exception as e:
            # Fail closed: aucune session ne survit à une erreur inattendue
            self._log.error("Initialization failed, clearing all sessions", error=str(e))
            try:
                self._store.clear_tokens(None)
            except Exception as clear_error:
                self._log.error("Failed to clear store after init failure", error=str(clear_error))
            return InitOutcome(
                admin=Session.empty(Role.ADMIN),
                customer=Session.empty(Role.CUSTOMER),
                primary_role=None,
                error=str(e),
            )
        finally:
            self._state = InitState.DONE

    async def _initialize(self, path: str) -> InitOutcome:
        admin = self._reconcile(Role.ADMIN)
        customer = self._reconcile(Role.CUSTOMER)

        admin_valid = admin.tokens is not None
        customer_valid = customer.tokens is not None

        # Le profil client n'est pas relu si une session admin est active:
        # l'endpoint profil résoudrait la requête avec le mauvais rôle.
        if customer_valid and not admin_valid:
            customer = await self._refetch_customer_profile(customer)

        # Un refresh d'arrière-plan a pu aboutir pendant la relecture
        admin = self._validator.with_stored_tokens(admin)
        customer = self._validator.with_stored_tokens(customer)

        primary = resolve_primary_role(
            path,
            admin_valid=admin_valid and admin.is_present,
            customer_valid=customer_valid and customer.is_present,
            admin_markers=self._config.admin_path_markers,
            customer_markers=self._config.customer_path_markers,
        )

        self._log.info(
            "Initialization complete",
            path=path,
            admin_valid=admin_valid,
            customer_valid=customer_valid,
            primary=primary.value if primary else None,
        )
        return InitOutcome(admin=admin, customer=customer, primary_role=primary)

    def _reconcile(self, role: Role) -> Session:
        """Charge la session persistée d'un rôle, effacée si expirée."""
        if not self._validator.reconcile_role(role):
            return Session.empty(role)

        access = self._store.get_access_token(role)
        refresh = self._store.get_refresh_token(role) or ""
        profile = self._store.get_user(role)
        session = Session.open(role, profile, TokenPair(access_token=access, refresh_token=refresh))

        if self._validator.codec.expires_within(access, self._config.near_expiry_threshold_seconds):
            self._log.info("Token near expiry, refreshing in background", role=role.value)
            self._spawn_refresh(session)

        return session

    def _spawn_refresh(self, session: Session) -> None:
        task = asyncio.get_running_loop().create_task(self._background_refresh(session))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _background_refresh(self, session: Session) -> None:
        refreshed = await self._validator.attempt_refresh(session.role)
        if refreshed and self._on_refreshed is not None:
            try:
                self._on_refreshed(session)
            except Exception as e:
                self._log.warn("Refresh callback failed", role=session.role.value, error=str(e))

    async def _refetch_customer_profile(self, session: Session) -> Session:
        try:
            result = await self._identity.get_customer_profile()
        except Exception as e:
            self._log.warn("Customer profile refetch failed, keeping cached profile", error=str(e))
            return session

        profile = result.profile if result.success else None
        if not isinstance(profile, CustomerProfile) or not profile.is_complete():
            self._log.warn("Customer profile incomplete, keeping cached profile")
            return session

        self._store.set_user(profile, Role.CUSTOMER)
        return session.with_profile(profile)

    async def wait_background(self) -> None:
        """Attend les refresh d'arrière-plan en cours (arrêt propre, tests)."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
