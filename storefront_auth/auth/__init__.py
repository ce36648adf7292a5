"""
Auth: contrôleur de sessions doubles (admin / client)

Composants:
- TokenCodec: lecture de l'expiration JWT (fail-safe)
- SessionValidator: réconciliation des tokens persistés, refresh
- SessionInitializer: démarrage one-shot, résolution de l'identité principale
- PeriodicGuard: revalidation sur timer et retour de focus
- AuthController: état publié et opérations login/logout/refresh_user
"""

from .interfaces import (
    # Enums
    Role,
    InitState,
    # Data classes
    TokenPair,
    Address,
    AdminProfile,
    CustomerProfile,
    UserProfile,
    Session,
    ControllerState,
    ReconcileResult,
    InitOutcome,
    LoginResult,
    RefreshResult,
    ProfileResult,
    profile_from_dict,
    # Interfaces
    ITokenCodec,
    ISessionStore,
    IIdentityService,
    ISessionValidator,
)
from .token_codec import TokenCodec
from .session_validator import SessionValidator
from .session_initializer import SessionInitializer, resolve_primary_role
from .periodic_guard import PeriodicGuard
from .auth_controller import (
    AuthController,
    AuthError,
    LoginRejectedError,
    UntrustedServerTokenError,
)

__all__ = [
    # Enums
    "Role",
    "InitState",
    # Data classes
    "TokenPair",
    "Address",
    "AdminProfile",
    "CustomerProfile",
    "UserProfile",
    "Session",
    "ControllerState",
    "ReconcileResult",
    "InitOutcome",
    "LoginResult",
    "RefreshResult",
    "ProfileResult",
    "profile_from_dict",
    # Interfaces
    "ITokenCodec",
    "ISessionStore",
    "IIdentityService",
    "ISessionValidator",
    # Implementations
    "TokenCodec",
    "SessionValidator",
    "SessionInitializer",
    "resolve_primary_role",
    "PeriodicGuard",
    "AuthController",
    # Exceptions
    "AuthError",
    "LoginRejectedError",
    "UntrustedServerTokenError",
]
