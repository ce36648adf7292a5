"""
Auth: Interfaces

Définit le modèle de session (deux rôles indépendants) et les contrats
des collaborateurs consommés par le contrôleur d'authentification.
Toute implémentation DOIT respecter ces interfaces.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Union


# ══════════════════════════════════════════════════════════════════════════════
# TYPES
# ══════════════════════════════════════════════════════════════════════════════


class Role(Enum):
    """Les deux identités indépendantes d'un même client."""

    ADMIN = "admin"
    CUSTOMER = "customer"

    @property
    def other(self) -> "Role":
        """Retourne le rôle opposé."""
        return Role.CUSTOMER if self is Role.ADMIN else Role.ADMIN


class InitState(Enum):
    """États du démarrage one-shot."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    DONE = "done"


@dataclass(frozen=True)
class TokenPair:
    """
    Paire de tokens d'un rôle.

    Remplacée en bloc au refresh, jamais modifiée sur place.
    """

    access_token: str
    refresh_token: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenPair":
        """Construit depuis le format API {accessToken, refreshToken}."""
        access = data.get("accessToken")
        if not isinstance(access, str) or not access:
            raise ValueError("accessToken manquant")
        refresh = data.get("refreshToken") or ""
        return cls(access_token=access, refresh_token=str(refresh))

    def to_dict(self) -> Dict[str, str]:
        return {"accessToken": self.access_token, "refreshToken": self.refresh_token}


@dataclass(frozen=True)
class Address:
    """Adresse de facturation client."""

    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "street": self.street,
            "city": self.city,
            "postalCode": self.postal_code,
            "country": self.country,
        }


@dataclass(frozen=True)
class AdminProfile:
    """
    Profil administrateur.

    Attributes:
        id: Identifiant unique
        email: Email de connexion
        name: Nom affiché
        role: Sous-rôle admin (ex: "super_admin")
        profile_picture_url: URL avatar
    """

    id: str
    email: str
    name: Optional[str] = None
    role: Optional[str] = None
    profile_picture_url: Optional[str] = None
    is_active: Optional[bool] = None
    last_login: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def user_type(self) -> Role:
        return Role.ADMIN

    def to_dict(self) -> Dict[str, Any]:
        """Convertit au format API (camelCase)."""
        return {
            "id": self.id,
            "email": self.email,
            "userType": Role.ADMIN.value,
            "name": self.name,
            "role": self.role,
            "profilePictureUrl": self.profile_picture_url,
            "isActive": self.is_active,
            "lastLogin": self.last_login,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True)
class CustomerProfile:
    """
    Profil client B2B.

    Un profil sans nom de contact, email ou nom de société est incomplet
    et ne remplace jamais un profil complet déjà connu.
    """

    id: str
    email: str
    company_name: Optional[str] = None
    contact_person_name: Optional[str] = None
    discount_group: Optional[str] = None
    cvr_number: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[Address] = None
    is_active: Optional[bool] = None
    last_login: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def user_type(self) -> Role:
        return Role.CUSTOMER

    def is_complete(self) -> bool:
        """Vérifie la présence des champs d'identité obligatoires."""
        return bool(
            (self.contact_person_name or "").strip()
            and (self.email or "").strip()
            and (self.company_name or "").strip()
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convertit au format API (camelCase)."""
        return {
            "id": self.id,
            "email": self.email,
            "userType": Role.CUSTOMER.value,
            "companyName": self.company_name,
            "contactPersonName": self.contact_person_name,
            "discountGroup": self.discount_group,
            "cvrNumber": self.cvr_number,
            "phone": self.phone,
            "address": self.address.to_dict() if self.address else None,
            "isActive": self.is_active,
            "lastLogin": self.last_login,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


# Variant étiqueté: le type Python porte le rôle
UserProfile = Union[AdminProfile, CustomerProfile]


def profile_from_dict(data: Dict[str, Any], role: Optional[Role] = None) -> UserProfile:
    """
    Construit un profil depuis le format API.

    Args:
        data: Enregistrement JSON (camelCase)
        role: Rôle attendu. Si None, le tag userType décide.

    Returns:
        AdminProfile ou CustomerProfile

    Raises:
        ValueError: Enregistrement inexploitable
    """
    if not isinstance(data, dict):
        raise ValueError("profile must be a mapping")

    if role is None:
        try:
            role = Role(data.get("userType"))
        except ValueError:
            raise ValueError(f"unknown userType: {data.get('userType')!r}")

    profile_id = data.get("id")
    if profile_id is None:
        raise ValueError("profile id missing")

    if role is Role.ADMIN:
        return AdminProfile(
            id=str(profile_id),
            email=data.get("email") or "",
            name=data.get("name"),
            role=data.get("role"),
            profile_picture_url=data.get("profilePictureUrl"),
            is_active=data.get("isActive"),
            last_login=data.get("lastLogin"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )

    raw_address = data.get("address")
    address = None
    if isinstance(raw_address, dict):
        address = Address(
            street=raw_address.get("street"),
            city=raw_address.get("city"),
            postal_code=raw_address.get("postalCode"),
            country=raw_address.get("country"),
        )

    return CustomerProfile(
        id=str(profile_id),
        email=data.get("email") or "",
        company_name=data.get("companyName"),
        contact_person_name=data.get("contactPersonName"),
        discount_group=data.get("discountGroup"),
        cvr_number=data.get("cvrNumber"),
        phone=data.get("phone"),
        address=address,
        is_active=data.get("isActive"),
        last_login=data.get("lastLogin"),
        created_at=data.get("createdAt"),
        updated_at=data.get("updatedAt"),
    )


@dataclass(frozen=True)
class Session:
    """
    Session d'un rôle: profil en cache + paire de tokens.

    Attributes:
        role: Rôle propriétaire
        profile: Profil en cache (None = session absente)
        tokens: Paire de tokens courante
        session_id: Identité de la session, conservée lors des
            remplacements de tokens ou de profil
    """

    role: Role
    profile: Optional[UserProfile] = None
    tokens: Optional[TokenPair] = None
    session_id: Optional[str] = None

    @classmethod
    def empty(cls, role: Role) -> "Session":
        return cls(role=role)

    @classmethod
    def open(cls, role: Role, profile: Optional[UserProfile], tokens: Optional[TokenPair]) -> "Session":
        """Crée une nouvelle session avec une identité fraîche."""
        return cls(role=role, profile=profile, tokens=tokens, session_id=str(uuid.uuid4()))

    @property
    def is_present(self) -> bool:
        return self.profile is not None

    def with_tokens(self, tokens: TokenPair) -> "Session":
        return replace(self, tokens=tokens)

    def with_profile(self, profile: UserProfile) -> "Session":
        return replace(self, profile=profile)


@dataclass(frozen=True)
class ControllerState:
    """
    État publié par le contrôleur.

    primary_role est un pointeur de lecture: `primary` retourne toujours
    admin.profile, customer.profile ou None.
    """

    admin: Session = field(default_factory=lambda: Session.empty(Role.ADMIN))
    customer: Session = field(default_factory=lambda: Session.empty(Role.CUSTOMER))
    primary_role: Optional[Role] = None
    is_loading: bool = True
    is_profile_refreshing: bool = False

    @property
    def primary(self) -> Optional[UserProfile]:
        if self.primary_role is None:
            return None
        return self.session(self.primary_role).profile

    def session(self, role: Role) -> Session:
        return self.admin if role is Role.ADMIN else self.customer

    def with_session(self, session: Session) -> "ControllerState":
        if session.role is Role.ADMIN:
            return replace(self, admin=session)
        return replace(self, customer=session)


@dataclass(frozen=True)
class ReconcileResult:
    """Validité des tokens persistés, par rôle."""

    admin_valid: bool
    customer_valid: bool

    def is_valid(self, role: Role) -> bool:
        return self.admin_valid if role is Role.ADMIN else self.customer_valid


@dataclass(frozen=True)
class InitOutcome:
    """Résultat du démarrage, appliqué en bloc par le contrôleur."""

    admin: Session
    customer: Session
    primary_role: Optional[Role]
    error: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════════
# RÉSULTATS SERVICE IDENTITÉ
# ══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class LoginResult:
    """Réponse d'un login (format {success, user, tokens, message})."""

    success: bool
    user: Optional[UserProfile] = None
    tokens: Optional[TokenPair] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class RefreshResult:
    success: bool
    message: Optional[str] = None


@dataclass(frozen=True)
class ProfileResult:
    success: bool
    profile: Optional[UserProfile] = None
    message: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════════
# INTERFACES
# ══════════════════════════════════════════════════════════════════════════════


class ITokenCodec(ABC):
    """
    Lecture de l'expiration d'un bearer token.

    La signature n'est jamais vérifiée côté client: seul le serveur
    fait autorité sur la validité réelle.
    """

    DEFAULT_NEAR_EXPIRY_SECONDS: int = 300

    @abstractmethod
    def is_expired(self, token: Optional[str]) -> bool:
        """
        Vérifie si token expiré.

        Returns:
            True si expiré, illisible ou sans claim exp
        """
        pass

    @abstractmethod
    def expires_within(self, token: Optional[str], threshold_seconds: int = DEFAULT_NEAR_EXPIRY_SECONDS) -> bool:
        """
        Vérifie si le token expire dans le délai donné.

        Returns:
            True si exp <= maintenant + threshold, ou token illisible
        """
        pass


class ISessionStore(ABC):
    """Persistance clé-valeur des sessions, par rôle."""

    @abstractmethod
    def get_access_token(self, role: Role) -> Optional[str]:
        pass

    @abstractmethod
    def get_refresh_token(self, role: Role) -> Optional[str]:
        pass

    @abstractmethod
    def set_tokens(self, tokens: TokenPair, role: Role) -> None:
        pass

    @abstractmethod
    def get_user(self, role: Optional[Role] = None) -> Optional[UserProfile]:
        """Profil persisté du rôle (admin en priorité si role=None)."""
        pass

    @abstractmethod
    def set_user(self, profile: UserProfile, role: Role) -> None:
        pass

    @abstractmethod
    def clear_tokens(self, role: Optional[Role] = None) -> None:
        """Efface tokens + profil du rôle (les deux si role=None)."""
        pass


class IIdentityService(ABC):
    """Opérations distantes du service d'identité."""

    @abstractmethod
    async def login_customer(self, email: str, password: str) -> LoginResult:
        pass

    @abstractmethod
    async def login_admin(self, email: str, password: str) -> LoginResult:
        pass

    @abstractmethod
    async def refresh_token(self, role: Optional[Role] = None) -> RefreshResult:
        """
        Renouvelle la paire de tokens.

        Effet de bord: la nouvelle paire est persistée par le service.
        """
        pass

    @abstractmethod
    async def get_admin_profile(self) -> ProfileResult:
        pass

    @abstractmethod
    async def get_customer_profile(self) -> ProfileResult:
        pass

    @abstractmethod
    async def logout(self, role: Optional[Role] = None) -> None:
        pass


class ISessionValidator(ABC):
    """
    Politique d'expiration et de refresh.

    Ne lève jamais: tout échec d'E/S devient False / invalide.
    """

    @abstractmethod
    def reconcile_stored_tokens(self) -> ReconcileResult:
        pass

    @abstractmethod
    def with_stored_tokens(self, session: Session) -> Session:
        """Session portant la paire persistée du rôle si elle a été renouvelée."""
        pass

    @abstractmethod
    async def attempt_refresh(self, role: Role) -> bool:
        pass
