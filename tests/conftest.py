"""
Storefront Auth - Pytest Configuration
Fixtures partagées pour tous les tests.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional
from unittest.mock import AsyncMock

import jwt
import pytest

from storefront_auth.auth import (
    AdminProfile,
    AuthController,
    CustomerProfile,
    IIdentityService,
    LoginResult,
    ProfileResult,
    RefreshResult,
    Role,
    TokenPair,
)
from storefront_auth.core import AuthConfig
from storefront_auth.logging import LogConfig, LogLevel, StructuredLogger
from storefront_auth.store import KeyValueSessionStore


TEST_SIGNING_KEY = "storefront-test-signing-key-0123456789abcdef"


def make_token(expires_in: Optional[float], subject: str = "user-1") -> str:
    """
    Crée un JWT HS256 expirant dans expires_in secondes.

    expires_in=None produit un token sans claim exp.
    """
    now = datetime.now(timezone.utc)
    payload = {"sub": subject, "iat": int(now.timestamp())}
    if expires_in is not None:
        payload["exp"] = int((now + timedelta(seconds=expires_in)).timestamp())
    return jwt.encode(payload, TEST_SIGNING_KEY, algorithm="HS256")


def make_pair(expires_in: Optional[float], subject: str = "user-1") -> TokenPair:
    return TokenPair(access_token=make_token(expires_in, subject), refresh_token=f"refresh-{subject}")


@pytest.fixture
def fixtures_path() -> Path:
    """Chemin vers le dossier fixtures."""
    return Path(__file__).parent.parent / "fixtures"


@pytest.fixture
def token_factory() -> Callable[..., str]:
    return make_token


@pytest.fixture
def pair_factory() -> Callable[..., TokenPair]:
    return make_pair


@pytest.fixture
def admin_profile() -> AdminProfile:
    return AdminProfile(
        id="admin-1",
        email="admin@shop.dk",
        name="Admin Hansen",
        role="super_admin",
        profile_picture_url="https://cdn.shop.dk/a.png",
    )


@pytest.fixture
def rich_admin_profile() -> AdminProfile:
    return AdminProfile(
        id="admin-1",
        email="admin@shop.dk",
        name="Admin Hansen",
        role="super_admin",
        profile_picture_url="https://cdn.shop.dk/a-large.png",
        last_login="2026-10-01T08:00:00Z",
    )


@pytest.fixture
def customer_profile() -> CustomerProfile:
    return CustomerProfile(
        id="cust-1",
        email="indkob@firma.dk",
        company_name="Firma ApS",
        contact_person_name="Mette Jensen",
        discount_group="Guld",
        cvr_number="12345678",
    )


@pytest.fixture
def incomplete_customer_profile() -> CustomerProfile:
    return CustomerProfile(id="cust-1", email="indkob@firma.dk", company_name=None, contact_person_name="Mette Jensen")


@pytest.fixture
def logger() -> StructuredLogger:
    return StructuredLogger("storefront-auth-test", config=LogConfig(min_level=LogLevel.DEBUG))


@pytest.fixture
def store() -> KeyValueSessionStore:
    return KeyValueSessionStore()


@pytest.fixture
def config() -> AuthConfig:
    return AuthConfig()


@pytest.fixture
def identity() -> AsyncMock:
    """Service d'identité simulé (tous les appels échouent par défaut)."""
    service = AsyncMock(spec=IIdentityService)
    service.login_admin.return_value = LoginResult(success=False, message="Forkert email eller adgangskode")
    service.login_customer.return_value = LoginResult(success=False, message="Forkert email eller adgangskode")
    service.refresh_token.return_value = RefreshResult(success=False, message="refresh disabled")
    service.get_admin_profile.return_value = ProfileResult(success=False)
    service.get_customer_profile.return_value = ProfileResult(success=False)
    service.logout.return_value = None
    return service


@pytest.fixture
def controller(identity, store, config, logger) -> AuthController:
    return AuthController(identity, store, config=config, logger=logger)


def persist_session(store: KeyValueSessionStore, role: Role, profile, expires_in: Optional[float]) -> TokenPair:
    """Écrit une session persistée (tokens + profil) pour un rôle."""
    pair = make_pair(expires_in, subject=f"{role.value}-1")
    store.set_tokens(pair, role)
    if profile is not None:
        store.set_user(profile, role)
    return pair
