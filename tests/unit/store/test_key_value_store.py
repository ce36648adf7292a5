"""
Tests unitaires KeyValueSessionStore

Exigences testées:
    - Clés préfixées par rôle (admin_*, customer_*)
    - Isolation des rôles à l'écriture et à l'effacement
    - Profil persisté en JSON, entrée corrompue lue comme absente
"""

import json

import pytest

from storefront_auth.auth import Address, CustomerProfile, ISessionStore, Role, TokenPair
from storefront_auth.store import KeyValueSessionStore, storage_key


class TestInterface:
    def test_implements_interface(self):
        assert isinstance(KeyValueSessionStore(), ISessionStore)

    def test_uses_given_backend(self):
        backend = {}
        store = KeyValueSessionStore(backend)
        store.set_tokens(TokenPair("a", "r"), Role.ADMIN)
        assert store.backend is backend
        assert backend == {"admin_accessToken": "a", "admin_refreshToken": "r"}

    @pytest.mark.parametrize(
        "role,name,expected",
        [
            (Role.ADMIN, "accessToken", "admin_accessToken"),
            (Role.CUSTOMER, "refreshToken", "customer_refreshToken"),
            (Role.CUSTOMER, "user", "customer_user"),
        ],
    )
    def test_storage_key(self, role, name, expected):
        assert storage_key(role, name) == expected


class TestTokens:
    def test_missing_tokens_are_none(self, store):
        assert store.get_access_token(Role.ADMIN) is None
        assert store.get_refresh_token(Role.CUSTOMER) is None

    def test_empty_refresh_token_reads_as_none(self, store):
        store.set_tokens(TokenPair("access", ""), Role.CUSTOMER)
        assert store.get_access_token(Role.CUSTOMER) == "access"
        assert store.get_refresh_token(Role.CUSTOMER) is None

    def test_roles_are_isolated(self, store):
        store.set_tokens(TokenPair("admin-a", "admin-r"), Role.ADMIN)
        store.set_tokens(TokenPair("cust-a", "cust-r"), Role.CUSTOMER)

        assert store.get_access_token(Role.ADMIN) == "admin-a"
        assert store.get_access_token(Role.CUSTOMER) == "cust-a"

    def test_write_replaces_pair(self, store):
        store.set_tokens(TokenPair("old", "old-r"), Role.ADMIN)
        store.set_tokens(TokenPair("new", "new-r"), Role.ADMIN)
        assert store.get_access_token(Role.ADMIN) == "new"
        assert store.get_refresh_token(Role.ADMIN) == "new-r"


class TestUser:
    def test_round_trip_customer(self, store):
        profile = CustomerProfile(
            id="c1",
            email="indkob@firma.dk",
            company_name="Æblegården A/S",
            contact_person_name="Søren",
            address=Address(street="Vestergade 1", city="Århus", postal_code="8000", country="DK"),
        )
        store.set_user(profile, Role.CUSTOMER)
        assert store.get_user(Role.CUSTOMER) == profile

    def test_stored_as_camel_case_json(self, store, customer_profile):
        store.set_user(customer_profile, Role.CUSTOMER)
        raw = json.loads(store.backend["customer_user"])
        assert raw["companyName"] == "Firma ApS"
        assert raw["userType"] == "customer"

    def test_role_mismatch_rejected(self, store, admin_profile):
        with pytest.raises(ValueError):
            store.set_user(admin_profile, Role.CUSTOMER)

    def test_get_user_without_role_prefers_admin(self, store, admin_profile, customer_profile):
        store.set_user(customer_profile, Role.CUSTOMER)
        assert store.get_user() == customer_profile

        store.set_user(admin_profile, Role.ADMIN)
        assert store.get_user() == admin_profile

    @pytest.mark.parametrize("raw", ["{not json", "[]", '{"email": "no-id@x.dk"}'])
    def test_corrupt_entry_reads_as_none(self, store, raw):
        store.backend["admin_user"] = raw
        assert store.get_user(Role.ADMIN) is None


class TestClear:
    def test_clear_one_role(self, store, admin_profile, customer_profile):
        store.set_tokens(TokenPair("a", "r"), Role.ADMIN)
        store.set_user(admin_profile, Role.ADMIN)
        store.set_tokens(TokenPair("c", "r"), Role.CUSTOMER)
        store.set_user(customer_profile, Role.CUSTOMER)

        store.clear_tokens(Role.ADMIN)

        assert store.get_access_token(Role.ADMIN) is None
        assert store.get_user(Role.ADMIN) is None
        assert store.get_access_token(Role.CUSTOMER) == "c"
        assert store.get_user(Role.CUSTOMER) == customer_profile

    def test_clear_all(self, store, admin_profile):
        store.set_tokens(TokenPair("a", "r"), Role.ADMIN)
        store.set_user(admin_profile, Role.ADMIN)
        store.set_tokens(TokenPair("c", "r"), Role.CUSTOMER)

        store.clear_tokens()

        assert store.backend == {}

    def test_clear_missing_is_noop(self, store):
        store.clear_tokens(Role.CUSTOMER)
        assert store.backend == {}
