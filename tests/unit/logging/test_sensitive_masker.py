"""
Tests unitaires Logging - Sensitive Masker

Mots de passe et tokens ne doivent jamais apparaître en clair dans les logs.
"""

import pytest

from storefront_auth.logging import ISensitiveMasker, SensitiveMasker


class TestMasking:
    """Tests masquage par clé."""

    @pytest.mark.parametrize(
        "key",
        ["password", "accessToken", "refreshToken", "client_secret", "Authorization", "api_key", "session_cookie"],
    )
    def test_sensitive_keys_masked(self, key) -> None:
        result = SensitiveMasker().mask({key: "value", "role": "admin"})

        assert result[key] == "***MASKED***"
        assert result["role"] == "admin"

    def test_non_sensitive_untouched(self) -> None:
        data = {"email": "a@b.dk", "role": "customer", "path": "/dashboard"}
        assert SensitiveMasker().mask(data) == data

    def test_original_not_modified(self) -> None:
        data = {"password": "hemmelig"}
        SensitiveMasker().mask(data)
        assert data == {"password": "hemmelig"}

    def test_nested_dict_masked(self) -> None:
        data = {"response": {"tokens": {"accessToken": "eyJ..."}, "message": "OK"}}
        result = SensitiveMasker().mask(data)

        assert result["response"]["tokens"] == "***MASKED***"
        assert result["response"]["message"] == "OK"

    def test_list_of_dicts_masked(self) -> None:
        data = {"sessions": [{"role": "admin", "access_token": "a"}, [{"jwt": "b"}], "plain"]}
        result = SensitiveMasker().mask(data)

        assert result["sessions"][0] == {"role": "admin", "access_token": "***MASKED***"}
        assert result["sessions"][1] == [{"jwt": "***MASKED***"}]
        assert result["sessions"][2] == "plain"

    def test_non_dict_returned_as_is(self) -> None:
        assert SensitiveMasker().mask("plain") == "plain"


class TestPatterns:
    """Tests gestion des patterns."""

    def test_implements_interface(self) -> None:
        assert isinstance(SensitiveMasker(), ISensitiveMasker)

    def test_is_sensitive_key_case_insensitive(self) -> None:
        masker = SensitiveMasker()
        assert masker.is_sensitive_key("PASSWORD")
        assert masker.is_sensitive_key("X-Bearer-Header")
        assert not masker.is_sensitive_key("email")
        assert not masker.is_sensitive_key("")

    def test_additional_patterns(self) -> None:
        masker = SensitiveMasker(additional_patterns=["CVR", "", "cvr"])
        assert masker.is_sensitive_key("CvrNumber")
        assert masker.mask({"cvrNumber": "12345678"})["cvrNumber"] == "***MASKED***"
