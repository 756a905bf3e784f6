"""
Tests for loading security declarations from the API document.
"""

import pytest

from oasguard.core.models import ApiKeyLocation, SchemeType
from oasguard.core.registry import RegistryError, SchemeRegistry
from oasguard.document import ApiDocument, DocumentError, normalize_template


def _doc(**overrides):
    data = {
        "openapi": "3.0.3",
        "paths": {},
        "components": {
            "securitySchemes": {
                "ApiKeyAuth": {"type": "apiKey", "in": "header", "name": "X-API-Key"},
            }
        },
    }
    data.update(overrides)
    return data


# =============================================================================
# Schemes
# =============================================================================


class TestSchemes:
    def test_loads_all_declared_schemes(self, document):
        assert set(document.schemes.list_schemes()) == {
            "ApiKeyAuth",
            "BearerAuth",
            "BasicAuth",
            "CookieAuth",
            "testKey",
            "OAuth2",
            "OpenID",
        }

    def test_scheme_metadata(self, schemes):
        api_key = schemes.get("ApiKeyAuth")
        assert api_key.type == SchemeType.API_KEY
        assert api_key.location == ApiKeyLocation.HEADER
        assert api_key.parameter_name == "X-API-Key"

        bearer = schemes.get("BearerAuth")
        assert bearer.type == SchemeType.HTTP
        assert bearer.http_scheme == "bearer"

        oauth = schemes.get("OAuth2")
        assert "authorizationCode" in oauth.flows
        assert oauth.carries_scopes

        openid = schemes.get("OpenID")
        assert openid.openid_connect_url.endswith("openid-configuration")

    def test_schemes_are_immutable(self, schemes):
        with pytest.raises(Exception):
            schemes.get("ApiKeyAuth").parameter_name = "Other"

    def test_missing_type_fails_at_load(self):
        data = _doc(components={"securitySchemes": {"Broken": {"in": "header"}}})
        with pytest.raises(DocumentError, match="must have property 'type'"):
            ApiDocument.from_dict(data)

    def test_unknown_type_fails_at_load(self):
        data = _doc(components={"securitySchemes": {"Broken": {"type": "magic"}}})
        with pytest.raises(DocumentError, match="Broken"):
            ApiDocument.from_dict(data)

    def test_api_key_requires_location_and_name(self):
        data = _doc(components={"securitySchemes": {"Key": {"type": "apiKey", "in": "header"}}})
        with pytest.raises(DocumentError, match="requires 'in' and 'name'"):
            ApiDocument.from_dict(data)

    def test_registry_rejects_duplicates(self, schemes):
        registry = SchemeRegistry([schemes.get("ApiKeyAuth")])
        with pytest.raises(RegistryError):
            registry.register(schemes.get("ApiKeyAuth"))

    def test_registry_unknown_lookup(self):
        registry = SchemeRegistry()
        assert registry.find("Nope") is None
        with pytest.raises(RegistryError):
            registry.get("Nope")


# =============================================================================
# Requirements
# =============================================================================


class TestRequirements:
    def test_operation_security(self, document):
        assert document.security_for("GET", "/v1/api_key") == ({"ApiKeyAuth": ()},)

    def test_and_requirement_keeps_declared_order(self, document):
        sets = document.security_for("GET", "/v1/apikey_and_bearer_or_basic")
        assert len(sets) == 2
        assert list(sets[0]) == ["ApiKeyAuth", "BearerAuth"]
        assert list(sets[1]) == ["BasicAuth"]

    def test_anonymous_alternative(self, document):
        sets = document.security_for("GET", "/v1/api_key_or_anonymous")
        assert sets == ({"ApiKeyAuth": ()}, {})

    def test_no_security(self, document):
        assert document.security_for("GET", "/v1/no_security") == ()

    def test_scopes_kept_verbatim(self, document):
        sets = document.security_for("GET", "/v1/pets/{petId}")
        assert sets[0] == {"OAuth2": ("pets:read",)}
        assert sets[1] == {"OAuth2": ("admin", "admin")}

    def test_parameter_names_do_not_matter(self, document):
        assert document.security_for("GET", "/v1/pets/{pet_id}") is not None

    def test_undeclared_operation(self, document):
        assert document.security_for("GET", "/v1/nowhere") is None
        assert document.security_for("POST", "/v1/api_key") is None
        assert not document.has_operation("POST", "/v1/api_key")

    def test_path_without_base_still_matches(self, document):
        assert document.security_for("get", "/api_key") == ({"ApiKeyAuth": ()},)

    def test_root_security_inherited(self):
        data = _doc(
            security=[{"ApiKeyAuth": []}],
            paths={
                "/inherits": {"get": {}},
                "/disabled": {"get": {"security": []}},
            },
        )
        doc = ApiDocument.from_dict(data)
        assert doc.security_for("GET", "/inherits") == ({"ApiKeyAuth": ()},)
        assert doc.security_for("GET", "/disabled") == ()

    def test_malformed_requirement_list(self):
        data = _doc(paths={"/x": {"get": {"security": {"ApiKeyAuth": []}}}})
        with pytest.raises(DocumentError, match="must be a list"):
            ApiDocument.from_dict(data)

    def test_malformed_scopes(self):
        data = _doc(paths={"/x": {"get": {"security": [{"ApiKeyAuth": "read"}]}}})
        with pytest.raises(DocumentError, match="scopes for 'ApiKeyAuth'"):
            ApiDocument.from_dict(data)


# =============================================================================
# Base path
# =============================================================================


class TestBasePath:
    def test_from_servers(self, document):
        assert document.base_path == "/v1"

    def test_override(self):
        doc = ApiDocument.from_dict(_doc(servers=[{"url": "/api"}]), base_path="/other/")
        assert doc.base_path == "/other"

    def test_no_servers(self):
        assert ApiDocument.from_dict(_doc()).base_path == ""

    def test_normalize_template(self):
        assert normalize_template("/pets/{petId}/toys/{toyId}/") == "/pets/{}/toys/{}"
        assert normalize_template("/") == "/"
