"""
Unit tests for token verification, the admin directory and settings parsing.
"""

import pytest

from clinic_placement.config.settings import Settings
from clinic_placement.core.errors import UnauthenticatedError
from clinic_placement.infrastructure.documents.client import MockDocumentStore
from clinic_placement.infrastructure.identity.client import (
    ADMIN_COLLECTION,
    AdminDirectory,
    Identity,
    StaticTokenVerifier,
)


class TestStaticTokenVerifier:

    @pytest.fixture
    def verifier(self):
        return StaticTokenVerifier({"t-1": "Coach@Example.com"})

    def test_known_token(self, verifier):
        assert verifier.verify("t-1") == Identity(uid="coach@example.com", email="coach@example.com")

    def test_unknown_token(self, verifier):
        with pytest.raises(UnauthenticatedError, match="Invalid token"):
            verifier.verify("t-2")

    def test_empty_token(self, verifier):
        with pytest.raises(UnauthenticatedError, match="Missing bearer token"):
            verifier.verify("")


class TestAdminDirectory:

    @pytest.fixture
    def store(self):
        return MockDocumentStore()

    def test_allow_list(self, store):
        directory = AdminDirectory(store, ["Owner@Example.com"])
        assert directory.is_admin("owner@example.com")
        assert directory.is_admin(" OWNER@example.com ")

    def test_admin_document_by_id(self, store):
        store.set(ADMIN_COLLECTION, "coach@example.com", {})
        assert AdminDirectory(store).is_admin("Coach@example.com")

    def test_admin_document_by_email_field(self, store):
        store.add(ADMIN_COLLECTION, {"email": "coach@example.com"})
        assert AdminDirectory(store).is_admin("coach@example.com")

    def test_everyone_else(self, store):
        directory = AdminDirectory(store, ["owner@example.com"])
        assert not directory.is_admin("parent@example.com")
        assert not directory.is_admin("")
        assert not directory.is_admin(None)


class TestSettings:

    def test_parses_token_pairs(self):
        settings = Settings(auth_tokens="a=One@Example.com, b = two@example.com,broken,=x@example.com")
        assert settings.auth_tokens_map == {"a": "one@example.com", "b": "two@example.com"}

    def test_parses_lists(self):
        settings = Settings(admin_allow_emails="A@x.com, ,b@x.com", cors_origins="http://a, http://b")
        assert settings.admin_allow_emails_list == ["a@x.com", "b@x.com"]
        assert settings.cors_origins_list == ["http://a", "http://b"]

    def test_required_fields_depend_on_mock_modes(self):
        mock = Settings(auth_tokens="a=b@c.d", snowflake_mock_mode=True)
        assert mock.validate_required_fields() == []

        real = Settings(auth_tokens="a=b@c.d", snowflake_mock_mode=False, notify_email="x@y.z")
        missing = real.validate_required_fields()
        assert "SNOWFLAKE_ACCOUNT" in missing
        assert "SMTP_SERVER" in missing
