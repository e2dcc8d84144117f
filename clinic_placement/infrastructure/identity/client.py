"""
Caller identity and admin checks.

Two separate questions, answered by two collaborators:
- who is calling? IdentityVerifier turns a bearer token into an Identity
- may they administer clinics? AdminDirectory checks the allow-list

The shipped verifier maps configured tokens to emails, the same way the
service used to accept a list of API keys. A hosted identity provider
plugs in by implementing IdentityVerifier.
"""

import hmac
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

from ...core.errors import UnauthenticatedError
from ..documents.client import DocumentStore

logger = logging.getLogger(__name__)

ADMIN_COLLECTION = "admin"


@dataclass(frozen=True)
class Identity:
    uid: str
    email: str


class IdentityVerifier(Protocol):
    def verify(self, token: str) -> Identity:
        """Resolve a bearer token, raising UnauthenticatedError if invalid."""
        ...


class StaticTokenVerifier:
    """
    Verifies tokens against a fixed token -> email table.

    Tokens are compared in constant time so response timing does not leak
    how much of a guessed token was right.
    """

    def __init__(self, tokens: dict[str, str]) -> None:
        self._tokens = {token: email.strip().lower() for token, email in tokens.items()}

    def verify(self, token: str) -> Identity:
        if not token:
            raise UnauthenticatedError("Missing bearer token")

        for known, email in self._tokens.items():
            if hmac.compare_digest(known.encode(), token.encode()):
                return Identity(uid=email, email=email)

        logger.warning(
            "Invalid bearer token",
            extra={"token_prefix": token[:4]},
        )
        raise UnauthenticatedError("Invalid token")


class AdminDirectory:
    """
    Decides whether an email belongs to an admin.

    An email is an admin when it is on the configured allow-list, when an
    admin document is stored under that email, or when an admin document
    carries it in its email field.
    """

    def __init__(self, store: DocumentStore, allow_emails: Iterable[str] = ()) -> None:
        self._store = store
        self._allow = {email.strip().lower() for email in allow_emails if email.strip()}

    def is_admin(self, email: Optional[str]) -> bool:
        normalized = (email or "").strip().lower()
        if not normalized:
            return False
        if normalized in self._allow:
            return True
        if self._store.get(ADMIN_COLLECTION, normalized) is not None:
            return True
        return bool(self._store.query(ADMIN_COLLECTION, {"email": normalized}))
