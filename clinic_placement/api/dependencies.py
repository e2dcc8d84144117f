"""
FastAPI dependency injection.

Dependencies provide instances of services, stores, and configuration
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden in tests
- Configuration is centralized
- Connection lifecycle is managed per request

Authorization lives here too: require_admin is the one admin check, and
every admin route gets it through the AdminUser type alias.
"""

import logging
from typing import Annotated, Generator, Optional

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config.settings import Settings, get_settings
from ..core.errors import ForbiddenError, UnauthenticatedError
from ..core.placement.service import ClinicPlacementService, Notifier
from ..infrastructure.documents.client import (
    DocumentStore,
    MockDocumentStore,
    SnowflakeDocumentStore,
)
from ..infrastructure.identity.client import (
    AdminDirectory,
    Identity,
    IdentityVerifier,
    StaticTokenVerifier,
)
from ..infrastructure.notifications.client import MockNotifier, SmtpConfig, SmtpNotifier
from ..infrastructure.repositories import (
    ActivityRepository,
    PlacementRepository,
    SubmissionRepository,
)
from ..infrastructure.snowflake.client import SnowflakeConfig, get_snowflake_connection

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

# Shared mock instances, so data persists across requests in mock mode
_mock_document_store: Optional[MockDocumentStore] = None
_mock_notifier: Optional[MockNotifier] = None


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------

def get_document_store(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[DocumentStore, None, None]:
    """
    Provide the document store for this request.

    A generator because the Snowflake connection has to be closed after the
    request, whatever happened during it. In mock mode one in-memory store
    is shared by all requests.
    """
    global _mock_document_store

    if settings.snowflake_mock_mode:
        if _mock_document_store is None:
            _mock_document_store = MockDocumentStore()
            logger.info("Created shared mock document store")
        yield _mock_document_store
        return

    config = SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        private_key_base64=settings.snowflake_private_key_base64,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )

    with get_snowflake_connection(config) as conn:
        logger.debug("Created SnowflakeDocumentStore for request")
        yield SnowflakeDocumentStore(conn, table=settings.snowflake_documents_table)


def get_notifier(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Optional[Notifier]:
    """Notifier for new submissions, or None when notifications are off."""
    global _mock_notifier

    if not settings.notify_email:
        return None

    if settings.notifications_mock_mode:
        if _mock_notifier is None:
            _mock_notifier = MockNotifier()
            logger.info("Created shared mock notifier")
        return _mock_notifier

    return SmtpNotifier(SmtpConfig(
        server=settings.smtp_server,
        sender_email=settings.sender_email,
        port=settings.smtp_port,
        user=settings.smtp_user,
        password=settings.smtp_password,
    ))


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

def get_placement_service(
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[DocumentStore, Depends(get_document_store)],
    notifier: Annotated[Optional[Notifier], Depends(get_notifier)],
) -> ClinicPlacementService:
    return ClinicPlacementService(
        submissions=SubmissionRepository(store),
        placements=PlacementRepository(store),
        activities=ActivityRepository(store),
        notifier=notifier,
        notify_email=settings.notify_email or None,
        default_season=settings.default_season,
        default_capacity=settings.default_lane_capacity,
        max_recommended_slots=settings.max_recommended_slots,
    )


# ---------------------------------------------------------------------------
# Authentication and authorization
# ---------------------------------------------------------------------------

def get_identity_verifier(
    settings: Annotated[Settings, Depends(get_settings)],
) -> IdentityVerifier:
    return StaticTokenVerifier(settings.auth_tokens_map)


def get_admin_directory(
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[DocumentStore, Depends(get_document_store)],
) -> AdminDirectory:
    return AdminDirectory(store, settings.admin_allow_emails_list)


def verify_identity(
    verifier: Annotated[IdentityVerifier, Depends(get_identity_verifier)],
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> Identity:
    """
    Resolve the caller from the Authorization: Bearer header.

    Raises UnauthenticatedError (401) when the header is missing or the
    token is not recognized.
    """
    if credentials is None or not credentials.credentials:
        logger.warning("Request missing bearer token")
        raise UnauthenticatedError("Missing bearer token")
    return verifier.verify(credentials.credentials)


def require_admin(
    identity: Annotated[Identity, Depends(verify_identity)],
    directory: Annotated[AdminDirectory, Depends(get_admin_directory)],
) -> Identity:
    """
    Admin guard for every admin route.

    Raises ForbiddenError (403) for authenticated callers who are not admins.
    """
    if not directory.is_admin(identity.email):
        logger.warning("Non-admin access attempt", extra={"email": identity.email})
        raise ForbiddenError("Admin access required")
    return identity


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

SettingsDep = Annotated[Settings, Depends(get_settings)]
DocumentStoreDep = Annotated[DocumentStore, Depends(get_document_store)]
PlacementServiceDep = Annotated[ClinicPlacementService, Depends(get_placement_service)]
AdminDirectoryDep = Annotated[AdminDirectory, Depends(get_admin_directory)]
CurrentIdentity = Annotated[Identity, Depends(verify_identity)]
AdminUser = Annotated[Identity, Depends(require_admin)]
