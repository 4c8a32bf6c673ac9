"""
Firebase handle for the document store and the external identity provider.

The Firebase app is built once, on first use, from FIREBASE_CREDENTIALS_PATH and
shared read-only afterwards. Domain code never touches firebase_admin globals:
it receives a Firestore client or an ExternalIdentityProvider through FastAPI
dependencies.
"""
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials, firestore
from firebase_admin.exceptions import DeadlineExceededError, FirebaseError, UnavailableError, UnknownError

from ..config import settings
from ..auth.exceptions import IdentityProviderUnavailableException, InvalidTokenException

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "healthvault"

@lru_cache()
def get_firebase_app() -> Optional[firebase_admin.App]:
    """
    Initialize the named Firebase app.

    Returns:
        The app, or None when no service account is configured (hybrid auth
        and the credential registry are then unavailable).
    """
    if not settings.firebase_credentials_path:
        logger.warning("FIREBASE_CREDENTIALS_PATH not set. Credential registry and hybrid auth disabled.")
        return None
    options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
    try:
        cred = credentials.Certificate(settings.firebase_credentials_path)
        app = firebase_admin.initialize_app(cred, options=options, name=FIREBASE_APP_NAME)
    except (IOError, ValueError) as e:
        logger.error(f"Firebase initialization failed: {str(e)}")
        return None
    logger.info("Firebase app initialized")
    return app

@lru_cache()
def get_firestore_client():
    """Shared Firestore client, or None when Firebase is not configured."""
    app = get_firebase_app()
    if app is None:
        return None
    return firestore.client(app=app)


@dataclass(frozen=True)
class ExternalPrincipal:
    """The identity asserted by a verified external ID token."""
    uid: str
    email: Optional[str]
    email_verified: bool


class ExternalIdentityProvider:
    """
    Verifies ID tokens issued by the external identity provider.
    """

    def __init__(self, app: firebase_admin.App):
        self.app = app

    def verify_id_token(self, id_token: str) -> ExternalPrincipal:
        """
        Verify an ID token and return its principal.

        Raises:
            InvalidTokenException: If the token is malformed, expired, revoked or forged
            IdentityProviderUnavailableException: If the signing keys could not be fetched
        """
        try:
            claims: Dict[str, Any] = firebase_auth.verify_id_token(id_token, app=self.app)
        except (firebase_auth.CertificateFetchError, UnknownError, UnavailableError, DeadlineExceededError) as e:
            logger.error(f"External identity provider unreachable: {type(e).__name__}")
            raise IdentityProviderUnavailableException("External identity provider unreachable")
        except (ValueError, FirebaseError) as e:
            logger.warning(f"External token rejected: {type(e).__name__}")
            raise InvalidTokenException()
        return ExternalPrincipal(
            uid=claims["uid"],
            email=claims.get("email"),
            email_verified=bool(claims.get("email_verified", False)),
        )


def get_identity_provider() -> ExternalIdentityProvider:
    """
    FastAPI dependency returning the external identity provider.

    Raises:
        IdentityProviderUnavailableException: If Firebase is not configured
    """
    app = get_firebase_app()
    if app is None:
        raise IdentityProviderUnavailableException()
    return ExternalIdentityProvider(app)
