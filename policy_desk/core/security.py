"""Security utilities: password hashing, JWT tokens, Firebase ID tokens."""

from datetime import datetime, timedelta, timezone
from typing import Literal
from uuid import UUID
import logging

import jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from .config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

AccountKind = Literal["user", "team_member"]

# Firebase Admin SDK (lazy initialization)
_firebase_app = None


def get_firebase_app():
    """Get or initialize Firebase Admin SDK."""
    global _firebase_app

    if not settings.firebase_enabled:
        return None

    if _firebase_app is None:
        try:
            import firebase_admin
            from firebase_admin import credentials

            # The key may arrive with escaped newlines from the environment
            private_key = settings.firebase_private_key.replace("\\n", "\n")

            cred = credentials.Certificate({
                "type": "service_account",
                "project_id": settings.firebase_project_id,
                "client_email": settings.firebase_client_email,
                "private_key": private_key,
                "token_uri": "https://oauth2.googleapis.com/token",
            })
            _firebase_app = firebase_admin.initialize_app(cred)
            logger.info(f"Firebase Admin SDK initialized for project: {settings.firebase_project_id}")
        except Exception as e:
            logger.error(f"Failed to initialize Firebase Admin SDK: {e}")
            return None

    return _firebase_app


# Password hashing
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify a password against its hash. Accounts without a hash never match."""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        logger.warning("Stored password hash is not a recognised bcrypt hash")
        return False


# JWT Token handling
class TokenPayload(BaseModel):
    """JWT token payload."""

    sub: str  # Account ID (app user or team member)
    kind: AccountKind = "user"
    eff: str  # Effective owner ID: the admin a team member works for
    exp: datetime
    iat: datetime
    type: str = "access"  # "access" or "refresh"


def _encode(
    account_id: UUID,
    kind: AccountKind,
    effective_user_id: UUID,
    token_type: str,
    expires_delta: timedelta,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(account_id),
        "kind": kind,
        "eff": str(effective_user_id),
        "exp": now + expires_delta,
        "iat": now,
        "type": token_type,
    }
    return jwt.encode(payload, settings.secret_key, algorithm="HS256")


def create_access_token(
    account_id: UUID,
    kind: AccountKind = "user",
    effective_user_id: UUID | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token."""
    return _encode(
        account_id,
        kind,
        effective_user_id or account_id,
        "access",
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(
    account_id: UUID,
    kind: AccountKind = "user",
    effective_user_id: UUID | None = None,
) -> str:
    """Create a JWT refresh token."""
    return _encode(
        account_id,
        kind,
        effective_user_id or account_id,
        "refresh",
        timedelta(days=settings.refresh_token_expire_days),
    )


def decode_token(token: str) -> TokenPayload | None:
    """Decode and validate a JWT token (HS256)."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=["HS256"])
        return TokenPayload(**payload)
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


class FirebaseTokenPayload(BaseModel):
    """Firebase JWT token payload."""

    uid: str
    email: str | None = None
    email_verified: bool = False
    name: str | None = None
    sign_in_provider: str | None = None
    exp: datetime
    iat: datetime


def decode_firebase_token(token: str) -> FirebaseTokenPayload | None:
    """Decode and validate a Firebase ID token."""
    app = get_firebase_app()

    if not app:
        return None

    try:
        from firebase_admin import auth

        decoded_token = auth.verify_id_token(token)
        firebase_claims = decoded_token.get("firebase", {})

        return FirebaseTokenPayload(
            uid=decoded_token["uid"],
            email=decoded_token.get("email"),
            email_verified=decoded_token.get("email_verified", False),
            name=decoded_token.get("name"),
            sign_in_provider=firebase_claims.get("sign_in_provider"),
            exp=datetime.fromtimestamp(decoded_token["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(decoded_token["iat"], tz=timezone.utc),
        )
    except Exception as e:
        logger.warning(f"Firebase token verification failed: {e}")
        return None
