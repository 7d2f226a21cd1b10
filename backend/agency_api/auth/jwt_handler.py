"""
JWT token handling for authentication and authorization.

Access tokens are stateless and carry the user's tenant summary so guards
never touch the database. Refresh tokens are backed by a `RefreshToken` row
that can be revoked.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session
from uuid import UUID

from ..config import get_settings
from ..database.models import RefreshToken, Tenant, User

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

settings = get_settings()

# Password hashing
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class JWTHandler:
    """JWT token handler for authentication."""

    @staticmethod
    def access_token_expires_in() -> int:
        """Lifetime of an access token in seconds."""
        return settings.access_token_expire_seconds

    @staticmethod
    def create_access_token(user: User, tenant: Tenant) -> str:
        """
        Create a signed access token for a user.

        Args:
            user: Authenticated user
            tenant: The user's tenant

        Returns:
            str: Encoded JWT token
        """
        expire = datetime.now(timezone.utc) + timedelta(seconds=settings.access_token_expire_seconds)
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role.value,
            "tenant_id": str(tenant.id),
            "tenant_slug": tenant.slug,
            "tenant_type": tenant.type.value,
            "type": "access",
            "exp": expire,
        }
        return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)

    @staticmethod
    def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
        """
        Verify and decode an access token without consulting the database.

        Args:
            token: JWT token to verify

        Returns:
            Optional[Dict[str, Any]]: Token payload if valid, None if invalid
        """
        try:
            payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
        except JWTError:
            return None
        if payload.get("type") != "access":
            return None
        for claim in ("sub", "email", "role", "tenant_id", "tenant_slug", "tenant_type"):
            if not payload.get(claim):
                return None
        return payload

    @staticmethod
    def issue_refresh_token(db: Session, user: User) -> str:
        """
        Create a refresh record and the token that references it.

        The record is inserted first so its id can be embedded in the signed
        token; the signed value is then stored on the record. The caller
        commits.

        Args:
            db: Database session
            user: Token owner

        Returns:
            str: Encoded refresh token
        """
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=settings.refresh_token_expire_seconds)
        record = RefreshToken(user_id=user.id, token="", expires_at=expires_at)
        db.add(record)
        db.flush()

        payload = {
            "sub": str(user.id),
            "token_id": str(record.id),
            "type": "refresh",
            "exp": expires_at,
        }
        token = jwt.encode(payload, settings.jwt_refresh_secret, algorithm=ALGORITHM)
        record.token = token
        return token

    @staticmethod
    def verify_refresh_token(db: Session, token: str) -> Optional[User]:
        """
        Validate a refresh token against its stored record.

        Expired records are deleted as a side effect. The caller commits.

        Args:
            db: Database session
            token: Encoded refresh token

        Returns:
            Optional[User]: The owning user if the token is usable, None otherwise
        """
        try:
            payload = jwt.decode(token, settings.jwt_refresh_secret, algorithms=[ALGORITHM])
        except JWTError as e:
            logger.warning(f"Rejected refresh token: {e}")
            return None

        if payload.get("type") != "refresh":
            return None

        try:
            token_id = UUID(payload.get("token_id"))
            user_id = UUID(payload.get("sub"))
        except (TypeError, ValueError):
            return None

        record = db.query(RefreshToken).filter(RefreshToken.id == token_id).first()
        if not record or record.token != token:
            logger.warning(f"Refresh token {token_id} has no matching record")
            return None

        if record.user_id != user_id:
            logger.warning(f"Refresh token {token_id} presented for a different user")
            return None

        if as_utc(record.expires_at) <= datetime.now(timezone.utc):
            db.delete(record)
            return None

        user = record.user
        if not user or not user.active or not user.tenant or not user.tenant.active:
            return None
        return user


class PasswordHandler:
    """Password handling utilities."""

    @staticmethod
    def hash_password(password: str) -> str:
        """
        Hash a password.

        Args:
            password: Plain text password

        Returns:
            str: Hashed password
        """
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Args:
            plain_password: Plain text password
            hashed_password: Hashed password

        Returns:
            bool: True if password matches, False otherwise
        """
        return pwd_context.verify(plain_password, hashed_password)
