"""
JWT management for self-issued access tokens.
"""

import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from jose import JWTError, jwt
from pydantic import BaseModel

from pearls.config import get_settings


class AccessTokenPayload(BaseModel):
    """Verified access token payload."""

    sub: str  # User ID
    email: Optional[str] = None
    roles: List[str] = []  # Snapshot at issuance; re-resolved on use
    exp: datetime
    iat: datetime
    jti: str


class JWTManager:
    """
    Access token creation and verification (symmetric signature).

    Refresh tokens are opaque random values, not JWTs; see the OAuth issuer.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_token_expire_days: Optional[int] = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.jwt_secret
        self.algorithm = algorithm or settings.jwt_algorithm
        self.access_token_expire_days = (
            access_token_expire_days
            if access_token_expire_days is not None
            else settings.access_token_expire_days
        )

    @property
    def access_token_lifetime(self) -> timedelta:
        return timedelta(days=self.access_token_expire_days)

    def create_access_token(
        self,
        user_id: str,
        email: Optional[str],
        roles: Iterable[str],
        expires_delta: Optional[timedelta] = None,
    ) -> Tuple[str, datetime]:
        """
        Create a signed access token.

        Args:
            user_id: Verified user id
            email: User's email, if known
            roles: Roles at issuance time
            expires_delta: Optional custom lifetime

        Returns:
            Tuple of (token, expiration_datetime)
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or self.access_token_lifetime)

        payload = {
            "sub": user_id,
            "email": email,
            "roles": sorted(roles),
            "exp": expire,
            "iat": now,
            "jti": str(uuid.uuid4()),
            "type": "access",
        }

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        return token, expire

    def verify_access_token(self, token: str) -> Optional[AccessTokenPayload]:
        """
        Verify signature and expiry of a self-issued access token.

        Returns:
            AccessTokenPayload if valid, None otherwise
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
            )
        except JWTError:
            return None

        if payload.get("type") != "access" or not payload.get("sub"):
            return None

        return AccessTokenPayload(
            sub=payload["sub"],
            email=payload.get("email"),
            roles=payload.get("roles") or [],
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            jti=payload.get("jti", ""),
        )

    @staticmethod
    def decode_unverified(token: str) -> Optional[Dict[str, Any]]:
        """Read the claims of a third-party token without checking its signature."""
        try:
            return jwt.get_unverified_claims(token)
        except JWTError:
            return None

    @staticmethod
    def hash_token(token: str) -> str:
        """SHA-256 hex digest used to store opaque secrets."""
        return hashlib.sha256(token.encode()).hexdigest()


_jwt_manager: Optional[JWTManager] = None


def get_jwt_manager() -> JWTManager:
    """Get or create the default JWT manager."""
    global _jwt_manager
    if _jwt_manager is None:
        _jwt_manager = JWTManager()
    return _jwt_manager
