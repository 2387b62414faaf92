# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Access and refresh token primitives.

Access tokens are HS256 JWTs created with python-jose and carry
{sub, email, role, jti, iat, exp, iss, aud}. They are stateless: a token
is valid when its signature, issuer, audience and expiry all check out.

Refresh tokens are opaque 256-bit random handles. Only their SHA-256 hash
is persisted (see refresh_tokens.RefreshTokenLedger).

Expiry is evaluated against the injected clock with zero skew: a token is
expired only once the clock is strictly past its exp claim.

Example:
    >>> service = TokenService(get_settings().jwt)
    >>> token = service.issue_access_token(admin)
    >>> claims = service.validate_access_token(token)
    >>> claims.email
    'admin@floodaid.org'
"""

import hashlib
import logging
import math
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import jwt
from jose.exceptions import JWTClaimsError
from jose.exceptions import JWTError as JoseJWTError
from pydantic import BaseModel, ValidationError

from floodaid.core.config.settings import MIN_JWT_SECRET_BYTES, JWTSettings
from floodaid.core.enums import UserRole
from floodaid.utils.datetime import Clock, utc_now

if TYPE_CHECKING:
    from floodaid.infrastructure.database.models import AdminUser

logger = logging.getLogger(__name__)

REFRESH_TOKEN_BYTES = 32


class AccessTokenClaims(BaseModel):
    """Decoded access token claims.

    Attributes:
        sub: Admin id as a string.
        email: Admin email.
        role: Admin role.
        jti: Unique token id.
        iat: Issued-at (unix seconds).
        exp: Expiry (unix seconds).
        iss: Issuer.
        aud: Audience.
    """

    sub: str
    email: str
    role: UserRole
    jti: str
    iat: int
    exp: int
    iss: str
    aud: str

    @property
    def admin_id(self) -> int:
        return int(self.sub)


class TokenPair(BaseModel):
    """Access and refresh token pair returned after login or refresh."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_expires_in: int


class TokenError(Exception):
    """Base exception for token operations."""

    code = "InvalidToken"


class MalformedTokenError(TokenError):
    """Raised when the input is not a structurally valid JWT."""

    code = "MalformedToken"


class SignatureInvalidError(TokenError):
    """Raised when the signature does not match the configured secret."""

    code = "SignatureInvalid"


class TokenExpiredError(TokenError):
    """Raised when the clock is past the token's exp claim."""

    code = "Expired"


class TokenClaimsError(TokenError):
    """Raised for issuer/audience mismatch or missing claims."""

    code = "InvalidClaims"


class TokenNotFoundError(TokenError):
    """Raised when a refresh token is unknown, used, revoked or expired."""

    code = "TokenNotFound"


class TokenService:
    """Issues and validates tokens.

    Args:
        settings: JWT configuration settings.
        clock: Source of the current time.

    Raises:
        ValueError: If the signing secret is shorter than 32 bytes.
    """

    def __init__(self, settings: JWTSettings, clock: Clock = utc_now) -> None:
        secret = settings.secret_key.get_secret_value()
        if len(secret.encode("utf-8")) < MIN_JWT_SECRET_BYTES:
            raise ValueError(f"JWT secret must be at least {MIN_JWT_SECRET_BYTES} bytes")
        self._settings = settings
        self._secret = secret
        self._clock = clock

    @property
    def access_token_lifetime(self) -> timedelta:
        return timedelta(minutes=self._settings.access_token_expire_minutes)

    @property
    def refresh_token_lifetime(self) -> timedelta:
        return timedelta(days=self._settings.refresh_token_expire_days)

    def issue_access_token(self, admin: "AdminUser") -> str:
        """Create a signed access token for an admin.

        Args:
            admin: The authenticated admin identity.

        Returns:
            Compact JWT string.
        """
        now = self._clock()
        payload = {
            "sub": str(admin.id),
            "email": admin.email,
            "role": UserRole(admin.role).value,
            "jti": secrets.token_urlsafe(16),
            "iat": int(now.timestamp()),
            # Rounded up so the token lives at least the full lifetime.
            "exp": math.ceil((now + self.access_token_lifetime).timestamp()),
            "iss": self._settings.issuer,
            "aud": self._settings.audience,
        }
        return jwt.encode(payload, self._secret, algorithm=self._settings.algorithm)

    def validate_access_token(self, token: str) -> AccessTokenClaims:
        """Validate an access token and return its claims.

        Args:
            token: Compact JWT string.

        Returns:
            AccessTokenClaims for a valid token.

        Raises:
            MalformedTokenError: If the input is not a JWT.
            SignatureInvalidError: If the signature or algorithm is wrong.
            TokenClaimsError: If issuer, audience or required claims are wrong.
            TokenExpiredError: If the clock is past the exp claim.
        """
        if not token or token.count(".") != 2:
            raise MalformedTokenError("Token is not a compact JWT")
        try:
            jwt.get_unverified_header(token)
        except JoseJWTError as e:
            raise MalformedTokenError("Token header cannot be decoded") from e

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._settings.algorithm],
                audience=self._settings.audience,
                issuer=self._settings.issuer,
                # Expiry is checked below against the injected clock.
                options={"verify_exp": False},
            )
        except JWTClaimsError as e:
            raise TokenClaimsError(str(e)) from e
        except JoseJWTError as e:
            logger.debug("Access token rejected: %s", str(e))
            raise SignatureInvalidError("Token signature is invalid") from e

        try:
            claims = AccessTokenClaims.model_validate(payload)
        except ValidationError as e:
            raise TokenClaimsError("Token is missing required claims") from e

        if self._clock() > datetime.fromtimestamp(claims.exp, tz=timezone.utc):
            raise TokenExpiredError("Token has expired")
        return claims

    @staticmethod
    def issue_refresh_token() -> str:
        """Generate an opaque refresh token.

        Returns:
            256 random bits, URL-safe base64 without padding.
        """
        return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)

    @staticmethod
    def hash_token(token: str) -> str:
        """SHA-256 hex digest used to store and look up opaque tokens."""
        return hashlib.sha256(token.encode("utf-8")).hexdigest()
