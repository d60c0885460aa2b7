"""
Identity token issuance and verification.

Tokens are stateless HS256 JWTs with a fixed one hour validity window.
Nothing is persisted server side and tokens are never refreshed.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache

import jwt

from tasktracker.core.config import get_settings
from tasktracker.core.errors import ConfigurationError
from tasktracker.models import User

logger = logging.getLogger(__name__)

ACCESS_TOKEN_LIFETIME = timedelta(hours=1)


class TokenError(str, enum.Enum):
    EXPIRED = "expired"
    INVALID = "invalid"


@dataclass(frozen=True)
class TokenPayload:
    user_id: str
    email: str
    username: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class TokenVerification:
    valid: bool
    payload: TokenPayload | None = None
    error: TokenError | None = None


class TokenService:
    """
    Issues and verifies signed identity tokens.

    Examples:
        >>> service = TokenService(secret="your-secret-key")
        >>> token = service.issue(user)
        >>> service.verify(token).payload.user_id
    """

    def __init__(
        self,
        secret: str | None,
        algorithm: str = "HS256",
        lifetime: timedelta = ACCESS_TOKEN_LIFETIME,
    ):
        if not secret:
            raise ConfigurationError("JWT_SECRET not configured")
        self._secret = secret
        self._algorithm = algorithm
        self._lifetime = lifetime

    def issue(self, user: User) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "username": user.username,
            "iat": now,
            "exp": now + self._lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenVerification:
        """
        Check signature and expiry.

        Expired tokens and invalid tokens (bad signature, wrong secret,
        malformed input or missing claims) are reported separately so the
        caller can tell them apart.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
            payload = TokenPayload(
                user_id=claims["sub"],
                email=claims.get("email", ""),
                username=claims.get("username", ""),
                issued_at=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
            )
        except jwt.ExpiredSignatureError:
            return TokenVerification(valid=False, error=TokenError.EXPIRED)
        except jwt.InvalidTokenError as e:
            logger.debug(f"Token rejected: {e}")
            return TokenVerification(valid=False, error=TokenError.INVALID)
        except (TypeError, ValueError, OverflowError) as e:
            logger.debug(f"Malformed token claims: {e}")
            return TokenVerification(valid=False, error=TokenError.INVALID)

        return TokenVerification(valid=True, payload=payload)


@lru_cache
def get_token_service() -> TokenService:
    settings = get_settings()
    return TokenService(settings.jwt_secret, algorithm=settings.jwt_algorithm)
