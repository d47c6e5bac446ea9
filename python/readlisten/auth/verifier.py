"""Token verification implementations.

Provides:
- TokenVerifier: Protocol for token verification
- SharedSecretVerifier: HS256 verifier for Supabase access tokens
- resolve_user_id: Extract the acting user from verified claims

Supabase signs access tokens with the project's JWT secret, so verification
only needs that secret; there is no key fetch and no network dependency.
"""

import logging
from typing import Any, Protocol
from uuid import UUID

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from readlisten.errors import ApiError, ApiErrorCode

logger = logging.getLogger(__name__)

# Clock skew allowance in seconds
CLOCK_SKEW_SECONDS = 60


class TokenVerifier(Protocol):
    """Protocol for token verification.

    Implementations must verify JWT tokens and return decoded claims.
    """

    def verify(self, token: str) -> dict[str, Any]:
        """Verify token and return decoded claims.

        Raises:
            ApiError(E_UNAUTHENTICATED): Token is invalid, expired, or malformed.
        """
        ...


class SharedSecretVerifier:
    """Token verifier using the Supabase project JWT secret.

    Validates:
    - Signature with HS256
    - exp with +/-60s clock skew
    - aud is not checked (Supabase uses "authenticated" for every user token)
    """

    def __init__(self, secret: str, leeway: int = CLOCK_SKEW_SECONDS):
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self._secret = secret
        self.leeway = leeway

    def verify(self, token: str) -> dict[str, Any]:
        """Verify a Supabase access token.

        Args:
            token: The JWT token string.

        Returns:
            Decoded claims dictionary.

        Raises:
            ApiError(E_UNAUTHENTICATED): Token is invalid or expired.
        """
        if not token:
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token")

        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=["HS256"],
                leeway=self.leeway,
                options={"require": ["exp"], "verify_aud": False},
            )
        except ExpiredSignatureError as e:
            logger.warning("auth_failure", extra={"reason": "expired_token"})
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token") from e
        except InvalidTokenError as e:
            logger.warning("auth_failure", extra={"reason": "invalid_token", "error": str(e)})
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token") from e


def resolve_user_id(claims: dict[str, Any]) -> UUID:
    """Return the acting user from verified claims.

    The subject is read from ``sub``, falling back to a ``user_id`` claim.

    Raises:
        ApiError(E_UNAUTHENTICATED): No subject, or the subject is not a UUID.
    """
    subject = claims.get("sub") or claims.get("user_id")
    if not subject:
        logger.warning("auth_failure", extra={"reason": "missing_sub"})
        raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token payload")

    try:
        return UUID(str(subject))
    except (ValueError, TypeError) as e:
        logger.warning("auth_failure", extra={"reason": "invalid_sub"})
        raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token payload") from e


def authenticate(verifier: TokenVerifier, token: str | None) -> UUID:
    """Verify a raw token and return its user id."""
    claims = verifier.verify(token or "")
    return resolve_user_id(claims)
