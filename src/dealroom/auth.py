"""
Session validation — bearer JWTs presented at connection time.

Tokens carry the claims the marketplace login issues: {id, role, name, email, exp}.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from dealroom.errors import AuthenticationError
from dealroom.models.identity import ROLES, Identity

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


class SessionValidator:
    def __init__(self, secret_key: str, algorithm: str = "HS256", leeway: float = 0):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._leeway = leeway

    def validate(self, token: Optional[str]) -> Identity:
        """Return the identity carried by `token`, or raise AuthenticationError."""
        if not token or not isinstance(token, str) or not token.strip():
            raise AuthenticationError("Authentication error: No token provided", code="token_missing")
        token = token.strip()
        if token.lower().startswith(BEARER_PREFIX):
            token = token[len(BEARER_PREFIX):].strip()

        try:
            claims = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                leeway=self._leeway,
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Authentication error: Token expired", code="token_expired")
        except jwt.InvalidTokenError as e:
            logger.debug("Rejected token: %s", e)
            raise AuthenticationError("Authentication error: Invalid token", code="token_invalid")

        return self._identity(claims)

    @staticmethod
    def _identity(claims: dict[str, Any]) -> Identity:
        user_id = claims.get("id")
        if isinstance(user_id, bool) or not isinstance(user_id, int):
            raise AuthenticationError("Authentication error: Invalid token", code="token_invalid")
        role = claims.get("role")
        if role not in ROLES:
            raise AuthenticationError("Authentication error: Invalid token", code="token_invalid")
        return Identity(
            id=user_id,
            role=role,
            name=claims.get("name") or "",
            email=claims.get("email"),
            expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        )

    def issue_token(
        self,
        user_id: int,
        role: str,
        name: str = "",
        email: Optional[str] = None,
        ttl: timedelta = timedelta(hours=1),
    ) -> str:
        """Mint a token with the same claim layout the validator expects."""
        if role not in ROLES:
            raise ValueError(f"Unknown role {role!r}")
        now = datetime.now(timezone.utc)
        claims = {"id": user_id, "role": role, "name": name, "email": email, "iat": now, "exp": now + ttl}
        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)
