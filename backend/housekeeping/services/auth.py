"""
Bearer-token actor resolution.

Tokens are issued by the external identity provider and signed with the
shared JWT secret. Claims used: sub (user id), role, name.
"""

import uuid
from datetime import datetime, timedelta
from typing import Optional

import jwt

from housekeeping.config import config
from housekeeping.guards import Actor

ACCESS_TOKEN_EXPIRE_MINUTES = 60


class AuthService:
    """Decodes bearer tokens into Actors."""

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None):
        self.jwt_secret = secret or config.JWT_SECRET
        self.jwt_algorithm = algorithm or config.JWT_ALGORITHM

    def create_access_token(
        self,
        user_id: uuid.UUID,
        role: str,
        display_name: Optional[str] = None,
        expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES,
    ) -> str:
        """Issue a token. Used by local tooling and tests."""
        payload = {
            "sub": str(user_id),
            "role": role,
            "exp": datetime.utcnow() + timedelta(minutes=expires_minutes),
        }
        if display_name:
            payload["name"] = display_name
        return jwt.encode(payload, self.jwt_secret, algorithm=self.jwt_algorithm)

    def decode_token(self, token: str) -> Optional[dict]:
        """Decode and validate a JWT token."""
        try:
            return jwt.decode(token, self.jwt_secret, algorithms=[self.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None

    def get_actor_from_token(self, token: str) -> Optional[Actor]:
        payload = self.decode_token(token)
        if not payload or not payload.get("sub") or not payload.get("role"):
            return None
        try:
            user_id = uuid.UUID(payload["sub"])
        except ValueError:
            return None
        return Actor(user_id=user_id, role=payload["role"], display_name=payload.get("name"))


# Singleton instance
_auth_service: Optional[AuthService] = None


def get_auth_service() -> AuthService:
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
