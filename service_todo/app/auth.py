"""
Bearer token identity for the Todo service.
"""

from typing import Any, Dict, Optional

import jwt
from fastapi import Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from shared.logging import get_logger, set_user_context
from shared.errors import AuthenticationError


class TokenVerifier:
    """Verifies HS256 tokens and extracts the owner id from ``user_id``."""

    def __init__(self, secret: str, algorithm: str = "HS256"):
        self.secret = secret
        self.algorithm = algorithm
        self.logger = get_logger("todo.auth")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            self.logger.warning("Token verification failed", error=str(e))
            raise AuthenticationError("Invalid token") from e

    def owner_id(self, token: str) -> int:
        claims = self.decode(token)
        user_id = claims.get("user_id")
        # bool is an int subclass
        if not isinstance(user_id, int) or isinstance(user_id, bool) or user_id < 0:
            raise AuthenticationError("Token carries no valid user_id claim")
        return user_id


class OwnerDependency:
    """FastAPI dependency resolving the request's owner id."""

    def __init__(self, verifier: TokenVerifier):
        self.verifier = verifier
        self.security = HTTPBearer(auto_error=False)

    async def __call__(self, request: Request) -> int:
        credentials: Optional[HTTPAuthorizationCredentials] = await self.security(request)
        if credentials is None:
            raise AuthenticationError("Authorization header required")

        owner_id = self.verifier.owner_id(credentials.credentials)
        set_user_context(str(owner_id))
        return owner_id
