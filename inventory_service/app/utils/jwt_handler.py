"""
JWT Handler for Inventory Service

Decodes the access tokens issued by the user service.
"""

from datetime import datetime, timezone

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError
from pydantic import BaseModel


class TokenData(BaseModel):
    """Token data model for decoded JWT tokens"""

    user_id: str
    email: str = ""
    username: str = ""
    roles: list[str] = []
    expires_at: datetime

    @property
    def role(self) -> str:
        return self.roles[0] if self.roles else "user"


class JWTHandler:
    """Validates access tokens signed with the shared secret."""

    def __init__(self, secret_key: str, algorithm: str = "HS256"):
        self.secret_key = secret_key
        self.algorithm = algorithm

    def decode_token(self, token: str) -> TokenData:
        """
        Decode and validate JWT token.

        Raises:
            ValueError: If token is invalid, expired, or malformed
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise ValueError("Token has expired")
        except JWTError as e:
            raise ValueError(f"Token validation failed: {e}")

        user_id = payload.get("user_id") or payload.get("sub")
        exp = payload.get("exp")
        if not user_id or not exp:
            raise ValueError("Invalid token payload: missing user_id or exp")

        return TokenData(
            user_id=str(user_id),
            email=payload.get("email", ""),
            username=payload.get("username", ""),
            roles=payload.get("roles", []),
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )
