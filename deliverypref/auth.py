# deliverypref/auth.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from .config import Settings
from .errors import Unauthenticated

logger = logging.getLogger(__name__)


class PasswordHasher:
    def __init__(self, schemes: Optional[list] = None):
        self._ctx = CryptContext(schemes=schemes or ["argon2"], deprecated="auto")

    def hash(self, password: str) -> str:
        return self._ctx.hash(password)

    def verify(self, password: str, digest: str) -> bool:
        try:
            return self._ctx.verify(password, digest)
        except (ValueError, TypeError):
            # Unknown or corrupt digest: treat as a mismatch.
            logger.warning("Stored password digest could not be parsed")
            return False


class TokenService:
    """
    Issues and checks bearer tokens.
    Tokens are HS256 JWTs carrying the user id in `sub` and an `exp` claim.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl_minutes: int = 1440,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = timedelta(minutes=ttl_minutes)
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, clock: Optional[Callable[[], datetime]] = None) -> "TokenService":
        kwargs = {"clock": clock} if clock else {}
        return cls(settings.jwt_secret, settings.jwt_algorithm, settings.token_ttl_minutes, **kwargs)

    def sign(self, user_id: str) -> str:
        issued = self._clock()
        payload = {"sub": str(user_id), "iat": issued, "exp": issued + self.ttl}
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> str:
        try:
            data = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise Unauthenticated("Invalid or expired token")
        except JWTError as e:
            logger.info(f"Rejected bearer token: {e}")
            raise Unauthenticated("Invalid or expired token")

        sub = data.get("sub")
        if not sub:
            raise Unauthenticated("Invalid or expired token")
        return str(sub)


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise Unauthenticated("Missing Authorization header")

    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme != "Bearer" or not token:
        raise Unauthenticated("Invalid Authorization header")
    return token
