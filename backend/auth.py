"""
Registration, login and bearer-token verification.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt

from backend.db import DbClient, DuplicateKeyError
from backend.errors import BadRequest, Conflict, Unauthorized

logger = logging.getLogger(__name__)

# bcrypt only uses the first 72 bytes of a password; longer input is cut there.
MAX_PASSWORD_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:MAX_PASSWORD_BYTES]


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    username: str


@dataclass(frozen=True)
class AuthResult:
    token: str
    username: str


class PasswordHasher:
    """Salted one-way password hashing with bcrypt."""

    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
        except ValueError:
            return False


class TokenService:
    """Issues and verifies signed, time-boxed JWTs carrying the user identity."""

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(days=7),
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def issue(self, user_id: str, username: str) -> str:
        expires = datetime.now(timezone.utc) + self.ttl
        claims = {
            "userId": user_id,
            "username": username,
            "exp": int(expires.timestamp()),
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as exc:
            raise Unauthorized("invalid token") from exc
        user_id = payload.get("userId")
        username = payload.get("username")
        if not user_id or not username:
            raise Unauthorized("invalid token")
        return TokenClaims(user_id=str(user_id), username=str(username))

    def verify(self, authorization: Optional[str]) -> TokenClaims:
        """Validate an ``Authorization: Bearer <token>`` header value."""
        if not authorization:
            raise Unauthorized("missing auth")
        parts = authorization.split(" ")
        if len(parts) != 2:
            raise Unauthorized("malformed auth")
        return self.decode(parts[1])


class AuthService:
    def __init__(self, db: DbClient, tokens: TokenService, hasher: PasswordHasher):
        self.db = db
        self.tokens = tokens
        self.hasher = hasher

    def register(self, username: Optional[str], password: Optional[str]) -> AuthResult:
        if not username or not password:
            raise BadRequest("username and password required")
        if self.db.get_user_by_username(username):
            raise Conflict("username taken")
        try:
            user = self.db.create_user(username, self.hasher.hash(password))
        except DuplicateKeyError:
            raise Conflict("username taken")
        logger.info("Registered user %s", user.username)
        return AuthResult(
            token=self.tokens.issue(user.id, user.username), username=user.username
        )

    def login(self, username: Optional[str], password: Optional[str]) -> AuthResult:
        if not username or not password:
            raise BadRequest("username and password required")
        user = self.db.get_user_by_username(username)
        if not user or not self.hasher.verify(password, user.password_hash):
            logger.warning("Failed login for %s", username)
            raise Unauthorized("invalid")
        return AuthResult(
            token=self.tokens.issue(user.id, user.username), username=user.username
        )
