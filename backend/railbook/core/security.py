"""
Identity for API requests.

Credential storage is not this service's job: an AuthProvider answers
verify/register, and the booking core trusts the username it vouches for.
InMemoryAuthProvider is the development provider, seeded with the
configured administrator; deployments pass their own provider to create_app.
"""

import hashlib
import hmac
import secrets
import threading
from typing import Optional, Protocol

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from railbook.core.config import get_settings
from railbook.core.exceptions import Forbidden, Unauthenticated

PBKDF2_ITERATIONS = 120_000

# Missing credentials are reported by get_current_username, not HTTPBasic
basic_auth = HTTPBasic(realm="railbook", auto_error=False)


class AuthProvider(Protocol):
    def verify(self, username: str, password: str) -> bool: ...

    def register(self, username: str, password: str) -> bool: ...


def hash_password(password: str, salt: bytes, iterations: int = PBKDF2_ITERATIONS) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


class InMemoryAuthProvider:
    """Process-local accounts with salted PBKDF2 hashes."""

    def __init__(self, iterations: int = PBKDF2_ITERATIONS):
        self._iterations = iterations
        self._users: dict[str, tuple[bytes, bytes]] = {}
        self._lock = threading.Lock()

    @classmethod
    def with_admin(cls, username: str, password: str, **kwargs) -> "InMemoryAuthProvider":
        provider = cls(**kwargs)
        provider.register(username, password)
        return provider

    def register(self, username: str, password: str) -> bool:
        salt = secrets.token_bytes(16)
        digest = hash_password(password, salt, self._iterations)
        with self._lock:
            if username in self._users:
                return False
            self._users[username] = (salt, digest)
        return True

    def verify(self, username: str, password: str) -> bool:
        with self._lock:
            record = self._users.get(username)
        if record is None:
            return False
        salt, digest = record
        return hmac.compare_digest(digest, hash_password(password, salt, self._iterations))


def get_auth_provider(request: Request) -> AuthProvider:
    return request.app.state.auth_provider


async def get_current_username(
    credentials: Optional[HTTPBasicCredentials] = Depends(basic_auth),
    provider: AuthProvider = Depends(get_auth_provider),
) -> str:
    """Authenticated username for the request, or 401."""
    if credentials is None:
        raise Unauthenticated("Credentials required")
    if not provider.verify(credentials.username, credentials.password):
        raise Unauthenticated("Invalid username or password")
    structlog.contextvars.bind_contextvars(username=credentials.username)
    return credentials.username


async def get_admin_username(username: str = Depends(get_current_username)) -> str:
    if username != get_settings().ADMIN_USERNAME:
        raise Forbidden("Administrator access required")
    return username
