"""HTTP Basic authentication against the configured user/admin whitelists."""

from __future__ import annotations

import base64
import binascii
import secrets
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from fastapi import Header, Request

from fitness_api.config import Settings
from fitness_api.errors import AuthError


@dataclass(frozen=True, slots=True)
class CredentialStore:
    """Read-only username -> password lookups, built once at startup."""

    users: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    admins: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_settings(cls, settings: Settings) -> CredentialStore:
        return cls(
            users=MappingProxyType(dict(settings.whitelisted_users)),
            admins=MappingProxyType(dict(settings.whitelisted_admins)),
        )

    def check_user(self, username: str, password: str) -> None:
        _check(self.users, username, password, "User not found")

    def check_admin(self, username: str, password: str) -> None:
        _check(self.admins, username, password, "Admin not found")


def _check(table: Mapping[str, str], username: str, password: str, missing_msg: str) -> None:
    expected = table.get(username)
    if expected is None:
        raise AuthError(missing_msg)
    if not secrets.compare_digest(expected.encode(), password.encode()):
        raise AuthError("Invalid password")


def parse_basic_auth(header: str | None) -> tuple[str, str]:
    """Return (username, password) from an ``Authorization: Basic ...`` header."""
    if not header:
        raise AuthError("Authorization header required")
    if not header.startswith("Basic "):
        raise AuthError("Invalid Authorization header format")

    try:
        decoded = base64.b64decode(header[6:].strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise AuthError("Invalid Authorization header format")

    username, sep, password = decoded.partition(":")
    if not sep:
        raise AuthError("Invalid Authorization header format")
    return username, password


def _credentials(request: Request) -> CredentialStore:
    return request.app.state.credentials


async def require_user(
    request: Request,
    authorization: str | None = Header(default=None),
) -> str:
    """Authenticate a regular user. Returns the username."""
    username, password = parse_basic_auth(authorization)
    _credentials(request).check_user(username, password)
    return username


async def require_admin(
    request: Request,
    authorization: str | None = Header(default=None),
) -> str:
    """Authenticate an administrator. Returns the admin username."""
    username, password = parse_basic_auth(authorization)
    _credentials(request).check_admin(username, password)
    return username
