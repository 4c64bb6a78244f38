"""Opaque token generation and salted hashing of client secrets."""

from __future__ import annotations

import base64
import secrets

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

TOKEN_BYTES = 32


def generate_token() -> str:
    """Return a URL-safe random token carrying 256 bits of entropy."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


class SecretHasher:
    """Hash and verify client secrets with scrypt and a per-secret salt."""

    SCHEME = "scrypt"

    def __init__(self, *, n: int = 2**14, r: int = 8, p: int = 1, length: int = 32) -> None:
        self._n = n
        self._r = r
        self._p = p
        self._length = length

    def _kdf(self, salt: bytes, n: int, r: int, p: int, length: int) -> Scrypt:
        return Scrypt(salt=salt, length=length, n=n, r=r, p=p)

    def hash(self, secret: str) -> str:
        """Return an encoded hash suitable for storage."""
        if not secret:
            raise ValueError("Client secret must be provided.")
        salt = secrets.token_bytes(16)
        digest = self._kdf(salt, self._n, self._r, self._p, self._length).derive(
            secret.encode("utf-8")
        )
        return "$".join(
            [
                self.SCHEME,
                str(self._n),
                str(self._r),
                str(self._p),
                _b64encode(salt),
                _b64encode(digest),
            ]
        )

    def verify(self, secret: str, encoded: str) -> bool:
        """Constant-time check of ``secret`` against a stored hash."""
        try:
            scheme, n, r, p, salt, digest = encoded.split("$")
        except ValueError:
            return False
        if scheme != self.SCHEME:
            return False
        expected = _b64decode(digest)
        kdf = self._kdf(_b64decode(salt), int(n), int(r), int(p), len(expected))
        try:
            kdf.verify(secret.encode("utf-8"), expected)
        except InvalidKey:
            return False
        return True


__all__ = ["SecretHasher", "generate_token"]
