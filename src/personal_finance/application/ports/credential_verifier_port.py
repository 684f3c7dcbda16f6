"""Port for the credential verifier used on signup and login."""

from __future__ import annotations

from typing import Protocol


class CredentialVerifierPort(Protocol):
    """Hashes new passwords and checks submitted ones against stored hashes."""

    def hash_password(self, password: str) -> str:
        """Return a salted one-way hash of `password` for storage."""

    def verify_password(self, *, password: str, password_hash: str) -> bool:
        """Return whether `password` matches `password_hash`; never raises on mismatch."""
