"""Bcrypt credential verifier adapter."""

from __future__ import annotations

import bcrypt

from personal_finance.application.ports.credential_verifier_port import CredentialVerifierPort


class BcryptPasswordHasher(CredentialVerifierPort):
    """Credential verifier using bcrypt with a per-hash random salt."""

    def __init__(self, *, rounds: int = 12) -> None:
        self._rounds = rounds

    def hash_password(self, password: str) -> str:
        encoded = password.encode("utf-8")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self._rounds)).decode("utf-8")

    def verify_password(self, *, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False
