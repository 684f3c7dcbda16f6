"""Pure transforms over one user's ordered collection of hashed refresh tokens.

Collections are tuples ordered oldest first. Every function returns a new
tuple and leaves its input untouched; persisting the result is the caller's
responsibility.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True)
class RefreshTokenEntry:
    """Stored form of one issued refresh token."""

    token_hash: str
    expires_at: datetime

    def is_expired(self, *, now: datetime) -> bool:
        """Return whether the entry expired at or before `now`."""

        return self.expires_at <= now


RefreshTokenEntries = tuple[RefreshTokenEntry, ...]


def digest_refresh_token(raw_token: str) -> str:
    """Return the SHA-256 hex digest used to store and match a raw refresh token."""

    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def prune_expired(entries: RefreshTokenEntries, *, now: datetime) -> RefreshTokenEntries:
    """Drop every entry whose expiry is at or before `now`."""

    return tuple(entry for entry in entries if not entry.is_expired(now=now))


def enforce_limit(entries: RefreshTokenEntries, *, max_size: int) -> RefreshTokenEntries:
    """Evict the oldest entries until at most `max_size` remain."""

    if max_size < 0:
        raise ValueError("max_size cannot be negative")
    excess = len(entries) - max_size
    if excess <= 0:
        return entries
    return entries[excess:]


def attach(
    entries: RefreshTokenEntries,
    *,
    raw_token: str,
    ttl: timedelta,
    now: datetime,
) -> RefreshTokenEntries:
    """Append the digest of a newly issued raw token expiring at `now + ttl`."""

    entry = RefreshTokenEntry(
        token_hash=digest_refresh_token(raw_token),
        expires_at=now + ttl,
    )
    return (*entries, entry)


def find_by_hash(entries: RefreshTokenEntries, *, token_hash: str) -> RefreshTokenEntry | None:
    """Return the first entry stored under `token_hash`, if any."""

    for entry in entries:
        if entry.token_hash == token_hash:
            return entry
    return None


def remove(
    entries: RefreshTokenEntries,
    *,
    token_hash: str,
) -> tuple[RefreshTokenEntries, bool]:
    """Remove the first entry stored under `token_hash` and report whether one existed."""

    for index, entry in enumerate(entries):
        if entry.token_hash == token_hash:
            return entries[:index] + entries[index + 1 :], True
    return entries, False
