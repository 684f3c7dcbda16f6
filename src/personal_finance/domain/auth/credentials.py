"""Shared normalization helpers for signup and login inputs."""

from __future__ import annotations

# bcrypt only reads the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72


def normalize_user_email(*, email: str) -> str:
    """Normalize one user email and reject blank values."""

    normalized = email.strip().lower()
    if not normalized:
        raise ValueError("email cannot be blank")
    return normalized


def normalize_user_name(*, name: str) -> str:
    """Trim one display name and reject blank values."""

    normalized = name.strip()
    if not normalized:
        raise ValueError("name cannot be blank")
    return normalized


def validate_user_password(*, password: str) -> str:
    """Reject empty or over-long passwords without altering their content."""

    if not password:
        raise ValueError("password cannot be blank")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password cannot exceed {MAX_PASSWORD_BYTES} bytes")
    return password
