import secrets

from pwdlib import PasswordHash

from salon_pos.config import settings

MIN_PASSWORD_LENGTH = 8

password_hash = PasswordHash.recommended()


def hash_password(raw_password: str) -> str:
    return password_hash.hash(raw_password)


def verify_password(raw_password: str, hashed_password: str) -> bool:
    return password_hash.verify(raw_password, hashed_password)


def validate_new_password(raw_password: str) -> None:
    if len(raw_password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')


def generate_password(length: int | None = None) -> str:
    """Random password for accounts provisioned by an admin. Staff change it from the settings page."""
    size = max(length or settings.generated_password_length, MIN_PASSWORD_LENGTH)
    return secrets.token_urlsafe(size)[:size]
