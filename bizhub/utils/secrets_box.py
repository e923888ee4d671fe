"""Symmetric encryption for stored third-party credentials (mailbox passwords)."""
import os

from cryptography.fernet import Fernet, InvalidToken


class EncryptionKeyMissing(RuntimeError):
    pass


def _fernet() -> Fernet:
    key = os.getenv("EMAIL_ENCRYPTION_KEY")
    if not key:
        raise EncryptionKeyMissing("EMAIL_ENCRYPTION_KEY is not configured")
    try:
        return Fernet(key.encode("ascii"))
    except ValueError as exc:
        raise ValueError("EMAIL_ENCRYPTION_KEY is not a valid Fernet key") from exc


def encrypt(plaintext: str) -> str:
    return _fernet().encrypt(plaintext.encode("utf-8")).decode("ascii")


def decrypt(token: str) -> str:
    try:
        return _fernet().decrypt(token.encode("ascii")).decode("utf-8")
    except InvalidToken as exc:
        raise ValueError("Stored credential cannot be decrypted with the configured key") from exc
