"""
Encode/decode functions for personal fields stored at rest.

The codec is applied explicitly at the persistence boundary: CRUD writes call
``encode`` and response mappers call ``decode``. Models and services never
see transparently intercepted attribute access.
"""

from typing import Optional, Protocol
from cryptography.fernet import Fernet, InvalidToken
from app.core.config import settings
from app.core.logging_config import logger


class FieldCodec(Protocol):
    """Protocol for reversible field encoders."""

    def encode(self, value: Optional[str]) -> Optional[str]:
        ...

    def decode(self, value: Optional[str]) -> Optional[str]:
        ...


class PlainCodec:
    """Stores values unchanged. Used when no encryption key is configured."""

    def encode(self, value: Optional[str]) -> Optional[str]:
        return value

    def decode(self, value: Optional[str]) -> Optional[str]:
        return value


class FernetCodec:
    """Symmetric encryption of field values using Fernet (AES-128-CBC + HMAC)."""

    def __init__(self, key: str | bytes):
        if isinstance(key, str):
            key = key.encode("utf-8")
        self._fernet = Fernet(key)

    def encode(self, value: Optional[str]) -> Optional[str]:
        if not value:
            return value
        return self._fernet.encrypt(value.encode("utf-8")).decode("ascii")

    def decode(self, value: Optional[str]) -> Optional[str]:
        if not value:
            return value
        try:
            return self._fernet.decrypt(value.encode("ascii")).decode("utf-8")
        except InvalidToken:
            logger.error("Failed to decrypt stored field value")
            raise ValueError("Stored value could not be decrypted")


def get_address_codec() -> FieldCodec:
    """
    Build the codec used for destination addresses.

    Returns:
        FernetCodec when ADDRESS_ENCRYPTION_KEY is set, PlainCodec otherwise
    """
    if settings.ADDRESS_ENCRYPTION_KEY:
        return FernetCodec(settings.ADDRESS_ENCRYPTION_KEY)

    logger.warning("ADDRESS_ENCRYPTION_KEY not set. Addresses will be stored unencrypted.")
    return PlainCodec()


address_codec = get_address_codec()
