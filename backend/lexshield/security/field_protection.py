"""
Field-level encryption and masking of payloads.

WHAT: Encrypts, decrypts and masks individual fields inside nested JSON
payloads (national ID numbers, IBANs, phone numbers, ...).

WHY: Client records in a legal practice carry identifiers that must be
stored encrypted and shown masked (``****1234``) to anyone who does not
need the full value.

HOW: Uses Fernet (from the cryptography library). ``ENCRYPTION_KEY`` may hold
several comma-separated keys; the first encrypts and all decrypt, so keys
can be rotated with MultiFernet.
"""

import logging
from typing import Any, Iterable, Optional

from cryptography.fernet import Fernet, InvalidToken, MultiFernet

from lexshield.core.config import settings
from lexshield.core.exceptions import EncryptionError, InvalidEncryptedData


logger = logging.getLogger(__name__)


DEFAULT_SENSITIVE_FIELDS = frozenset(
    {
        "nationalId",
        "iqamaNumber",
        "passportNumber",
        "iban",
        "bankAccountNumber",
        "phone",
        "mobile",
        "taxNumber",
    }
)

MASK_CHAR = "*"
VISIBLE_CHARS = 4


def mask_value(value: Any, visible: int = VISIBLE_CHARS) -> Any:
    """
    Mask all but the last ``visible`` characters of a value.

    Non-string scalars are masked through their string form; None passes
    through. Values no longer than ``visible`` are fully masked.

    Example:
        >>> mask_value("1234567890")
        '******7890'
    """
    if value is None:
        return None
    text = str(value)
    if len(text) <= visible:
        return MASK_CHAR * len(text)
    return MASK_CHAR * (len(text) - visible) + text[-visible:]


class FieldCipher:
    """
    Fernet cipher for individual field values.

    Example:
        cipher = FieldCipher()
        token = cipher.encrypt("1012345678")
        cipher.decrypt(token)
    """

    def __init__(self, keys: Optional[str] = None):
        """
        Args:
            keys: Comma-separated Fernet keys; defaults to ENCRYPTION_KEY

        Raises:
            EncryptionError: If no key is configured or a key is malformed
        """
        raw = keys or settings.ENCRYPTION_KEY
        if not raw:
            logger.error("Encryption key not configured")
            raise EncryptionError(message="Encryption key not configured")

        try:
            self._fernet = MultiFernet([Fernet(k.strip().encode()) for k in raw.split(",") if k.strip()])
        except (ValueError, TypeError) as e:
            logger.error(f"Invalid encryption key format: {type(e).__name__}")
            raise EncryptionError(message="Invalid encryption key format")

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(str(plaintext).encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        """
        Raises:
            InvalidEncryptedData: Token is corrupted or from an unknown key
        """
        try:
            return self._fernet.decrypt(str(ciphertext).encode()).decode()
        except InvalidToken:
            logger.warning("Decryption failed: invalid token or unknown key")
            raise InvalidEncryptedData()

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode()


class FieldProtector:
    """
    Applies masking and encryption to configured fields of nested payloads.

    Example:
        protector = FieldProtector(cipher=FieldCipher())
        masked = protector.mask_fields(client_payload)
    """

    def __init__(
        self,
        sensitive_fields: Iterable[str] = DEFAULT_SENSITIVE_FIELDS,
        cipher: Optional[FieldCipher] = None,
    ):
        self._fields = frozenset(sensitive_fields)
        self._cipher = cipher

    @property
    def cipher(self) -> FieldCipher:
        if self._cipher is None:
            self._cipher = FieldCipher()
        return self._cipher

    def _apply(self, node: Any, fn) -> Any:
        if isinstance(node, list):
            return [self._apply(item, fn) for item in node]
        if isinstance(node, dict):
            return {
                k: fn(k, v) if k in self._fields and v is not None else self._apply(v, fn)
                for k, v in node.items()
            }
        return node

    def mask_fields(self, payload: Any) -> Any:
        return self._apply(payload, lambda _k, v: mask_value(v))

    def encrypt_fields(self, payload: Any) -> Any:
        return self._apply(payload, lambda _k, v: self.cipher.encrypt(v))

    def decrypt_fields(self, payload: Any) -> Any:
        """
        Raises:
            InvalidEncryptedData: With the offending field name
        """

        def _decrypt(key: str, value: Any) -> Any:
            try:
                return self.cipher.decrypt(value)
            except InvalidEncryptedData:
                raise InvalidEncryptedData(field=key)

        return self._apply(payload, _decrypt)
