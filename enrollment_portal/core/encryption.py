# enrollment_portal/core/encryption.py
"""Field-level encryption of personally identifying enrollment data.

Protected fields are encrypted with AES-256-CBC (PKCS7 padding) using a key
derived from ``ENCRYPTION_KEY``. Every record gets its own random IV, stored
hex-encoded in ``_iv`` next to the ciphertext. Fields used for filtering and
sorting stay in plaintext.

Decryption is an application-level policy: only the ``admin`` role may read
protected fields back. Everyone else gets :meth:`FieldEncryptor.summarize`.
"""
import base64
import binascii
import hashlib
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .config import encryption_key_is_secure, settings

logger = logging.getLogger(__name__)

DECRYPTION_FAILED = "[Decryption Failed]"

FIELDS_TO_ENCRYPT = (
    "fullName",
    "birthDate",
    "birthPlace",
    "address",
    "guardianName",
    "guardianRelation",
    "contactNumber",
    "fatherName",
    "motherName",
    "fatherOccupation",
    "motherOccupation",
    "lastSchool",
    "lrn",
)

# Plaintext fields, kept for querying and shown in summaries
UNENCRYPTED_FIELDS = (
    "id",
    "type",
    "status",
    "schoolYear",
    "gradeLevel",
    "strand",
    "semester",
    "userId",
    "userEmail",
    "submittedAt",
    "updatedAt",
    "generalAverage",
    "age",
    "gender",
    "religion",
    "isTransferee",
    "isESCGrantee",
    "hasForm9",
    "hasForm10",
    "hasPSA",
    "hasMoral",
    "hasGoodMoral",
    "hasBaptismal",
    "hasCompletionCert",
    "hasESC",
    "hasNCAE",
    "hasAcademicExcellence",
    "hasAcademicAward",
)

ENVELOPE_FIELDS = ("_iv", "_encrypted", "_encryptedAt", "_searchHash")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value >= 0x80000000 else value


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    value = abs(value)
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return sign + "".join(reversed(digits))


def _code_unit(char: str) -> int:
    # Leading UTF-16 code unit, astral characters hash by their high surrogate
    point = ord(char)
    if point > 0xFFFF:
        return 0xD800 + ((point - 0x10000) >> 10)
    return point


def name_search_hash(full_name: str) -> str:
    """Rolling ``h = (h << 5) - h + c`` hash of the lowercased name, base 36.

    The shift truncates to a signed 32-bit integer; the subtraction does not.
    Not collision resistant; only a lookup aid.
    """
    h = 0
    for char in full_name.lower():
        h = _to_int32(_to_int32(h) << 5) - h + _code_unit(char)
    return _to_base36(h)


class FieldEncryptor:
    def __init__(self, key: Optional[str] = None, enabled: Optional[bool] = None):
        self.key = key if key is not None else settings.encryption_key
        self.enabled = settings.encryption_enabled if enabled is None else enabled
        self._key_bytes = hashlib.sha256(self.key.encode("utf-8")).digest()

    def is_configured(self) -> bool:
        return encryption_key_is_secure(self.key)

    @staticmethod
    def generate_iv() -> str:
        return os.urandom(16).hex()

    @staticmethod
    def can_decrypt(role: Optional[str]) -> bool:
        """Only admins may decrypt; a missing role is a denial."""
        return role == "admin"

    def _cipher(self, iv: str) -> Cipher:
        return Cipher(algorithms.AES(self._key_bytes), modes.CBC(bytes.fromhex(iv)))

    def encrypt_value(self, value: str, iv: str) -> str:
        if not value:
            return ""
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(value.encode("utf-8")) + padder.finalize()
        encryptor = self._cipher(iv).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return base64.b64encode(ciphertext).decode("ascii")

    def decrypt_value(self, encrypted: str, iv: str) -> str:
        if not encrypted:
            return ""
        try:
            decryptor = self._cipher(iv).decryptor()
            padded = decryptor.update(base64.b64decode(encrypted, validate=True)) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            return (unpadder.update(padded) + unpadder.finalize()).decode("utf-8")
        except (ValueError, binascii.Error, UnicodeDecodeError) as e:
            logger.error(f"Decryption error: {e}")
            return DECRYPTION_FAILED

    def encrypt_record(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy with protected fields encrypted and the envelope added."""
        if not self.enabled:
            return dict(data)

        iv = self.generate_iv()
        encrypted = {
            **data,
            "_iv": iv,
            "_encrypted": True,
            "_encryptedAt": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        }
        for field in FIELDS_TO_ENCRYPT:
            value = data.get(field)
            if value is None:
                continue
            value = str(value)
            if value:
                encrypted[field] = self.encrypt_value(value, iv)

        if data.get("fullName"):
            encrypted["_searchHash"] = name_search_hash(str(data["fullName"]))
        return encrypted

    def decrypt_record(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy with protected fields decrypted and the envelope removed.

        A field that fails to decrypt is replaced with ``DECRYPTION_FAILED``;
        the rest of the record is still returned.
        """
        if not data.get("_encrypted") or not data.get("_iv"):
            return dict(data)

        iv = data["_iv"]
        decrypted = {k: v for k, v in data.items() if k not in ENVELOPE_FIELDS}
        for field in FIELDS_TO_ENCRYPT:
            if data.get(field):
                decrypted[field] = self.decrypt_value(data[field], iv)
        return decrypted

    def decrypt_batch(self, records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [self.decrypt_record(record) for record in records]

    @staticmethod
    def summarize(record: Dict[str, Any]) -> Dict[str, Any]:
        """Non-sensitive view of a record for callers without the admin role."""
        summary = {field: record[field] for field in UNENCRYPTED_FIELDS if field in record}
        full_name = record.get("fullName")
        if full_name and not record.get("_encrypted"):
            names = str(full_name).split(" ")
            summary["maskedName"] = " ".join(
                name if index == 0 else name[:1] + "***" for index, name in enumerate(names)
            )
        else:
            summary["maskedName"] = "Encrypted"
        return summary
