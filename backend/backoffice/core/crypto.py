from __future__ import annotations

import binascii
import os
from collections.abc import Mapping

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt


DEFAULT_MASTER_SECRET = "default-master-secret-change-this"
ENCRYPTED_PREFIX = "ENC:"
SENSITIVE_ENV_KEYS = (
    "DB_PASSWORD",
    "JWT_SECRET",
    "SMTP_PASSWORD",
    "REDIS_PASSWORD",
    "API_SECRET_KEY",
)

_KDF_SALT = b"salt"
_IV_BYTES = 16


class CryptoError(RuntimeError):
    def __init__(self, message: str, *, reason_code: str) -> None:
        super().__init__(message)
        self.reason_code = reason_code


def derive_key(master_secret: str | None = None) -> bytes:
    secret = master_secret if master_secret is not None else _master_secret_from_env()
    kdf = Scrypt(salt=_KDF_SALT, length=32, n=2**14, r=8, p=1)
    return kdf.derive(secret.encode("utf-8"))


def encrypt(text: str, *, master_secret: str | None = None) -> str:
    """Encrypt ``text`` as ``"<iv hex>:<ciphertext hex>"`` with AES-256-CBC."""
    key = derive_key(master_secret)
    iv = os.urandom(_IV_BYTES)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(text.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return f"{iv.hex()}:{ciphertext.hex()}"


def decrypt(value: str, *, master_secret: str | None = None) -> str:
    iv_hex, separator, ciphertext_hex = value.partition(":")
    if not separator or not iv_hex or not ciphertext_hex:
        raise CryptoError("Encrypted value must look like '<iv>:<ciphertext>'.", reason_code="invalid_ciphertext_format")
    try:
        iv = bytes.fromhex(iv_hex)
        ciphertext = bytes.fromhex(ciphertext_hex)
    except ValueError as exc:
        raise CryptoError("Encrypted value is not valid hex.", reason_code="invalid_ciphertext_format") from exc
    if len(iv) != _IV_BYTES:
        raise CryptoError("Encrypted value has an invalid IV length.", reason_code="invalid_ciphertext_format")

    key = derive_key(master_secret)
    try:
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        plaintext = unpadder.update(padded) + unpadder.finalize()
        return plaintext.decode("utf-8")
    except (ValueError, UnicodeDecodeError, binascii.Error) as exc:
        raise CryptoError("Encrypted value could not be decrypted.", reason_code="decryption_failed") from exc


def is_encrypted(value: str | None) -> bool:
    return bool(value) and value.startswith(ENCRYPTED_PREFIX)


def decrypt_env_value(value: str, *, master_secret: str | None = None) -> str:
    if not is_encrypted(value):
        return value
    return decrypt(value[len(ENCRYPTED_PREFIX):], master_secret=master_secret)


def get_decrypted_env_value(name: str, default: str | None = None) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    return decrypt_env_value(raw)


def encrypt_sensitive_env_values(values: Mapping[str, str], *, master_secret: str | None = None) -> dict[str, str]:
    """Return a copy of ``values`` with sensitive entries replaced by ``ENC:`` values.

    Empty and already encrypted entries are kept as they are. ``MASTER_SECRET`` is the
    key material and never part of the sensitive set.
    """
    result = dict(values)
    for key in SENSITIVE_ENV_KEYS:
        value = result.get(key)
        if not value or is_encrypted(value):
            continue
        result[key] = ENCRYPTED_PREFIX + encrypt(value, master_secret=master_secret)
    return result


def _master_secret_from_env() -> str:
    return os.getenv("MASTER_SECRET", "").strip() or DEFAULT_MASTER_SECRET
