"""Check a recovered key against a sample ciphertext.

The payloads encrypt their source lists with CryptoJS passphrase mode: the
base64 blob is ``"Salted__" + salt(8) + ciphertext`` and the AES-256-CBC key
and IV are derived from the passphrase with OpenSSL's ``EVP_BytesToKey``
(one MD5 round).
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
from typing import Optional, Tuple

from Crypto.Cipher import AES
from Crypto.Hash import MD5
from Crypto.Util.Padding import pad, unpad

LOG = logging.getLogger(__name__)

SALT_HEADER = b"Salted__"
KEY_SIZE = 32
IV_SIZE = AES.block_size


def evp_bytes_to_key(passphrase: bytes, salt: bytes, key_size: int = KEY_SIZE, iv_size: int = IV_SIZE) -> Tuple[bytes, bytes]:
    """Derive ``(key, iv)`` the way OpenSSL's ``EVP_BytesToKey`` does with MD5."""

    derived = b""
    block = b""
    while len(derived) < key_size + iv_size:
        block = MD5.new(block + passphrase + salt).digest()
        derived += block
    return derived[:key_size], derived[key_size : key_size + iv_size]


def encrypt_passphrase(plaintext: str, passphrase: str, *, salt: Optional[bytes] = None) -> str:
    """Encrypt ``plaintext`` like ``CryptoJS.AES.encrypt(plaintext, passphrase)``."""

    salt = os.urandom(8) if salt is None else salt
    if len(salt) != 8:
        raise ValueError("salt must be 8 bytes")
    key, iv = evp_bytes_to_key(passphrase.encode("utf-8"), salt)
    cipher = AES.new(key, AES.MODE_CBC, iv=iv)
    body = cipher.encrypt(pad(plaintext.encode("utf-8"), AES.block_size))
    return base64.b64encode(SALT_HEADER + salt + body).decode("ascii")


def decrypt_passphrase(ciphertext_b64: str, passphrase: str) -> str:
    """Decrypt a CryptoJS passphrase blob; raise :class:`ValueError` on any mismatch."""

    try:
        raw = base64.b64decode(ciphertext_b64.strip(), validate=True)
    except binascii.Error as exc:
        raise ValueError(f"ciphertext is not base64: {exc}") from exc
    if not raw.startswith(SALT_HEADER) or len(raw) < len(SALT_HEADER) + 8 + AES.block_size:
        raise ValueError("ciphertext lacks the Salted__ header")
    salt = raw[len(SALT_HEADER) : len(SALT_HEADER) + 8]
    body = raw[len(SALT_HEADER) + 8 :]
    if len(body) % AES.block_size:
        raise ValueError("ciphertext length is not a multiple of the block size")

    key, iv = evp_bytes_to_key(passphrase.encode("utf-8"), salt)
    cipher = AES.new(key, AES.MODE_CBC, iv=iv)
    padded = cipher.decrypt(body)
    plaintext = unpad(padded, AES.block_size)
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ValueError("decrypted bytes are not UTF-8") from exc


def try_decrypt(ciphertext_b64: str, passphrase: str) -> Optional[str]:
    """Return the plaintext, or ``None`` when ``passphrase`` is not the right key."""

    try:
        return decrypt_passphrase(ciphertext_b64, passphrase)
    except ValueError as exc:
        LOG.debug("test decryption failed: %s", exc)
        return None


__all__ = ["decrypt_passphrase", "encrypt_passphrase", "evp_bytes_to_key", "try_decrypt"]
