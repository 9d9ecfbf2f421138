import base64
import hashlib

import pytest

from megakey.verify import decrypt_passphrase, encrypt_passphrase, evp_bytes_to_key, try_decrypt

SALT = bytes.fromhex("0011223344556677")


def test_evp_bytes_to_key_matches_openssl_derivation() -> None:
    key, iv = evp_bytes_to_key(b"secret", SALT)
    d1 = hashlib.md5(b"secret" + SALT).digest()
    d2 = hashlib.md5(d1 + b"secret" + SALT).digest()
    d3 = hashlib.md5(d2 + b"secret" + SALT).digest()
    assert key == d1 + d2
    assert iv == d3
    assert len(key) == 32 and len(iv) == 16


def test_blob_layout() -> None:
    blob = base64.b64decode(encrypt_passphrase("hello", "k3y-Passphrase", salt=SALT))
    assert blob[:8] == b"Salted__"
    assert blob[8:16] == SALT
    assert (len(blob) - 16) % 16 == 0


def test_right_key_decrypts_sources() -> None:
    plaintext = '[{"file":"https://cdn.example/master.m3u8","type":"hls"}]'
    blob = encrypt_passphrase(plaintext, "aB3dE5gHiJ7kL9mN", salt=SALT)
    assert decrypt_passphrase(blob, "aB3dE5gHiJ7kL9mN") == plaintext
    assert try_decrypt(blob, "aB3dE5gHiJ7kL9mN") == plaintext


def test_malformed_ciphertext() -> None:
    assert try_decrypt("%%% not base64 %%%", "key") is None
    assert try_decrypt(base64.b64encode(b"no header here at all....").decode(), "key") is None
    with pytest.raises(ValueError):
        decrypt_passphrase(base64.b64encode(b"Salted__12345678" + b"x" * 5).decode(), "key")
