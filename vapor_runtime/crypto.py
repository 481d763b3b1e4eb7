"""Session key generation and symmetric encryption for the web logon handshake."""

from __future__ import annotations

import os
from dataclasses import dataclass

from cryptography.hazmat.primitives import hashes, padding, serialization
from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from vapor_runtime.errors import MissingPublicKey

SESSION_KEY_SIZE = 32
BLOCK_SIZE = 16


@dataclass(frozen=True)
class SessionKeyMaterial:
    plain: bytes
    encrypted: bytes


def load_public_key(key: bytes | str | RSAPublicKey | None) -> RSAPublicKey:
    """Accept a PEM/DER encoded key or an already loaded one."""
    if key is None:
        raise MissingPublicKey("a system public key is required for web logon")
    if isinstance(key, RSAPublicKey):
        return key
    if isinstance(key, str):
        key = key.encode("ascii")
    if key.lstrip().startswith(b"-----"):
        loaded = serialization.load_pem_public_key(key)
    else:
        loaded = serialization.load_der_public_key(key)
    if not isinstance(loaded, RSAPublicKey):
        raise MissingPublicKey("system public key must be an RSA key")
    return loaded


def generate_session_key(public_key: RSAPublicKey) -> SessionKeyMaterial:
    """Create a random AES-256 key and its RSA-OAEP encrypted form."""
    plain = os.urandom(SESSION_KEY_SIZE)
    encrypted = public_key.encrypt(
        plain,
        asym_padding.OAEP(
            mgf=asym_padding.MGF1(algorithm=hashes.SHA1()),
            algorithm=hashes.SHA1(),
            label=None,
        ),
    )
    return SessionKeyMaterial(plain=plain, encrypted=encrypted)


def symmetric_encrypt(data: bytes, key: bytes) -> bytes:
    """AES-256 encrypt ``data``.

    Output is the random IV encrypted with AES-ECB, followed by the
    PKCS#7 padded payload encrypted with AES-CBC under that IV.
    """
    iv = os.urandom(BLOCK_SIZE)
    ecb = Cipher(algorithms.AES(key), modes.ECB()).encryptor()
    encrypted_iv = ecb.update(iv) + ecb.finalize()

    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(data) + padder.finalize()
    cbc = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return encrypted_iv + cbc.update(padded) + cbc.finalize()


def symmetric_decrypt(data: bytes, key: bytes) -> bytes:
    """Inverse of :func:`symmetric_encrypt`."""
    ecb = Cipher(algorithms.AES(key), modes.ECB()).decryptor()
    iv = ecb.update(data[:BLOCK_SIZE]) + ecb.finalize()

    cbc = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = cbc.update(data[BLOCK_SIZE:]) + cbc.finalize()
    unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
    return unpadder.update(padded) + unpadder.finalize()


def hex_escape(data: bytes) -> str:
    """Hex encode ``data`` with every byte percent-escaped (``%ab%cd``)."""
    return "".join(f"%{byte:02x}" for byte in data)
