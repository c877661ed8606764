"""Symmetric encryption for configuration secrets.

ScsCrypto encrypts short strings (passwords, client secrets, API keys) with
AES-256-CBC so they can be stored in environment files or /run/secrets as
``enc:<base64>`` values instead of plaintext.

Format:
    base64( IV[16] || AES-256-CBC(PKCS7(utf8(text))) )

Key derivation:
    - ScsCrypto(key, salt): PBKDF2-HMAC-SHA256, 10 000 iterations, 32 bytes
    - ScsCrypto():          machine-bound key, 10 001 rounds of
                            SHA-256(KEY || salt) over the upper-cased host name
"""
from __future__ import annotations
import base64
import binascii
import hashlib
import os
import platform
from typing import Optional

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

DEFAULT_SALT = "c395641a-ea04-4b6f-8d2d-b07a5b3e08be"
PBKDF2_ITERATIONS = 10000
MACHINE_KEY_ROUNDS = 10000
KEY_SIZE = 32
IV_SIZE = 16


class ScsCrypto:
    """Encrypt and decrypt text with a key derived from a passphrase.
    
    Usage:
        crypto = ScsCrypto("passphrase")
        token = crypto.encrypt("s3cret")
        assert crypto.decrypt(token) == "s3cret"
    """
    
    def __init__(self, key: Optional[str] = None, salt: str = DEFAULT_SALT):
        if key is None:
            self._key = _machine_key(platform.node())
        else:
            kdf = PBKDF2HMAC(
                algorithm=hashes.SHA256(),
                length=KEY_SIZE,
                salt=salt.encode("utf-8"),
                iterations=PBKDF2_ITERATIONS,
            )
            self._key = kdf.derive(key.encode("utf-8"))
    
    def encrypt(self, text: str) -> str:
        """Encrypt text with a fresh random IV.
        
        Args:
            text: Plaintext (may be empty)
            
        Returns:
            Base64 string of IV followed by ciphertext
        """
        iv = os.urandom(IV_SIZE)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(text.encode("utf-8")) + padder.finalize()
        
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        cipher_text = encryptor.update(padded) + encryptor.finalize()
        return base64.b64encode(iv + cipher_text).decode("ascii")
    
    def decrypt(self, text: str) -> str:
        """Decrypt a value produced by encrypt().
        
        Raises:
            ValueError: If the input is malformed or was encrypted with another key
        """
        try:
            raw = base64.b64decode(text, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("Encrypted value is not valid base64") from exc
        
        if len(raw) < IV_SIZE + 16 or (len(raw) - IV_SIZE) % 16:
            raise ValueError("Encrypted value has an invalid length")
        
        iv, cipher_text = raw[:IV_SIZE], raw[IV_SIZE:]
        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(cipher_text) + decryptor.finalize()
        
        # Wrong key surfaces as bad padding or undecodable bytes
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        try:
            plain = unpadder.update(padded) + unpadder.finalize()
            return plain.decode("utf-8")
        except ValueError as exc:
            raise ValueError("Decryption failed (wrong key or corrupted value)") from exc
    
    @staticmethod
    def create_sha512_hash(text: str, rounds: int) -> str:
        """Iterated salted SHA-512: ``rounds + 1`` passes of base64(sha512(salt + value))."""
        hashed = text
        for _ in range(rounds + 1):
            digest = hashlib.sha512((DEFAULT_SALT + hashed).encode("utf-8")).digest()
            hashed = base64.b64encode(digest).decode("ascii")
        return hashed


def _machine_key(machine_name: str) -> bytes:
    salt = DEFAULT_SALT.encode("utf-8")
    key = machine_name.upper().encode("utf-8")
    for _ in range(MACHINE_KEY_ROUNDS + 1):
        key = hashlib.sha256(key + salt).digest()
    return key
