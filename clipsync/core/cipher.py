#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Symmetric payload encryption for clipsync

Every device derives the same AES-256 key and IV from the shared passphrase,
so the derivation must stay byte-for-byte stable across platforms.
"""
from dataclasses import dataclass

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .exceptions import ConfigurationError, CryptoError

KEY_SIZE = 32
BLOCK_SIZE = 16


@dataclass(frozen=True)
class KeyMaterial:
    """AES-256 key and CBC IV derived from a passphrase"""

    key: bytes
    iv: bytes

    def __post_init__(self):
        if len(self.key) != KEY_SIZE:
            raise ConfigurationError(f'Key must be {KEY_SIZE} bytes, got {len(self.key)}')
        if len(self.iv) != BLOCK_SIZE:
            raise ConfigurationError(f'IV must be {BLOCK_SIZE} bytes, got {len(self.iv)}')

    def __repr__(self) -> str:
        return 'KeyMaterial(key=<hidden>, iv=<hidden>)'


def derive_key_material(passphrase: str) -> KeyMaterial:
    """
    Derive key material from a passphrase.

    key = SHA-256(utf-8 passphrase); iv[i] = key[i] ^ key[i + 16].
    """
    if not passphrase:
        raise ConfigurationError('Passphrase must not be empty')

    digest = hashes.Hash(hashes.SHA256())
    digest.update(passphrase.encode('utf-8'))
    key = digest.finalize()
    iv = bytes(a ^ b for a, b in zip(key[:BLOCK_SIZE], key[BLOCK_SIZE:]))
    return KeyMaterial(key=key, iv=iv)


def _cipher(key: KeyMaterial) -> Cipher:
    return Cipher(algorithms.AES(key.key), modes.CBC(key.iv))


def encrypt(plaintext: bytes, key: KeyMaterial) -> bytes:
    """AES-256-CBC with PKCS#7 padding"""
    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = _cipher(key).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def decrypt(ciphertext: bytes, key: KeyMaterial) -> bytes:
    """Reverse of encrypt; raises CryptoError on any malformed input"""
    if not ciphertext:
        raise CryptoError('Ciphertext is empty')
    if len(ciphertext) % BLOCK_SIZE:
        raise CryptoError(
            f'Ciphertext length {len(ciphertext)} is not a multiple of {BLOCK_SIZE}'
        )

    decryptor = _cipher(key).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise CryptoError(f'Invalid padding, wrong key or corrupt payload: {e}') from e
