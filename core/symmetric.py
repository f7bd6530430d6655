#!/usr/bin/env python3
"""
symmetric.py - AES-256-CBC payload encryption

The symmetric key and IV are both taken from one SHA-256 digest of the
seed (the uncompressed encoding of a fresh G1 point):

    h   = SHA-256(seed)
    key = h          (32 bytes)
    iv  = h[:16]

The IV is therefore not independent of the key. This is only sound while
every seed is used exactly once, which holds because the seed point is
sampled anew for each encryption.
"""

import hashlib
from typing import Tuple

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import InvalidInputError

AES_BLOCK_SIZE = 16
AES_KEY_SIZE = 32


def derive_key_iv(seed: bytes) -> Tuple[bytes, bytes]:
    digest = hashlib.sha256(seed).digest()
    return digest, digest[:AES_BLOCK_SIZE]


def aes_encrypt(message: bytes, seed: bytes) -> bytes:
    """
    Encrypt message with AES-256-CBC + PKCS7 under a key derived from seed.

    Raises:
        InvalidInputError: if message is empty
    """
    if len(message) < 1:
        raise InvalidInputError('Empty aes message')

    key, iv = derive_key_iv(seed)

    padder = padding.PKCS7(AES_BLOCK_SIZE * 8).padder()
    padded = padder.update(message) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv), backend=default_backend()).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def aes_decrypt(ciphertext: bytes, seed: bytes) -> bytes:
    """Inverse of aes_encrypt for a holder of the same seed."""
    if len(ciphertext) == 0 or len(ciphertext) % AES_BLOCK_SIZE:
        raise InvalidInputError(f'Ciphertext length {len(ciphertext)} is not a positive '
                                f'multiple of {AES_BLOCK_SIZE}')

    key, iv = derive_key_iv(seed)

    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv), backend=default_backend()).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()

    unpadder = padding.PKCS7(AES_BLOCK_SIZE * 8).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise InvalidInputError(f'Bad padding: {e}') from e
