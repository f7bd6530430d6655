#!/usr/bin/env python3
"""
ciphertext.py - Hybrid BLS/AES encryption

KEY PART (ElGamal on G1, with a G2 commitment to r):
    C  = M + r·pk
    R1 = r·G1
    R2 = -(r·G2)
  serialized as G1 || G1 || G2 (48 + 48 + 96 = 192 bytes)

PAYLOAD PART:
    AES-256-CBC(message) under SHA-256(uncompressed(M))

M is a fresh random G1 point for every message, so the derived key/IV
pair is never reused. Decryption needs a quorum of key shares and is not
provided here.
"""

import logging
from typing import Tuple

from core.bls_group import (
    G1, G2, Point,
    G1_COMPRESSED_SIZE, G2_COMPRESSED_SIZE,
    scalar_mul, point_add, point_neg,
    random_scalar, random_g1,
    g1_to_bytes, g1_from_bytes, g1_to_uncompressed,
    g2_to_bytes, g2_from_bytes,
)
from core.errors import InvalidInputError, UnimplementedError
from core.symmetric import aes_encrypt

logger = logging.getLogger(__name__)

KEY_PART_SIZE = 2 * G1_COMPRESSED_SIZE + G2_COMPRESSED_SIZE


class BlsCipherText:
    """ElGamal encryption (C, R1, R2) of a G1 point under a threshold key."""

    def __init__(self, c_msg: Point, big_r: Point, commitment: Point):
        self.c_msg = c_msg
        self.big_r = big_r
        self.commitment = commitment

    def verify(self) -> bool:
        raise UnimplementedError('Ciphertext verification is not implemented')

    def to_bytes(self) -> bytes:
        return (g1_to_bytes(self.c_msg)
                + g1_to_bytes(self.big_r)
                + g2_to_bytes(self.commitment))

    @classmethod
    def from_bytes(cls, data: bytes) -> 'BlsCipherText':
        if len(data) != KEY_PART_SIZE:
            raise InvalidInputError(f'Encrypted key must be {KEY_PART_SIZE} bytes, got {len(data)}')
        c_msg = g1_from_bytes(data[:G1_COMPRESSED_SIZE])
        big_r = g1_from_bytes(data[G1_COMPRESSED_SIZE:2 * G1_COMPRESSED_SIZE])
        commitment = g2_from_bytes(data[2 * G1_COMPRESSED_SIZE:])
        return cls(c_msg, big_r, commitment)


def bls_encrypt(msg: Point, pk: Point) -> BlsCipherText:
    """
    Encrypt the G1 point msg under pk with a fresh scalar r.

    Args:
        msg: G1 point to hide (the AES key material)
        pk: threshold public key point

    Returns:
        BlsCipherText(C = M + r·pk, R1 = r·G1, R2 = -(r·G2))
    """
    r = random_scalar()

    c_msg = point_add(msg, scalar_mul(pk, r))
    big_r1 = scalar_mul(G1, r)
    big_r2 = point_neg(scalar_mul(G2, r))

    return BlsCipherText(c_msg, big_r1, big_r2)


def hybrid_encrypt(pk: Point, message: bytes) -> Tuple[bytes, bytes]:
    """
    Encrypt message under the threshold public key point pk.

    Returns:
        (encrypted_key, encrypted_msg): the 192-byte key part and the
        AES-CBC payload (a multiple of 16 bytes)

    Raises:
        InvalidInputError: if message is empty
    """
    if len(message) < 1:
        raise InvalidInputError('Empty aes message')

    aes_key_point = random_g1()

    encrypted_key = bls_encrypt(aes_key_point, pk).to_bytes()
    encrypted_msg = aes_encrypt(message, g1_to_uncompressed(aes_key_point))

    logger.debug('Encrypted %d-byte message -> key part %d bytes, payload %d bytes',
                 len(message), len(encrypted_key), len(encrypted_msg))
    return encrypted_key, encrypted_msg


def threshold_decrypt(encrypted_key: bytes, encrypted_msg: bytes, partial_shares) -> bytes:
    """Combining partial decryption shares is not provided by this package."""
    raise UnimplementedError('Threshold decryption is not implemented')
