#!/usr/bin/env python3
"""
bls_group.py - BLS12-381 group arithmetic and point encodings

Thin layer over py_ecc's optimized BLS12-381 implementation:
- G1 / G2 base points, add, neg, scalar multiply
- CSPRNG sampling of scalars in Z_r
- ZCash-style encodings:
    G1 compressed   48 bytes  (flags in the top 3 bits of byte 0)
    G1 uncompressed 96 bytes  x || y, big-endian
    G2 compressed   96 bytes
Every decoder rejects points outside the prime-order subgroup.
"""

import secrets
from typing import Tuple

from py_ecc.bls.g2_primitives import (
    G1_to_pubkey, pubkey_to_G1,
    G2_to_signature, signature_to_G2,
)
from py_ecc.optimized_bls12_381 import (
    FQ, G1, G2, Z1,
    add, neg, multiply, eq, is_inf, is_on_curve, normalize,
    b, curve_order,
)

from .errors import DecodeError

Point = Tuple

G1_COMPRESSED_SIZE = 48
G1_UNCOMPRESSED_SIZE = 96
G2_COMPRESSED_SIZE = 96

FIELD_ELEMENT_SIZE = 48
FIELD_MODULUS = FQ.field_modulus

# Flag bits in the first byte of a serialized point
_COMPRESSION_FLAG = 0x80
_INFINITY_FLAG = 0x40
_SORT_FLAG = 0x20


# ============================================================================
# ARITHMETIC
# ============================================================================

def scalar_mul(pt: Point, scalar: int) -> Point:
    """scalar · pt, with the scalar reduced modulo the group order r."""
    return multiply(pt, scalar % curve_order)


def point_add(p: Point, q: Point) -> Point:
    return add(p, q)


def point_neg(pt: Point) -> Point:
    return neg(pt)


def point_eq(p: Point, q: Point) -> bool:
    return eq(p, q)


def is_identity(pt: Point) -> bool:
    return is_inf(pt)


def in_subgroup(pt: Point) -> bool:
    return is_inf(multiply(pt, curve_order))


def random_scalar() -> int:
    """Uniform scalar in [1, r) from the OS CSPRNG."""
    return secrets.randbelow(curve_order - 1) + 1


def random_g1() -> Point:
    return multiply(G1, random_scalar())


# ============================================================================
# ENCODINGS
# ============================================================================

def g1_to_bytes(pt: Point) -> bytes:
    return bytes(G1_to_pubkey(pt))


def g1_from_bytes(data: bytes) -> Point:
    """
    Decode a 48-byte compressed G1 point.

    Raises:
        DecodeError: wrong length, bad flags, x not on the curve, or the
                     point is outside the prime-order subgroup
    """
    if len(data) != G1_COMPRESSED_SIZE:
        raise DecodeError(f'G1 encoding must be {G1_COMPRESSED_SIZE} bytes, got {len(data)}')
    try:
        pt = pubkey_to_G1(bytes(data))
    except ValueError as e:
        raise DecodeError(f'Invalid G1 encoding: {e}') from e
    if not in_subgroup(pt):
        raise DecodeError('G1 point is not in the prime-order subgroup')
    return pt


def g1_to_uncompressed(pt: Point) -> bytes:
    if is_inf(pt):
        return bytes([_INFINITY_FLAG]) + bytes(G1_UNCOMPRESSED_SIZE - 1)
    x, y = normalize(pt)
    return x.n.to_bytes(FIELD_ELEMENT_SIZE, 'big') + y.n.to_bytes(FIELD_ELEMENT_SIZE, 'big')


def g1_from_uncompressed(data: bytes) -> Point:
    """
    Decode a 96-byte uncompressed G1 point (x || y).

    Raises:
        DecodeError: wrong length, compression/sort flag set, malformed
                     infinity, coordinates out of range, off-curve point
                     or point outside the subgroup
    """
    if len(data) != G1_UNCOMPRESSED_SIZE:
        raise DecodeError(f'Uncompressed G1 encoding must be {G1_UNCOMPRESSED_SIZE} bytes, '
                          f'got {len(data)}')

    flags = data[0]
    if flags & (_COMPRESSION_FLAG | _SORT_FLAG):
        raise DecodeError('Compression or sort flag set on uncompressed G1 encoding')
    if flags & _INFINITY_FLAG:
        if (flags & 0x1F) or any(data[1:]):
            raise DecodeError('Point at infinity must have an all-zero body')
        return Z1

    x = int.from_bytes(data[:FIELD_ELEMENT_SIZE], 'big')
    y = int.from_bytes(data[FIELD_ELEMENT_SIZE:], 'big')
    if x >= FIELD_MODULUS or y >= FIELD_MODULUS:
        raise DecodeError('G1 coordinate exceeds the field modulus')

    pt = (FQ(x), FQ(y), FQ.one())
    if not is_on_curve(pt, b):
        raise DecodeError('Point is not on the G1 curve')
    if not in_subgroup(pt):
        raise DecodeError('G1 point is not in the prime-order subgroup')
    return pt


def g2_to_bytes(pt: Point) -> bytes:
    return bytes(G2_to_signature(pt))


def g2_from_bytes(data: bytes) -> Point:
    """Decode a 96-byte compressed G2 point; DecodeError if invalid."""
    if len(data) != G2_COMPRESSED_SIZE:
        raise DecodeError(f'G2 encoding must be {G2_COMPRESSED_SIZE} bytes, got {len(data)}')
    try:
        pt = signature_to_G2(bytes(data))
    except ValueError as e:
        raise DecodeError(f'Invalid G2 encoding: {e}') from e
    if not in_subgroup(pt):
        raise DecodeError('G2 point is not in the prime-order subgroup')
    return pt


__all__ = [
    'G1', 'G2', 'Point', 'curve_order',
    'G1_COMPRESSED_SIZE', 'G1_UNCOMPRESSED_SIZE', 'G2_COMPRESSED_SIZE',
    'scalar_mul', 'point_add', 'point_neg', 'point_eq', 'is_identity', 'in_subgroup',
    'random_scalar', 'random_g1',
    'g1_to_bytes', 'g1_from_bytes', 'g1_to_uncompressed', 'g1_from_uncompressed',
    'g2_to_bytes', 'g2_from_bytes',
]
