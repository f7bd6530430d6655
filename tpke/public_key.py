#!/usr/bin/env python3
"""
public_key.py - Threshold public key on G1

The DKG publishes an aggregated Feldman commitment to the group secret.
Its 128-byte ABI packing holds one uncompressed G1 point:

    [  0,  16)  padding
    [ 16,  64)  x  (48 bytes, big-endian)
    [ 64,  80)  padding
    [ 80, 128)  y  (48 bytes, big-endian)

The effective encryption key is that point multiplied by the scaler D for
(n, t), so that a quorum can later reconstruct with integer coefficients.
"""

from typing import Tuple

from core.bls_group import (
    Point, scalar_mul, point_eq, is_identity,
    g1_to_bytes, g1_from_bytes, g1_from_uncompressed,
)
from core.errors import DecodeError, InvalidInputError
from core.scaler import ConsensusParameters, get_scaler

from .ciphertext import hybrid_encrypt

AGGREGATED_COMMITMENT_SIZE = 128
_X_RANGE = (16, 64)
_Y_RANGE = (80, 128)


def decode_aggregated_commitment(commitment: bytes) -> Point:
    """Extract the G1 point from a 128-byte aggregated commitment."""
    if len(commitment) != AGGREGATED_COMMITMENT_SIZE:
        raise InvalidInputError(f'Invalid aggregated commitment: expected '
                                f'{AGGREGATED_COMMITMENT_SIZE} bytes, got {len(commitment)}')
    raw = bytes(commitment[_X_RANGE[0]:_X_RANGE[1]]) + bytes(commitment[_Y_RANGE[0]:_Y_RANGE[1]])
    return _reject_identity(g1_from_uncompressed(raw))


def _reject_identity(pt: Point) -> Point:
    # Encrypting to the identity leaves C = M, exposing the payload key
    if is_identity(pt):
        raise DecodeError('Public key must not be the point at infinity')
    return pt


class PublicKey:
    """Immutable wrapper around the effective threshold public key point."""

    __slots__ = ('_pg1',)

    def __init__(self, pg1: Point):
        object.__setattr__(self, '_pg1', pg1)

    def __setattr__(self, name, value):
        raise AttributeError('PublicKey is immutable')

    @property
    def pg1(self) -> Point:
        return self._pg1

    @classmethod
    def from_aggregated_commitment(cls, aggregated_commitment: bytes,
                                   parameters: ConsensusParameters) -> 'PublicKey':
        """
        Decode the commitment point and rescale it by get_scaler(n, t).

        Raises:
            InvalidInputError: commitment is not 128 bytes
            DecodeError: embedded point is not a valid G1 point, or is the
                         point at infinity
        """
        pg1 = decode_aggregated_commitment(aggregated_commitment)
        scaler = get_scaler(parameters.n, parameters.t)
        return cls(scalar_mul(pg1, scaler))

    @classmethod
    def create(cls, aggregated_commitment: bytes, consensus_size: int) -> 'PublicKey':
        """Same as from_aggregated_commitment with the BFT threshold for n."""
        return cls.from_aggregated_commitment(
            aggregated_commitment, ConsensusParameters.from_size(consensus_size))

    @classmethod
    def from_bytes(cls, data: bytes) -> 'PublicKey':
        return cls(_reject_identity(g1_from_bytes(data)))

    @classmethod
    def from_hex(cls, value: str) -> 'PublicKey':
        if value.startswith('0x'):
            value = value[2:]
        try:
            data = bytes.fromhex(value)
        except ValueError as e:
            raise InvalidInputError(f'Public key is not valid hex: {e}') from e
        return cls.from_bytes(data)

    def to_bytes(self) -> bytes:
        return g1_to_bytes(self._pg1)

    def hex(self) -> str:
        return self.to_bytes().hex()

    def encrypt(self, msg: bytes) -> Tuple[bytes, bytes]:
        """Returns (encrypted_key, encrypted_msg); see tpke.ciphertext."""
        return hybrid_encrypt(self._pg1, msg)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        return point_eq(self._pg1, other._pg1)

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __repr__(self) -> str:
        return f'PublicKey({self.hex()})'
