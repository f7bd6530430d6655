"""
tpke - Threshold public-key encryption over BLS12-381

Implements the encryption half of a threshold scheme:
- Public key derived from a DKG aggregated commitment, rescaled by the
  integer Lagrange scaler for (n, t)
- Hybrid encryption: ElGamal on G1 for a random key point + AES-256-CBC
  for the payload
- Envelope framing for transport
"""

from .public_key import (
    PublicKey,
    decode_aggregated_commitment,
    AGGREGATED_COMMITMENT_SIZE,
)

from .ciphertext import (
    BlsCipherText,
    bls_encrypt,
    hybrid_encrypt,
    threshold_decrypt,
    KEY_PART_SIZE,
)

from .envelope import (
    build_envelope,
    parse_envelope,
    ENVELOPE_MARKER,
)

__all__ = [
    'PublicKey',
    'decode_aggregated_commitment',
    'AGGREGATED_COMMITMENT_SIZE',
    'BlsCipherText',
    'bls_encrypt',
    'hybrid_encrypt',
    'threshold_decrypt',
    'KEY_PART_SIZE',
    'build_envelope',
    'parse_envelope',
    'ENVELOPE_MARKER',
]
