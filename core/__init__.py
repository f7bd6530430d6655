"""
Core primitives for BLS12-381 threshold encryption

This package contains:
- scaler: integer scaler for Lagrange interpolation over all quorums
- bls_group: G1/G2 arithmetic and point encodings (py_ecc)
- symmetric: AES-256-CBC payload encryption (cryptography)
- errors: error kinds shared by every module
"""

__version__ = "1.0.0"
