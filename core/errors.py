#!/usr/bin/env python3
"""
errors.py - Error kinds for the threshold encryption scheme

All errors are raised at the point of detection and are never retried:
re-running a failed encode/decode with the same input cannot succeed.
"""


class TpkeError(Exception):
    """Base class for every error raised by this package."""


class InvalidInputError(TpkeError, ValueError):
    """Wrong-length commitment, empty plaintext, bad (n, t), bad envelope."""


class DecodeError(TpkeError, ValueError):
    """Bytes do not encode a valid point of the prime-order subgroup."""


class UnimplementedError(TpkeError, NotImplementedError):
    """Operation intentionally not provided (verification, threshold decryption)."""


class ScalerSearchCancelled(TpkeError):
    """The combinatorial scaler search was aborted by its caller."""
