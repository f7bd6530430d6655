#!/usr/bin/env python3
"""
scaler.py - Integer scaler for Lagrange interpolation at zero

Reconstruction of a Feldman-VSS secret happens in an additive group, where
shares can only be multiplied by integers. The Lagrange coefficients

    λ_i = C_i0 / det(V)        (V = Vandermonde matrix of the quorum x_i)

are rational, so we look for the smallest D such that D·λ_i is an integer
for EVERY size-t quorum drawn from {1, ..., n}:

    D = lcm over all quorums Q of |det(V_Q) / gcd(det(V_Q), C_Q)|

D depends only on (n, t). The search is combinatorial (C(n, t) subsets),
so results are memoised process-wide.
"""

import logging
import math
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from .errors import InvalidInputError, ScalerSearchCancelled

logger = logging.getLogger(__name__)


# ============================================================================
# CONSENSUS PARAMETERS
# ============================================================================

def get_consensus_threshold(consensus_size: int) -> int:
    """
    BFT quorum threshold for a committee of n members: t = n - floor((n-1)/3).

    Example: n=7 -> t=5.
    """
    if consensus_size < 1:
        raise InvalidInputError(f'Consensus size must be positive, got {consensus_size}')
    return consensus_size - (consensus_size - 1) // 3


@dataclass(frozen=True)
class ConsensusParameters:
    """Participant count n and decryption threshold t (1 <= t <= n)."""
    n: int
    t: int

    def __post_init__(self):
        if self.n < 1:
            raise InvalidInputError(f'Participant count must be positive, got n={self.n}')
        if self.t < 1 or self.t > self.n:
            raise InvalidInputError(f'Threshold t={self.t} invalid for n={self.n}')

    @classmethod
    def from_size(cls, consensus_size: int) -> 'ConsensusParameters':
        return cls(consensus_size, get_consensus_threshold(consensus_size))


# ============================================================================
# EXACT INTEGER DETERMINANTS
# ============================================================================

def _bareiss_determinant(matrix: np.ndarray) -> int:
    """
    Fraction-free Gaussian elimination (Bareiss) over Python integers.

    Every division is exact, so entries stay integral and no precision is
    lost no matter how large the Vandermonde powers grow.
    """
    size = matrix.shape[0]
    if size == 0:
        return 1

    m = matrix.copy()
    sign = 1
    prev = 1
    for k in range(size - 1):
        if m[k, k] == 0:
            swap = next((i for i in range(k + 1, size) if m[i, k] != 0), None)
            if swap is None:
                return 0
            m[[k, swap]] = m[[swap, k]]
            sign = -sign
        for i in range(k + 1, size):
            m[i, k + 1:] = (m[i, k + 1:] * m[k, k] - m[i, k] * m[k, k + 1:]) // prev
        prev = m[k, k]

    return sign * int(m[size - 1, size - 1])


def determinant(matrix: np.ndarray) -> Tuple[int, List[int]]:
    """
    Laplace expansion along the first column.

    Args:
        matrix: square integer matrix (dtype=object)

    Returns:
        (d, coeff) where d = det(matrix) and coeff[i] is the signed
        cofactor C_i0 = (-1)^i · det(minor(i, 0))
    """
    order = matrix.shape[0]
    if order == 1:
        return int(matrix[0, 0]), [1]

    value = 0
    coeff = []
    sign = 1
    for i in range(order):
        minor = np.delete(np.delete(matrix, i, axis=0), 0, axis=1)
        cofactor = sign * _bareiss_determinant(minor)
        value += int(matrix[i, 0]) * cofactor
        coeff.append(cofactor)
        sign = -sign

    return value, coeff


def feldman_reduce(matrix: np.ndarray) -> Tuple[int, List[int]]:
    """
    Reduce det(V) and its column-0 cofactors by their common gcd.

    The returned denominator is positive; cofactor signs are flipped along
    with it so that coeff[i] / d is still the Lagrange coefficient λ_i.
    """
    d, coeff = determinant(matrix)
    if d == 0:
        raise InvalidInputError('Interpolation matrix is singular')

    g = d
    for c in coeff:
        g = math.gcd(g, c)

    d //= g
    coeff = [c // g for c in coeff]
    if d < 0:
        d = -d
        coeff = [-c for c in coeff]

    return d, coeff


# ============================================================================
# QUORUM SEARCH
# ============================================================================

def _search_lcm(matrix: np.ndarray, result: int, pos: int, start: int,
                size: int, threshold: int,
                cancel: Optional[threading.Event]) -> int:
    """
    Backtracking over strictly increasing index sequences.

    Row `pos` of the scratch matrix is overwritten with the Vandermonde row
    of x = i + 1; rows [0, pos) already hold the current prefix.
    """
    if cancel is not None and cancel.is_set():
        raise ScalerSearchCancelled(f'Scaler search for n={size}, t={threshold} cancelled')

    if pos == threshold:
        d, _ = feldman_reduce(matrix)
        return math.lcm(result, d)

    # Leave room for the threshold - pos - 1 indices still to be chosen
    for i in range(start, size - threshold + pos + 1):
        x = i + 1
        matrix[pos, :] = [x ** j for j in range(threshold)]
        result = _search_lcm(matrix, result, pos + 1, i + 1, size, threshold, cancel)

    return result


def search_scaler(size: int, threshold: int,
                  cancel: Optional[threading.Event] = None) -> int:
    """
    Compute the scaler for (n, t) without consulting the cache.

    Args:
        size: participant count n
        threshold: quorum size t
        cancel: optional event; once set, the search raises
                ScalerSearchCancelled at the next subset boundary

    Returns:
        Smallest positive D making D·λ_i integral for every t-subset
    """
    params = ConsensusParameters(size, threshold)
    logger.debug('Searching scaler for n=%d, t=%d over %d quorums',
                 params.n, params.t, math.comb(params.n, params.t))

    matrix = np.zeros((params.t, params.t), dtype=object)
    scaler = _search_lcm(matrix, 1, 0, 0, params.n, params.t, cancel)

    logger.debug('Scaler for n=%d, t=%d is %d', params.n, params.t, scaler)
    return scaler


# ============================================================================
# PROCESS-WIDE CACHE
# ============================================================================

_SCALER_CACHE: Dict[Tuple[int, int], int] = {}
_PENDING: Dict[Tuple[int, int], threading.Event] = {}
_CACHE_LOCK = threading.Lock()


def get_scaler(size: int, threshold: int,
               cancel: Optional[threading.Event] = None) -> int:
    """
    Memoised scaler lookup.

    The first caller for a key computes it; concurrent callers for the same
    key wait for that computation. If it fails or is cancelled, the waiters
    retry on their own.
    """
    params = ConsensusParameters(size, threshold)
    key = (params.n, params.t)

    while True:
        with _CACHE_LOCK:
            if key in _SCALER_CACHE:
                return _SCALER_CACHE[key]
            pending = _PENDING.get(key)
            owner = pending is None
            if owner:
                pending = threading.Event()
                _PENDING[key] = pending

        if owner:
            break

        while not pending.wait(timeout=0.1):
            if cancel is not None and cancel.is_set():
                raise ScalerSearchCancelled(
                    f'Wait for scaler n={params.n}, t={params.t} cancelled')

    try:
        scaler = search_scaler(params.n, params.t, cancel=cancel)
        with _CACHE_LOCK:
            _SCALER_CACHE[key] = scaler
        return scaler
    finally:
        with _CACHE_LOCK:
            _PENDING.pop(key, None)
        pending.set()


def clear_scaler_cache():
    """Drop every memoised scaler."""
    with _CACHE_LOCK:
        _SCALER_CACHE.clear()
