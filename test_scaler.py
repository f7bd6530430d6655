#!/usr/bin/env python3
"""
Test the integer Lagrange scaler search
"""
import threading
import time
from fractions import Fraction
from itertools import combinations

import numpy as np
import pytest

import core.scaler as scaler_mod
from core.errors import InvalidInputError, ScalerSearchCancelled
from core.scaler import (
    ConsensusParameters,
    _bareiss_determinant,
    clear_scaler_cache,
    determinant,
    feldman_reduce,
    get_consensus_threshold,
    get_scaler,
    search_scaler,
)


def lagrange_at_zero(xs):
    """Reference Lagrange-at-zero coefficients over the rationals."""
    coeffs = []
    for i in xs:
        lam = Fraction(1)
        for j in xs:
            if j != i:
                lam *= Fraction(j, j - i)
        coeffs.append(lam)
    return coeffs


def integral_for_all_quorums(d, n, t):
    return all((d * lam).denominator == 1
               for xs in combinations(range(1, n + 1), t)
               for lam in lagrange_at_zero(xs))


def test_consensus_threshold():
    """t = n - floor((n-1)/3)"""
    expected = {1: 1, 2: 2, 3: 3, 4: 3, 5: 4, 6: 5, 7: 5, 10: 7, 100: 67}
    for n, t in expected.items():
        assert get_consensus_threshold(n) == t
    assert ConsensusParameters.from_size(7) == ConsensusParameters(7, 5)


def test_invalid_parameters():
    with pytest.raises(InvalidInputError):
        ConsensusParameters(3, 4)
    with pytest.raises(InvalidInputError):
        ConsensusParameters(3, 0)
    with pytest.raises(InvalidInputError):
        get_consensus_threshold(0)
    with pytest.raises(InvalidInputError):
        search_scaler(2, 5)


def test_bareiss_with_zero_pivot():
    m = np.array([[0, 2, 1], [1, 0, 3], [4, 5, 6]], dtype=object)
    assert _bareiss_determinant(m) == 17
    assert _bareiss_determinant(np.array([[1, 2], [2, 4]], dtype=object)) == 0


def test_determinant_and_cofactors():
    """Vandermonde for x = 1, 2, 3"""
    v = np.array([[1, 1, 1], [1, 2, 4], [1, 3, 9]], dtype=object)
    d, coeff = determinant(v)
    assert d == 2
    assert coeff == [6, -6, 2]

    d, coeff = feldman_reduce(v)
    assert d == 1
    assert coeff == [3, -3, 1]


def test_feldman_reduce_normalises_sign():
    # x = 3, 1 (descending) gives a negative determinant
    v = np.array([[1, 3], [1, 1]], dtype=object)
    d, coeff = feldman_reduce(v)
    assert d == 2
    assert [Fraction(c, d) for c in coeff] == lagrange_at_zero([3, 1])


def test_known_small_scalers():
    assert search_scaler(1, 1) == 1
    assert search_scaler(5, 1) == 1
    assert search_scaler(3, 2) == 2
    assert search_scaler(4, 2) == 6
    assert search_scaler(4, 3) == 3


def test_full_committee_needs_no_scaling():
    """t = n with x = 1..n has integral coefficients (-1)^(i+1) C(n, i)"""
    for n in range(1, 7):
        assert search_scaler(n, n) == 1


def test_scaler_is_minimal_and_sufficient():
    for n in range(2, 8):
        for t in range(1, n + 1):
            d = search_scaler(n, t)
            assert integral_for_all_quorums(d, n, t), (n, t)
            for p in range(2, d + 1):
                if d % p == 0 and all(p % q for q in range(2, p)):
                    assert not integral_for_all_quorums(d // p, n, t), (n, t, p)


def test_scaler_deterministic_and_cached():
    clear_scaler_cache()
    first = get_scaler(7, 5)
    second = get_scaler(7, 5)
    assert first == second == search_scaler(7, 5)
    assert (7, 5) in scaler_mod._SCALER_CACHE


def test_cancelled_search():
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(ScalerSearchCancelled):
        search_scaler(10, 7, cancel=cancel)

    clear_scaler_cache()
    with pytest.raises(ScalerSearchCancelled):
        get_scaler(6, 5, cancel=cancel)
    assert (6, 5) not in scaler_mod._PENDING
    assert get_scaler(6, 5) == search_scaler(6, 5)


def test_concurrent_callers_compute_once(monkeypatch):
    clear_scaler_cache()
    calls = []
    original = scaler_mod.search_scaler

    def slow_search(size, threshold, cancel=None):
        calls.append((size, threshold))
        time.sleep(0.2)
        return original(size, threshold, cancel=cancel)

    monkeypatch.setattr(scaler_mod, 'search_scaler', slow_search)

    results = []
    threads = [threading.Thread(target=lambda: results.append(get_scaler(6, 4)))
               for _ in range(5)]
    for th in threads:
        th.start()
    for th in threads:
        th.join()

    assert calls == [(6, 4)]
    assert len(set(results)) == 1 and len(results) == 5


def test_waiters_recover_from_failed_computation(monkeypatch):
    clear_scaler_cache()
    started = threading.Event()
    release = threading.Event()
    calls = []
    original = scaler_mod.search_scaler

    def flaky_search(size, threshold, cancel=None):
        calls.append((size, threshold))
        if len(calls) == 1:
            started.set()
            release.wait(5)
            raise RuntimeError('worker lost')
        return original(size, threshold, cancel=cancel)

    monkeypatch.setattr(scaler_mod, 'search_scaler', flaky_search)

    results, errors = [], []

    def call():
        try:
            results.append(get_scaler(5, 3))
        except RuntimeError as e:
            errors.append(e)

    first = threading.Thread(target=call)
    first.start()
    assert started.wait(5)

    waiters = [threading.Thread(target=call) for _ in range(3)]
    for th in waiters:
        th.start()

    # a waiter whose own token is set gives up without touching the search
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(ScalerSearchCancelled):
        get_scaler(5, 3, cancel=cancel)
    assert len(calls) == 1

    release.set()
    first.join(5)
    for th in waiters:
        th.join(5)

    assert len(errors) == 1
    assert results == [original(5, 3)] * 3
    assert scaler_mod._SCALER_CACHE[(5, 3)] == original(5, 3)
    assert (5, 3) not in scaler_mod._PENDING
