#!/usr/bin/env python3
"""
benchmark_scaler.py - Benchmark scaler search and per-message encryption

Two very different cost profiles:
- Scaler search: C(n, t) determinant reductions, done once per (n, t)
- Encryption: 3 G1 + 1 G2 scalar multiplications + AES, done per message

Metrics:
- Scaler search time and bit length for each committee size
- Average encryption time and ciphertext sizes
"""

import argparse
import json
import logging
import math
import statistics
import time

from core.scaler import get_consensus_threshold, search_scaler
from tpke import PublicKey, build_envelope

SAMPLE_PUBLIC_KEY = bytes.fromhex(
    'a5aa188d1c60a7173e59fe49b68b969999e70aa4c1acb76c5a3dd2ad0d19a859'
    'b1a2759e3995ce1ceccdea5a57fbf637'
)


def benchmark_scaler(n: int, t: int):
    print(f"  Scaler n={n:<3} t={t:<3} ({math.comb(n, t)} quorums)...", end=" ", flush=True)

    start = time.perf_counter()
    scaler = search_scaler(n, t)
    elapsed = time.perf_counter() - start

    print(f"✓ ({elapsed:.3f}s, {scaler.bit_length()} bits)")
    return {
        "n": n,
        "t": t,
        "quorums": math.comb(n, t),
        "scaler": str(scaler),
        "scaler_bits": scaler.bit_length(),
        "search_time": elapsed
    }


def benchmark_encryption(message_size: int, num_runs: int):
    public_key = PublicKey.from_bytes(SAMPLE_PUBLIC_KEY)
    message = bytes(range(256)) * (message_size // 256) + bytes(message_size % 256)

    times = []
    envelope = b''
    for _ in range(num_runs):
        start = time.perf_counter()
        encrypted_key, encrypted_msg = public_key.encrypt(message)
        envelope = build_envelope(encrypted_key, encrypted_msg)
        times.append(time.perf_counter() - start)

    return {
        "message_size": message_size,
        "runs": num_runs,
        "avg_encrypt_time": statistics.mean(times),
        "stdev_encrypt_time": statistics.stdev(times) if len(times) > 1 else 0.0,
        "envelope_size": len(envelope)
    }


def run_full_benchmark(max_size: int, num_runs: int, message_size: int):
    print("\n" + "="*80)
    print("SCALER SEARCH (t = BFT quorum of n)")
    print("="*80)

    scaler_results = []
    for n in range(1, max_size + 1):
        scaler_results.append(benchmark_scaler(n, get_consensus_threshold(n)))

    print("\n" + "="*80)
    print(f"ENCRYPTION ({num_runs} runs, {message_size}-byte message)")
    print("="*80)
    enc = benchmark_encryption(message_size, num_runs)

    print(f"\n{'n':<6} {'t':<6} {'Quorums':<10} {'Bits':<8} {'Search(s)':<12}")
    print("-"*80)
    for r in scaler_results:
        print(f"{r['n']:<6} {r['t']:<6} {r['quorums']:<10} {r['scaler_bits']:<8} {r['search_time']:<12.4f}")
    print("-"*80)
    print(f"\nEncrypt: {enc['avg_encrypt_time']*1000:.2f} ms ± {enc['stdev_encrypt_time']*1000:.2f} ms")
    print(f"Envelope size: {enc['envelope_size']} bytes")

    return {"scaler": scaler_results, "encryption": enc}


def main():
    parser = argparse.ArgumentParser(description="Benchmark scaler search and encryption")
    parser.add_argument("--max-size", type=int, default=10, help="largest committee size n")
    parser.add_argument("--runs", type=int, default=10, help="encryption runs")
    parser.add_argument("--message-size", type=int, default=110, help="payload bytes")
    parser.add_argument("--output", default="benchmark_scaler.json")
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING)

    results = run_full_benchmark(args.max_size, args.runs, args.message_size)

    with open(args.output, 'w') as f:
        json.dump(results, f, indent=2)
    print(f"\n✓ Results saved to: {args.output}")


if __name__ == '__main__':
    main()
