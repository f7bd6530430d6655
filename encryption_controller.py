#!/usr/bin/env python3
"""
encryption_controller.py

Controller managing threshold encryption keys, with APIs to:
1. Derive a public key from a DKG aggregated commitment (register_commitment)
2. Import an already-derived public key (register_public_key)
3. Encrypt payloads for a stored key (encrypt_for_session)

Files are kept in the following layout:
keys/
  ├── <session_id>/
  │   ├── metadata.json          # n, t, scaler, commitment, created_at
  │   └── pk.json                # Public key (compressed G1, hex)
  └── keystore.json              # Index of all sessions
"""

import json
import logging
import math
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from core.errors import InvalidInputError
from core.scaler import ConsensusParameters, get_consensus_threshold, get_scaler
from tpke import PublicKey, build_envelope

logger = logging.getLogger(__name__)

# Scaler searches run inline on the caller's thread; larger committees
# belong to benchmark_scaler or an offline job.
MAX_CONSENSUS_SIZE = 64
MAX_SCALER_QUORUMS = 50_000


class EncryptionController:
    """
    Key store and encryption front-end for threshold public keys.

    Features:
    - Derive keys from aggregated commitments and persist them
    - Encrypt messages for a stored key, optionally framed as an envelope
    - List and inspect sessions
    """

    def __init__(self, keys_dir: str = "keys",
                 max_consensus_size: int = MAX_CONSENSUS_SIZE,
                 max_quorums: int = MAX_SCALER_QUORUMS):
        """
        Args:
            keys_dir: Root directory for all sessions
            max_consensus_size: Largest committee accepted for scaler derivation
            max_quorums: Largest C(n, t) the scaler search may enumerate
        """
        self.max_consensus_size = max_consensus_size
        self.max_quorums = max_quorums
        self.keys_dir = Path(keys_dir)
        self.keys_dir.mkdir(parents=True, exist_ok=True)

        self.keystore_path = self.keys_dir / "keystore.json"
        self.keystore = self._load_keystore()
        self._public_keys: Dict[str, PublicKey] = {}

    def _load_keystore(self) -> Dict[str, Any]:
        """Load the keystore index, or start an empty one."""
        if self.keystore_path.exists():
            try:
                with open(self.keystore_path, 'r') as f:
                    data = json.load(f)
                    if "sessions" not in data:
                        data["sessions"] = {}
                    return data
            except (json.JSONDecodeError, IOError):
                logger.warning("Keystore %s unreadable, starting empty", self.keystore_path)
                return {"sessions": {}}
        return {"sessions": {}}

    def _save_keystore(self):
        with open(self.keystore_path, 'w') as f:
            json.dump(self.keystore, f, indent=2)

    def _new_session_dir(self, session_id: Optional[str]) -> Tuple[str, Path]:
        if session_id is None:
            session_id = f"session_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}"

        session_dir = self.keys_dir / session_id
        if session_id in self.keystore["sessions"] or session_dir.exists():
            raise ValueError(f"Session {session_id} already exists")
        session_dir.mkdir()
        return session_id, session_dir

    def _store(self, session_id: str, session_dir: Path,
               public_key: PublicKey, metadata: Dict[str, Any]) -> Dict[str, Any]:
        metadata_path = session_dir / "metadata.json"
        with open(metadata_path, 'w') as f:
            json.dump(metadata, f, indent=2)

        pk_path = session_dir / "pk.json"
        with open(pk_path, 'w') as f:
            json.dump({"public_key": public_key.hex()}, f, indent=2)

        self.keystore["sessions"][session_id] = {
            "metadata_path": str(metadata_path),
            "pk_path": str(pk_path),
            "n_parties": metadata.get("n_parties"),
            "threshold": metadata.get("threshold"),
            "created_at": metadata["created_at"]
        }
        self._save_keystore()
        self._public_keys[session_id] = public_key

        logger.info("Session %s stored: pk=%s", session_id, public_key.hex())
        return {
            "session_id": session_id,
            "public_key": public_key.hex(),
            "pk_path": str(pk_path),
            "metadata_path": str(metadata_path),
            **{k: metadata[k] for k in ("n_parties", "threshold", "scaler", "created_at")
               if k in metadata}
        }

    def consensus_parameters(self, n_parties: int,
                             threshold: Optional[int] = None) -> ConsensusParameters:
        """
        Validate (n, t) against the search limits of this controller.

        Raises:
            InvalidInputError: t out of range, n above max_consensus_size,
                               or C(n, t) above max_quorums
        """
        if n_parties > self.max_consensus_size:
            raise InvalidInputError(f"Consensus size {n_parties} exceeds the limit of "
                                    f"{self.max_consensus_size}")
        if threshold is None:
            threshold = get_consensus_threshold(n_parties)
        params = ConsensusParameters(n_parties, threshold)

        quorums = math.comb(params.n, params.t)
        if quorums > self.max_quorums:
            raise InvalidInputError(f"Scaler search for N={params.n}, T={params.t} covers "
                                    f"{quorums} quorums, limit is {self.max_quorums}")
        return params

    def compute_scaler(self, n_parties: int,
                       threshold: Optional[int] = None) -> Tuple[ConsensusParameters, int]:
        """Scaler for (n, t) within the controller's search limits."""
        params = self.consensus_parameters(n_parties, threshold)
        return params, get_scaler(params.n, params.t)

    def register_commitment(self,
                            commitment: bytes,
                            n_parties: int,
                            threshold: Optional[int] = None,
                            session_id: Optional[str] = None) -> Dict[str, Any]:
        """
        API 1: Derive the public key from a 128-byte aggregated commitment.

        Args:
            commitment: Aggregated commitment bytes from the DKG
            n_parties: Committee size n
            threshold: Decryption threshold t (BFT quorum of n if None)
            session_id: Session ID (auto-generated if None)

        Returns:
            {
                "session_id": str,
                "public_key": str (hex),
                "n_parties": int,
                "threshold": int,
                "scaler": str (decimal),
                "pk_path": str,
                "metadata_path": str,
                "created_at": str
            }
        """
        params = self.consensus_parameters(n_parties, threshold)

        logger.info("Deriving public key for N=%d, T=%d", params.n, params.t)
        t0 = time.perf_counter()
        scaler = get_scaler(params.n, params.t)
        public_key = PublicKey.from_aggregated_commitment(commitment, params)
        t1 = time.perf_counter()
        logger.info("Public key derived in %.2f ms (scaler=%d)", (t1 - t0) * 1000, scaler)

        session_id, session_dir = self._new_session_dir(session_id)
        metadata = {
            "session_id": session_id,
            "n_parties": params.n,
            "threshold": params.t,
            "scaler": str(scaler),
            "commitment": bytes(commitment).hex(),
            "scheme": "tpke-bls12-381",
            "created_at": datetime.now().isoformat()
        }
        return self._store(session_id, session_dir, public_key, metadata)

    def register_public_key(self,
                            pk_bytes: bytes,
                            session_id: Optional[str] = None) -> Dict[str, Any]:
        """API 2: Store an already-derived public key (48-byte compressed G1)."""
        public_key = PublicKey.from_bytes(pk_bytes)

        session_id, session_dir = self._new_session_dir(session_id)
        metadata = {
            "session_id": session_id,
            "scheme": "tpke-bls12-381",
            "created_at": datetime.now().isoformat()
        }
        return self._store(session_id, session_dir, public_key, metadata)

    def load_public_key(self, session_id: str) -> PublicKey:
        """Load (and cache) the public key of a session."""
        if session_id in self._public_keys:
            return self._public_keys[session_id]
        if session_id not in self.keystore["sessions"]:
            raise ValueError(f"Session {session_id} not found in keystore")

        with open(self.keystore["sessions"][session_id]["pk_path"], 'r') as f:
            public_key = PublicKey.from_hex(json.load(f)["public_key"])
        self._public_keys[session_id] = public_key
        return public_key

    def load_metadata(self, metadata_path: str) -> Dict[str, Any]:
        with open(metadata_path, 'r') as f:
            return json.load(f)

    def encrypt_for_session(self,
                            session_id: str,
                            message: bytes,
                            marked: bool = True) -> Dict[str, Any]:
        """
        API 3: Encrypt a message for the session's public key.

        Returns:
            {
                "session_id": str,
                "encrypted_key": str (hex),
                "encrypted_msg": str (hex),
                "envelope": str (hex),
                "encrypt_time_ms": float
            }
        """
        public_key = self.load_public_key(session_id)

        t0 = time.perf_counter()
        encrypted_key, encrypted_msg = public_key.encrypt(message)
        envelope = build_envelope(encrypted_key, encrypted_msg, marked=marked)
        t1 = time.perf_counter()

        logger.info("Session %s: encrypted %d bytes in %.2f ms",
                    session_id, len(message), (t1 - t0) * 1000)
        return {
            "session_id": session_id,
            "encrypted_key": encrypted_key.hex(),
            "encrypted_msg": encrypted_msg.hex(),
            "envelope": envelope.hex(),
            "encrypt_time_ms": (t1 - t0) * 1000
        }

    def list_sessions(self) -> List[Dict[str, Any]]:
        sessions = []
        for session_id, info in self.keystore["sessions"].items():
            sessions.append({
                "session_id": session_id,
                "n_parties": info["n_parties"],
                "threshold": info["threshold"],
                "created_at": info["created_at"],
                "pk_path": info["pk_path"]
            })
        return sessions

    def get_session_info(self, session_id: str) -> Dict[str, Any]:
        if session_id not in self.keystore["sessions"]:
            raise ValueError(f"Session {session_id} not found")

        session_info = self.keystore["sessions"][session_id]
        metadata = self.load_metadata(session_info["metadata_path"])

        return {
            "session_id": session_id,
            "metadata": metadata,
            "public_key": self.load_public_key(session_id).hex(),
            "pk_path": session_info["pk_path"],
            "keystore_entry": session_info
        }


# =====================================
# DEMO USAGE
# =====================================

DEMO_COMMITMENT = bytes.fromhex(
    '0000000000000000000000000000000004f1c7e8d68052701518e38b4b64a55e'
    '1ce35392f13b773bcda20a54a386e83a47641b98c7abf3d8212061c16604ca91'
    '00000000000000000000000000000000071f445019d9e972465b04eee6cc5e84'
    '2829f4103eeabe0e814c997034efbf4082f7505a53a39edf8efc61157bf4de66'
)


def demo_usage():
    """Example run of EncryptionController."""
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(name)s %(levelname)s %(message)s')

    controller = EncryptionController(keys_dir="keys")

    result = controller.register_commitment(DEMO_COMMITMENT, n_parties=7)
    print(f"Session:    {result['session_id']}")
    print(f"N/T:        {result['n_parties']}/{result['threshold']}")
    print(f"Scaler:     {result['scaler']}")
    print(f"Public key: {result['public_key']}")

    encrypted = controller.encrypt_for_session(result["session_id"], b"Test payload for threshold encryption")
    print(f"Envelope:   0x{encrypted['envelope']}")


if __name__ == '__main__':
    demo_usage()
