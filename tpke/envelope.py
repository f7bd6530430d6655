#!/usr/bin/env python3
"""
envelope.py - Transport framing for hybrid ciphertexts

    [ff ff ff ff] || encrypted_key (192 bytes) || encrypted_msg

The 4-byte all-ones marker is a format tag for consumers that need to tell
encrypted envelopes apart from plain payloads; it carries no key material.
"""

from typing import Tuple

from core.errors import InvalidInputError
from core.symmetric import AES_BLOCK_SIZE

from .ciphertext import KEY_PART_SIZE

ENVELOPE_MARKER = b'\xff\xff\xff\xff'


def build_envelope(encrypted_key: bytes, encrypted_msg: bytes, marked: bool = True) -> bytes:
    if len(encrypted_key) != KEY_PART_SIZE:
        raise InvalidInputError(f'Encrypted key must be {KEY_PART_SIZE} bytes, got {len(encrypted_key)}')
    prefix = ENVELOPE_MARKER if marked else b''
    return prefix + bytes(encrypted_key) + bytes(encrypted_msg)


def parse_envelope(data: bytes, marked: bool = True) -> Tuple[bytes, bytes]:
    """
    Split an envelope back into (encrypted_key, encrypted_msg).

    Raises:
        InvalidInputError: missing marker, truncated key part, or a payload
                           that is not a positive multiple of the AES block
    """
    data = bytes(data)
    if marked:
        if not data.startswith(ENVELOPE_MARKER):
            raise InvalidInputError('Envelope marker missing')
        data = data[len(ENVELOPE_MARKER):]

    if len(data) < KEY_PART_SIZE:
        raise InvalidInputError(f'Envelope too short: {len(data)} bytes')

    encrypted_key = data[:KEY_PART_SIZE]
    encrypted_msg = data[KEY_PART_SIZE:]
    if len(encrypted_msg) == 0 or len(encrypted_msg) % AES_BLOCK_SIZE:
        raise InvalidInputError(f'Payload length {len(encrypted_msg)} is not a positive '
                                f'multiple of {AES_BLOCK_SIZE}')

    return encrypted_key, encrypted_msg
