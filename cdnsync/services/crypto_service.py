"""Symmetric encryption for envelopes staged at rest.

An envelope is ``IV || ciphertext`` produced by AES in CFB mode. The IV is
drawn fresh for every call, so one key can safely be shared by every worker.
"""

from __future__ import annotations

import os

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from cdnsync.exceptions import ConfigurationError, InvalidCiphertext

KEY_SIZE = 32
BLOCK_SIZE = algorithms.AES.block_size // 8


def _build_algorithm(key: bytes) -> algorithms.AES:
    if len(key) != KEY_SIZE:
        msg = f"Encryption key must be {KEY_SIZE} bytes, got {len(key)}"
        raise ConfigurationError(msg)
    return algorithms.AES(key)


def _encrypt(algorithm: algorithms.AES, plaintext: bytes) -> bytes:
    iv = os.urandom(BLOCK_SIZE)
    encryptor = Cipher(algorithm, modes.CFB(iv)).encryptor()
    return iv + encryptor.update(plaintext) + encryptor.finalize()


def _decrypt(algorithm: algorithms.AES, envelope: bytes) -> bytes:
    if len(envelope) < BLOCK_SIZE:
        msg = f"Ciphertext is too short: {len(envelope)} bytes"
        raise InvalidCiphertext(msg)
    iv, ciphertext = envelope[:BLOCK_SIZE], envelope[BLOCK_SIZE:]
    decryptor = Cipher(algorithm, modes.CFB(iv)).decryptor()
    return decryptor.update(ciphertext) + decryptor.finalize()


def encrypt_envelope(plaintext: bytes, key: bytes) -> bytes:
    """Encrypt bytes and return ``IV || ciphertext``."""
    return _encrypt(_build_algorithm(key), plaintext)


def decrypt_envelope(envelope: bytes, key: bytes) -> bytes:
    """Decrypt an envelope. Raises InvalidCiphertext if it cannot hold an IV."""
    return _decrypt(_build_algorithm(key), envelope)


class EnvelopeCipher:
    """Process-wide cipher holding the validated key, shared by all workers."""

    def __init__(self, key: bytes) -> None:
        self._algorithm = _build_algorithm(key)

    def encrypt(self, plaintext: bytes) -> bytes:
        return _encrypt(self._algorithm, plaintext)

    def decrypt(self, envelope: bytes) -> bytes:
        return _decrypt(self._algorithm, envelope)
