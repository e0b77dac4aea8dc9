# src/mosaic/helper/hashlock.py
from __future__ import annotations

import logging
import secrets
from typing import Callable, Optional

from eth_utils import encode_hex, keccak

from mosaic.core.errors import EntropyUnavailable, InvalidArgument
from mosaic.core.models import HashLock
from mosaic.helper.validation import is_hex

logger = logging.getLogger(__name__)

SECRET_SIZE_BYTES = 16

EntropySource = Callable[[int], bytes]


def _keccak_hex(value: str) -> str:
    """
    keccak256 with the web3 input convention: a 0x-prefixed hex string is
    hashed as the bytes it encodes, anything else as UTF-8 text.
    """
    if is_hex(value) and len(value) % 2 == 0:
        return encode_hex(keccak(hexstr=value))
    return encode_hex(keccak(text=value))


class HashLockGenerator:
    """
    Produces fresh HashLock commitments.

    The entropy source is injectable so tests can pin it:

        gen = HashLockGenerator(entropy=lambda n: b"\\x01" * n)
        gen.generate().secret == "01" * 16

    A HashLock must never be reused across messages: anyone who saw the
    secret of an earlier message could unlock the new one prematurely.
    """

    def __init__(self, entropy: Optional[EntropySource] = None) -> None:
        self._entropy: EntropySource = entropy or secrets.token_bytes

    def generate(self) -> HashLock:
        try:
            raw = self._entropy(SECRET_SIZE_BYTES)
        except (NotImplementedError, OSError) as exc:
            raise EntropyUnavailable(f"Secure random source unavailable: {exc}.") from exc
        if not isinstance(raw, (bytes, bytearray)):
            raise EntropyUnavailable(
                f"Entropy source returned {type(raw).__name__}, expected bytes."
            )
        if len(raw) != SECRET_SIZE_BYTES:
            raise EntropyUnavailable(
                f"Entropy source returned {len(raw)} bytes, "
                f"expected {SECRET_SIZE_BYTES}."
            )
        logger.debug("Generated new hash lock secret")
        return self.from_secret(bytes(raw).hex())

    @staticmethod
    def from_secret(secret: str) -> HashLock:
        """Deterministically rebuild the HashLock for a known secret."""
        if not isinstance(secret, str) or not secret:
            raise InvalidArgument(f"Invalid secret: {secret}.")
        unlock_secret = _keccak_hex(secret)
        hash_lock = _keccak_hex(unlock_secret)
        return HashLock(secret=secret, unlock_secret=unlock_secret, hash_lock=hash_lock)


_default_generator = HashLockGenerator()


def create_secret_hash_lock() -> HashLock:
    """Generate a HashLock from the process-wide secure random source."""
    return _default_generator.generate()


def to_hash_lock(secret: str) -> HashLock:
    return HashLockGenerator.from_secret(secret)
