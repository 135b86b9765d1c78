# neardup/lsh/hash_family.py
"""
Seeded family of minhash functions.

Function ``i`` of a family is ``base_hash(token) ^ salt[i]``. The base hash is
a 64-bit blake2b digest, so it does not depend on ``PYTHONHASHSEED``; the
salts come from a ``random.Random`` seeded once per :func:`generate` call and
consumed in index order. Identical ``(seed, n)`` therefore gives identical
signatures in every process and on every machine.
"""
from __future__ import annotations

import hashlib
import random
from dataclasses import dataclass, field
from typing import Iterable, Tuple

import numpy as np

from ..core.types import Token
from ..errors import ConfigError

UINT64_MAX = 0xFFFFFFFFFFFFFFFF


@dataclass(frozen=True)
class HashFamily:
    """
    Immutable set of ``num_hashes`` salted hash functions.

    Two families are interchangeable only when built from the same seed and
    size; equality compares exactly those two fields plus the salts.
    """
    seed: int
    num_hashes: int
    salts: Tuple[int, ...]
    _salt_column: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if len(self.salts) != self.num_hashes:
            raise ConfigError(
                "salt count does not match num_hashes",
                parameter="salts",
                value=len(self.salts),
            )
        column = np.array(self.salts, dtype=np.uint64).reshape(-1, 1)
        column.setflags(write=False)
        # frozen dataclass: bypass __setattr__ for the derived field
        object.__setattr__(self, "_salt_column", column)

    def __len__(self) -> int:
        return self.num_hashes

    @property
    def salt_column(self) -> np.ndarray:
        """Salts as a read-only ``(num_hashes, 1)`` uint64 array."""
        return self._salt_column

    def hash_token(self, token: Token) -> Tuple[int, ...]:
        """Apply every function of the family to one token."""
        base = base_hash(token)
        return tuple(base ^ s for s in self.salts)

    def __reduce__(self):
        return (HashFamily, (self.seed, self.num_hashes, self.salts))


def generate(seed: int, n: int) -> HashFamily:
    """
    Build a hash family of ``n`` functions from ``seed``.

    Raises:
        ConfigError: if ``n`` is not positive.
    """
    if n <= 0:
        raise ConfigError(f"number of hash functions must be > 0, got {n}", parameter="n", value=n)
    rnd = random.Random(seed)
    salts = tuple(rnd.getrandbits(64) for _ in range(n))
    return HashFamily(seed=seed, num_hashes=n, salts=salts)


# ----------------------------
# Base hash
# ----------------------------

def token_bytes(token: Token) -> bytes:
    """
    Canonical byte form of a token.

    Strings hash as their UTF-8 bytes. Every other type is prefixed with a
    tag holding its type name, so ``1``, ``"1"`` and ``b"1"`` stay distinct.
    The tag starts with ``0xff``, which never occurs in UTF-8 text.
    """
    if isinstance(token, str):
        return token.encode("utf-8", errors="surrogatepass")
    cls = type(token)
    tag = b"\xff" + f"{cls.__module__}.{cls.__qualname__}".encode("utf-8") + b"\x00"
    if isinstance(token, bytes):
        return tag + token
    return tag + repr(token).encode("utf-8")


def base_hash(token: Token) -> int:
    """Stable 64-bit hash of a token."""
    digest = hashlib.blake2b(token_bytes(token), digest_size=8).digest()
    return int.from_bytes(digest, "little")


def base_hash_array(tokens: Iterable[Token]) -> np.ndarray:
    """Base hashes of ``tokens`` as a 1-D uint64 array."""
    return np.fromiter((base_hash(t) for t in tokens), dtype=np.uint64)
