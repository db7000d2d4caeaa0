"""
Identifier & Timestamp Utility

Record ids, ISO timestamps and simulated ledger hashes shared by every
mutator in the supply chain store. Clock and random source are passed in
so generators stay deterministic under test.
"""

from datetime import datetime, timezone
from typing import Callable, Protocol

ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
ID_LENGTH = 7

HASH_ALPHABET = "abcdef0123456789"
HASH_LENGTH = 64


class RandomSource(Protocol):
    """Anything with a ``random()`` returning floats in [0, 1)."""

    def random(self) -> float:
        ...


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


def pick(rng: RandomSource, options):
    """Uniform choice driven by a single draw from ``rng``."""
    return options[int(rng.random() * len(options))]


def new_id(prefix: str, rng: RandomSource) -> str:
    return prefix + "".join(pick(rng, ID_ALPHABET) for _ in range(ID_LENGTH))


def now_iso(clock: Clock) -> str:
    return clock().isoformat()


def today(clock: Clock) -> str:
    return clock().date().isoformat()


def generate_blockchain_hash(rng: RandomSource) -> str:
    """
    Simulated tamper-evidence token.

    64 lowercase hex characters. Not derived from any record content, so it
    proves nothing about prior state.
    """
    return "".join(pick(rng, HASH_ALPHABET) for _ in range(HASH_LENGTH))
