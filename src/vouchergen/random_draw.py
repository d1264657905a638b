"""Random candidate code drawing using base62 symbols.

This module draws candidate voucher codes from a fixed 62-symbol alphabet
(A-Za-z0-9). Candidates are not checked for uniqueness here; that happens
when a batch is reconciled against the ledger.
"""

import random
import string
import uuid
from typing import Iterator, Optional

# Base62 alphabet: A-Za-z0-9
ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits


class RandomDraw:
    """Draws random codes from the base62 alphabet.

    Uses a pseudorandom generator seeded once, at construction, from a
    high-entropy value. Codes are statistically uniform but NOT suitable
    where unpredictability matters. Instances are not thread-safe.
    """

    def __init__(self, seed: Optional[int] = None):
        """Initialize the random source.

        Args:
            seed: Explicit seed for reproducible draws (default: random UUID4)
        """
        if seed is None:
            seed = uuid.uuid4().int
        self._random = random.Random(seed)

    def draw(self, length: int) -> str:
        """Draw a single code.

        Args:
            length: Number of symbols in the code

        Returns:
            Random code string of the given length

        Raises:
            ValueError: If length is less than 1
        """
        if length < 1:
            raise ValueError(f"Code length must be at least 1, got {length}")

        return "".join(self._random.choice(ALPHABET) for _ in range(length))

    def batch(self, size: int, length: int) -> Iterator[str]:
        """Lazily draw ``size`` candidate codes of ``length`` symbols.

        The returned iterator can only be consumed once. Duplicates are
        possible and left for the ledger to resolve.
        """
        for _ in range(size):
            yield self.draw(length)
