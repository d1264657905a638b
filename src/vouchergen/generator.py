"""Batch generation of unique voucher codes.

Codes are drawn in batches, reconciled against the ledger, and the code length
is grown whenever a batch collides too often. Callers only say how many codes
they need.

Example:
    storage = CodeStorage("vouchers.db")
    code_length = storage.load_code_length(default=6)
    with CodeGenerator(storage.open_reconciler(), code_length) as generator:
        codes = generator.generate(10000)
        if generator.code_length > code_length:
            storage.save_code_length(generator.code_length)

The caller must persist ``code_length`` between runs. Starting every run from
the same small length would use up that whole code space instead of keeping
codes sparse.
"""

import logging
from typing import Optional

from vouchergen.config import ConfigError
from vouchergen.length_controller import LengthController
from vouchergen.random_draw import RandomDraw
from vouchergen.storage import UniquenessStore

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500
DEFAULT_COLLISION_THRESHOLD = 0.01


class CodeGenerator:
    """Generates unique random codes and records them in the ledger.

    The generator owns its store handle and closes it on ``close()`` or on
    leaving a ``with`` block. Instances are not thread-safe; run one per
    thread or process and let the ledger arbitrate between them.
    """

    def __init__(
        self,
        store: UniquenessStore,
        code_length: int,
        batch_size: int = DEFAULT_BATCH_SIZE,
        collision_threshold: float = DEFAULT_COLLISION_THRESHOLD,
        seed: Optional[int] = None,
    ):
        """Initialize the generator.

        Args:
            store: Ledger handle; ownership passes to the generator, which
                closes it even when construction fails
            code_length: Initial code length, normally the last persisted value
            batch_size: Number of codes to generate and reconcile at once
            collision_threshold: Fraction of a batch allowed to collide before
                the code length grows, between 0 (inclusive) and 1 (exclusive).
                Values above 0.5 make generation slow.
            seed: Seed for the random source (default: random)

        Raises:
            ConfigError: If batch_size, code_length or collision_threshold is invalid
        """
        try:
            if batch_size < 1:
                raise ConfigError(f"Invalid batch_size {batch_size}: must be positive")
            self._length = LengthController(code_length, collision_threshold)
        except ConfigError:
            # Never used, but ownership was handed over
            store.close()
            raise

        self._store = store
        self._draw = RandomDraw(seed)
        self._batch_size = batch_size
        self._closed = False

    @property
    def code_length(self) -> int:
        """Current code length. Persist this for the next run."""
        return self._length.code_length

    def generate(self, number_of_codes: int) -> list[str]:
        """Generate unique random codes and insert them into the ledger.

        Codes from later batches may be longer than earlier ones when the
        length grows during the call.

        Args:
            number_of_codes: The number of codes needed

        Returns:
            Exactly ``number_of_codes`` newly issued codes

        Raises:
            ValueError: If number_of_codes is negative
            RuntimeError: If the generator has been closed
            StorageError: If reconciliation fails; earlier batches stay issued
        """
        if number_of_codes < 0:
            raise ValueError(
                f"number_of_codes must not be negative, got {number_of_codes}"
            )
        if self._closed:
            raise RuntimeError("CodeGenerator is closed")

        result: list[str] = []

        while len(result) < number_of_codes:
            size = min(self._batch_size, number_of_codes - len(result))
            candidates = self._draw.batch(size, self.code_length)

            accepted = self._store.reconcile(candidates)
            result.extend(accepted)

            logger.debug(
                f"Batch of {size} at length {self.code_length}: {len(accepted)} accepted"
            )
            self._length.observe(size, len(accepted))

        logger.info(f"Generated {len(result)} codes, code length {self.code_length}")
        return result

    def close(self) -> None:
        """Release the store handle. Calling this again has no effect."""
        if self._closed:
            return

        self._closed = True
        self._store.close()

    def __enter__(self) -> "CodeGenerator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
