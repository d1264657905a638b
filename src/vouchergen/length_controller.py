"""Adaptive code length control.

Tracks the current code length and grows it by one symbol whenever a batch
collides with the ledger more often than the configured threshold allows.
"""

import logging

from vouchergen.config import ConfigError

# Configure logging
logger = logging.getLogger(__name__)

# Column width of the first voucher ledgers. Not enforced; growth past it is
# only reported.
ADVISORY_MAX_CODE_LENGTH = 8


def collision_ratio(batch_size: int, accepted_count: int) -> float:
    """Fraction of a batch rejected as collisions."""
    return (batch_size - accepted_count) / batch_size


class LengthController:
    """One-way ratchet over the code length.

    A high collision ratio means the code space at the current length is
    nearing saturation. One extra symbol multiplies the space by 62, which is
    normally enough to bring collisions back near zero.
    """

    def __init__(self, code_length: int, collision_threshold: float):
        """Initialize the controller.

        Args:
            code_length: Starting code length
            collision_threshold: Collision ratio above which the length grows,
                between 0 (inclusive) and 1 (exclusive)

        Raises:
            ConfigError: If either value is out of range
        """
        if not 0 <= collision_threshold < 1:
            raise ConfigError(
                f"Invalid collision_threshold {collision_threshold}: "
                "must be at least 0 and less than 1"
            )
        if code_length < 1:
            raise ConfigError(f"Invalid code_length {code_length}: must be positive")

        self._code_length = code_length
        self._collision_threshold = collision_threshold

    @property
    def code_length(self) -> int:
        return self._code_length

    @property
    def collision_threshold(self) -> float:
        return self._collision_threshold

    def observe(self, batch_size: int, accepted_count: int) -> bool:
        """Record the outcome of one batch.

        Args:
            batch_size: Number of candidates submitted
            accepted_count: Number of candidates the ledger accepted

        Returns:
            True if the code length grew
        """
        if batch_size == 0:
            return False

        ratio = collision_ratio(batch_size, accepted_count)
        if ratio <= self._collision_threshold:
            return False

        self._code_length += 1
        logger.info(
            f"Collision ratio {ratio:.3f} exceeded {self._collision_threshold}, "
            f"code length grown to {self._code_length}"
        )
        if self._code_length > ADVISORY_MAX_CODE_LENGTH:
            logger.warning(
                f"Code length {self._code_length} is beyond the advisory "
                f"maximum of {ADVISORY_MAX_CODE_LENGTH}"
            )
        return True
