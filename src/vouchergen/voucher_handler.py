"""Voucher issuance handler.

This module ties the code generator to the ledger: it resumes from the
persisted code length, issues codes, and saves the length back when it grew.
"""

import logging

from vouchergen.config import Config, ConfigError
from vouchergen.generator import CodeGenerator
from vouchergen.storage import CodeStorage, StorageError

# Configure logging
logger = logging.getLogger(__name__)


class VoucherHandlerError(Exception):
    """Raised when voucher operations fail."""

    pass


class VoucherHandler:
    """Handles voucher issuance and lookup.

    Each call to ``issue_codes`` runs its own generator over a fresh ledger
    connection, so handlers can serve concurrent requests.
    """

    def __init__(self, storage: CodeStorage, config: Config):
        """Initialize voucher handler with dependencies.

        Args:
            storage: Storage instance holding the voucher ledger
            config: Configuration with generator settings
        """
        self.storage = storage
        self.config = config

    def current_code_length(self) -> int:
        """Code length the next issuance will start from.

        Raises:
            VoucherHandlerError: If the length cannot be loaded
        """
        try:
            return self.storage.load_code_length(self.config.initial_code_length)
        except StorageError as e:
            logger.error(f"Failed to load code length: {e}")
            raise VoucherHandlerError(f"Failed to load code length: {e}")

    def issue_codes(self, count: int) -> list[str]:
        """Issue ``count`` new unique codes.

        Args:
            count: Number of codes to issue

        Returns:
            List of newly issued codes

        Raises:
            VoucherHandlerError: If issuance fails. Codes from batches that
                completed before the failure remain issued.
        """
        if count < 0:
            raise VoucherHandlerError("Code count cannot be negative")

        code_length = self.current_code_length()

        try:
            with CodeGenerator(
                self.storage.open_reconciler(),
                code_length,
                batch_size=self.config.batch_size,
                collision_threshold=self.config.collision_threshold,
            ) as generator:
                try:
                    codes = generator.generate(count)
                finally:
                    # Keep length growth from completed batches even on failure
                    if generator.code_length > code_length:
                        self.storage.save_code_length(generator.code_length)
        except (StorageError, ConfigError) as e:
            logger.error(f"Failed to issue {count} codes: {e}")
            raise VoucherHandlerError(f"Failed to issue codes: {e}")

        logger.info(f"Issued {len(codes)} codes at length {generator.code_length}")
        return codes

    def is_issued(self, code: str) -> bool:
        """Check whether a code has been issued.

        Raises:
            VoucherHandlerError: If the lookup fails
        """
        try:
            return self.storage.exists(code)
        except StorageError as e:
            logger.error(f"Failed to look up code {code}: {e}")
            raise VoucherHandlerError(f"Failed to look up code: {e}")
