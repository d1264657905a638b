#!/usr/bin/env python3
"""Main entry point for the voucher code service.

This module initializes all components and starts the HTTP server.
"""

import logging
import sys
from pathlib import Path

from vouchergen.app import run_server
from vouchergen.config import Config, ConfigError
from vouchergen.storage import CodeStorage, StorageError
from vouchergen.voucher_handler import VoucherHandler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


def main():
    """Main entry point for the application."""
    logger.info("Starting voucher code service...")

    try:
        # Load configuration from environment variables and config file
        logger.info("Loading configuration...")
        config_file = "config.toml" if Path("config.toml").exists() else None
        config = Config.from_env_and_file(config_file)
        logger.info(f"Configuration loaded: {config}")

        # Validate storage path exists and is writable
        logger.info("Validating storage path...")
        config.validate_storage_path()

        # Provision the voucher ledger
        logger.info("Initializing storage...")
        storage = CodeStorage(str(config.database_path))
        logger.info(f"Storage initialized at: {config.database_path}")

        voucher_handler = VoucherHandler(storage, config)
        logger.info(
            f"Voucher handler initialized, code length "
            f"{voucher_handler.current_code_length()}"
        )

        logger.info(f"Starting HTTP server on port {config.listen_port}...")
        logger.info("Service is ready to accept requests")

        run_server(config, voucher_handler)

    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        logger.error("Please check your configuration and try again")
        sys.exit(1)
    except StorageError as e:
        logger.error(f"Storage initialization error: {e}")
        logger.error("Please check your storage path and database permissions")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully...")
        sys.exit(0)
    except Exception as e:
        logger.exception(f"Unexpected error during startup: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
