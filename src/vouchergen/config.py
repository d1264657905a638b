"""Configuration management for the voucher code service.

This module handles loading configuration from environment variables and config files,
with sensible defaults for optional values.
"""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Callable

# Configure logging
logger = logging.getLogger(__name__)


_ConfigValues = dict[str, Any]


class ConfigError(ValueError):
    """Raised when configuration is invalid or missing required values."""

    pass


# Environment variable -> (config key, parser)
_ENV_VARS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "LISTEN_PORT": ("listen_port", int),
    "INITIAL_CODE_LENGTH": ("initial_code_length", int),
    "BATCH_SIZE": ("batch_size", int),
    "COLLISION_THRESHOLD": ("collision_threshold", float),
    "MAX_CODES_PER_REQUEST": ("max_codes_per_request", int),
}

_INT_KEYS = ("listen_port", "initial_code_length", "batch_size", "max_codes_per_request")


def _defaults() -> _ConfigValues:
    return {
        "storage_path": "",  # Required, set from env/file or raise error
        "listen_port": 8080,
        "initial_code_length": 6,
        "batch_size": 500,
        "collision_threshold": 0.01,
        "max_codes_per_request": 10000,
    }


class Config:
    """Configuration for the voucher code service.

    Configuration is loaded with the following priority:
    1. Environment variables (highest priority)
    2. Configuration file (TOML format)
    3. Default values (lowest priority)

    Required configuration:
    - storage_path: Directory where the voucher ledger is stored

    Optional configuration:
    - listen_port: Port for HTTP server (default: 8080)
    - initial_code_length: Code length used before any length is persisted (default: 6)
    - batch_size: Codes generated and reconciled at once (default: 500)
    - collision_threshold: Collision ratio that triggers length growth (default: 0.01)
    - max_codes_per_request: Upper bound on codes issued per HTTP request (default: 10000)
    """

    def __init__(
        self,
        storage_path: str,
        listen_port: int = 8080,
        initial_code_length: int = 6,
        batch_size: int = 500,
        collision_threshold: float = 0.01,
        max_codes_per_request: int = 10000,
    ):
        """Initialize configuration with validated values.

        Args:
            storage_path: Directory where the voucher ledger is stored
            listen_port: Port for HTTP server
            initial_code_length: Starting code length for a fresh ledger
            batch_size: Number of codes per reconciliation batch
            collision_threshold: Collision ratio that triggers length growth
            max_codes_per_request: Upper bound on codes per HTTP request
        """
        self.storage_path = storage_path
        self.listen_port = listen_port
        self.initial_code_length = initial_code_length
        self.batch_size = batch_size
        self.collision_threshold = collision_threshold
        self.max_codes_per_request = max_codes_per_request

    @property
    def database_path(self) -> Path:
        """Path of the SQLite ledger inside the storage directory."""
        return Path(self.storage_path) / "vouchers.db"

    @classmethod
    def from_env_and_file(cls, config_file: str | None = None) -> "Config":
        """Load configuration from environment variables and optional config file.

        Environment variables take precedence over config file values.

        Environment variables:
        - STORAGE_PATH: Directory for the voucher ledger (required)
        - LISTEN_PORT: HTTP server port (optional, default: 8080)
        - INITIAL_CODE_LENGTH: Starting code length (optional, default: 6)
        - BATCH_SIZE: Codes per batch (optional, default: 500)
        - COLLISION_THRESHOLD: Growth threshold (optional, default: 0.01)
        - MAX_CODES_PER_REQUEST: Request cap (optional, default: 10000)

        Args:
            config_file: Path to TOML config file (optional)

        Returns:
            Config instance with loaded values

        Raises:
            ConfigError: If required configuration is missing or invalid
        """
        config_values = _defaults()

        # Load from config file if provided
        if config_file:
            file_config = cls._load_from_file(config_file)
            config_values.update(file_config)

        # Override with environment variables
        if "STORAGE_PATH" in os.environ:
            config_values["storage_path"] = os.environ["STORAGE_PATH"]

        # Check if STORAGE_PATH is still empty (not provided via env or file)
        if not config_values["storage_path"]:
            raise ConfigError("STORAGE_PATH is required")

        for env_name, (key, parse) in _ENV_VARS.items():
            if env_name in os.environ:
                try:
                    config_values[key] = parse(os.environ[env_name])
                except ValueError:
                    raise ConfigError(f"Invalid {env_name}: must be a number")

        cls._validate(config_values)

        logger.info(
            f"Configuration loaded: storage_path={config_values['storage_path']}, "
            f"listen_port={config_values['listen_port']}, "
            f"batch_size={config_values['batch_size']}, "
            f"collision_threshold={config_values['collision_threshold']}"
        )

        return cls(**config_values)

    @staticmethod
    def _load_from_file(config_file: str) -> _ConfigValues:
        """Load configuration from TOML file.

        Args:
            config_file: Path to TOML config file

        Returns:
            Dictionary of configuration values

        Raises:
            ConfigError: If file cannot be read or parsed
        """
        try:
            with open(config_file, "rb") as f:
                data = tomllib.load(f)
        except FileNotFoundError:
            raise ConfigError(f"Config file not found: {config_file}")
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Failed to parse config file: {e}")

        # Extract relevant configuration keys
        config = _defaults()
        for key in config:
            if key in data:
                config[key] = data[key]

        return config

    @staticmethod
    def _validate(values: _ConfigValues) -> None:
        """Validate loaded configuration values.

        Raises:
            ConfigError: If any value has the wrong type or is out of range
        """
        # TOML values arrive with whatever type the file gave them
        if not isinstance(values["storage_path"], str):
            raise ConfigError("Invalid storage_path: must be a string")

        for key in _INT_KEYS:
            if isinstance(values[key], bool) or not isinstance(values[key], int):
                logger.error(f"Invalid {key}: {values[key]!r}")
                raise ConfigError(f"Invalid {key}: must be an integer")

        threshold = values["collision_threshold"]
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            logger.error(f"Invalid collision_threshold: {threshold!r}")
            raise ConfigError("Invalid collision_threshold: must be a number")

        if not (1 <= values["listen_port"] <= 65535):
            logger.error(f"Invalid listen_port: {values['listen_port']}")
            raise ConfigError("Invalid listen_port: must be between 1 and 65535")

        for key in ("initial_code_length", "batch_size", "max_codes_per_request"):
            if values[key] < 1:
                logger.error(f"Invalid {key}: {values[key]}")
                raise ConfigError(f"Invalid {key}: must be a positive integer")

        if not (0 <= values["collision_threshold"] < 1):
            logger.error(f"Invalid collision_threshold: {values['collision_threshold']}")
            raise ConfigError(
                "Invalid collision_threshold: must be at least 0 and less than 1"
            )

    def validate_storage_path(self) -> None:
        """Validate that storage path exists and is writable.

        Raises:
            ConfigError: If storage path is invalid or not writable
        """
        path = Path(self.storage_path)

        # Create directory if it doesn't exist
        try:
            path.mkdir(parents=True, exist_ok=True)
            logger.info(f"Storage path validated: {self.storage_path}")
        except OSError as e:
            logger.error(f"Cannot create storage directory: {e}")
            raise ConfigError(f"Cannot create storage directory: {e}")

        # Check if writable
        if not os.access(path, os.W_OK):
            logger.error(f"Storage path is not writable: {self.storage_path}")
            raise ConfigError(f"Storage path is not writable: {self.storage_path}")

    def __repr__(self) -> str:
        """String representation of configuration."""
        return (
            f"Config(storage_path={self.storage_path!r}, "
            f"listen_port={self.listen_port}, "
            f"initial_code_length={self.initial_code_length}, "
            f"batch_size={self.batch_size}, "
            f"collision_threshold={self.collision_threshold})"
        )
