"""Unit tests for main entry point and startup validation.

Tests startup validation including:
- Missing required configuration (storage path)
- Invalid generator settings
- Successful startup with valid configuration
"""

import os
import sys
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from vouchergen.config import Config, ConfigError

# Root-level main.py is not part of the installed package
sys.path.insert(0, str(Path(__file__).parent.parent))


class TestStartupValidation:
    """Test startup validation scenarios."""

    def test_startup_failure_missing_storage_path(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ConfigError) as exc_info:
                Config.from_env_and_file()

            assert "STORAGE_PATH" in str(exc_info.value)

    def test_startup_failure_collision_threshold_of_one(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            env = {"STORAGE_PATH": tmpdir, "COLLISION_THRESHOLD": "1.0"}

            with patch.dict(os.environ, env, clear=True):
                with pytest.raises(ConfigError) as exc_info:
                    Config.from_env_and_file()

                assert "collision_threshold" in str(exc_info.value).lower()

    def test_startup_failure_non_numeric_batch_size(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            env = {"STORAGE_PATH": tmpdir, "BATCH_SIZE": "lots"}

            with patch.dict(os.environ, env, clear=True):
                with pytest.raises(ConfigError) as exc_info:
                    Config.from_env_and_file()

                assert "BATCH_SIZE" in str(exc_info.value)

    @pytest.mark.parametrize(
        "name", ["BATCH_SIZE", "INITIAL_CODE_LENGTH", "MAX_CODES_PER_REQUEST"]
    )
    def test_startup_failure_non_positive_integer(self, name):
        with tempfile.TemporaryDirectory() as tmpdir:
            env = {"STORAGE_PATH": tmpdir, name: "0"}

            with patch.dict(os.environ, env, clear=True):
                with pytest.raises(ConfigError) as exc_info:
                    Config.from_env_and_file()

                assert name.lower() in str(exc_info.value)

    def test_startup_failure_invalid_listen_port(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            env = {"STORAGE_PATH": tmpdir, "LISTEN_PORT": "99999"}  # Out of valid range

            with patch.dict(os.environ, env, clear=True):
                with pytest.raises(ConfigError) as exc_info:
                    Config.from_env_and_file()

                assert "listen_port" in str(exc_info.value).lower()

    def test_successful_startup_with_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with patch.dict(os.environ, {"STORAGE_PATH": tmpdir}, clear=True):
                config = Config.from_env_and_file()

                assert config.storage_path == tmpdir
                assert config.listen_port == 8080
                assert config.initial_code_length == 6
                assert config.batch_size == 500
                assert config.collision_threshold == 0.01
                assert config.max_codes_per_request == 10000
                assert config.database_path == Path(tmpdir) / "vouchers.db"

    def test_environment_overrides_config_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / "config.toml"
            config_file.write_text(
                f'storage_path = "{tmpdir}"\n'
                "batch_size = 250\n"
                "collision_threshold = 0.05\n"
                "initial_code_length = 7\n"
            )
            env = {"BATCH_SIZE": "100"}

            with patch.dict(os.environ, env, clear=True):
                config = Config.from_env_and_file(str(config_file))

                assert config.storage_path == tmpdir
                assert config.batch_size == 100
                assert config.collision_threshold == 0.05
                assert config.initial_code_length == 7

    def test_missing_config_file_raises_error(self):
        with patch.dict(os.environ, {"STORAGE_PATH": "/tmp"}, clear=True):
            with pytest.raises(ConfigError) as exc_info:
                Config.from_env_and_file("/nonexistent/config.toml")

            assert "not found" in str(exc_info.value)

    def test_malformed_config_file_raises_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / "config.toml"
            config_file.write_text("batch_size = = 3\n")

            with patch.dict(os.environ, {"STORAGE_PATH": tmpdir}, clear=True):
                with pytest.raises(ConfigError):
                    Config.from_env_and_file(str(config_file))

    @pytest.mark.parametrize(
        "line, key",
        [
            ("batch_size = 2.5", "batch_size"),
            ('batch_size = "500"', "batch_size"),
            ("initial_code_length = true", "initial_code_length"),
            ('listen_port = "8080"', "listen_port"),
            ("max_codes_per_request = 1e3", "max_codes_per_request"),
            ('collision_threshold = "0.01"', "collision_threshold"),
            ("collision_threshold = false", "collision_threshold"),
        ],
    )
    def test_config_file_value_of_wrong_type_raises_error(self, line, key):
        """Mistyped TOML values fail at load time instead of during issuance."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / "config.toml"
            config_file.write_text(f"{line}\n")

            with patch.dict(os.environ, {"STORAGE_PATH": tmpdir}, clear=True):
                with pytest.raises(ConfigError) as exc_info:
                    Config.from_env_and_file(str(config_file))

                assert key in str(exc_info.value)

    def test_config_file_integer_threshold_is_accepted(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / "config.toml"
            config_file.write_text("collision_threshold = 0\n")

            with patch.dict(os.environ, {"STORAGE_PATH": tmpdir}, clear=True):
                config = Config.from_env_and_file(str(config_file))

                assert config.collision_threshold == 0

    def test_storage_path_validation_creates_directory(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage_path = os.path.join(tmpdir, "vouchers", "storage")

            with patch.dict(os.environ, {"STORAGE_PATH": storage_path}, clear=True):
                config = Config.from_env_and_file()

                assert not Path(storage_path).exists()

                config.validate_storage_path()

                assert Path(storage_path).exists()
                assert os.access(storage_path, os.W_OK)

    def test_main_exits_on_configuration_error(self):
        import main

        with patch.dict(os.environ, {}, clear=True):
            with patch.object(main, "run_server") as run_server:
                with pytest.raises(SystemExit) as exc_info:
                    main.main()

        assert exc_info.value.code == 1
        run_server.assert_not_called()

    def test_main_starts_server_with_provisioned_ledger(self):
        import main

        with tempfile.TemporaryDirectory() as tmpdir:
            with patch.dict(os.environ, {"STORAGE_PATH": tmpdir}, clear=True):
                with patch.object(main, "run_server") as run_server:
                    main.main()

            run_server.assert_called_once()
            config, handler = run_server.call_args.args
            assert config.storage_path == tmpdir
            assert (Path(tmpdir) / "vouchers.db").exists()
            assert handler.current_code_length() == 6
