"""
Unit tests for ScannerSettings.
Verifies defaults, DUPLY_* parsing and validation errors.
"""
from pathlib import Path

import pytest

from duplicate_scanner import ConfigError, ScannerSettings
from duplicate_scanner.config import DEFAULT_CHUNK_SIZE, DEFAULT_MAX_SCANS, PROGRESS_STEP


class TestScannerSettings:
    def test_defaults(self):
        settings = ScannerSettings()
        assert settings.hash_method == "sha256"
        assert settings.chunk_size == DEFAULT_CHUNK_SIZE
        assert settings.max_concurrent_scans == DEFAULT_MAX_SCANS
        assert settings.file_timeout_seconds is None
        assert settings.progress_step == PROGRESS_STEP

    def test_from_env_reads_prefixed_variables(self):
        settings = ScannerSettings.from_env(
            {
                "DUPLY_ENV": "PROD",
                "DUPLY_HASH_METHOD": "SHA512",
                "DUPLY_CHUNK_SIZE": "4096",
                "DUPLY_MAX_SCANS": "2",
                "DUPLY_FILE_TIMEOUT": "1.5",
                "DUPLY_PROGRESS_STEP": "10",
                "DUPLY_LOG_DIR": "/var/log/duply",
                "DUPLY_LOG_TO_FILE": "no",
            }
        )
        assert settings.environment == "prod"
        assert settings.hash_method == "sha512"
        assert settings.chunk_size == 4096
        assert settings.max_concurrent_scans == 2
        assert settings.file_timeout_seconds == 1.5
        assert settings.progress_step == 10
        assert settings.log_dir == Path("/var/log/duply")
        assert settings.log_to_file is False

    def test_from_env_with_empty_mapping_uses_defaults(self):
        assert ScannerSettings.from_env({}) == ScannerSettings()

    @pytest.mark.parametrize(
        "env",
        [
            {"DUPLY_CHUNK_SIZE": "big"},
            {"DUPLY_FILE_TIMEOUT": "soon"},
            {"DUPLY_LOG_TO_FILE": "maybe"},
            {"DUPLY_HASH_METHOD": "md5"},
            {"DUPLY_MAX_SCANS": "0"},
            {"DUPLY_FILE_TIMEOUT": "0"},
        ],
    )
    def test_invalid_values_raise_config_error(self, env):
        with pytest.raises(ConfigError):
            ScannerSettings.from_env(env)

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            ScannerSettings(chunk_size=0)
