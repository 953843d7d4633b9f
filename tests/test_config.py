# Tests for SecureConfig
#
# Coverage:
#   - Defaults and vault_path
#   - PASSVAULT_SECTION__KEY environment overrides
#   - Sensitive-looking keys are ignored
#   - Validation and immutability
#   - Directory creation

import os
import platform
import stat
from pathlib import Path

import pytest

from passvault.core.config import (
    LoggingConfig,
    PathConfig,
    SecureConfig,
    VaultConfig,
)

class TestDefaults:
    def test_vault_filename(self):
        config = SecureConfig.load()
        assert config.vault.filename == "vault.dat"
        assert config.vault_path == config.paths.data_dir / "vault.dat"

    def test_paths_are_absolute(self):
        config = SecureConfig.load()
        assert config.paths.data_dir.is_absolute()
        assert config.paths.log_dir.is_absolute()

    def test_logging_defaults(self):
        config = SecureConfig.load()
        assert config.logging.level == "WARNING"
        assert config.logging.enable_console
        assert not config.logging.enable_file

class TestEnvironmentOverrides:
    def test_data_dir(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PASSVAULT_PATHS__DATA_DIR", str(tmp_path))
        config = SecureConfig.load()
        assert config.paths.data_dir == tmp_path
        assert config.vault_path == tmp_path / "vault.dat"

    def test_vault_filename(self, monkeypatch):
        monkeypatch.setenv("PASSVAULT_VAULT__FILENAME", "work.dat")
        assert SecureConfig.load().vault_path.name == "work.dat"

    def test_log_level_is_uppercased(self, monkeypatch):
        monkeypatch.setenv("PASSVAULT_LOGGING__LEVEL", "debug")
        assert SecureConfig.load().logging.level == "DEBUG"

    @pytest.mark.parametrize("value,expected", [("1", True), ("yes", True), ("off", False)])
    def test_boolean_flags(self, monkeypatch, value, expected):
        monkeypatch.setenv("PASSVAULT_LOGGING__ENABLE_FILE", value)
        monkeypatch.setenv("PASSVAULT_LOGGING__JSON_FORMAT", value)
        config = SecureConfig.load()
        assert config.logging.enable_file is expected
        assert config.logging.json_format is expected

    def test_custom_prefix(self, monkeypatch):
        monkeypatch.setenv("OTHER_LOGGING__LEVEL", "ERROR")
        assert SecureConfig.load(env_prefix="OTHER").logging.level == "ERROR"

    def test_sensitive_keys_ignored(self, monkeypatch):
        monkeypatch.setenv("PASSVAULT_VAULT__PASSPHRASE", "hunter2")
        monkeypatch.setenv("PASSVAULT_CRYPTO__SALT", "00")
        monkeypatch.setenv("PASSVAULT_LOGGING__LEVEL", "INFO")
        overrides = SecureConfig._parse_env_overrides("PASSVAULT")
        assert overrides == {"logging.level": "INFO"}

class TestValidation:
    def test_relative_data_dir(self):
        with pytest.raises(ValueError):
            PathConfig(data_dir=Path("relative"))

    @pytest.mark.parametrize("name", ["", "../vault.dat", "sub/vault.dat"])
    def test_vault_filename_must_be_plain(self, name):
        with pytest.raises(ValueError):
            VaultConfig(filename=name)

    def test_invalid_log_level(self):
        with pytest.raises(ValueError):
            LoggingConfig(level="LOUD")

    def test_immutable(self):
        config = SecureConfig.load()
        with pytest.raises(AttributeError):
            config._paths = PathConfig()

    def test_repr(self):
        config = SecureConfig.load()
        assert config.config_hash in repr(config)
        assert str(config.vault_path) in repr(config)


class TestDirectories:
    def test_creates_data_dir(self, tmp_path):
        data_dir = tmp_path / "data"
        log_dir = tmp_path / "logs"
        config = SecureConfig(paths=PathConfig(data_dir=data_dir, log_dir=log_dir))
        config.ensure_directories()
        assert data_dir.is_dir()
        assert not log_dir.exists()

    def test_creates_log_dir_when_file_logging(self, tmp_path):
        config = SecureConfig(
            paths=PathConfig(data_dir=tmp_path / "data", log_dir=tmp_path / "logs"),
            logging=LoggingConfig(enable_file=True),
        )
        config.ensure_directories()
        assert (tmp_path / "logs").is_dir()

    @pytest.mark.skipif(platform.system() == "Windows", reason="POSIX permissions")
    def test_owner_only(self, tmp_path):
        data_dir = tmp_path / "data"
        SecureConfig(paths=PathConfig(data_dir=data_dir, log_dir=tmp_path / "logs")).ensure_directories()
        assert stat.S_IMODE(os.stat(data_dir).st_mode) == 0o700

    @pytest.mark.skipif(platform.system() == "Windows", reason="POSIX permissions")
    def test_existing_dir_keeps_mode(self, tmp_path):
        shared = tmp_path / "shared"
        shared.mkdir()
        shared.chmod(0o755)
        SecureConfig(paths=PathConfig(data_dir=shared, log_dir=tmp_path / "logs")).ensure_directories()
        assert stat.S_IMODE(os.stat(shared).st_mode) == 0o755

    def test_skips_data_dir_on_request(self, tmp_path):
        data_dir = tmp_path / "data"
        config = SecureConfig(
            paths=PathConfig(data_dir=data_dir, log_dir=tmp_path / "logs"),
            logging=LoggingConfig(enable_file=True),
        )
        config.ensure_directories(include_data=False)
        assert not data_dir.exists()
        assert (tmp_path / "logs").is_dir()
