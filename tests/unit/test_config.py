"""
Unit tests for configuration and the command line.
"""

import pytest

from staticserver.__main__ import build_parser, config_from_args
from staticserver.config import ServerConfig


ENV_VARS = ["HOST", "PORT", "STATIC_ROOT", "APP_ENV", "LOG_LEVEL",
            "LOG_FORMAT", "WORKERS", "HTTP_TIMEOUT", "CORS"]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestServerConfig:
    """Tests for ServerConfig defaults and validation."""

    def test_defaults(self):
        """Test the documented defaults."""
        config = ServerConfig()
        assert config.port == 3000
        assert config.root_dir == "public"
        assert config.index_file == "index.html"
        assert config.not_found_page == "404.html"
        assert config.environment == "development"
        assert config.cors is False

    def test_valid_config(self, site):
        """Test that a sane config validates."""
        ServerConfig(root_dir=str(site)).validate()

    @pytest.mark.parametrize("overrides", [
        {"port": 0},
        {"port": 70000},
        {"min_workers": 0},
        {"min_workers": 8, "max_workers": 4},
        {"queue_size": 0},
        {"buffer_size": 100},
        {"chunk_size": 100},
        {"timeout": 0},
        {"keep_alive_timeout": 0},
        {"compression_level": 0},
        {"compression_level": 10},
        {"brotli_quality": 12},
        {"log_format": "xml"},
    ])
    def test_invalid_values(self, site, overrides):
        """Test each validation rule."""
        with pytest.raises(ValueError):
            ServerConfig(root_dir=str(site), **overrides).validate()

    def test_missing_root(self, tmp_path):
        """Test the static root must exist."""
        with pytest.raises(ValueError, match="does not exist"):
            ServerConfig(root_dir=str(tmp_path / "nope")).validate()

    def test_relative_root_uses_working_directory(self, site, monkeypatch):
        """Test the default "public" root is found from the working directory."""
        monkeypatch.chdir(site.parent)
        ServerConfig().validate()

    def test_relative_root_elsewhere_is_missing(self, tmp_path, monkeypatch):
        """Test the default root is not looked up beside the package."""
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ValueError, match="does not exist"):
            ServerConfig().validate()


class TestFromEnv:
    """Tests for ServerConfig.from_env."""

    def test_defaults_without_env(self, clean_env):
        """Test that an empty environment gives the defaults."""
        config = ServerConfig.from_env()
        assert config.port == 3000
        assert config.host == "127.0.0.1"
        assert config.cors is False

    def test_port(self, clean_env):
        """Test PORT."""
        clean_env.setenv("PORT", "8080")
        assert ServerConfig.from_env().port == 8080

    def test_invalid_port(self, clean_env):
        """Test a non-numeric PORT."""
        clean_env.setenv("PORT", "eighty")
        with pytest.raises(ValueError):
            ServerConfig.from_env()

    def test_other_variables(self, clean_env):
        """Test the remaining variables."""
        clean_env.setenv("HOST", "0.0.0.0")
        clean_env.setenv("STATIC_ROOT", "dist")
        clean_env.setenv("APP_ENV", "production")
        clean_env.setenv("LOG_FORMAT", "json")
        clean_env.setenv("WORKERS", "2")
        clean_env.setenv("HTTP_TIMEOUT", "7.5")
        clean_env.setenv("CORS", "yes")

        config = ServerConfig.from_env()
        assert config.host == "0.0.0.0"
        assert config.root_dir == "dist"
        assert config.environment == "production"
        assert config.log_format == "json"
        assert config.max_workers == 2
        assert config.min_workers == 2
        assert config.timeout == 7.5
        assert config.cors is True


class TestCommandLine:
    """Tests for flag parsing."""

    def test_flags_override_env(self, clean_env):
        """Test that flags win over the environment."""
        clean_env.setenv("PORT", "8080")
        args = build_parser().parse_args(["--port", "9000", "--root", "dist", "--cors"])
        config = config_from_args(args)

        assert config.port == 9000
        assert config.root_dir == "dist"
        assert config.cors is True

    def test_unset_flags_keep_base(self):
        """Test missing flags leave the base config alone."""
        base = ServerConfig(port=1234, cors=True)
        config = config_from_args(build_parser().parse_args([]), base=base)
        assert config.port == 1234
        assert config.cors is True

    def test_workers(self):
        """Test --workers caps both pool bounds."""
        args = build_parser().parse_args(["-w", "2"])
        config = config_from_args(args, base=ServerConfig())
        assert config.max_workers == 2
        assert config.min_workers == 2
