"""Tests for configuration loading (JSON and YAML)."""

from __future__ import annotations

from pydantic import ValidationError
import pytest

from apihub.core.config.loader import (
    LOG_LEVEL_ENV,
    detect_format,
    load_app_config,
    load_build_config,
    load_config,
)
from apihub.core.config.models import AppConfig, IngestionConfig, LoggingConfig


class TestDetectFormat:
    """Format detection from the file suffix."""

    @pytest.mark.parametrize(
        ("name", "fmt"),
        [("a.json", "json"), ("a.yaml", "yaml"), ("a.YML", "yaml"), ("dir/a.Json", "json")],
    )
    def test_known_suffixes(self, name, fmt):
        assert detect_format(name) == fmt

    def test_unknown_suffix(self):
        with pytest.raises(ValueError, match="Unsupported config format: .toml"):
            detect_format("config.toml")


class TestLoadConfig:
    """Raw dictionary loading."""

    def test_json(self, write_file):
        path = write_file("config.json", {"logging": {"level": "DEBUG"}})
        assert load_config(path) == {"logging": {"level": "DEBUG"}}

    def test_yaml(self, write_file):
        path = write_file("config.yaml", "logging:\n  level: WARNING\n")
        assert load_config(path) == {"logging": {"level": "WARNING"}}

    def test_empty_yaml(self, write_file):
        assert load_config(write_file("empty.yml", "")) == {}

    def test_yaml_not_a_mapping(self, write_file):
        with pytest.raises(ValueError, match="Expected mapping"):
            load_config(write_file("list.yaml", "- a\n- b\n"))

    def test_invalid_yaml(self, write_file):
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config(write_file("bad.yaml", "a: [unclosed\n"))

    def test_invalid_json(self, write_file):
        with pytest.raises(ValueError, match="Invalid JSON"):
            load_config(write_file("bad.json", "{nope"))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.json")


class TestAppConfig:
    """Application config models and loader."""

    def test_defaults(self):
        config = AppConfig()

        assert config.logging.level == "INFO"
        assert config.logging.structured is False
        assert config.logging.filename is None
        assert config.ingestion.max_archive_bytes == 100 * 1024 * 1024
        assert config.ingestion.default_format == "json"

    def test_invalid_level(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="VERBOSE")

    def test_non_positive_archive_limit(self):
        with pytest.raises(ValidationError):
            IngestionConfig(max_archive_bytes=0)

    def test_absent_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)
        config = load_app_config(tmp_path / "absent.yaml")
        assert config == AppConfig()

    def test_load_yaml(self, write_file, monkeypatch):
        monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)
        path = write_file(
            "app.yaml",
            "logging:\n  level: DEBUG\n  structured: true\ningestion:\n  max_archive_bytes: 1024\n",
        )

        config = load_app_config(path)

        assert config.logging.level == "DEBUG"
        assert config.logging.structured is True
        assert config.ingestion.max_archive_bytes == 1024

    def test_invalid_file(self, write_file):
        path = write_file("app.json", {"logging": {"level": "LOUD"}})
        with pytest.raises(ValidationError):
            load_app_config(path)

    def test_env_override(self, write_file, monkeypatch):
        """APIHUB_LOG_LEVEL replaces the configured level."""
        monkeypatch.setenv(LOG_LEVEL_ENV, "error")
        path = write_file("app.json", {"logging": {"level": "DEBUG"}})

        assert load_app_config(path).logging.level == "ERROR"


class TestLoadBuildConfig:
    """Build config files."""

    def test_json(self, write_file, build_config_data):
        config = load_build_config(write_file("build-config.json", build_config_data))

        assert config.package_id == "pkg"
        assert [f.file_id for f in config.files] == ["api.yaml"]
        assert config.files[0].publish is True

    def test_yaml(self, write_file):
        path = write_file(
            "build-config.yaml",
            "packageId: pkg\nversion: '2.0'\nnoChangeLog: true\nfiles:\n  - fileId: api.yaml\n",
        )

        config = load_build_config(path)

        assert config.version == "2.0"
        assert config.no_changelog is True
        assert config.files[0].publish is None
