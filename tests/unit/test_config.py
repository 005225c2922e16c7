"""
Tests for schemerge.config module.
"""

import pytest
import yaml

from schemerge.config import LoggingConfig, OutputConfig, ReconcilerConfig, SchemergeConfig
from schemerge.exceptions import ConfigurationError


@pytest.fixture
def config_file(tmp_path):
    """Write a YAML configuration and return its path."""
    def _write(content: str):
        path = tmp_path / "schemerge.yaml"
        path.write_text(content, encoding="utf-8")
        return path
    return _write


class TestDefaults:
    """Test default configuration values."""

    def test_defaults(self):
        """Test the defaults keep the plain merge behaviour."""
        config = SchemergeConfig()

        assert config.reconciler.id_strategy == "uuid"
        assert config.reconciler.id_prefix == "col-"
        assert config.reconciler.sync_foreign_keys is False
        assert config.reconciler.drop_unresolved_relationships is False
        assert config.reconciler.warn_unresolved_relationships is True
        assert config.output.format == "json"
        assert config.logging.level == "INFO"

    def test_invalid_strategy(self):
        """Test that unknown id strategies fail validation."""
        with pytest.raises(ValueError):
            ReconcilerConfig(id_strategy="sequence")

    def test_negative_indent(self):
        """Test that negative indentation is rejected."""
        with pytest.raises(ValueError):
            OutputConfig(indent=-1)


class TestFromYaml:
    """Test loading configuration files."""

    def test_load(self, config_file):
        """Test loading a complete file."""
        path = config_file(
            """
reconciler:
  id_strategy: counter
  id_prefix: "c-"
  sync_foreign_keys: true
output:
  format: yaml
logging:
  level: DEBUG
"""
        )
        config = SchemergeConfig.from_yaml(path)

        assert config.reconciler.id_strategy == "counter"
        assert config.reconciler.id_prefix == "c-"
        assert config.reconciler.sync_foreign_keys is True
        assert config.output.format == "yaml"
        assert config.logging.level == "DEBUG"

    def test_env_var_expansion(self, config_file, monkeypatch, tmp_path):
        """Test ${VAR} references are expanded."""
        monkeypatch.setenv("SCHEMERGE_TEST_LOG_DIR", str(tmp_path))
        path = config_file("logging:\n  file: ${SCHEMERGE_TEST_LOG_DIR}/schemerge.log\n")

        config = SchemergeConfig.from_yaml(path)

        assert config.logging.file == f"{tmp_path}/schemerge.log"

    def test_empty_file(self, config_file):
        """Test an empty file yields defaults."""
        config = SchemergeConfig.from_yaml(config_file(""))
        assert config.reconciler.id_strategy == "uuid"

    def test_missing_file(self, tmp_path):
        """Test missing files raise ConfigurationError."""
        with pytest.raises(ConfigurationError) as exc_info:
            SchemergeConfig.from_yaml(tmp_path / "nope.yaml")

        assert "not found" in str(exc_info.value)

    def test_invalid_yaml(self, config_file):
        """Test malformed YAML raises ConfigurationError."""
        with pytest.raises(ConfigurationError) as exc_info:
            SchemergeConfig.from_yaml(config_file("reconciler: [unclosed"))

        assert "Invalid YAML" in str(exc_info.value)

    def test_invalid_values(self, config_file):
        """Test invalid values raise ConfigurationError."""
        with pytest.raises(ConfigurationError) as exc_info:
            SchemergeConfig.from_yaml(config_file("reconciler:\n  id_strategy: sequence\n"))

        assert "Invalid configuration" in str(exc_info.value)

    def test_top_level_list(self, config_file):
        """Test a YAML list is not a configuration."""
        with pytest.raises(ConfigurationError):
            SchemergeConfig.from_yaml(config_file("- a\n- b\n"))


class TestEnvironment:
    """Test environment variable overrides."""

    def test_env_prefix(self, monkeypatch):
        """Test top-level settings from SCHEMERGE_ variables."""
        monkeypatch.setenv("SCHEMERGE_DEBUG", "true")
        assert SchemergeConfig().debug is True

    def test_nested_env(self, monkeypatch):
        """Test nested settings with the __ delimiter."""
        monkeypatch.setenv("SCHEMERGE_RECONCILER__ID_PREFIX", "env-")
        assert SchemergeConfig().reconciler.id_prefix == "env-"


class TestToYaml:
    """Test saving configuration files."""

    def test_round_trip(self, tmp_path):
        """Test a saved configuration loads back identically."""
        config = SchemergeConfig(
            reconciler=ReconcilerConfig(id_strategy="timestamp"),
            logging=LoggingConfig(level="WARNING"),
        )
        path = tmp_path / "out.yaml"
        config.to_yaml(path)

        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert data["reconciler"]["id_strategy"] == "timestamp"
        assert "file" not in data["logging"]
        assert SchemergeConfig.from_yaml(path) == config
