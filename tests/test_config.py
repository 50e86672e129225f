"""
Tests for the configuration loader and generator.

Tests YAML loading, validation of keys and values, field mapping
construction, and default config generation.
"""

import logging
import stat

import pytest
import yaml

from gcontact_notion.config import (
    ConfigError,
    ConfigLoader,
    build_field_mappings,
    generate_default_config,
    save_config_file,
)
from gcontact_notion.sync.mapping import CONTACT_FIELDS


@pytest.fixture
def loader(tmp_path):
    return ConfigLoader(config_dir=tmp_path)


class TestConfigLoaderLoad:
    """Tests for loading configuration files."""

    def test_config_path(self, tmp_path):
        """Test that the config path joins directory and file name."""
        assert ConfigLoader(config_dir=tmp_path).config_path == tmp_path / "config.yaml"

    def test_missing_file_returns_empty_dict(self, loader):
        """Test graceful handling of a missing file."""
        assert loader.load() == {}

    def test_empty_file_returns_empty_dict(self, loader):
        """Test that an empty file is an empty configuration."""
        loader.config_path.write_text("")

        assert loader.load() == {}

    def test_load_values(self, loader):
        """Test that YAML values are returned as a dictionary."""
        loader.config_path.write_text("database_id: abc123\npage_size: 50\n")

        assert loader.load() == {"database_id": "abc123", "page_size": 50}

    def test_invalid_yaml_raises(self, loader):
        """Test that unparsable YAML raises ConfigError."""
        loader.config_path.write_text("database_id: [unclosed\n")

        with pytest.raises(ConfigError, match="Failed to parse YAML"):
            loader.load()

    def test_non_dict_raises(self, loader):
        """Test that a top-level list is rejected."""
        loader.config_path.write_text("- a\n- b\n")

        with pytest.raises(ConfigError, match="must contain a YAML dictionary"):
            loader.load()

    def test_load_and_validate(self, loader):
        """Test the combined load and validation."""
        loader.config_path.write_text("page_size: 0\n")

        with pytest.raises(ConfigError, match="page_size must be between"):
            loader.load_and_validate()


class TestConfigLoaderValidate:
    """Tests for ConfigLoader.validate."""

    def test_valid_config(self, loader):
        """Test that a complete valid configuration passes."""
        loader.validate(
            {
                "database_id": "abc",
                "page_size": 200,
                "primary_policy": "first",
                "ensure_schema": True,
                "include_deleted": False,
                "api_max_retries": 3,
                "api_initial_retry_delay": 0.5,
                "api_max_retry_delay": 30,
                "verbose": True,
                "log_retention_count": 0,
                "field_mappings": {"email": "E-mail"},
            }
        )

    def test_unknown_key_warns(self, loader, caplog):
        """Test that unknown keys are ignored with a warning."""
        with caplog.at_level(logging.WARNING):
            loader.validate({"colour": "blue"})

        assert "Ignoring unknown configuration key 'colour'" in caplog.text

    @pytest.mark.parametrize(
        "config",
        [
            {"page_size": "100"},
            {"page_size": True},
            {"verbose": "yes"},
            {"field_mappings": ["email"]},
            {"api_initial_retry_delay": "1"},
        ],
    )
    def test_wrong_types_raise(self, loader, config):
        with pytest.raises(ConfigError, match="Invalid type"):
            loader.validate(config)

    @pytest.mark.parametrize(
        "config, message",
        [
            ({"page_size": 1001}, "page_size must be between"),
            ({"primary_policy": "random"}, "Invalid primary_policy"),
            ({"api_max_retries": 0}, "api_max_retries must be >= 1"),
            ({"log_retention_count": -1}, "log_retention_count must be >= 0"),
            ({"api_max_retry_delay": 0}, "api_max_retry_delay must be > 0"),
            ({"database_id": "  "}, "database_id must not be empty"),
        ],
    )
    def test_out_of_range_values_raise(self, loader, config, message):
        with pytest.raises(ConfigError, match=message):
            loader.validate(config)

    def test_invalid_field_mappings_raise(self, loader):
        """Test that mapping errors surface during validation."""
        with pytest.raises(ConfigError, match="Invalid field_mappings"):
            loader.validate({"field_mappings": {"shoe_size": "Shoes"}})


class TestBuildFieldMappings:
    """Tests for build_field_mappings."""

    def test_defaults_without_section(self):
        """Test that every contact field gets a mapping."""
        mappings = build_field_mappings({})

        assert [m.field_key for m in mappings] == list(CONTACT_FIELDS)

    def test_overrides_apply(self):
        """Test that configured entries replace the defaults."""
        mappings = {
            m.field_key: m
            for m in build_field_mappings(
                {"field_mappings": {"email": {"name": "E-mail"}, "phone": None}}
            )
        }

        assert mappings["email"].property_name == "E-mail"
        assert not mappings["phone"].is_mapped

    def test_mapping_onto_join_key_raises(self):
        """Test that no field may target the resource name property."""
        with pytest.raises(ConfigError, match="holds the Google resource name"):
            build_field_mappings({"field_mappings": {"notes": "Resource Name"}})

    def test_custom_join_key_checked(self):
        """Test that the configured join key is the one protected."""
        with pytest.raises(ConfigError, match="'Google ID'"):
            build_field_mappings(
                {"join_key_property": "Google ID", "field_mappings": {"notes": "Google ID"}}
            )


class TestGenerator:
    """Tests for default config generation."""

    def test_generated_config_loads_as_empty(self):
        """Test that every option is commented out."""
        assert yaml.safe_load(generate_default_config()) is None

    def test_generated_config_documents_options(self):
        """Test that the main options are mentioned."""
        content = generate_default_config()

        for key in ("database_id", "page_size", "primary_policy", "field_mappings"):
            assert key in content

    def test_save_config_file(self, tmp_path):
        """Test that the file is written with owner-only permissions."""
        path = tmp_path / "sub" / "config.yaml"

        success, error = save_config_file(path)

        assert success is True
        assert error is None
        assert path.read_text() == generate_default_config()
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_save_config_file_refuses_overwrite(self, tmp_path):
        """Test that existing files are kept without overwrite."""
        path = tmp_path / "config.yaml"
        path.write_text("database_id: keep\n")

        success, error = save_config_file(path)

        assert success is False
        assert "already exists" in error
        assert path.read_text() == "database_id: keep\n"

    def test_save_config_file_overwrite(self, tmp_path):
        """Test that overwrite replaces the file."""
        path = tmp_path / "config.yaml"
        path.write_text("database_id: old\n")

        success, _ = save_config_file(path, overwrite=True)

        assert success is True
        assert "database_id: old" not in path.read_text()
