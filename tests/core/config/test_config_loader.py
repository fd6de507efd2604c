"""
Unit tests for configuration loader.

Tests multi-layer config merging, environment variable overrides,
caching, .env loading and conversion to generation settings.
"""

import json
import os

import pytest
from pydantic import ValidationError

from recbuilder.core.config import (
    clear_cache,
    get_project_config_path,
    get_user_config_path,
    load_config,
    load_layered_env,
)
from recbuilder.core.config.loader import (
    apply_env_overrides,
    deep_merge,
    get_default_config,
    load_json_file,
)
from recbuilder.core.config.models import EmitConfig, RecbuilderConfig

# ==============================================================================
# Helper Functions Tests
# ==============================================================================


class TestDeepMerge:
    """Test the deep_merge helper function."""

    def test_nested_merge(self):
        """Test merging nested dicts."""
        base = {"emit": {"annotate": True, "builder_suffix": "Builder"}}
        override = {"emit": {"builder_suffix": "Mutator"}, "extra": 1}
        assert deep_merge(base, override) == {
            "emit": {"annotate": True, "builder_suffix": "Mutator"},
            "extra": 1,
        }

    def test_override_replaces_lists(self):
        """Test that lists are replaced, not merged."""
        assert deep_merge({"a": [1, 2]}, {"a": [3]}) == {"a": [3]}


class TestLoadJsonFile:
    """Test JSON file loading."""

    def test_missing(self, tmp_path):
        """Test a missing file returns None."""
        assert load_json_file(tmp_path / "missing.json") is None

    def test_invalid_json(self, tmp_path):
        """Test invalid JSON returns None."""
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        assert load_json_file(path) is None

    def test_non_object(self, tmp_path):
        """Test a JSON array is ignored."""
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        assert load_json_file(path) is None


# ==============================================================================
# Environment Override Tests
# ==============================================================================


class TestEnvOverrides:
    """Test RECBUILDER_* overrides."""

    def test_builder_suffix(self, monkeypatch):
        """Test RECBUILDER_BUILDER_SUFFIX."""
        monkeypatch.setenv("RECBUILDER_BUILDER_SUFFIX", "Mutator")
        assert apply_env_overrides({})["emit"]["builder_suffix"] == "Mutator"

    @pytest.mark.parametrize(
        "value,expected", [("false", False), ("0", False), ("no", False), ("1", True), ("yes", True)]
    )
    def test_booleans(self, monkeypatch, value, expected):
        """Test boolean parsing of RECBUILDER_RECORD_PROTOCOL and RECBUILDER_ANNOTATE."""
        monkeypatch.setenv("RECBUILDER_RECORD_PROTOCOL", value)
        monkeypatch.setenv("RECBUILDER_ANNOTATE", value)
        emit = apply_env_overrides({})["emit"]
        assert emit["record_protocol"] is expected
        assert emit["annotate"] is expected

    def test_does_not_mutate_input(self, monkeypatch):
        """Test the input dict is left alone."""
        monkeypatch.setenv("RECBUILDER_ANNOTATE", "false")
        original = {"emit": {"annotate": True}}
        apply_env_overrides(original)
        assert original == {"emit": {"annotate": True}}

    def test_no_env(self):
        """Test nothing changes without variables."""
        assert apply_env_overrides({"a": 1}) == {"a": 1}


# ==============================================================================
# load_config Tests
# ==============================================================================


class TestLoadConfig:
    """Test layered configuration loading."""

    def test_defaults(self, tmp_path):
        """Test defaults with no config files."""
        config = load_config(project_dir=tmp_path, use_cache=False)
        assert config.emit.builder_suffix == "Builder"
        assert config.emit.record_protocol is True
        assert config.decorator_names == ("builder",)
        assert config.model_dump() == RecbuilderConfig(**get_default_config()).model_dump()

    def test_user_config(self, tmp_path):
        """Test the user config file is read from XDG_CONFIG_HOME."""
        path = get_user_config_path()
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"emit": {"annotate": False}}))
        config = load_config(project_dir=tmp_path, use_cache=False)
        assert config.emit.annotate is False

    def test_precedence(self, tmp_path, monkeypatch):
        """Test env > project > user > defaults."""
        user = get_user_config_path()
        user.parent.mkdir(parents=True)
        user.write_text(json.dumps({"emit": {"builder_suffix": "User", "annotate": False}}))
        get_project_config_path(tmp_path).write_text(
            json.dumps({"emit": {"builder_suffix": "Project"}})
        )

        config = load_config(project_dir=tmp_path, use_cache=False)
        assert config.emit.builder_suffix == "Project"
        assert config.emit.annotate is False

        monkeypatch.setenv("RECBUILDER_BUILDER_SUFFIX", "Env")
        config = load_config(project_dir=tmp_path, use_cache=False)
        assert config.emit.builder_suffix == "Env"

    def test_cache(self, tmp_path):
        """Test the cached config is reused until cleared."""
        first = load_config(project_dir=tmp_path)
        get_project_config_path(tmp_path).write_text(
            json.dumps({"emit": {"builder_suffix": "Changed"}})
        )
        assert load_config(project_dir=tmp_path) is first
        clear_cache()
        assert load_config(project_dir=tmp_path).emit.builder_suffix == "Changed"

    def test_invalid_suffix(self, tmp_path):
        """Test validation of merged config."""
        get_project_config_path(tmp_path).write_text(
            json.dumps({"emit": {"builder_suffix": "not valid"}})
        )
        with pytest.raises(ValidationError):
            load_config(project_dir=tmp_path, use_cache=False)


class TestConversions:
    """Test conversion to generation settings."""

    def test_to_rules(self):
        """Test type rules carry configured aliases."""
        config = RecbuilderConfig(types={"optional_aliases": ["Optional", "Maybe"]})
        assert config.to_rules().optional_aliases == ("Optional", "Maybe")

    def test_to_emit_options(self):
        """Test emit options mirror the emit section."""
        config = RecbuilderConfig(emit=EmitConfig(builder_suffix="Mutator", annotate=False))
        options = config.to_emit_options()
        assert options.builder_suffix == "Mutator"
        assert options.annotate is False
        assert options.record_protocol is True

    def test_bad_alias(self):
        """Test aliases must be identifiers."""
        with pytest.raises(ValidationError):
            RecbuilderConfig(types={"optional_aliases": ["not valid"]})


# ==============================================================================
# .env Loading Tests
# ==============================================================================


class TestLoadLayeredEnv:
    """Test .env loading precedence."""

    def test_project_overrides_user(self, tmp_path, monkeypatch):
        """Test project .env wins over user .env but not over OS env."""
        monkeypatch.delenv("RECBUILDER_TEST_A", raising=False)
        monkeypatch.setenv("RECBUILDER_TEST_B", "os")
        user_env = tmp_path / "user.env"
        user_env.write_text("RECBUILDER_TEST_A=user\nRECBUILDER_TEST_B=user\n")
        project_env = tmp_path / "project.env"
        project_env.write_text("RECBUILDER_TEST_A=project\nRECBUILDER_TEST_B=project\n")

        try:
            load_layered_env(user_env_paths=[user_env], project_env_paths=[project_env])
            assert os.environ["RECBUILDER_TEST_A"] == "project"
            assert os.environ["RECBUILDER_TEST_B"] == "os"
        finally:
            os.environ.pop("RECBUILDER_TEST_A", None)

    def test_missing_files(self, tmp_path):
        """Test missing .env files are ignored."""
        load_layered_env(
            user_env_paths=[tmp_path / "none.env"], project_env_paths=[tmp_path / "none2.env"]
        )
