"""Tests for configuration models."""

import pytest
from pydantic import ValidationError

from vmimage.models.config import BuilderConfig, FilePlacement, RecipeConfig, SupervisorConfig


class TestSupervisorConfig:
    """Test SupervisorConfig model."""

    def test_default_values(self):
        """Test default supervisor knobs."""
        config = SupervisorConfig()

        assert config.shutdown_timeout == 30.0
        assert config.stop_timeout == 10.0
        assert config.restart_delay == 1.0
        assert config.max_restarts is None
        assert config.hook_path == "/etc/vmimage/shutdown-hook.sh"

    def test_timeouts_must_be_positive(self):
        with pytest.raises(ValidationError) as exc_info:
            SupervisorConfig(shutdown_timeout=0)

        assert "shutdown_timeout" in str(exc_info.value)

    def test_negative_restarts_rejected(self):
        with pytest.raises(ValidationError):
            SupervisorConfig(max_restarts=-1)

    def test_hook_path_must_be_absolute(self):
        with pytest.raises(ValidationError) as exc_info:
            SupervisorConfig(hook_path="hooks/stop.sh")

        assert "hook_path" in str(exc_info.value)


class TestFilePlacement:
    """Test FilePlacement model."""

    def test_defaults(self):
        placement = FilePlacement()

        assert placement.path is None
        assert placement.mode == 0o644
        assert placement.chown is None

    @pytest.mark.parametrize("mode,expected", [("0666", 0o666), ("644", 0o644), (0o440, 0o440)])
    def test_mode_parsing(self, mode, expected):
        """Test octal string and integer modes."""
        assert FilePlacement(mode=mode).mode == expected

    @pytest.mark.parametrize("mode", ["rw-r--r--", "0999", 0o17777, True])
    def test_invalid_modes(self, mode):
        with pytest.raises(ValidationError):
            FilePlacement(mode=mode)

    def test_chown(self):
        assert FilePlacement(owner="postgres").chown == "postgres"
        assert FilePlacement(owner="postgres", group="postgres").chown == "postgres:postgres"

    def test_group_requires_owner(self):
        with pytest.raises(ValidationError):
            FilePlacement(group="postgres")

    def test_path_must_be_absolute(self):
        with pytest.raises(ValidationError):
            FilePlacement(path="etc/pgbouncer.ini")


class TestBuilderConfig:
    """Test BuilderConfig model."""

    def test_default_config(self):
        """Test default configuration."""
        config = BuilderConfig()

        assert config.log_level == "INFO"
        assert isinstance(config.supervisor, SupervisorConfig)
        assert isinstance(config.recipe, RecipeConfig)
        assert config.recipe.final_stage == "final"
        assert config.files == {}

    def test_log_level_validation(self):
        """Test log level validation."""
        for level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            config = BuilderConfig(log_level=level)
            assert config.log_level == level

        # Case insensitive
        config = BuilderConfig(log_level="debug")
        assert config.log_level == "DEBUG"

        with pytest.raises(ValidationError) as exc_info:
            BuilderConfig(log_level="INVALID")

        assert "log_level" in str(exc_info.value)

    def test_placement_for(self):
        config = BuilderConfig(files={"pgbouncer.ini": {"mode": "0666"}})

        assert config.placement_for("pgbouncer.ini").mode == 0o666
        assert config.placement_for("other.conf").mode == 0o644

    def test_extra_fields_ignored(self):
        """Test that extra fields are ignored."""
        config = BuilderConfig(extra_field="ignored")

        assert not hasattr(config, "extra_field")
