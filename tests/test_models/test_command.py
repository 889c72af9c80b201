"""Tests for command models."""

import pytest
from pydantic import ValidationError

from vmimage.models.command import Command, SupervisionMode


class TestCommand:
    """Test Command model."""

    def test_from_document_keys(self):
        """Test creating a command with the descriptor's key names."""
        command = Command.model_validate({
            "name": "pgbouncer",
            "user": "postgres",
            "sysvInitAction": "respawn",
            "shell": "/usr/local/bin/pgbouncer /etc/pgbouncer.ini",
        })

        assert command.name == "pgbouncer"
        assert command.user == "postgres"
        assert command.mode == SupervisionMode.RESPAWN
        assert command.shell == "/usr/local/bin/pgbouncer /etc/pgbouncer.ini"
        assert command.depends_on is None

    def test_populate_by_field_name(self):
        """Test creating a command with Python field names."""
        command = Command(name="setup", user="root", mode="sysinit", shell="exit 0")

        assert command.mode == SupervisionMode.SYSINIT

    def test_shell_passed_through(self):
        """Test that quoting and variables in shell are left untouched."""
        shell = 'DATA_SOURCE_NAME="user=cloud_admin sslmode=disable" /bin/postgres_exporter $HOME'
        command = Command(name="exporter", user="nobody", mode="respawn", shell=shell)

        assert command.shell == shell

    def test_unknown_mode_rejected(self):
        """Test that unrecognized supervision modes fail closed."""
        with pytest.raises(ValidationError) as exc_info:
            Command.model_validate({
                "name": "x",
                "user": "root",
                "sysvInitAction": "askfirst",
                "shell": "true",
            })

        assert "sysvInitAction" in str(exc_info.value)

    def test_mode_is_case_sensitive(self):
        """Test that mode values must match exactly."""
        with pytest.raises(ValidationError):
            Command(name="x", user="root", mode="SYSINIT", shell="true")

    def test_multiline_shell_rejected(self):
        """Test that shell must fit on one init table line."""
        with pytest.raises(ValidationError) as exc_info:
            Command(name="x", user="root", mode="sysinit", shell="true\nfalse")

        assert "single line" in str(exc_info.value)

    @pytest.mark.parametrize("name", ["", "has space", "-leading-dash", "a/b"])
    def test_invalid_names(self, name):
        """Test name validation."""
        with pytest.raises(ValidationError):
            Command(name=name, user="root", mode="sysinit", shell="true")

    @pytest.mark.parametrize("user", ["root:root", "x;reboot", "a b", "$(id)", "-root", ""])
    def test_invalid_user(self, user):
        """Test that user must be a plain account name."""
        with pytest.raises(ValidationError):
            Command(name="x", user=user, mode="sysinit", shell="true")

    @pytest.mark.parametrize("user", ["postgres", "_apt", "cloud-admin", "host$"])
    def test_valid_users(self, user):
        assert Command(name="x", user=user, mode="sysinit", shell="true").user == user

    def test_yaml_scalars_read_as_text(self):
        """Test that unquoted numbers and booleans become their written text."""
        command = Command.model_validate(
            {"name": 1, "user": "root", "sysvInitAction": "once", "shell": True}
        )

        assert command.name == "1"
        assert command.shell == "true"

    def test_extra_fields_forbidden(self):
        """Test that unknown command keys are rejected."""
        with pytest.raises(ValidationError):
            Command.model_validate({
                "name": "x",
                "user": "root",
                "sysvInitAction": "sysinit",
                "shell": "true",
                "restart": "always",
            })

    def test_frozen(self):
        """Test that commands are immutable."""
        command = Command(name="x", user="root", mode="sysinit", shell="true")

        with pytest.raises(ValidationError):
            command.shell = "false"


class TestSupervisionMode:
    """Test SupervisionMode enum."""

    def test_gates(self):
        assert SupervisionMode.SYSINIT.is_gate
        assert SupervisionMode.WAIT.is_gate
        assert not SupervisionMode.ONCE.is_gate
        assert not SupervisionMode.RESPAWN.is_gate
