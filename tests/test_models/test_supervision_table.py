"""Tests for supervision table models."""

import pytest
from pydantic import ValidationError

from vmimage.models.supervision import SupervisionEntry, SupervisionTable


def entry(name, mode="respawn", after=()):
    return SupervisionEntry(name=name, user="root", mode=mode, shell="true", after=after)


class TestSupervisionTable:
    """Test SupervisionTable model."""

    def test_gates(self):
        table = SupervisionTable(entries=(
            entry("a", mode="sysinit"),
            entry("b", mode="wait", after=("a",)),
            entry("c", after=("a", "b")),
        ))

        assert [gate.name for gate in table.gates()] == ["a", "b"]
        assert table.get("c").after == ("a", "b")
        assert table.get("missing") is None

    def test_service_waits_on_later_gate(self):
        """Test that a respawn entry may wait on a gate listed after it."""
        table = SupervisionTable(entries=(
            entry("a", mode="sysinit"),
            entry("r", after=("a", "b")),
            entry("b", mode="sysinit", after=("a",)),
        ))

        assert table.get("r").after == ("a", "b")

    def test_service_must_wait_on_every_gate(self):
        """Test that a respawn entry cannot start ahead of a sysinit entry."""
        with pytest.raises(ValidationError) as exc_info:
            SupervisionTable(entries=(
                entry("a", mode="sysinit"),
                entry("r", after=("a",)),
                entry("b", mode="sysinit", after=("a",)),
            ))

        assert "does not wait on gate b" in str(exc_info.value)

    def test_gate_after_must_name_earlier_gate(self):
        with pytest.raises(ValidationError) as exc_info:
            SupervisionTable(entries=(
                entry("a", mode="sysinit", after=("b",)),
                entry("b", mode="sysinit"),
            ))

        assert "not an earlier gate" in str(exc_info.value)

    def test_after_cannot_name_respawn(self):
        with pytest.raises(ValidationError):
            SupervisionTable(entries=(entry("a"), entry("b", after=("a",))))

    def test_duplicate_names(self):
        with pytest.raises(ValidationError):
            SupervisionTable(entries=(entry("a"), entry("a")))

    def test_user_must_be_account_name(self):
        with pytest.raises(ValidationError):
            SupervisionEntry(name="a", user="x;reboot", mode="respawn", shell="true")
