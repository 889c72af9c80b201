"""Tests for the file emitter."""

import logging

from vmimage.emitters.files import FileEmitter
from vmimage.models.config import BuilderConfig
from vmimage.models.image import ImageDescriptor


DESCRIPTOR = ImageDescriptor.model_validate({
    "files": [
        {"filename": "pgbouncer.ini", "content": "[pgbouncer]\nlisten_port=6432\n"},
        {"filename": "cgconfig.conf", "content": "group neon-postgres {}\n"},
    ]
})


def make_emitter(files=None):
    emitter = FileEmitter()
    emitter.initialize(BuilderConfig(files=files or {}), registry=None)
    return emitter


class TestFileEmitter:
    """Test FileEmitter."""

    def test_render_passthrough(self):
        """Test content is emitted untouched with the default mode."""
        artifacts = make_emitter().render(DESCRIPTOR)

        assert [(a.path, a.content, a.mode) for a in artifacts] == [
            ("pgbouncer.ini", "[pgbouncer]\nlisten_port=6432\n", 0o644),
            ("cgconfig.conf", "group neon-postgres {}\n", 0o644),
        ]

    def test_render_with_placement_mode(self):
        emitter = make_emitter({"pgbouncer.ini": {"mode": "0666"}})

        artifacts = {a.path: a for a in emitter.render(DESCRIPTOR)}

        assert artifacts["pgbouncer.ini"].mode == 0o666
        assert artifacts["cgconfig.conf"].mode == 0o644

    def test_install_instructions(self):
        emitter = make_emitter({
            "pgbouncer.ini": {"path": "/etc/pgbouncer.ini", "mode": "0666", "owner": "postgres"},
            "cgconfig.conf": {"mode": "0600"},
        })

        assert emitter.install_instructions(DESCRIPTOR) == [
            "COPY --chmod=0666 --chown=postgres pgbouncer.ini /etc/pgbouncer.ini",
        ]

    def test_no_install_without_placements(self):
        assert make_emitter().install_instructions(DESCRIPTOR) == []

    def test_unknown_placement_warns(self, caplog):
        emitter = make_emitter({"missing.conf": {"mode": "0600"}})

        with caplog.at_level(logging.WARNING):
            emitter.validate(DESCRIPTOR)

        assert "missing.conf" in caplog.text
