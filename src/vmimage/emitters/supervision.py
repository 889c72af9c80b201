"""Supervision table builder and emitter."""

import io
import logging
from typing import Any, Dict, List, Optional

from ruamel.yaml import YAML
from ruamel.yaml.scalarstring import LiteralScalarString

from vmimage.emitters.base import Artifact, BaseEmitter
from vmimage.models.config import BuilderConfig, SupervisorConfig
from vmimage.models.image import ImageDescriptor
from vmimage.models.supervision import SupervisionEntry, SupervisionTable
from vmimage.utils.templates import render_template


logger = logging.getLogger(__name__)

TABLE_FILENAME = "supervision.yaml"
INITTAB_FILENAME = "inittab"
HOOK_FILENAME = "shutdown-hook.sh"

INITTAB_TEMPLATE = """\
# Generated by vmimage.
{% for entry in entries %}
{% if entry.user == "root" %}
::{{ entry.mode.value }}:{{ entry.shell }}
{% else %}
::{{ entry.mode.value }}:su -p {{ entry.user }} -c {{ entry.shell | shell_quote }}
{% endif %}
{% endfor %}
{% if hook_path %}
::shutdown:{{ hook_path }}
{% endif %}
"""


def build_supervision_table(
    descriptor: ImageDescriptor,
    policy: Optional[SupervisorConfig] = None,
) -> SupervisionTable:
    """Turn the descriptor's commands into an ordered supervision table.

    Entries keep document order. Gates (``sysinit`` and ``wait``) without
    ``dependsOn`` wait on the closest preceding gate, so they run one after
    another. ``once`` and ``respawn`` entries wait on every gate in the
    document, including gates listed after them, the way busybox init runs
    all of its sysinit and wait lines before starting anything else.
    """
    gates = tuple(command.name for command in descriptor.commands if command.mode.is_gate)
    entries: List[SupervisionEntry] = []
    last_gate: Optional[str] = None

    for command in descriptor.commands:
        if not command.mode.is_gate:
            after = gates
        elif command.depends_on is not None:
            after = tuple(command.depends_on)
        elif last_gate is not None:
            after = (last_gate,)
        else:
            after = ()

        entries.append(
            SupervisionEntry(
                name=command.name,
                user=command.user,
                mode=command.mode,
                shell=command.shell,
                after=after,
            )
        )
        if command.mode.is_gate:
            last_gate = command.name

    return SupervisionTable(
        entries=tuple(entries),
        shutdown_hook=descriptor.shutdown_hook,
        policy=policy or SupervisorConfig(),
    )


def serialize_table(table: SupervisionTable) -> str:
    """Dump a supervision table as YAML, multi-line strings in block style."""
    yaml = YAML()
    yaml.default_flow_style = False
    stream = io.StringIO()
    yaml.dump(_block_strings(table.model_dump(mode="json")), stream)
    return stream.getvalue()


def _block_strings(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _block_strings(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_block_strings(item) for item in value]
    if isinstance(value, str) and "\n" in value:
        return LiteralScalarString(value)
    return value


def render_hook_script(hook: str) -> str:
    """Wrap the shutdown hook into an executable shell script."""
    script = hook if hook.endswith("\n") else hook + "\n"
    if script.startswith("#!"):
        return script
    return "#!/bin/sh\n" + script


class SupervisionEmitter(BaseEmitter):
    """Emits the supervision table, an inittab and the shutdown hook."""

    name = "supervision"

    def __init__(self):
        """Initialize supervision emitter."""
        self.policy: SupervisorConfig = SupervisorConfig()

    def initialize(self, config: BuilderConfig, registry) -> None:
        """Initialize emitter with configuration."""
        self.policy = config.supervisor

    def validate(self, descriptor: ImageDescriptor) -> None:
        """Commands are fully checked by the descriptor model."""
        pass

    def build_table(self, descriptor: ImageDescriptor) -> SupervisionTable:
        return build_supervision_table(descriptor, self.policy)

    def render(self, descriptor: ImageDescriptor) -> List[Artifact]:
        """Render supervision.yaml, inittab and, when present, the hook."""
        table = self.build_table(descriptor)
        hook_path = self.policy.hook_path if table.shutdown_hook else None

        artifacts = [
            Artifact(path=TABLE_FILENAME, content=serialize_table(table)),
            Artifact(
                path=INITTAB_FILENAME,
                content=render_template(
                    INITTAB_TEMPLATE, entries=table.entries, hook_path=hook_path
                ),
            ),
        ]
        if table.shutdown_hook:
            artifacts.append(
                Artifact(
                    path=HOOK_FILENAME,
                    content=render_hook_script(table.shutdown_hook),
                    mode=0o755,
                )
            )

        logger.debug(f"Rendered supervision table with {len(table.entries)} entries")
        return artifacts

    def install_instructions(self, descriptor: ImageDescriptor) -> List[str]:
        """Copy the shutdown hook to where the inittab expects it."""
        if not descriptor.shutdown_hook:
            return []
        return [f"COPY --chmod=0755 {HOOK_FILENAME} {self.policy.hook_path}"]

    def describe(self, descriptor: ImageDescriptor) -> List[Dict[str, str]]:
        """Summarize entries for display."""
        return [
            {
                "name": entry.name,
                "user": entry.user,
                "mode": entry.mode.value,
                "after": ", ".join(entry.after),
            }
            for entry in self.build_table(descriptor).entries
        ]
