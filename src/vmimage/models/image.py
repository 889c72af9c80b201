"""Image descriptor models."""

from typing import Dict, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator

from vmimage.models.command import Command, scalar_to_str


# Names the emitters write at the root of the build context.
ARTIFACT_NAMES = frozenset({"Dockerfile", "inittab", "supervision.yaml", "shutdown-hook.sh"})


class FileSpec(BaseModel):
    """A config file materialized verbatim into the build context."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    filename: str = Field(..., description="Path relative to the build context")
    content: str = Field(..., description="Literal file content")

    @field_validator("filename", "content", mode="before")
    @classmethod
    def coerce_scalars(cls, v):
        return scalar_to_str(v)

    @field_validator("filename")
    @classmethod
    def validate_filename(cls, v):
        """Reject absolute, traversing and reserved names."""
        if not v:
            raise ValueError("filename must not be empty")
        if v.startswith("/"):
            raise ValueError(f"filename must be relative: {v}")
        if "\\" in v or "\0" in v:
            raise ValueError(f"filename contains an invalid character: {v!r}")
        segments = v.split("/")
        if ".." in segments:
            raise ValueError(f"filename must not contain '..' segments: {v}")
        if any(segment in ("", ".") for segment in segments):
            raise ValueError(f"filename has an empty or '.' segment: {v}")
        if segments[0] in ARTIFACT_NAMES:
            raise ValueError(f"filename is reserved for a generated artifact: {v}")
        return v


class ImageDescriptor(BaseModel):
    """Root of a VM image descriptor document.

    Parsed once at build time and immutable afterwards. ``build`` and
    ``merge`` are opaque container build script fragments; ``shell`` and
    ``content`` strings are never interpreted.
    """
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    commands: Tuple[Command, ...] = Field(default_factory=tuple)
    shutdown_hook: Optional[str] = Field(None, alias="shutdownHook")
    files: Tuple[FileSpec, ...] = Field(default_factory=tuple)
    build: str = Field(default="")
    merge: str = Field(default="")

    @field_validator("commands", "files", mode="before")
    @classmethod
    def default_empty_sequence(cls, v):
        return () if v is None else v

    @field_validator("build", "merge", mode="before")
    @classmethod
    def default_empty_script(cls, v):
        return "" if v is None else v

    @field_validator("shutdown_hook")
    @classmethod
    def validate_shutdown_hook(cls, v):
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("commands")
    @classmethod
    def validate_commands(cls, v):
        """Names are unique and dependsOn keeps every gate ahead of services.

        A gate may only depend on earlier gates. A ``once`` or ``respawn``
        command starts after every gate in the document, so its dependsOn,
        when given, must list all of them.
        """
        by_name: Dict[str, Command] = {}
        for index, command in enumerate(v):
            if command.name in by_name:
                raise ValueError(
                    f"duplicate command name '{command.name}' at commands[{index}].name"
                )
            by_name[command.name] = command
        gates = [command.name for command in v if command.mode.is_gate]

        earlier = set()
        for index, command in enumerate(v):
            for dependency in command.depends_on or ():
                target = by_name.get(dependency)
                if target is None or (command.mode.is_gate and dependency not in earlier):
                    raise ValueError(
                        f"commands[{index}].dependsOn references '{dependency}', "
                        f"which is not an earlier command"
                    )
                if not target.mode.is_gate:
                    raise ValueError(
                        f"commands[{index}].dependsOn references '{dependency}', "
                        f"a {target.mode.value} command that never completes"
                    )
            if command.depends_on is not None and not command.mode.is_gate:
                missing = [gate for gate in gates if gate not in command.depends_on]
                if missing:
                    raise ValueError(
                        f"commands[{index}].dependsOn omits {', '.join(missing)}; "
                        f"{command.mode.value} commands start after every sysinit "
                        f"and wait command"
                    )
            earlier.add(command.name)
        return v

    @field_validator("files")
    @classmethod
    def validate_files(cls, v):
        """Filenames are unique and no file shadows another's directory."""
        names = set()
        for index, spec in enumerate(v):
            if spec.filename in names:
                raise ValueError(
                    f"duplicate filename '{spec.filename}' at files[{index}].filename"
                )
            names.add(spec.filename)

        for name in names:
            segments = name.split("/")
            for depth in range(1, len(segments)):
                parent = "/".join(segments[:depth])
                if parent in names:
                    raise ValueError(f"filename '{name}' is nested under file '{parent}'")
        return v

    def get_command(self, name: str) -> Optional[Command]:
        """Get command by name."""
        for command in self.commands:
            if command.name == name:
                return command
        return None

    def get_file(self, filename: str) -> Optional[FileSpec]:
        """Get file spec by filename."""
        for spec in self.files:
            if spec.filename == filename:
                return spec
        return None
