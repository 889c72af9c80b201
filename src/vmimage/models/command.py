"""Supervised command models."""

from enum import Enum
from typing import Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator


COMMAND_NAME_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9._-]*$"
# Portable POSIX user names, optionally with the trailing '$' of machine accounts
USER_NAME_PATTERN = r"^[A-Za-z_][A-Za-z0-9._-]*\$?$"


def scalar_to_str(v):
    """Read unquoted YAML numbers and booleans as the text they were written as."""
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, (int, float)):
        return str(v)
    return v


class SupervisionMode(str, Enum):
    """Init actions understood by the supervisor."""
    SYSINIT = "sysinit"
    WAIT = "wait"
    ONCE = "once"
    RESPAWN = "respawn"

    @property
    def is_gate(self) -> bool:
        """Gates run to completion before the entries that follow them start."""
        return self in (SupervisionMode.SYSINIT, SupervisionMode.WAIT)


class Command(BaseModel):
    """A named shell command run by the image's init system."""
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    name: str = Field(..., pattern=COMMAND_NAME_PATTERN, description="Unique command name")
    user: str = Field(..., pattern=USER_NAME_PATTERN, description="User the command runs as")
    mode: SupervisionMode = Field(..., alias="sysvInitAction")
    shell: str = Field(..., min_length=1, description="Shell command line")
    depends_on: Optional[Tuple[str, ...]] = Field(
        None, alias="dependsOn", description="Gate commands that must complete first"
    )

    @field_validator("name", "user", "shell", mode="before")
    @classmethod
    def coerce_scalars(cls, v):
        return scalar_to_str(v)

    @field_validator("shell")
    @classmethod
    def validate_shell(cls, v):
        """Shell lines end up in a line-oriented init table."""
        if "\n" in v or "\r" in v:
            raise ValueError("shell must be a single line")
        return v
