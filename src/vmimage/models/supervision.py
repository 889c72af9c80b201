"""Supervision table models."""

from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, model_validator

from vmimage.models.command import USER_NAME_PATTERN, SupervisionMode
from vmimage.models.config import SupervisorConfig


class SupervisionEntry(BaseModel):
    """One supervised process with its resolved start gates."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    user: str = Field(..., pattern=USER_NAME_PATTERN)
    mode: SupervisionMode
    shell: str
    after: Tuple[str, ...] = Field(default_factory=tuple, description="Gates awaited before start")


class SupervisionTable(BaseModel):
    """Ordered supervisor configuration."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    entries: Tuple[SupervisionEntry, ...] = Field(default_factory=tuple)
    shutdown_hook: Optional[str] = None
    policy: SupervisorConfig = Field(default_factory=SupervisorConfig)

    @model_validator(mode="after")
    def validate_gates(self):
        """Gates wait on earlier gates; other entries wait on every gate."""
        names = [entry.name for entry in self.entries]
        if len(set(names)) != len(names):
            duplicate = next(name for name in names if names.count(name) > 1)
            raise ValueError(f"duplicate entry name: {duplicate}")

        gates = [entry.name for entry in self.gates()]
        earlier = set()
        for entry in self.entries:
            if entry.mode.is_gate:
                for dependency in entry.after:
                    if dependency not in earlier or dependency not in gates:
                        raise ValueError(
                            f"entry {entry.name} waits on {dependency}, "
                            f"which is not an earlier gate"
                        )
            else:
                unknown = [name for name in entry.after if name not in gates]
                if unknown:
                    raise ValueError(
                        f"entry {entry.name} waits on {unknown[0]}, which is not a gate"
                    )
                missing = [gate for gate in gates if gate not in entry.after]
                if missing:
                    raise ValueError(
                        f"entry {entry.name} does not wait on gate {missing[0]}"
                    )
            earlier.add(entry.name)
        return self

    def get(self, name: str) -> Optional[SupervisionEntry]:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    def gates(self) -> List[SupervisionEntry]:
        return [entry for entry in self.entries if entry.mode.is_gate]
