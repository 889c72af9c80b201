"""Configuration models."""

from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SupervisorConfig(BaseModel):
    """Runtime knobs for the process supervisor."""
    model_config = ConfigDict(frozen=True)

    shutdown_timeout: float = Field(default=30.0, gt=0)
    stop_timeout: float = Field(default=10.0, gt=0)
    restart_delay: float = Field(default=1.0, ge=0)
    max_restarts: Optional[int] = Field(default=None, ge=0)
    hook_path: str = Field(default="/etc/vmimage/shutdown-hook.sh")

    @field_validator("hook_path")
    @classmethod
    def validate_hook_path(cls, v):
        if not v.startswith("/"):
            raise ValueError(f"hook_path must be absolute: {v}")
        return v


class RecipeConfig(BaseModel):
    """Build recipe composition settings."""
    base_image: str = Field(default="debian:bullseye-slim", min_length=1)
    final_stage: str = Field(default="final", pattern=r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class FilePlacement(BaseModel):
    """Where and how a materialized file lands in the final image."""
    model_config = ConfigDict(extra="forbid")

    path: Optional[str] = Field(None, description="Absolute path inside the image")
    mode: int = Field(default=0o644, description="Permission bits")
    owner: Optional[str] = None
    group: Optional[str] = None

    @field_validator("path")
    @classmethod
    def validate_path(cls, v):
        if v is not None and not v.startswith("/"):
            raise ValueError(f"path must be absolute: {v}")
        return v

    @field_validator("mode", mode="before")
    @classmethod
    def parse_mode(cls, v):
        """Accept octal strings such as "0644" as well as integers."""
        if isinstance(v, str):
            try:
                v = int(v, 8)
            except ValueError:
                raise ValueError(f"mode must be an octal string: {v!r}") from None
        if isinstance(v, bool) or not isinstance(v, int) or not 0 <= v <= 0o7777:
            raise ValueError(f"mode out of range: {v!r}")
        return v

    @model_validator(mode="after")
    def validate_ownership(self):
        if self.group and not self.owner:
            raise ValueError("group requires owner")
        return self

    @property
    def chown(self) -> Optional[str]:
        """Owner spec in ``user[:group]`` form."""
        if not self.owner:
            return None
        return f"{self.owner}:{self.group}" if self.group else self.owner


class BuilderConfig(BaseModel):
    """Main configuration model."""
    model_config = ConfigDict(extra="ignore")

    log_level: str = Field(default="INFO")
    supervisor: SupervisorConfig = Field(default_factory=SupervisorConfig)
    recipe: RecipeConfig = Field(default_factory=RecipeConfig)
    files: Dict[str, FilePlacement] = Field(default_factory=dict)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    def placement_for(self, filename: str) -> FilePlacement:
        """Get the placement for a file, falling back to defaults."""
        return self.files.get(filename) or FilePlacement()
