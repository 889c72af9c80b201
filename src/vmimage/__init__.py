"""
vmimage - VM compute image descriptor interpreter.

Turns a declarative image descriptor (supervised commands, shutdown hook,
literal config files, build and merge script fragments) into a supervisor
configuration, a materialized build context and a multi-stage build recipe.
"""

__version__ = "1.0.0"

# Re-export key components for easier access
from vmimage.errors import (
    ConfigurationError,
    ImageBuildError,
    MalformedDescriptor,
    MaterializationFailure,
    SupervisionStartupFailure,
    UnknownStageReference,
)
from vmimage.models.command import Command, SupervisionMode
from vmimage.models.config import BuilderConfig
from vmimage.models.image import FileSpec, ImageDescriptor
from vmimage.models.supervision import SupervisionTable

__all__ = [
    "BuilderConfig",
    "Command",
    "ConfigurationError",
    "FileSpec",
    "ImageBuildError",
    "ImageDescriptor",
    "MalformedDescriptor",
    "MaterializationFailure",
    "SupervisionMode",
    "SupervisionStartupFailure",
    "SupervisionTable",
    "UnknownStageReference",
]
