"""Pydantic models for descriptors, configuration and supervision."""

from vmimage.models.command import Command, SupervisionMode
from vmimage.models.config import BuilderConfig, FilePlacement, RecipeConfig, SupervisorConfig
from vmimage.models.image import ARTIFACT_NAMES, FileSpec, ImageDescriptor
from vmimage.models.supervision import SupervisionEntry, SupervisionTable

__all__ = [
    "ARTIFACT_NAMES",
    "BuilderConfig",
    "Command",
    "FilePlacement",
    "FileSpec",
    "ImageDescriptor",
    "RecipeConfig",
    "SupervisionEntry",
    "SupervisionMode",
    "SupervisionTable",
    "SupervisorConfig",
]
