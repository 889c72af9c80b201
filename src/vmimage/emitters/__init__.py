"""Artifact emitters for vmimage."""

from vmimage.emitters.base import Artifact, BaseEmitter
from vmimage.emitters.registry import EmitterRegistry

__all__ = [
    "Artifact",
    "BaseEmitter",
    "EmitterRegistry",
]
