"""Emitter registry for managing artifact emitters."""

import logging
from typing import Dict, List, Optional, Type

from vmimage.emitters.base import BaseEmitter
from vmimage.emitters.files import FileEmitter
from vmimage.emitters.recipe import RecipeEmitter
from vmimage.emitters.supervision import SupervisionEmitter
from vmimage.models.config import BuilderConfig


logger = logging.getLogger(__name__)


class EmitterRegistry:
    """Registry for managing emitters.

    Emitters run in registration order; the recipe emitter comes last
    because it collects install instructions from the others.
    """

    def __init__(self):
        """Initialize emitter registry."""
        self._emitters: Dict[str, BaseEmitter] = {}
        self._emitter_classes: Dict[str, Type[BaseEmitter]] = {
            "supervision": SupervisionEmitter,
            "files": FileEmitter,
            "recipe": RecipeEmitter,
        }

    def initialize(self, config: BuilderConfig):
        """Initialize all emitters with two-pass injection."""
        # Phase 1: Instantiate all emitters
        for name, emitter_class in self._emitter_classes.items():
            try:
                self._emitters[name] = emitter_class()
            except Exception as e:
                logger.error(f"Failed to instantiate emitter {name}: {e}")
                raise

        # Phase 2: Initialize and inject registry
        for name, emitter in self._emitters.items():
            emitter.initialize(config, self)
            logger.debug(f"Initialized emitter: {name}")

    def get_emitter(self, name: str) -> Optional[BaseEmitter]:
        """Get an emitter by name."""
        return self._emitters.get(name)

    def list_emitters(self) -> List[str]:
        """List emitter names in run order."""
        return list(self._emitters.keys())

    def emitters(self) -> List[BaseEmitter]:
        return list(self._emitters.values())
