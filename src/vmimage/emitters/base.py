"""Base emitter interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, TYPE_CHECKING

from vmimage.models.config import BuilderConfig
from vmimage.models.image import ImageDescriptor

if TYPE_CHECKING:
    from vmimage.emitters.registry import EmitterRegistry


@dataclass(frozen=True)
class Artifact:
    """A file to be written into the output directory."""
    path: str
    content: str
    mode: int = 0o644


class BaseEmitter(ABC):
    """Base emitter interface that all emitters must implement.

    Emitters are pure: ``validate`` and ``render`` never touch the
    filesystem, so a build can fail before anything is written.
    """

    name: str = ""

    @abstractmethod
    def initialize(self, config: BuilderConfig, registry: "EmitterRegistry") -> None:
        """Initialize the emitter with configuration."""
        pass

    @abstractmethod
    def validate(self, descriptor: ImageDescriptor) -> None:
        """Raise an ``ImageBuildError`` if the descriptor cannot be emitted."""
        pass

    @abstractmethod
    def render(self, descriptor: ImageDescriptor) -> List[Artifact]:
        """Render the artifacts for a descriptor."""
        pass

    def install_instructions(self, descriptor: ImageDescriptor) -> List[str]:
        """Recipe lines placing this emitter's artifacts in the final image."""
        return []
