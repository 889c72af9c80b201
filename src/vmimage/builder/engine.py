"""Image build engine."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from vmimage.builder.loader import DescriptorLoader
from vmimage.builder.materialize import materialize
from vmimage.emitters import Artifact, EmitterRegistry
from vmimage.errors import MalformedDescriptor
from vmimage.models.config import BuilderConfig
from vmimage.models.image import ImageDescriptor


logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Outcome of a successful build."""
    descriptor: ImageDescriptor
    output_dir: Path
    artifacts: List[Artifact] = field(default_factory=list)
    written: List[Path] = field(default_factory=list)


class ImageBuilder:
    """Turns a descriptor into supervisor config, files and a build recipe.

    All validation and rendering happens in memory first; the output
    directory is only touched once every emitter succeeded.
    """

    def __init__(
        self,
        config: Optional[BuilderConfig] = None,
        registry: Optional[EmitterRegistry] = None,
    ):
        """Initialize image builder."""
        self.config = config or BuilderConfig()
        self.loader = DescriptorLoader()
        self.registry = registry or EmitterRegistry()
        self.registry.initialize(self.config)

    def plan(self, descriptor: ImageDescriptor) -> List[Artifact]:
        """Validate the descriptor with every emitter and render artifacts."""
        emitters = self.registry.emitters()
        for emitter in emitters:
            emitter.validate(descriptor)

        artifacts: List[Artifact] = []
        owners = {}
        for emitter in emitters:
            for artifact in emitter.render(descriptor):
                if artifact.path in owners:
                    raise MalformedDescriptor(
                        f"Two emitters produce {artifact.path}: "
                        f"{owners[artifact.path]} and {emitter.name}",
                        field="files",
                    )
                owners[artifact.path] = emitter.name
                artifacts.append(artifact)
        return artifacts

    def build(
        self,
        descriptor_path: Union[str, Path],
        output_dir: Union[str, Path],
    ) -> BuildResult:
        """Load a descriptor file and build its artifacts into ``output_dir``."""
        logger.info(f"Building image artifacts from {descriptor_path}")
        descriptor = self.loader.load_descriptor(descriptor_path)
        return self.build_descriptor(descriptor, output_dir)

    def build_descriptor(
        self,
        descriptor: ImageDescriptor,
        output_dir: Union[str, Path],
    ) -> BuildResult:
        """Build artifacts for an already parsed descriptor."""
        output_dir = Path(output_dir)
        artifacts = self.plan(descriptor)
        written = materialize(artifacts, output_dir)
        return BuildResult(
            descriptor=descriptor,
            output_dir=output_dir,
            artifacts=artifacts,
            written=written,
        )
