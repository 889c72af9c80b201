"""File emitter for descriptor config files."""

import logging
from typing import List

from vmimage.emitters.base import Artifact, BaseEmitter
from vmimage.models.config import BuilderConfig
from vmimage.models.image import ImageDescriptor


logger = logging.getLogger(__name__)


class FileEmitter(BaseEmitter):
    """Emits every FileSpec with the permission bits its placement declares."""

    name = "files"

    def __init__(self):
        """Initialize file emitter."""
        self.config: BuilderConfig = BuilderConfig()

    def initialize(self, config: BuilderConfig, registry) -> None:
        """Initialize emitter with configuration."""
        self.config = config

    def validate(self, descriptor: ImageDescriptor) -> None:
        """Warn about placements that match no file."""
        filenames = {spec.filename for spec in descriptor.files}
        for filename in self.config.files:
            if filename not in filenames:
                logger.warning(f"Placement configured for unknown file: {filename}")

    def render(self, descriptor: ImageDescriptor) -> List[Artifact]:
        """Content is passed through untouched."""
        return [
            Artifact(
                path=spec.filename,
                content=spec.content,
                mode=self.config.placement_for(spec.filename).mode,
            )
            for spec in descriptor.files
        ]

    def install_instructions(self, descriptor: ImageDescriptor) -> List[str]:
        """COPY lines for files whose placement names an image path."""
        lines = []
        for spec in descriptor.files:
            placement = self.config.placement_for(spec.filename)
            if not placement.path:
                continue
            flags = [f"--chmod={placement.mode:04o}"]
            if placement.chown:
                flags.append(f"--chown={placement.chown}")
            lines.append(f"COPY {' '.join(flags)} {spec.filename} {placement.path}")
        return lines
