"""Multi-stage build recipe composer."""

import logging
import re
import shlex
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Set

from vmimage.emitters.base import Artifact, BaseEmitter
from vmimage.errors import MalformedDescriptor, UnknownStageReference
from vmimage.models.config import BuilderConfig, RecipeConfig
from vmimage.models.image import ImageDescriptor
from vmimage.utils.templates import render_template


logger = logging.getLogger(__name__)

RECIPE_FILENAME = "Dockerfile"

FROM_PATTERN = re.compile(
    r"^FROM\s+(?:--\S+\s+)*(?P<image>\S+)(?:\s+AS\s+(?P<name>\S+))?\s*$",
    re.IGNORECASE,
)
FROM_FLAG_PATTERN = re.compile(r"--from(?:=|\s+)(?P<ref>\S+)", re.IGNORECASE)
MOUNT_FLAG_PATTERN = re.compile(r"--mount=(?P<options>\S+)", re.IGNORECASE)

RECIPE_TEMPLATE = """\
ARG BASE_IMAGE={{ base_image }}
{% if build %}

{{ build }}
{% endif %}

FROM ${BASE_IMAGE} AS {{ final_stage }}
{% if merge %}

{{ merge }}
{% endif %}
{% if install %}

{% for line in install %}
{{ line }}
{% endfor %}
{% endif %}
"""


@dataclass
class StageIndex:
    """Stages declared by a build script, in declaration order."""
    names: List[Optional[str]] = field(default_factory=list)

    @property
    def named(self) -> Set[str]:
        return {name for name in self.names if name}

    def resolves(self, ref: str) -> bool:
        """Stage names are case-insensitive; digits index declaration order."""
        if ref.isdigit():
            return int(ref) < len(self.names)
        return ref.lower() in {name.lower() for name in self.named}


def logical_lines(script: str) -> Iterator[str]:
    """Yield instructions with backslash continuations joined and comments dropped."""
    buffer: List[str] = []
    for raw in script.splitlines():
        stripped = raw.strip()
        if stripped.startswith("#"):
            continue
        if stripped.endswith("\\"):
            buffer.append(stripped[:-1].strip())
            continue
        buffer.append(stripped)
        line = " ".join(part for part in buffer if part)
        buffer = []
        if line:
            yield line
    if buffer:
        line = " ".join(part for part in buffer if part)
        if line:
            yield line


def instruction_of(line: str) -> str:
    return line.split(None, 1)[0].upper()


def index_stages(script: str) -> StageIndex:
    """Collect ``FROM ... AS name`` declarations from a build script."""
    index = StageIndex()
    for line in logical_lines(script):
        if instruction_of(line) != "FROM":
            continue
        match = FROM_PATTERN.match(line)
        if not match:
            raise MalformedDescriptor(f"Unparseable FROM instruction: {line}", field="build")
        name = match.group("name")
        if name and name.lower() in {n.lower() for n in index.named}:
            raise MalformedDescriptor(f"Duplicate build stage name: {name}", field="build")
        index.names.append(name)
    return index


def stage_references(script: str) -> Iterator[tuple]:
    """Yield ``(ref, line)`` for every stage reference in a script."""
    for line in logical_lines(script):
        instruction = instruction_of(line)
        if instruction in ("COPY", "ADD"):
            for match in FROM_FLAG_PATTERN.finditer(line):
                yield match.group("ref"), line
        elif instruction == "RUN":
            for match in MOUNT_FLAG_PATTERN.finditer(line):
                for option in match.group("options").split(","):
                    key, _, value = option.partition("=")
                    if key.lower() == "from" and value:
                        yield value, line


def is_image_reference(ref: str) -> bool:
    """Refs with a tag, registry path or digest name images, not stages."""
    return any(marker in ref for marker in (":", "/", "@"))


def copied_sources(script: str) -> Set[str]:
    """Sources of COPY/ADD instructions that read from the build context."""
    sources: Set[str] = set()
    for line in logical_lines(script):
        if instruction_of(line) not in ("COPY", "ADD"):
            continue
        if FROM_FLAG_PATTERN.search(line):
            continue
        try:
            tokens = shlex.split(line)[1:]
        except ValueError:
            continue
        operands = [token for token in tokens if not token.startswith("--")]
        sources.update(operands[:-1])
    return sources


class RecipeEmitter(BaseEmitter):
    """Splices build and merge scripts into one multi-stage Dockerfile."""

    name = "recipe"

    def __init__(self):
        """Initialize recipe emitter."""
        self.recipe: RecipeConfig = RecipeConfig()
        self._registry = None

    def initialize(self, config: BuilderConfig, registry) -> None:
        """Initialize emitter with configuration and registry."""
        self.recipe = config.recipe
        self._registry = registry

    def validate(self, descriptor: ImageDescriptor) -> None:
        """Check stage declarations and every merge-stage reference."""
        stages = index_stages(descriptor.build)

        if self.recipe.final_stage.lower() in {name.lower() for name in stages.named}:
            raise MalformedDescriptor(
                f"Build stage name collides with the final stage: {self.recipe.final_stage}",
                field="build",
            )

        for line in logical_lines(descriptor.merge):
            if instruction_of(line) == "FROM":
                raise MalformedDescriptor(
                    f"Merge script must not start a new stage: {line}", field="merge"
                )

        for ref, line in stage_references(descriptor.merge):
            if is_image_reference(ref) or stages.resolves(ref):
                continue
            raise UnknownStageReference(
                f"Merge script references unknown build stage '{ref}'",
                field="merge",
                context={
                    "instruction": line,
                    "known stages": ", ".join(sorted(stages.named)) or "(none)",
                },
            )

        sources = copied_sources(descriptor.merge)
        placed = {
            filename for filename, placement in self._placements().items() if placement.path
        }
        for spec in descriptor.files:
            if spec.filename not in sources and spec.filename not in placed:
                logger.warning(f"File {spec.filename} is never copied into the image")

    def compose(self, descriptor: ImageDescriptor) -> str:
        """Compose the full build recipe text."""
        self.validate(descriptor)
        return render_recipe(
            descriptor,
            self.recipe,
            install=self._install_instructions(descriptor),
        )

    def render(self, descriptor: ImageDescriptor) -> List[Artifact]:
        return [Artifact(path=RECIPE_FILENAME, content=self.compose(descriptor))]

    def _install_instructions(self, descriptor: ImageDescriptor) -> List[str]:
        if self._registry is None:
            return []
        lines: List[str] = []
        for emitter in self._registry.emitters():
            if emitter is not self:
                lines.extend(emitter.install_instructions(descriptor))
        return lines

    def _placements(self):
        if self._registry is None:
            return {}
        file_emitter = self._registry.get_emitter("files")
        return file_emitter.config.files if file_emitter else {}


def render_recipe(
    descriptor: ImageDescriptor,
    recipe: RecipeConfig,
    install: Optional[List[str]] = None,
) -> str:
    """Render build, final stage header, merge and install lines."""
    return render_template(
        RECIPE_TEMPLATE,
        base_image=recipe.base_image,
        final_stage=recipe.final_stage,
        build=descriptor.build.strip("\n"),
        merge=descriptor.merge.strip("\n"),
        install=install or [],
    )
