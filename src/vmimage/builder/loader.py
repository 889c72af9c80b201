"""Descriptor, configuration and supervision table loading."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from vmimage.errors import ConfigurationError, ImageBuildError, MalformedDescriptor
from vmimage.models.config import BuilderConfig
from vmimage.models.image import ImageDescriptor
from vmimage.models.supervision import SupervisionTable


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def format_location(loc) -> str:
    """Render a pydantic error location as ``commands[2].sysvInitAction``."""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        elif path:
            path += f".{part}"
        else:
            path = str(part)
    return path


class DescriptorLoader:
    """Reads YAML documents and validates them into models."""

    def __init__(self):
        """Initialize loader."""
        self.yaml = YAML(typ="safe", pure=True)
        self.yaml.allow_duplicate_keys = False

    def parse_descriptor(self, text: str, source: str = "<string>") -> ImageDescriptor:
        """Parse descriptor text into an ``ImageDescriptor``."""
        data = self._parse_yaml(text, source, MalformedDescriptor)
        descriptor = self._validate(ImageDescriptor, data, source, MalformedDescriptor)
        logger.debug(
            f"Parsed descriptor {source}: {len(descriptor.commands)} commands, "
            f"{len(descriptor.files)} files"
        )
        return descriptor

    def load_descriptor(self, path: Union[str, Path]) -> ImageDescriptor:
        """Load descriptor from file."""
        path = Path(path)
        text = self._read(path, MalformedDescriptor)
        return self.parse_descriptor(text, source=str(path))

    def load_config(self, path: Optional[Union[str, Path]] = None) -> BuilderConfig:
        """Load builder configuration; defaults when no path is given."""
        if path is None:
            return BuilderConfig()
        path = Path(path)
        text = self._read(path, ConfigurationError)
        data = self._parse_yaml(text, str(path), ConfigurationError)
        if data is None:
            return BuilderConfig()
        config = self._validate(BuilderConfig, data, str(path), ConfigurationError)
        logger.debug(f"Loaded builder config: {path}")
        return config

    def load_supervision_table(self, path: Union[str, Path]) -> SupervisionTable:
        """Load a supervision table written by the supervision emitter."""
        path = Path(path)
        text = self._read(path, ConfigurationError)
        data = self._parse_yaml(text, str(path), ConfigurationError)
        return self._validate(SupervisionTable, data, str(path), ConfigurationError)

    def _read(self, path: Path, error: Type[ImageBuildError]) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise error(f"Cannot read {path}: {e}", context={"path": str(path)}) from e

    def _parse_yaml(self, text: str, source: str, error: Type[ImageBuildError]) -> Any:
        try:
            return self.yaml.load(text)
        except YAMLError as e:
            raise error(f"Invalid YAML in {source}", context={"detail": str(e)}) from e

    def _validate(
        self,
        model: Type[ModelT],
        data: Any,
        source: str,
        error: Type[ImageBuildError],
    ) -> ModelT:
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise error(
                f"{source} must contain a mapping, got {type(data).__name__}",
                context={"path": source},
            )
        try:
            return model.model_validate(data)
        except ValidationError as e:
            first: Dict[str, Any] = e.errors()[0]
            field = format_location(first["loc"]) or None
            raise error(
                f"Invalid {source}: {first['msg']}",
                field=field,
                context={"errors": str(e.error_count())},
            ) from e


_loader = DescriptorLoader()


def parse_descriptor(text: str, source: str = "<string>") -> ImageDescriptor:
    return _loader.parse_descriptor(text, source=source)


def load_descriptor(path: Union[str, Path]) -> ImageDescriptor:
    return _loader.load_descriptor(path)


def load_config(path: Optional[Union[str, Path]] = None) -> BuilderConfig:
    return _loader.load_config(path)


def load_supervision_table(path: Union[str, Path]) -> SupervisionTable:
    return _loader.load_supervision_table(path)
