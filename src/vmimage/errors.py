"""Error taxonomy with stable codes and process exit statuses."""

from enum import Enum
from typing import Dict, Mapping, Optional


class ErrorCode(str, Enum):
    """Stable error identifiers."""
    MALFORMED_DESCRIPTOR = "E_MALFORMED_DESCRIPTOR"
    UNKNOWN_STAGE_REFERENCE = "E_UNKNOWN_STAGE_REFERENCE"
    MATERIALIZATION = "E_MATERIALIZATION"
    SUPERVISION_STARTUP = "E_SUPERVISION_STARTUP"
    CONFIGURATION = "E_CONFIGURATION"


EXIT_CODES: Dict[ErrorCode, int] = {
    ErrorCode.MALFORMED_DESCRIPTOR: 3,
    ErrorCode.UNKNOWN_STAGE_REFERENCE: 4,
    ErrorCode.MATERIALIZATION: 5,
    ErrorCode.SUPERVISION_STARTUP: 6,
    ErrorCode.CONFIGURATION: 7,
}


class ImageBuildError(Exception):
    """Base error carrying a code, the offending field and extra context."""

    code_enum: ErrorCode = ErrorCode.MALFORMED_DESCRIPTOR

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        context: Optional[Mapping[str, str]] = None,
    ):
        super().__init__(message)
        self.field = field
        self.context = dict(context or {})

    @property
    def code(self) -> str:
        return self.code_enum.value

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self.code_enum]

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.field:
            parts.append(f"  field: {self.field}")
        for key, value in self.context.items():
            if value:
                parts.append(f"  {key}: {value}")
        return "\n".join(parts)


class MalformedDescriptor(ImageBuildError):
    """Descriptor failed schema or uniqueness validation."""
    code_enum = ErrorCode.MALFORMED_DESCRIPTOR


class UnknownStageReference(ImageBuildError):
    """Merge stage references a build stage that was never declared."""
    code_enum = ErrorCode.UNKNOWN_STAGE_REFERENCE


class MaterializationFailure(ImageBuildError):
    """Writing an artifact to the output directory failed."""
    code_enum = ErrorCode.MATERIALIZATION


class SupervisionStartupFailure(ImageBuildError):
    """A sysinit command exited non-zero while the supervisor was starting."""
    code_enum = ErrorCode.SUPERVISION_STARTUP


class ConfigurationError(ImageBuildError):
    """Builder configuration file is missing or invalid."""
    code_enum = ErrorCode.CONFIGURATION
