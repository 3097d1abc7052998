"""Request, result and status types shared by the service and its adapters."""

import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Sequence, Tuple

MEDIA_TYPES = {
    "pdf": "application/pdf",
    "text": "text/plain",
    "markdown": "text/markdown",
    "html": "text/html",
    "zip": "application/zip",
}


class Severity(str, Enum):
    """Severity of a user-facing status message."""
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class StatusMessage:
    """A message for the user plus how it should be presented."""
    message: str
    severity: Severity = Severity.INFO

    def to_dict(self) -> Dict[str, str]:
        return {"message": self.message, "severity": self.severity.value}


@dataclass(frozen=True)
class InputFile:
    """An uploaded file. The content type is guessed from the name if missing."""
    filename: str
    data: bytes = field(repr=False)
    content_type: str = ""

    def __post_init__(self):
        if not self.content_type:
            guessed, _ = mimetypes.guess_type(self.filename)
            object.__setattr__(self, "content_type", guessed or "application/octet-stream")

    @property
    def is_pdf(self) -> bool:
        return self.content_type == "application/pdf"

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    @property
    def size_mb(self) -> float:
        return len(self.data) / 1024 / 1024


@dataclass(frozen=True)
class OperationRequest:
    """
    Everything one run of an operation needs.

    Built once by an adapter (HTTP route, CLI command) and passed down
    unchanged; handlers never look anywhere else for files or options.
    """
    action: str
    files: Tuple[InputFile, ...] = ()
    options: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "files", tuple(self.files))
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    @classmethod
    def create(
        cls,
        action: str,
        files: Sequence[InputFile],
        options: Optional[Dict[str, str]] = None,
    ) -> "OperationRequest":
        cleaned = {k: str(v) for k, v in (options or {}).items() if v is not None}
        return cls(action=action, files=tuple(files), options=cleaned)


@dataclass
class OperationResult:
    """Outcome of an operation run, successful or not."""
    success: bool
    status: StatusMessage
    data: bytes = b""
    filename: str = ""
    media_type: str = ""
    metadata: Dict[str, str] = field(default_factory=dict)
    error_code: str = ""
    processing_time_ms: int = 0
