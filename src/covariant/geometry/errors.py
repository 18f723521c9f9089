"""
Errors raised by the geometry backend and the export pipeline.
"""

from enum import Enum


class GeomErrorKind(Enum):
    BOOLEAN_FAILED = "boolean operation failed"
    TESSELLATION_FAILED = "tessellation failed"
    INVALID_INPUT = "invalid input"
    IO_ERROR = "I/O error"


class GeomError(Exception):
    """A failed geometry operation."""

    def __init__(self, kind: GeomErrorKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(f"{kind.value}: {message}")


class ExportErrorKind(Enum):
    GEOM_ERROR = "geometry error"
    VALIDATION_FAILED = "mesh validation failed"


class ExportError(Exception):
    """A failed STL export."""

    def __init__(self, kind: ExportErrorKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(f"{kind.value}: {message}")

    @classmethod
    def from_geom(cls, error: GeomError) -> "ExportError":
        return cls(ExportErrorKind.GEOM_ERROR, str(error))
