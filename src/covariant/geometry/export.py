"""
STL export pipeline: thread mode resolution, tessellation, validation, write.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple, Union

from .backend import GeometryBackend, Mesh
from .errors import ExportError, ExportErrorKind, GeomError
from .threads import ThreadMode

logger = logging.getLogger(__name__)


# =============================================================================
# Options
# =============================================================================

class Quality:
    """Tessellation quality as a chord-height tolerance in mm."""

    PRESETS = {
        "draft": 0.2,
        "standard": 0.05,
        "fine": 0.01,
    }

    def __init__(self, tolerance: float, name: Optional[str] = None):
        if not math.isfinite(tolerance) or tolerance <= 0:
            raise ValueError(f"tolerance must be a positive number, got {tolerance}")
        self.tolerance = float(tolerance)
        self.name = name

    @classmethod
    def draft(cls) -> "Quality":
        return cls(cls.PRESETS["draft"], "draft")

    @classmethod
    def standard(cls) -> "Quality":
        return cls(cls.PRESETS["standard"], "standard")

    @classmethod
    def fine(cls) -> "Quality":
        return cls(cls.PRESETS["fine"], "fine")

    @classmethod
    def custom(cls, tolerance: float) -> "Quality":
        return cls(tolerance)

    @classmethod
    def parse(cls, text: str) -> "Quality":
        """Accept a preset name or a positive number of millimeters."""
        key = text.strip().lower()
        if key in cls.PRESETS:
            return cls(cls.PRESETS[key], key)
        try:
            value = float(key)
        except ValueError:
            raise ValueError(
                f"unknown quality '{text}' (expected draft, standard, fine "
                f"or a tolerance in mm)"
            ) from None
        return cls(value)

    def __eq__(self, other):
        return isinstance(other, Quality) and self.tolerance == other.tolerance

    def __hash__(self):
        return hash(self.tolerance)

    def __repr__(self):
        if self.name:
            return f"Quality.{self.name}({self.tolerance})"
        return f"Quality.custom({self.tolerance})"


class StlFormat(Enum):
    BINARY = "binary"
    ASCII = "ascii"


@dataclass
class ExportOptions:
    quality: Quality = field(default_factory=Quality.standard)
    format: StlFormat = StlFormat.BINARY
    thread_mode: ThreadMode = ThreadMode.NONE

    @property
    def tolerance(self) -> float:
        return self.quality.tolerance


def resolve_thread_mode(requested: ThreadMode) -> Tuple[ThreadMode, Optional[str]]:
    """
    Map a requested thread mode to what STL can carry.

    STL has no annotations and helical threads are not generated yet, so
    everything resolves to NONE; the second element is a warning to show
    when the request was downgraded.
    """
    if requested == ThreadMode.COSMETIC:
        return ThreadMode.NONE, (
            "cosmetic thread annotations are not supported in STL; falling back to None"
        )
    if requested == ThreadMode.FULL:
        return ThreadMode.NONE, (
            "full helical thread geometry is not yet implemented; falling back to None"
        )
    return ThreadMode.NONE, None


# =============================================================================
# Validation
# =============================================================================

class MeshWarning(Enum):
    EMPTY_MESH = "mesh is empty (no positions or triangles)"
    NOT_WATERTIGHT = "mesh is not watertight (open or non-manifold edges)"


@dataclass
class MeshReport:
    position_count: int
    triangle_count: int
    warnings: List[MeshWarning] = field(default_factory=list)

    @property
    def is_ok(self) -> bool:
        return not self.warnings


def validate_mesh(mesh: Mesh) -> MeshReport:
    report = MeshReport(mesh.position_count, mesh.triangle_count)
    if mesh.is_empty():
        report.warnings.append(MeshWarning.EMPTY_MESH)
    elif not mesh.is_watertight():
        report.warnings.append(MeshWarning.NOT_WATERTIGHT)
    return report


# =============================================================================
# Pipeline
# =============================================================================

def export_stl(backend: GeometryBackend, shape: Union[Any, Mesh], path,
               options: Optional[ExportOptions] = None) -> MeshReport:
    """
    Tessellate ``shape`` (a backend solid or an existing Mesh) and write it.

    Raises ExportError when tessellation or writing fails, or when the
    mesh is empty. A mesh that is merely not watertight is written with a
    logged warning.
    """
    options = options or ExportOptions()

    _, note = resolve_thread_mode(options.thread_mode)
    if note:
        logger.warning(note)

    try:
        if isinstance(shape, Mesh):
            mesh = shape
        else:
            mesh = backend.tessellate(shape, options.tolerance)
    except GeomError as e:
        raise ExportError.from_geom(e) from e

    report = validate_mesh(mesh)
    if MeshWarning.EMPTY_MESH in report.warnings:
        raise ExportError(
            ExportErrorKind.VALIDATION_FAILED, "tessellation produced an empty mesh"
        )
    for warning in report.warnings:
        logger.warning("%s: %s", path, warning.value)

    try:
        backend.export_stl(mesh, path, binary=options.format == StlFormat.BINARY)
    except GeomError as e:
        raise ExportError.from_geom(e) from e

    logger.info(
        "wrote %s (%d triangles, %s, tolerance %.3g mm)",
        path, report.triangle_count, options.format.value, options.tolerance,
    )
    return report
