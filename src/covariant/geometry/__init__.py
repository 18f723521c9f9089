"""
Geometry collaborators for the evaluator.

The backend interface and its errors are always importable; the trimesh
backend is imported on demand so that the language front end does not
pull in trimesh.
"""

from .backend import DEFAULT_TOLERANCE, GeometryBackend, Mesh, Profile, Vector
from .errors import ExportError, ExportErrorKind, GeomError, GeomErrorKind
from .export import (
    ExportOptions,
    MeshReport,
    MeshWarning,
    Quality,
    StlFormat,
    export_stl,
    resolve_thread_mode,
    validate_mesh,
)
from .threads import (
    ThreadKind,
    ThreadMode,
    ThreadSize,
    ThreadSpec,
    ThreadStandard,
    generate_thread_geometry,
    get_dimensions,
    thread_hole_profile,
)

__all__ = [
    "DEFAULT_TOLERANCE",
    "GeometryBackend",
    "Mesh",
    "Profile",
    "Vector",
    "GeomError",
    "GeomErrorKind",
    "ExportError",
    "ExportErrorKind",
    "ExportOptions",
    "MeshReport",
    "MeshWarning",
    "Quality",
    "StlFormat",
    "export_stl",
    "resolve_thread_mode",
    "validate_mesh",
    "ThreadKind",
    "ThreadMode",
    "ThreadSize",
    "ThreadSpec",
    "ThreadStandard",
    "generate_thread_geometry",
    "get_dimensions",
    "thread_hole_profile",
]
