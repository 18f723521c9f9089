"""
Geometry backend interface.

The evaluator never touches a modeling kernel directly. It is handed a
``GeometryBackend`` and treats the solids it returns as opaque handles.
Coordinates are millimeters and angles are radians throughout.

Conventions shared by every backend:

- ``box`` is centered at the origin.
- ``cylinder`` runs along +Z with its base on the XY plane.
- ``sphere`` is centered at the origin.
- ``union_many`` folds ``union`` left to right over a non-empty sequence.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Sequence, Tuple

import numpy as np

from .errors import GeomError, GeomErrorKind

Vector = Tuple[float, float, float]

DEFAULT_TOLERANCE = 0.05  # chord height in mm


@dataclass(frozen=True)
class Profile:
    """A closed planar polygon given by its vertices in order."""
    points: Tuple[Vector, ...]

    def __post_init__(self):
        if len(self.points) < 3:
            raise GeomError(
                GeomErrorKind.INVALID_INPUT,
                f"a profile needs at least 3 points, got {len(self.points)}",
            )

    def as_array(self) -> np.ndarray:
        return np.asarray(self.points, dtype=np.float64)


class Mesh:
    """
    A triangle mesh: ``vertices`` is (N, 3) float, ``faces`` is (M, 3) int.

    Backends produce meshes from ``tessellate``; the STL writer and the
    export pipeline consume them without knowing which backend made them.
    """

    def __init__(self, vertices, faces):
        self.vertices = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
        self.faces = np.asarray(faces, dtype=np.int64).reshape(-1, 3)

    @classmethod
    def empty(cls) -> "Mesh":
        return cls(np.zeros((0, 3)), np.zeros((0, 3), dtype=np.int64))

    @property
    def position_count(self) -> int:
        return len(self.vertices)

    @property
    def triangle_count(self) -> int:
        return len(self.faces)

    def is_empty(self) -> bool:
        return self.position_count == 0 or self.triangle_count == 0

    def triangles(self) -> np.ndarray:
        """Triangle corner coordinates, shape (M, 3, 3)."""
        return self.vertices[self.faces]

    def face_normals(self) -> np.ndarray:
        """Unit normals per triangle; degenerate triangles get zeros."""
        tris = self.triangles()
        normals = np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0])
        lengths = np.linalg.norm(normals, axis=1)
        nonzero = lengths > 0
        normals[nonzero] /= lengths[nonzero][:, None]
        return normals

    def is_watertight(self) -> bool:
        """Every edge is shared by exactly two triangles."""
        if self.is_empty():
            return False
        edges = np.sort(self.faces[:, [0, 1, 1, 2, 2, 0]].reshape(-1, 2), axis=1)
        _, counts = np.unique(edges, axis=0, return_counts=True)
        return bool(np.all(counts == 2))

    def __repr__(self) -> str:
        return f"Mesh(positions={self.position_count}, triangles={self.triangle_count})"


class GeometryBackend(ABC):
    """
    Abstract solid-modeling capability used by the evaluator.

    Solids are opaque: callers only pass them back into the backend.
    Fallible operations raise ``GeomError``.
    """

    # --- Primitives ---

    @abstractmethod
    def box(self, size_x: float, size_y: float, size_z: float) -> Any:
        """Axis-aligned box centered at the origin."""

    @abstractmethod
    def cylinder(self, radius: float, height: float) -> Any:
        """Cylinder along +Z with its base at the origin."""

    @abstractmethod
    def sphere(self, radius: float) -> Any:
        """Sphere centered at the origin."""

    # --- Booleans ---

    @abstractmethod
    def union(self, a: Any, b: Any) -> Any:
        pass

    @abstractmethod
    def difference(self, a: Any, b: Any) -> Any:
        pass

    @abstractmethod
    def intersection(self, a: Any, b: Any) -> Any:
        pass

    def union_many(self, solids: Sequence[Any]) -> Any:
        """Union a non-empty sequence of solids, folding left to right."""
        if not solids:
            raise GeomError(
                GeomErrorKind.INVALID_INPUT, "union_many requires at least one solid"
            )
        result = solids[0]
        for solid in solids[1:]:
            result = self.union(result, solid)
        return result

    # --- Transforms ---

    @abstractmethod
    def translate(self, solid: Any, v: Vector) -> Any:
        pass

    @abstractmethod
    def rotate(self, solid: Any, origin: Vector, axis: Vector, angle_rad: float) -> Any:
        pass

    @abstractmethod
    def scale(self, solid: Any, center: Vector, factor: float) -> Any:
        """Uniform scale about ``center``."""

    @abstractmethod
    def mirror(self, solid: Any, origin: Vector, normal: Vector) -> Any:
        """Reflect through the plane at ``origin`` with ``normal``."""

    # --- Profiles ---

    @abstractmethod
    def sweep(self, profile: Profile, direction: Vector) -> Any:
        """Sweep a planar profile along ``direction`` into a prism."""

    @abstractmethod
    def revolve(self, profile: Profile, origin: Vector, axis: Vector,
                angle_rad: float) -> Any:
        """Revolve a planar profile about the axis through ``origin``."""

    # --- Output ---

    @abstractmethod
    def tessellate(self, solid: Any, tolerance: float = DEFAULT_TOLERANCE) -> Mesh:
        """Triangulate ``solid`` with the given chord-height tolerance."""

    def export_stl(self, mesh: Mesh, path, binary: bool = True) -> None:
        """Write ``mesh`` to ``path`` as STL."""
        from .stl import write_stl

        try:
            write_stl(mesh, path, binary=binary)
        except OSError as e:
            raise GeomError(GeomErrorKind.IO_ERROR, f"{path}: {e.strerror or e}") from e
