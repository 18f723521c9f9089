"""
Shared fixtures: a recording in-memory geometry backend and program runners.
"""

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Tuple

import numpy as np
import pytest

from covariant import compile_source
from covariant.geometry.backend import GeometryBackend, Mesh
from covariant.geometry.errors import GeomError, GeomErrorKind
from covariant.runtime import evaluate

EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"


@dataclass(eq=False)
class FakeSolid:
    """A solid handle that remembers how it was made."""
    op: str
    args: Tuple[Any, ...] = ()
    parents: Tuple["FakeSolid", ...] = ()


# Unit tetrahedron: closed, consistently wound
_TETRA_VERTICES = np.array([
    [0.0, 0.0, 0.0],
    [1.0, 0.0, 0.0],
    [0.0, 1.0, 0.0],
    [0.0, 0.0, 1.0],
])
_TETRA_FACES = np.array([
    [0, 2, 1],
    [0, 1, 3],
    [1, 2, 3],
    [0, 3, 2],
])


class FakeBackend(GeometryBackend):
    """
    Geometry backend that builds ``FakeSolid`` trees and logs every call.

    ``tessellate`` returns a tetrahedron, or an empty mesh for solids
    whose op is in ``empty_ops``.
    """

    def __init__(self):
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.fail_ops = set()
        self.empty_ops = set()

    def _make(self, op: str, *args, parents=()) -> FakeSolid:
        self.calls.append((op, args))
        if op in self.fail_ops:
            raise GeomError(GeomErrorKind.BOOLEAN_FAILED, f"{op} refused")
        return FakeSolid(op, args, tuple(parents))

    def ops(self) -> List[str]:
        return [op for op, _ in self.calls]

    # --- Primitives ---

    def box(self, size_x, size_y, size_z):
        if min(size_x, size_y, size_z) <= 0:
            raise GeomError(GeomErrorKind.INVALID_INPUT, "box dimensions must be positive")
        return self._make("box", size_x, size_y, size_z)

    def cylinder(self, radius, height):
        return self._make("cylinder", radius, height)

    def sphere(self, radius):
        return self._make("sphere", radius)

    # --- Booleans ---

    def union(self, a, b):
        return self._make("union", parents=(a, b))

    def difference(self, a, b):
        return self._make("difference", parents=(a, b))

    def intersection(self, a, b):
        return self._make("intersection", parents=(a, b))

    # --- Transforms ---

    def translate(self, solid, v):
        return self._make("translate", tuple(v), parents=(solid,))

    def rotate(self, solid, origin, axis, angle_rad):
        return self._make("rotate", tuple(origin), tuple(axis), angle_rad, parents=(solid,))

    def scale(self, solid, center, factor):
        return self._make("scale", tuple(center), factor, parents=(solid,))

    def mirror(self, solid, origin, normal):
        return self._make("mirror", tuple(origin), tuple(normal), parents=(solid,))

    # --- Profiles ---

    def sweep(self, profile, direction):
        return self._make("sweep", profile.points, tuple(direction))

    def revolve(self, profile, origin, axis, angle_rad):
        return self._make("revolve", profile.points, tuple(origin), tuple(axis), angle_rad)

    # --- Output ---

    def tessellate(self, solid, tolerance=0.05):
        self.calls.append(("tessellate", (tolerance,)))
        if solid.op in self.empty_ops:
            return Mesh.empty()
        return Mesh(_TETRA_VERTICES, _TETRA_FACES)


@pytest.fixture
def examples_dir():
    return EXAMPLES_DIR


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def run(backend):
    """Compile and evaluate a program against the fake backend."""
    def _run(source, **kwargs):
        return evaluate(compile_source(source), backend, **kwargs)
    return _run


@pytest.fixture
def run_printing(backend):
    """Like ``run`` but returns (value, printed text)."""
    def _run(source, **kwargs):
        out = io.StringIO()
        value = evaluate(compile_source(source), backend, output=out, **kwargs)
        return value, out.getvalue()
    return _run
