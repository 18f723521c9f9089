"""Trimesh-backed geometry backend.

Solids are ``trimesh.Trimesh`` meshes wrapped in ``TrimeshSolid``. Each
wrapper keeps the recipe that produced it, so ``tessellate`` at a finer
tolerance than the one used during evaluation rebuilds the whole tree
(curved primitives included) at the requested chord height instead of
re-exporting the coarse mesh.

Booleans are dispatched through :mod:`trimesh.boolean`; the default
engine is ``manifold`` (the ``manifold3d`` package).
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Dict

import numpy as np
import trimesh
from trimesh import transformations as tf

from .backend import DEFAULT_TOLERANCE, GeometryBackend, Mesh, Profile, Vector
from .errors import GeomError, GeomErrorKind
from .triangulate import triangulate_loop

logger = logging.getLogger(__name__)

DEFAULT_ENGINE = "manifold"
MIN_SECTIONS = 8
MAX_SECTIONS = 1024
PLANAR_EPSILON = 1e-6


def engines_available() -> set[str]:
    """Return the set of trimesh boolean backends that are operational."""

    return set(trimesh.boolean.engines_available)


def is_available(engine: str | None = None) -> bool:
    """Check whether booleans can run (with ``engine`` if given)."""

    available = engines_available()
    if not available:
        return False
    if engine is None:
        return True
    return engine in available


def sections_for(radius: float, tolerance: float) -> int:
    """Segments per full turn so the chord height stays under ``tolerance``."""

    if radius <= 0 or tolerance >= radius:
        return MIN_SECTIONS
    half_angle = math.acos(1.0 - tolerance / radius)
    n = math.ceil(math.pi / half_angle)
    return max(MIN_SECTIONS, min(MAX_SECTIONS, n))


class TrimeshSolid:
    """A solid handle: a build recipe plus its meshes per tolerance."""

    def __init__(self, build: Callable[[float], trimesh.Trimesh], label: str,
                 tolerance: float = DEFAULT_TOLERANCE):
        self._build = build
        self._cache: Dict[float, trimesh.Trimesh] = {}
        self.label = label
        self.tolerance = tolerance
        self.mesh = self.at(tolerance)

    def at(self, tolerance: float) -> trimesh.Trimesh:
        """The mesh of this solid built at ``tolerance``."""
        mesh = self._cache.get(tolerance)
        if mesh is None:
            mesh = self._build(tolerance)
            self._cache[tolerance] = mesh
        return mesh

    @property
    def volume(self) -> float:
        return float(self.mesh.volume)

    @property
    def bounds(self) -> np.ndarray:
        return np.asarray(self.mesh.bounds)

    def __repr__(self) -> str:
        return f"TrimeshSolid({self.label}, faces={len(self.mesh.faces)})"


# =============================================================================
# Vector helpers
# =============================================================================

def _vec(v: Vector, what: str) -> np.ndarray:
    arr = np.asarray(v, dtype=np.float64).reshape(3)
    if not np.all(np.isfinite(arr)):
        raise GeomError(GeomErrorKind.INVALID_INPUT, f"{what} must be finite")
    return arr


def _unit(v: Vector, what: str) -> np.ndarray:
    arr = _vec(v, what)
    length = np.linalg.norm(arr)
    if length < PLANAR_EPSILON:
        raise GeomError(GeomErrorKind.INVALID_INPUT, f"{what} must be non-zero")
    return arr / length


def _profile_plane(points: np.ndarray):
    """Newell normal of a polygon and a check that it is planar."""
    normal = np.zeros(3)
    for i in range(len(points)):
        cur = points[i]
        nxt = points[(i + 1) % len(points)]
        normal[0] += (cur[1] - nxt[1]) * (cur[2] + nxt[2])
        normal[1] += (cur[2] - nxt[2]) * (cur[0] + nxt[0])
        normal[2] += (cur[0] - nxt[0]) * (cur[1] + nxt[1])
    length = np.linalg.norm(normal)
    if length < PLANAR_EPSILON:
        raise GeomError(GeomErrorKind.INVALID_INPUT, "profile is degenerate (zero area)")
    normal /= length

    extent = max(float(np.ptp(points, axis=0).max()), 1.0)
    offsets = np.abs((points - points[0]) @ normal)
    if offsets.max() > PLANAR_EPSILON * extent:
        raise GeomError(GeomErrorKind.INVALID_INPUT, "profile is not planar")
    return normal


def _in_plane_axis(points: np.ndarray, normal: np.ndarray) -> np.ndarray:
    """A unit vector in the profile plane, along the first usable edge."""
    for i in range(1, len(points)):
        edge = points[i] - points[0]
        edge = edge - (edge @ normal) * normal
        length = np.linalg.norm(edge)
        if length > PLANAR_EPSILON:
            return edge / length
    raise GeomError(GeomErrorKind.INVALID_INPUT, "profile is degenerate (zero area)")


def _finish(vertices: np.ndarray, faces: np.ndarray) -> trimesh.Trimesh:
    """Merge seams, drop slivers and orient the mesh outward."""
    mesh = trimesh.Trimesh(vertices=vertices, faces=faces, process=True)
    mesh.update_faces(mesh.nondegenerate_faces())
    mesh.remove_unreferenced_vertices()
    mesh.fix_normals()
    if mesh.volume < 0:
        mesh.invert()
    return mesh


def _transformed(mesh: trimesh.Trimesh, matrix: np.ndarray) -> trimesh.Trimesh:
    result = mesh.copy()
    result.apply_transform(matrix)
    if result.volume < 0:
        result.invert()
    return result


# =============================================================================
# Backend
# =============================================================================

class TrimeshBackend(GeometryBackend):
    """``GeometryBackend`` over trimesh meshes."""

    def __init__(self, engine: str = DEFAULT_ENGINE, tolerance: float = DEFAULT_TOLERANCE):
        if tolerance <= 0:
            raise ValueError("tolerance must be positive")
        self.engine = engine
        self.tolerance = tolerance

    def _solid(self, build: Callable[[float], trimesh.Trimesh], label: str) -> TrimeshSolid:
        return TrimeshSolid(build, label, self.tolerance)

    @staticmethod
    def _check(solid) -> TrimeshSolid:
        if not isinstance(solid, TrimeshSolid):
            raise GeomError(GeomErrorKind.INVALID_INPUT,
                            f"expected a TrimeshSolid, got {type(solid).__name__}")
        return solid

    # --- Primitives ---

    def box(self, size_x: float, size_y: float, size_z: float) -> TrimeshSolid:
        extents = (float(size_x), float(size_y), float(size_z))
        if min(extents) <= 0:
            raise GeomError(GeomErrorKind.INVALID_INPUT,
                            f"box dimensions must be positive, got {extents}")
        return self._solid(lambda tol: trimesh.creation.box(extents=extents), "box")

    def cylinder(self, radius: float, height: float) -> TrimeshSolid:
        radius, height = float(radius), float(height)
        if radius <= 0 or height <= 0:
            raise GeomError(GeomErrorKind.INVALID_INPUT,
                            "cylinder radius and height must be positive")

        def build(tol):
            mesh = trimesh.creation.cylinder(radius=radius, height=height,
                                             sections=sections_for(radius, tol))
            mesh.apply_translation((0.0, 0.0, height / 2.0))
            return mesh

        return self._solid(build, "cylinder")

    def sphere(self, radius: float) -> TrimeshSolid:
        radius = float(radius)
        if radius <= 0:
            raise GeomError(GeomErrorKind.INVALID_INPUT, "sphere radius must be positive")

        def build(tol):
            n = sections_for(radius, tol)
            return trimesh.creation.uv_sphere(radius=radius, count=[max(n // 2, 4), n])

        return self._solid(build, "sphere")

    # --- Booleans ---

    def _boolean(self, op: str, a, b) -> TrimeshSolid:
        a, b = self._check(a), self._check(b)
        func = getattr(trimesh.boolean, op)
        engine = self.engine

        def build(tol):
            meshes = [a.at(tol), b.at(tol)]
            logger.debug("%s of %d + %d faces (engine=%s)",
                         op, len(meshes[0].faces), len(meshes[1].faces), engine)
            try:
                result = func(meshes, engine=engine, check_volume=False)
            except Exception as exc:
                raise GeomError(GeomErrorKind.BOOLEAN_FAILED, f"{op}: {exc}") from exc
            if result is None or len(result.faces) == 0:
                raise GeomError(GeomErrorKind.BOOLEAN_FAILED, f"{op} produced an empty solid")
            return result

        return self._solid(build, op)

    def union(self, a, b) -> TrimeshSolid:
        return self._boolean("union", a, b)

    def difference(self, a, b) -> TrimeshSolid:
        return self._boolean("difference", a, b)

    def intersection(self, a, b) -> TrimeshSolid:
        return self._boolean("intersection", a, b)

    # --- Transforms ---

    def _apply(self, solid, matrix: np.ndarray, label: str) -> TrimeshSolid:
        solid = self._check(solid)
        return self._solid(lambda tol: _transformed(solid.at(tol), matrix), label)

    def translate(self, solid, v: Vector) -> TrimeshSolid:
        return self._apply(solid, tf.translation_matrix(_vec(v, "translation")), "translate")

    def rotate(self, solid, origin: Vector, axis: Vector, angle_rad: float) -> TrimeshSolid:
        matrix = tf.rotation_matrix(float(angle_rad), _unit(axis, "rotation axis"),
                                    point=_vec(origin, "rotation origin"))
        return self._apply(solid, matrix, "rotate")

    def scale(self, solid, center: Vector, factor: float) -> TrimeshSolid:
        factor = float(factor)
        if factor == 0 or not math.isfinite(factor):
            raise GeomError(GeomErrorKind.INVALID_INPUT,
                            f"scale factor must be finite and non-zero, got {factor}")
        matrix = tf.scale_matrix(factor, origin=_vec(center, "scale center"))
        return self._apply(solid, matrix, "scale")

    def mirror(self, solid, origin: Vector, normal: Vector) -> TrimeshSolid:
        matrix = tf.reflection_matrix(_vec(origin, "mirror origin"),
                                      _unit(normal, "mirror normal"))
        return self._apply(solid, matrix, "mirror")

    # --- Profiles ---

    def sweep(self, profile: Profile, direction: Vector) -> TrimeshSolid:
        points = profile.as_array()
        normal = _profile_plane(points)
        d = _vec(direction, "sweep direction")
        length = np.linalg.norm(d)
        if length < PLANAR_EPSILON or abs(d @ normal) < PLANAR_EPSILON * length:
            raise GeomError(GeomErrorKind.INVALID_INPUT,
                            "sweep direction must not lie in the profile plane")

        origin = points[0]
        u = _in_plane_axis(points, normal)
        v = np.cross(normal, u)
        rel = points - origin
        loop, tris = triangulate_loop(np.column_stack([rel @ u, rel @ v]))

        def build(tol):
            k = len(loop)
            bottom = origin + np.outer(loop[:, 0], u) + np.outer(loop[:, 1], v)
            top = bottom + d
            vertices = np.vstack([bottom, top])
            idx = np.arange(k)
            nxt = (idx + 1) % k
            sides = np.vstack([
                np.column_stack([idx, nxt, nxt + k]),
                np.column_stack([idx, nxt + k, idx + k]),
            ])
            faces = np.vstack([tris[:, ::-1], tris + k, sides])
            return _finish(vertices, faces)

        return self._solid(build, "sweep")

    def revolve(self, profile: Profile, origin: Vector, axis: Vector,
                angle_rad: float) -> TrimeshSolid:
        points = profile.as_array()
        normal = _profile_plane(points)
        o = _vec(origin, "revolve origin")
        a = _unit(axis, "revolve axis")
        angle = float(angle_rad)
        if angle == 0 or not math.isfinite(angle):
            raise GeomError(GeomErrorKind.INVALID_INPUT, "revolve angle must be non-zero")
        if angle < 0:
            a, angle = -a, -angle
        angle = min(angle, 2.0 * math.pi)

        extent = max(float(np.ptp(points, axis=0).max()), 1.0)
        if abs(a @ normal) > PLANAR_EPSILON or abs((o - points[0]) @ normal) > PLANAR_EPSILON * extent:
            raise GeomError(GeomErrorKind.INVALID_INPUT,
                            "revolve axis must lie in the profile plane")

        e = np.cross(a, normal)
        rel = points - o
        radial = rel @ e
        if radial.max() <= PLANAR_EPSILON * extent:
            e, radial = -e, -radial
        if radial.min() < -PLANAR_EPSILON * extent:
            raise GeomError(GeomErrorKind.INVALID_INPUT, "profile crosses the revolve axis")
        radial = np.clip(radial, 0.0, None)
        w = np.cross(a, e)
        loop, tris = triangulate_loop(np.column_stack([radial, rel @ a]))
        full = angle >= 2.0 * math.pi - 1e-9
        max_radius = float(loop[:, 0].max())

        def build(tol):
            turn = sections_for(max_radius, tol)
            segments = max(1, math.ceil(turn * angle / (2.0 * math.pi)))
            rings = segments if full else segments + 1
            k = len(loop)
            thetas = np.linspace(0.0, angle, segments + 1)[:rings]
            vertices = np.vstack([
                o + np.outer(loop[:, 0], math.cos(t) * e + math.sin(t) * w)
                + np.outer(loop[:, 1], a)
                for t in thetas
            ])
            idx = np.arange(k)
            nxt = (idx + 1) % k
            faces = []
            for j in range(segments):
                lo = j * k
                hi = ((j + 1) % rings) * k
                faces.append(np.column_stack([lo + idx, hi + idx, hi + nxt]))
                faces.append(np.column_stack([lo + idx, hi + nxt, lo + nxt]))
            if not full:
                faces.append(tris)
                faces.append(tris[:, ::-1] + segments * k)
            return _finish(vertices, np.vstack(faces))

        return self._solid(build, "revolve")

    # --- Output ---

    def tessellate(self, solid, tolerance: float = DEFAULT_TOLERANCE) -> Mesh:
        solid = self._check(solid)
        if tolerance <= 0:
            raise GeomError(GeomErrorKind.INVALID_INPUT, "tolerance must be positive")
        try:
            mesh = solid.at(tolerance)
        except GeomError:
            raise
        except Exception as exc:
            raise GeomError(GeomErrorKind.TESSELLATION_FAILED, str(exc)) from exc
        logger.debug("tessellated %s at %.3g mm: %d triangles",
                     solid.label, tolerance, len(mesh.faces))
        return Mesh(np.array(mesh.vertices), np.array(mesh.faces))
