"""
Thread hole dimensions for ISO metric and UTS (Unified) fasteners.

Tables give, per size: pitch, major diameter, minor diameter, tap drill,
close/medium/free clearance holes and heat-set insert hole, all in mm.
A ``ThreadSpec`` selects a size and a hole kind; ``thread_hole_profile``
turns it into a revolve profile for a plain (unthreaded) hole with an
optional 45 degree entry chamfer.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from .backend import Profile
from .errors import GeomError, GeomErrorKind


class ThreadStandard(Enum):
    ISO_METRIC = "ISO"
    UTS = "UTS"
    BSW = "BSW"          # recognized, no dimension table yet


class ThreadSize(Enum):
    M1_6 = "M1.6"
    M2 = "M2"
    M2_5 = "M2.5"
    M3 = "M3"
    M4 = "M4"
    M5 = "M5"
    M6 = "M6"
    M8 = "M8"
    M10 = "M10"
    M12 = "M12"
    M14 = "M14"
    M16 = "M16"
    M20 = "M20"
    M24 = "M24"
    M30 = "M30"
    UTS_2_56 = "#2-56"
    UTS_4_40 = "#4-40"
    UTS_6_32 = "#6-32"
    UTS_8_32 = "#8-32"
    UTS_10_24 = "#10-24"
    UTS_10_32 = "#10-32"
    UTS_1_4_20 = '1/4"-20'
    UTS_5_16_18 = '5/16"-18'
    UTS_3_8_16 = '3/8"-16'
    UTS_7_16_14 = '7/16"-14'
    UTS_1_2_13 = '1/2"-13'
    UTS_5_8_11 = '5/8"-11'
    UTS_3_4_10 = '3/4"-10'

    @property
    def standard(self) -> ThreadStandard:
        if self.name.startswith("UTS_"):
            return ThreadStandard.UTS
        return ThreadStandard.ISO_METRIC

    def __str__(self) -> str:
        return self.value


class ThreadKind(Enum):
    INTERNAL = "internal"                 # tapped hole: tap drill diameter
    EXTERNAL = "external"                 # major diameter
    CLEARANCE_CLOSE = "clearance-close"
    CLEARANCE_MEDIUM = "clearance-medium"
    CLEARANCE_FREE = "clearance-free"
    INSERT = "insert"                     # heat-set insert hole


class ThreadMode(Enum):
    """How threads are represented in exported geometry."""
    NONE = "none"
    COSMETIC = "cosmetic"
    FULL = "full"


@dataclass(frozen=True)
class ThreadDimensions:
    nominal: float
    pitch: float
    major_diameter: float
    minor_diameter: float
    tap_drill: float
    clearance_close: float
    clearance_medium: float
    clearance_free: float
    insert_hole: float


def _dims(pitch, nominal, minor, tap, close, medium, free, insert) -> ThreadDimensions:
    return ThreadDimensions(
        nominal=nominal,
        pitch=pitch,
        major_diameter=nominal,
        minor_diameter=minor,
        tap_drill=tap,
        clearance_close=close,
        clearance_medium=medium,
        clearance_free=free,
        insert_hole=insert,
    )


# pitch, nominal, minor, tap drill, close, medium, free, insert
ISO_METRIC_TABLE: Dict[ThreadSize, ThreadDimensions] = {
    ThreadSize.M1_6: _dims(0.35, 1.6, 1.221, 1.25, 1.7, 1.8, 2.0, 2.1),
    ThreadSize.M2: _dims(0.4, 2.0, 1.567, 1.6, 2.2, 2.4, 2.6, 2.7),
    ThreadSize.M2_5: _dims(0.45, 2.5, 2.013, 2.05, 2.7, 2.9, 3.1, 3.3),
    ThreadSize.M3: _dims(0.5, 3.0, 2.459, 2.5, 3.2, 3.4, 3.6, 4.0),
    ThreadSize.M4: _dims(0.7, 4.0, 3.242, 3.3, 4.3, 4.5, 4.8, 5.2),
    ThreadSize.M5: _dims(0.8, 5.0, 4.134, 4.2, 5.3, 5.5, 5.8, 6.4),
    ThreadSize.M6: _dims(1.0, 6.0, 4.917, 5.0, 6.4, 6.6, 7.0, 7.6),
    ThreadSize.M8: _dims(1.25, 8.0, 6.647, 6.8, 8.4, 9.0, 10.0, 10.2),
    ThreadSize.M10: _dims(1.5, 10.0, 8.376, 8.5, 10.5, 11.0, 12.0, 12.7),
    ThreadSize.M12: _dims(1.75, 12.0, 10.106, 10.2, 13.0, 13.5, 14.5, 15.2),
    ThreadSize.M14: _dims(2.0, 14.0, 11.835, 12.0, 15.0, 15.5, 16.5, 17.7),
    ThreadSize.M16: _dims(2.0, 16.0, 13.835, 14.0, 17.0, 17.5, 18.5, 20.2),
    ThreadSize.M20: _dims(2.5, 20.0, 17.294, 17.5, 21.0, 22.0, 24.0, 25.2),
    ThreadSize.M24: _dims(3.0, 24.0, 20.752, 21.0, 25.0, 26.0, 28.0, 30.2),
    ThreadSize.M30: _dims(3.5, 30.0, 26.211, 26.5, 31.0, 33.0, 35.0, 37.7),
}

# Inch sizes converted to mm.
UTS_TABLE: Dict[ThreadSize, ThreadDimensions] = {
    ThreadSize.UTS_2_56: _dims(0.4536, 2.184, 1.628, 1.8, 2.35, 2.5, 2.7, 2.9),
    ThreadSize.UTS_4_40: _dims(0.635, 2.845, 2.157, 2.35, 3.1, 3.3, 3.6, 3.8),
    ThreadSize.UTS_6_32: _dims(0.794, 3.505, 2.642, 2.85, 3.8, 4.0, 4.3, 4.6),
    ThreadSize.UTS_8_32: _dims(0.794, 4.166, 3.302, 3.5, 4.5, 4.7, 5.0, 5.4),
    ThreadSize.UTS_10_24: _dims(1.058, 4.826, 3.680, 3.9, 5.1, 5.3, 5.6, 6.1),
    ThreadSize.UTS_10_32: _dims(0.794, 4.826, 3.962, 4.1, 5.1, 5.3, 5.6, 6.1),
    ThreadSize.UTS_1_4_20: _dims(1.270, 6.350, 4.976, 5.1, 6.6, 7.0, 7.4, 8.0),
    ThreadSize.UTS_5_16_18: _dims(1.411, 7.938, 6.401, 6.6, 8.3, 8.7, 9.1, 10.0),
    ThreadSize.UTS_3_8_16: _dims(1.588, 9.525, 7.798, 8.0, 9.9, 10.3, 10.7, 12.0),
    ThreadSize.UTS_7_16_14: _dims(1.814, 11.112, 9.144, 9.4, 11.5, 11.9, 12.3, 14.0),
    ThreadSize.UTS_1_2_13: _dims(1.954, 12.700, 10.584, 10.8, 13.0, 13.5, 14.0, 16.0),
    ThreadSize.UTS_5_8_11: _dims(2.309, 15.875, 13.386, 13.5, 16.3, 16.7, 17.5, 20.0),
    ThreadSize.UTS_3_4_10: _dims(2.540, 19.050, 16.307, 16.5, 19.5, 20.0, 21.0, 24.0),
}

_TABLES = {
    ThreadStandard.ISO_METRIC: ISO_METRIC_TABLE,
    ThreadStandard.UTS: UTS_TABLE,
}


@dataclass(frozen=True)
class ThreadSpec:
    """A thread hole request: standard, size, hole kind, depth and chamfer (mm)."""
    standard: ThreadStandard
    size: ThreadSize
    kind: ThreadKind
    depth: float
    chamfer: float = 0.0

    @classmethod
    def for_size(cls, size: ThreadSize, kind: ThreadKind, depth: float,
                 chamfer: float = 0.0) -> "ThreadSpec":
        """Build a spec whose standard is derived from ``size``."""
        return cls(size.standard, size, kind, depth, chamfer)

    def validate(self) -> None:
        if self.size.standard != self.standard:
            raise GeomError(
                GeomErrorKind.INVALID_INPUT,
                f"thread size {self.size} does not belong to the "
                f"{self.standard.value} standard",
            )
        if self.depth <= 0:
            raise GeomError(GeomErrorKind.INVALID_INPUT, "thread depth must be positive")
        if self.chamfer >= self.depth:
            raise GeomError(
                GeomErrorKind.INVALID_INPUT, "chamfer must be shallower than the hole"
            )


def get_dimensions(size: ThreadSize) -> Optional[ThreadDimensions]:
    """Look up the dimension table row for ``size``."""
    table = _TABLES.get(size.standard)
    if table is None:
        return None
    return table.get(size)


def hole_diameter(dims: ThreadDimensions, kind: ThreadKind) -> float:
    """Hole diameter for a given hole kind."""
    if kind == ThreadKind.INTERNAL:
        return dims.tap_drill
    if kind == ThreadKind.EXTERNAL:
        return dims.major_diameter
    if kind == ThreadKind.CLEARANCE_CLOSE:
        return dims.clearance_close
    if kind == ThreadKind.CLEARANCE_MEDIUM:
        return dims.clearance_medium
    if kind == ThreadKind.CLEARANCE_FREE:
        return dims.clearance_free
    return dims.insert_hole


@dataclass(frozen=True)
class ChamferDimensions:
    outer_diameter: float
    depth: float


def chamfer_dimensions(hole_d: float, chamfer: float) -> Optional[ChamferDimensions]:
    """45 degree entry chamfer around a hole; None when ``chamfer <= 0``."""
    if chamfer <= 0:
        return None
    return ChamferDimensions(outer_diameter=hole_d + 2.0 * chamfer, depth=chamfer)


# =============================================================================
# Hole Geometry
# =============================================================================

@dataclass(frozen=True)
class CylinderParams:
    diameter: float
    depth: float


@dataclass(frozen=True)
class ChamferParams:
    outer_diameter: float
    inner_diameter: float
    depth: float


@dataclass(frozen=True)
class CosmeticAnnotation:
    diameter: float
    depth: float
    pitch: float


@dataclass(frozen=True)
class HelixParams:
    major_diameter: float
    minor_diameter: float
    pitch: float
    depth: float


@dataclass(frozen=True)
class ThreadGeometry:
    """
    Parameters for building a thread hole.

    ``annotation`` is set in cosmetic mode and ``helix`` in full mode.
    """
    mode: ThreadMode
    cylinder: CylinderParams
    chamfer: Optional[ChamferParams] = None
    annotation: Optional[CosmeticAnnotation] = None
    helix: Optional[HelixParams] = None


def generate_thread_geometry(spec: ThreadSpec,
                             mode: ThreadMode = ThreadMode.NONE) -> Optional[ThreadGeometry]:
    """Compute hole parameters for ``spec``; None if the size has no table."""
    dims = get_dimensions(spec.size)
    if dims is None:
        return None
    hole_d = hole_diameter(dims, spec.kind)

    cylinder = CylinderParams(diameter=hole_d, depth=spec.depth)
    chamfer = None
    cd = chamfer_dimensions(hole_d, spec.chamfer)
    if cd is not None:
        chamfer = ChamferParams(cd.outer_diameter, hole_d, cd.depth)

    if mode == ThreadMode.COSMETIC:
        annotation = CosmeticAnnotation(dims.major_diameter, spec.depth, dims.pitch)
        return ThreadGeometry(mode, cylinder, chamfer, annotation=annotation)
    if mode == ThreadMode.FULL:
        helix = HelixParams(dims.major_diameter, dims.minor_diameter, dims.pitch, spec.depth)
        return ThreadGeometry(mode, cylinder, chamfer, helix=helix)
    return ThreadGeometry(mode, cylinder, chamfer)


def thread_hole_profile(spec: ThreadSpec) -> Profile:
    """
    Half cross-section of the hole in the XZ plane, for revolving about Z.

    The hole opens at z = 0 and extends to z = -depth.
    """
    spec.validate()
    geometry = generate_thread_geometry(spec)
    if geometry is None:
        raise GeomError(
            GeomErrorKind.INVALID_INPUT,
            f"no dimension table for {spec.standard.value} size {spec.size}",
        )

    r_hole = geometry.cylinder.diameter / 2.0
    depth = geometry.cylinder.depth
    if geometry.chamfer is None:
        points = [
            (0.0, 0.0, 0.0),
            (r_hole, 0.0, 0.0),
            (r_hole, 0.0, -depth),
            (0.0, 0.0, -depth),
        ]
    else:
        r_outer = geometry.chamfer.outer_diameter / 2.0
        c = geometry.chamfer.depth
        points = [
            (0.0, 0.0, 0.0),
            (r_outer, 0.0, 0.0),
            (r_hole, 0.0, -c),
            (r_hole, 0.0, -depth),
            (0.0, 0.0, -depth),
        ]
    return Profile(tuple(points))


def hole_volume(spec: ThreadSpec) -> float:
    """Analytic volume of the hole ``thread_hole_profile`` describes."""
    geometry = generate_thread_geometry(spec)
    if geometry is None:
        raise GeomError(
            GeomErrorKind.INVALID_INPUT,
            f"no dimension table for {spec.standard.value} size {spec.size}",
        )
    r = geometry.cylinder.diameter / 2.0
    volume = math.pi * r * r * geometry.cylinder.depth
    if geometry.chamfer is not None:
        big_r = geometry.chamfer.outer_diameter / 2.0
        c = geometry.chamfer.depth
        # frustum minus the cylinder slice it replaces
        frustum = math.pi * c * (big_r * big_r + big_r * r + r * r) / 3.0
        volume += frustum - math.pi * r * r * c
    return volume
