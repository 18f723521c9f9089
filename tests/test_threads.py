"""
Tests for thread dimension tables and hole profiles.
"""

import math

import pytest

from covariant.geometry import (
    GeomError, ThreadKind, ThreadMode, ThreadSize, ThreadSpec, ThreadStandard,
    generate_thread_geometry, get_dimensions, thread_hole_profile,
)
from covariant.geometry.threads import chamfer_dimensions, hole_diameter, hole_volume


# --- Dimension tables ---

class TestTables:

    def test_every_size_has_dimensions(self):
        for size in ThreadSize:
            dims = get_dimensions(size)
            assert dims is not None, size
            assert dims.minor_diameter < dims.major_diameter
            assert dims.tap_drill < dims.major_diameter
            assert dims.clearance_close < dims.clearance_medium < dims.clearance_free

    def test_m6(self):
        dims = get_dimensions(ThreadSize.M6)
        assert dims.pitch == 1.0
        assert dims.major_diameter == 6.0
        assert dims.tap_drill == 5.0

    def test_standard_from_size(self):
        assert ThreadSize.M3.standard == ThreadStandard.ISO_METRIC
        assert ThreadSize.UTS_1_4_20.standard == ThreadStandard.UTS

    def test_display_names(self):
        assert str(ThreadSize.M2_5) == "M2.5"
        assert str(ThreadSize.UTS_10_32) == "#10-32"

    @pytest.mark.parametrize("kind,diameter", [
        (ThreadKind.INTERNAL, 6.8),
        (ThreadKind.EXTERNAL, 8.0),
        (ThreadKind.CLEARANCE_CLOSE, 8.4),
        (ThreadKind.CLEARANCE_MEDIUM, 9.0),
        (ThreadKind.CLEARANCE_FREE, 10.0),
        (ThreadKind.INSERT, 10.2),
    ])
    def test_hole_diameter_by_kind(self, kind, diameter):
        assert hole_diameter(get_dimensions(ThreadSize.M8), kind) == diameter


# --- Specs and geometry ---

class TestThreadSpec:

    def test_for_size_derives_standard(self):
        spec = ThreadSpec.for_size(ThreadSize.UTS_4_40, ThreadKind.INTERNAL, 5.0)
        assert spec.standard == ThreadStandard.UTS
        spec.validate()

    @pytest.mark.parametrize("spec", [
        ThreadSpec(ThreadStandard.UTS, ThreadSize.M4, ThreadKind.INTERNAL, 5.0),
        ThreadSpec(ThreadStandard.ISO_METRIC, ThreadSize.M4, ThreadKind.INTERNAL, 0.0),
        ThreadSpec(ThreadStandard.ISO_METRIC, ThreadSize.M4, ThreadKind.INTERNAL, 2.0, 2.0),
    ])
    def test_invalid_specs(self, spec):
        with pytest.raises(GeomError):
            spec.validate()

    def test_chamfer_dimensions(self):
        assert chamfer_dimensions(5.0, 0.0) is None
        cd = chamfer_dimensions(5.0, 0.5)
        assert cd.outer_diameter == 6.0
        assert cd.depth == 0.5

    def test_geometry_modes(self):
        spec = ThreadSpec.for_size(ThreadSize.M6, ThreadKind.INTERNAL, 10.0)
        plain = generate_thread_geometry(spec)
        assert plain.mode == ThreadMode.NONE
        assert plain.annotation is None and plain.helix is None

        cosmetic = generate_thread_geometry(spec, ThreadMode.COSMETIC)
        assert cosmetic.annotation.diameter == 6.0
        assert cosmetic.annotation.pitch == 1.0

        full = generate_thread_geometry(spec, ThreadMode.FULL)
        assert full.helix.minor_diameter == pytest.approx(4.917)
        assert full.helix.depth == 10.0


class TestHoleProfile:

    def test_plain_profile(self):
        spec = ThreadSpec.for_size(ThreadSize.M4, ThreadKind.CLEARANCE_FREE, 6.0)
        points = thread_hole_profile(spec).points
        assert points == (
            (0.0, 0.0, 0.0), (2.4, 0.0, 0.0), (2.4, 0.0, -6.0), (0.0, 0.0, -6.0),
        )

    def test_chamfered_profile(self):
        spec = ThreadSpec.for_size(ThreadSize.M6, ThreadKind.INTERNAL, 10.0, 0.5)
        points = thread_hole_profile(spec).points
        assert points[1] == (3.0, 0.0, 0.0)
        assert points[2] == (2.5, 0.0, -0.5)
        assert len(points) == 5

    def test_profile_validates(self):
        spec = ThreadSpec(ThreadStandard.ISO_METRIC, ThreadSize.M6, ThreadKind.INTERNAL, -1.0)
        with pytest.raises(GeomError):
            thread_hole_profile(spec)

    def test_hole_volume(self):
        spec = ThreadSpec.for_size(ThreadSize.M6, ThreadKind.INTERNAL, 10.0)
        assert hole_volume(spec) == pytest.approx(math.pi * 2.5 ** 2 * 10.0)

    def test_chamfer_adds_volume(self):
        plain = ThreadSpec.for_size(ThreadSize.M6, ThreadKind.INTERNAL, 10.0)
        chamfered = ThreadSpec.for_size(ThreadSize.M6, ThreadKind.INTERNAL, 10.0, 0.5)
        assert hole_volume(chamfered) > hole_volume(plain)
