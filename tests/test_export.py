"""
Tests for the STL export pipeline: options, thread mode resolution and
mesh validation.
"""

import logging

import pytest

from covariant.geometry import (
    ExportError, ExportErrorKind, ExportOptions, Mesh, MeshWarning, Quality,
    StlFormat, ThreadMode, export_stl, resolve_thread_mode, validate_mesh,
)
from covariant.geometry.stl import read_stl_triangle_count

OPEN_SQUARE = Mesh(
    [[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]],
    [[0, 1, 2], [0, 2, 3]],
)


# --- Quality ---

class TestQuality:

    def test_presets(self):
        assert Quality.draft().tolerance == 0.2
        assert Quality.standard().tolerance == 0.05
        assert Quality.fine().tolerance == 0.01

    @pytest.mark.parametrize("text,tolerance", [
        ("draft", 0.2),
        ("FINE", 0.01),
        (" standard ", 0.05),
        ("0.3", 0.3),
    ])
    def test_parse(self, text, tolerance):
        assert Quality.parse(text).tolerance == tolerance

    @pytest.mark.parametrize("text", ["coarse", "0", "-1", "nan", "inf"])
    def test_parse_rejects(self, text):
        with pytest.raises(ValueError):
            Quality.parse(text)

    def test_equality_by_tolerance(self):
        assert Quality.custom(0.05) == Quality.standard()
        assert Quality.fine() != Quality.draft()
        assert repr(Quality.fine()) == "Quality.fine(0.01)"
        assert repr(Quality.custom(0.3)) == "Quality.custom(0.3)"

    def test_default_options(self):
        options = ExportOptions()
        assert options.tolerance == 0.05
        assert options.format == StlFormat.BINARY
        assert options.thread_mode == ThreadMode.NONE


# --- Thread modes ---

class TestThreadModes:

    def test_none_passes_through(self):
        assert resolve_thread_mode(ThreadMode.NONE) == (ThreadMode.NONE, None)

    @pytest.mark.parametrize("mode", [ThreadMode.COSMETIC, ThreadMode.FULL])
    def test_downgraded_with_warning(self, mode):
        resolved, note = resolve_thread_mode(mode)
        assert resolved == ThreadMode.NONE
        assert "falling back to None" in note


# --- Validation ---

class TestValidation:

    def test_closed_mesh_ok(self, backend):
        report = validate_mesh(backend.tessellate(backend.box(1, 1, 1)))
        assert report.is_ok
        assert report.triangle_count == 4
        assert report.position_count == 4

    def test_empty(self):
        report = validate_mesh(Mesh.empty())
        assert report.warnings == [MeshWarning.EMPTY_MESH]

    def test_open_surface(self):
        report = validate_mesh(OPEN_SQUARE)
        assert report.warnings == [MeshWarning.NOT_WATERTIGHT]
        assert not report.is_ok


# --- Pipeline ---

class TestExportPipeline:

    def test_writes_solid(self, backend, tmp_path):
        target = tmp_path / "box.stl"
        report = export_stl(backend, backend.box(1, 1, 1), target)
        assert report.is_ok
        assert read_stl_triangle_count(target) == 4
        assert backend.calls[-1] == ("tessellate", (0.05,))

    def test_quality_sets_tolerance(self, backend, tmp_path):
        options = ExportOptions(quality=Quality.draft())
        export_stl(backend, backend.box(1, 1, 1), tmp_path / "b.stl", options)
        assert backend.calls[-1] == ("tessellate", (0.2,))

    def test_ascii_format(self, backend, tmp_path):
        target = tmp_path / "b.stl"
        export_stl(backend, backend.box(1, 1, 1), target, ExportOptions(format=StlFormat.ASCII))
        assert target.read_text().startswith("solid")

    def test_mesh_written_without_tessellating(self, backend, tmp_path):
        mesh = backend.tessellate(backend.box(1, 1, 1))
        calls = len(backend.calls)
        export_stl(backend, mesh, tmp_path / "m.stl")
        assert len(backend.calls) == calls

    def test_empty_mesh_fails(self, backend, tmp_path):
        backend.empty_ops.add("box")
        target = tmp_path / "empty.stl"
        with pytest.raises(ExportError) as excinfo:
            export_stl(backend, backend.box(1, 1, 1), target)
        assert excinfo.value.kind == ExportErrorKind.VALIDATION_FAILED
        assert not target.exists()

    def test_open_mesh_written_with_warning(self, backend, tmp_path, caplog):
        target = tmp_path / "open.stl"
        with caplog.at_level(logging.WARNING, logger="covariant.geometry.export"):
            report = export_stl(backend, OPEN_SQUARE, target)
        assert report.warnings == [MeshWarning.NOT_WATERTIGHT]
        assert target.exists()
        assert "not watertight" in caplog.text

    def test_thread_mode_downgrade_logged(self, backend, tmp_path, caplog):
        options = ExportOptions(thread_mode=ThreadMode.COSMETIC)
        with caplog.at_level(logging.WARNING, logger="covariant.geometry.export"):
            export_stl(backend, backend.box(1, 1, 1), tmp_path / "t.stl", options)
        assert "cosmetic thread annotations" in caplog.text

    def test_write_failure(self, backend, tmp_path):
        target = tmp_path / "missing" / "dir" / "x.stl"
        with pytest.raises(ExportError) as excinfo:
            export_stl(backend, backend.box(1, 1, 1), target)
        assert excinfo.value.kind == ExportErrorKind.GEOM_ERROR
        assert "I/O error" in str(excinfo.value)
