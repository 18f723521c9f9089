"""
Tests for the builtin function registry, run through the evaluator against
the recording ``FakeBackend``.
"""

import math

import pytest

from covariant import compile_source
from covariant.geometry import ExportOptions, Quality, StlFormat
from covariant.geometry.stl import read_stl_triangle_count
from covariant.runtime import (
    BuiltinRegistry, EvalError, EvalErrorKind, Evaluator, ValueKind,
    enum_val, float_val, int_val, length_val, list_val,
)


def error_of(run, source, kind):
    with pytest.raises(EvalError) as excinfo:
        run(source)
    assert excinfo.value.kind == kind, excinfo.value
    return excinfo.value


# b overflows to infinity
OVERFLOWING_FLOAT = "let a = 10000000000.0\nlet b = " + " * ".join(["a"] * 32) + "\n"


# --- Math ---

class TestMath:

    @pytest.mark.parametrize("source,expected", [
        ("sqrt(16.0)", float_val(4.0)),
        ("sqrt(4)", float_val(2.0)),
        ("abs(-7)", int_val(7)),
        ("abs(-3mm)", length_val(3.0)),
        ("floor(2.7)", int_val(2)),
        ("ceil(2.1)", int_val(3)),
        ("round(2.5)", int_val(3)),
        ("round(-2.5)", int_val(-3)),
        ("floor(2.7mm)", length_val(2.0)),
        ("floor(7)", int_val(7)),
        ("pow(2, 10)", float_val(1024.0)),
        ("min(3, 1, 2)", int_val(1)),
        ("max(1, 2.5)", float_val(2.5)),
        ("min([4, 2])", int_val(2)),
        ("max(2mm, 1cm)", length_val(10.0)),
    ])
    def test_results(self, run, source, expected):
        assert run(source) == expected

    def test_trig_takes_angles(self, run):
        assert run("sin(90deg)").data == pytest.approx(1.0)
        assert run("cos(0)") == float_val(1.0)
        assert run("tan(45deg)").data == pytest.approx(1.0)

    def test_pi(self, run):
        assert run("pi") == float_val(math.pi)

    @pytest.mark.parametrize("call", ["floor(b)", "ceil(b)", "round(b)", "round(b - b)"])
    def test_rounding_non_finite(self, run, call):
        err = error_of(run, OVERFLOWING_FLOAT + call, EvalErrorKind.CUSTOM)
        assert err.message.startswith(f"{call.split('(')[0]}: cannot round")

    def test_rounding_beyond_int_range(self, run):
        err = error_of(run, "round(10000000000.0 * 10000000000.0)", EvalErrorKind.CUSTOM)
        assert err.message.endswith("to an Int")

    def test_trig_of_infinity(self, run):
        err = error_of(run, OVERFLOWING_FLOAT + "sin(b)", EvalErrorKind.CUSTOM)
        assert err.message.startswith("sin: cannot take sin")

    def test_abs_overflow(self, run):
        err = error_of(run, "abs(-9223372036854775807 - 1)", EvalErrorKind.CUSTOM)
        assert err.message == "abs: integer overflow"

    def test_sqrt_of_negative(self, run):
        err = error_of(run, "sqrt(-1.0)", EvalErrorKind.CUSTOM)
        assert err.message.startswith("sqrt: cannot take the square root")

    def test_min_of_mixed_units(self, run):
        err = error_of(run, "max(1mm, 1)", EvalErrorKind.TYPE_ERROR)
        assert err.message.startswith("max: cannot compare mixed kinds")

    def test_min_needs_a_value(self, run):
        err = error_of(run, "min()", EvalErrorKind.ARITY_MISMATCH)
        assert err.message == "min: expected at least 1 argument(s), got 0"

    def test_unit_conversions(self, run):
        assert run("to_mm(1in)").data == pytest.approx(25.4)
        assert run("to_deg(90deg)").data == pytest.approx(90.0)
        error_of(run, "to_mm(1.0)", EvalErrorKind.TYPE_ERROR)


# --- Utilities ---

class TestUtilities:

    def test_len(self, run):
        assert run("len([1, 2, 3])") == int_val(3)
        assert run('len("abcd")') == int_val(4)
        error_of(run, "len(5)", EvalErrorKind.TYPE_ERROR)

    def test_range(self, run):
        assert run("range(3)") == list_val([int_val(0), int_val(1), int_val(2)])
        assert run("range(1, 3)") == list_val([int_val(1), int_val(2)])

    def test_print_joins_with_spaces(self, run_printing):
        value, printed = run_printing('print(1, 2mm, "x")')
        assert value.kind == ValueKind.UNIT
        assert printed == "1 2mm x\n"

    def test_print_to_stdout_by_default(self, run, capsys):
        run('print("hello")')
        assert capsys.readouterr().out == "hello\n"


# --- Call conventions ---

class TestCallConventions:
    """How the evaluator invokes builtins and reports their errors."""

    def test_named_arguments_rejected(self, run):
        err = error_of(run, "sqrt(x = 4.0)", EvalErrorKind.ARITY_MISMATCH)
        assert "do not accept named arguments" in err.message

    def test_wrong_count(self, run):
        err = error_of(run, "sqrt(1.0, 2.0)", EvalErrorKind.ARITY_MISMATCH)
        assert err.message == "sqrt: expected 1 argument(s), got 2"

    def test_box_one_or_three(self, run):
        err = error_of(run, "box(1, 2)", EvalErrorKind.ARITY_MISMATCH)
        assert err.message == "box: expected 1 or 3 argument(s), got 2"

    def test_type_error_is_prefixed_and_spanned(self, run):
        source = "let s = sqrt(true)"
        with pytest.raises(EvalError) as excinfo:
            run(source)
        err = excinfo.value
        assert err.kind == EvalErrorKind.TYPE_ERROR
        assert err.message == "sqrt: expected a number, got Bool"
        assert err.span.slice(source) == "sqrt(true)"

    def test_builtins_are_values(self, run):
        assert run("let f = sqrt\nf(9.0)") == float_val(3.0)
        assert run("9.0 |> sqrt") == float_val(3.0)

    def test_registry_is_per_session(self, backend):
        dag = compile_source("1")
        a = Evaluator(dag, backend)
        b = Evaluator(dag, backend)
        assert a.registry is not b.registry
        assert a.env.lookup("sqrt").data is not b.env.lookup("sqrt").data

    def test_registry_listing(self, backend):
        registry = BuiltinRegistry(backend)
        names = registry.function_names()
        for name in ("box", "union_many", "threaded_hole", "export_stl", "trace"):
            assert name in names
        assert "ISO_METRIC" in registry.constant_names()
        assert registry.get_function("nope") is None


# --- Geometry ---

class TestPrimitives:

    def test_box_from_vec3(self, run, backend):
        value = run("box(vec3(1cm, 2cm, 3cm))")
        assert value.kind == ValueKind.SOLID
        assert backend.calls == [("box", (10.0, 20.0, 30.0))]

    def test_box_from_three_lengths(self, run, backend):
        run("box(1, 2mm, 3)")
        assert backend.calls == [("box", (1.0, 2.0, 3.0))]

    def test_cylinder_and_sphere(self, run, backend):
        run("let c = cylinder(2mm, 10mm)\nlet s = sphere(1in)")
        assert backend.calls == [("cylinder", (2.0, 10.0)), ("sphere", (25.4,))]

    def test_vec3_in_mm(self, run):
        assert run("vec3(1cm, 0, 2.5)").data == (10.0, 0.0, 2.5)

    def test_vec3_rejects_angles(self, run):
        error_of(run, "vec3(90deg, 0, 0)", EvalErrorKind.TYPE_ERROR)

    def test_backend_error_wrapped(self, run):
        err = error_of(run, "box(0, 1, 1)", EvalErrorKind.GEOM_ERROR)
        assert err.message.startswith("box: invalid input")


class TestBooleans:

    def test_difference_records_parents(self, run, backend):
        value = run("difference(box(2, 2, 2), sphere(1))")
        solid = value.data
        assert solid.op == "difference"
        assert [p.op for p in solid.parents] == ["box", "sphere"]

    def test_union_many_folds(self, run, backend):
        run("union_many([sphere(1), sphere(2), sphere(3)])")
        assert backend.ops() == ["sphere", "sphere", "sphere", "union", "union"]

    def test_union_many_single(self, run, backend):
        assert run("union_many([sphere(1)])").data.op == "sphere"
        assert "union" not in backend.ops()

    def test_union_many_empty(self, run):
        err = error_of(run, "union_many([])", EvalErrorKind.GEOM_ERROR)
        assert "at least one solid" in err.message

    def test_union_many_needs_solids(self, run):
        err = error_of(run, "union_many([1])", EvalErrorKind.TYPE_ERROR)
        assert err.message == "union_many: expected a list of Solids, got Int"

    def test_operand_must_be_solid(self, run):
        err = error_of(run, "difference(1, box(1, 1, 1))", EvalErrorKind.TYPE_ERROR)
        assert err.message == "difference: expected a Solid, got Int"

    def test_failed_boolean(self, run, backend):
        backend.fail_ops.add("union")
        err = error_of(run, "union(box(1, 1, 1), sphere(1))", EvalErrorKind.GEOM_ERROR)
        assert err.message == "union: boolean operation failed: union refused"


class TestTransforms:

    def test_move_and_translate_alias(self, run, backend):
        run("let s = box(1, 1, 1)\nlet a = move(s, vec3(1, 2, 3))\nlet b = translate(s, vec3(1, 2, 3))")
        assert backend.calls[1:] == [
            ("translate", ((1.0, 2.0, 3.0),)),
            ("translate", ((1.0, 2.0, 3.0),)),
        ]

    def test_rotate_defaults_to_origin(self, run, backend):
        run("box(1, 1, 1) |> rotate(vec3(0, 0, 1), 90deg)")
        op, (origin, axis, angle) = backend.calls[-1]
        assert op == "rotate"
        assert origin == (0.0, 0.0, 0.0)
        assert axis == (0.0, 0.0, 1.0)
        assert angle == pytest.approx(math.pi / 2)

    def test_rotate_about_point(self, run, backend):
        run("box(1, 1, 1) |> rotate(vec3(1, 0, 0), 1rad, vec3(5mm, 0, 0))")
        assert backend.calls[-1][1][0] == (5.0, 0.0, 0.0)

    def test_scale_and_mirror(self, run, backend):
        run("let s = box(1, 1, 1)\nlet a = scale(s, 2)\nlet b = mirror(s, vec3(1, 0, 0))")
        assert backend.calls[1] == ("scale", ((0.0, 0.0, 0.0), 2.0))
        assert backend.calls[2] == ("mirror", ((0.0, 0.0, 0.0), (1.0, 0.0, 0.0)))

    def test_scale_factor_is_plain_number(self, run):
        error_of(run, "scale(box(1, 1, 1), 2mm)", EvalErrorKind.TYPE_ERROR)


class TestProfiles:

    TRIANGLE = "[vec3(0, 0, 0), vec3(10mm, 0, 0), vec3(0, 10mm, 0)]"

    def test_extrude(self, run, backend):
        run(f"extrude({self.TRIANGLE}, vec3(0, 0, 5mm))")
        op, (points, direction) = backend.calls[-1]
        assert op == "sweep"
        assert points == ((0.0, 0.0, 0.0), (10.0, 0.0, 0.0), (0.0, 10.0, 0.0))
        assert direction == (0.0, 0.0, 5.0)

    def test_revolve(self, run, backend):
        run(f"revolve({self.TRIANGLE}, vec3(0, 1, 0), 180deg)")
        op, args = backend.calls[-1]
        assert op == "revolve"
        assert args[1] == (0.0, 0.0, 0.0)
        assert args[3] == pytest.approx(math.pi)

    def test_profile_needs_three_points(self, run):
        err = error_of(run, "extrude([vec3(0, 0, 0), vec3(1, 0, 0)], vec3(0, 0, 1))",
                       EvalErrorKind.GEOM_ERROR)
        assert "at least 3 points" in err.message

    def test_profile_points_must_be_vec3(self, run):
        error_of(run, "extrude([1, 2, 3], vec3(0, 0, 1))", EvalErrorKind.TYPE_ERROR)


# --- Threads ---

class TestThreadedHole:

    def test_constants_are_enum_variants(self, run):
        assert run("ISO_METRIC") == enum_val("ThreadStandard", "ISO_METRIC")
        assert run("M6") == enum_val("ThreadSize", "M6")
        assert run("INSERT") == enum_val("ThreadKind", "INSERT")

    def test_tapped_hole_is_revolved(self, run, backend):
        run("threaded_hole(ISO_METRIC, M6, INTERNAL, 10mm)")
        op, (points, origin, axis, angle) = backend.calls[-1]
        assert op == "revolve"
        assert points == ((0.0, 0.0, 0.0), (2.5, 0.0, 0.0), (2.5, 0.0, -10.0), (0.0, 0.0, -10.0))
        assert axis == (0.0, 0.0, 1.0)
        assert angle == pytest.approx(2 * math.pi)

    def test_chamfer_adds_a_point(self, run, backend):
        run("threaded_hole(ISO_METRIC, M6, INTERNAL, 10mm, 0.5mm)")
        points = backend.calls[-1][1][0]
        assert len(points) == 5
        assert points[1] == (3.0, 0.0, 0.0)

    def test_uts_clearance(self, run, backend):
        run("threaded_hole(UTS, UTS_10_32, CLEARANCE_FREE, 14mm)")
        points = backend.calls[-1][1][0]
        assert points[1][0] == pytest.approx(2.8)

    def test_size_from_other_standard(self, run):
        err = error_of(run, "threaded_hole(UTS, M6, INTERNAL, 10mm)", EvalErrorKind.GEOM_ERROR)
        assert "does not belong" in err.message

    def test_chamfer_deeper_than_hole(self, run):
        error_of(run, "threaded_hole(ISO_METRIC, M6, INTERNAL, 2mm, 3mm)",
                 EvalErrorKind.GEOM_ERROR)

    def test_arguments_checked_by_type(self, run):
        err = error_of(run, "threaded_hole(M6, ISO_METRIC, INTERNAL, 10mm)",
                       EvalErrorKind.TYPE_ERROR)
        assert err.message == "threaded_hole: expected ThreadStandard, got ThreadSize"

    def test_user_enum_with_thread_type_name(self, run):
        source = "enum ThreadStandard { Bogus }\nthreaded_hole(Bogus, M3, INTERNAL, 5mm)"
        err = error_of(run, source, EvalErrorKind.TYPE_ERROR)
        assert err.message == "threaded_hole: unknown ThreadStandard variant 'Bogus'"


# --- Output ---

class TestOutput:

    def test_tessellate_default_tolerance(self, run, backend):
        value = run("tessellate(box(1, 1, 1))")
        assert value.kind == ValueKind.MESH
        assert backend.calls[-1] == ("tessellate", (0.05,))

    def test_tessellate_with_tolerance(self, run, backend):
        run("tessellate(box(1, 1, 1), 0.2mm)")
        assert backend.calls[-1] == ("tessellate", (0.2,))

    def test_export_relative_to_base_dir(self, run, tmp_path):
        value = run('export_stl("part.stl", box(1, 1, 1))', base_dir=tmp_path)
        assert value.kind == ValueKind.UNIT
        target = tmp_path / "part.stl"
        assert target.stat().st_size == 84 + 4 * 50
        assert read_stl_triangle_count(target) == 4

    def test_export_uses_session_options(self, run, backend, tmp_path):
        options = ExportOptions(quality=Quality.fine(), format=StlFormat.ASCII)
        run('export_stl("part.stl", box(1, 1, 1))', options=options, base_dir=tmp_path)
        assert backend.calls[-1] == ("tessellate", (0.01,))
        assert (tmp_path / "part.stl").read_text().startswith("solid ")

    def test_export_mesh_value(self, run, backend, tmp_path):
        run('export_stl("m.stl", tessellate(box(1, 1, 1)))', base_dir=tmp_path)
        assert backend.ops().count("tessellate") == 1
        assert (tmp_path / "m.stl").exists()

    def test_exported_paths_recorded(self, backend, tmp_path):
        source = 'export_stl("a.stl", box(1, 1, 1))\nexport_stl("b.stl", sphere(1))'
        evaluator = Evaluator(compile_source(source), backend, base_dir=tmp_path)
        evaluator.run()
        assert evaluator.registry.exported == [tmp_path / "a.stl", tmp_path / "b.stl"]

    def test_empty_mesh_is_an_error(self, run, backend, tmp_path):
        backend.empty_ops.add("box")
        with pytest.raises(EvalError) as excinfo:
            run('export_stl("e.stl", box(1, 1, 1))', base_dir=tmp_path)
        err = excinfo.value
        assert err.kind == EvalErrorKind.GEOM_ERROR
        assert "empty mesh" in err.message
        assert not (tmp_path / "e.stl").exists()

    def test_export_needs_geometry(self, run):
        err = error_of(run, 'export_stl("x.stl", 5)', EvalErrorKind.TYPE_ERROR)
        assert err.message == "export_stl: expected a Solid or Mesh, got Int"
