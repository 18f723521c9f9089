"""
Tests for geometry step tracing (``covariant debug``).
"""

import pytest

from covariant import compile_source
from covariant.runtime import EvalError, eval_debug


def debug(source, backend, **kwargs):
    return eval_debug(compile_source(source), backend, source, "test.cov", **kwargs)


class TestSteps:

    def test_trace_labels_its_step(self, backend):
        session = debug('trace("my box", box(1, 1, 1))', backend)
        assert session.step_count == 2
        first, second = session.steps
        assert first.label is None
        assert first.solid.op == "box"
        assert second.label == "my box"
        assert second.solid is first.solid

    def test_nested_calls_complete_inner_first(self, backend):
        session = debug("difference(box(2, 2, 2), cylinder(1, 3))", backend)
        assert [s.solid.op for s in session.steps] == ["box", "cylinder", "difference"]
        assert [s.index for s in session.steps] == [0, 1, 2]

    def test_non_solid_calls_are_skipped(self, backend):
        session = debug("let a = sqrt(4.0)\nlet v = vec3(1, 2, 3)", backend)
        assert session.steps == []

    def test_user_function_call_is_a_step(self, backend):
        session = debug("fn part() { box(1, 1, 1) }\npart()", backend)
        assert session.step_count == 2
        assert session.steps[0].solid is session.steps[1].solid

    def test_step_span_covers_call(self, backend):
        source = "let s = box(1, 1, 1) |> move(vec3(1, 0, 0))"
        session = eval_debug(compile_source(source), backend, source)
        assert session.steps[0].span.slice(source) == "box(1, 1, 1)"
        assert session.steps[1].span.slice(source) == source[len("let s = "):]

    def test_label_does_not_leak_to_next_step(self, backend):
        session = debug('let x = trace("number", 5)\nbox(1, 1, 1)', backend)
        assert session.step_count == 1
        assert session.steps[0].label is None

    def test_session_keeps_source(self, backend):
        session = debug("box(1, 1, 1)", backend)
        assert session.source == "box(1, 1, 1)"
        assert session.file_path == "test.cov"

    def test_errors_propagate(self, backend):
        with pytest.raises(EvalError):
            debug("box(0, 1, 1)", backend)


def test_mounting_plate_steps(examples_dir, backend, tmp_path):
    source = (examples_dir / "mounting_plate.cov").read_text()
    session = eval_debug(compile_source(source), backend, source,
                         "mounting_plate.cov", base_dir=tmp_path)
    ops = [s.solid.op for s in session.steps]
    assert len(ops) >= 7
    assert ops[0] == "box"
    assert ops[1] == "revolve"
    assert ops.count("translate") == 4
    assert ops[-1] == "difference"
    assert (tmp_path / "mounting_plate.stl").exists()
