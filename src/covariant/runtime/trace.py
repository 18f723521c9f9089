"""
Geometry step tracing for ``covariant debug``.

A ``TracingEvaluator`` records every function call that produced a solid,
in completion order, so a nested expression like
``difference(box(...), cylinder(...))`` yields the box, the cylinder and
then the difference. ``trace("label", expr)`` passes its value through and
labels the step it produces.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, TextIO

from ..geometry.backend import GeometryBackend
from ..geometry.export import ExportOptions
from ..ir.dag import Dag
from ..ir.nodes import IrFnCall, NodeId
from ..syntax.span import Span
from .evaluator import Evaluator
from .values import Value, ValueKind


@dataclass
class DebugStep:
    """A single geometry-producing step captured during evaluation."""
    index: int
    node_id: NodeId
    span: Span
    label: Optional[str]
    solid: Any


@dataclass
class DebugSession:
    """All steps of one run plus the source they refer to."""
    steps: List[DebugStep] = field(default_factory=list)
    source: str = ""
    file_path: str = ""

    @property
    def step_count(self) -> int:
        return len(self.steps)


class TracingEvaluator(Evaluator):
    """An ``Evaluator`` that records solid-producing calls."""

    def __init__(self, dag: Dag, backend: GeometryBackend,
                 options: Optional[ExportOptions] = None,
                 output: Optional[TextIO] = None,
                 base_dir: Optional[Path] = None):
        super().__init__(dag, backend, options, output, base_dir)
        self.steps: List[DebugStep] = []

    def _eval_call(self, node_id: NodeId, node: IrFnCall, span: Span) -> Value:
        result = super()._eval_call(node_id, node, span)
        label = self.registry.trace_label
        self.registry.trace_label = None
        if result.kind == ValueKind.SOLID:
            self.steps.append(DebugStep(len(self.steps), node_id, span, label, result.data))
        return result


def eval_debug(dag: Dag, backend: GeometryBackend, source: str = "",
               file_path: str = "", options: Optional[ExportOptions] = None, *,
               output: Optional[TextIO] = None,
               base_dir: Optional[Path] = None) -> DebugSession:
    """
    Evaluate ``dag`` while collecting geometry steps.

    Raises EvalError exactly as ``evaluate`` does.
    """
    evaluator = TracingEvaluator(dag, backend, options, output, base_dir)
    evaluator.run()
    return DebugSession(evaluator.steps, source, file_path)
