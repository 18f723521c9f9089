"""
covariant: a small functional language for parametric solid modeling.

This package provides:
- Lexer and parser: source text to AST (``covariant.syntax``)
- IR lowering: AST to an arena DAG with pipes desugared (``covariant.ir``)
- Evaluator: tree-walking evaluation against a geometry backend
  (``covariant.runtime``)
- Geometry: backend interface, trimesh backend, STL export and thread
  tables (``covariant.geometry``)

Usage:
    from covariant import compile_source, run_source

    dag = compile_source('let x = 1cm + 5mm\\nx')
    value = run_source('let x = 1cm + 5mm\\nx')   # Length(15.0mm)
"""

from .ir import Dag, IrError, lower
from .runtime import EvalError, Value, evaluate
from .syntax import SourceSyntaxError, parse

__version__ = "0.1.0"


def compile_source(source: str) -> Dag:
    """
    Lex, parse and lower ``source``.

    Raises SourceSyntaxError with every syntax diagnostic, or the first
    IrError from lowering.
    """
    source_file, errors = parse(source)
    if errors:
        raise SourceSyntaxError(errors)
    dag, ir_errors = lower(source_file)
    if ir_errors:
        raise ir_errors[0]
    return dag


def run_source(source: str, backend=None, options=None, **kwargs) -> Value:
    """
    Compile and evaluate ``source``.

    Uses a ``TrimeshBackend`` when no backend is given. Extra keyword
    arguments (``output``, ``base_dir``) are passed to ``evaluate``.
    """
    if backend is None:
        from .geometry.trimesh_backend import TrimeshBackend
        backend = TrimeshBackend()
    return evaluate(compile_source(source), backend, options, **kwargs)


__all__ = [
    "__version__",
    "compile_source",
    "run_source",
    "Dag",
    "Value",
    "EvalError",
    "IrError",
    "SourceSyntaxError",
]
