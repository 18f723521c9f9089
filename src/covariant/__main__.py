#!/usr/bin/env python3
"""
CLI for the covariant compiler and evaluator.

Usage:
    covariant run FILE.cov [--quality draft|standard|fine|MM] [--format binary|ascii]
    covariant check FILE.cov
    covariant debug FILE.cov [--dump DIR]

Examples:
    # Parse and lower without evaluating
    covariant check examples/mounting_plate.cov

    # Evaluate, writing any export_stl() output at fine quality
    covariant run examples/mounting_plate.cov --quality fine --format ascii

    # List the geometry steps and write each one to out/step_NN.stl
    covariant debug examples/mounting_plate.cov --dump out
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from .config import Settings
from .diagnostics import Diagnostic, offset_to_line_col
from .geometry.errors import ExportError
from .ir import Dag, lower
from .runtime.errors import EvalError
from .runtime.types import ty_from_annotation
from .runtime.values import ValueKind, format_value
from .syntax import ast, parse

logger = logging.getLogger("covariant")


# =============================================================================
# Helpers
# =============================================================================

def format_type(annotation) -> str:
    """Format a type annotation for display; ``_`` when absent."""
    if annotation is None:
        return "_"
    return str(ty_from_annotation(annotation))


def format_definition(stmt: ast.Statement) -> Optional[str]:
    """One-line summary of a top-level definition."""
    if isinstance(stmt, ast.FnDef):
        params = ", ".join(
            f"{p.name}: {format_type(p.ty)}" + (" = ..." if p.default is not None else "")
            for p in stmt.params
        )
        ret = f" -> {format_type(stmt.return_ty)}" if stmt.return_ty is not None else ""
        return f"fn {stmt.name}({params}){ret}"
    if isinstance(stmt, ast.DataDef):
        fields = ", ".join(f"{f.name}: {format_type(f.ty)}" for f in stmt.fields)
        return f"data {stmt.name} {{ {fields} }}"
    if isinstance(stmt, ast.EnumDef):
        return f"enum {stmt.name} {{ {', '.join(stmt.variants)} }}"
    if isinstance(stmt, ast.LetStmt):
        ty = f": {format_type(stmt.ty)}" if stmt.ty is not None else ""
        return f"let {stmt.name}{ty}"
    return None


def report(diagnostics: List[Diagnostic], source: str, path: str, args) -> int:
    """Print diagnostics in the requested format and return the exit code."""
    if args.json:
        payload = {
            "ok": False,
            "file": path,
            "diagnostics": [d.to_json(source, path) for d in diagnostics],
        }
        print(json.dumps(payload, indent=2))
    else:
        for diag in diagnostics:
            print(diag.format(source, path, show_source=not args.no_source), file=sys.stderr)
    return 1


def load_program(args) -> Tuple[Optional[str], Optional[ast.SourceFile], Optional[Dag], int]:
    """Read, parse and lower ``args.file``; on failure the exit code is set."""
    path = Path(args.file)
    try:
        source = path.read_text(encoding="utf-8")
    except OSError as e:
        diag = Diagnostic.fatal(f"cannot read '{path}': {e.strerror or e}")
        return None, None, None, report([diag], "", str(path), args)

    source_file, errors = parse(source)
    if errors:
        diags = [Diagnostic.from_syntax(e) for e in errors]
        return source, None, None, report(diags, source, str(path), args)

    dag, ir_errors = lower(source_file)
    if ir_errors:
        diags = [Diagnostic.from_ir(e) for e in ir_errors]
        return source, None, None, report(diags, source, str(path), args)

    logger.debug("%s: %d IR node(s), %d root(s)", path, len(dag), len(dag.roots))
    return source, source_file, dag, 0


def make_backend(settings: Settings):
    from .geometry.trimesh_backend import TrimeshBackend, engines_available

    available = engines_available()
    if settings.boolean_engine not in available:
        logger.warning("boolean engine '%s' is not available (found: %s)",
                       settings.boolean_engine, ", ".join(sorted(available)) or "none")
    return TrimeshBackend(engine=settings.boolean_engine)


def evaluation_error(exc: BaseException) -> Diagnostic:
    if isinstance(exc, EvalError):
        return Diagnostic.from_eval(exc)
    if isinstance(exc, ExportError):
        return Diagnostic.from_export(exc)
    return Diagnostic.fatal(
        "maximum recursion depth exceeded during evaluation",
        hint="check for a recursive function without a base case",
    )


# =============================================================================
# Commands
# =============================================================================

def cmd_check(args, settings: Settings) -> int:
    """Lex, parse and lower a file without evaluating it."""
    source, source_file, dag, code = load_program(args)
    if code:
        return code

    definitions = [d for d in map(format_definition, source_file.stmts) if d]
    if args.json:
        print(json.dumps({
            "ok": True,
            "file": args.file,
            "roots": len(dag.roots),
            "definitions": definitions,
        }, indent=2))
        return 0

    print(f"ok: {args.file}", file=sys.stderr)
    print(f"{len(dag.roots)} root(s), {len(dag)} IR node(s)")
    for line in definitions:
        print(f"  {line}")
    return 0


def cmd_run(args, settings: Settings) -> int:
    """Evaluate a file, writing whatever it exports."""
    from .runtime.evaluator import Evaluator

    source, _, dag, code = load_program(args)
    if code:
        return code

    evaluator = Evaluator(dag, make_backend(settings), settings.export_options(),
                          base_dir=args.output_dir)
    try:
        value = evaluator.run()
    except (EvalError, ExportError, RecursionError) as exc:
        return report([evaluation_error(exc)], source, args.file, args)

    for path in evaluator.registry.exported:
        print(f"wrote {path}", file=sys.stderr)
    if value.kind != ValueKind.UNIT:
        print(format_value(value))
    return 0


def cmd_debug(args, settings: Settings) -> int:
    """Evaluate with geometry step tracing and list the steps."""
    from .geometry.export import export_stl
    from .runtime.trace import eval_debug

    source, _, dag, code = load_program(args)
    if code:
        return code

    backend = make_backend(settings)
    options = settings.export_options()
    try:
        session = eval_debug(dag, backend, source, args.file, options,
                             base_dir=args.output_dir)
    except (EvalError, ExportError, RecursionError) as exc:
        return report([evaluation_error(exc)], source, args.file, args)

    print(f"Debug session: {session.step_count} geometry step(s) collected from {args.file}")
    for step in session.steps:
        line, col = offset_to_line_col(source, step.span.start)
        label = step.label or "(unlabeled)"
        print(f"  Step {step.index + 1}: {label} ({args.file}:{line}:{col})")

    if args.dump:
        out_dir = Path(args.dump)
        out_dir.mkdir(parents=True, exist_ok=True)
        for step in session.steps:
            target = out_dir / f"step_{step.index + 1:02d}.stl"
            try:
                export_stl(backend, step.solid, target, options)
            except ExportError as exc:
                return report([Diagnostic.from_export(exc)], source, args.file, args)
            print(f"  wrote {target}")
    return 0


# =============================================================================
# Entry point
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('file', help='covariant source file (.cov)')
    common.add_argument('-v', '--verbose', action='count', default=0,
                        help='More logging (-v info, -vv debug)')
    common.add_argument('--config', metavar='FILE',
                        help='YAML settings file (default: ./covariant.yaml if present)')
    common.add_argument('--json', action='store_true',
                        help='Machine-readable output')
    common.add_argument('--no-source', action='store_true',
                        help='Do not print source excerpts under errors')

    evaluating = argparse.ArgumentParser(add_help=False)
    evaluating.add_argument('--quality', metavar='Q',
                            help='Tessellation quality: draft, standard, fine or a tolerance in mm')
    evaluating.add_argument('--format', dest='stl_format', choices=['binary', 'ascii'],
                            help='STL flavor for exported files')
    evaluating.add_argument('--thread-mode', choices=['none', 'cosmetic', 'full'],
                            help='Thread representation in exports')
    evaluating.add_argument('--engine', metavar='NAME',
                            help='trimesh boolean engine (default: manifold)')
    evaluating.add_argument('--output-dir', metavar='DIR', type=Path,
                            help='Directory relative export paths resolve against')

    parser = argparse.ArgumentParser(
        prog='covariant',
        description='covariant solid-modeling language compiler and runner',
    )
    subparsers = parser.add_subparsers(dest='action', required=True)

    subparsers.add_parser('check', parents=[common], help='Parse and lower a file')
    subparsers.add_parser('run', parents=[common, evaluating], help='Evaluate a file')
    debug_parser = subparsers.add_parser('debug', parents=[common, evaluating],
                                         help='Evaluate with geometry step tracing')
    debug_parser.add_argument('--dump', metavar='DIR',
                              help='Export every step to DIR/step_NN.stl')
    return parser


def load_settings(args) -> Settings:
    settings = Settings.load(Path(args.config) if args.config else None)
    overrides = {
        key: getattr(args, attr, None)
        for key, attr in (
            ("quality", "quality"),
            ("stl_format", "stl_format"),
            ("thread_mode", "thread_mode"),
            ("boolean_engine", "engine"),
        )
    }
    return settings.merged({k: v for k, v in overrides.items() if v is not None})


def configure_logging(settings: Settings, verbose: int) -> None:
    level = settings.log_level_number
    if verbose >= 2:
        level = min(level, logging.DEBUG)
    elif verbose == 1:
        level = min(level, logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s",
                        stream=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args)
    except (OSError, ValueError) as e:
        return report([Diagnostic.fatal(f"invalid configuration: {e}")], "", args.file, args)

    configure_logging(settings, args.verbose)

    if args.action == 'check':
        return cmd_check(args, settings)
    elif args.action == 'run':
        return cmd_run(args, settings)
    elif args.action == 'debug':
        return cmd_debug(args, settings)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
