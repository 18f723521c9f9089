"""
Built-in function registry for the evaluator.

Maps language-level names to Python implementations. Geometry builtins
delegate to the session's ``GeometryBackend``; the registry is created
per evaluation session and installed into that session's global
environment, so independent evaluations never share state.

Builtin implementations raise ``EvalError`` without a span and without
naming themselves; the evaluator adds the call span and a ``"name: "``
prefix. ``GeomError`` from the backend propagates unchanged and is wrapped
as ``GEOM_ERROR`` by the evaluator.
"""

import logging
import math
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, TextIO

from ..geometry import export as geom_export
from ..geometry.backend import GeometryBackend, Profile
from ..geometry.errors import ExportError
from ..geometry.threads import (
    ThreadKind, ThreadSize, ThreadSpec, ThreadStandard, thread_hole_profile,
)
from .env import Env
from .errors import EvalError, EvalErrorKind, error_arity, error_integer_overflow, error_type
from .values import (
    Value, ValueKind, NUMERIC_KINDS, int_in_range,
    int_val, float_val, vec3_val,
    solid_val, mesh_val, list_val, builtin_val, enum_val, format_value,
    UNIT_VALUE,
)

logger = logging.getLogger(__name__)

THREAD_STANDARDS = (ThreadStandard.ISO_METRIC, ThreadStandard.UTS)


@dataclass
class BuiltinFunction:
    """
    A built-in function with its implementation and arity.

    ``max_args`` of None means variadic.
    """
    name: str
    implementation: Callable[..., Value]
    min_args: int
    max_args: Optional[int]
    doc: str = ""

    def call(self, args: Sequence[Value]) -> Value:
        n = len(args)
        if n < self.min_args or (self.max_args is not None and n > self.max_args):
            raise error_arity(f"expected {self._arity()} argument(s), got {n}")
        return self.implementation(*args)

    def _arity(self) -> str:
        if self.max_args is None:
            return f"at least {self.min_args}"
        if self.max_args == self.min_args:
            return str(self.min_args)
        return f"{self.min_args} to {self.max_args}"


# =============================================================================
# Argument coercion
# =============================================================================

def _mismatch(what: str, value: Value) -> EvalError:
    return error_type(f"expected {what}, got {value.type_name()}")


def _number(value: Value, what: str = "a number") -> float:
    if value.kind in (ValueKind.INT, ValueKind.FLOAT):
        return float(value.data)
    raise _mismatch(what, value)


def _length_mm(value: Value, what: str = "a length") -> float:
    """Length in mm; plain numbers are taken as mm."""
    if value.kind in (ValueKind.LENGTH, ValueKind.INT, ValueKind.FLOAT):
        return float(value.data)
    raise _mismatch(what, value)


def _angle_rad(value: Value, what: str = "an angle") -> float:
    """Angle in radians; plain numbers are taken as radians."""
    if value.kind in (ValueKind.ANGLE, ValueKind.INT, ValueKind.FLOAT):
        return float(value.data)
    raise _mismatch(what, value)


def _vec3(value: Value, what: str = "a Vec3"):
    if value.kind != ValueKind.VEC3:
        raise _mismatch(what, value)
    return value.data


def _solid(value: Value, what: str = "a Solid"):
    if value.kind != ValueKind.SOLID:
        raise _mismatch(what, value)
    return value.data


def _list(value: Value, what: str = "a List") -> tuple:
    if value.kind != ValueKind.LIST:
        raise _mismatch(what, value)
    return value.data


def _string(value: Value, what: str = "a String") -> str:
    if value.kind != ValueKind.STRING:
        raise _mismatch(what, value)
    return value.data


def _int(value: Value, what: str = "an Int") -> int:
    if value.kind != ValueKind.INT:
        raise _mismatch(what, value)
    return value.data


def _profile(value: Value) -> Profile:
    points = [_vec3(p, "a list of Vec3 points") for p in _list(value, "a list of Vec3 points")]
    return Profile(tuple(points))


def _variant(value: Value, enum_cls):
    """Map a language enum variant onto the Python enum member of the same name."""
    type_name = enum_cls.__name__
    if value.kind != ValueKind.ENUM_VARIANT or value.data.type_name != type_name:
        raise _mismatch(type_name, value)
    try:
        return enum_cls[value.data.variant]
    except KeyError:
        raise error_type(f"unknown {type_name} variant '{value.data.variant}'") from None


def _numeric_result_kind(values: Sequence[Value]) -> ValueKind:
    """Common kind for min/max: Int and Float mix to Float, units must agree."""
    kinds = {v.kind for v in values}
    for v in values:
        if v.kind not in NUMERIC_KINDS:
            raise _mismatch("numbers", v)
    if len(kinds) == 1:
        return kinds.pop()
    if kinds <= {ValueKind.INT, ValueKind.FLOAT}:
        return ValueKind.FLOAT
    names = ", ".join(sorted(k.value for k in kinds))
    raise error_type(f"cannot compare mixed kinds ({names})")


def _round_half_away(x: float) -> float:
    return math.copysign(math.floor(abs(x) + 0.5), x)


class BuiltinRegistry:
    """
    Registry of built-in functions and constants for one session.

    Args:
        backend: geometry backend the geometry builtins delegate to
        options: export options used by ``tessellate`` and ``export_stl``
        output: stream ``print`` writes to (stdout when None)
        base_dir: directory relative ``export_stl`` paths resolve against
    """

    def __init__(self, backend: GeometryBackend,
                 options: Optional[geom_export.ExportOptions] = None,
                 output: Optional[TextIO] = None,
                 base_dir: Optional[Path] = None):
        self.backend = backend
        self.options = options or geom_export.ExportOptions()
        self.output = output
        self.base_dir = Path(base_dir) if base_dir is not None else None
        self.exported: List[Path] = []
        self.trace_label: Optional[str] = None
        self._functions: Dict[str, BuiltinFunction] = {}
        self._constants: Dict[str, Value] = {}
        self._register_all()

    def get_function(self, name: str) -> Optional[BuiltinFunction]:
        """Look up a function by name."""
        return self._functions.get(name)

    def register(self, func: BuiltinFunction) -> None:
        """Register a function."""
        self._functions[func.name] = func

    def register_constant(self, name: str, value: Value) -> None:
        self._constants[name] = value

    def function_names(self) -> List[str]:
        return sorted(self._functions)

    def constant_names(self) -> List[str]:
        return sorted(self._constants)

    def install(self, env: Env) -> None:
        """Define every builtin and constant in ``env``'s current scope."""
        for name, func in self._functions.items():
            env.define(name, builtin_val(func))
        for name, value in self._constants.items():
            env.define(name, value)
        logger.debug("installed %d builtins and %d constants",
                     len(self._functions), len(self._constants))

    def _register_all(self) -> None:
        """Register all built-in functions."""
        self._register_math_functions()
        self._register_utility_functions()
        self._register_primitive_functions()
        self._register_boolean_functions()
        self._register_transform_functions()
        self._register_profile_functions()
        self._register_output_functions()
        self._register_thread_functions()

    # --- Math Functions ---

    def _register_math_functions(self) -> None:
        """Register mathematical functions."""

        def _sqrt(x: Value) -> Value:
            v = _number(x)
            if v < 0:
                raise EvalError(EvalErrorKind.CUSTOM,
                                f"cannot take the square root of {format_value(x)}")
            return float_val(math.sqrt(v))

        def _abs(x: Value) -> Value:
            if x.kind not in NUMERIC_KINDS:
                raise _mismatch("a number", x)
            if x.kind == ValueKind.INT and not int_in_range(abs(x.data)):
                raise error_integer_overflow()
            return Value(x.kind, abs(x.data))

        def _extreme(pick, args: Sequence[Value]) -> Value:
            values = args
            if len(args) == 1 and args[0].kind == ValueKind.LIST:
                values = args[0].data
            if not values:
                raise error_arity("expected at least 1 value")
            kind = _numeric_result_kind(values)
            best = pick(values, key=lambda v: v.data)
            if kind == ValueKind.FLOAT:
                return float_val(best.data)
            return best

        def _min(*args: Value) -> Value:
            return _extreme(min, args)

        def _max(*args: Value) -> Value:
            return _extreme(max, args)

        def _rounding(fn):
            def impl(x: Value) -> Value:
                if x.kind == ValueKind.INT:
                    return x
                if x.kind not in NUMERIC_KINDS:
                    raise _mismatch("a number", x)
                if not math.isfinite(x.data):
                    raise EvalError(EvalErrorKind.CUSTOM, f"cannot round {format_value(x)}")
                if x.kind in (ValueKind.LENGTH, ValueKind.ANGLE):
                    return Value(x.kind, float(fn(x.data)))
                result = int(fn(x.data))
                if not int_in_range(result):
                    raise EvalError(EvalErrorKind.CUSTOM,
                                    f"cannot round {format_value(x)} to an Int")
                return int_val(result)
            return impl

        def _trig(fn):
            def impl(x: Value) -> Value:
                angle = _angle_rad(x, "an Angle or a number")
                if not math.isfinite(angle):
                    raise EvalError(EvalErrorKind.CUSTOM,
                                    f"cannot take {fn.__name__} of {format_value(x)}")
                return float_val(fn(angle))
            return impl

        def _pow(base: Value, exp: Value) -> Value:
            try:
                return float_val(math.pow(_number(base), _number(exp)))
            except (ValueError, OverflowError) as e:
                raise EvalError(EvalErrorKind.CUSTOM, str(e)) from e

        math_funcs = [
            ("sqrt", _sqrt, 1, 1, "Square root of a number"),
            ("abs", _abs, 1, 1, "Absolute value, keeping the unit"),
            ("floor", _rounding(math.floor), 1, 1, "Round down"),
            ("ceil", _rounding(math.ceil), 1, 1, "Round up"),
            ("round", _rounding(_round_half_away), 1, 1, "Round half away from zero"),
            ("sin", _trig(math.sin), 1, 1, "Sine of an angle"),
            ("cos", _trig(math.cos), 1, 1, "Cosine of an angle"),
            ("tan", _trig(math.tan), 1, 1, "Tangent of an angle"),
            ("pow", _pow, 2, 2, "base ** exp as a Float"),
        ]
        for name, impl, lo, hi, doc in math_funcs:
            self.register(BuiltinFunction(name, impl, lo, hi, doc))

        # Variadic min/max, also accept a single list
        self.register(BuiltinFunction("min", _min, 1, None, "Smallest value"))
        self.register(BuiltinFunction("max", _max, 1, None, "Largest value"))

        self.register_constant("pi", float_val(math.pi))

    # --- Utility Functions ---

    def _register_utility_functions(self) -> None:

        def _len(x: Value) -> Value:
            if x.kind in (ValueKind.LIST, ValueKind.STRING):
                return int_val(len(x.data))
            raise _mismatch("a List or String", x)

        def _range(*args: Value) -> Value:
            if len(args) == 1:
                start, stop = 0, _int(args[0])
            else:
                start, stop = _int(args[0]), _int(args[1])
            return list_val([int_val(i) for i in range(start, stop)])

        def _print(*args: Value) -> Value:
            stream = self.output if self.output is not None else sys.stdout
            print(" ".join(format_value(a) for a in args), file=stream)
            return UNIT_VALUE

        def _to_mm(x: Value) -> Value:
            if x.kind != ValueKind.LENGTH:
                raise _mismatch("a Length", x)
            return float_val(x.data)

        def _to_deg(x: Value) -> Value:
            if x.kind != ValueKind.ANGLE:
                raise _mismatch("an Angle", x)
            return float_val(math.degrees(x.data))

        self.register(BuiltinFunction("len", _len, 1, 1, "Length of a list or string"))
        self.register(BuiltinFunction("range", _range, 1, 2, "Integers in [start, stop)"))
        self.register(BuiltinFunction("print", _print, 0, None, "Print values"))
        self.register(BuiltinFunction("to_mm", _to_mm, 1, 1, "Length as Float mm"))
        self.register(BuiltinFunction("to_deg", _to_deg, 1, 1, "Angle as Float degrees"))

        def _trace(label: Value, value: Value) -> Value:
            self.trace_label = _string(label, "a String label")
            return value

        self.register(BuiltinFunction(
            "trace", _trace, 2, 2, "Return the value unchanged, labelling the debug step",
        ))

    # --- Primitive Functions ---

    def _register_primitive_functions(self) -> None:
        backend = self.backend

        def _vec3_fn(x: Value, y: Value, z: Value) -> Value:
            return vec3_val(_length_mm(x), _length_mm(y), _length_mm(z))

        def _box(*args: Value) -> Value:
            if len(args) == 1:
                sx, sy, sz = _vec3(args[0], "a Vec3 size")
            elif len(args) == 3:
                sx, sy, sz = (_length_mm(a) for a in args)
            else:
                raise error_arity(f"expected 1 or 3 argument(s), got {len(args)}")
            return solid_val(backend.box(sx, sy, sz))

        def _cylinder(radius: Value, height: Value) -> Value:
            return solid_val(backend.cylinder(_length_mm(radius), _length_mm(height)))

        def _sphere(radius: Value) -> Value:
            return solid_val(backend.sphere(_length_mm(radius)))

        self.register(BuiltinFunction("vec3", _vec3_fn, 3, 3, "3D vector in mm"))
        self.register(BuiltinFunction("box", _box, 1, 3, "Box centered at the origin"))
        self.register(BuiltinFunction("cylinder", _cylinder, 2, 2, "Cylinder along +Z"))
        self.register(BuiltinFunction("sphere", _sphere, 1, 1, "Sphere at the origin"))

    # --- Boolean Functions ---

    def _register_boolean_functions(self) -> None:
        backend = self.backend

        def _union(a: Value, b: Value) -> Value:
            return solid_val(backend.union(_solid(a), _solid(b)))

        def _difference(a: Value, b: Value) -> Value:
            return solid_val(backend.difference(_solid(a), _solid(b)))

        def _intersection(a: Value, b: Value) -> Value:
            return solid_val(backend.intersection(_solid(a), _solid(b)))

        def _union_many(items: Value) -> Value:
            solids = [_solid(v, "a list of Solids") for v in _list(items, "a list of Solids")]
            return solid_val(backend.union_many(solids))

        self.register(BuiltinFunction("union", _union, 2, 2))
        self.register(BuiltinFunction("difference", _difference, 2, 2))
        self.register(BuiltinFunction("intersection", _intersection, 2, 2))
        self.register(BuiltinFunction("union_many", _union_many, 1, 1))

    # --- Transform Functions ---

    def _register_transform_functions(self) -> None:
        backend = self.backend
        origin = (0.0, 0.0, 0.0)

        def _move(solid: Value, v: Value) -> Value:
            return solid_val(backend.translate(_solid(solid), _vec3(v)))

        def _rotate(solid: Value, axis: Value, angle: Value, *rest: Value) -> Value:
            center = _vec3(rest[0], "a Vec3 origin") if rest else origin
            return solid_val(backend.rotate(
                _solid(solid), center, _vec3(axis, "a Vec3 axis"), _angle_rad(angle)
            ))

        def _scale(solid: Value, factor: Value, *rest: Value) -> Value:
            center = _vec3(rest[0], "a Vec3 center") if rest else origin
            return solid_val(backend.scale(_solid(solid), center, _number(factor)))

        def _mirror(solid: Value, normal: Value, *rest: Value) -> Value:
            center = _vec3(rest[0], "a Vec3 origin") if rest else origin
            return solid_val(backend.mirror(_solid(solid), center, _vec3(normal, "a Vec3 normal")))

        self.register(BuiltinFunction("move", _move, 2, 2, "Translate a solid"))
        self.register(BuiltinFunction("translate", _move, 2, 2, "Translate a solid"))
        self.register(BuiltinFunction("rotate", _rotate, 3, 4, "Rotate about an axis"))
        self.register(BuiltinFunction("scale", _scale, 2, 3, "Uniform scale"))
        self.register(BuiltinFunction("mirror", _mirror, 2, 3, "Reflect through a plane"))

    # --- Profile Functions ---

    def _register_profile_functions(self) -> None:
        backend = self.backend

        def _extrude(points: Value, direction: Value) -> Value:
            return solid_val(backend.sweep(_profile(points), _vec3(direction, "a Vec3 direction")))

        def _revolve(points: Value, axis: Value, angle: Value, *rest: Value) -> Value:
            center = _vec3(rest[0], "a Vec3 origin") if rest else (0.0, 0.0, 0.0)
            return solid_val(backend.revolve(
                _profile(points), center, _vec3(axis, "a Vec3 axis"), _angle_rad(angle)
            ))

        self.register(BuiltinFunction("extrude", _extrude, 2, 2, "Sweep a planar polygon"))
        self.register(BuiltinFunction("revolve", _revolve, 3, 4, "Revolve a planar polygon"))

    # --- Output Functions ---

    def _register_output_functions(self) -> None:
        backend = self.backend

        def _tessellate(solid: Value, *rest: Value) -> Value:
            tolerance = _length_mm(rest[0], "a tolerance") if rest else self.options.tolerance
            return mesh_val(backend.tessellate(_solid(solid), tolerance))

        def _export_stl(path: Value, shape: Value) -> Value:
            target = Path(_string(path, "a String path"))
            if self.base_dir is not None and not target.is_absolute():
                target = self.base_dir / target
            if shape.kind not in (ValueKind.SOLID, ValueKind.MESH):
                raise _mismatch("a Solid or Mesh", shape)
            try:
                geom_export.export_stl(backend, shape.data, target, self.options)
            except ExportError as e:
                raise EvalError(EvalErrorKind.GEOM_ERROR, str(e)) from e
            self.exported.append(target)
            return UNIT_VALUE

        self.register(BuiltinFunction("tessellate", _tessellate, 1, 2, "Triangulate a solid"))
        self.register(BuiltinFunction("export_stl", _export_stl, 2, 2, "Write an STL file"))

    # --- Thread Functions ---

    def _register_thread_functions(self) -> None:
        backend = self.backend

        for standard in THREAD_STANDARDS:
            self.register_constant(standard.name, enum_val("ThreadStandard", standard.name))
        for size in ThreadSize:
            self.register_constant(size.name, enum_val("ThreadSize", size.name))
        for kind in ThreadKind:
            self.register_constant(kind.name, enum_val("ThreadKind", kind.name))

        def _threaded_hole(standard: Value, size: Value, kind: Value, depth: Value,
                           *rest: Value) -> Value:
            chamfer = _length_mm(rest[0], "a chamfer length") if rest else 0.0
            spec = ThreadSpec(
                standard=_variant(standard, ThreadStandard),
                size=_variant(size, ThreadSize),
                kind=_variant(kind, ThreadKind),
                depth=_length_mm(depth, "a depth"),
                chamfer=chamfer,
            )
            profile = thread_hole_profile(spec)
            return solid_val(backend.revolve(profile, (0.0, 0.0, 0.0), (0.0, 0.0, 1.0),
                                             2.0 * math.pi))

        self.register(BuiltinFunction(
            "threaded_hole", _threaded_hole, 4, 5,
            "Hole solid for a thread size, from z = 0 down to -depth",
        ))
