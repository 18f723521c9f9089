"""
Runtime values for the covariant evaluator.

A ``Value`` pairs a ``ValueKind`` tag with its Python payload. The set of
kinds is closed; every consumer dispatches on ``kind``. Payloads are
treated as immutable: lists are tuples, records are tuples of pairs, and
solids and meshes are opaque handles owned by the geometry backend.

Lengths are stored in millimeters and angles in radians.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Sequence, Tuple

from ..ir.nodes import NodeId
from .types import (
    Ty, PrimitiveTy, ListTy, DataTy, EnumTy,
    INT, FLOAT, LENGTH, ANGLE, BOOL, STRING, VEC3, SOLID, MESH, UNIT,
)

if TYPE_CHECKING:
    from .env import Env


class ValueKind(Enum):
    INT = "Int"
    FLOAT = "Float"
    LENGTH = "Length"           # millimeters
    ANGLE = "Angle"             # radians
    BOOL = "Bool"
    STRING = "String"
    VEC3 = "Vec3"
    SOLID = "Solid"
    MESH = "Mesh"
    LIST = "List"
    FUNCTION = "Function"       # user closure
    BUILTIN = "BuiltinFn"
    DATA = "Data"
    ENUM_VARIANT = "EnumVariant"
    UNIT = "Unit"


NUMERIC_KINDS = frozenset({ValueKind.INT, ValueKind.FLOAT, ValueKind.LENGTH, ValueKind.ANGLE})

# Int values are signed 64-bit
INT_MIN = -(2 ** 63)
INT_MAX = 2 ** 63 - 1


def int_in_range(n: int) -> bool:
    return INT_MIN <= n <= INT_MAX

_KIND_TYPES = {
    ValueKind.INT: INT,
    ValueKind.FLOAT: FLOAT,
    ValueKind.LENGTH: LENGTH,
    ValueKind.ANGLE: ANGLE,
    ValueKind.BOOL: BOOL,
    ValueKind.STRING: STRING,
    ValueKind.VEC3: VEC3,
    ValueKind.SOLID: SOLID,
    ValueKind.MESH: MESH,
    ValueKind.UNIT: UNIT,
}


# =============================================================================
# Payloads
# =============================================================================

@dataclass(frozen=True)
class FnParam:
    """A closure parameter; ``default`` is the IR node of its default."""
    name: str
    default: Optional[NodeId] = None


@dataclass(eq=False)
class Closure:
    """A user function: parameters, IR body and captured environment."""
    params: Tuple[FnParam, ...]
    body: NodeId
    env: "Env"
    name: Optional[str] = None


@dataclass(frozen=True)
class DataRecord:
    """An instance of a ``data`` type with ordered fields."""
    type_name: str
    fields: Tuple[Tuple[str, "Value"], ...]

    def get(self, name: str) -> Optional["Value"]:
        for field_name, value in self.fields:
            if field_name == name:
                return value
        return None

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.fields)


@dataclass(frozen=True)
class EnumVariant:
    type_name: str
    variant: str


# =============================================================================
# Value
# =============================================================================

@dataclass(frozen=True, eq=False)
class Value:
    """
    A runtime value.

    ``==`` is the language's structural equality: no promotion across
    kinds, solids and meshes compare by identity, functions never compare
    equal.
    """
    kind: ValueKind
    data: Any

    __hash__ = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return values_equal(self, other)

    def type_name(self) -> str:
        """Human-readable type name for error messages."""
        if self.kind in (ValueKind.DATA, ValueKind.ENUM_VARIANT):
            return self.data.type_name
        return self.kind.value

    @property
    def ty(self) -> Ty:
        """The value's type, for display."""
        if self.kind in _KIND_TYPES:
            return _KIND_TYPES[self.kind]
        if self.kind == ValueKind.LIST:
            element_types = {item.ty for item in self.data}
            if len(element_types) == 1:
                return ListTy(element_types.pop())
            return ListTy(None)
        if self.kind == ValueKind.DATA:
            return DataTy(self.data.type_name)
        if self.kind == ValueKind.ENUM_VARIANT:
            return EnumTy(self.data.type_name)
        return PrimitiveTy(self.kind.value)

    @property
    def is_numeric(self) -> bool:
        return self.kind in NUMERIC_KINDS

    def as_float(self) -> Optional[float]:
        """The payload as a float for Int, Float, Length and Angle."""
        if self.kind in NUMERIC_KINDS:
            return float(self.data)
        return None

    def __repr__(self) -> str:
        k = self.kind
        if k == ValueKind.INT:
            return f"Int({self.data})"
        if k == ValueKind.FLOAT:
            return f"Float({self.data!r})"
        if k == ValueKind.LENGTH:
            return f"Length({self.data!r}mm)"
        if k == ValueKind.ANGLE:
            return f"Angle({self.data!r}rad)"
        if k == ValueKind.BOOL:
            return f"Bool({'true' if self.data else 'false'})"
        if k == ValueKind.STRING:
            escaped = self.data.replace('\\', '\\\\').replace('"', '\\"')
            return f'String("{escaped}")'
        if k == ValueKind.VEC3:
            x, y, z = self.data
            return f"Vec3({x!r}, {y!r}, {z!r})"
        if k in (ValueKind.SOLID, ValueKind.MESH):
            return f"{k.value}(<...>)"
        if k == ValueKind.LIST:
            return f"List([{', '.join(repr(v) for v in self.data)}])"
        if k == ValueKind.FUNCTION:
            names = ", ".join(f'"{p.name}"' for p in self.data.params)
            return f"Function([{names}], body={self.data.body})"
        if k == ValueKind.BUILTIN:
            return f"BuiltinFn({self.data.name})"
        if k == ValueKind.DATA:
            names = ", ".join(f'"{n}"' for n in self.data.field_names)
            return f"Data({self.data.type_name} {{ [{names}] }})"
        if k == ValueKind.ENUM_VARIANT:
            return f"EnumVariant({self.data.type_name}::{self.data.variant})"
        return "Unit"


def values_equal(a: Value, b: Value) -> bool:
    """Structural equality with no cross-kind promotion."""
    if a.kind != b.kind:
        return False
    k = a.kind
    if k in (ValueKind.SOLID, ValueKind.MESH):
        return a.data is b.data
    if k in (ValueKind.FUNCTION, ValueKind.BUILTIN):
        return False
    if k == ValueKind.LIST:
        return len(a.data) == len(b.data) and all(
            values_equal(x, y) for x, y in zip(a.data, b.data)
        )
    if k == ValueKind.DATA:
        if a.data.type_name != b.data.type_name:
            return False
        if a.data.field_names != b.data.field_names:
            return False
        return all(
            values_equal(x, y)
            for (_, x), (_, y) in zip(a.data.fields, b.data.fields)
        )
    if k == ValueKind.UNIT:
        return True
    return a.data == b.data


def format_value(value: Value) -> str:
    """User-facing rendering used by ``print`` and the CLI."""
    k = value.kind
    if k == ValueKind.STRING:
        return value.data
    if k == ValueKind.BOOL:
        return "true" if value.data else "false"
    if k in (ValueKind.INT, ValueKind.FLOAT):
        return str(value.data)
    if k == ValueKind.LENGTH:
        return f"{value.data:g}mm"
    if k == ValueKind.ANGLE:
        return f"{value.data:g}rad"
    if k == ValueKind.VEC3:
        return "(" + ", ".join(f"{c:g}" for c in value.data) + ")"
    if k == ValueKind.LIST:
        return "[" + ", ".join(format_value(v) for v in value.data) + "]"
    if k == ValueKind.DATA:
        fields = ", ".join(f"{n}: {format_value(v)}" for n, v in value.data.fields)
        return f"{value.data.type_name} {{ {fields} }}"
    if k == ValueKind.ENUM_VARIANT:
        return f"{value.data.type_name}::{value.data.variant}"
    if k == ValueKind.FUNCTION:
        return f"<fn {value.data.name or 'lambda'}>"
    if k == ValueKind.BUILTIN:
        return f"<builtin {value.data.name}>"
    if k == ValueKind.UNIT:
        return "()"
    return f"<{k.value.lower()}>"


# Convenience constructors

def int_val(n: int) -> Value:
    return Value(ValueKind.INT, int(n))


def float_val(x: float) -> Value:
    return Value(ValueKind.FLOAT, float(x))


def length_val(mm: float) -> Value:
    """Create a length value from millimeters."""
    return Value(ValueKind.LENGTH, float(mm))


def angle_val(rad: float) -> Value:
    """Create an angle value from radians."""
    return Value(ValueKind.ANGLE, float(rad))


def bool_val(b: bool) -> Value:
    return Value(ValueKind.BOOL, bool(b))


def string_val(s: str) -> Value:
    return Value(ValueKind.STRING, str(s))


def vec3_val(x: float, y: float, z: float) -> Value:
    return Value(ValueKind.VEC3, (float(x), float(y), float(z)))


def solid_val(solid: Any) -> Value:
    return Value(ValueKind.SOLID, solid)


def mesh_val(mesh: Any) -> Value:
    return Value(ValueKind.MESH, mesh)


def list_val(items: Sequence[Value]) -> Value:
    return Value(ValueKind.LIST, tuple(items))


def function_val(closure: Closure) -> Value:
    return Value(ValueKind.FUNCTION, closure)


def builtin_val(func: Any) -> Value:
    """Wrap a ``BuiltinFunction``."""
    return Value(ValueKind.BUILTIN, func)


def data_val(type_name: str, fields: Sequence[Tuple[str, Value]]) -> Value:
    return Value(ValueKind.DATA, DataRecord(type_name, tuple(fields)))


def enum_val(type_name: str, variant: str) -> Value:
    return Value(ValueKind.ENUM_VARIANT, EnumVariant(type_name, variant))


UNIT_VALUE = Value(ValueKind.UNIT, None)
