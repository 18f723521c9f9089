"""
Type representation for covariant values and annotations.

The language is dynamically typed; these types are used for display only
(error messages, signature listings), not for checking.
"""

from dataclasses import dataclass
from typing import Optional, Tuple
from abc import ABC, abstractmethod

from ..syntax.ast import FnTypeExpr, ListTypeExpr, NamedType, TypeExpr


@dataclass(frozen=True)
class Ty(ABC):
    """Base class for all types."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The type name for display."""
        pass

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class PrimitiveTy(Ty):
    """A builtin scalar or opaque type (Int, Length, Solid, ...)."""
    _name: str

    @property
    def name(self) -> str:
        return self._name


@dataclass(frozen=True)
class ListTy(Ty):
    """``List[T]``; ``element`` is None when unknown (empty or mixed)."""
    element: Optional[Ty]

    @property
    def name(self) -> str:
        if self.element is None:
            return "List"
        return f"List[{self.element}]"


@dataclass(frozen=True)
class FnTy(Ty):
    params: Tuple[Ty, ...]
    ret: Ty

    @property
    def name(self) -> str:
        params = ", ".join(str(p) for p in self.params)
        return f"Fn({params}) -> {self.ret}"


@dataclass(frozen=True)
class DataTy(Ty):
    """A user-defined ``data`` record type."""
    _name: str

    @property
    def name(self) -> str:
        return self._name


@dataclass(frozen=True)
class EnumTy(Ty):
    """A user-defined ``enum`` type."""
    _name: str

    @property
    def name(self) -> str:
        return self._name


# =============================================================================
# Builtin Types
# =============================================================================

INT = PrimitiveTy("Int")
FLOAT = PrimitiveTy("Float")
LENGTH = PrimitiveTy("Length")
ANGLE = PrimitiveTy("Angle")
BOOL = PrimitiveTy("Bool")
STRING = PrimitiveTy("String")
VEC3 = PrimitiveTy("Vec3")
SOLID = PrimitiveTy("Solid")
MESH = PrimitiveTy("Mesh")
UNIT = PrimitiveTy("Unit")

BUILTIN_TYPES = {
    t.name: t
    for t in (INT, FLOAT, LENGTH, ANGLE, BOOL, STRING, VEC3, SOLID, MESH, UNIT)
}


def resolve_type_name(name: str) -> Ty:
    """Resolve a bare type name; unknown names are taken as data types."""
    return BUILTIN_TYPES.get(name) or DataTy(name)


def ty_from_annotation(annotation: TypeExpr) -> Ty:
    """Convert a parsed type annotation into a ``Ty``."""
    if isinstance(annotation, ListTypeExpr):
        return ListTy(ty_from_annotation(annotation.element))
    if isinstance(annotation, FnTypeExpr):
        return FnTy(
            tuple(ty_from_annotation(p) for p in annotation.params),
            ty_from_annotation(annotation.ret),
        )
    if isinstance(annotation, NamedType):
        return resolve_type_name(annotation.name)
    raise TypeError(f"unknown type annotation: {annotation!r}")
