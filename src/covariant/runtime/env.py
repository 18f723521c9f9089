"""
Scoped environment for the evaluator.

The environment is a stack of scopes, each a name -> Value mapping.
Lookup walks the stack innermost-first. Scopes are pushed on block and
function entry and popped on exit; the outermost (global) scope can never
be popped.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from .values import Value

# data type metadata shares the scopes under keys no identifier can spell
_TYPE_PREFIX = "data "


class Env:
    """A stack of lexical scopes."""

    def __init__(self, scopes: Optional[List[Dict[str, Value]]] = None):
        self._scopes: List[Dict[str, Value]] = scopes if scopes is not None else [{}]

    @property
    def depth(self) -> int:
        """Number of scopes, including the global one."""
        return len(self._scopes)

    def push_scope(self) -> None:
        self._scopes.append({})

    def pop_scope(self) -> None:
        """Pop the innermost scope.

        Popping the global scope is a programming error, not a user error.
        """
        if len(self._scopes) <= 1:
            raise AssertionError("cannot pop the global scope")
        self._scopes.pop()

    @contextmanager
    def scope(self) -> Iterator[Dict[str, Value]]:
        """
        Context manager for a nested scope.

        Usage:
            with env.scope():
                env.define("x", int_val(1))
        """
        self.push_scope()
        try:
            yield self._scopes[-1]
        finally:
            self.pop_scope()

    def define(self, name: str, value: Value) -> None:
        """Bind ``name`` in the innermost scope, shadowing outer bindings."""
        self._scopes[-1][name] = value

    def lookup(self, name: str) -> Optional[Value]:
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        return None

    def define_type(self, name: str, info: Any) -> None:
        """Register a ``data`` type in the innermost scope."""
        self._scopes[-1][_TYPE_PREFIX + name] = info

    def lookup_type(self, name: str) -> Optional[Any]:
        key = _TYPE_PREFIX + name
        for scope in reversed(self._scopes):
            if key in scope:
                return scope[key]
        return None

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None

    def snapshot(self) -> "Env":
        """Copy the scope stack for closure capture.

        Scopes are copied shallowly; values themselves are immutable, so
        later definitions in this env are not visible in the snapshot.
        """
        return Env([dict(scope) for scope in self._scopes])

    def child(self) -> "Env":
        """A new env sharing these scopes with one fresh scope on top.

        Used for call frames: definitions land in the fresh scope, so the
        shared scopes are never written through the child.
        """
        return Env(list(self._scopes) + [{}])

    def names(self) -> List[str]:
        """All visible names, innermost bindings first."""
        seen: Dict[str, None] = {}
        for scope in reversed(self._scopes):
            for name in scope:
                if name.startswith(_TYPE_PREFIX):
                    continue
                seen.setdefault(name, None)
        return list(seen)
