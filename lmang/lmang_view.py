"""
Typed argument views for native functions.

A view describes the shape a native expects for one argument and how it may
be reached: by value, through any chain of references (`AnyRef`), or through
exactly one shared cell (`RefView`). `view(val, f)` checks the shape and
calls `f` with the unwrapped value, raising CastError on a mismatch.

    (items, idx), tail = view2(args, AnyRef(DequeView()), NumberView(),
                               lambda dq, i: (dq, i))
    test_consumed(tail)
"""

from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Callable, List, Sequence, Tuple

from lmang.lmang_datatypes import (
    Break, Ref, apply_to_root, is_char, is_number, variant_name,
)
from lmang.lmang_errors import CastError, OutOfBounds, WrongArgsN


class View(ABC):
    @abstractmethod
    def view(self, val: Any, f: Callable[[Any], Any]) -> Any:
        ...


class Bottom(View):
    """Accepts anything, unchanged."""

    def view(self, val, f):
        return f(val)


class _Primitive(View):
    label = ""

    def accepts(self, val: Any) -> bool:
        raise NotImplementedError

    def view(self, val, f):
        if not self.accepts(val):
            raise CastError(variant_name(val), self.label)
        return f(val)


class NumberView(_Primitive):
    label = "Number"

    def accepts(self, val):
        return is_number(val)


class CharView(_Primitive):
    label = "Char"

    def accepts(self, val):
        return is_char(val)


class BoolView(_Primitive):
    label = "Bool"

    def accepts(self, val):
        return isinstance(val, bool)


class DequeView(_Primitive):
    label = "Deque"

    def accepts(self, val):
        return isinstance(val, deque)


class StringView(View):
    """A deque made only of chars, handed over as a Python str."""

    def view(self, val, f):
        if not isinstance(val, deque):
            raise CastError(variant_name(val), "String")
        if not all(is_char(c) for c in val):
            raise CastError("Deque", "String")
        return f("".join(val))


class BreakView(View):
    """The payload inside a break signal."""

    def __init__(self, inner: View):
        self.inner = inner

    def view(self, val, f):
        if not isinstance(val, Break):
            raise CastError(variant_name(val), "Break")
        return self.inner.view(val.value, f)


class AnyRef(View):
    """The inner shape, reached through zero or more Ref/Weak layers."""

    def __init__(self, inner: View):
        self.inner = inner

    def view(self, val, f):
        return apply_to_root(val, lambda root: self.inner.view(root, f))


class RefView(View):
    """The inner shape, held in exactly one shared cell.

    Containers reached this way are the cell's own object, so in-place
    mutation is visible to every holder of the cell.
    """

    def __init__(self, inner: View):
        self.inner = inner

    def view(self, val, f):
        if not isinstance(val, Ref):
            raise CastError(variant_name(val), "Ref")
        return self.inner.view(val.value, f)


# =================================================================
# Combinators
# =================================================================

def take_n(args: Sequence[Any], n: int) -> Tuple[List[Any], List[Any]]:
    if len(args) < n:
        raise WrongArgsN()
    return list(args[:n]), list(args[n:])


def view1(args: Sequence[Any], v: View, f: Callable[[Any], Any]):
    (a,), tail = take_n(args, 1)
    return v.view(a, f), tail


def view2(args: Sequence[Any], v1: View, v2: View, f: Callable[[Any, Any], Any]):
    (a, b), tail = take_n(args, 2)
    return v1.view(a, lambda x: v2.view(b, lambda y: f(x, y))), tail


def foreach(args: Sequence[Any], v: View, f: Callable[[Any], Any]) -> List[Any]:
    return [v.view(a, f) for a in args]


def test_consumed(tail: Sequence[Any]):
    if tail:
        raise WrongArgsN()


# =================================================================
# Deque indexing
# =================================================================

def resolve_index(items: deque, idx: int) -> int:
    """Resolve a possibly negative index; -1 is the last element."""
    resolved = idx if idx >= 0 else len(items) + idx
    if not 0 <= resolved < len(items):
        raise OutOfBounds(resolved, len(items))
    return resolved


def deque_get(items: deque, idx: int) -> Any:
    return items[resolve_index(items, idx)]


def deque_remove(items: deque, idx: int) -> Any:
    resolved = resolve_index(items, idx)
    value = items[resolved]
    del items[resolved]
    return value
