"""
Defines the runtime value model for the lmang language.

Primitive values are plain Python objects:

    Number -> int (never bool, wrapped to signed 32 bit)
    Char   -> str of length 1
    Bool   -> bool
    Unit   -> None
    Deque  -> collections.deque

Everything else (break signals, shared cells, weak observers, named
arguments, functions and objects) gets a small class below.
"""

import inspect
import weakref
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from lmang.lmang_errors import Dangling, LmangRuntimeError, NoKey, WrongArgsN

if TYPE_CHECKING:
    from lmang.lmang_environment import Environment


# =================================================================
# Signal and reference wrappers
# =================================================================

class Break:
    """Control-flow signal carrying the exit payload of a loop."""
    __slots__ = ("value",)

    def __init__(self, value: Any = None):
        self.value = value

    def __eq__(self, other):
        return isinstance(other, Break) and values_equal(self.value, other.value)

    __hash__ = None

    def __repr__(self):
        return f"Break({self.value!r})"


class Ref:
    """A shared, mutable cell. Every holder sees writes made through any other."""
    __slots__ = ("value", "__weakref__")

    def __init__(self, value: Any = None):
        self.value = value

    def __repr__(self):
        return f"Ref({self.value!r})"


class Weak:
    """A non-owning observer of a Ref cell."""
    __slots__ = ("_target",)

    def __init__(self, cell: Ref):
        self._target = weakref.ref(cell)

    def upgrade(self) -> Optional[Ref]:
        return self._target()

    def __repr__(self):
        cell = self.upgrade()
        return "Weak(<dangling>)" if cell is None else f"Weak({cell.value!r})"


class Named:
    """A keyword-style argument, e.g. `sep:"-"` passed to print."""
    __slots__ = ("name", "value")

    def __init__(self, name: str, value: Any):
        self.name = name
        self.value = value

    def __eq__(self, other):
        return (isinstance(other, Named) and self.name == other.name
                and values_equal(self.value, other.value))

    __hash__ = None

    def __repr__(self):
        return f"Named({self.name!r}, {self.value!r})"


# =================================================================
# Capabilities
# =================================================================

class Callee(ABC):
    """Anything that can be invoked from a call expression."""

    name: str = "fn"

    @abstractmethod
    async def call(self, args: List[Any], env: 'Environment') -> Any:
        ...


class LmangObject(ABC):
    """Anything that answers member lookup (`obj.member`)."""

    name: str = "object"

    @abstractmethod
    def member_names(self) -> List[str]:
        ...

    @abstractmethod
    def member(self, name: str) -> Any:
        ...


# Runtime errors answer member lookup so host code can read their fields.
LmangObject.register(LmangRuntimeError)


# =================================================================
# Functions
# =================================================================

class Single:
    """A positional parameter."""
    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def __eq__(self, other):
        return type(other) is Single and other.name == self.name

    __hash__ = None

    def __repr__(self):
        return f"Single({self.name!r})"


class Variadic:
    """A trailing parameter collecting every remaining argument into a deque."""
    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def __eq__(self, other):
        return type(other) is Variadic and other.name == self.name

    __hash__ = None

    def __repr__(self):
        return f"Variadic({self.name!r})"


class UserFunction(Callee):
    """A closure defined in lmang code.

    `captured` is only populated for class methods: it holds the sibling
    members' cells plus a weak observer of the method's own cell.
    """

    name = "user-defined"

    def __init__(self, params: List[Any], body: Any, evaluator: Any,
                 captured: Optional[Dict[str, Any]] = None):
        self.params = list(params)
        self.body = body
        self.evaluator = evaluator
        self.captured = captured

    def with_captures(self, captured: Dict[str, Any]) -> 'UserFunction':
        return UserFunction(self.params, self.body, self.evaluator, captured)

    async def call(self, args: List[Any], env: 'Environment') -> Any:
        env.push()
        try:
            remaining = list(args)
            for param in self.params:
                if isinstance(param, Variadic):
                    env.store_binding(param.name, deque(remaining))
                    remaining = []
                    break
                if not remaining:
                    raise WrongArgsN()
                env.store_binding(param.name, remaining.pop(0))
            if remaining:
                raise WrongArgsN()
            # Captured names win over parameters of the same name.
            for key, value in (self.captured or {}).items():
                env.store_binding(key, value)
            return await self.evaluator.eval(self.body, env)
        finally:
            env.pop()
            # Drop the call frame so captured cells do not outlive the call.
            env.take_last_popped()

    def __eq__(self, other):
        return (isinstance(other, UserFunction) and self.params == other.params
                and self.body == other.body)

    __hash__ = None

    def __repr__(self):
        return f"<UserFunction params={self.params!r}>"


class FnState:
    """Type-erased state shared between the native functions that hold it."""
    __slots__ = ("value",)

    def __init__(self, value: Any = None):
        self.value = value

    def downcast(self, kind: type) -> Any:
        if not isinstance(self.value, kind):
            raise TypeError(f"native state holds {type(self.value).__name__}, not {kind.__name__}")
        return self.value


NativeImpl = Callable[[List[Any], 'Environment', FnState], Any]


class NativeFunction(Callee):
    """A host function exposed to lmang code.

    The implementation is called as `func(args, env, state)` and may be a
    plain function or a coroutine function.
    """

    def __init__(self, name: str, func: NativeImpl, state: Optional[FnState] = None):
        self.name = name
        self.func = func
        self.state = state if state is not None else FnState()

    async def call(self, args: List[Any], env: 'Environment') -> Any:
        result = self.func(args, env, self.state)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self):
        return f"<NativeFunction {self.name}>"


# =================================================================
# Objects
# =================================================================

class ClassObject(LmangObject):
    """An instance produced by evaluating a class expression."""

    name = "user-defined"

    def __init__(self, members: Dict[str, Ref]):
        self.members = members

    def member_names(self) -> List[str]:
        return list(self.members)

    def member(self, name: str) -> Any:
        try:
            return self.members[name]
        except KeyError:
            raise NoKey(name) from None

    def __repr__(self):
        return f"<ClassObject {sorted(self.members)}>"


class NativeNamespace(LmangObject):
    """A named bundle of native functions, such as `deque` or `rng`."""

    def __init__(self, name: str, functions: List[NativeFunction]):
        self.name = name
        self.functions = {fn.name: fn for fn in functions}

    def member_names(self) -> List[str]:
        return list(self.functions)

    def member(self, name: str) -> Any:
        try:
            return self.functions[name]
        except KeyError:
            raise NoKey(name) from None

    def __repr__(self):
        return f"<NativeNamespace {self.name}>"


# =================================================================
# Helpers
# =================================================================

def is_number(val: Any) -> bool:
    return type(val) is int


def is_char(val: Any) -> bool:
    return type(val) is str and len(val) == 1


def variant_name(val: Any) -> str:
    """The name of a value's variant, as reported in error payloads."""
    if isinstance(val, bool):
        return "Bool"
    if isinstance(val, int):
        return "Number"
    if isinstance(val, str):
        return "Char"
    if val is None:
        return "Unit"
    if isinstance(val, Break):
        return "Break"
    if isinstance(val, deque):
        return "Deque"
    if isinstance(val, Callee):
        return "Func"
    if isinstance(val, LmangObject):
        return "Object"
    if isinstance(val, Ref):
        return "Ref"
    if isinstance(val, Weak):
        return "Weak"
    if isinstance(val, Named):
        return "Named"
    raise TypeError(f"not an lmang value: {val!r}")


def _upgrade(weak: Weak) -> Ref:
    cell = weak.upgrade()
    if cell is None:
        raise Dangling()
    return cell


def apply_to_root(val: Any, f: Callable[[Any], Any]) -> Any:
    """Walk through any number of Ref/Weak layers and apply `f` to the value underneath."""
    while True:
        if isinstance(val, Ref):
            val = val.value
        elif isinstance(val, Weak):
            val = _upgrade(val).value
        else:
            return f(val)


def apply_to_root_mut(val: Any, f: Callable[[Ref], Any]) -> Any:
    """Like apply_to_root, but hands `f` the innermost cell so it can write.

    A value that is not a reference is wrapped in a throwaway cell; writes to
    it are not observable by anyone else.
    """
    cell = val if isinstance(val, Ref) else None
    if isinstance(val, Weak):
        cell = _upgrade(val)
    if cell is None:
        return f(Ref(val))
    while True:
        inner = cell.value
        if isinstance(inner, Ref):
            cell = inner
        elif isinstance(inner, Weak):
            cell = _upgrade(inner)
        else:
            return f(cell)


def deref(val: Any) -> Any:
    return apply_to_root(val, lambda v: v)


def make_ref(container: Any, key: Any) -> Ref:
    """Promote `container[key]` to a shared cell in place and return the cell.

    A slot already holding a cell yields that very cell, so references are
    never nested.
    """
    current = container[key]
    if isinstance(current, Ref):
        return current
    if isinstance(current, Weak):
        return _upgrade(current)
    cell = Ref(current)
    container[key] = cell
    return cell


def clone_value(val: Any) -> Any:
    """Copy a value the way the language passes it around.

    Deques and wrappers are copied; cells, functions and objects are handles
    and are shared.
    """
    if isinstance(val, deque):
        return deque(clone_value(v) for v in val)
    if isinstance(val, Break):
        return Break(clone_value(val.value))
    if isinstance(val, Named):
        return Named(val.name, clone_value(val.value))
    return val


def values_equal(a: Any, b: Any) -> bool:
    """Structural equality. Bools never equal numbers; cells compare by content."""
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, int) or isinstance(b, int):
        return is_number(a) and is_number(b) and a == b
    if isinstance(a, str) or isinstance(b, str):
        return type(a) is type(b) and a == b
    if a is None or b is None:
        return a is b
    if isinstance(a, deque):
        return (isinstance(b, deque) and len(a) == len(b)
                and all(values_equal(x, y) for x, y in zip(a, b)))
    if isinstance(a, Ref):
        return isinstance(b, Ref) and (a is b or values_equal(a.value, b.value))
    if isinstance(a, Weak):
        if not isinstance(b, Weak):
            return False
        lhs, rhs = a.upgrade(), b.upgrade()
        if lhs is None or rhs is None:
            return lhs is None and rhs is None
        return values_equal(lhs.value, rhs.value)
    if isinstance(a, (Break, Named, UserFunction)):
        return a == b
    return a is b
