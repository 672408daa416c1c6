"""
Built-in native functions and namespaces for lmang programs.

Every native has the signature `func(args, env, state)`; it may be a plain
function or a coroutine function. Namespaces bundle natives that share one
FnState (the rng's generator, the file table).
"""
import inspect
import random
from collections import deque
from typing import Any, Callable, Dict, List, Optional

from lmang.lmang_datatypes import (
    FnState, Named, NativeFunction, NativeNamespace, clone_value,
    deref, make_ref,
)
from lmang.lmang_errors import CastError, IoError, NoHandle, ParseError
from lmang.lmang_operations import wrap_i32
from lmang.lmang_printer import Printer
from lmang.lmang_system import System
from lmang.lmang_view import (
    AnyRef, Bottom, DequeView, NumberView, RefView, StringView,
    deque_get, deque_remove, take_n, test_consumed, view1, view2,
)

Parser = Callable[[str], Any]

_printer = Printer()


def display(val: Any) -> str:
    return _printer.pformat(val)


def text_deque(text: str) -> deque:
    return deque(text)


# =================================================================
# deque
# =================================================================

def deque_len(args, env, state):
    n, tail = view1(args, AnyRef(DequeView()), len)
    test_consumed(tail)
    return n


def deque_append(args, env, state):
    _, tail = view2(args, RefView(DequeView()), Bottom(),
                    lambda dq, val: dq.append(clone_value(val)))
    test_consumed(tail)
    return None


def deque_concat(args, env, state):
    def extend(dq, other):
        # Materialise first so `concat(r, r)` doubles instead of looping.
        dq.extend([clone_value(v) for v in other])

    _, tail = view2(args, RefView(DequeView()), AnyRef(DequeView()), extend)
    test_consumed(tail)
    return None


def deque_at(args, env, state):
    val, tail = view2(args, AnyRef(DequeView()), NumberView(),
                      lambda dq, idx: clone_value(deque_get(dq, idx)))
    test_consumed(tail)
    return val


def deque_mut(args, env, state):
    def slot(dq, idx):
        deque_get(dq, idx)
        return make_ref(dq, idx if idx >= 0 else len(dq) + idx)

    cell, tail = view2(args, RefView(DequeView()), NumberView(), slot)
    test_consumed(tail)
    return cell


def deque_remove_at(args, env, state):
    val, tail = view2(args, RefView(DequeView()), NumberView(), deque_remove)
    test_consumed(tail)
    return val


def _flatten_into(val: Any, out: deque):
    root = deref(val)
    if isinstance(root, deque):
        for item in root:
            _flatten_into(item, out)
    else:
        out.append(clone_value(val))


def deque_flatten(args, env, state):
    (val,), tail = take_n(args, 1)
    test_consumed(tail)
    out: deque = deque()
    _flatten_into(val, out)
    return out


def make_deque_namespace() -> NativeNamespace:
    return NativeNamespace("deque", [
        NativeFunction("len", deque_len),
        NativeFunction("append", deque_append),
        NativeFunction("concat", deque_concat),
        NativeFunction("at", deque_at),
        NativeFunction("mut", deque_mut),
        NativeFunction("remove", deque_remove_at),
        NativeFunction("flatten", deque_flatten),
    ])


# =================================================================
# file
# =================================================================

class FileTable:
    """Open files by handle id. Ids count up from 0 and are never reused."""

    def __init__(self):
        self.files: Dict[int, Any] = {}
        self.next_id = 0

    def open(self, name: str) -> int:
        try:
            handle = open(name, "r", encoding="utf-8")
        except OSError as e:
            raise IoError(name, e.strerror or str(e)) from e
        fid = self.next_id
        self.next_id += 1
        self.files[fid] = handle
        return fid

    def get(self, fid: int):
        try:
            return self.files[fid]
        except KeyError:
            raise NoHandle(fid) from None

    def close(self, fid: int):
        self.get(fid).close()
        del self.files[fid]

    def close_all(self):
        for handle in self.files.values():
            handle.close()
        self.files.clear()


def file_open(args, env, state):
    name, tail = view1(args, AnyRef(StringView()), lambda s: s)
    test_consumed(tail)
    return state.downcast(FileTable).open(name)


def file_read(args, env, state):
    fid, tail = view1(args, AnyRef(NumberView()), lambda n: n)
    test_consumed(tail)
    handle = state.downcast(FileTable).get(fid)
    try:
        content = handle.read()
    except (OSError, UnicodeDecodeError) as e:
        raise IoError(f"handle({fid})", str(e)) from e
    return text_deque(content)


def file_close(args, env, state):
    fid, tail = view1(args, AnyRef(NumberView()), lambda n: n)
    test_consumed(tail)
    state.downcast(FileTable).close(fid)
    return None


def make_file_namespace(table: Optional[FileTable] = None) -> NativeNamespace:
    state = FnState(table if table is not None else FileTable())
    return NativeNamespace("file", [
        NativeFunction("open", file_open, state),
        NativeFunction("read", file_read, state),
        NativeFunction("close", file_close, state),
    ])


# =================================================================
# rng
# =================================================================

# Seeds are taken as unsigned 64-bit so negative seeds keep their own stream.
_SEED_MASK = 0xFFFFFFFFFFFFFFFF


def rng_next(args, env, state):
    test_consumed(args)
    return wrap_i32(state.downcast(random.Random).getrandbits(32))


def rng_seed(args, env, state):
    seed, tail = view1(args, AnyRef(NumberView()), lambda n: n)
    test_consumed(tail)
    state.downcast(random.Random).seed(seed & _SEED_MASK)
    return None


def make_rng_namespace(seed: int = 0) -> NativeNamespace:
    state = FnState(random.Random(seed & _SEED_MASK))
    return NativeNamespace("rng", [
        NativeFunction("next", rng_next, state),
        NativeFunction("seed", rng_seed, state),
    ])


# =================================================================
# sys
# =================================================================

def sys_args(args, env, state):
    test_consumed(args)
    return deque(text_deque(a) for a in state.downcast(list))


def make_sys_namespace(argv: List[str]) -> NativeNamespace:
    state = FnState(list(argv))
    return NativeNamespace("sys", [NativeFunction("args", sys_args, state)])


# =================================================================
# types
# =================================================================

def types_char(args, env, state):
    ch, tail = view1(args, AnyRef(NumberView()), lambda n: chr(n & 0xFF))
    test_consumed(tail)
    return ch


def types_string(args, env, state):
    text, tail = view1(args, AnyRef(Bottom()), display)
    test_consumed(tail)
    return text_deque(text)


def make_types_namespace() -> NativeNamespace:
    return NativeNamespace("types", [
        NativeFunction("char", types_char),
        NativeFunction("string", types_string),
    ])


# =================================================================
# Top-level functions
# =================================================================

class StdLib:
    """Top-level natives (print, read, eval) plus the builtin namespaces.

    Every `_name` method is exposed to programs as `name`.
    """

    def __init__(self, evaluator, system: System, parser: Optional[Parser] = None,
                 rng_seed: int = 0):
        self.evaluator = evaluator
        self.system = system
        self.parser = parser
        self.rng_seed = rng_seed
        self.files = FileTable()

    def _print(self, args, env, state):
        sep, end = " ", "\n"
        positional = []
        for arg in args:
            root = deref(arg)
            if isinstance(root, Named):
                if root.name == "sep":
                    sep = display(deref(root.value))
                elif root.name == "end":
                    end = display(deref(root.value))
                continue
            positional.append(arg)
        if not args:
            self.system.print("")
            return None
        self.system.print(sep.join(display(a) for a in positional) + end)
        return None

    async def _read(self, args, env, state):
        test_consumed(args)
        line = await self.system.read_line()
        if line.endswith("\n"):
            line = line[:-1]
        return text_deque(line)

    async def _eval(self, args, env, state):
        code, tail = view1(args, AnyRef(StringView()), lambda s: s)
        test_consumed(tail)
        if self.parser is None:
            raise CastError("String", "Code")
        try:
            tree = self.parser(code)
        except ParseError:
            raise CastError("String", "Code") from None
        return await self.evaluator.eval(tree, env)

    def functions(self) -> List[NativeFunction]:
        out = []
        for name, member in inspect.getmembers(self):
            if name.startswith('_') and not name.startswith('__') and callable(member):
                out.append(NativeFunction(name[1:], member))
        return out

    def namespaces(self) -> List[NativeNamespace]:
        return [
            make_deque_namespace(),
            make_file_namespace(self.files),
            make_rng_namespace(self.rng_seed),
            make_sys_namespace(self.system.args()),
            make_types_namespace(),
        ]

    def install(self, env):
        """Bind every builtin into the environment's root frame."""
        for fn in self.functions():
            env.store_global(fn.name, fn)
        for ns in self.namespaces():
            env.store_global(ns.name, ns)
