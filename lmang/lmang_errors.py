"""
Error families raised by the lmang engine.

Parse errors come from tree construction (or from a front end's parser) and
are never caught by an in-language try. Runtime errors are catchable and
carry a kind tag plus a small payload.
"""

from collections import deque
from typing import Dict, List, Type


class LmangError(Exception):
    """Base class for every error the engine raises."""
    pass


class ParseError(LmangError):
    def __init__(self, kind: str, detail: str = ""):
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind}: {detail}" if detail else kind)


class LmangRuntimeError(LmangError):
    """A catchable error. `kind` is the discriminant try/except matches on."""

    fields: tuple = ()

    @property
    def kind(self) -> str:
        return type(self).__name__

    def payload(self) -> Dict[str, object]:
        return {name: getattr(self, name) for name in self.fields}

    # Host code reads an error's fields through the same member protocol as objects.
    def member_names(self) -> List[str]:
        return ["type", *self.fields]

    def member(self, name: str):
        if name == "type":
            return _text(self.kind)
        if name not in self.fields:
            raise NoKey(name)
        value = getattr(self, name)
        if isinstance(value, str):
            return _text(value)
        return value

    def __eq__(self, other):
        return type(self) is type(other) and self.payload() == other.payload()

    def __hash__(self):
        return hash((self.kind, tuple(self.payload().values())))

    def __repr__(self):
        args = ", ".join(f"{k}={v!r}" for k, v in self.payload().items())
        return f"{self.kind}({args})"


def _text(s: str) -> deque:
    return deque(s)


class NoBinding(LmangRuntimeError):
    fields = ("binding",)

    def __init__(self, binding: str):
        self.binding = binding
        super().__init__(f"Binding {binding} doesn't exist")


class Timeout(LmangRuntimeError):
    def __init__(self):
        super().__init__("Timeout")


class OutOfBounds(LmangRuntimeError):
    fields = ("idx", "len")

    def __init__(self, idx: int, len: int):
        self.idx = idx
        self.len = len
        super().__init__(f"Out of bounds access: {idx}, size is: {len}")


class WrongArgsN(LmangRuntimeError):
    def __init__(self):
        super().__init__("Invalid number of arguments")


class CastError(LmangRuntimeError):
    fields = ("from_", "to")

    def __init__(self, from_: str, to: str):
        self.from_ = from_
        self.to = to
        super().__init__(f"Can't cast from {from_} to {to}")

    def member_names(self) -> List[str]:
        return ["type", "from", "to"]

    def member(self, name: str):
        return super().member("from_" if name == "from" else name)


class InvalidOp(LmangRuntimeError):
    fields = ("lhs", "op", "rhs")

    def __init__(self, lhs: str, op: str, rhs: str):
        self.lhs = lhs
        self.op = op
        self.rhs = rhs
        super().__init__(f"Invalid operation {lhs} {op} {rhs}")


class Dangling(LmangRuntimeError):
    def __init__(self):
        super().__init__("Dangling weak pointer")


class IoError(LmangRuntimeError):
    fields = ("file", "reason")

    def __init__(self, file: str, reason: str):
        self.file = file
        self.reason = reason
        super().__init__(f"Can't open file {file}, reason: {reason}")


class NoHandle(LmangRuntimeError):
    fields = ("handle",)

    def __init__(self, handle: int):
        self.handle = handle
        super().__init__(f"Invalid handle {handle}")


class NoKey(LmangRuntimeError):
    fields = ("key",)

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"No key {key}")


RUNTIME_ERROR_KINDS: Dict[str, Type[LmangRuntimeError]] = {
    cls.__name__: cls
    for cls in (NoBinding, Timeout, OutOfBounds, WrongArgsN, CastError,
                InvalidOp, Dangling, IoError, NoHandle, NoKey)
}
