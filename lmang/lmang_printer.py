"""
Display form of lmang values, as used by print and types.string.
"""
from collections import deque

from lmang.lmang_datatypes import (
    Break, Ref, Weak, Named, Callee, LmangObject, is_char,
)
from lmang.lmang_errors import LmangRuntimeError


class Printer:
    """Formats lmang values into the text a program sees when it prints them."""

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj) -> str:
        """Public entry point to format a value."""
        handler = self._get_handler(obj)
        return handler(obj)

    def _get_handler(self, obj):
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        if isinstance(obj, LmangRuntimeError): return self._pformat_error
        if isinstance(obj, Callee): return self._pformat_func
        if isinstance(obj, LmangObject): return self._pformat_object
        return repr

    def _create_handlers(self):
        return {
            int: str,
            str: str,
            bool: self._pformat_bool,
            type(None): self._pformat_unit,
            deque: self._pformat_deque,
            Break: self._pformat_break,
            Ref: self._pformat_ref,
            Weak: self._pformat_weak,
            Named: self._pformat_named,
        }

    def _pformat_bool(self, obj):
        return "true" if obj else "false"

    def _pformat_unit(self, obj):
        return "()"

    def _pformat_deque(self, obj):
        # A deque of chars is text; an empty deque counts as empty text.
        if all(is_char(v) for v in obj):
            return "".join(obj)
        return "[" + ", ".join(self.pformat(v) for v in obj) + "]"

    def _pformat_break(self, obj):
        return f"break({self.pformat(obj.value)})"

    def _pformat_ref(self, obj):
        return "&" + self.pformat(obj.value)

    def _pformat_weak(self, obj):
        cell = obj.upgrade()
        if cell is None:
            return "weak(dangling)"
        return f"weak({self.pformat(cell.value)})"

    def _pformat_named(self, obj):
        return f"{obj.name}:{self.pformat(obj.value)}"

    def _pformat_func(self, obj):
        return f"fn({obj.name})"

    def _pformat_object(self, obj):
        return f"object({obj.name})"

    def _pformat_error(self, obj):
        return f"{obj.kind}: {obj}"
