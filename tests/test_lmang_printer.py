import gc
from collections import deque

from lmang.lmang_datatypes import Break, Ref, Weak, Named, ClassObject, NativeFunction
from lmang.lmang_errors import NoKey
from lmang.lmang_printer import Printer


def test_primitives():
    p = Printer()
    assert p.pformat(42) == "42"
    assert p.pformat(-3) == "-3"
    assert p.pformat("x") == "x"
    assert p.pformat(True) == "true"
    assert p.pformat(False) == "false"
    assert p.pformat(None) == "()"


def test_deques():
    p = Printer()
    assert p.pformat(deque("hello")) == "hello"
    assert p.pformat(deque()) == ""
    assert p.pformat(deque([1, deque("ab"), True])) == "[1, ab, true]"


def test_wrappers():
    p = Printer()
    assert p.pformat(Break(1)) == "break(1)"
    assert p.pformat(Ref(deque("hi"))) == "&hi"
    cell = Ref(5)
    assert p.pformat(Weak(cell)) == "weak(5)"
    weak = Weak(Ref(1))
    gc.collect()
    assert p.pformat(weak) == "weak(dangling)"
    assert p.pformat(Named("sep", "-")) == "sep:-"


def test_functions_and_objects():
    p = Printer()
    assert p.pformat(NativeFunction("len", lambda a, e, s: None)) == "fn(len)"
    assert p.pformat(ClassObject({})) == "object(user-defined)"
    assert p.pformat(NoKey("x")) == "NoKey: No key x"
