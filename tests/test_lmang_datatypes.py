import gc
from collections import deque

import pytest

from lmang.lmang_datatypes import (
    Break, Ref, Weak, Named, ClassObject, LmangObject, NativeFunction, NativeNamespace,
    apply_to_root, apply_to_root_mut, clone_value, deref, make_ref,
    values_equal, variant_name,
)
from lmang.lmang_errors import CastError, Dangling, NoKey, OutOfBounds


def test_variant_names():
    assert variant_name(1) == "Number"
    assert variant_name(True) == "Bool"
    assert variant_name("a") == "Char"
    assert variant_name(None) == "Unit"
    assert variant_name(Break(1)) == "Break"
    assert variant_name(deque()) == "Deque"
    assert variant_name(Ref(1)) == "Ref"
    assert variant_name(Weak(Ref(1))) == "Weak"
    assert variant_name(Named("sep", "-")) == "Named"
    assert variant_name(NativeFunction("f", lambda a, e, s: None)) == "Func"
    assert variant_name(ClassObject({})) == "Object"
    # Runtime errors answer member lookup, so they count as objects.
    assert variant_name(NoKey("x")) == "Object"


def test_apply_to_root_walks_refs_and_weaks():
    inner = Ref(41)
    outer = Ref(inner)
    weak = Weak(outer)
    assert apply_to_root(weak, lambda v: v + 1) == 42
    assert deref(outer) == 41
    assert deref(7) == 7


def test_apply_to_root_mut_hands_over_innermost_cell():
    inner = Ref(1)
    outer = Ref(inner)

    def bump(cell):
        cell.value += 1

    apply_to_root_mut(outer, bump)
    assert inner.value == 2
    assert outer.value is inner


def test_dangling_weak_raises():
    cell = Ref(1)
    weak = Weak(cell)
    del cell
    gc.collect()
    assert weak.upgrade() is None
    with pytest.raises(Dangling):
        deref(weak)


def test_make_ref_is_idempotent():
    frame = {"x": 0}
    r1 = make_ref(frame, "x")
    r2 = make_ref(frame, "x")
    assert r1 is r2
    assert frame["x"] is r1
    assert r1.value == 0


def test_make_ref_on_deque_slot():
    items = deque([1, 2, 3])
    cell = make_ref(items, 1)
    cell.value = 20
    assert items[1] is cell
    assert deref(items[1]) == 20


def test_clone_value_copies_deques_and_shares_cells():
    cell = Ref(5)
    original = deque([1, deque(["a"]), cell])
    copy = clone_value(original)
    copy[1].append("b")
    copy.append(9)
    assert list(original[1]) == ["a"]
    assert len(original) == 3
    assert copy[2] is cell


def test_values_equal_is_structural():
    assert values_equal(deque([1, deque("ab")]), deque([1, deque("ab")]))
    assert not values_equal(True, 1)
    assert not values_equal(0, False)
    assert values_equal(Ref(3), Ref(3))
    assert not values_equal(Ref(3), 3)
    assert values_equal(Break(deque([1])), Break(deque([1])))
    assert values_equal(Named("end", "!"), Named("end", "!"))
    assert not values_equal(None, 0)


def test_values_equal_on_weaks():
    a, b = Ref(1), Ref(1)
    assert values_equal(Weak(a), Weak(b))
    c = Ref(2)
    dead = Weak(c)
    del c
    gc.collect()
    d = Ref(3)
    dead_too = Weak(d)
    del d
    gc.collect()
    assert values_equal(dead, dead_too)
    assert not values_equal(dead, Weak(a))


def test_class_object_members():
    obj = ClassObject({"x": Ref(1)})
    assert obj.member_names() == ["x"]
    assert obj.member("x").value == 1
    with pytest.raises(NoKey) as exc:
        obj.member("y")
    assert exc.value.key == "y"


@pytest.mark.asyncio
async def test_native_function_state_is_shared():
    def bump(args, env, state):
        state.value["n"] += 1
        return state.value["n"]

    ns = NativeNamespace("counter", [])
    first = NativeFunction("a", bump)
    first.state.value = {"n": 0}
    second = NativeFunction("b", bump, first.state)
    ns.functions = {"a": first, "b": second}

    assert await ns.member("a").call([], None) == 1
    assert await ns.member("b").call([], None) == 2


@pytest.mark.asyncio
async def test_native_function_awaits_coroutines():
    async def later(args, env, state):
        return len(args)

    assert await NativeFunction("later", later).call([1, 2], None) == 2


def test_runtime_errors_expose_members():
    err = OutOfBounds(4, 2)
    assert err.kind == "OutOfBounds"
    assert err.member_names() == ["type", "idx", "len"]
    assert "".join(err.member("type")) == "OutOfBounds"
    assert err.member("idx") == 4
    cast = CastError("Char", "Number")
    assert "".join(cast.member("from")) == "Char"
    assert cast.member_names() == ["type", "from", "to"]
    with pytest.raises(NoKey):
        err.member("reason")
    assert err == OutOfBounds(4, 2)
    assert err != OutOfBounds(4, 3)


def test_runtime_errors_answer_member_lookup():
    err = OutOfBounds(4, 2)
    assert isinstance(err, LmangObject)
    assert err.member_names() == ["type", "idx", "len"]
    assert "".join(err.member("type")) == "OutOfBounds"
    assert err.member("len") == 2
