from collections import deque

import pytest

from lmang import lmang_view as view
from lmang.lmang_datatypes import Break, Ref, Weak
from lmang.lmang_errors import CastError, OutOfBounds, WrongArgsN


def ident(v):
    return v


def test_primitive_views():
    assert view.NumberView().view(3, ident) == 3
    assert view.CharView().view("a", ident) == "a"
    assert view.BoolView().view(False, ident) is False
    with pytest.raises(CastError) as exc:
        view.NumberView().view(True, ident)
    assert (exc.value.from_, exc.value.to) == ("Bool", "Number")
    with pytest.raises(CastError):
        view.CharView().view(1, ident)


def test_string_view():
    assert view.StringView().view(deque("hi"), ident) == "hi"
    assert view.StringView().view(deque(), ident) == ""
    with pytest.raises(CastError) as exc:
        view.StringView().view(deque(["h", 1]), ident)
    assert exc.value.to == "String"


def test_break_view():
    assert view.BreakView(view.NumberView()).view(Break(4), ident) == 4
    with pytest.raises(CastError):
        view.BreakView(view.NumberView()).view(4, ident)


def test_any_ref_reaches_through_layers():
    v = view.AnyRef(view.NumberView())
    cell = Ref(Ref(9))
    assert v.view(9, ident) == 9
    assert v.view(cell, ident) == 9
    assert v.view(Weak(cell), ident) == 9


def test_ref_view_requires_a_cell():
    v = view.RefView(view.DequeView())
    items = deque([1])
    cell = Ref(items)
    assert v.view(cell, ident) is items
    with pytest.raises(CastError) as exc:
        v.view(items, ident)
    assert (exc.value.from_, exc.value.to) == ("Deque", "Ref")


def test_view_combinators():
    total, tail = view.view2([1, Ref(2), 3], view.NumberView(), view.AnyRef(view.NumberView()),
                             lambda a, b: a + b)
    assert total == 3
    assert tail == [3]
    with pytest.raises(WrongArgsN):
        view.test_consumed(tail)
    view.test_consumed([])

    with pytest.raises(WrongArgsN):
        view.view1([], view.Bottom(), ident)

    assert view.foreach([1, Ref(2)], view.AnyRef(view.NumberView()), lambda n: n * 10) == [10, 20]


@pytest.mark.parametrize("idx,expected", [(0, 1), (2, 3), (-1, 3), (-3, 1)])
def test_deque_get_negative_indices(idx, expected):
    assert view.deque_get(deque([1, 2, 3]), idx) == expected


@pytest.mark.parametrize("idx,resolved", [(3, 3), (10, 10), (-4, -1), (-5, -2)])
def test_deque_get_out_of_bounds_reports_resolved_index(idx, resolved):
    with pytest.raises(OutOfBounds) as exc:
        view.deque_get(deque([1, 2, 3]), idx)
    assert exc.value.idx == resolved
    assert exc.value.len == 3


def test_deque_remove():
    items = deque([1, 2, 3])
    assert view.deque_remove(items, -1) == 3
    assert list(items) == [1, 2]
    with pytest.raises(OutOfBounds):
        view.deque_remove(items, 2)
