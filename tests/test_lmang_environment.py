import time
from collections import deque

import pytest

from lmang.lmang_datatypes import Ref
from lmang.lmang_environment import Environment
from lmang.lmang_errors import NoBinding, Timeout


def test_store_binding_targets_root_without_frames():
    env = Environment()
    env.store_binding("x", 1)
    assert env.root == {"x": 1}


def test_store_binding_targets_innermost_frame():
    env = Environment()
    env.store_binding("x", 1)
    env.push()
    env.store_binding("x", 2)
    assert env.get_binding("x") == 2
    env.pop()
    assert env.get_binding("x") == 1
    assert env.take_last_popped() == {"x": 2}
    assert env.take_last_popped() is None


def test_store_global_from_inside_frame():
    env = Environment()
    env.push()
    env.store_global("g", 5)
    env.pop()
    assert env.get_binding("g") == 5


def test_set_binding_replaces_or_writes_through():
    env = Environment()
    env.store_binding("x", 1)
    env.push()
    env.set_binding("x", 2)
    env.pop()
    assert env.root["x"] == 2

    cell = env.take_ref("x")
    env.set_binding("x", 3)
    assert env.root["x"] is cell
    assert cell.value == 3


def test_set_binding_missing_name():
    env = Environment()
    with pytest.raises(NoBinding) as exc:
        env.set_binding("nope", 1)
    assert exc.value.binding == "nope"
    with pytest.raises(NoBinding):
        env.get_binding("nope")
    with pytest.raises(NoBinding):
        env.take_ref("nope")


def test_get_binding_returns_a_copy():
    env = Environment()
    env.store_binding("d", deque([1, 2]))
    copy = env.get_binding("d")
    copy.append(3)
    assert list(env.root["d"]) == [1, 2]


def test_take_ref_aliasing():
    env = Environment()
    env.store_binding("x", 0)
    r1 = env.take_ref("x")
    r2 = env.take_ref("x")
    assert r1 is r2
    r1.value = 5
    assert env.get_binding("x") is r2
    assert r2.value == 5
    assert not isinstance(r1.value, Ref)


def test_shared_environment_sees_same_root():
    env = Environment()
    env.push()
    other = env.shared()
    other.store_binding("g", 1)
    assert env.get_binding("g") == 1
    assert other.depth == 0
    assert env.depth == 1


def test_deadline():
    env = Environment()
    env.check_deadline()
    env.set_timeout(60)
    env.check_deadline()
    env.deadline = time.monotonic() - 1
    with pytest.raises(Timeout):
        env.check_deadline()
    env.set_timeout(None)
    env.check_deadline()
