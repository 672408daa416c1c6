"""
Scope handling for the evaluator: a stack of frames over a shared root.
"""

import time
from typing import Any, Dict, List, Optional

from lmang.lmang_datatypes import Ref, clone_value, make_ref
from lmang.lmang_errors import NoBinding, Timeout

Frame = Dict[str, Any]


class Environment:
    """A stack of lexical frames plus the global root frame.

    The root is always reachable, even with an empty stack, and may be
    shared between several environments (see `shared`).
    """

    def __init__(self, root: Optional[Frame] = None):
        self.stack: List[Frame] = []
        self.root: Frame = root if root is not None else {}
        self.last_popped: Optional[Frame] = None
        self.deadline: Optional[float] = None

    def shared(self) -> 'Environment':
        """A fresh environment with an empty stack over the same root."""
        env = Environment(self.root)
        env.deadline = self.deadline
        return env

    # --- frames ---

    def push(self):
        self.stack.append({})

    def pop(self):
        self.last_popped = self.stack.pop()

    def take_last_popped(self) -> Optional[Frame]:
        frame, self.last_popped = self.last_popped, None
        return frame

    @property
    def depth(self) -> int:
        return len(self.stack)

    # --- bindings ---

    def _find_frame(self, name: str) -> Optional[Frame]:
        for frame in reversed(self.stack):
            if name in frame:
                return frame
        if name in self.root:
            return self.root
        return None

    def store_binding(self, name: str, val: Any):
        """Bind in the innermost frame, or the root when no frame is open."""
        frame = self.stack[-1] if self.stack else self.root
        frame[name] = val

    def store_global(self, name: str, val: Any):
        self.root[name] = val

    def set_binding(self, name: str, val: Any):
        """Rebind an existing name, writing through a shared cell if the slot holds one."""
        frame = self._find_frame(name)
        if frame is None:
            raise NoBinding(name)
        current = frame[name]
        if isinstance(current, Ref):
            current.value = val
        else:
            frame[name] = val

    def get_binding(self, name: str) -> Any:
        frame = self._find_frame(name)
        if frame is None:
            raise NoBinding(name)
        return clone_value(frame[name])

    def take_ref(self, name: str) -> Ref:
        frame = self._find_frame(name)
        if frame is None:
            raise NoBinding(name)
        return make_ref(frame, name)

    # --- cancellation ---

    def set_timeout(self, seconds: Optional[float]):
        self.deadline = None if seconds is None else time.monotonic() + seconds

    def check_deadline(self):
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise Timeout()
