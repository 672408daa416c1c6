"""
The system collaborator: the only way native functions touch the outside world.
"""
import asyncio
import sys
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional


class System(ABC):
    @abstractmethod
    def print(self, text: str):
        ...

    @abstractmethod
    async def read_line(self) -> str:
        """One line of input including its newline; empty at end of input."""
        ...

    @abstractmethod
    def args(self) -> List[str]:
        ...


class NativeSystem(System):
    """Process stdout, stdin and argv."""

    def __init__(self, skip_args: int = 0):
        self.skip_args = skip_args

    def print(self, text: str):
        sys.stdout.write(text)
        sys.stdout.flush()

    async def read_line(self) -> str:
        # Blocking stdin read stays off the event loop thread.
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, sys.stdin.readline)

    def args(self) -> List[str]:
        return sys.argv[self.skip_args:]


class BufferedSystem(System):
    """Scripted input and captured output, for embedding and tests."""

    def __init__(self, lines: Optional[Iterable[str]] = None, args: Optional[Iterable[str]] = None):
        self.lines = list(lines or [])
        self._args = list(args or [])
        self.output: List[str] = []

    def print(self, text: str):
        self.output.append(text)

    async def read_line(self) -> str:
        if not self.lines:
            return ""
        line = self.lines.pop(0)
        return line if line.endswith("\n") else line + "\n"

    def args(self) -> List[str]:
        return list(self._args)

    @property
    def stdout(self) -> str:
        return "".join(self.output)
