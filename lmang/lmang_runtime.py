"""
Embedding surface: run lmang trees (or source, given a parser) with builtins installed.
"""
import traceback
from dataclasses import dataclass
from typing import Any, Literal, Optional

from lmang.lmang_config import RunnerConfig
from lmang.lmang_environment import Environment
from lmang.lmang_errors import LmangRuntimeError, ParseError
from lmang.lmang_interpreter import Evaluator
from lmang.lmang_stdlib import Parser, StdLib
from lmang.lmang_system import NativeSystem, System


@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Any = None
    error: Optional[Exception] = None
    error_message: Optional[str] = None

    def format_error(self) -> str:
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        if isinstance(self.error, LmangRuntimeError) and not msg.startswith(self.error.kind):
            return f"{self.error.kind}: {msg}"
        return msg


class ScriptRunner:
    """Evaluates lmang programs against one persistent global root.

    Builtins are installed into the root on first use; each run gets a fresh
    scope stack over that root, so globals survive between runs (as in a REPL)
    while locals do not.
    """

    def __init__(self, system: Optional[System] = None, parser: Optional[Parser] = None,
                 config: Optional[RunnerConfig] = None):
        self.config = config or RunnerConfig()
        self.system = system or NativeSystem(skip_args=self.config.skip_args)
        self.parser = parser
        self.evaluator = Evaluator(debug=self.config.debug)
        self.environment = Environment()
        self.stdlib = StdLib(self.evaluator, self.system, parser=parser,
                             rng_seed=self.config.rng_seed)
        self._initialized = False

    async def _initialize(self):
        if self._initialized:
            return
        self.stdlib.install(self.environment)
        self._initialized = True

    async def run(self, tree: Any) -> ExecutionResult:
        """Evaluate an expression tree, reporting runtime errors instead of raising them."""
        await self._initialize()
        env = self.environment.shared()
        env.set_timeout(self.config.timeout_seconds)
        try:
            value = await self.evaluator.eval(tree, env)
            return ExecutionResult(status='success', value=value)
        except LmangRuntimeError as e:
            self.evaluator._dbg("ScriptRunner.run", e.kind, e)
            return ExecutionResult(status='error', error=e, error_message=str(e))
        except RecursionError as e:
            return ExecutionResult(status='error', error=e,
                                   error_message="RecursionError: maximum recursion depth exceeded")
        except Exception as e:
            if self.evaluator.debug:
                traceback.print_exc()
            return ExecutionResult(status='error', error=e, error_message=f"InternalError: {e}")

    async def handle_script(self, source: str) -> ExecutionResult:
        """Parse source text with the configured parser, then run it."""
        if self.parser is None:
            return ExecutionResult(status='error', error_message="ParseError: no parser configured")
        try:
            tree = self.parser(source)
        except ParseError as e:
            return ExecutionResult(status='error', error=e, error_message=f"ParseError: {e}")
        return await self.run(tree)

    def close(self):
        self.stdlib.files.close_all()
