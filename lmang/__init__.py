from .lmang_runtime import ScriptRunner, ExecutionResult
from .lmang_interpreter import Evaluator
from .lmang_environment import Environment
from .lmang_config import RunnerConfig
from .lmang_printer import Printer
from .lmang_system import System, NativeSystem, BufferedSystem
from .lmang_errors import LmangError, LmangRuntimeError, ParseError
