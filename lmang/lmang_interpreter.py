"""
The core lmang interpreter: the Evaluator that walks expression trees.
"""
import os
import sys
from typing import Any, Dict

from lmang.lmang_ast import (
    Operation, Literal, BindingUpdate, BindingUsage, Block, Class, If, Index,
    Break as BreakExpr, Loop, Func, Call, RefExpr, Try, Named as NamedExpr,
    Op, Mode,
)
from lmang.lmang_datatypes import (
    Break, Ref, Weak, Named, Callee, LmangObject, UserFunction, ClassObject,
    clone_value, deref, variant_name,
)
from lmang.lmang_environment import Environment
from lmang.lmang_errors import CastError, Dangling, LmangRuntimeError
from lmang import lmang_operations as ops


_OPERATIONS = {
    Op.ADD: ops.add,
    Op.SUB: ops.sub,
    Op.MUL: ops.mul,
    Op.DIV: ops.div,
    Op.GT: ops.try_gt,
    Op.GE: ops.try_ge,
    Op.LT: ops.try_lt,
    Op.LE: ops.try_le,
    Op.EQ: ops.equals,
    Op.FUZZY_EQ: ops.fuzzy_equals,
}


class Evaluator:
    """Evaluates lmang expression trees against an Environment.

    Every node evaluation goes through `eval`, which checks the
    environment's deadline before doing any work, so a runaway program
    times out no matter which construct it is stuck in.
    """

    def __init__(self, debug: bool = False):
        self.debug = debug or bool(os.environ.get("LMANG_DEBUG"))

    def _dbg(self, *parts):
        if self.debug:
            print("[DBG]", *parts, file=sys.stderr)

    async def eval(self, node: Any, env: Environment) -> Any:
        """Public entry point for evaluation. Upgrades a bare Weak result to its Ref."""
        env.check_deadline()
        result = await self._eval(node, env)
        if isinstance(result, Weak):
            cell = result.upgrade()
            if cell is None:
                raise Dangling()
            return cell
        return result

    async def _eval(self, node: Any, env: Environment) -> Any:
        match node:
            case Literal(value=value):
                return clone_value(value)

            case BindingUsage(name=name):
                return env.get_binding(name)

            case Operation(lhs=lhs, rhs=rhs, op=op):
                left = await self.eval(lhs, env)
                right = await self.eval(rhs, env)
                return _OPERATIONS[op](left, right)

            case BindingUpdate():
                return await self._eval_binding_update(node, env)

            case Block():
                return await self._eval_block(node, env)

            case If():
                return await self._eval_if(node, env)

            case Loop(body=body):
                while True:
                    result = await self.eval(body, env)
                    if isinstance(result, Break):
                        return result.value

            case BreakExpr(body=body):
                return Break(await self.eval(body, env))

            case Func(params=params, body=body):
                return UserFunction(params, body, self)

            case Call():
                return await self._eval_call(node, env)

            case Class(body=body):
                return await self._eval_class(body, env)

            case Index(root=root, names=names):
                val = await self.eval(root, env)
                for name in names:
                    obj = deref(val)
                    if not isinstance(obj, LmangObject):
                        raise CastError(variant_name(obj), "Object")
                    val = obj.member(name)
                return val

            case RefExpr(name=name):
                return env.take_ref(name)

            case Try():
                return await self._eval_try(node, env)

            case NamedExpr(name=name, expr=expr):
                return Named(name, await self.eval(expr, env))

            case _:
                raise TypeError(f"Evaluator cannot handle node {node!r}")

    async def _eval_block(self, block: Block, env: Environment) -> Any:
        if not block.exprs:
            return None
        env.push()
        try:
            last = len(block.exprs) - 1
            for i, expr in enumerate(block.exprs):
                result = await self.eval(expr, env)
                if i < last and isinstance(result, Break):
                    return result
            return result
        finally:
            env.pop()

    async def _eval_binding_update(self, node: BindingUpdate, env: Environment) -> Any:
        value = await self.eval(node.value, env)
        # A break inside the right-hand side escapes without binding anything.
        if isinstance(value, Break):
            return value
        match node.mode:
            case Mode.CREATE_LOCAL:
                env.store_binding(node.name, value)
            case Mode.SET:
                env.set_binding(node.name, value)
            case Mode.CREATE_GLOBAL:
                env.store_global(node.name, value)
        return None

    async def _condition(self, cond: Any, env: Environment) -> bool:
        val = deref(await self.eval(cond, env))
        if not isinstance(val, bool):
            raise CastError(variant_name(val), "Bool")
        return val

    async def _eval_if(self, node: If, env: Environment) -> Any:
        if await self._condition(node.cond, env):
            return await self.eval(node.body, env)
        for cond, body in node.elifs:
            if await self._condition(cond, env):
                return await self.eval(body, env)
        if node.else_body is not None:
            return await self.eval(node.else_body, env)
        return None

    async def _eval_call(self, node: Call, env: Environment) -> Any:
        callee = deref(await self.eval(node.callee, env))
        if not isinstance(callee, Callee):
            raise CastError(variant_name(callee), "Func")
        args = []
        for arg in node.args:
            args.append(await self.eval(arg, env))
        self._dbg("Evaluator.call", callee.name, "argc", len(args))
        return await callee.call(args, env)

    async def _eval_class(self, body: Block, env: Environment) -> ClassObject:
        env.take_last_popped()
        await self.eval(body, env)
        harvested = env.take_last_popped() or {}

        members: Dict[str, Ref] = {key: Ref(val) for key, val in harvested.items()}
        for key, cell in members.items():
            method = cell.value
            if isinstance(method, UserFunction):
                captured: Dict[str, Any] = dict(members)
                # The method sees itself only weakly, so the instance's
                # cells and its own closure do not keep each other alive.
                captured[key] = Weak(cell)
                cell.value = method.with_captures(captured)
        self._dbg("Evaluator.class", sorted(members))
        return ClassObject(members)

    async def _eval_try(self, node: Try, env: Environment) -> Any:
        # Handlers go through `eval` too, so a Timeout raised by an expired
        # deadline fires again as soon as its handler starts.
        try:
            return await self.eval(node.body, env)
        except LmangRuntimeError as err:
            self._dbg("Evaluator.try caught", err.kind)
            for kind, handler in node.excepts:
                if kind == err.kind:
                    return await self.eval(handler, env)
            if node.catch_all is not None:
                return await self.eval(node.catch_all, env)
            raise
