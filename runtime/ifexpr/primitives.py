"""
IFExpr Primitives - builtin foreign functions for the root environment

    dbg                   print the top of stack
    sum add               fold +, symbols concatenate
    product mul           fold *
    divide div            fold /
    subtract sub          fold -
    let                   bind {name value} pairs in a child scope
    do                    turn a block into a named closure
"""

from decimal import Context, Decimal, MAX_EMAX, MAX_PREC, MIN_EMIN, ROUND_HALF_EVEN
from typing import Callable, Dict

from .engine import (
    External, IFExprDimensionError, IFExprEnv, IFExprLetError,
    IFExprTypeError, StackCell, ValueCell, ffi, render,
)
from .logging_setup import get_logger


log = get_logger("ifexpr.primitives")

# Wide enough that +, - and * never round.
EXACT = Context(prec=MAX_PREC, Emax=MAX_EMAX, Emin=MIN_EMIN)


def _no_strings(x: str, y: str) -> str:
    raise IFExprTypeError("type error: operator does not accept symbols")


def make_simple_arith_fn(
    name: str,
    op_str: Callable[[str, str], str],
    op_num: Callable[[IFExprEnv, Decimal, Decimal], Decimal],
) -> External:
    """
    Build a folding arithmetic primitive.

    The primitive pops one block and folds it left to right. Nested blocks
    are combined elementwise by dispatching ``name`` again, so a user
    override of that name takes part in the recursion.
    """
    def fn(env: IFExprEnv):
        a = env.pop()
        if not isinstance(a, tuple):
            raise IFExprTypeError(f"type error: {name} expects a block, got {render(a)}")
        if not a:
            raise IFExprTypeError(f"type error: {name} of an empty block")

        result = a[0]
        for x in a[1:]:
            if type(x) is not type(result):
                raise IFExprTypeError(f"type error: {render(result)} and {render(x)}")
            if isinstance(x, tuple):
                if len(result) != len(x):
                    raise IFExprDimensionError(
                        f"dim error: {len(result)} and {len(x)} elements"
                    )
                combined = []
                for v, w in zip(result, x):
                    env.call(name, (v, w))
                    combined.append(env.pop())
                result = tuple(combined)
            elif isinstance(x, Decimal):
                result = op_num(env, result, x)
            else:
                result = op_str(result, x)
        env.push(result)

    return ffi(fn)


def _divide(env: IFExprEnv, x: Decimal, y: Decimal) -> Decimal:
    ctx = Context(prec=env.config.division_precision, rounding=ROUND_HALF_EVEN)
    return ctx.divide(x, y)


def dbg(env: IFExprEnv):
    text = render(env.peek())
    log.debug("dbg: %s", text)
    print(text, file=env.out)


def do(env: IFExprEnv):
    block = env.pop()
    if not isinstance(block, tuple):
        raise IFExprTypeError(f"do: expected block, got {render(block)}")

    sym = env.next_closure_name()

    def closure(caller: IFExprEnv):
        caller.execute(block)

    env.set(sym, ffi(closure))
    log.debug("do: registered %s", sym)
    env.push(sym)


def let(env: IFExprEnv):
    child = env.child()
    while True:
        pair = env.pop()
        if isinstance(pair, str):
            child.do_symbol(pair)
            for v in child.stack:
                env.push(v)
            return
        if not isinstance(pair, tuple) or len(pair) != 2:
            raise IFExprLetError(f"let: expected quoted pair, got {render(pair)}")
        value, name = pair
        if not isinstance(name, str):
            raise IFExprLetError(f"let: expected value-symbol pair, got {render(pair)}")
        child.set(name, ValueCell((value,)))


def builtin_registers() -> Dict[str, StackCell]:
    """Fresh set of builtin cells, aliases included"""
    registers: Dict[str, StackCell] = {
        "dbg": ffi(dbg),
        "do": ffi(do),
        "let": ffi(let),
    }
    arith = {
        ("sum", "add"): (lambda x, y: x + y, lambda env, x, y: EXACT.add(x, y)),
        ("product", "mul"): (_no_strings, lambda env, x, y: EXACT.multiply(x, y)),
        ("divide", "div"): (_no_strings, _divide),
        ("subtract", "sub"): (_no_strings, lambda env, x, y: EXACT.subtract(x, y)),
    }
    for names, (op_str, op_num) in arith.items():
        for name in names:
            registers[name] = make_simple_arith_fn(name, op_str, op_num)
    return registers


def install_builtins(env: IFExprEnv) -> IFExprEnv:
    env.set_all(builtin_registers())
    return env


__all__ = [
    'EXACT',
    'make_simple_arith_fn',
    'builtin_registers',
    'install_builtins',
]
