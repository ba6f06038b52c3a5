"""
IFExpr Runtime - source-level interface over a seeded root environment

    >>> IFExprRuntime().execute('sum {1 2 3}')
    (Decimal('6'),)
"""

from typing import IO, Optional, Tuple

from .config import IFExprConfig
from .engine import Executable, IFExprEnv, IFExprTypeError, StackCell, ValueCell
from .logging_setup import get_logger
from .parse import Value, parse_source
from .primitives import install_builtins


log = get_logger("ifexpr.runtime")


class IFExprRuntime:
    """Main IFExpr runtime interface"""

    def __init__(self, config: Optional[IFExprConfig] = None, out: Optional[IO[str]] = None):
        """
        Initialize runtime

        Args:
            config: Limits for this runtime (default: IFExprConfig())
            out: Stream receiving dbg output (default: sys.stderr)
        """
        self.config = config or IFExprConfig()
        self._out = out
        self.env = self._new_root()

    def _new_root(self) -> IFExprEnv:
        return install_builtins(IFExprEnv(config=self.config, out=self._out))

    def execute(self, source: str) -> Tuple[Value, ...]:
        """Execute IFExpr source and return the resulting stack"""
        program = parse_source(source)
        log.debug("executing %d top-level values", len(program))
        self.env.execute(program)
        return self.env.stack

    def define(self, name: str, source: str):
        """Register source as a named program"""
        self.env.set(name, Executable(parse_source(source)))

    def register(self, name: str, cell: StackCell):
        self.env.set(name, cell)

    def set_var(self, name: str, value: Value):
        """Bind name to a value pushed whenever it is invoked"""
        self.env.set(name, ValueCell((value,)))

    def get_var(self, name: str) -> Value:
        """Return the value a ValueCell binding pushes"""
        cell = self.env.get_symbol(name)
        if not isinstance(cell, ValueCell):
            raise IFExprTypeError(f"{name} is not a value binding")
        return cell.value[0] if len(cell.value) == 1 else cell.value

    @property
    def stack(self) -> Tuple[Value, ...]:
        return self.env.stack

    def pop(self) -> Value:
        return self.env.pop()

    def reset(self):
        """Discard stack and user registers (keeping builtins)"""
        self.env = self._new_root()


def execute_ifexpr(source: str, config: Optional[IFExprConfig] = None,
                   out: Optional[IO[str]] = None) -> Tuple[Value, ...]:
    """
    Execute IFExpr source in a fresh runtime (convenience function)

    Args:
        source: IFExpr source code

    Returns:
        Final operand stack, bottom first

    Example:
        >>> execute_ifexpr('product {2 3 4}')
        (Decimal('24'),)
    """
    return IFExprRuntime(config=config, out=out).execute(source)


__all__ = [
    'IFExprRuntime',
    'execute_ifexpr',
]
