"""
IFExpr Engine - Register-based Stack Machine

Executes the Values produced by parse.py against an operand stack and a
chain of register tables.

Architecture:
- Environment: private stack + private registers + optional parent
- Dispatch: bare words are looked up child-to-root and then executed,
  called (foreign function) or pushed, depending on the cell type
- Root state: the closure counter, call depth, config and diagnostic
  stream live on the root environment and are shared by its children

Cells:
    Executable(program)   run the stored block when invoked
    External(fn)          call fn(env); failures become IFExprExternalError
    ValueCell(value)      push the stored sequence when invoked
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import IO, Callable, Dict, Iterable, List, Optional, Tuple, Union
import sys

from .config import IFExprConfig
from .logging_setup import get_logger
from .parse import Value


log = get_logger("ifexpr.engine")


# ============================================================================
# Error Definitions
# ============================================================================

E_UNDEFINED_SYMBOL = "E_UNDEFINED_SYMBOL"
E_EXTERNAL_ERROR = "E_EXTERNAL_ERROR"
E_TYPE_ERROR = "E_TYPE_ERROR"
E_DIM_ERROR = "E_DIM_ERROR"
E_LET_ERROR = "E_LET_ERROR"
E_STACK_UNDERFLOW = "E_STACK_UNDERFLOW"
E_RECURSION_LIMIT = "E_RECURSION_LIMIT"


class IFExprError(Exception):
    """Base exception for IFExpr runtime errors"""
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class IFExprUndefinedSymbol(IFExprError):
    """Symbol missing from every table in the parent chain"""
    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(E_UNDEFINED_SYMBOL, f"undefined symbol: {symbol}")


class IFExprExternalError(IFExprError):
    """Failure inside a foreign function; the original is kept"""
    def __init__(self, exception: BaseException):
        self.exception = exception
        super().__init__(E_EXTERNAL_ERROR, f"error in call to external function: {exception}")


class IFExprTypeError(IFExprError):
    def __init__(self, message: str = "type error"):
        super().__init__(E_TYPE_ERROR, message)


class IFExprDimensionError(IFExprError):
    def __init__(self, message: str = "dim error"):
        super().__init__(E_DIM_ERROR, message)


class IFExprLetError(IFExprError):
    def __init__(self, message: str):
        super().__init__(E_LET_ERROR, message)


class IFExprStackUnderflow(IFExprError):
    def __init__(self):
        super().__init__(E_STACK_UNDERFLOW, "stack underflow")


class IFExprRecursionError(IFExprError):
    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(E_RECURSION_LIMIT, f"maximum call depth {limit} exceeded")


# ============================================================================
# Stack Cells
# ============================================================================

@dataclass(frozen=True)
class Executable:
    """Stored program, run in the invoking environment"""
    program: Tuple[Value, ...]


@dataclass(frozen=True)
class External:
    """Foreign function operating on the invoking environment"""
    fn: Callable[["IFExprEnv"], None]


@dataclass(frozen=True)
class ValueCell:
    """Pre-computed sequence pushed verbatim"""
    value: Tuple[Value, ...]


StackCell = Union[Executable, External, ValueCell]


def ffi(fn: Callable[["IFExprEnv"], None]) -> External:
    """Wrap a host function as a register cell"""
    return External(fn)


# ============================================================================
# Rendering
# ============================================================================

_CLOSE = object()
_SEP = object()


def render(value: Optional[Value]) -> str:
    """Render a value as text: numbers and symbols as-is, blocks bracketed"""
    if value is None:
        return "<empty>"
    pieces: List[str] = []
    pending: List[object] = [value]
    # explicit work list; nesting may exceed the interpreter recursion limit
    while pending:
        item = pending.pop()
        if item is _CLOSE:
            pieces.append("]")
        elif item is _SEP:
            pieces.append(", ")
        elif isinstance(item, tuple):
            pieces.append("[")
            pending.append(_CLOSE)
            for i, v in enumerate(reversed(item)):
                if i:
                    pending.append(_SEP)
                pending.append(v)
        else:
            pieces.append(str(item))
    return "".join(pieces)


# ============================================================================
# Environment
# ============================================================================

class IFExprEnv:
    """Operand stack and register table, optionally chained to a parent"""

    def __init__(
        self,
        parent: Optional["IFExprEnv"] = None,
        config: Optional[IFExprConfig] = None,
        out: Optional[IO[str]] = None,
    ):
        self._stack: List[Value] = []
        self._registers: Dict[str, StackCell] = {}
        self._parent = parent

        if parent is None:
            self._root = self
            self.config = config or IFExprConfig()
            self.out = out if out is not None else sys.stderr
            self._closure_counter = 0
            self._depth = 0
        else:
            self._root = parent._root
            self.config = self._root.config
            self.out = self._root.out

    # ── Structure ──────────────────────────────────────────────────────────

    @property
    def parent(self) -> Optional["IFExprEnv"]:
        return self._parent

    @property
    def root(self) -> "IFExprEnv":
        return self._root

    def child(self) -> "IFExprEnv":
        """Create a nested scope whose lookups fall back to this one"""
        return IFExprEnv(self)

    def next_closure_name(self) -> str:
        """Mint a unique register name from the root-owned counter"""
        root = self._root
        name = f"__do{root._closure_counter}"
        root._closure_counter += 1
        return name

    # ── Registers ──────────────────────────────────────────────────────────

    def set(self, symbol: str, cell: StackCell):
        """Bind symbol in this environment only"""
        self._registers[symbol] = cell

    def set_all(self, registers: Dict[str, StackCell]):
        self._registers.update(registers)

    def has_local(self, symbol: str) -> bool:
        return symbol in self._registers

    def get_symbol(self, symbol: str) -> StackCell:
        """Resolve symbol walking from this environment to the root"""
        env: Optional[IFExprEnv] = self
        while env is not None:
            cell = env._registers.get(symbol)
            if cell is not None:
                return cell
            env = env._parent
        raise IFExprUndefinedSymbol(symbol)

    # ── Stack ──────────────────────────────────────────────────────────────

    def push(self, value: Value):
        self._stack.append(value)

    def pop(self) -> Value:
        if not self._stack:
            raise IFExprStackUnderflow()
        return self._stack.pop()

    def peek(self) -> Optional[Value]:
        """Top of stack without popping, None when empty"""
        return self._stack[-1] if self._stack else None

    def get(self, index: int) -> Value:
        """Stack element by position, 0 being the bottom"""
        return self._stack[index]

    @property
    def stack(self) -> Tuple[Value, ...]:
        """Snapshot of the operand stack, bottom first"""
        return tuple(self._stack)

    def clear(self):
        self._stack.clear()

    # ── Execution ──────────────────────────────────────────────────────────

    def execute(self, program: Iterable[Value]):
        """Run each value in order"""
        for value in program:
            self.execution_step(value)

    def execution_step(self, value: Value):
        if isinstance(value, Decimal):
            self.push((value,))
        elif isinstance(value, tuple):
            self.push(value)
        elif isinstance(value, str):
            self.do_symbol(value)
        else:
            raise IFExprTypeError(f"cannot execute {type(value).__name__}")

    def call(self, fn_name: str, *args: Value):
        """Push args then dispatch fn_name"""
        for arg in args:
            self.push(arg)
        self.do_symbol(fn_name)

    def do_symbol(self, symbol: str):
        cell = self.get_symbol(symbol)

        root = self._root
        if root._depth >= root.config.max_depth:
            raise IFExprRecursionError(root.config.max_depth)
        root._depth += 1
        try:
            if isinstance(cell, Executable):
                log.debug("exec %s", symbol)
                self.execute(cell.program)
            elif isinstance(cell, External):
                log.debug("call %s", symbol)
                try:
                    cell.fn(self)
                except (IFExprExternalError, IFExprRecursionError, RecursionError):
                    raise
                except Exception as e:
                    raise IFExprExternalError(e) from e
            elif isinstance(cell, ValueCell):
                self.push(cell.value)
            else:
                raise IFExprTypeError(f"bad register cell for {symbol}: {cell!r}")
        except RecursionError as e:
            # host stack ran out before max_depth was reached
            raise IFExprRecursionError(root.config.max_depth) from e
        finally:
            root._depth -= 1


__all__ = [
    'IFExprEnv',
    'IFExprError',
    'IFExprUndefinedSymbol',
    'IFExprExternalError',
    'IFExprTypeError',
    'IFExprDimensionError',
    'IFExprLetError',
    'IFExprStackUnderflow',
    'IFExprRecursionError',
    'Executable',
    'External',
    'ValueCell',
    'StackCell',
    'ffi',
    'render',
]
