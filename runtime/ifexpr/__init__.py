"""
IFExpr - a small stack-based expression language

**Pipeline:**
- parse: source text -> tokens -> nested tuple of Values
- engine: register-based stack machine with chained environments
- primitives: dbg, arithmetic folds, let, do
- runtime: root environment seeded with primitives, source-level API

Programs read right to left; every nesting level is reversed by the parser
so the last word written runs first:

    >>> from ifexpr import execute_ifexpr
    >>> execute_ifexpr('sum {1 2 3}')
    (Decimal('6'),)
"""

__version__ = '0.1.0'

from .config import IFExprConfig, load_config
from .engine import (
    IFExprEnv, Executable, External, ValueCell, StackCell, ffi, render,
    IFExprError, IFExprUndefinedSymbol, IFExprExternalError, IFExprTypeError,
    IFExprDimensionError, IFExprLetError, IFExprStackUnderflow, IFExprRecursionError,
)
from .logging_setup import configure_logging, get_logger
from .parse import Token, TokenType, Value, tokenize, parse, parse_source
from .primitives import builtin_registers, install_builtins, make_simple_arith_fn
from .runtime import IFExprRuntime, execute_ifexpr

__all__ = [
    # Parsing
    'Token', 'TokenType', 'Value', 'tokenize', 'parse', 'parse_source',
    # Engine
    'IFExprEnv', 'Executable', 'External', 'ValueCell', 'StackCell', 'ffi', 'render',
    # Errors
    'IFExprError', 'IFExprUndefinedSymbol', 'IFExprExternalError', 'IFExprTypeError',
    'IFExprDimensionError', 'IFExprLetError', 'IFExprStackUnderflow', 'IFExprRecursionError',
    # Primitives
    'builtin_registers', 'install_builtins', 'make_simple_arith_fn',
    # Runtime
    'IFExprRuntime', 'execute_ifexpr',
    # Ambient
    'IFExprConfig', 'load_config', 'configure_logging', 'get_logger',
]
