"""
IFExpr Parse - Tokenizer and Structural Parser

Turns IFExpr source text into a nested tuple of Values ready for execution.

Architecture:
- Tokenizer: one global regex pass, yielding tokens lazily
- Parser: a single pass over the token iterator with an explicit level stack

Values:
    Decimal   number literal (unsigned surface syntax)
    str       symbol (bare word)
    tuple     block (quoted, unevaluated program or list)

Every level of the tree is returned in reverse of the order it was read.
Programs therefore execute right to left:

    >>> parse_source('sum {1 2 3}')
    ((Decimal('3'), Decimal('2'), Decimal('1')), 'sum')

Reference: engine.py (executes the values produced here)
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Iterator, List, Tuple, Union
import re

from .logging_setup import get_logger


log = get_logger("ifexpr.parse")


Value = Union[Decimal, str, Tuple["Value", ...]]


# ============================================================================
# Token Types
# ============================================================================

class TokenType:
    """Token type constants"""
    WORD = "WORD"
    QUOTE_OPEN = "QUOTE_OPEN"
    QUOTE_CLOSE = "QUOTE_CLOSE"
    WHITESPACE = "WHITESPACE"
    NUMBER = "NUMBER"


@dataclass(frozen=True)
class Token:
    """Token from IFExpr source"""
    start: int
    length: int
    text: str
    type: str


# Alternatives are tried in order; group index maps to the token type.
# Words need at least two characters and unmatched characters are skipped.
_SYMBOL_CHARS = r"a-zA-Z_\*\$#@!%\^&"
TOKEN_RE = re.compile(
    rf"([{_SYMBOL_CHARS}][{_SYMBOL_CHARS}0-9]+)"
    r"|(\{)"
    r"|(\})"
    r"|(\s+)"
    r"|([0-9]+(?:\.[0-9]+)?)"
)

_GROUP_TYPES = {
    1: TokenType.WORD,
    2: TokenType.QUOTE_OPEN,
    3: TokenType.QUOTE_CLOSE,
    4: TokenType.WHITESPACE,
    5: TokenType.NUMBER,
}


# ============================================================================
# Tokenizer
# ============================================================================

def tokenize(source: str) -> Iterator[Token]:
    """
    Tokenize IFExpr source lazily.

    Args:
        source: Program text

    Yields:
        Tokens in source order. Unrecognized characters produce nothing.
    """
    for match in TOKEN_RE.finditer(source):
        text = match.group(0)
        yield Token(
            start=match.start(),
            length=len(text),
            text=text,
            type=_GROUP_TYPES[match.lastindex],
        )


# ============================================================================
# Parser
# ============================================================================

def parse(tokens: Iterable[Token]) -> Tuple[Value, ...]:
    """
    Parse a token stream into a block of Values.

    The stream is consumed exactly once. Nesting is tracked with an explicit
    stack of open levels, so depth is bounded only by memory. Malformed
    nesting never raises: an unclosed '{' ends at end of input and a stray
    '}' ends the program.
    """
    levels: List[List[Value]] = [[]]
    for token in tokens:
        if token.type == TokenType.NUMBER:
            levels[-1].append(Decimal(token.text))
        elif token.type == TokenType.WORD:
            levels[-1].append(token.text)
        elif token.type == TokenType.QUOTE_OPEN:
            levels.append([])
        elif token.type == TokenType.QUOTE_CLOSE:
            if len(levels) == 1:
                log.warning("Unmatched '}' at offset %d ends the program", token.start)
                return tuple(reversed(levels[0]))
            block = tuple(reversed(levels.pop()))
            levels[-1].append(block)
        # whitespace carries nothing

    if len(levels) > 1:
        log.warning("Unclosed '{' at end of input (depth %d)", len(levels) - 1)
        while len(levels) > 1:
            block = tuple(reversed(levels.pop()))
            levels[-1].append(block)
    return tuple(reversed(levels[0]))


def parse_source(source: str) -> Tuple[Value, ...]:
    """Tokenize and parse source in one step"""
    return parse(tokenize(source))


__all__ = [
    'Token',
    'TokenType',
    'TOKEN_RE',
    'Value',
    'tokenize',
    'parse',
    'parse_source',
]
