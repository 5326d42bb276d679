"""
Hydrogen Lexer - Splits Hydrogen source code into a stream of tokens

The lexer works on whitespace-separated fragments rather than characters:
every line is split on whitespace, punctuation and operator symbols are then
split out of each fragment, and what remains is classified.

Token Types:
    Keywords: exit, let
    Punctuation: ; ( ) =
    Operators: + * (multiplication is reserved and never lowered)
    Literals: INTEGER
    Identifiers: any other fragment
"""

from dataclasses import dataclass
from typing import Dict, List

DIGITS = "0123456789"

# Keyword mapping
KEYWORDS: Dict[str, str] = {
    'exit': 'EXIT',
    'let': 'LET',
    ';': 'SEMICOLON',
    '(': 'LPAREN',
    ')': 'RPAREN',
    '=': 'ASSIGN',
    '+': 'PLUS',
    '*': 'STAR',
}

# Symbols split out of fragments (";x;" -> ";", "x", ";"). Anything that may
# occur inside an identifier or a number must stay out of this list.
SPLIT_SYMBOLS = (';', '(', ')', '=', '+', '*')

KEYWORD_TYPES = frozenset(KEYWORDS.values())


class LexError(SyntaxError):
    """Raised when the source cannot be split into tokens."""


class InvalidToken(LexError):
    def __init__(self, fragment: str, line: int = 0):
        super().__init__(f"Invalid token: {fragment!r} at line {line}")
        self.fragment = fragment
        self.line = line


@dataclass(frozen=True)
class Token:
    """Represents a single token in the source code"""
    type: str  # Token type (e.g., 'INTEGER', 'PLUS', 'IDENTIFIER')
    value: str  # The fragment of source text
    line: int = 0  # Line number where the fragment appears

    @property
    def is_keyword(self) -> bool:
        return self.type in KEYWORD_TYPES

    def __repr__(self):
        return f"Token({self.type}, '{self.value}', line={self.line})"


def split_with_symbol(fragments: List[str], symbol: str) -> List[str]:
    """
    Split every fragment at each occurrence of a symbol

    The symbol itself is kept as a fragment of its own. Empty pieces are
    kept too; they are dropped once all symbols have been split out.

    Args:
        fragments: Fragments produced so far
        symbol: The symbol to split on

    Returns:
        The new list of fragments
    """
    result = []
    for fragment in fragments:
        start = 0
        pos = fragment.find(symbol, start)
        while pos != -1:
            result.append(fragment[start:pos])
            result.append(symbol)
            start = pos + len(symbol)
            pos = fragment.find(symbol, start)
        if start < len(fragment):
            result.append(fragment[start:])
    return result


def split_fragments(line: str) -> List[str]:
    """
    Split one line of source into non-empty fragments

    Args:
        line: A single line of Hydrogen source

    Returns:
        The fragments in source order
    """
    fragments = line.split()
    for symbol in SPLIT_SYMBOLS:
        fragments = split_with_symbol(fragments, symbol)
    return [fragment for fragment in fragments if fragment]


def classify(fragment: str, line: int = 0) -> Token:
    """
    Turn a fragment into a token

    Args:
        fragment: Non-empty fragment of source text
        line: Line the fragment came from

    Returns:
        A keyword, INTEGER or IDENTIFIER token

    Raises:
        InvalidToken: If the fragment cannot be classified
    """
    if not fragment:
        raise InvalidToken(fragment, line)
    if fragment in KEYWORDS:
        return Token(KEYWORDS[fragment], fragment, line)
    if all(char in DIGITS for char in fragment):
        return Token('INTEGER', fragment, line)
    return Token('IDENTIFIER', fragment, line)


class Lexer:
    """
    Lexical analyzer for Hydrogen source code

    Misuse of characters (e.g. "x-1") is not rejected here: anything that is
    neither a keyword nor a number becomes an IDENTIFIER and the parser or
    code generator decides whether it is acceptable.
    """

    def __init__(self, source: str):
        """
        Initialize the lexer with source code

        Args:
            source: The Hydrogen source code as a string
        """
        self.source = source

    def tokenize(self) -> List[Token]:
        """
        Tokenize the entire source code

        Returns:
            List of all tokens in the source
        """
        tokens = []
        for line_number, line in enumerate(self.source.splitlines(), start=1):
            for fragment in split_fragments(line):
                tokens.append(classify(fragment, line_number))
        return tokens


def tokenize(source: str) -> List[Token]:
    """
    Convenience function to tokenize source code

    Args:
        source: Hydrogen source code

    Returns:
        List of tokens
    """
    lexer = Lexer(source)
    return lexer.tokenize()
