"""
Hydrogen Parser - Builds an Abstract Syntax Tree (AST) from token stream

This module parses tokens from the lexer and constructs an AST that represents
the program structure. The AST is then used by the code generator to produce
assembly code.

Grammar:
    Program    := Statement* End
    Statement  := 'exit' '(' Expr ')' ';' | 'let' Identifier '=' Expr ';'
    Expr       := Term Operator Expr | Term
    Term       := IntLiteral | Identifier

AST Node Types:
    - Program: Root node containing all statements
    - LetStmt: Variable binding (let name = value;)
    - ExitStmt: Process exit (exit(value);)
    - End: Sentinel closing every statement list
    - BinaryExpr: Binary expressions (a + b), right-associative
    - IntLiteral: Integer literals
    - Identifier: Variable references
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .lexer import Token


class ParseError(SyntaxError):
    """Raised when the token stream does not match the grammar."""


class ExpectedToken(ParseError):
    def __init__(self, expected: str, found: Optional[Token]):
        if found is None:
            message = f"Expected {expected}, got EOF"
        else:
            message = f"Expected {expected}, got {found.type} '{found.value}' at line {found.line}"
        super().__init__(message)
        self.expected = expected
        self.found = found


class UnknownKeyword(ParseError):
    def __init__(self, token: Token):
        super().__init__(f"Unexpected keyword '{token.value}' at line {token.line}")
        self.token = token


class UnknownToken(ParseError):
    def __init__(self, token: Token):
        super().__init__(f"Unexpected token {token.type} '{token.value}' at line {token.line}")
        self.token = token


class UnsupportedOperator(ParseError):
    def __init__(self, token: Token):
        super().__init__(f"Operator '{token.value}' is not supported yet (line {token.line})")
        self.token = token


@dataclass
class ASTNode:
    """Base class for all AST nodes"""
    line: int = 0


@dataclass
class Program(ASTNode):
    """Root node containing all program statements"""
    statements: List[ASTNode] = field(default_factory=list)


@dataclass
class LetStmt(ASTNode):
    """Variable binding: let name = value;"""
    name: str = ""
    value: ASTNode = None


@dataclass
class ExitStmt(ASTNode):
    """Process exit: exit(value);"""
    value: ASTNode = None


@dataclass
class End(ASTNode):
    """Produced once the tokens run out; always the last statement"""


@dataclass
class BinaryExpr(ASTNode):
    """Binary expression: left op right"""
    left: ASTNode = None
    operator: str = ""  # 'ADD'
    right: ASTNode = None
    precedence: int = 0


@dataclass
class IntLiteral(ASTNode):
    """Integer literal, kept as its source text"""
    value: str = ""


@dataclass
class Identifier(ASTNode):
    """Variable reference"""
    name: str = ""


OPERATORS = ('PLUS', 'STAR')
TERMINATORS = ('SEMICOLON', 'ASSIGN', 'LPAREN', 'RPAREN')

# Operator token -> (node operator, precedence). Operators without an entry
# are recognized but cannot be lowered yet.
BINARY_OPERATORS = {
    'PLUS': ('ADD', 1),
}


class Parser:
    """
    Parser for Hydrogen source code

    Converts a stream of tokens into an AST using recursive descent. The
    cursor only moves forward; choosing between a binary expression and a
    bare term needs a single token of lookahead.
    """

    def __init__(self, tokens: List[Token]):
        """
        Initialize the parser with tokens

        Args:
            tokens: List of tokens from the lexer
        """
        self.tokens = tokens
        self.position = 0
        self.current_token = tokens[0] if tokens else None

    def peek(self, offset: int = 0) -> Optional[Token]:
        """Look ahead at token without consuming it"""
        pos = self.position + offset
        return self.tokens[pos] if pos < len(self.tokens) else None

    def advance(self):
        """Move to the next token"""
        self.position += 1
        if self.position < len(self.tokens):
            self.current_token = self.tokens[self.position]
        else:
            self.current_token = None

    def consume(self, expected_type: str, description: Optional[str] = None) -> Token:
        """
        Consume a token of expected type

        Args:
            expected_type: Expected token type
            description: How the token is named in the error message

        Returns:
            The consumed token

        Raises:
            ExpectedToken: If current token doesn't match expected type
        """
        if self.current_token is None or self.current_token.type != expected_type:
            raise ExpectedToken(description or expected_type, self.current_token)

        token = self.current_token
        self.advance()
        return token

    def parse(self) -> Program:
        """Parse the entire program"""
        program = Program(line=self.current_token.line if self.current_token else 0)

        while True:
            stmt = self.parse_statement()
            program.statements.append(stmt)
            if isinstance(stmt, End):
                break

        return program

    def parse_statement(self) -> ASTNode:
        """Parse a single statement"""
        token = self.current_token
        if token is None:
            last = self.tokens[-1].line if self.tokens else 0
            return End(line=last)

        if token.type == 'EXIT':
            return self.parse_exit()
        if token.type == 'LET':
            return self.parse_let()

        if token.is_keyword:
            raise UnknownKeyword(token)
        raise UnknownToken(token)

    def parse_exit(self) -> ExitStmt:
        """Parse exit statement: exit(expr);"""
        exit_token = self.consume('EXIT')
        self.consume('LPAREN', "'('")
        value = self.parse_expression()
        self.consume('RPAREN', "')'")
        self.consume('SEMICOLON', "';'")

        return ExitStmt(value=value, line=exit_token.line)

    def parse_let(self) -> LetStmt:
        """Parse let statement: let name = expr;"""
        let_token = self.consume('LET')
        name = self.consume('IDENTIFIER', "identifier").value
        self.consume('ASSIGN', "'='")
        value = self.parse_expression()
        self.consume('SEMICOLON', "';'")

        return LetStmt(name=name, value=value, line=let_token.line)

    def parse_expression(self) -> ASTNode:
        """
        Parse an expression

        A term followed by an operator starts a binary expression whose right
        side is parsed recursively, so chains associate to the right.
        """
        left = self.parse_term()

        following = self.peek()
        if following is None or following.type in TERMINATORS or not following.is_keyword:
            return left

        if following.type in OPERATORS:
            self.advance()
            right = self.parse_expression()
            return self.build_binary(following, left, right)

        raise UnknownKeyword(following)

    def build_binary(self, op_token: Token, left: ASTNode, right: ASTNode) -> BinaryExpr:
        if op_token.type not in BINARY_OPERATORS:
            raise UnsupportedOperator(op_token)
        operator, precedence = BINARY_OPERATORS[op_token.type]
        return BinaryExpr(left=left, operator=operator, right=right,
                          precedence=precedence, line=left.line)

    def parse_term(self) -> ASTNode:
        """Parse an integer literal or identifier"""
        token = self.current_token

        if token is not None and token.type == 'INTEGER':
            self.advance()
            return IntLiteral(value=token.value, line=token.line)

        if token is not None and token.type == 'IDENTIFIER':
            self.advance()
            return Identifier(name=token.value, line=token.line)

        raise ExpectedToken("expression", token)


def parse(tokens: List[Token]) -> Program:
    """
    Convenience function to parse tokens into an AST

    Args:
        tokens: List of tokens from the lexer

    Returns:
        AST Program node
    """
    parser = Parser(tokens)
    return parser.parse()
