"""
Hydrogen Code Generator - Generates x86-64 NASM assembly from AST
"""
from dataclasses import dataclass
from typing import Dict, List

from .parser import (
    Program,
    LetStmt,
    ExitStmt,
    End,
    BinaryExpr,
    IntLiteral,
    Identifier,
)

SYS_EXIT = 60
SLOT_SIZE = 8


class CodegenError(Exception):
    """Raised when code generation fails."""


class IdentifierInUse(CodegenError):
    def __init__(self, name: str):
        super().__init__(f"Identifier '{name}' is already defined")
        self.name = name


class IdentifierNotFound(CodegenError):
    def __init__(self, name: str):
        super().__init__(f"Identifier '{name}' is not defined")
        self.name = name


@dataclass
class Symbol:
    name: str
    slot: int  # stack slot the initializer was pushed into


class CodeGenerator:
    def __init__(self):
        self.output: List[str] = []
        self.stack_height = 0
        self.slots: List[Symbol] = []
        self.symbols: Dict[str, Symbol] = {}

    # ---------- helpers ----------
    def emit(self, line: str):
        self.output.append(f"    {line}")

    def push(self, operand: str):
        self.emit(f"push {operand}")
        self.stack_height += 1

    def pop(self, reg: str):
        self.emit(f"pop {reg}")
        self.stack_height -= 1

    def check_unused(self, name: str):
        if name in self.symbols:
            raise IdentifierInUse(name)

    def define(self, name: str, slot: int) -> Symbol:
        self.check_unused(name)
        sym = Symbol(name, slot)
        self.slots.append(sym)
        self.symbols[name] = sym
        return sym

    def lookup(self, name: str) -> Symbol:
        sym = self.symbols.get(name)
        if sym is None:
            raise IdentifierNotFound(name)
        return sym

    def slot_offset(self, sym: Symbol) -> int:
        # the slot itself never moves; its distance from rsp grows with every push
        offset = (self.stack_height - sym.slot - 1) * SLOT_SIZE
        if offset < 0:
            raise CodegenError(f"Slot {sym.slot} of '{sym.name}' is not on the stack yet")
        return offset

    # ---------- entry ----------
    def generate(self, program: Program) -> str:
        self.output = ["global _start", "_start:"]
        self.stack_height = 0
        self.slots = []
        self.symbols = {}

        for stmt in program.statements:
            self.generate_statement(stmt)

        return "\n".join(self.output) + "\n"

    # ---------- statements ----------
    def generate_statement(self, stmt):
        if isinstance(stmt, LetStmt):
            # the initializer cannot see the name it defines
            self.check_unused(stmt.name)
            slot = self.stack_height
            self.generate_expression(stmt.value)
            self.define(stmt.name, slot)
        elif isinstance(stmt, ExitStmt):
            self.generate_expression(stmt.value)
            self.emit(f"mov rax, {SYS_EXIT}")
            self.pop("rdi")
            self.emit("syscall")
        elif isinstance(stmt, End):
            self.emit(f"mov rax, {SYS_EXIT}")
            self.emit("mov rdi, 0")
            self.emit("syscall")
        else:
            raise CodegenError(f"Unsupported statement type: {type(stmt).__name__}")

    # ---------- expressions ----------
    def generate_expression(self, expr):
        if isinstance(expr, IntLiteral):
            self.emit(f"mov rax, {expr.value}")
            self.push("rax")
            return

        if isinstance(expr, Identifier):
            sym = self.lookup(expr.name)
            self.push(f"QWORD [rsp + {self.slot_offset(sym)}]")
            return

        if isinstance(expr, BinaryExpr):
            self.generate_expression(expr.left)
            self.generate_expression(expr.right)
            self.pop("rax")
            self.pop("rbx")

            if expr.operator == "ADD":
                self.emit("add rax, rbx")
            else:
                raise CodegenError(f"Unsupported binary operator '{expr.operator}'")
            self.push("rax")
            return

        raise CodegenError(f"Unsupported expression type: {type(expr).__name__}")


def generate_assembly(program: Program) -> str:
    generator = CodeGenerator()
    return generator.generate(program)
