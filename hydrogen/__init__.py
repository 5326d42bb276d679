"""
Hydrogen Compiler - A Python-based compiler for the Hydrogen language

This compiler translates Hydrogen source code to x86-64 NASM assembly for
Linux. It consists of several modules:
- lexer: Splits Hydrogen source code into tokens
- parser: Builds an Abstract Syntax Tree (AST)
- codegen: Generates stack-machine assembly from the AST
- main: Command-line interface and orchestration

Usage:
    python -m hydrogen.main input.hy -o output
"""

__version__ = "0.1.0"
