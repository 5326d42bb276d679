#!/usr/bin/env python3

"""
Hydrogen Compiler - Command Line Interface

This module provides the command-line interface for the Hydrogen compiler.
It handles:
- Command-line argument parsing
- File I/O
- Compilation pipeline orchestration
- Error reporting
- Handing the assembly to nasm/ld or Keystone

Usage:
    hydro program.hy                # Compile to ./program
    hydro program.hy -S             # Generate program.asm only
    python -m hydrogen.main program.hy -o out
"""

import sys
import os
import subprocess
import argparse
import shutil
from pathlib import Path
from typing import Optional, Union

from .lexer import tokenize, LexError
from .parser import parse, ParseError
from .codegen import generate_assembly, CodegenError

ASM_SUFFIX = ".asm"


class CompileError(Exception):
    """Raised when any stage fails; the stage error is kept as __cause__."""

    def __str__(self):
        return f"CompileError: {super().__str__()}"


def compile_source(source_code: str, verbose: bool = False) -> str:
    """
    Run the whole pipeline over source text

    Args:
        source_code: Hydrogen source code as string
        verbose: If True, print a progress line per stage

    Returns:
        The generated assembly text

    Raises:
        CompileError: If lexing, parsing or code generation fails
    """
    try:
        if verbose:
            print("Step 1: Tokenizing...")
        tokens = tokenize(source_code)
        if verbose:
            print(f"  Generated {len(tokens)} tokens")
            print("Step 2: Parsing...")
        ast = parse(tokens)
        if verbose:
            print(f"  AST generated successfully ({len(ast.statements)} statements)")
            print("Step 3: Generating assembly...")
        return generate_assembly(ast)
    except (LexError, ParseError, CodegenError) as e:
        raise CompileError(str(e)) from e


def default_output_path(source_path: Union[str, Path]) -> Path:
    stem = Path(source_path).stem or Path.cwd().name
    return Path(stem).with_suffix(ASM_SUFFIX)


def compile_file(source_path: Union[str, Path], output_file: Union[str, Path, None] = None,
                 verbose: bool = False) -> Path:
    """
    Compile a Hydrogen source file to an assembly file

    Args:
        source_path: Path of the .hy file
        output_file: Where to write the assembly; defaults to <stem>.asm in
            the current directory
        verbose: If True, print a progress line per stage

    Returns:
        Path of the written assembly file

    Raises:
        CompileError: If the file cannot be read or written, or compilation fails
    """
    try:
        source_code = Path(source_path).read_text()
    except OSError as e:
        raise CompileError(str(e)) from e

    assembly = compile_source(source_code, verbose)

    out_path = Path(output_file) if output_file else default_output_path(source_path)
    try:
        with open(out_path, 'w') as f:
            f.write(assembly)
    except OSError as e:
        raise CompileError(str(e)) from e
    return out_path


def assemble_with_keystone(assembly: str) -> bytes:
    """Assemble NASM x86_64 assembly to machine code using Keystone."""
    try:
        from keystone import Ks, KS_ARCH_X86, KS_MODE_64, KS_OPT_SYNTAX_NASM
    except ImportError:
        raise ImportError("keystone-engine not installed; install with 'pip install keystone-engine'")

    # Keystone produces a flat blob; linker directives mean nothing to it
    body = "\n".join(
        line for line in assembly.splitlines()
        if not line.strip().startswith("global ")
    )
    ks = Ks(KS_ARCH_X86, KS_MODE_64)
    ks.syntax = KS_OPT_SYNTAX_NASM
    encoding, _ = ks.asm(body)
    return bytes(encoding)


def run_toolchain(asm_file: Union[str, Path], executable_file: Union[str, Path]) -> bool:
    """Assemble with nasm and link with ld into a static executable."""
    nasm = shutil.which('nasm')
    ld = shutil.which('ld')
    if not nasm or not ld:
        print("  Error: nasm and ld are required. Please install nasm and binutils.")
        return False

    object_file = str(Path(executable_file).with_suffix('.o'))
    result = subprocess.run([nasm, '-felf64', str(asm_file), '-o', object_file], capture_output=True, text=True)
    if result.returncode != 0:
        print(f"  Error: {result.stderr}")
        return False

    result = subprocess.run([ld, object_file, '-o', str(executable_file)], capture_output=True, text=True)
    if result.returncode != 0:
        print(f"  Error: {result.stderr}")
        return False

    os.remove(object_file)
    print(f"  Executable written to {executable_file}")
    return True


def compile_hydrogen(source_path: str, output_file: Optional[str] = None, generate_assembly_only: bool = False,
                     use_keystone: bool = False) -> bool:
    """
    Compile a Hydrogen source file to assembly, executable or flat binary.

    Args:
        source_path: Path of the source file
        output_file: Output file path; for executables the assembly goes to
            <output_file>.asm next to it
        generate_assembly_only: If True, stop after writing assembly
        use_keystone: If True, also assemble to a flat .bin using Keystone

    Returns:
        True if compilation succeeded, False otherwise
    """
    if output_file is None:
        output_file = str(default_output_path(source_path))
        if not generate_assembly_only:
            output_file = os.path.splitext(output_file)[0]

    if generate_assembly_only:
        asm_file = output_file
        executable_file = None
    else:
        asm_file = output_file + ASM_SUFFIX
        executable_file = output_file

    try:
        written = compile_file(source_path, asm_file, verbose=True)
        print(f"  Assembly written to {written}")
    except CompileError as e:
        cause = e.__cause__
        if isinstance(cause, CodegenError):
            print(f"Codegen Error: {cause}")
        elif isinstance(cause, SyntaxError):
            print(f"Syntax Error: {cause}")
        else:
            print(f"File Error: {cause}")
        return False

    if use_keystone:
        try:
            machine_code = assemble_with_keystone(written.read_text())
            bin_file = os.path.splitext(output_file)[0] + ".bin"
            with open(bin_file, 'wb') as bf:
                bf.write(machine_code)
            print(f"  Machine code written to {bin_file} (flat binary)")
        except Exception as ke:
            print(f"  Keystone assembly failed: {ke}")
            return False

    if generate_assembly_only:
        return True

    print("Step 4: Assembling and linking...")
    try:
        ok = run_toolchain(asm_file, executable_file)
    except OSError as e:
        print(f"  Error during assembly/linking: {e}")
        return False
    if ok:
        os.remove(asm_file)
    return ok


def dump(source_path: str, dump_tokens: bool, dump_ast: bool) -> bool:
    try:
        tokens = tokenize(Path(source_path).read_text())
        if dump_tokens:
            print("TOKENS:")
            for token in tokens:
                print(f"  {token.line}:\t{token}")
        if dump_ast:
            print("AST:")
            for stmt in parse(tokens).statements:
                print(f"  {stmt}")
    except (OSError, SyntaxError) as e:
        print(f"Error: {e}")
        return False
    return True


def main(argv=None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description="Hydrogen Compiler - Compile Hydrogen source code to x86-64 NASM assembly",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  hydro program.hy                 # Compile to ./program (needs nasm and ld)
  hydro program.hy -o myapp        # Compile to myapp
  hydro program.hy -S              # Generate program.asm only
  hydro program.hy -S -o out.asm   # Generate out.asm
        """
    )

    parser.add_argument('-c', '--compile', dest='input', help='Input Hydrogen source file to compile')
    parser.add_argument('-o', '--output', help='Output file name')
    parser.add_argument('-S', '--assembly', action='store_true',
                        help='Generate assembly only (don\'t assemble/link)')
    parser.add_argument('-k', '--keystone', action='store_true',
                        help='Also assemble with Keystone and emit a flat .bin')
    parser.add_argument('--dump-tokens', action='store_true', help='Print the token stream and stop')
    parser.add_argument('--dump-ast', action='store_true', help='Print the parsed program and stop')

    # Also support direct file argument for convenience
    parser.add_argument('input_file', nargs='?', help='Input Hydrogen source file (alternative to -c)')

    args = parser.parse_args(argv)

    input_file = args.input or args.input_file

    if not input_file:
        print("Error: No input file specified. Use -c <file> or provide file as argument")
        sys.exit(1)

    if not os.path.exists(input_file):
        print(f"Error: Input file '{input_file}' not found")
        sys.exit(1)

    if args.dump_tokens or args.dump_ast:
        sys.exit(0 if dump(input_file, args.dump_tokens, args.dump_ast) else 1)

    print(f"Compiling {input_file}...")
    print("-" * 50)

    success = compile_hydrogen(input_file, args.output, args.assembly, args.keystone)

    print("-" * 50)
    if success:
        print("✓ Compilation successful!")
    else:
        print("✗ Compilation failed")
        sys.exit(1)


if __name__ == '__main__':
    main()
